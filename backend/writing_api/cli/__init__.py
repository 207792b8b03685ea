"""Command-line clients that talk to a running Writing API over HTTP."""
