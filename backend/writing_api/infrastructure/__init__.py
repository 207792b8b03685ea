"""Infrastructure Layer — database, logging and external API clients.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external calls wrapped with retry/timeout/error mapping
"""
