"""Database declarative base.

Invariants:
    - Single async engine per process (initialized via infrastructure.database.init_db)
"""
