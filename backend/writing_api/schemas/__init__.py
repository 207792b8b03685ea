"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary (request bodies)
    - Legacy camelCase field names accepted as aliases (projectName, docType, bodyMd)
"""
