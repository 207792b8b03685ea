"""Services Layer — async persistence and orchestration behind the routes.

Invariants:
    - Services take an AsyncSession and flush; routes commit the unit of work
    - Domain failures raised as WritingAPIError subclasses, never HTTPException
"""
