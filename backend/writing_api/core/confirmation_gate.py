"""Confirmation Gate — decides whether a document write may touch a project.

Invariants:
    - Pure: never mutates the project; the caller applies auto-confirmation
    - blocked wins over everything (403)
    - require_confirmation and not confirmed → 412 unless autoconfirm is on
"""

from writing_api.core.errors import ProjectBlockedError, ProjectNotConfirmedError
from writing_api.core.repository_protocols import ProjectLike


def check_write_allowed(project: ProjectLike, allow_autoconfirm: bool) -> bool:
    """Raise if writes are refused; return True when the project must be auto-confirmed first."""
    if project.blocked:
        raise ProjectBlockedError(project.name)
    if project.require_confirmation and not project.confirmed:
        if allow_autoconfirm:
            return True
        raise ProjectNotConfirmedError(str(project.id), project.name)
    return False


def confirmed_flags() -> dict[str, bool]:
    """Flag values a confirmed project carries."""
    return {"confirmed": True, "require_confirmation": False, "blocked": False}
