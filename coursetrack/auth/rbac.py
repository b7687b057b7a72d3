from typing import Iterable

from fastapi import Depends, HTTPException, status
from pydantic import BaseModel

from coursetrack.auth.dependencies import get_current_user
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core.enums import Role


class Capabilities(BaseModel):
    """What the caller may do, derived once per request from the role set."""

    can_view_all: bool = False
    can_manage_terms: bool = False
    can_submit_workload: bool = False
    can_review_workload: bool = False
    can_view_reports: bool = False

    @classmethod
    def from_roles(cls, roles: Iterable[str]) -> "Capabilities":
        role_set = set(roles or [])
        officer = Role.ACADEMIC_OFFICER.value in role_set
        chair = Role.PROGRAM_CHAIR.value in role_set
        return cls(
            can_view_all=officer or chair,
            can_manage_terms=officer,
            can_submit_workload=Role.PROFESSOR.value in role_set,
            can_review_workload=officer,
            can_view_reports=officer,
        )


def capabilities_of(user: CurrentUser) -> Capabilities:
    return Capabilities.from_roles(user.roles)


def require_capability(name: str):
    """
    Dependency factory to enforce a capability.

    Example:
        Depends(require_capability("can_manage_terms"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if not getattr(capabilities_of(current_user), name, False):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "FORBIDDEN", "message": "Access forbidden: insufficient permissions"},
            )

    return _checker
