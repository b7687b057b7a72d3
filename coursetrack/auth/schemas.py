from typing import List

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """Caller identity as supplied by the identity collaborator (token claims)."""

    id: int
    roles: List[str] = Field(default_factory=list)
