"""The authenticated caller as seen by route handlers and services."""

from __future__ import annotations

from dataclasses import dataclass

from .models.profile import ProfileRole


@dataclass(frozen=True)
class Principal:
    """A signed-in profile and its role."""

    id: str
    role: str
    email: str

    @property
    def is_coach(self) -> bool:
        return self.role == ProfileRole.COACH.value

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN.value
