"""Domain entity representing a notification recipient."""

from dataclasses import dataclass
from datetime import datetime

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_PARENT = "parent"
ROLE_STUDENT = "student"

USER_ROLES = (ROLE_ADMIN, ROLE_TEACHER, ROLE_PARENT, ROLE_STUDENT)


@dataclass
class User:
    """Core attributes of a school user as seen by the notification center."""

    id: int | None
    name: str
    email: str
    role: str
    is_active: bool = True
    created_at: datetime | None = None

    def has_role(self, role: str) -> bool:
        """Return ``True`` when the user's role matches ``role``."""

        return self.role.lower() == role.lower()

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.has_role(ROLE_ADMIN)
