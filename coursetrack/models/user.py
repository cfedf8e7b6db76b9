from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Role = Literal["admin", "teacher", "student"]
ROLES: tuple[Role, ...] = ("admin", "teacher", "student")


@dataclass(frozen=True, slots=True)
class User:
    id: str  # identity id issued by the identity provider
    email: str
    role: Role
    class_id: str | None = None  # students only

    @staticmethod
    def new(
        *, id: str, email: str, role: Role, class_id: str | None = None
    ) -> User:
        # A non-student never carries a class id.
        return User(
            id=id,
            email=email,
            role=role,
            class_id=class_id if role == "student" else None,
        )

    @property
    def is_student(self) -> bool:
        return self.role == "student"

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"
