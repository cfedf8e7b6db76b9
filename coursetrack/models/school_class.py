from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SchoolClass:
    """A named group of students owned by exactly one teacher."""

    id: str
    name: str
    teacher_id: str
