from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Optional


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TopCourse:
    title: str = ""
    course_id: str = ""
    note: Optional[str] = None

    def is_empty(self) -> bool:
        """Return True when no field carries a value."""
        return not (self.title or self.course_id or self.note)

    def to_record(self) -> dict[str, str]:
        record = {"title": self.title, "courseId": self.course_id}
        if self.note:
            record["note"] = self.note
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "TopCourse":
        return cls(
            title=str(record.get("title") or ""),
            course_id=str(record.get("courseId") or ""),
            note=str(record["note"]) if record.get("note") else None,
        )


@dataclass(frozen=True)
class Profile:
    handle: str
    name: str
    maker_id: str
    edit_secret: str

    bio: str = ""
    tags: list[str] = field(default_factory=list)
    top10: list[TopCourse] = field(default_factory=list)

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: int = field(default_factory=now_ms)
    updated_at: int = -1

    def __post_init__(self) -> None:
        """Default ``updated_at`` to the creation time."""
        if self.updated_at < self.created_at:
            object.__setattr__(self, "updated_at", self.created_at)

    @property
    def top_course(self) -> Optional[TopCourse]:
        """Return the first-ranked favorite course, if any."""
        return self.top10[0] if self.top10 else None

    def search_text(self) -> str:
        """Return the lowercase haystack used by the list search."""
        return " ".join([self.name, self.handle, self.bio, " ".join(self.tags)]).lower()

    def edited(
        self,
        *,
        name: str,
        maker_id: str,
        bio: str,
        tags: list[str],
        top10: list[TopCourse],
        at: Optional[int] = None,
    ) -> "Profile":
        """Return a copy with the mutable fields overwritten.

        ``updated_at`` always moves forward, even when two edits land in the
        same millisecond.
        """
        stamp = now_ms() if at is None else at
        return replace(
            self,
            name=name,
            maker_id=maker_id,
            bio=bio,
            tags=list(tags),
            top10=list(top10),
            updated_at=max(stamp, self.updated_at + 1),
        )

    def to_record(self) -> dict[str, Any]:
        """Return the JSON snapshot record for this profile."""
        return {
            "id": self.id,
            "handle": self.handle,
            "name": self.name,
            "makerId": self.maker_id,
            "bio": self.bio,
            "tags": list(self.tags),
            "top10": [course.to_record() for course in self.top10],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "editSecret": self.edit_secret,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Profile":
        """Build a profile from a snapshot record.

        Raises:
            ValueError: If the record has no handle.
        """
        handle = str(record.get("handle") or "")
        if not handle:
            raise ValueError("profile record has no handle")
        courses = record.get("top10") or []
        created_at = int(record.get("createdAt") or 0)
        return cls(
            id=str(record.get("id") or uuid.uuid4()),
            handle=handle,
            name=str(record.get("name") or ""),
            maker_id=str(record.get("makerId") or ""),
            bio=str(record.get("bio") or ""),
            tags=[str(tag) for tag in record.get("tags") or []],
            top10=[TopCourse.from_record(item) for item in courses if isinstance(item, dict)],
            created_at=created_at,
            updated_at=int(record.get("updatedAt") or created_at),
            edit_secret=str(record.get("editSecret") or ""),
        )
