"""Form parsing for the create and edit profile pages."""

from __future__ import annotations

from dataclasses import dataclass, field

from makerprofiles.config import (
    MAX_BIO_LENGTH,
    MAX_COURSE_NOTE_LENGTH,
    MAX_COURSE_TITLE_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TOP_COURSES,
)
from makerprofiles.models import TopCourse
from makerprofiles.normalize import (
    clip,
    is_valid_maker_id,
    normalize_course_id,
    normalize_maker_id,
    select_tags,
)


@dataclass(frozen=True)
class FormError:
    field: str
    message: str


@dataclass(frozen=True)
class ProfileForm:
    name: str
    maker_id: str
    handle: str = ""
    bio: str = ""
    tags: list[str] = field(default_factory=list)
    top10: list[TopCourse] = field(default_factory=list)


def _first(fields: dict[str, list[str]], key: str) -> str:
    values = fields.get(key) or [""]
    return values[0]


def parse_top_courses(fields: dict[str, list[str]]) -> list[TopCourse]:
    """Collect the numbered course groups, skipping groups left blank.

    The result keeps submission order and is compacted, so a blank third
    group between two filled ones leaves no gap.
    """
    courses: list[TopCourse] = []
    for n in range(1, MAX_TOP_COURSES + 1):
        course = TopCourse(
            title=clip(_first(fields, f"c_title_{n}"), MAX_COURSE_TITLE_LENGTH),
            course_id=normalize_course_id(_first(fields, f"c_id_{n}")),
            note=clip(_first(fields, f"c_note_{n}"), MAX_COURSE_NOTE_LENGTH) or None,
        )
        if not course.is_empty():
            courses.append(course)
    return courses


def parse_profile_form(fields: dict[str, list[str]]) -> ProfileForm | FormError:
    """Validate a submitted profile form.

    Args:
        fields: Parsed form body, as returned by ``urllib.parse.parse_qs``.

    Returns:
        A ``ProfileForm`` with every value normalized, or a ``FormError``
        naming the first required field that is missing or malformed.
    """
    name = clip(_first(fields, "name"), MAX_NAME_LENGTH)
    if not name:
        return FormError("name", "表示名が必要です。")

    maker_id = normalize_maker_id(_first(fields, "makerId"))
    if not maker_id:
        return FormError("makerId", "職人IDが必要です。")
    if not is_valid_maker_id(maker_id):
        return FormError("makerId", "職人IDの形式が正しくありません。例: ABC-123-DEF")

    return ProfileForm(
        name=name,
        maker_id=maker_id,
        handle=_first(fields, "handle").strip(),
        bio=clip(_first(fields, "bio"), MAX_BIO_LENGTH),
        tags=select_tags(fields.get("tags") or []),
        top10=parse_top_courses(fields),
    )
