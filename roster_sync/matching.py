"""Utility functions to score how well a sheet row matches a roster member."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .layout import DEFAULT_LAYOUT, SheetLayout
from .models import MemberName, RosterMember

LAST_NAME_WEIGHT = 3.0
FIRST_NAME_WEIGHT = 2.0
HONORIFIC_WEIGHT = 1.0

# A member anchored to a row keeps it through a single-field edit:
# last name alone, or first name plus honorific.
LAX_THRESHOLD = 3.0


def match_score(
    row: Sequence[str],
    member: RosterMember,
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> float:
    """Return the additive match score of a row against a member."""

    name = MemberName.from_row(row, layout)

    has_last = bool(name.last) and name.last == member.last_name
    has_first = bool(name.first) and name.first == member.first_name
    has_honorific = bool(name.honorific) and name.honorific == member.honorific

    return (
        LAST_NAME_WEIGHT * has_last
        + FIRST_NAME_WEIGHT * has_first
        + HONORIFIC_WEIGHT * has_honorific
    )


def matches_lax(
    row: Sequence[str],
    member: RosterMember,
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> bool:
    return match_score(row, member, layout) >= LAX_THRESHOLD


def rank_candidates(
    member: RosterMember,
    rows: Sequence[Sequence[str]],
    candidates: Iterable[int],
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> List[int]:
    """Order candidate row indices best match first; ties go to the lower row."""

    scored = [(match_score(rows[index], member, layout), index) for index in candidates]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [index for _, index in scored]


__all__ = [
    "LAST_NAME_WEIGHT",
    "FIRST_NAME_WEIGHT",
    "HONORIFIC_WEIGHT",
    "LAX_THRESHOLD",
    "match_score",
    "matches_lax",
    "rank_candidates",
]
