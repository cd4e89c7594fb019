"""Turn state transitions into the registry mutations they require."""

from __future__ import annotations

from typing import List, Optional

from .models import AbsenceKind, AbsenceStatus, ActionKind, MemberName


def diff_absence(prev: AbsenceStatus, curr: AbsenceStatus) -> List[ActionKind]:
    if prev.kind is not curr.kind:
        return [ActionKind.CHANGE_ABSENCE]
    if prev.kind is AbsenceKind.PARTIAL_DAY and prev.periods != curr.periods:
        return [ActionKind.CHANGE_ABSENCE]
    return []


def diff_name(prev: MemberName, curr: MemberName) -> Optional[ActionKind]:
    prev = MemberName.normalized(prev.honorific, prev.first, prev.last)
    curr = MemberName.normalized(curr.honorific, curr.first, curr.last)
    if prev != curr:
        return ActionKind.CHANGE_NAME
    return None


__all__ = ["diff_absence", "diff_name"]
