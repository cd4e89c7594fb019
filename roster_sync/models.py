"""Dataclasses representing the roster and absence domain."""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from .layout import DEFAULT_LAYOUT, SheetLayout, cell, is_checked

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


class Period(Enum):
    P1 = "Period 1"
    IGS = "IGS"
    P2 = "Period 2"
    P3 = "Period 3"
    P4 = "Period 4"
    P5 = "Period 5"
    P6 = "Period 6"
    P7 = "Period 7"
    P8 = "Period 8"
    P9 = "Period 9"

    @property
    def short_name(self) -> str:
        return self.name

    @property
    def order(self) -> int:
        return ALL_PERIODS.index(self)


ALL_PERIODS: tuple[Period, ...] = tuple(Period)
AM_PERIODS = (Period.P1, Period.IGS, Period.P2, Period.P3, Period.P4)
PM_PERIODS = (Period.P5, Period.P6, Period.P7, Period.P8, Period.P9)

# Registry period names are free text; the first token found in a name wins.
REGISTRY_PERIOD_TOKENS: tuple[tuple[str, Period], ...] = (
    ("1", Period.P1),
    ("igs", Period.IGS),
    ("2", Period.P2),
    ("3", Period.P3),
    ("4", Period.P4),
    ("5", Period.P5),
    ("6", Period.P6),
    ("7", Period.P7),
    ("8", Period.P8),
    ("9", Period.P9),
)


class AbsenceKind(str, Enum):
    PRESENT = "present"
    PARTIAL_DAY = "partial_day"
    FULL_DAY = "full_day"


@dataclass(frozen=True, slots=True)
class AbsenceStatus:
    """Absence for a single day.

    ``periods`` is only populated for ``PARTIAL_DAY`` and is never empty there;
    use the ``present``/``partial_day``/``full_day`` constructors rather than
    building one by hand.
    """

    kind: AbsenceKind
    periods: frozenset[Period] = frozenset()

    def __post_init__(self) -> None:
        if self.kind is AbsenceKind.PARTIAL_DAY and not self.periods:
            raise ValueError("a partial-day absence needs at least one period")
        if self.kind is not AbsenceKind.PARTIAL_DAY and self.periods:
            raise ValueError(f"{self.kind.value} absence cannot carry periods")

    @classmethod
    def present(cls) -> AbsenceStatus:
        return cls(AbsenceKind.PRESENT)

    @classmethod
    def full_day(cls) -> AbsenceStatus:
        return cls(AbsenceKind.FULL_DAY)

    @classmethod
    def partial_day(cls, periods: Iterable[Period]) -> AbsenceStatus:
        period_set = frozenset(periods)
        if not period_set:
            return cls.present()
        return cls(AbsenceKind.PARTIAL_DAY, period_set)

    @property
    def is_absent_at_all(self) -> bool:
        return self.kind is not AbsenceKind.PRESENT

    @property
    def is_fully_absent(self) -> bool:
        return self.kind is AbsenceKind.FULL_DAY

    def absent_during(self, period: Period) -> bool:
        if self.kind is AbsenceKind.FULL_DAY:
            return True
        if self.kind is AbsenceKind.PARTIAL_DAY:
            return period in self.periods
        return False

    def sorted_periods(self) -> list[Period]:
        return sorted(self.periods, key=lambda period: period.order)

    def __str__(self) -> str:
        if self.kind is AbsenceKind.FULL_DAY:
            return "out ALL DAY"
        if self.kind is AbsenceKind.PARTIAL_DAY:
            return "out " + ", ".join(p.short_name for p in self.sorted_periods())
        return "present"


def classify(row: Sequence[str], layout: SheetLayout = DEFAULT_LAYOUT) -> AbsenceStatus:
    """Derive an absence from the checkbox cells of a sheet row."""

    if is_checked(row, layout.full_day):
        return AbsenceStatus.full_day()

    periods: set[Period] = set()
    for column_index, period in zip(layout.periods, ALL_PERIODS):
        if is_checked(row, column_index):
            periods.add(period)
    if is_checked(row, layout.am_block):
        periods.update(AM_PERIODS)
    if is_checked(row, layout.pm_block):
        periods.update(PM_PERIODS)

    return AbsenceStatus.partial_day(periods)


def classify_from_registry(period_names: Iterable[str], fully_absent: bool) -> AbsenceStatus:
    """Derive an absence from the registry's period names and full-day flag."""

    if fully_absent:
        return AbsenceStatus.full_day()

    periods: set[Period] = set()
    for name in period_names:
        lowered = name.lower()
        for token, period in REGISTRY_PERIOD_TOKENS:
            if token in lowered:
                periods.add(period)
                break
    return AbsenceStatus.partial_day(periods)


def normalize_honorific(value: str) -> str:
    stripped = _PUNCTUATION.sub("", value or "").strip().lower()
    return _WHITESPACE.sub(" ", stripped)


@dataclass(frozen=True, slots=True)
class MemberName:
    honorific: str
    first: str
    last: str

    @classmethod
    def normalized(cls, honorific: str, first: str, last: str) -> MemberName:
        return cls(
            honorific=normalize_honorific(honorific),
            first=(first or "").strip(),
            last=(last or "").strip(),
        )

    @classmethod
    def from_row(cls, row: Sequence[str], layout: SheetLayout = DEFAULT_LAYOUT) -> MemberName:
        return cls.normalized(
            cell(row, layout.honorific),
            cell(row, layout.first_name),
            cell(row, layout.last_name),
        )


@dataclass(frozen=True, slots=True)
class RegistryMember:
    """A member as the registry reports it."""

    id: str
    name: MemberName
    absence_period_names: tuple[str, ...] = ()
    fully_absent: bool = False

    @property
    def absence(self) -> AbsenceStatus:
        return classify_from_registry(self.absence_period_names, self.fully_absent)


@dataclass(slots=True)
class RosterMember:
    """One tracked person.

    ``home_row`` is the sheet row this member was last matched to. It is only a
    hint and gets re-scored every pass.
    """

    home_row: int
    honorific: str
    first_name: str
    last_name: str
    absence: AbsenceStatus = field(default_factory=AbsenceStatus.present)
    registry_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.honorific = normalize_honorific(self.honorific)
        self.first_name = (self.first_name or "").strip()
        self.last_name = (self.last_name or "").strip()
        if not self.honorific:
            raise ValueError("roster member needs an honorific")
        if not self.last_name:
            raise ValueError("roster member needs a last name")

    @classmethod
    def from_row(
        cls,
        row: Sequence[str],
        row_index: int,
        layout: SheetLayout = DEFAULT_LAYOUT,
    ) -> Optional[RosterMember]:
        """Build a member from a sheet row, or ``None`` if the name cells are incomplete."""

        name = MemberName.from_row(row, layout)
        try:
            return cls(
                home_row=row_index,
                honorific=name.honorific,
                first_name=name.first,
                last_name=name.last,
                absence=classify(row, layout),
            )
        except ValueError:
            return None

    @property
    def name(self) -> MemberName:
        return MemberName(self.honorific, self.first_name, self.last_name)

    @name.setter
    def name(self, value: MemberName) -> None:
        self.honorific = value.honorific
        self.first_name = value.first
        self.last_name = value.last

    @property
    def formatted_name(self) -> str:
        return f"{self.honorific} {self.last_name}"

    @property
    def pretty_full_name(self) -> str:
        honorific = " ".join(f"{word.capitalize()}." for word in self.honorific.split())
        return " ".join(part for part in (honorific, self.first_name, self.last_name) if part)

    def assign_registry_id(self, registry_id: str) -> None:
        if self.registry_id is not None and self.registry_id != registry_id:
            raise ValueError(
                f"{self.formatted_name} already has registry id {self.registry_id}"
            )
        self.registry_id = registry_id

    def clone(self) -> RosterMember:
        """Shallow copy that skips validation; a sheet edit may have blanked a name field."""

        return copy.copy(self)

    def revert_to_registry(self, record: RegistryMember) -> None:
        """Replace name and absence with what the registry currently holds.

        A registry name without an honorific or last name is not taken; the
        member keeps its current name.
        """

        self.registry_id = record.id
        if record.name.honorific and record.name.last:
            self.name = record.name
        else:
            logger.warning(
                "Registry member %s has an incomplete name %r; keeping %s",
                record.id,
                record.name,
                self.formatted_name,
            )
        self.absence = record.absence


class ActionKind(str, Enum):
    CREATE_MEMBER = "create_member"
    CHANGE_NAME = "change_name"
    CHANGE_ABSENCE = "change_absence"


@dataclass(frozen=True, slots=True)
class Action:
    kind: ActionKind
    member: RosterMember


@dataclass(slots=True)
class SyncFailure:
    kind: ActionKind
    member: str
    registry_id: Optional[str]
    error: str


@dataclass(slots=True)
class SyncReport:
    status: str
    started_at: str
    finished_at: Optional[str] = None
    actions: int = 0
    created: int = 0
    stale_members: int = 0
    failures: list[SyncFailure] = field(default_factory=list)
    error: Optional[str] = None
    timings_ms: dict[str, float] = field(default_factory=dict)


__all__ = [
    "Period",
    "ALL_PERIODS",
    "AM_PERIODS",
    "PM_PERIODS",
    "AbsenceKind",
    "AbsenceStatus",
    "classify",
    "classify_from_registry",
    "normalize_honorific",
    "MemberName",
    "RegistryMember",
    "RosterMember",
    "ActionKind",
    "Action",
    "SyncFailure",
    "SyncReport",
]
