from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from roster_sync.layout import DEFAULT_LAYOUT
from roster_sync.models import ALL_PERIODS, Period, RegistryMember, RosterMember

ROW_WIDTH = 24


def make_row(
    honorific: str = "",
    first: str = "",
    last: str = "",
    *,
    full_day: bool = False,
    periods: Iterable[Period] = (),
    am: bool = False,
    pm: bool = False,
) -> list[str]:
    layout = DEFAULT_LAYOUT
    row = [""] * ROW_WIDTH
    row[layout.honorific] = honorific
    row[layout.first_name] = first
    row[layout.last_name] = last
    row[layout.full_day] = "TRUE" if full_day else "FALSE"
    row[layout.am_block] = "TRUE" if am else "FALSE"
    row[layout.pm_block] = "TRUE" if pm else "FALSE"
    checked = set(periods)
    for column_index, period in zip(layout.periods, ALL_PERIODS):
        row[column_index] = "TRUE" if period in checked else "FALSE"
    return row


def make_sheet(*rows: list[str], report_to: str = "") -> list[list[str]]:
    """Two header rows followed by data rows; report-to lives in the first data row."""

    sheet = [["Honorific", "First", "Last"], ["", "", ""], *[list(r) for r in rows]]
    if report_to:
        if len(sheet) < 3:
            sheet.append(make_row())
        sheet[2][DEFAULT_LAYOUT.report_to[1]] = report_to
    return sheet


def anchored(
    registry_id: str,
    home_row: int,
    honorific: str,
    first: str,
    last: str,
    **kwargs,
) -> RosterMember:
    member = RosterMember(
        home_row=home_row, honorific=honorific, first_name=first, last_name=last, **kwargs
    )
    member.assign_registry_id(registry_id)
    return member


class FakeSheet:
    def __init__(self, rows: list[list[str]]) -> None:
        self.rows = rows
        self.requested: list[str] = []
        self.error: Optional[Exception] = None

    async def fetch_rows(self, spreadsheet_id: str) -> list[list[str]]:
        self.requested.append(spreadsheet_id)
        if self.error is not None:
            raise self.error
        return [list(row) for row in self.rows]

    async def close(self) -> None:
        return None


class FakeRegistry:
    def __init__(self, members: Optional[list[RegistryMember]] = None, report_to: str = "") -> None:
        self.members = list(members or [])
        self.report_to = report_to
        self.spreadsheet_id: Optional[str] = "sheet-from-registry"
        self.calls: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()
        self.next_id = 0

    async def get_spreadsheet_id(self) -> Optional[str]:
        return self.spreadsheet_id

    async def list_members(self) -> list[RegistryMember]:
        return list(self.members)

    async def get_report_to(self) -> str:
        return self.report_to

    def _check(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if key in self.fail_for:
            raise RuntimeError(f"{operation} rejected for {key}")

    async def create_member(self, member: RosterMember) -> str:
        self._check("create", member.last_name)
        self.next_id += 1
        return f"new-{self.next_id}"

    async def rename_member(self, member: RosterMember) -> None:
        self._check("rename", member.registry_id or "")

    async def set_absence(self, member: RosterMember) -> None:
        self._check("absence", member.registry_id or "")

    async def set_report_to(self, report_to: str) -> None:
        self._check("report_to", report_to)
        self.report_to = report_to

    async def close(self) -> None:
        return None


class Clock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 9, 3, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)
