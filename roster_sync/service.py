"""Core orchestration logic for roster sync."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import Settings
from .layout import DEFAULT_LAYOUT, SheetLayout
from .models import (
    Action,
    ActionKind,
    RegistryMember,
    RosterMember,
    SyncFailure,
    SyncReport,
)
from .registry_client import RegistryClient
from .resolver import Resolution, Resolver
from .sheet_client import SheetClient, load_credentials

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Snapshot:
    rows: List[List[str]]
    members: List[RegistryMember]
    report_to: str


class RosterSyncService:
    """Keeps the registry in step with the absence sheet.

    Only one pass runs at a time; ``summary`` and ``status`` wait for the
    running pass so they never see a half-updated roster.
    """

    def __init__(
        self,
        settings: Settings,
        sheet: SheetClient,
        registry: RegistryClient,
        *,
        layout: SheetLayout = DEFAULT_LAYOUT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.sheet = sheet
        self.registry = registry
        self.layout = layout
        self._clock = clock
        self._lock = asyncio.Lock()
        self._background: set[asyncio.Task[None]] = set()

        self.roster: Dict[str, RosterMember] = {}
        self.last_sync: datetime = clock()
        self.last_sheet_change: Optional[datetime] = None
        self.last_report: Optional[SyncReport] = None
        self._last_rows: Optional[List[List[str]]] = None

    # region Sync helpers
    async def _pull(self) -> Snapshot:
        spreadsheet_id = await self.registry.get_spreadsheet_id() or self.settings.sheet_id
        if not spreadsheet_id:
            raise RuntimeError("No spreadsheet id from the registry and SHEET_ID is not set")

        rows = await self.sheet.fetch_rows(spreadsheet_id)
        logger.info("Got %d sheet rows", len(rows))
        members = await self.registry.list_members()
        logger.info("Got %d members from the registry", len(members))
        report_to = await self.registry.get_report_to()
        logger.info("Got reportTo %r from the registry", report_to)
        return Snapshot(rows=rows, members=members, report_to=report_to)

    def _resolve(self, snapshot: Snapshot, report_to_writes: List[str]) -> tuple[Dict[str, RosterMember], Resolution]:
        roster = {key: member.clone() for key, member in self.roster.items()}

        by_id = {record.id: record for record in snapshot.members}
        for member in roster.values():
            record = by_id.get(member.registry_id or "")
            if record is not None:
                member.revert_to_registry(record)

        resolver = Resolver(
            snapshot.rows,
            roster,
            snapshot.members,
            snapshot.report_to,
            layout=self.layout,
            on_report_to_change=report_to_writes.append,
        )
        return roster, resolver.resolve()

    def write_gate_open(self, now: datetime, force_write: bool = False) -> bool:
        if force_write or self.last_sheet_change is None:
            return True
        quiet_for = (now - self.last_sheet_change).total_seconds()
        return quiet_for > self.settings.write_quiet_period_seconds

    def _failure(self, kind: ActionKind, member: RosterMember, exc: Exception) -> SyncFailure:
        return SyncFailure(
            kind=kind,
            member=member.formatted_name,
            registry_id=member.registry_id,
            error=str(exc) or type(exc).__name__,
        )

    async def _dispatch(self, action: Action) -> Optional[SyncFailure]:
        try:
            if action.kind is ActionKind.CHANGE_NAME:
                await self.registry.rename_member(action.member)
            elif action.kind is ActionKind.CHANGE_ABSENCE:
                await self.registry.set_absence(action.member)
            else:
                raise ValueError(f"Unsupported action {action.kind.value}")
        except Exception as exc:  # noqa: BLE001
            return self._failure(action.kind, action.member, exc)
        return None

    async def _create(self, member: RosterMember) -> Optional[SyncFailure]:
        try:
            registry_id = await self.registry.create_member(member)
            member.assign_registry_id(registry_id)
            self.roster[registry_id] = member
            logger.info("Created %s as %s", member.formatted_name, registry_id)
        except Exception as exc:  # noqa: BLE001
            return self._failure(ActionKind.CREATE_MEMBER, member, exc)
        if member.absence.is_absent_at_all:
            return await self._dispatch(Action(ActionKind.CHANGE_ABSENCE, member))
        return None

    async def _write(self, actions: Sequence[Action], new_members: Sequence[RosterMember]) -> List[SyncFailure]:
        logger.info("Performing %d non-create actions", len(actions))
        results = await asyncio.gather(*(self._dispatch(action) for action in actions))
        logger.info("Creating %d new members", len(new_members))
        results += await asyncio.gather(*(self._create(member) for member in new_members))
        return [failure for failure in results if failure is not None]

    async def _write_report_to(self, report_to: str) -> None:
        try:
            await self.registry.set_report_to(report_to)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to update reportTo to %r", report_to)

    def _schedule_report_to(self, report_to: str) -> None:
        task = asyncio.create_task(self._write_report_to(report_to))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def sync(self, force_write: bool = False) -> SyncReport:
        async with self._lock:
            return await self._sync_locked(force_write)

    async def _sync_locked(self, force_write: bool) -> SyncReport:
        started = self._clock()
        report = SyncReport(status="failed", started_at=started.isoformat())
        logger.info(
            "Starting sync (%.1f seconds after last sync)",
            (started - self.last_sync).total_seconds(),
        )

        mark = time.perf_counter()
        report_to_writes: List[str] = []
        try:
            snapshot = await self._pull()
            report.timings_ms["fetch"] = round((time.perf_counter() - mark) * 1000, 1)
            mark = time.perf_counter()
            roster, resolution = self._resolve(snapshot, report_to_writes)
            report.timings_ms["resolve"] = round((time.perf_counter() - mark) * 1000, 1)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Sync failed during data pull and resolution")
            report.error = str(exc) or type(exc).__name__
            report.finished_at = self._clock().isoformat()
            self.last_report = report
            return report

        now = self._clock()
        self.roster = roster
        if snapshot.rows != self._last_rows:
            self.last_sheet_change = now
            self._last_rows = snapshot.rows
        for report_to in report_to_writes:
            self._schedule_report_to(report_to)

        report.actions = len(resolution.actions)
        report.created = len(resolution.new_members)
        report.stale_members = resolution.stale_members

        if self.write_gate_open(now, force_write):
            mark = time.perf_counter()
            report.failures = await self._write(resolution.actions, resolution.new_members)
            report.timings_ms["write"] = round((time.perf_counter() - mark) * 1000, 1)
            report.status = "written"
            for failure in report.failures:
                logger.error(
                    "%s failed for %s (%s): %s",
                    failure.kind.value,
                    failure.member,
                    failure.registry_id,
                    failure.error,
                )
        else:
            report.status = "skipped"
            remaining = self.settings.write_quiet_period_seconds - (
                now - self.last_sheet_change
            ).total_seconds()
            logger.info(
                "Skipping registry writes due to recent sheet changes; next write in %d min %d sec",
                remaining // 60,
                remaining % 60,
            )

        finished = self._clock()
        report.finished_at = finished.isoformat()
        self.last_sync = finished
        self.last_report = report
        logger.info(
            "Sync %s: %d actions, %d new members, %d failures, %d stale members %s",
            report.status,
            report.actions,
            report.created,
            len(report.failures),
            report.stale_members,
            report.timings_ms,
        )
        return report

    async def run_periodically(self, interval: Optional[float] = None) -> None:
        interval = interval or self.settings.sync_interval_seconds
        while True:
            try:
                await self.sync()
            except Exception:  # noqa: BLE001
                logger.exception("Scheduled sync failed")
            await asyncio.sleep(interval)

    async def close(self) -> None:
        for task in list(self._background):
            task.cancel()
        await self.registry.close()
        await self.sheet.close()

    # endregion

    # region Query helpers
    async def summary(self) -> str:
        async with self._lock:
            absent = sorted(
                (m for m in self.roster.values() if m.absence.is_absent_at_all),
                key=lambda m: m.pretty_full_name,
            )
            if not absent:
                return ""
            width = max(len(m.pretty_full_name) for m in absent)
            return "".join(
                f"{m.pretty_full_name.ljust(width)} - {m.absence}\n" for m in absent
            )

    async def status(self) -> Dict[str, Any]:
        async with self._lock:
            return {
                "members": len(self.roster),
                "absent": sum(1 for m in self.roster.values() if m.absence.is_absent_at_all),
                "last_sync": self.last_sync.isoformat(),
                "last_sheet_change": (
                    self.last_sheet_change.isoformat() if self.last_sheet_change else None
                ),
                "last_report": asdict(self.last_report) if self.last_report else None,
            }

    # endregion


def create_service(settings: Settings) -> RosterSyncService:
    credentials = load_credentials(
        settings.google_service_account_json, settings.google_service_account_file
    )
    sheet = SheetClient(credentials, settings.worksheet_name)
    registry = RegistryClient(
        settings.registry_url,
        settings.registry_client_id,
        settings.registry_client_secret,
    )
    return RosterSyncService(settings, sheet, registry)


__all__ = ["RosterSyncService", "Snapshot", "create_service", "utc_now"]
