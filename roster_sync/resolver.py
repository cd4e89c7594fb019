"""One reconciliation pass between sheet rows and the roster.

Stages run in order: rows still holding their anchored member, members whose
row moved, the report-to cell, then rows nobody claimed. Only the last stage
creates or adopts members.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .diff import diff_absence, diff_name
from .layout import DEFAULT_LAYOUT, SheetLayout, cell, name_cells_empty
from .matching import matches_lax, rank_candidates
from .models import Action, MemberName, RegistryMember, RosterMember, classify

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    """Raised when the resolver's own bookkeeping is inconsistent."""


@dataclass(slots=True)
class Resolution:
    actions: List[Action] = field(default_factory=list)
    new_members: List[RosterMember] = field(default_factory=list)
    stale_members: int = 0


def apply_row(
    member: RosterMember,
    row: Sequence[str],
    layout: SheetLayout = DEFAULT_LAYOUT,
) -> List[Action]:
    """Diff a member against a row, then take the row's name and absence."""

    name = MemberName.from_row(row, layout)
    absence = classify(row, layout)

    kinds = []
    name_change = diff_name(member.name, name)
    if name_change is not None:
        logger.debug(
            "Name change for %s: %s -> %s", member.registry_id, member.name, name
        )
        kinds.append(name_change)
    kinds.extend(diff_absence(member.absence, absence))

    member.name = name
    member.absence = absence
    return [Action(kind, member) for kind in kinds]


class Resolver:
    """Reconcile one snapshot of sheet rows against the live roster.

    ``roster`` is mutated in place: anchors move, fields take the row values and
    registry members matched by name are added.
    """

    def __init__(
        self,
        rows: Sequence[Sequence[str]],
        roster: Dict[str, RosterMember],
        registry_members: Sequence[RegistryMember],
        registry_report_to: Optional[str],
        *,
        layout: SheetLayout = DEFAULT_LAYOUT,
        on_report_to_change: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.rows = rows
        self.roster = roster
        self.registry_members = registry_members
        self.registry_report_to = registry_report_to
        self.layout = layout
        self.on_report_to_change = on_report_to_change

        self.actions: List[Action] = []
        self.new_members: List[RosterMember] = []
        self.pending_rows: set[int] = set()
        self.pending_members: Dict[str, None] = {}
        self.resolved_rows: set[int] = set()
        self.skipped_rows: set[int] = set()
        self.resolved_ids: set[str] = set()
        self.stale_members = 0

    def resolve(self) -> Resolution:
        self.perform_easy_updates()
        self.perform_confusing_updates()
        self.update_report_to()
        self.create_and_match_new_members()
        return Resolution(
            actions=list(self.actions),
            new_members=list(self.new_members),
            stale_members=self.stale_members,
        )

    def _apply(self, member: RosterMember, row_index: int) -> None:
        self.actions.extend(apply_row(member, self.rows[row_index], self.layout))
        self.resolved_rows.add(row_index)
        if member.registry_id is not None:
            self.resolved_ids.add(member.registry_id)

    def perform_easy_updates(self) -> None:
        logger.info("Performing easy member updates")
        anchors: Dict[int, RosterMember] = {}
        for member in self.roster.values():
            anchors.setdefault(member.home_row, member)

        for row_index in range(self.layout.header_rows, len(self.rows)):
            row = self.rows[row_index]
            if name_cells_empty(row, self.layout):
                self.skipped_rows.add(row_index)
                continue

            member = anchors.get(row_index)
            if member is None:
                self.pending_rows.add(row_index)
                continue

            if member.registry_id is None:
                raise ResolutionError(f"Roster member {member.formatted_name} has no registry id")

            if matches_lax(row, member, self.layout):
                self._apply(member, row_index)
            else:
                self.pending_rows.add(row_index)
                self.pending_members[member.registry_id] = None

        logger.info(
            "Performed %d easy updates, %d members and %d rows pending",
            len(self.resolved_rows),
            len(self.pending_members),
            len(self.pending_rows),
        )

    def perform_confusing_updates(self) -> None:
        logger.info("Performing confusing member updates")
        for registry_id in list(self.pending_members):
            member = self.roster.get(registry_id)
            if member is None:
                raise ResolutionError(f"Pending member {registry_id} is not in the roster")

            rankings = rank_candidates(member, self.rows, self.pending_rows, self.layout)
            if not rankings:
                self.stale_members += 1
                continue

            best = rankings[0]
            logger.info(
                "Moving %s from row %d to row %d", member.formatted_name, member.home_row, best
            )
            member.home_row = best
            self.pending_rows.discard(best)
            del self.pending_members[registry_id]
            self._apply(member, best)

        logger.info("Performed confusing updates, %d stale members", self.stale_members)

    def update_report_to(self) -> None:
        row_index, column_index = self.layout.report_to
        sheet_report_to = ""
        if row_index < len(self.rows):
            sheet_report_to = cell(self.rows[row_index], column_index).strip()

        if sheet_report_to and sheet_report_to != self.registry_report_to:
            logger.info(
                "Updating reportTo from %r to %r", self.registry_report_to, sheet_report_to
            )
            if self.on_report_to_change is not None:
                self.on_report_to_change(sheet_report_to)
        else:
            logger.info("reportTo unchanged")

    def _find_registry_member(self, name: MemberName) -> Optional[RegistryMember]:
        for record in self.registry_members:
            registry_name = MemberName.normalized(
                record.name.honorific, record.name.first, record.name.last
            )
            if registry_name == name:
                return record
        return None

    def create_and_match_new_members(self) -> None:
        logger.info("Creating and matching new members")
        matched = 0
        for row_index in sorted(self.pending_rows):
            row = self.rows[row_index]
            member = RosterMember.from_row(row, row_index, self.layout)
            if member is None:
                logger.warning("Skipping row %d: honorific and last name are required", row_index)
                self.pending_rows.discard(row_index)
                continue

            record = self._find_registry_member(member.name)
            if record is None:
                logger.info("New member %s at row %d", member.formatted_name, row_index)
                self.new_members.append(member)
                continue

            if record.id in self.resolved_ids:
                logger.warning(
                    "Skipping row %d: %s is already matched to another row",
                    row_index,
                    member.formatted_name,
                )
                self.pending_rows.discard(row_index)
                continue

            logger.info("Matched %s to registry member %s", member.formatted_name, record.id)
            member.assign_registry_id(record.id)
            member.revert_to_registry(record)
            self._apply(member, row_index)
            self.pending_rows.discard(row_index)
            self.roster[record.id] = member
            matched += 1

        logger.info(
            "Found %d new members and matched %d existing ones", len(self.new_members), matched
        )


__all__ = ["Resolver", "Resolution", "ResolutionError", "apply_row"]
