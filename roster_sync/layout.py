"""Column layout of the absence spreadsheet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def column(letter: str) -> int:
    """Return the zero-based index of a spreadsheet column letter."""

    return ALPHABET.index(letter.upper())


@dataclass(frozen=True, slots=True)
class SheetLayout:
    """Where each field lives in a row of the sheet.

    Period columns are listed in canonical period order (P1, IGS, P2 … P9).
    """

    honorific: int = column("A")
    first_name: int = column("B")
    last_name: int = column("C")
    full_day: int = column("G")
    am_block: int = column("I")
    pm_block: int = column("J")
    periods: tuple[int, ...] = field(
        default=tuple(column(letter) for letter in "MNOPQRSTUV")
    )
    comments: int = column("X")
    report_to: tuple[int, int] = (2, column("E"))
    header_rows: int = 2


DEFAULT_LAYOUT = SheetLayout()


def cell(row: Sequence[str], index: int) -> str:
    """Return a cell as text; rows coming back from the sheet are ragged."""

    if index < len(row):
        value = row[index]
        return "" if value is None else str(value)
    return ""


def is_checked(row: Sequence[str], index: int) -> bool:
    return cell(row, index).strip().lower() == "true"


def name_cells_empty(row: Sequence[str], layout: SheetLayout = DEFAULT_LAYOUT) -> bool:
    """True when the honorific, first and last name cells hold no text at all."""

    return not any(
        cell(row, index) for index in (layout.honorific, layout.first_name, layout.last_name)
    )


__all__ = ["SheetLayout", "DEFAULT_LAYOUT", "column", "cell", "is_checked", "name_cells_empty"]
