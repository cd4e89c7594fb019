from __future__ import annotations

import itertools

import pytest

from roster_sync.matching import (
    FIRST_NAME_WEIGHT,
    HONORIFIC_WEIGHT,
    LAST_NAME_WEIGHT,
    LAX_THRESHOLD,
    match_score,
    matches_lax,
    rank_candidates,
)
from roster_sync.models import RosterMember
from tests.helpers import make_row


@pytest.fixture
def member() -> RosterMember:
    return RosterMember(home_row=2, honorific="Ms", first_name="Jane", last_name="Doe")


def test_weights_rank_last_then_first_then_honorific() -> None:
    assert LAST_NAME_WEIGHT > FIRST_NAME_WEIGHT > HONORIFIC_WEIGHT > 0


def test_full_match_scores_sum_of_weights(member: RosterMember) -> None:
    score = match_score(make_row("Ms.", "Jane", "Doe"), member)

    assert score == LAST_NAME_WEIGHT + FIRST_NAME_WEIGHT + HONORIFIC_WEIGHT


def test_last_name_alone_scores_above_zero_and_passes_lax(member: RosterMember) -> None:
    row = make_row("Dr", "Janet", "Doe")

    assert match_score(row, member) == LAST_NAME_WEIGHT
    assert matches_lax(row, member)


def test_honorific_alone_does_not_pass_lax(member: RosterMember) -> None:
    row = make_row("Ms", "Sam", "Smith")

    assert 0 < match_score(row, member) < LAX_THRESHOLD
    assert not matches_lax(row, member)


def test_first_name_and_honorific_survive_a_surname_change(member: RosterMember) -> None:
    assert matches_lax(make_row("Ms", "Jane", "Doe-Smith"), member)


def test_score_is_monotonic_in_matching_fields(member: RosterMember) -> None:
    right = {"honorific": "Ms", "first": "Jane", "last": "Doe"}
    wrong = {"honorific": "Mx", "first": "Kim", "last": "Roe"}

    for flags in itertools.product([False, True], repeat=3):
        cells = {
            field: (right if flag else wrong)[field]
            for field, flag in zip(("honorific", "first", "last"), flags)
        }
        base = match_score(make_row(**cells), member)
        for index, flag in enumerate(flags):
            if flag:
                continue
            field = ("honorific", "first", "last")[index]
            improved = dict(cells, **{field: right[field]})
            assert match_score(make_row(**improved), member) >= base


def test_rank_candidates_orders_by_score_then_row(member: RosterMember) -> None:
    rows = [
        make_row(),
        make_row(),
        make_row("Ms", "Sam", "Smith"),
        make_row("Ms", "Jane", "Doe"),
        make_row("Mx", "Jane", "Roe"),
        make_row("Ms", "Jane", "Doe"),
    ]

    assert rank_candidates(member, rows, {2, 3, 4, 5}) == [3, 5, 4, 2]


def test_rank_candidates_with_no_rows(member: RosterMember) -> None:
    assert rank_candidates(member, [], set()) == []
