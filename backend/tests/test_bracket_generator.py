"""
Tests for round 1 planning: in-quadrant seed pairs, bracket-fold order and A/C, B/D crossover.
"""
import pytest

from popcontest.services.bracket_generator import (
    CROSSOVER_ORDER,
    bracket_fold_positions,
    interleave_quadrants,
    plan_first_round,
    quadrant_pairings,
    round_name,
    total_rounds,
)
from popcontest.services.contestant_pool import SeededContestant, build_pool
from popcontest.services.errors import ValidationError


def _quadrants(sizes: dict) -> dict:
    """Contestant ids encode quadrant and seed: A3 -> 103, B3 -> 203, ..."""
    base = {"A": 100, "B": 200, "C": 300, "D": 400}
    return {
        q: [SeededContestant(contestant_id=base[q] + s, seed=s, quadrant=q) for s in range(1, n + 1)]
        for q, n in sizes.items()
    }


def _ids(slots):
    return [slot.contestant_ids for slot in slots]


class TestBracketFoldPositions:
    def test_2_entries(self):
        assert bracket_fold_positions(2) == [1, 2]

    def test_4_entries(self):
        assert bracket_fold_positions(4) == [1, 4, 2, 3]

    def test_8_entries(self):
        assert bracket_fold_positions(8) == [1, 8, 4, 5, 3, 6, 2, 7]

    def test_all_seeds_present(self):
        for n in (2, 4, 8, 16):
            assert sorted(bracket_fold_positions(n)) == list(range(1, n + 1))


class TestQuadrantPairings:
    def test_two_seeds(self):
        entries = _quadrants({"A": 2})["A"]
        pairs = quadrant_pairings(entries, 2)
        assert [(a.seed, b.seed) for a, b in pairs] == [(1, 2)]

    def test_eight_seeds_fold_order(self):
        entries = _quadrants({"A": 8})["A"]
        pairs = quadrant_pairings(entries, 8)
        assert [(a.seed, b.seed) for a, b in pairs] == [(1, 8), (4, 5), (2, 7), (3, 6)]

    def test_seed_sums_are_constant(self):
        entries = _quadrants({"A": 16})["A"]
        for a, b in quadrant_pairings(entries, 16):
            assert a.seed + b.seed == 17

    def test_missing_low_seeds_become_byes(self):
        entries = _quadrants({"A": 3})["A"]
        pairs = quadrant_pairings(entries, 4)
        assert [(a.seed, b.seed if b else None) for a, b in pairs] == [(1, None), (2, 3)]


class TestCrossover:
    def test_order_constant(self):
        assert CROSSOVER_ORDER == ("A", "C", "B", "D")

    def test_interleave(self):
        assert interleave_quadrants({"A": [1], "B": [2], "C": [3], "D": [4]}) == [1, 3, 2, 4]

    def test_eight_contestant_example(self):
        """A={1,2}, C={5,6}, B={3,4}, D={7,8} -> (1v2), (5v6), (3v4), (7v8)."""
        pool = build_pool(_quadrants({"A": 2, "B": 2, "C": 2, "D": 2}))
        slots = plan_first_round(pool)
        assert _ids(slots) == [(101, 102), (301, 302), (201, 202), (401, 402)]
        assert [s.position for s in slots] == [1, 2, 3, 4]
        assert [s.quadrant for s in slots] == ["A", "C", "B", "D"]

    def test_sixteen_contestants(self):
        pool = build_pool(_quadrants({"A": 4, "B": 4, "C": 4, "D": 4}))
        slots = plan_first_round(pool)
        assert _ids(slots) == [
            (101, 104), (102, 103),
            (301, 304), (302, 303),
            (201, 204), (202, 203),
            (401, 404), (402, 403),
        ]

    def test_a_and_b_never_share_a_semifinal_half(self):
        pool = build_pool(_quadrants({"A": 4, "B": 4, "C": 4, "D": 4}))
        slots = plan_first_round(pool)
        half = len(slots) // 2
        top = {s.quadrant for s in slots[:half]}
        bottom = {s.quadrant for s in slots[half:]}
        assert top == {"A", "C"}
        assert bottom == {"B", "D"}

    def test_single_contestant_quadrants_meet_across(self):
        pool = build_pool(_quadrants({"A": 1, "B": 1, "C": 1, "D": 1}))
        slots = plan_first_round(pool)
        assert _ids(slots) == [(101, 301), (201, 401)]
        assert all(s.quadrant is None for s in slots)


class TestByes:
    def test_uneven_quadrants_rejected_without_byes(self):
        with pytest.raises(ValidationError):
            build_pool(_quadrants({"A": 2, "B": 2, "C": 2, "D": 1}))

    def test_non_power_of_two_rejected_without_byes(self):
        with pytest.raises(ValidationError):
            build_pool(_quadrants({"A": 3, "B": 3, "C": 3, "D": 3}))

    def test_top_seed_gets_bye(self):
        pool = build_pool(_quadrants({"A": 2, "B": 2, "C": 2, "D": 1}), allow_byes=True)
        assert pool.slot_size == 2
        assert pool.bye_count == 1
        slots = plan_first_round(pool)
        d_slot = slots[3]
        assert d_slot.is_bye
        assert d_slot.contestant_ids == (401, None)
        assert not any(s.is_bye for s in slots[:3])

    def test_quadrant_too_small_for_slot_size(self):
        with pytest.raises(ValidationError):
            build_pool(_quadrants({"A": 4, "B": 4, "C": 4, "D": 1}), allow_byes=True)


class TestPoolValidation:
    def test_empty_quadrant(self):
        with pytest.raises(ValidationError):
            build_pool(_quadrants({"A": 2, "B": 2, "C": 2}))

    def test_unknown_quadrant(self):
        quadrants = _quadrants({"A": 1, "B": 1, "C": 1, "D": 1})
        quadrants["E"] = [SeededContestant(contestant_id=999, seed=1, quadrant="E")]
        with pytest.raises(ValidationError):
            build_pool(quadrants)

    def test_duplicate_seed(self):
        quadrants = _quadrants({"A": 2, "B": 2, "C": 2, "D": 2})
        quadrants["A"][1] = SeededContestant(contestant_id=150, seed=1, quadrant="A")
        with pytest.raises(ValidationError):
            build_pool(quadrants)

    def test_seed_gap(self):
        quadrants = _quadrants({"A": 2, "B": 2, "C": 2, "D": 2})
        quadrants["B"][1] = SeededContestant(contestant_id=250, seed=3, quadrant="B")
        with pytest.raises(ValidationError):
            build_pool(quadrants)


class TestRoundNames:
    def test_named_rounds(self):
        assert round_name(3, 1) == "Final"
        assert round_name(2, 2) == "Semifinal"
        assert round_name(1, 4) == "Quarterfinal"

    def test_early_rounds_are_numbered(self):
        assert round_name(1, 8) == "Round 1"
        assert round_name(2, 16) == "Round 2"

    def test_total_rounds(self):
        assert total_rounds(4) == 2
        assert total_rounds(8) == 3
        assert total_rounds(64) == 6
