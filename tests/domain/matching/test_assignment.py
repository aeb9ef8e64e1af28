from __future__ import annotations

import itertools
import math
import random

import pytest

from cantus.domain.matching import minimum_cost_assignment


def _greedy_cost(costs: list[list[float]]) -> float:
    taken: set[int] = set()
    total = 0.0
    for row in costs:
        column = min((c for c in range(len(row)) if c not in taken), key=lambda c: row[c])
        taken.add(column)
        total += row[column]
    return total


def _brute_force_cost(costs: list[list[float]]) -> float:
    rows = len(costs)
    columns = len(costs[0])
    return min(
        math.fsum(costs[row][column] for row, column in enumerate(chosen))
        for chosen in itertools.permutations(range(columns), rows)
    )


def test_assignment_beats_nearest_neighbour() -> None:
    costs = [[1.0, 2.0], [2.0, 100.0]]

    assignment = minimum_cost_assignment(costs)

    assert assignment.pairs == ((0, 1), (1, 0))
    assert assignment.cost == pytest.approx(4.0)
    assert _greedy_cost(costs) == pytest.approx(101.0)


def test_assignment_finds_known_optimum() -> None:
    costs = [[4.0, 1.0, 3.0], [2.0, 0.0, 5.0], [3.0, 2.0, 2.0]]

    assignment = minimum_cost_assignment(costs)

    assert assignment.pairs == ((0, 1), (1, 0), (2, 2))
    assert assignment.cost == pytest.approx(5.0)
    assert assignment.column_for(1) == 0
    assert assignment.as_dict() == {0: 1, 1: 0, 2: 2}


@pytest.mark.parametrize("seed", range(25))
def test_assignment_matches_brute_force(seed: int) -> None:
    rng = random.Random(seed)
    rows = rng.randint(1, 5)
    columns = rng.randint(rows, 6)
    costs = [[round(rng.random(), 3) for _ in range(columns)] for _ in range(rows)]

    assignment = minimum_cost_assignment(costs)

    assert len(assignment.pairs) == rows
    assert len({column for _, column in assignment.pairs}) == rows
    assert assignment.cost == pytest.approx(_brute_force_cost(costs))


def test_more_rows_than_columns_leaves_rows_unassigned() -> None:
    costs = [[1.0], [0.0], [3.0]]

    assignment = minimum_cost_assignment(costs)

    assert assignment.pairs == ((1, 0),)
    assert assignment.column_for(0) is None
    assert assignment.cost == pytest.approx(0.0)


def test_equal_costs_pair_rows_in_order() -> None:
    costs = [[0.0, 0.0, 0.0] for _ in range(3)]

    assert minimum_cost_assignment(costs).pairs == ((0, 0), (1, 1), (2, 2))


def test_assignment_is_deterministic() -> None:
    rng = random.Random(42)
    costs = [[rng.choice((0.0, 0.5, 1.0)) for _ in range(5)] for _ in range(5)]

    results = {minimum_cost_assignment(costs).pairs for _ in range(10)}

    assert len(results) == 1


def test_empty_matrix() -> None:
    assert minimum_cost_assignment([]).pairs == ()
    assert minimum_cost_assignment([[]]).pairs == ()


def test_rejects_ragged_and_non_finite_matrices() -> None:
    with pytest.raises(ValueError, match="not rectangular"):
        minimum_cost_assignment([[1.0, 2.0], [1.0]])
    with pytest.raises(ValueError, match="non-finite"):
        minimum_cost_assignment([[1.0, math.nan]])
