"""Minimum-cost bipartite assignment (Hungarian / Kuhn-Munkres).

The solver works on plain nested sequences so it stays a pure function of its input:
the same matrix always yields the same pairing. Rectangular matrices are supported; with
more rows than columns the surplus rows stay unassigned.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

type CostMatrix = Sequence[Sequence[float]]


@dataclass(frozen=True, slots=True)
class Assignment:
    """Row/column pairs of an optimal assignment, sorted by row."""

    pairs: tuple[tuple[int, int], ...]
    cost: float

    def column_for(self, row: int) -> int | None:
        for assigned_row, column in self.pairs:
            if assigned_row == row:
                return column
        return None

    def as_dict(self) -> dict[int, int]:
        return dict(self.pairs)


def _validate(costs: CostMatrix) -> int:
    width = len(costs[0])
    for index, row in enumerate(costs):
        if len(row) != width:
            msg = (
                f"Cost matrix is not rectangular: row {index} has {len(row)} columns, "
                f"expected {width}"
            )
            raise ValueError(msg)
        for value in row:
            if not math.isfinite(value):
                msg = f"Cost matrix contains a non-finite value in row {index}: {value!r}"
                raise ValueError(msg)
    return width


def minimum_cost_assignment(costs: CostMatrix) -> Assignment:
    """Pair rows with columns so that the summed cost is minimal.

    Every row is assigned when ``rows <= columns``, every column otherwise. Among equal-cost
    optima the solver deterministically prefers lower column indices for earlier rows.
    """

    if not costs:
        return Assignment(pairs=(), cost=0.0)
    width = _validate(costs)
    if width == 0:
        return Assignment(pairs=(), cost=0.0)

    if len(costs) > width:
        transposed = [[costs[r][c] for r in range(len(costs))] for c in range(width)]
        flipped = _solve(transposed)
        pairs = tuple(sorted((row, column) for column, row in flipped))
    else:
        pairs = tuple(_solve(costs))

    total = math.fsum(costs[row][column] for row, column in pairs)
    return Assignment(pairs=pairs, cost=total)


def _solve(costs: CostMatrix) -> list[tuple[int, int]]:
    # O(n^2 m) shortest augmenting path with potentials; requires rows <= columns.
    rows = len(costs)
    columns = len(costs[0])
    u = [0.0] * (rows + 1)
    v = [0.0] * (columns + 1)
    owner = [0] * (columns + 1)  # owner[j]: 1-based row assigned to column j, 0 = free
    way = [0] * (columns + 1)

    for row in range(1, rows + 1):
        owner[0] = row
        current = 0
        min_slack = [math.inf] * (columns + 1)
        used = [False] * (columns + 1)
        while True:
            used[current] = True
            assigned = owner[current]
            delta = math.inf
            next_column = 0
            for column in range(1, columns + 1):
                if used[column]:
                    continue
                slack = costs[assigned - 1][column - 1] - u[assigned] - v[column]
                if slack < min_slack[column]:
                    min_slack[column] = slack
                    way[column] = current
                if min_slack[column] < delta:
                    delta = min_slack[column]
                    next_column = column
            for column in range(columns + 1):
                if used[column]:
                    u[owner[column]] += delta
                    v[column] -= delta
                else:
                    min_slack[column] -= delta
            current = next_column
            if owner[current] == 0:
                break
        while current:
            previous = way[current]
            owner[current] = owner[previous]
            current = previous

    return sorted(
        (owner[column] - 1, column - 1) for column in range(1, columns + 1) if owner[column]
    )
