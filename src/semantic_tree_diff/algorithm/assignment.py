"""Optimal one-to-one assignment over a score matrix, with a -inf guard.

Wraps scipy's ``linear_sum_assignment`` in maximisation form.  Cells holding
``-np.inf`` mark forbidden pairs.  They never reach the solver, which would
raise ``ValueError`` on an infeasible matrix: scores are turned into
non-negative costs and forbidden cells get a guard cost that dominates every
finite one.  Pairs that land on a forbidden cell are dropped afterwards.

Guard value formula: ``finite_max * min(m, n) + 1.0`` (over the non-negative
costs).  One forbidden cell then costs more than any full set of allowed
pairs, so the solver always keeps the largest possible number of allowed
pairs and maximises the score among those.
"""

from __future__ import annotations

import numpy as np
from scipy.optimize import linear_sum_assignment  # type: ignore[import-untyped]

__all__ = ["optimal_assignment"]


def optimal_assignment(scores: np.ndarray) -> list[tuple[int, int]]:
    """Pair rows with columns so that the total score is maximal.

    The number of allowed pairs comes first: a lower-scoring assignment
    with more allowed pairs wins over one that needs a forbidden cell.

    Args:
        scores: 2-D score matrix of shape ``(m, n)``.  ``-np.inf`` marks a
            forbidden pair.

    Returns:
        ``(row, col)`` index pairs sorted by row.  Rows or columns left
        without an allowed partner do not appear.  An empty list is returned
        when no allowed pair exists.
    """
    score = np.asarray(scores, dtype=float)
    if score.size == 0:
        return []

    forbidden = np.isneginf(score)
    if forbidden.all():
        return []

    finite = score[~forbidden]
    cost = np.where(forbidden, 0.0, finite.max() - score)
    if forbidden.any():
        guard_value = float(cost[~forbidden].max()) * min(cost.shape) + 1.0
        cost = np.where(forbidden, guard_value, cost)

    row_ind, col_ind = linear_sum_assignment(cost)

    keep = ~forbidden[row_ind, col_ind]
    return [(int(r), int(c)) for r, c in zip(row_ind[keep], col_ind[keep], strict=True)]
