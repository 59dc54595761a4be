r"""Structural decomposition of sparse matrices. The main entry point is
:func:`dulmage_mendelsohn`, which reorders the rows and columns of a sparsity pattern
(e.g., of the jacobian of a set of equations w.r.t. a set of unknowns) in
block-lower-triangular (BLT) form, i.e.,

.. math::
    P A Q = \begin{bmatrix}
        A_{11} & 0 & \dots & 0 \\
        A_{21} & A_{22} & \dots & 0 \\
        \vdots & & \ddots & \vdots \\
        A_{N1} & A_{N2} & \dots & A_{NN}
    \end{bmatrix},

so that the equations of block :math:`k` only depend on the unknowns of blocks
:math:`1, \dots, k` and can be solved block after block.

The decomposition is computed in two stages. The coarse one splits the pattern, by
means of a maximum bipartite matching, into an over-determined part (more equations
than unknowns), a well-determined square part and an under-determined part (more
unknowns than equations). The fine one splits the square part into its strongly
connected components, sorted topologically. See :cite:`pothen_computing_1990`."""

from collections import deque
from heapq import heapify, heappop, heappush
from typing import NamedTuple

import numpy as np
import numpy.typing as npt
from scipy import sparse as sps
from scipy.sparse.csgraph import connected_components, maximum_bipartite_matching

COARSE_PARTS = ("overdetermined", "welldetermined", "underdetermined", "singular")
"""Names of the four parts of the coarse decomposition (see
:meth:`BltResult.coarse`)."""


class BltResult(NamedTuple):
    """Result of the Dulmage-Mendelsohn decomposition of an ``m x n`` pattern."""

    rowperm: npt.NDArray[np.int_]
    """Row permutation, i.e., the ``i``-th row of the permuted pattern is the row
    ``rowperm[i]`` of the original one. A bijection on ``range(m)``."""

    colperm: npt.NDArray[np.int_]
    """Column permutation, i.e., the ``j``-th column of the permuted pattern is the
    column ``colperm[j]`` of the original one. A bijection on ``range(n)``."""

    rowblock: npt.NDArray[np.int_]
    """Row boundaries of the blocks: block ``k`` spans the permuted rows
    ``rowblock[k]`` to ``rowblock[k + 1] - 1``."""

    colblock: npt.NDArray[np.int_]
    """Column boundaries of the blocks: block ``k`` spans the permuted columns
    ``colblock[k]`` to ``colblock[k + 1] - 1``."""

    nb: int
    """Number of blocks."""

    coarse_rowblock: npt.NDArray[np.int_]
    """Five row boundaries of the coarse decomposition, delimiting (in permuted order)
    the matched over-determined rows, the unmatched rows, the well-determined rows and
    the under-determined rows."""

    coarse_colblock: npt.NDArray[np.int_]
    """Five column boundaries of the coarse decomposition, delimiting (in permuted
    order) the over-determined columns, the well-determined columns, the matched
    under-determined columns and the unmatched columns."""

    def block(self, k: int) -> tuple[range, range]:
        """Gets the ranges of permuted rows and columns of the ``k``-th block."""
        if not 0 <= k < self.nb:
            raise IndexError(f"Block index {k} out of range for {self.nb} blocks.")
        return (
            range(self.rowblock[k], self.rowblock[k + 1]),
            range(self.colblock[k], self.colblock[k + 1]),
        )

    def is_square(self, k: int) -> bool:
        """Gets whether the ``k``-th block has as many rows as columns."""
        rows, cols = self.block(k)
        return len(rows) == len(cols)

    def welldetermined_block(self, k: int) -> tuple[range, range]:
        """Gets the ranges of permuted rows and columns of the ``k``-th block that also
        belong to the well-determined part of the coarse decomposition. These are empty
        for the over- and under-determined blocks, and form a square block otherwise,
        even when the ``k``-th block has absorbed a neighbouring part with no rows or no
        columns."""
        rows, cols = self.block(k)
        wrows, wcols = self.coarse("welldetermined")
        return _intersect(rows, wrows), _intersect(cols, wcols)

    def coarse(self, part: str) -> tuple[range, range]:
        """Gets the ranges of permuted rows and columns of one of the four parts of the
        coarse decomposition.

        Parameters
        ----------
        part : {"overdetermined", "welldetermined", "underdetermined", "singular"}
            The part to retrieve. The over-determined part contains all rows and columns
            reachable from unmatched rows via alternating paths (unmatched rows
            included), the under-determined one those reachable from unmatched columns
            (unmatched columns included), and the well-determined part the rest. The
            singular part collects only the unmatched rows and columns, i.e., the
            structural surplus of equations and unknowns.

        Returns
        -------
        tuple of 2 ranges
            The permuted row and column ranges of the part.

        Raises
        ------
        ValueError
            Raises if ``part`` is not recognized.
        """
        r, c = self.coarse_rowblock, self.coarse_colblock
        if part == "overdetermined":
            return range(r[0], r[2]), range(c[0], c[1])
        if part == "welldetermined":
            return range(r[2], r[3]), range(c[1], c[2])
        if part == "underdetermined":
            return range(r[3], r[4]), range(c[2], c[4])
        if part == "singular":
            return range(r[1], r[2]), range(c[3], c[4])
        raise ValueError(f"Unknown coarse part '{part}'.")

    @property
    def structural_rank(self) -> int:
        """Gets the structural rank of the pattern, i.e., the size of the maximum
        matching."""
        r, c = self.coarse_rowblock, self.coarse_colblock
        return int((r[1] - r[0]) + (r[3] - r[2]) + (c[3] - c[2]))


def _intersect(a: range, b: range) -> range:
    start = max(a.start, b.start)
    return range(start, max(start, min(a.stop, b.stop)))


def _alternating_reach(
    start: npt.NDArray[np.int_], adj: sps.csr_matrix, match: npt.NDArray[np.int_]
) -> tuple[npt.NDArray[np.bool_], npt.NDArray[np.bool_]]:
    """Internal utility to find, via breadth-first search, the nodes reachable from the
    ``start`` nodes along alternating paths. Neighbours are found via ``adj``, whose
    rows are the nodes on the side of ``start``; the search returns to that side
    through the ``match`` of each neighbour."""
    this, other = adj.shape
    seen_this = np.zeros(this, dtype=bool)
    seen_other = np.zeros(other, dtype=bool)
    seen_this[start] = True
    queue = deque(start.tolist())
    indptr, indices = adj.indptr, adj.indices
    while queue:
        u = queue.popleft()
        for v in indices[indptr[u] : indptr[u + 1]]:
            if seen_other[v]:
                continue
            seen_other[v] = True
            w = match[v]
            if w >= 0 and not seen_this[w]:
                seen_this[w] = True
                queue.append(w)
    return seen_this, seen_other


def _topological_components(
    graph: sps.csr_matrix,
) -> list[npt.NDArray[np.int_]]:
    """Internal utility to compute the strongly connected components of a directed
    graph, ordered so that a component comes after all the components it has edges to.
    Ties are broken by the smallest node index of each component."""
    n = graph.shape[0]
    if n == 0:
        return []
    ncomp, labels = connected_components(graph, directed=True, connection="strong")
    members: list[list[int]] = [[] for _ in range(ncomp)]
    for node in range(n):
        members[labels[node]].append(node)

    coo = graph.tocoo()
    src, dst = labels[coo.row], labels[coo.col]
    mask = src != dst
    deps: list[set[int]] = [set() for _ in range(ncomp)]
    dependants: list[set[int]] = [set() for _ in range(ncomp)]
    for s, d in zip(src[mask].tolist(), dst[mask].tolist()):
        deps[s].add(d)
        dependants[d].add(s)

    missing = [len(d) for d in deps]
    ready = [(members[c][0], c) for c in range(ncomp) if missing[c] == 0]
    heapify(ready)
    order: list[npt.NDArray[np.int_]] = []
    while ready:
        _, c = heappop(ready)
        order.append(np.asarray(members[c], dtype=int))
        for d in dependants[c]:
            missing[d] -= 1
            if missing[d] == 0:
                heappush(ready, (members[d][0], d))
    if len(order) != ncomp:
        raise RuntimeError("Condensation of the graph is not acyclic.")
    return order


def dulmage_mendelsohn(pattern: sps.spmatrix) -> BltResult:
    """Computes the Dulmage-Mendelsohn decomposition of a sparsity pattern, and returns
    the permutations that bring it in block-lower-triangular form.

    Parameters
    ----------
    pattern : scipy sparse matrix or array
        An ``m x n`` matrix whose structural nonzeros define the pattern, e.g., rows are
        equations and columns are unknowns. Values are irrelevant.

    Returns
    -------
    BltResult
        The decomposition. The over-determined part (if any) forms the first block,
        followed by the strongly connected components of the well-determined part (each
        a square block), and lastly by the under-determined part (if any). Parts with
        no rows or no columns are merged with their neighbouring block, so that the
        block boundaries are strictly increasing unless the pattern itself is empty
        along one dimension. Such a merged block is not structurally regular, even if
        it may be square: use :meth:`BltResult.welldetermined_block` to get its regular
        part.
    """
    A = sps.csr_matrix(pattern, dtype=float)
    A.data[:] = 1.0
    A.sum_duplicates()
    m, n = A.shape

    # maximum matching, from both sides
    if m > 0 and n > 0:
        row_match = np.asarray(
            maximum_bipartite_matching(A, perm_type="column"), dtype=int
        )
    else:
        row_match = np.full(m, -1, dtype=int)
    col_match = np.full(n, -1, dtype=int)
    matched_rows = np.flatnonzero(row_match >= 0)
    col_match[row_match[matched_rows]] = matched_rows

    # coarse decomposition via alternating paths from unmatched rows and columns
    unmatched_rows = np.flatnonzero(row_match < 0)
    unmatched_cols = np.flatnonzero(col_match < 0)
    over_rows, over_cols = _alternating_reach(unmatched_rows, A, col_match)
    under_cols, under_rows = _alternating_reach(
        unmatched_cols, A.transpose().tocsr(), row_match
    )
    square_rows = np.flatnonzero(~over_rows & ~under_rows)

    # over-determined part: matched rows (paired with their columns), then unmatched
    over_matched = np.flatnonzero(over_rows & (row_match >= 0))
    over_unmatched = np.flatnonzero(over_rows & (row_match < 0))
    rows_over = np.concatenate((over_matched, over_unmatched))
    cols_over = row_match[over_matched]

    # under-determined part: rows paired with their columns, then unmatched columns
    rows_under = np.flatnonzero(under_rows)
    cols_under = np.concatenate(
        (row_match[rows_under], np.flatnonzero(under_cols & (col_match < 0)))
    )

    # fine decomposition of the square part: row i depends on row j if it references
    # the column matched to row j
    Asq = A[square_rows][:, row_match[square_rows]]
    components = _topological_components(sps.csr_matrix(Asq))

    rowperm_parts = [rows_over]
    colperm_parts = [cols_over]
    blocks: list[tuple[int, int]] = []
    if rows_over.size or cols_over.size:
        blocks.append((rows_over.size, cols_over.size))
    for comp in components:
        rows = square_rows[comp]
        rowperm_parts.append(rows)
        colperm_parts.append(row_match[rows])
        blocks.append((rows.size, rows.size))
    rowperm_parts.append(rows_under)
    colperm_parts.append(cols_under)
    if rows_under.size or cols_under.size:
        blocks.append((rows_under.size, cols_under.size))

    # merge blocks that are empty along one dimension with their neighbours
    if len(blocks) > 1 and blocks[0][1] == 0:
        blocks[1] = (blocks[0][0] + blocks[1][0], blocks[1][1])
        del blocks[0]
    if len(blocks) > 1 and blocks[-1][0] == 0:
        blocks[-2] = (blocks[-2][0], blocks[-2][1] + blocks[-1][1])
        del blocks[-1]

    rowperm = np.concatenate(rowperm_parts).astype(int)
    colperm = np.concatenate(colperm_parts).astype(int)
    rowblock = np.concatenate(([0], np.cumsum([b[0] for b in blocks]))).astype(int)
    colblock = np.concatenate(([0], np.cumsum([b[1] for b in blocks]))).astype(int)

    k1 = over_matched.size
    k2 = rows_over.size - k1
    s = square_rows.size
    k3 = rows_under.size
    coarse_rowblock = np.asarray([0, k1, k1 + k2, k1 + k2 + s, m], dtype=int)
    coarse_colblock = np.asarray([0, k1, k1 + s, k1 + s + k3, n], dtype=int)
    return BltResult(
        rowperm,
        colperm,
        rowblock,
        colblock,
        len(blocks),
        coarse_rowblock,
        coarse_colblock,
    )
