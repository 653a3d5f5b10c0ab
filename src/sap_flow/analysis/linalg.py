"""Small dense linear algebra on nested lists.

Enough for ordinary least squares via the normal equations,
``beta = (X^T X)^-1 X^T y``, on the handful of columns the regression uses.
Inversion is Gauss-Jordan elimination with partial pivoting; a pivot below
``PIVOT_EPSILON`` raises :class:`SingularMatrixError` instead of returning an
unstable inverse.
"""

from __future__ import annotations

Matrix = list[list[float]]
Vector = list[float]

PIVOT_EPSILON = 1e-10


class LinAlgError(ArithmeticError):
    """Base class for failures the regression must handle."""


class SingularMatrixError(LinAlgError):
    """The matrix has no numerically stable inverse."""


class UnderdeterminedError(LinAlgError):
    """Fewer observations than unknowns."""


def transpose(a: Matrix) -> Matrix:
    """Rows become columns."""
    if not a:
        return []
    return [list(col) for col in zip(*a, strict=True)]


def matmul(a: Matrix, b: Matrix) -> Matrix:
    """Matrix product ``a @ b``."""
    inner = len(b)
    if a and len(a[0]) != inner:
        msg = f"Shape mismatch: {len(a)}x{len(a[0])} @ {inner}x{len(b[0]) if b else 0}"
        raise ValueError(msg)
    cols = len(b[0]) if b else 0
    return [[sum(row[k] * b[k][j] for k in range(inner)) for j in range(cols)] for row in a]


def mat_vec(a: Matrix, v: Vector) -> Vector:
    """Matrix-vector product ``a @ v``."""
    return [sum(x * y for x, y in zip(row, v, strict=True)) for row in a]


def identity(n: int) -> Matrix:
    """``n`` x ``n`` identity matrix."""
    return [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]


def invert(a: Matrix) -> Matrix:
    """Inverse of a square matrix.

    Raises:
        SingularMatrixError: If any pivot is smaller than ``PIVOT_EPSILON``.
    """
    n = len(a)
    aug = [list(map(float, row)) + ident for row, ident in zip(a, identity(n), strict=True)]

    for col in range(n):
        pivot = max(range(col, n), key=lambda r: abs(aug[r][col]))
        aug[col], aug[pivot] = aug[pivot], aug[col]

        div = aug[col][col]
        if abs(div) < PIVOT_EPSILON:
            msg = f"Singular matrix: pivot {div!r} in column {col}"
            raise SingularMatrixError(msg)
        aug[col] = [x / div for x in aug[col]]

        for row in range(n):
            if row == col:
                continue
            factor = aug[row][col]
            if factor == 0:
                continue
            aug[row] = [x - factor * p for x, p in zip(aug[row], aug[col], strict=True)]

    return [row[n:] for row in aug]


def least_squares(x: Matrix, y: Vector) -> Vector:
    """Ordinary least squares coefficients via the normal equations.

    Args:
        x: Design matrix, one row per observation (include the intercept column).
        y: Observations.

    Raises:
        UnderdeterminedError: If ``x`` has fewer rows than columns.
        SingularMatrixError: If ``X^T X`` cannot be inverted.
    """
    n = len(x)
    p = len(x[0]) if x else 0
    if n == 0 or n < p:
        msg = f"Need at least as many rows as columns (rows={n}, columns={p})"
        raise UnderdeterminedError(msg)

    xt = transpose(x)
    xtx_inv = invert(matmul(xt, x))
    return mat_vec(xtx_inv, mat_vec(xt, y))
