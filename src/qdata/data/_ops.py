"""Built-in Operations.

Each operation is a Dispatcher whose reference implementation works on
Dense. CSR specialisations are registered where scipy offers a native
sparse path; the rest (ptrace, mixed-type products) run through the
fallback.

Implementations are plain module-level functions so accelerated code can
call them directly without going through dispatch:

    >>> from qdata.data._ops import kron_csr, adjoint_csr
    >>> pair = kron_csr(adjoint_csr(a), a)

Operations:
    add, sub, mul, neg, matmul, kron, equal,
    conj, transpose, adjoint, trace, expm, pow, ptrace,
    frobenius_norm, isherm
"""

from functools import reduce
from numbers import Integral
from operator import mul as _mul
from typing import Sequence

import numpy as np
import scipy.linalg
import scipy.sparse as sp
import scipy.sparse.linalg

from .._config import config
from ._csr import CSR
from ._dense import Dense
from ._dispatch import define_operation

__all__ = [
    'add', 'sub', 'mul', 'neg', 'matmul', 'kron', 'equal',
    'conj', 'transpose', 'adjoint', 'trace', 'expm', 'pow', 'ptrace',
    'frobenius_norm', 'isherm',
]


def _check_square(matrix, operation: str) -> None:
    if not matrix.is_square:
        raise ValueError(f"{operation} requires a square matrix, got shape {matrix.shape}")


def _check_power(n) -> int:
    if not isinstance(n, Integral) or n < 0:
        raise ValueError(f"matrix power must be a non-negative integer, got {n!r}")
    return int(n)


# =============================================================================
# Dense (Reference) Implementations
# =============================================================================

def sub_dense(left: Dense, right: Dense) -> Dense:
    left._check_same_shape(right, "sub")
    return Dense._wrap(left.as_ndarray() - right.as_ndarray())


def neg_dense(matrix: Dense) -> Dense:
    return Dense._wrap(-matrix.as_ndarray())


def kron_dense(left: Dense, right: Dense) -> Dense:
    return Dense._wrap(np.kron(left.as_ndarray(), right.as_ndarray()))


def conj_dense(matrix: Dense) -> Dense:
    return Dense._wrap(matrix.as_ndarray().conj())


def transpose_dense(matrix: Dense) -> Dense:
    return Dense._wrap(matrix.as_ndarray().T)


def adjoint_dense(matrix: Dense) -> Dense:
    return Dense._wrap(matrix.as_ndarray().T.conj())


def trace_dense(matrix: Dense) -> complex:
    _check_square(matrix, "trace")
    return complex(np.trace(matrix.as_ndarray()))


def expm_dense(matrix: Dense) -> Dense:
    _check_square(matrix, "expm")
    return Dense._wrap(scipy.linalg.expm(matrix.as_ndarray()))


def pow_dense(matrix: Dense, n: int) -> Dense:
    _check_square(matrix, "pow")
    return Dense._wrap(np.linalg.matrix_power(matrix.as_ndarray(), _check_power(n)))


def ptrace_dense(matrix: Dense, dims: Sequence[int], sel: Sequence[int]) -> Dense:
    """Partial trace keeping the subsystems ``sel`` of a square operator.

    Args:
        matrix: Operator on the tensor product space with subsystem sizes ``dims``.
        dims: Subsystem dimensions; their product must equal the matrix size.
        sel: Indices of the subsystems to keep, in any order.
    """
    _check_square(matrix, "ptrace")
    dims = [int(d) for d in dims]
    if reduce(_mul, dims, 1) != matrix.rows:
        raise ValueError(f"dims {dims} do not match operator of shape {matrix.shape}")
    keep = sorted(set(int(s) for s in sel))
    if any(s < 0 or s >= len(dims) for s in keep):
        raise ValueError(f"selection {list(sel)} out of range for {len(dims)} subsystems")
    rest = [i for i in range(len(dims)) if i not in keep]
    n = len(dims)

    tensor = matrix.as_ndarray().reshape(dims + dims)
    perm = keep + rest + [n + i for i in keep] + [n + i for i in rest]
    kept = reduce(_mul, (dims[i] for i in keep), 1)
    traced = reduce(_mul, (dims[i] for i in rest), 1)
    tensor = tensor.transpose(perm).reshape(kept, traced, kept, traced)
    return Dense._wrap(np.einsum('ajbj->ab', tensor))


def frobenius_norm_dense(matrix: Dense) -> float:
    return float(np.linalg.norm(matrix.as_ndarray()))


def isherm_dense(matrix: Dense, tol: float) -> bool:
    if not matrix.is_square:
        return False
    arr = matrix.as_ndarray()
    return bool(np.allclose(arr, arr.T.conj(), rtol=0, atol=tol))


# =============================================================================
# CSR Specialisations
# =============================================================================

def sub_csr(left: CSR, right: CSR) -> CSR:
    left._check_same_shape(right, "sub")
    return CSR._from_scipy(left.as_scipy() - right.as_scipy(), copy=False)


def neg_csr(matrix: CSR) -> CSR:
    return matrix.mul(-1)


def kron_csr(left: CSR, right: CSR) -> CSR:
    return CSR._from_scipy(sp.kron(left.as_scipy(), right.as_scipy(), format='csr'), copy=False)


def conj_csr(matrix: CSR) -> CSR:
    out = matrix.copy()
    data = out.data_buffer.storage
    np.conjugate(data, out=data)
    return out


def transpose_csr(matrix: CSR) -> CSR:
    return CSR._from_scipy(matrix.as_scipy().transpose().tocsr(), copy=False)


def adjoint_csr(matrix: CSR) -> CSR:
    return conj_csr(transpose_csr(matrix))


def trace_csr(matrix: CSR) -> complex:
    _check_square(matrix, "trace")
    return complex(matrix.as_scipy().diagonal().sum())


def expm_csr(matrix: CSR) -> CSR:
    _check_square(matrix, "expm")
    if matrix.rows == 0:
        return CSR.zeros(0, 0)
    if matrix.nnz == 0:
        return CSR.identity(matrix.rows)
    result = scipy.sparse.linalg.expm(matrix.as_scipy().tocsc())
    return CSR._from_scipy(result, copy=False)


def pow_csr(matrix: CSR, n: int) -> CSR:
    _check_square(matrix, "pow")
    n = _check_power(n)
    result = CSR.identity(matrix.rows)
    base = matrix
    # Square-and-multiply over the mandatory same-type product.
    while n:
        if n & 1:
            result = result.matmul(base)
        n >>= 1
        if n:
            base = base.matmul(base)
    return result


def frobenius_norm_csr(matrix: CSR) -> float:
    return float(np.linalg.norm(matrix.data_buffer.storage))


def isherm_csr(matrix: CSR, tol: float) -> bool:
    if not matrix.is_square:
        return False
    diff = matrix.as_scipy() - matrix.as_scipy().conj().transpose()
    return bool(diff.nnz == 0 or np.all(np.abs(diff.data) <= tol))


# =============================================================================
# Operation Definitions
# =============================================================================

def _atol():
    return config.compute.atol


add = define_operation(
    'add', 2, Dense.add, mandatory='add',
    doc="Element-wise sum of two matrices of equal shape.",
)
sub = define_operation(
    'sub', 2, sub_dense,
    doc="Element-wise difference of two matrices of equal shape.",
)
mul = define_operation(
    'mul', 1, Dense.mul, mandatory='mul',
    doc="Multiply a matrix by a scalar: mul(matrix, scalar).",
)
neg = define_operation('neg', 1, neg_dense, doc="Negate a matrix.")
matmul = define_operation(
    'matmul', 2, Dense.matmul, mandatory='matmul',
    doc="Matrix product.",
)
kron = define_operation('kron', 2, kron_dense, doc="Kronecker (tensor) product.")
equal = define_operation(
    'equal', 2, Dense.equal, output=False, mandatory='equal',
    defaults={'atol': _atol},
    doc="Element-wise equality within atol (default config.compute.atol).",
)
conj = define_operation('conj', 1, conj_dense, doc="Element-wise complex conjugate.")
transpose = define_operation('transpose', 1, transpose_dense, doc="Transpose.")
adjoint = define_operation('adjoint', 1, adjoint_dense, doc="Conjugate transpose.")
trace = define_operation('trace', 1, trace_dense, output=False, doc="Trace of a square matrix.")
expm = define_operation('expm', 1, expm_dense, doc="Matrix exponential.")
pow = define_operation('pow', 1, pow_dense, doc="Non-negative integer matrix power: pow(matrix, n).")
ptrace = define_operation(
    'ptrace', 1, ptrace_dense,
    doc="Partial trace: ptrace(matrix, dims, sel).",
)
frobenius_norm = define_operation(
    'frobenius_norm', 1, frobenius_norm_dense, output=False,
    doc="Frobenius norm.",
)
isherm = define_operation(
    'isherm', 1, isherm_dense, output=False,
    defaults={'tol': _atol},
    doc="Whether a matrix is Hermitian within tol.",
)

sub.register((CSR, CSR), sub_csr)
neg.register((CSR,), neg_csr)
kron.register((CSR, CSR), kron_csr)
conj.register((CSR,), conj_csr)
transpose.register((CSR,), transpose_csr)
adjoint.register((CSR,), adjoint_csr)
trace.register((CSR,), trace_csr)
expm.register((CSR,), expm_csr)
pow.register((CSR,), pow_csr)
frobenius_norm.register((CSR,), frobenius_norm_csr)
isherm.register((CSR,), isherm_csr)
