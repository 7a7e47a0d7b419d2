"""Compressed Sparse Row Representation.

CSR stores a matrix as three parallel Buffers:

    data     complex128  non-zero values, row by row
    indices  int64       column index of each value
    indptr   int64       row offsets; row i spans data[indptr[i]:indptr[i+1]]

Layout invariants (checked at construction, InvalidBufferError on failure):
    - len(indptr) == rows + 1
    - indptr[0] == 0, indptr non-decreasing, indptr[-1] == len(data)
    - len(indices) == len(data)
    - 0 <= indices < cols, strictly increasing within each row

Arithmetic goes through scipy.sparse, reading the Buffers without copying.

Example:
    >>> mat = CSR(([1.0, 2.0], [0, 1], [0, 1, 2]), shape=(2, 2))
    >>> mat.nnz
    2
    >>> CSR.from_scipy(scipy.sparse.eye(3)).shape
    (3, 3)
"""

from numbers import Number
from typing import Any, Optional, Tuple, TYPE_CHECKING

import numpy as np
import scipy.sparse as sp

from .._errors import InvalidBufferError, UnsupportedTypeError
from ._base import Data
from ._buffer import Buffer

if TYPE_CHECKING:
    from ._dense import Dense

__all__ = ['CSR']

DTYPE = np.complex128
INDEX_DTYPE = np.int64


class CSR(Data):
    """Compressed sparse row matrix backed by three Buffers.

    Args:
        arg: ``(data, indices, indptr)`` tuple, a scipy sparse matrix, or
            another CSR (always copied).
        shape: Matrix dimensions; required for the tuple form.
        copy: Copy caller arrays (True) or adopt them (False). Adopted
            arrays must already have the storage dtypes and sorted indices.
            scipy input is always copied.
    """

    __slots__ = ('_data', '_indices', '_indptr')

    def __init__(
        self,
        arg: Any,
        shape: Optional[Tuple[int, int]] = None,
        copy: bool = True,
    ):
        if isinstance(arg, CSR):
            # Buffers have a single owner, so another CSR is always copied.
            source = arg.copy()
            super().__init__(source.shape)
            self._data, self._indices, self._indptr = source.buffers
            return

        if sp.issparse(arg):
            built = CSR._from_scipy(arg, copy=True)
            super().__init__(built.shape)
            self._data, self._indices, self._indptr = built.buffers
            return

        if shape is None:
            raise ValueError("shape is required when constructing CSR from arrays")
        try:
            data, indices, indptr = arg
        except (TypeError, ValueError) as e:
            raise TypeError("CSR expects (data, indices, indptr) or a scipy sparse matrix") from e

        super().__init__(shape)
        rows = self.shape[0]
        data_buf = self._make_buffer(data, DTYPE, None, copy)
        indices_buf = self._make_buffer(indices, INDEX_DTYPE, data_buf.size, copy)
        indptr_buf = self._make_buffer(indptr, INDEX_DTYPE, rows + 1, copy)
        self._validate(data_buf, indices_buf, indptr_buf)

        if not _is_canonical(indices_buf.storage, indptr_buf.storage):
            if not copy:
                raise InvalidBufferError(
                    "Adopted CSR storage must have strictly increasing indices in each row"
                )
            canonical = CSR._from_scipy(self._as_scipy_from(data_buf, indices_buf, indptr_buf),
                                        copy=False)
            data_buf, indices_buf, indptr_buf = canonical.buffers

        self._data = data_buf
        self._indices = indices_buf
        self._indptr = indptr_buf

    @staticmethod
    def _make_buffer(values: Any, dtype, size: Optional[int], copy: bool) -> Buffer:
        if isinstance(values, Buffer):
            if values.dtype != np.dtype(dtype):
                raise InvalidBufferError(f"CSR buffer must be {np.dtype(dtype)}, got {values.dtype}")
            if size is not None and values.size != size:
                raise InvalidBufferError(
                    f"Buffer size mismatch: expected {size}, got {values.size}"
                )
            return values.copy() if copy else values
        if not copy and isinstance(values, np.ndarray):
            return Buffer(values, size=size, dtype=dtype, copy=False)
        return Buffer(values, size=size, dtype=dtype, copy=True)

    def _validate(self, data: Buffer, indices: Buffer, indptr: Buffer) -> None:
        rows, cols = self.shape
        ptr = indptr.storage
        if ptr[0] != 0:
            raise InvalidBufferError(f"indptr must start at 0, got {ptr[0]}")
        if ptr[-1] != data.size:
            raise InvalidBufferError(
                f"indptr must end at nnz={data.size}, got {ptr[-1]}"
            )
        if rows and np.any(np.diff(ptr) < 0):
            raise InvalidBufferError("indptr must be non-decreasing")
        idx = indices.storage
        if idx.size and (idx.min() < 0 or idx.max() >= cols):
            raise InvalidBufferError(f"column indices out of range [0, {cols})")

    # =========================================================================
    # scipy Interop
    # =========================================================================

    @classmethod
    def _from_scipy(cls, mat: Any, copy: bool) -> 'CSR':
        mat = sp.csr_matrix(mat, dtype=DTYPE, copy=copy)
        mat.sum_duplicates()
        out = cls.__new__(cls)
        Data.__init__(out, mat.shape)
        out._data = Buffer(np.ascontiguousarray(mat.data, dtype=DTYPE), copy=False)
        out._indices = Buffer(np.ascontiguousarray(mat.indices, dtype=INDEX_DTYPE), copy=False)
        out._indptr = Buffer(np.ascontiguousarray(mat.indptr, dtype=INDEX_DTYPE), copy=False)
        return out

    @classmethod
    def from_scipy(cls, mat: Any) -> 'CSR':
        """Create CSR from any scipy sparse matrix (always copies)."""
        if not sp.issparse(mat):
            raise TypeError(f"Expected scipy sparse matrix, got {type(mat).__name__}")
        return cls._from_scipy(mat, copy=True)

    def _as_scipy_from(self, data: Buffer, indices: Buffer, indptr: Buffer) -> sp.csr_matrix:
        return sp.csr_matrix(
            (data.storage, indices.storage, indptr.storage),
            shape=self.shape,
            copy=False,
        )

    def as_scipy(self) -> sp.csr_matrix:
        """scipy view over the Buffers, for reading inside computations."""
        mat = self._as_scipy_from(self._data, self._indices, self._indptr)
        mat.has_sorted_indices = True
        return mat

    def to_scipy(self) -> sp.csr_matrix:
        """Convert to an independent scipy.sparse.csr_matrix."""
        return self.as_scipy().copy()

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def zeros(cls, rows: int, cols: int) -> 'CSR':
        return cls(
            (np.zeros(0, dtype=DTYPE), np.zeros(0, dtype=INDEX_DTYPE),
             np.zeros(rows + 1, dtype=INDEX_DTYPE)),
            shape=(rows, cols),
            copy=False,
        )

    @classmethod
    def identity(cls, n: int, scale: Number = 1) -> 'CSR':
        if scale == 0:
            return cls.zeros(n, n)
        return cls(
            (np.full(n, scale, dtype=DTYPE), np.arange(n, dtype=INDEX_DTYPE),
             np.arange(n + 1, dtype=INDEX_DTYPE)),
            shape=(n, n),
            copy=False,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def nnz(self) -> int:
        """Number of stored elements."""
        return self._data.size

    @property
    def density(self) -> float:
        return self.nnz / self.size if self.size else 0.0

    @property
    def buffers(self) -> Tuple[Buffer, Buffer, Buffer]:
        """(data, indices, indptr) Buffers."""
        return self._data, self._indices, self._indptr

    @property
    def data_buffer(self) -> Buffer:
        return self._data

    @property
    def indices_buffer(self) -> Buffer:
        return self._indices

    @property
    def indptr_buffer(self) -> Buffer:
        return self._indptr

    # =========================================================================
    # Mandatory Interface
    # =========================================================================

    @classmethod
    def from_reference(cls, ref: 'Dense') -> 'CSR':
        return cls._from_scipy(sp.csr_matrix(ref.as_ndarray()), copy=False)

    def to_reference(self) -> 'Dense':
        from ._dense import Dense
        return Dense._wrap(self.as_scipy().toarray())

    def copy(self) -> 'CSR':
        out = CSR.__new__(CSR)
        Data.__init__(out, self.shape)
        out._data = self._data.copy()
        out._indices = self._indices.copy()
        out._indptr = self._indptr.copy()
        return out

    def mul(self, scalar: Number) -> 'CSR':
        if scalar == 0:
            return CSR.zeros(*self.shape)
        out = self.copy()
        out._data = Buffer(self._data.storage * scalar, dtype=DTYPE, copy=False)
        return out

    def matmul(self, other: 'CSR') -> 'CSR':
        _check_csr(other, "matmul")
        self._check_matmul_shape(other)
        return CSR._from_scipy(self.as_scipy() @ other.as_scipy(), copy=False)

    def add(self, other: 'CSR') -> 'CSR':
        _check_csr(other, "add")
        self._check_same_shape(other, "add")
        return CSR._from_scipy(self.as_scipy() + other.as_scipy(), copy=False)

    def equal(self, other: 'CSR', atol: float) -> bool:
        _check_csr(other, "equal")
        if self.shape != other.shape:
            return False
        diff = self.as_scipy() - other.as_scipy()
        return bool(diff.nnz == 0 or np.all(np.abs(diff.data) <= atol))

    def __repr__(self) -> str:
        return f"CSR(shape={self.shape}, nnz={self.nnz})"


def _check_csr(other: Any, operation: str) -> None:
    if not isinstance(other, CSR):
        raise UnsupportedTypeError(
            f"CSR.{operation} expects CSR, got {type(other).__name__}"
        )


def _is_canonical(indices: np.ndarray, indptr: np.ndarray) -> bool:
    """Whether column indices strictly increase within every row."""
    nnz = indices.size
    if nnz < 2:
        return True
    bad = np.diff(indices) <= 0
    starts = indptr[1:-1]
    starts = starts[(starts > 0) & (starts < nnz)]
    bad[starts - 1] = False
    return not bool(bad.any())
