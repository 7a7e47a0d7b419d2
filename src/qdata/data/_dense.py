"""Dense Matrix Representation.

Dense stores a matrix as one row-major complex128 Buffer of
``rows * cols`` elements. It is the reference representation: every
dispatched operation has a complete Dense implementation, and every other
representation converts to and from Dense on the fallback path.

Example:
    >>> mat = Dense([[1, 0], [0, 1]])
    >>> mat.shape
    (2, 2)
    >>> mat.buffer.ownership
    <Ownership.OWNED: 'owned'>

    >>> # Adopt caller storage instead of copying it
    >>> arr = np.eye(3, dtype=np.complex128)
    >>> mat = Dense(arr, copy=False)
    >>> mat.buffer.ownership
    <Ownership.ADOPTED: 'adopted'>
"""

from numbers import Number
from typing import Any, Optional, Tuple

import numpy as np

from .._errors import InvalidBufferError, UnsupportedTypeError
from ._base import Data
from ._buffer import Buffer

__all__ = ['Dense']

DTYPE = np.complex128


class Dense(Data):
    """Row-major dense matrix backed by a single Buffer.

    Args:
        data: Array-like (scalar, 1-D column vector, or 2-D) or a Buffer.
        shape: Required when ``data`` is a Buffer or flat storage.
        copy: Copy caller data (True) or adopt it (False). Adopted storage
            must be a C-contiguous complex128 numpy array.
    """

    __slots__ = ('_buffer',)

    def __init__(
        self,
        data: Any,
        shape: Optional[Tuple[int, int]] = None,
        copy: bool = True,
    ):
        if isinstance(data, Buffer):
            if shape is None:
                raise ValueError("shape is required when constructing Dense from a Buffer")
            super().__init__(shape)
            buffer = data.copy() if copy else data
        elif data is None:
            if shape is None:
                raise ValueError("shape is required when constructing Dense without data")
            super().__init__(shape)
            buffer = Buffer(None, size=self.size, dtype=DTYPE)
        else:
            if isinstance(data, np.ndarray) and not copy:
                arr = data
            else:
                arr = np.asarray(data, dtype=DTYPE)
            super().__init__(shape if shape is not None else self._infer_shape(arr))
            buffer = Buffer(arr, size=self.size, dtype=DTYPE, copy=copy)

        if buffer.dtype != DTYPE:
            raise InvalidBufferError(f"Dense buffers must be {np.dtype(DTYPE)}, got {buffer.dtype}")
        if buffer.size != self.size:
            raise InvalidBufferError(
                f"Dense buffer holds {buffer.size} elements, shape {self.shape} needs {self.size}"
            )
        self._buffer = buffer

    @staticmethod
    def _infer_shape(arr: np.ndarray) -> Tuple[int, int]:
        if arr.ndim == 0:
            return (1, 1)
        if arr.ndim == 1:
            return (arr.shape[0], 1)
        if arr.ndim == 2:
            return arr.shape
        raise ValueError(f"Dense data must be at most 2-D, got {arr.ndim}-D")

    @classmethod
    def _wrap(cls, arr: np.ndarray) -> 'Dense':
        """Adopt a freshly computed result.

        Only arrays that own their memory are adopted as-is. Views such as
        ``.T`` of a vector or ``matrix_power(a, 1)`` may reach another
        Buffer's storage, so they are copied first.
        """
        arr = np.asarray(arr, dtype=DTYPE)
        if not (arr.flags.owndata and arr.flags.c_contiguous):
            arr = np.array(arr, dtype=DTYPE, order='C', copy=True)
        if arr.ndim != 2:
            arr = arr.reshape(cls._infer_shape(arr))
        return cls(arr, copy=False)

    @classmethod
    def from_buffer(cls, buffer: Buffer, shape: Tuple[int, int]) -> 'Dense':
        """Build on an existing Buffer, which moves into the new Dense."""
        return cls(buffer, shape=shape, copy=False)

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def zeros(cls, rows: int, cols: int) -> 'Dense':
        return cls(np.zeros((rows, cols), dtype=DTYPE), copy=False)

    @classmethod
    def identity(cls, n: int, scale: Number = 1) -> 'Dense':
        return cls._wrap(np.eye(n, dtype=DTYPE) * scale)

    # =========================================================================
    # Access
    # =========================================================================

    @property
    def buffer(self) -> Buffer:
        return self._buffer

    def as_ndarray(self) -> np.ndarray:
        """2-D view over the storage, for reading inside computations."""
        return self._buffer.storage.reshape(self.shape)

    def to_array(self) -> np.ndarray:
        return self.as_ndarray().copy()

    # =========================================================================
    # Mandatory Interface
    # =========================================================================

    @classmethod
    def from_reference(cls, ref: 'Dense') -> 'Dense':
        return ref.copy()

    def to_reference(self) -> 'Dense':
        return self

    def copy(self) -> 'Dense':
        return Dense(self._buffer.copy(), shape=self.shape, copy=False)

    def mul(self, scalar: Number) -> 'Dense':
        return Dense._wrap(self.as_ndarray() * scalar)

    def matmul(self, other: 'Dense') -> 'Dense':
        _check_dense(other, "matmul")
        self._check_matmul_shape(other)
        return Dense._wrap(self.as_ndarray() @ other.as_ndarray())

    def add(self, other: 'Dense') -> 'Dense':
        _check_dense(other, "add")
        self._check_same_shape(other, "add")
        return Dense._wrap(self.as_ndarray() + other.as_ndarray())

    def equal(self, other: 'Dense', atol: float) -> bool:
        _check_dense(other, "equal")
        if self.shape != other.shape:
            return False
        return bool(np.allclose(self.as_ndarray(), other.as_ndarray(), rtol=0, atol=atol))

    def __repr__(self) -> str:
        return f"Dense(shape={self.shape}, ownership={self._buffer.ownership.value})"


def _check_dense(other: Any, operation: str) -> None:
    if not isinstance(other, Dense):
        raise UnsupportedTypeError(
            f"Dense.{operation} expects Dense, got {type(other).__name__}"
        )
