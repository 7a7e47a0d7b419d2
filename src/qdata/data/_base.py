"""
Data Representation Base Class

This module defines the abstract base class every concrete matrix
representation derives from. It is deliberately small: the abstract
methods below are the whole contract a new representation must satisfy
to be usable everywhere in qdata. Every other operation is available to
it through the dispatcher's fallback path, which converts to the
reference representation (Dense), computes there, and converts back.

Type Hierarchy:

    Data (ABC)
    ├── Dense  - row-major complex array (reference representation)
    └── CSR    - compressed sparse row (values, column indices, row offsets)

Mandatory Interface:

    from_reference(ref)   classmethod, build from a Dense
    to_reference()        convert to Dense
    copy()                deep copy
    mul(scalar)           scalar multiplication
    matmul(other)         same-type matrix product
    add(other)            same-type sum
    equal(other, atol)    same-type equality test

Adding to this list raises the cost of writing a representation. Extended
operations belong in the dispatcher as accelerated implementations.
"""

from abc import ABC, abstractmethod
from numbers import Number
from typing import Tuple, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from ._dense import Dense

__all__ = [
    'Data',
    'MANDATORY_METHODS',
]


MANDATORY_METHODS = (
    'from_reference',
    'to_reference',
    'copy',
    'mul',
    'matmul',
    'add',
    'equal',
)


class Data(ABC):
    """
    Abstract base class for all data representations.

    Holds the immutable shape; concrete classes hold the Buffers.

    Example:

        class Diagonal(Data):
            def __init__(self, diag):
                self._diag = Buffer(diag, dtype=np.complex128)
                super().__init__((len(diag), len(diag)))

            @classmethod
            def from_reference(cls, ref):
                return cls(np.diag(ref.to_array()))

            # ... remaining mandatory methods
    """

    __slots__ = ('_shape',)

    def __init__(self, shape: Tuple[int, int]):
        shape = tuple(shape)
        if len(shape) != 2:
            raise ValueError(f"Data shape must be (rows, cols), got {shape}")
        rows, cols = shape
        if not isinstance(rows, (int, np.integer)) or not isinstance(cols, (int, np.integer)):
            raise TypeError(f"Shape entries must be integers, got {shape}")
        if rows < 0 or cols < 0:
            raise ValueError(f"Invalid shape: {shape}")
        self._shape = (int(rows), int(cols))

    # =========================================================================
    # Mandatory Interface
    # =========================================================================

    @classmethod
    @abstractmethod
    def from_reference(cls, ref: 'Dense') -> 'Data':
        """Build an instance of this representation from a Dense."""
        ...

    @abstractmethod
    def to_reference(self) -> 'Dense':
        """Convert to the reference representation (Dense)."""
        ...

    @abstractmethod
    def copy(self) -> 'Data':
        """Create a deep copy; the copy owns fresh Buffers."""
        ...

    @abstractmethod
    def mul(self, scalar: Number) -> 'Data':
        """Multiply by a scalar."""
        ...

    @abstractmethod
    def matmul(self, other: 'Data') -> 'Data':
        """Matrix product with another instance of the same representation."""
        ...

    @abstractmethod
    def add(self, other: 'Data') -> 'Data':
        """Sum with another instance of the same representation."""
        ...

    @abstractmethod
    def equal(self, other: 'Data', atol: float) -> bool:
        """Element-wise equality within ``atol`` against the same representation."""
        ...

    # =========================================================================
    # Derived Properties
    # =========================================================================

    @property
    def shape(self) -> Tuple[int, int]:
        """Matrix dimensions (rows, cols)."""
        return self._shape

    @property
    def rows(self) -> int:
        return self._shape[0]

    @property
    def cols(self) -> int:
        return self._shape[1]

    @property
    def size(self) -> int:
        """Total number of addressable elements (rows * cols)."""
        return self._shape[0] * self._shape[1]

    @property
    def ndim(self) -> int:
        return 2

    @property
    def is_square(self) -> bool:
        return self._shape[0] == self._shape[1]

    def to_array(self) -> np.ndarray:
        """Return the value as a new 2-D numpy array."""
        return self.to_reference().to_array()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_same_shape(self, other: 'Data', operation: str) -> None:
        if self._shape != other.shape:
            raise ValueError(
                f"{operation}: incompatible shapes {self._shape} and {other.shape}"
            )

    def _check_matmul_shape(self, other: 'Data') -> None:
        if self._shape[1] != other.shape[0]:
            raise ValueError(
                f"matmul: incompatible shapes {self._shape} and {other.shape}"
            )

    # =========================================================================
    # Magic Methods
    # =========================================================================

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(shape={self._shape})"

    def __len__(self) -> int:
        return self._shape[0]
