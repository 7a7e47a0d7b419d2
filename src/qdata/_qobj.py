"""
Qobj - the quantum object.

Qobj holds exactly one data representation and forwards every
mathematical method to the dispatcher. It never looks at which concrete
representation it holds; the representation's type is only ever passed
along as the dispatch key or as a cast target. Higher-level code works
with Qobj alone and stays independent of storage.

Every operation accepts ``dtype=`` to request the output representation
(class or alias). Without it the process-wide default applies, which is
the operand's own representation unless configured otherwise.

Example:
    >>> import qdata
    >>> sx = qdata.Qobj([[0, 1], [1, 0]])
    >>> sz = qdata.Qobj([[1, 0], [0, -1]], dtype="csr")
    >>> (sx @ sz).dtype
    <class 'qdata.data._dense.Dense'>
    >>> qdata.tensor(sx, sz).dims
    [[2, 2], [2, 2]]
"""

from __future__ import annotations

from functools import reduce
from numbers import Number
from operator import mul as _mul
from typing import Any, List, Optional, Sequence, Type, Union

import numpy as np

from ._errors import UnsupportedTypeError
from .data import Data, Dense, cast, create, invoke, to_type

__all__ = ["Qobj", "tensor", "qeye"]

TypeLike = Union[str, Type[Data], None]
Dims = List[List[int]]


def _prod(values: Sequence[int]) -> int:
    return reduce(_mul, values, 1)


class Qobj:
    """
    Variant-agnostic quantum object.

    Args:
        arg: Data, Qobj, numpy array, nested list, scalar or scipy sparse matrix.
        dims: Subsystem dimensions ``[[row dims], [col dims]]``; defaults
            to ``[[rows], [cols]]``.
        dtype: Representation to store the data in (default: as created).
        copy: Copy the input (True) or take it over when possible (False).
    """

    __slots__ = ("_data", "_dims")

    def __init__(
        self,
        arg: Any = None,
        dims: Optional[Dims] = None,
        dtype: TypeLike = None,
        copy: bool = True,
    ):
        if isinstance(arg, Qobj):
            data = arg.data.copy() if copy else arg.data
            if dims is None:
                dims = arg.dims
        elif arg is None:
            data = Dense.zeros(1, 1)
        else:
            data = create(arg, copy=copy)
        if dtype is not None and type(data) is not to_type(dtype):
            data = cast(data, dtype)
        self._data = data
        self._dims: Dims = []
        self.dims = dims

    @classmethod
    def _new(cls, data: Data, dims: Dims) -> "Qobj":
        out = cls.__new__(cls)
        out._data = data
        out._dims = []
        out.dims = dims
        return out

    # =========================================================================
    # Data & Structure
    # =========================================================================

    @property
    def data(self) -> Data:
        return self._data

    @data.setter
    def data(self, value: Data):
        if not isinstance(value, Data):
            raise UnsupportedTypeError(f"Qobj.data must be Data, got {type(value).__name__}")
        reshaped = value.shape != self._data.shape
        self._data = value
        if reshaped:
            self._dims = [[value.shape[0]], [value.shape[1]]]

    @property
    def dims(self) -> Dims:
        return [list(self._dims[0]), list(self._dims[1])]

    @dims.setter
    def dims(self, value: Optional[Dims]):
        rows, cols = self._data.shape
        if value is None:
            self._dims = [[rows], [cols]]
            return
        if len(value) != 2:
            raise ValueError(f"dims must be [[row dims], [col dims]], got {value}")
        row_dims = [int(d) for d in value[0]]
        col_dims = [int(d) for d in value[1]]
        if _prod(row_dims) != rows or _prod(col_dims) != cols:
            raise ValueError(f"dims {value} do not match shape {self._data.shape}")
        self._dims = [row_dims, col_dims]

    @property
    def shape(self):
        return self._data.shape

    @property
    def dtype(self) -> Type[Data]:
        """Class of the held representation."""
        return type(self._data)

    @property
    def isoper(self) -> bool:
        return self._data.is_square

    @property
    def isket(self) -> bool:
        return self._data.shape[1] == 1 and self._data.shape[0] > 1

    @property
    def isbra(self) -> bool:
        return self._data.shape[0] == 1 and self._data.shape[1] > 1

    @property
    def isherm(self) -> bool:
        return invoke("isherm", self._data)

    # =========================================================================
    # Conversion
    # =========================================================================

    def to(self, dtype: TypeLike) -> "Qobj":
        """Return a copy stored in representation ``dtype``."""
        return Qobj._new(cast(self._data, dtype), self.dims)

    def copy(self) -> "Qobj":
        return Qobj._new(self._data.copy(), self.dims)

    def full(self) -> np.ndarray:
        """Value as a new 2-D numpy array."""
        return self._data.to_array()

    # =========================================================================
    # Arithmetic
    # =========================================================================

    def _identity_like(self, scale: Number) -> Data:
        if not self.isoper:
            raise ValueError(f"cannot add a scalar to a non-square Qobj of shape {self.shape}")
        return cast(Dense.identity(self.shape[0], scale), type(self._data))

    def _check_same_dims(self, other: "Qobj", operation: str) -> None:
        if self._dims != other._dims:
            raise ValueError(f"{operation}: incompatible dims {self._dims} and {other._dims}")

    def add(self, other: Union["Qobj", Number], dtype: TypeLike = None) -> "Qobj":
        if isinstance(other, Qobj):
            self._check_same_dims(other, "add")
            right = other._data
        elif isinstance(other, Number):
            right = self._identity_like(other)
        else:
            raise TypeError(f"cannot add {type(other).__name__} to Qobj")
        return Qobj._new(invoke("add", self._data, right, output_type=dtype), self.dims)

    def sub(self, other: Union["Qobj", Number], dtype: TypeLike = None) -> "Qobj":
        if isinstance(other, Qobj):
            self._check_same_dims(other, "sub")
            right = other._data
        elif isinstance(other, Number):
            right = self._identity_like(other)
        else:
            raise TypeError(f"cannot subtract {type(other).__name__} from Qobj")
        return Qobj._new(invoke("sub", self._data, right, output_type=dtype), self.dims)

    def mul(self, scalar: Number, dtype: TypeLike = None) -> "Qobj":
        return Qobj._new(invoke("mul", self._data, scalar, output_type=dtype), self.dims)

    def matmul(self, other: "Qobj", dtype: TypeLike = None) -> "Qobj":
        if self._dims[1] != other._dims[0]:
            raise ValueError(f"matmul: incompatible dims {self._dims} and {other._dims}")
        data = invoke("matmul", self._data, other._data, output_type=dtype)
        return Qobj._new(data, [self.dims[0], other.dims[1]])

    def __add__(self, other):
        if not isinstance(other, (Qobj, Number)):
            return NotImplemented
        return self.add(other)

    def __radd__(self, other):
        if not isinstance(other, Number):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other):
        if not isinstance(other, (Qobj, Number)):
            return NotImplemented
        return self.sub(other)

    def __rsub__(self, other):
        if not isinstance(other, Number):
            return NotImplemented
        return (-self).add(other)

    def __mul__(self, other):
        if isinstance(other, Qobj):
            return self.matmul(other)
        if isinstance(other, Number):
            return self.mul(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self.mul(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Number):
            return self.mul(1 / other)
        return NotImplemented

    def __matmul__(self, other):
        if not isinstance(other, Qobj):
            return NotImplemented
        return self.matmul(other)

    def __neg__(self) -> "Qobj":
        return Qobj._new(invoke("neg", self._data), self.dims)

    def __pow__(self, n: int) -> "Qobj":
        return Qobj._new(invoke("pow", self._data, n), self.dims)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Qobj):
            return NotImplemented
        if self._dims != other._dims:
            return False
        return invoke("equal", self._data, other._data)

    def __ne__(self, other) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    # =========================================================================
    # Linear Algebra
    # =========================================================================

    def conj(self, dtype: TypeLike = None) -> "Qobj":
        return Qobj._new(invoke("conj", self._data, output_type=dtype), self.dims)

    def trans(self, dtype: TypeLike = None) -> "Qobj":
        data = invoke("transpose", self._data, output_type=dtype)
        return Qobj._new(data, [self.dims[1], self.dims[0]])

    def dag(self, dtype: TypeLike = None) -> "Qobj":
        data = invoke("adjoint", self._data, output_type=dtype)
        return Qobj._new(data, [self.dims[1], self.dims[0]])

    def tr(self) -> complex:
        return invoke("trace", self._data)

    def expm(self, dtype: TypeLike = None) -> "Qobj":
        return Qobj._new(invoke("expm", self._data, output_type=dtype), self.dims)

    def norm(self) -> float:
        """Frobenius norm."""
        return invoke("frobenius_norm", self._data)

    def ptrace(self, sel: Union[int, Sequence[int]], dtype: TypeLike = None) -> "Qobj":
        """Partial trace keeping subsystems ``sel``."""
        if isinstance(sel, int):
            sel = [sel]
        if self._dims[0] != self._dims[1]:
            raise ValueError(f"ptrace needs matching row and column dims, got {self._dims}")
        dims = self._dims[0]
        data = invoke("ptrace", self._data, dims, list(sel), output_type=dtype)
        keep = sorted(set(sel))
        kept = [dims[i] for i in keep] or [1]
        return Qobj._new(data, [kept, list(kept)])

    # =========================================================================
    # Representation
    # =========================================================================

    def __repr__(self) -> str:
        return (f"Qobj(dims={self._dims}, shape={self.shape}, "
                f"type={type(self._data).__name__})")

    def __str__(self) -> str:
        return self.__repr__() + "\n" + np.array2string(self.full(), precision=4)


def tensor(*args: Qobj, dtype: TypeLike = None) -> Qobj:
    """Tensor (Kronecker) product of Qobjs, concatenating their dims.

    Accepts Qobjs as separate arguments or a single sequence.
    """
    if len(args) == 1 and not isinstance(args[0], Qobj):
        args = tuple(args[0])
    if not args:
        raise ValueError("tensor requires at least one Qobj")
    for arg in args:
        if not isinstance(arg, Qobj):
            raise TypeError(f"tensor expects Qobj arguments, got {type(arg).__name__}")
    data = args[0].data
    row_dims = list(args[0].dims[0])
    col_dims = list(args[0].dims[1])
    for arg in args[1:]:
        data = invoke("kron", data, arg.data, output_type=dtype)
        row_dims += arg.dims[0]
        col_dims += arg.dims[1]
    if len(args) == 1:
        data = data.copy() if dtype is None else cast(data, dtype)
    return Qobj._new(data, [row_dims, col_dims])


def qeye(dims: Union[int, Sequence[int]], dtype: TypeLike = "csr") -> Qobj:
    """Identity operator on a space with subsystem dimensions ``dims``."""
    if isinstance(dims, int):
        dims = [dims]
    dims = [int(d) for d in dims]
    n = _prod(dims)
    data = cast(Dense.identity(n), dtype)
    return Qobj._new(data, [dims, list(dims)])
