"""qdata Data Layer.

Concrete matrix representations, the Buffers they are built on, and the
dispatch machinery that runs generic operations over any of them.

Type Hierarchy:

    Data (ABC)                 mandatory interface
    ├── Dense                  one Buffer, row-major (reference representation)
    └── CSR                    three Buffers: data, indices, indptr

Control Flow:

    invoke(op, *operands)
      -> exact specialisation registered?   call it
      -> same-type mandatory method?        call it
      -> otherwise                          warn, cast to Dense, run the
                                            reference implementation,
                                            cast back

Quick Start:
    >>> from qdata.data import Dense, CSR, cast, invoke
    >>> eye = Dense([[1, 0], [0, 1]])
    >>> sparse = cast(eye, "csr")
    >>> invoke("matmul", eye, sparse)      # no Dense x CSR kernel: fallback
    >>> invoke("trace", sparse)            # CSR kernel
    (2+0j)

Extending:
    >>> class Diagonal(Data):
    ...     ...                             # implement the mandatory methods
    >>> register_type(Diagonal, aliases=("diag",))
    >>> register("trace", (Diagonal,), trace_diagonal)
"""

# =============================================================================
# Storage
# =============================================================================
from ._ownership import Ownership, OwnershipTracker
from ._buffer import Buffer, export_view

# =============================================================================
# Representations
# =============================================================================
from ._base import Data, MANDATORY_METHODS
from ._dense import Dense
from ._csr import CSR

# =============================================================================
# Conversion & Dispatch
# =============================================================================
from ._convert import (
    REFERENCE,
    check_interface,
    register_type,
    unregister_type,
    registered_types,
    to_type,
    register_converter,
    cast,
    create,
)
from ._dispatch import (
    Dispatcher,
    define_operation,
    get_operation,
    operations,
    register,
    unregister,
    invoke,
)

# =============================================================================
# Built-in Representations
# =============================================================================
register_type(Dense, aliases=("dense", "ndarray"))
register_type(CSR, aliases=("csr", "sparse"))

# =============================================================================
# Operations
# =============================================================================
from . import _ops as ops
from ._ops import (
    add,
    sub,
    mul,
    neg,
    matmul,
    kron,
    equal,
    conj,
    transpose,
    adjoint,
    trace,
    expm,
    ptrace,
    frobenius_norm,
    isherm,
)
from ._ops import pow as matrix_power


__all__ = [
    # ---- Storage ----
    'Buffer',
    'export_view',
    'Ownership',
    'OwnershipTracker',

    # ---- Representations ----
    'Data',
    'MANDATORY_METHODS',
    'Dense',
    'CSR',

    # ---- Conversion ----
    'REFERENCE',
    'check_interface',
    'register_type',
    'unregister_type',
    'registered_types',
    'to_type',
    'register_converter',
    'cast',
    'create',

    # ---- Dispatch ----
    'Dispatcher',
    'define_operation',
    'get_operation',
    'operations',
    'register',
    'unregister',
    'invoke',

    # ---- Operations ----
    'ops',
    'add',
    'sub',
    'mul',
    'neg',
    'matmul',
    'kron',
    'equal',
    'conj',
    'transpose',
    'adjoint',
    'trace',
    'expm',
    'matrix_power',
    'ptrace',
    'frobenius_norm',
    'isherm',
]
