"""
qdata - Polymorphic Quantum Data Layer

Matrix storage and arithmetic for quantum objects with:
- Interchangeable representations (Dense, CSR) behind one interface
- Type-keyed operation dispatch with a universal Dense fallback
- Explicit buffer ownership and zero-copy numpy export
- Extension points for new representations and accelerated kernels

Modules:
- data: Buffers, representations, casting and dispatch
- config: Process-wide and thread-local settings

Architecture:
    ┌──────────────────────────────────────────────┐
    │           Qobj (variant-agnostic)            │
    ├──────────────────────────────────────────────┤
    │  Dispatch: exact | mandatory | fallback      │
    │  Cast: direct | via Dense                    │
    ├──────────────────────────────────────────────┤
    │  Data: Dense | CSR | user representations    │
    │  Buffer: OWNED | ADOPTED | EXPORTED          │
    └──────────────────────────────────────────────┘

Example:
    >>> import qdata
    >>>
    >>> a = qdata.Qobj([[0, 1], [1, 0]], dtype="csr")
    >>> b = qdata.Qobj([[1, 0], [0, -1]])
    >>>
    >>> # CSR @ Dense has no kernel: computed via Dense, delivered as CSR
    >>> (a @ b).dtype
    <class 'qdata.data._csr.CSR'>
    >>>
    >>> # Request a representation explicitly
    >>> a.matmul(b, dtype="dense").dtype
    <class 'qdata.data._dense.Dense'>
"""

__version__ = '0.1.0'

from . import data
from ._config import (
    DispatchConfig,
    BufferConfig,
    ComputeConfig,
    QDataConfig,
    config,
    get_config,
    set_default_output,
    set_fallback_warnings,
)
from ._errors import (
    QDataError,
    InvalidBufferError,
    UnsupportedTypeError,
    NoDefaultImplementationError,
    ConversionInvariantError,
    DispatchEfficiencyWarning,
)
from .data import (
    Buffer,
    Ownership,
    Data,
    Dense,
    CSR,
    cast,
    create,
    register,
    register_type,
    register_converter,
    invoke,
)
from ._qobj import Qobj, tensor, qeye

__all__ = [
    # Version
    '__version__',

    # Modules
    'data',

    # Quantum objects
    'Qobj',
    'tensor',
    'qeye',

    # Data layer
    'Buffer',
    'Ownership',
    'Data',
    'Dense',
    'CSR',
    'cast',
    'create',
    'register',
    'register_type',
    'register_converter',
    'invoke',

    # Configuration
    'DispatchConfig',
    'BufferConfig',
    'ComputeConfig',
    'QDataConfig',
    'config',
    'get_config',
    'set_default_output',
    'set_fallback_warnings',

    # Errors
    'QDataError',
    'InvalidBufferError',
    'UnsupportedTypeError',
    'NoDefaultImplementationError',
    'ConversionInvariantError',
    'DispatchEfficiencyWarning',
]
