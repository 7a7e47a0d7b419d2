"""Operation Dispatch.

A Dispatcher selects an implementation of one operation from the concrete
representation types of its data operands:

1. An implementation registered for the exact type tuple is called
   directly.
2. If every operand has the same type and the operation is backed by a
   mandatory method (add, mul, matmul, equal), that method is called.
3. Otherwise a DispatchEfficiencyWarning is emitted, every operand is
   converted to the reference representation (Dense), the reference
   implementation runs, and the result is converted back.

Results that are data are then delivered in the requested output type:
the explicit ``output_type`` argument, else ``config.dispatch.default_output``,
else the type of the first data operand. A result of any other type is
converted through the cast layer.

Registration is last-write-wins: registering twice for the same
(operation, types) key keeps the second implementation. The registry is
populated at import time and by user code before concurrent use begins;
it has no locking.

Example:
    >>> from qdata.data import register, invoke, CSR
    >>> register("trace", (CSR,), my_fast_trace)
    >>> invoke("trace", csr_matrix)
"""

import inspect
import logging
import os
import warnings
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from .._config import config
from .._errors import (
    DispatchEfficiencyWarning,
    NoDefaultImplementationError,
    UnsupportedTypeError,
)
from ._base import Data, MANDATORY_METHODS
from . import _convert
from ._convert import REFERENCE, TypeLike

__all__ = [
    'Dispatcher',
    'define_operation',
    'get_operation',
    'operations',
    'register',
    'unregister',
    'invoke',
]

logger = logging.getLogger("qdata.dispatch")

Signature = Tuple[Type[Data], ...]

_operations: Dict[str, 'Dispatcher'] = {}


class Dispatcher:
    """Type-keyed implementation table for one operation.

    Args:
        name: Operation name.
        inputs: Number of leading positional arguments that are data.
        reference: Implementation over Dense operands; required.
        output: Whether the operation returns data (False for scalars).
        mandatory: Name of the mandatory method backing same-type calls.
        defaults: Keyword defaults resolved at call time, as
            ``{name: callable}``.

    Raises:
        NoDefaultImplementationError: ``reference`` is missing.
    """

    def __init__(
        self,
        name: str,
        inputs: int,
        reference: Callable,
        output: bool = True,
        mandatory: Optional[str] = None,
        defaults: Optional[Dict[str, Callable[[], Any]]] = None,
        doc: Optional[str] = None,
    ):
        if reference is None or not callable(reference):
            raise NoDefaultImplementationError(
                f"operation {name!r} needs a callable reference implementation"
            )
        if inputs < 1:
            raise ValueError(f"operation {name!r} must take at least one data input")
        if mandatory is not None and mandatory not in MANDATORY_METHODS:
            raise ValueError(f"{mandatory!r} is not a mandatory method")
        self.name = name
        self.inputs = inputs
        self.output = output
        self.mandatory = mandatory
        self._reference = reference
        self._defaults = dict(defaults or {})
        self._lookup: Dict[Signature, Callable] = {(REFERENCE,) * inputs: reference}
        self.__doc__ = doc or getattr(reference, '__doc__', None)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def _signature(self, types: Iterable[TypeLike]) -> Signature:
        types = tuple(types)
        if len(types) != self.inputs:
            raise ValueError(
                f"operation {self.name!r} takes {self.inputs} data inputs, "
                f"got a signature of {len(types)}"
            )
        return tuple(_convert.to_type(t) for t in types)

    def register(self, types: Iterable[TypeLike], implementation: Callable) -> None:
        """Register ``implementation`` for the exact ``types`` tuple.

        Last registration wins. Registering for the all-reference tuple
        replaces the reference implementation as well.
        """
        if not callable(implementation):
            raise TypeError(f"implementation must be callable, got {type(implementation).__name__}")
        key = self._signature(types)
        if key in self._lookup:
            logger.info("%s%s overwritten", self.name, _format(key))
        self._lookup[key] = implementation
        if key == (REFERENCE,) * self.inputs:
            self._reference = implementation

    def unregister(self, types: Iterable[TypeLike]) -> None:
        """Remove a specialisation. The reference entry cannot be removed."""
        key = self._signature(types)
        if key == (REFERENCE,) * self.inputs:
            raise NoDefaultImplementationError(
                f"cannot remove the reference implementation of {self.name!r}"
            )
        self._lookup.pop(key, None)

    def get(self, types: Iterable[TypeLike]) -> Optional[Callable]:
        """Return the implementation used for ``types`` without fallback, or None.

        Accelerated code calls this (or the implementation functions
        directly) to avoid dispatching on hot paths.
        """
        key = self._signature(types)
        impl = self._lookup.get(key)
        if impl is None and self.mandatory is not None and len(set(key)) == 1:
            impl = getattr(key[0], self.mandatory)
        return impl

    @property
    def reference(self) -> Callable:
        return self._reference

    @property
    def specialisations(self) -> Dict[Signature, Callable]:
        return dict(self._lookup)

    # -------------------------------------------------------------------------
    # Invocation
    # -------------------------------------------------------------------------

    def __call__(self, *args, output_type: Optional[TypeLike] = None, **kwargs) -> Any:
        if len(args) < self.inputs:
            raise TypeError(
                f"{self.name}() needs {self.inputs} data arguments, got {len(args)}"
            )
        operands = args[:self.inputs]
        extra = args[self.inputs:]
        for operand in operands:
            if not isinstance(operand, Data):
                raise UnsupportedTypeError(
                    f"{self.name}(): {type(operand).__name__} does not implement "
                    f"the data interface"
                )
        for key, factory in self._defaults.items():
            if key not in kwargs:
                kwargs[key] = factory()

        types = tuple(type(operand) for operand in operands)
        impl = self._lookup.get(types)
        if impl is None and self.mandatory is not None and len(set(types)) == 1:
            impl = getattr(types[0], self.mandatory)

        if impl is not None:
            logger.debug("%s%s: direct", self.name, _format(types))
            result = impl(*operands, *extra, **kwargs)
        else:
            result = self._fallback(types, operands, extra, kwargs)

        if not self.output:
            return result
        return self._deliver(result, operands, output_type)

    def _fallback(self, types: Signature, operands, extra, kwargs) -> Any:
        if config.dispatch.warn_on_fallback:
            warnings.warn(
                f"{self.name}{_format(types)} has no specialisation; "
                f"computing via {REFERENCE.__name__}",
                DispatchEfficiencyWarning,
                stacklevel=_external_stacklevel(),
            )
        logger.debug("%s%s: fallback via %s", self.name, _format(types), REFERENCE.__name__)
        references = [_convert.to_reference(operand) for operand in operands]
        return self._reference(*references, *extra, **kwargs)

    def _deliver(self, result: Any, operands, output_type: Optional[TypeLike]) -> Any:
        if not isinstance(result, Data):
            raise TypeError(
                f"{self.name}() implementation returned {type(result).__name__}, expected Data"
            )
        if output_type is None:
            output_type = config.dispatch.default_output
        target = _convert.to_type(output_type) if output_type is not None else type(operands[0])
        if type(result) is target:
            return result
        if type(result) is REFERENCE:
            return _convert.from_reference(target, result)
        return _convert.cast(result, target)

    def __repr__(self) -> str:
        return f"Dispatcher({self.name!r}, inputs={self.inputs}, specialisations={len(self._lookup)})"


def _format(types: Signature) -> str:
    return "(" + ", ".join(t.__name__ for t in types) + ")"


_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__))) + os.sep


def _external_stacklevel() -> int:
    """Stack level, relative to the calling function, of the first frame outside qdata."""
    frame = inspect.currentframe().f_back
    level = 1
    try:
        while frame is not None and frame.f_code.co_filename.startswith(_PACKAGE_DIR):
            frame = frame.f_back
            level += 1
    finally:
        del frame
    return level


# =============================================================================
# Process-wide Registry
# =============================================================================

def define_operation(
    name: str,
    inputs: int,
    reference: Callable,
    output: bool = True,
    mandatory: Optional[str] = None,
    defaults: Optional[Dict[str, Callable[[], Any]]] = None,
    doc: Optional[str] = None,
) -> Dispatcher:
    """Create a Dispatcher and add it to the registry under ``name``.

    Redefining an existing name replaces it.

    Raises:
        NoDefaultImplementationError: ``reference`` is missing.
    """
    dispatcher = Dispatcher(name, inputs, reference, output=output,
                            mandatory=mandatory, defaults=defaults, doc=doc)
    if name in _operations:
        logger.info("operation %r redefined", name)
    _operations[name] = dispatcher
    return dispatcher


def get_operation(name: str) -> Dispatcher:
    """Look up a Dispatcher by name.

    Raises:
        NoDefaultImplementationError: No such operation is defined.
    """
    try:
        return _operations[name]
    except KeyError:
        raise NoDefaultImplementationError(
            f"no operation {name!r} is defined; known: {sorted(_operations)}"
        ) from None


def operations() -> List[str]:
    return sorted(_operations)


def register(operation: str, types: Iterable[TypeLike], implementation: Callable) -> None:
    """Register an accelerated implementation; last registration wins.

    Raises:
        NoDefaultImplementationError: ``operation`` has no reference
            implementation to fall back on.
    """
    get_operation(operation).register(types, implementation)


def unregister(operation: str, types: Iterable[TypeLike]) -> None:
    get_operation(operation).unregister(types)


def invoke(operation: str, *operands, output_type: Optional[TypeLike] = None, **kwargs) -> Any:
    """Run ``operation`` on ``operands``; see :class:`Dispatcher`."""
    return get_operation(operation)(*operands, output_type=output_type, **kwargs)
