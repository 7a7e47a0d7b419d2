"""Casting Between Representations.

This module owns the table of known representations and converts values
between them:

- Type registry: ``register_type`` adds a representation and its string
  aliases; ``to_type`` resolves a class or alias.
- Cast: ``cast(value, target)`` uses a converter registered for the
  exact (source, target) pair when there is one, otherwise it goes
  through the reference representation (source -> Dense -> target).
- Creation: ``create(arg)`` builds a representation from numpy arrays,
  nested lists, scalars and scipy sparse matrices.

Every conversion is checked to preserve shape; a mismatch is an internal
bug and raises ConversionInvariantError.

Example:
    >>> dense = Dense([[1, 0], [0, 1]])
    >>> csr = cast(dense, "csr")
    >>> cast(csr, Dense).equal(dense, atol=0)
    True
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Tuple, Type, Union

import numpy as np
import scipy.sparse as sp

from .._errors import ConversionInvariantError, UnsupportedTypeError
from ._base import Data, MANDATORY_METHODS
from ._csr import CSR
from ._dense import Dense

__all__ = [
    'REFERENCE',
    'register_type',
    'registered_types',
    'to_type',
    'register_converter',
    'cast',
    'create',
]

logger = logging.getLogger("qdata.convert")

TypeLike = Union[str, Type[Data]]

REFERENCE: Type[Data] = Dense

_aliases: Dict[str, Type[Data]] = {}
_types: List[Type[Data]] = []
_converters: Dict[Tuple[Type[Data], Type[Data]], Callable[[Data], Data]] = {}


# =============================================================================
# Type Registry
# =============================================================================

def check_interface(cls: Any) -> Type[Data]:
    """Ensure ``cls`` is a concrete Data subclass with the mandatory interface.

    Raises:
        UnsupportedTypeError: Otherwise.
    """
    if not (isinstance(cls, type) and issubclass(cls, Data)):
        raise UnsupportedTypeError(f"{cls!r} is not a Data representation")
    if inspect.isabstract(cls):
        missing = sorted(getattr(cls, '__abstractmethods__', ()))
        raise UnsupportedTypeError(
            f"{cls.__name__} does not implement the mandatory interface: missing {missing}"
        )
    for name in MANDATORY_METHODS:
        if not callable(getattr(cls, name, None)):
            raise UnsupportedTypeError(f"{cls.__name__} has no callable {name}()")
    return cls


def register_type(cls: Type[Data], aliases: Tuple[str, ...] = ()) -> Type[Data]:
    """Register a representation under its class name and ``aliases``.

    Aliases are case-insensitive. Registering an alias again rebinds it
    (last registration wins).

    Returns:
        ``cls``, so this can be used as a class decorator.
    """
    check_interface(cls)
    if cls not in _types:
        _types.append(cls)
    for alias in (cls.__name__,) + tuple(aliases):
        key = alias.lower()
        previous = _aliases.get(key)
        if previous is not None and previous is not cls:
            logger.info("type alias %r rebound from %s to %s", alias,
                        previous.__name__, cls.__name__)
        _aliases[key] = cls
    logger.debug("registered representation %s", cls.__name__)
    return cls


def unregister_type(cls: Type[Data]) -> None:
    """Remove a representation and every alias pointing at it."""
    if cls in _types:
        _types.remove(cls)
    for key in [k for k, v in _aliases.items() if v is cls]:
        del _aliases[key]
    for pair in [p for p in _converters if cls in p]:
        del _converters[pair]


def registered_types() -> List[Type[Data]]:
    return list(_types)


def to_type(target: TypeLike) -> Type[Data]:
    """Resolve a representation class from a class or an alias string.

    Raises:
        UnsupportedTypeError: Unknown alias or not a usable Data class.
    """
    if isinstance(target, str):
        try:
            return _aliases[target.lower()]
        except KeyError:
            raise UnsupportedTypeError(
                f"Unknown data type {target!r}; known: {sorted(_aliases)}"
            ) from None
    return check_interface(target)


# =============================================================================
# Converters
# =============================================================================

def register_converter(
    source: TypeLike,
    target: TypeLike,
    converter: Callable[[Data], Data],
) -> None:
    """Register a direct conversion for the exact (source, target) pair.

    Last registration wins.
    """
    key = (to_type(source), to_type(target))
    if not callable(converter):
        raise TypeError(f"converter must be callable, got {type(converter).__name__}")
    if key in _converters:
        logger.info("converter %s -> %s overwritten", key[0].__name__, key[1].__name__)
    _converters[key] = converter


def _check_shape(source: Data, result: Any, target: Type[Data]) -> Data:
    if not isinstance(result, target):
        raise ConversionInvariantError(
            f"conversion to {target.__name__} returned {type(result).__name__}"
        )
    if result.shape != source.shape:
        raise ConversionInvariantError(
            f"conversion {type(source).__name__} -> {target.__name__} changed shape "
            f"{source.shape} -> {result.shape}"
        )
    return result


def from_reference(target: Type[Data], ref: Dense) -> Data:
    """``target.from_reference(ref)`` with the shape invariant checked."""
    if target is REFERENCE:
        return ref
    return _check_shape(ref, target.from_reference(ref), target)


def to_reference(value: Data) -> Dense:
    """``value.to_reference()`` with the shape invariant checked."""
    if type(value) is REFERENCE:
        return value
    return _check_shape(value, value.to_reference(), REFERENCE)


def cast(value: Data, target: TypeLike) -> Data:
    """
    Convert ``value`` to the representation ``target``.

    Same type returns a deep copy. A registered direct converter is used
    when available; otherwise the value goes through the reference
    representation.

    Raises:
        UnsupportedTypeError: ``value`` is not Data or ``target`` unknown.
        ConversionInvariantError: The conversion changed the shape.
    """
    if not isinstance(value, Data):
        raise UnsupportedTypeError(f"cannot cast {type(value).__name__}; expected Data")
    target_cls = to_type(target)
    source_cls = type(value)

    if source_cls is target_cls:
        return _check_shape(value, value.copy(), target_cls)

    converter = _converters.get((source_cls, target_cls))
    if converter is not None:
        logger.debug("cast %s -> %s (direct)", source_cls.__name__, target_cls.__name__)
        return _check_shape(value, converter(value), target_cls)

    logger.debug("cast %s -> %s (via %s)", source_cls.__name__, target_cls.__name__,
                 REFERENCE.__name__)
    return from_reference(target_cls, to_reference(value))


# =============================================================================
# Creation
# =============================================================================

def create(arg: Any, copy: bool = True) -> Data:
    """
    Build a representation from arbitrary input.

    - Data: returned as a copy (or as-is with ``copy=False``)
    - scipy sparse matrix: CSR
    - numpy array, nested list, scalar: Dense

    With ``copy=False`` a numpy array is adopted when its layout allows it
    (C-contiguous complex128) and copied otherwise.

    Raises:
        UnsupportedTypeError: Input cannot be interpreted as a matrix.
    """
    if isinstance(arg, Data):
        return arg.copy() if copy else arg
    if sp.issparse(arg):
        return CSR.from_scipy(arg)
    if isinstance(arg, np.ndarray) and not copy:
        adoptable = arg.dtype == np.complex128 and arg.flags.c_contiguous
        return Dense(arg, copy=not adoptable)
    if isinstance(arg, (np.ndarray, list, tuple, int, float, complex, np.number)):
        return Dense(arg, copy=copy)
    raise UnsupportedTypeError(f"cannot create data from {type(arg).__name__}")
