"""Ownership Tracking for Buffers.

Every Buffer has exactly one owner of its storage at any time. This
module records who that is.

Key Concepts:
    - OWNED: Storage was allocated by the Buffer (copy on construction).
    - ADOPTED: Storage was supplied by the caller and taken over as-is.
    - EXPORTED: Storage was handed to an exported numpy view; the view's
      reference count decides its lifetime from then on. The tracker holds
      a strong reference to that view so repeated exports return it.
    - RELEASED: The Buffer dropped its storage. Memory still reachable
      through an exported view stays alive.

Safety Model:
    1. OWNED/ADOPTED data: freed when the Buffer is released.
    2. EXPORTED data: never freed by the Buffer; releasing only drops
       the Buffer's reference.
    3. Writable exports let external code mutate storage behind the
       owning representation. This is not prevented at runtime.
"""

from enum import Enum
from typing import Any, Optional

__all__ = [
    'Ownership',
    'OwnershipTracker',
]


class Ownership(Enum):
    """Ownership state of a Buffer's storage."""
    OWNED = 'owned'
    ADOPTED = 'adopted'
    EXPORTED = 'exported'
    RELEASED = 'released'


class OwnershipTracker:
    """Tracks the owner of a Buffer's storage.

    Attributes:
        _state: Current Ownership state.
        _origin: State before the first export (OWNED or ADOPTED).
        _exported: Strong reference to the exported view, if any.

    Example:
        >>> tracker = OwnershipTracker.owned()
        >>> tracker.transfer(view)
        >>> tracker.state
        <Ownership.EXPORTED: 'exported'>
        >>> tracker.exported is view
        True
    """

    __slots__ = ('_state', '_origin', '_exported')

    def __init__(self, state: Ownership = Ownership.OWNED):
        if state not in (Ownership.OWNED, Ownership.ADOPTED):
            raise ValueError(f"Tracker must start OWNED or ADOPTED, got {state}")
        self._state = state
        self._origin = state
        self._exported: Optional[Any] = None

    @classmethod
    def owned(cls) -> 'OwnershipTracker':
        """Create tracker for storage allocated by the Buffer."""
        return cls(Ownership.OWNED)

    @classmethod
    def adopted(cls) -> 'OwnershipTracker':
        """Create tracker for caller storage taken over without copying."""
        return cls(Ownership.ADOPTED)

    @property
    def state(self) -> Ownership:
        return self._state

    @property
    def origin(self) -> Ownership:
        """How the storage was first acquired."""
        return self._origin

    @property
    def is_exported(self) -> bool:
        return self._exported is not None

    @property
    def is_released(self) -> bool:
        return self._state is Ownership.RELEASED

    @property
    def frees_on_release(self) -> bool:
        """Whether releasing the Buffer ends the storage's lifetime."""
        return self._state in (Ownership.OWNED, Ownership.ADOPTED)

    @property
    def exported(self) -> Optional[Any]:
        """The exported view holding ownership, or None."""
        return self._exported

    def transfer(self, view: Any) -> None:
        """Hand ownership to an exported view.

        Happens at most once; the view is kept by strong reference.

        Raises:
            RuntimeError: If ownership was already transferred or released.
        """
        if self._state is Ownership.RELEASED:
            raise RuntimeError("Cannot transfer ownership of released storage")
        if self._exported is not None:
            raise RuntimeError("Ownership already transferred to an exported view")
        self._exported = view
        self._state = Ownership.EXPORTED

    def release(self) -> None:
        """Mark storage released.

        The strong reference to an exported view is dropped as well; the
        view itself remains valid for whoever still holds it.
        """
        self._state = Ownership.RELEASED
        self._exported = None

    def __repr__(self) -> str:
        if self._state is Ownership.EXPORTED:
            return f"OwnershipTracker(exported, origin={self._origin.value})"
        return f"OwnershipTracker({self._state.value})"
