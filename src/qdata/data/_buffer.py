"""
Owned Contiguous Buffer

One exclusively-owned, C-contiguous, one-dimensional block of numeric
storage. Data representations are built from Buffers: Dense holds one,
CSR holds three (values, column indices, row offsets).

Construction chooses between copying caller data in (``copy=True``) and
adopting caller storage directly (``copy=False``). Exporting a view hands
ownership of the storage to the exported numpy array; see
:mod:`qdata.data._ownership`.
"""

import logging
from typing import Any, List, Optional, Union

import numpy as np

from .._config import config
from .._errors import InvalidBufferError, QDATA_ERROR_RELEASED_BUFFER
from ._ownership import Ownership, OwnershipTracker

__all__ = ['Buffer', 'export_view']

logger = logging.getLogger("qdata.buffer")

DTypeLike = Union[str, type, np.dtype, None]


class Buffer:
    """
    Exclusively-owned contiguous numeric storage.

    Attributes:
        size (int): Number of elements
        dtype (np.dtype): Element type
        nbytes (int): Total bytes
        ownership (Ownership): Current ownership state

    Example:
        >>> buf = Buffer([1.0, 2.0, 3.0], dtype=np.float64)
        >>> buf.ownership
        <Ownership.OWNED: 'owned'>
        >>> view = buf.export_view()
        >>> view is buf.export_view()
        True
        >>> view.flags.writeable
        False
    """

    __slots__ = ('_storage', '_size', '_dtype', '_ownership')

    def __init__(
        self,
        data: Any = None,
        size: Optional[int] = None,
        dtype: DTypeLike = None,
        copy: bool = True,
    ):
        """
        Create a buffer.

        Args:
            data: Array-like payload. With ``copy=False`` it must be a
                C-contiguous numpy array of the requested dtype.
            size: Declared element count. Checked against the storage.
            dtype: Element type (default: inferred from data).
            copy: Copy data into fresh storage (True) or adopt it (False).

        Raises:
            InvalidBufferError: Storage is missing, too small, of the wrong
                dtype, or cannot be adopted without copying.
        """
        if size is not None and size < 0:
            raise InvalidBufferError(f"Buffer size must be non-negative, got {size}")

        if data is None:
            if size:
                raise InvalidBufferError(
                    f"No storage supplied for a buffer of declared size {size}"
                )
            storage = np.empty(0, dtype=dtype if dtype is not None else np.float64)
            tracker = OwnershipTracker.owned()
        elif copy:
            storage = np.array(data, dtype=dtype, order='C', copy=True).reshape(-1)
            tracker = OwnershipTracker.owned()
        else:
            storage = self._check_adoptable(data, dtype)
            tracker = OwnershipTracker.adopted()

        if size is not None and storage.size != size:
            if storage.size == 0:
                raise InvalidBufferError(
                    f"Zero-length storage for a buffer of declared size {size}"
                )
            raise InvalidBufferError(
                f"Buffer size mismatch: declared {size}, storage holds {storage.size}"
            )

        self._storage = storage
        self._size = storage.size
        self._dtype = storage.dtype
        self._ownership = tracker

    @staticmethod
    def _check_adoptable(data: Any, dtype: DTypeLike) -> np.ndarray:
        if not isinstance(data, np.ndarray):
            raise InvalidBufferError(
                f"Only numpy arrays can be adopted, got {type(data).__name__}"
            )
        if dtype is not None and data.dtype != np.dtype(dtype):
            raise InvalidBufferError(
                f"Cannot adopt {data.dtype} storage as {np.dtype(dtype)} without copying"
            )
        if not data.flags.c_contiguous:
            raise InvalidBufferError("Cannot adopt non-contiguous storage without copying")
        return data.reshape(-1)

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def adopt(cls, array: np.ndarray, size: Optional[int] = None) -> 'Buffer':
        """Take over caller storage without copying.

        The caller must not keep using ``array`` afterwards: the Buffer is
        now its single owner.
        """
        return cls(array, size=size, copy=False)

    @classmethod
    def empty(cls, size: int, dtype: DTypeLike = np.float64) -> 'Buffer':
        """Create uninitialized buffer."""
        return cls(np.empty(size, dtype=dtype), copy=False)

    @classmethod
    def zeros(cls, size: int, dtype: DTypeLike = np.float64) -> 'Buffer':
        """Create zero-initialized buffer."""
        return cls(np.zeros(size, dtype=dtype), copy=False)

    @classmethod
    def from_list(cls, data: List, dtype: DTypeLike = np.float64) -> 'Buffer':
        """Create buffer from Python list."""
        return cls(data, dtype=dtype, copy=True)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Number of elements."""
        return self._size

    @property
    def dtype(self) -> np.dtype:
        """Element type."""
        return self._dtype

    @property
    def itemsize(self) -> int:
        """Bytes per element."""
        return self._dtype.itemsize

    @property
    def nbytes(self) -> int:
        """Total bytes."""
        return self._size * self._dtype.itemsize

    @property
    def ownership(self) -> Ownership:
        return self._ownership.state

    @property
    def is_exported(self) -> bool:
        return self._ownership.is_exported

    @property
    def is_released(self) -> bool:
        return self._ownership.is_released

    @property
    def storage(self) -> np.ndarray:
        """The authoritative store.

        Before export this is the Buffer's own array; after export it is
        the exported view. Representations read through it and must not
        retain or mutate it.

        Raises:
            InvalidBufferError: If the buffer was released.
        """
        if self._ownership.is_released:
            raise InvalidBufferError.from_code(QDATA_ERROR_RELEASED_BUFFER, "storage")
        if self._ownership.is_exported:
            return self._ownership.exported
        return self._storage

    # -------------------------------------------------------------------------
    # View Export
    # -------------------------------------------------------------------------

    def export_view(self, writable: Optional[bool] = None) -> np.ndarray:
        """
        Export a numpy view of the storage, transferring ownership to it.

        The first export hands ownership to the returned array and the
        Buffer keeps a strong reference to it. Later exports return the
        very same array.

        Args:
            writable: Allow in-place mutation through the view. ``None``
                uses ``config.buffer.writable_views``. A writable request
                on a cached read-only view makes that view writable; a
                read-only request never downgrades a writable view.

        Returns:
            1-D numpy array sharing memory with the buffer.

        Raises:
            InvalidBufferError: If the buffer was released, or writable
                views are disabled by configuration.
        """
        buffer_config = config.buffer
        if writable is None:
            writable = buffer_config.writable_views
        if writable and not buffer_config.allow_writable:
            raise InvalidBufferError("Writable views are disabled by configuration")

        view = self._ownership.exported
        if view is None:
            storage = self.storage
            view = storage.view()
            view.flags.writeable = False
            self._ownership.transfer(view)
            # The exported view is authoritative from here on.
            self._storage = None
            logger.debug("exported %d-element %s buffer, ownership transferred",
                         self._size, self._dtype)

        if writable and not view.flags.writeable:
            try:
                view.flags.writeable = True
            except ValueError as e:
                raise InvalidBufferError(f"Storage cannot be made writable: {e}") from e
        return view

    # -------------------------------------------------------------------------
    # Copy / Release
    # -------------------------------------------------------------------------

    def copy(self) -> 'Buffer':
        """Create a deep copy with freshly owned storage."""
        return Buffer(self.storage, dtype=self._dtype, copy=True)

    def release(self) -> None:
        """
        Drop the storage.

        Owned or adopted storage ends its lifetime here. Storage that was
        exported stays alive for as long as the exported view is referenced.
        Releasing twice is a no-op.
        """
        if self._ownership.is_released:
            return
        if self._ownership.is_exported:
            logger.debug("releasing exported buffer; view keeps storage alive")
        self._ownership.release()
        self._storage = None

    def __enter__(self) -> 'Buffer':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    # -------------------------------------------------------------------------
    # Conversion / Representation
    # -------------------------------------------------------------------------

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the payload as a numpy array."""
        return self.storage.copy()

    def tolist(self) -> List:
        return self.storage.tolist()

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        state = self._ownership.state.value
        if self._ownership.is_released:
            return f"Buffer(<released>, dtype={self._dtype})"
        values = self.storage
        if self._size <= 6:
            data_str = str(values.tolist())
        else:
            data_str = str(values[:3].tolist() + ['...'] + values[-3:].tolist())
        return f"Buffer({data_str}, dtype={self._dtype}, {state})"


def export_view(buffer: Buffer, writable: Optional[bool] = None) -> np.ndarray:
    """Export a view of ``buffer``; see :meth:`Buffer.export_view`."""
    if not isinstance(buffer, Buffer):
        raise TypeError(f"export_view expects a Buffer, got {type(buffer).__name__}")
    return buffer.export_view(writable=writable)
