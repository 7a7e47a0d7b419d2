"""
qdata Config - process-wide configuration of the data layer.

Controls the default output representation of dispatched operations,
whether the reference fallback path emits efficiency warnings, and
the export policy of buffers.

Values are process-wide; a thread may override any section locally
with ``config.local(...)``.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger("qdata.config")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


# =============================================================================
# Configuration Sections
# =============================================================================

@dataclass
class DispatchConfig:
    """Configuration for operation dispatch."""
    default_output: Optional[Union[str, type]] = None   # None = first operand's type
    warn_on_fallback: bool = True


@dataclass
class BufferConfig:
    """Configuration for buffer export."""
    writable_views: bool = False   # Default for export_view(writable=None)
    allow_writable: bool = True    # Permit writable exports at all


@dataclass
class ComputeConfig:
    """Configuration for numerical comparisons."""
    atol: float = 1e-12


def _default_dispatch() -> DispatchConfig:
    return DispatchConfig(warn_on_fallback=not _env_flag("QDATA_NO_FALLBACK_WARNINGS"))


# =============================================================================
# Global Configuration Manager
# =============================================================================

class QDataConfig:
    """
    Global configuration manager for qdata.

    Example:
        # Global configuration
        qdata.config.dispatch.warn_on_fallback = False

        # Local configuration (context manager)
        with qdata.config.local(dispatch=DispatchConfig(default_output="csr")):
            result = qobj @ other   # CSR output here
    """

    _SECTIONS = ("dispatch", "buffer", "compute")

    def __init__(self):
        self._global_dispatch = _default_dispatch()
        self._global_buffer = BufferConfig()
        self._global_compute = ComputeConfig()

        self._local = threading.local()

        self._callbacks: Dict[str, List[Callable]] = {name: [] for name in self._SECTIONS}

    # -------------------------------------------------------------------------
    # Section Accessors (with thread-local override support)
    # -------------------------------------------------------------------------

    @property
    def dispatch(self) -> DispatchConfig:
        """Get dispatch configuration."""
        local = getattr(self._local, "dispatch", None)
        return local if local is not None else self._global_dispatch

    @dispatch.setter
    def dispatch(self, value: DispatchConfig):
        self._global_dispatch = value
        self._notify("dispatch", value)

    @property
    def buffer(self) -> BufferConfig:
        """Get buffer configuration."""
        local = getattr(self._local, "buffer", None)
        return local if local is not None else self._global_buffer

    @buffer.setter
    def buffer(self, value: BufferConfig):
        self._global_buffer = value
        self._notify("buffer", value)

    @property
    def compute(self) -> ComputeConfig:
        """Get compute configuration."""
        local = getattr(self._local, "compute", None)
        return local if local is not None else self._global_compute

    @compute.setter
    def compute(self, value: ComputeConfig):
        self._global_compute = value
        self._notify("compute", value)

    # -------------------------------------------------------------------------
    # Convenience Properties
    # -------------------------------------------------------------------------

    @property
    def default_output(self) -> Optional[Union[str, type]]:
        return self.dispatch.default_output

    @default_output.setter
    def default_output(self, value: Optional[Union[str, type]]):
        self._global_dispatch.default_output = value
        self._notify("dispatch", self._global_dispatch)

    @property
    def warn_on_fallback(self) -> bool:
        return self.dispatch.warn_on_fallback

    @warn_on_fallback.setter
    def warn_on_fallback(self, value: bool):
        self._global_dispatch.warn_on_fallback = bool(value)
        self._notify("dispatch", self._global_dispatch)

    @property
    def atol(self) -> float:
        return self.compute.atol

    @atol.setter
    def atol(self, value: float):
        self._global_compute.atol = float(value)
        self._notify("compute", self._global_compute)

    # -------------------------------------------------------------------------
    # Context Manager Support
    # -------------------------------------------------------------------------

    def local(self, **kwargs) -> "_LocalConfigContext":
        """
        Create a local configuration context.

        Args:
            **kwargs: Section overrides (dispatch, buffer, compute)

        Returns:
            Context manager
        """
        unknown = set(kwargs) - set(self._SECTIONS)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
        return _LocalConfigContext(self, **kwargs)

    def _set_local(self, **kwargs):
        for key, value in kwargs.items():
            if value is not None:
                setattr(self._local, key, value)

    def _clear_local(self, keys: List[str]):
        for key in keys:
            if hasattr(self._local, key):
                setattr(self._local, key, None)

    # -------------------------------------------------------------------------
    # Callback Registration
    # -------------------------------------------------------------------------

    def on_change(self, config_name: str, callback: Callable):
        """
        Register callback for configuration changes.

        Args:
            config_name: Name of section ("dispatch", "buffer", "compute")
            callback: Function called with the new section value
        """
        if config_name not in self._callbacks:
            raise ValueError(f"Unknown configuration section: {config_name}")
        self._callbacks[config_name].append(callback)

    def _notify(self, config_name: str, value: Any):
        for callback in self._callbacks.get(config_name, []):
            try:
                callback(value)
            except Exception:
                logger.warning("config callback %r for %r failed", callback, config_name,
                               exc_info=True)

    # -------------------------------------------------------------------------
    # Reset / Serialization
    # -------------------------------------------------------------------------

    def reset(self):
        """Reset all configurations to defaults."""
        self._global_dispatch = _default_dispatch()
        self._global_buffer = BufferConfig()
        self._global_compute = ComputeConfig()
        self._clear_local(list(self._SECTIONS))

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        default_output = self.dispatch.default_output
        if isinstance(default_output, type):
            default_output = default_output.__name__
        return {
            "dispatch": {
                "default_output": default_output,
                "warn_on_fallback": self.dispatch.warn_on_fallback,
            },
            "buffer": {
                "writable_views": self.buffer.writable_views,
                "allow_writable": self.buffer.allow_writable,
            },
            "compute": {
                "atol": self.compute.atol,
            },
        }

    def __repr__(self) -> str:
        return f"QDataConfig({self.to_dict()})"


class _LocalConfigContext:
    """Context manager for local configuration override."""

    def __init__(self, config: QDataConfig, **kwargs):
        self._config = config
        self._kwargs = kwargs
        self._keys = list(kwargs.keys())

    def __enter__(self):
        self._config._set_local(**self._kwargs)
        return self._config

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._config._clear_local(self._keys)
        return False


# =============================================================================
# Global Instance
# =============================================================================

config = QDataConfig()


def get_config() -> QDataConfig:
    """Get the global configuration instance."""
    return config


def set_default_output(output: Optional[Union[str, type]]):
    """Set the process-wide default output representation (None = operand's own)."""
    config.default_output = output


def set_fallback_warnings(enabled: bool = True):
    """Enable or disable efficiency warnings on the reference fallback path."""
    config.warn_on_fallback = enabled


__all__ = [
    "DispatchConfig",
    "BufferConfig",
    "ComputeConfig",
    "QDataConfig",
    "config",
    "get_config",
    "set_default_output",
    "set_fallback_warnings",
]
