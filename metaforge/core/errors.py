from __future__ import annotations

from typing import Optional


class MetaforgeError(Exception):
    """Base class for every error raised by the object factory."""


class ConfigurationError(MetaforgeError):
    """
    Fatal, construction-time failure: a backing store is unreachable or the
    type registry cannot be loaded. The service must not start serving.
    """


class TypeResolutionError(MetaforgeError):
    """Unknown record type, or no repository binding exists for it."""

    def __init__(self, message: str, *, type_name: Optional[str] = None):
        super().__init__(message)
        self.type_name = type_name


class BindingError(MetaforgeError):
    """A single parameter could not be matched or converted."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StoreError(MetaforgeError):
    """A backing store rejected a read or write."""
