"""Error taxonomy raised by the storage and service layers."""

from __future__ import annotations


class ScaleLogError(Exception):
    """Base class for all service errors."""


class ValidationError(ScaleLogError):
    """The incoming value or timestamp is missing or malformed."""


class StorageError(ScaleLogError):
    """The reading store could not be read from or written to."""


class AdapterError(ScaleLogError):
    """The device trigger failed to produce a reading."""


class AdapterTimeoutError(AdapterError):
    """The device did not answer within the configured timeout."""


class AdapterUnavailableError(AdapterError):
    """The device could not be reached or sent an unusable reply."""


class TriggerDisabledError(AdapterError):
    """No device trigger is configured for this deployment."""
