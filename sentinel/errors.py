"""Fatal run errors.

Per-site probe failures are not represented here: they are classified and
stored as regular outcomes.
"""


class SentinelError(Exception):
    """Base class for errors that abort a probe run."""


class ConfigurationError(SentinelError):
    """Store endpoint or credential missing."""


class RegistryError(SentinelError):
    """Websites could not be loaded; no probes were executed."""


class PurgeError(SentinelError):
    """Previous snapshot could not be deleted; nothing was inserted."""


class InsertError(SentinelError):
    """New snapshot could not be inserted after a successful purge."""
