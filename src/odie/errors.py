"""Odie exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.
"""


class OdieError(Exception):
    """Base exception for all Odie errors."""


class OdieConfigError(OdieError):
    """Raised for invalid user configuration."""


class OdieInputError(OdieError):
    """Raised when a source document cannot be read."""


class OdieLineTooLongError(OdieInputError):
    """Raised when a source line exceeds the configured maximum length."""


class OdieOutputError(OdieError):
    """Raised when a rendered document cannot be written."""


class OdieIndexError(OdieError):
    """Raised when the site index cannot be written. Fatal for a build."""
