"""
Exceptions raised by the modularizer.
"""


class ModularizeError(Exception):
    """Base exception for oas3-modularize errors."""

    pass


class ConfigurationError(ModularizeError):
    """Raised when a scaffolding or settings file is unknown or invalid."""

    pass


class ValidationError(ModularizeError):
    """Raised when the input document cannot be processed."""

    pass


class ReferenceRewriteError(ModularizeError):
    """Raised when a fragment cannot be walked to rewrite its references."""

    pass


class DereferenceError(ModularizeError):
    """Raised when a reference cannot be resolved while bundling."""

    pass
