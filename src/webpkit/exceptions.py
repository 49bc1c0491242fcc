"""Custom exceptions for the webpkit package."""


class WebPKitError(Exception):
    """Base exception for all webpkit errors."""

    pass


class DecodeError(WebPKitError):
    """Raised when source bytes cannot be interpreted as an image."""

    pass


class ContextUnavailableError(WebPKitError):
    """Raised when the backend needed for resampling or pixel access is missing."""

    pass


class EncodeError(WebPKitError):
    """Raised when the target format encoder produces no output."""

    pass


class ConfigurationError(WebPKitError):
    """Raised when configuration is invalid."""

    pass


class ConversionStateError(WebPKitError):
    """Raised on an illegal per-image status transition."""

    pass
