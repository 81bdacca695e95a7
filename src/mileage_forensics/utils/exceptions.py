"""Custom exceptions for mileage forensics."""


class MileageForensicsError(Exception):
    """Base exception for all mileage forensics errors."""

    pass


class ConfigurationError(MileageForensicsError):
    """Error in configuration or settings."""

    pass


class InvalidInputError(MileageForensicsError, ValueError):
    """Input passed to the engine has an invalid shape.

    Raised for precondition violations only: a missing booking list, a
    non-numeric odometer or an unknown usage category. Data-quality
    problems inside booking records are never raised.
    """

    pass
