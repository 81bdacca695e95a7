"""Utility modules for mileage forensics."""

from mileage_forensics.utils.exceptions import (
    ConfigurationError,
    InvalidInputError,
    MileageForensicsError,
)

__all__ = ["MileageForensicsError", "ConfigurationError", "InvalidInputError"]
