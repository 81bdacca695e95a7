"""Configuration module for mileage forensics."""

from mileage_forensics.config.settings import ForensicsSettings, Settings, get_settings

__all__ = ["Settings", "ForensicsSettings", "get_settings"]
