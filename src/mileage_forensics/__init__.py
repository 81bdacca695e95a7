"""Mileage Forensics Engine: odometer timeline reconstruction and risk scoring."""

__version__ = "0.1.0"
