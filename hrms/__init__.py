"""HRMS — attendance, leave and workforce administration API."""

__version__ = "1.0.0"
