"""Core HR module — Profile and Department models, schemas and services."""

from hrms.core_hr.models import Department, Profile

__all__ = ["Profile", "Department"]
