"""Attendance module — daily punch records."""
