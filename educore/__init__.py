"""Educore client: tenant-scoped data access for school-administration APIs."""

__version__ = "1.0.0"
