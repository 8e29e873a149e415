"""Comparative period analytics for sales, ads and recap dashboards."""

__version__ = "0.1.0"
