"""gofunc-tables: run exported Go functions and load their output into PostgreSQL."""

__version__ = "0.1.0"
