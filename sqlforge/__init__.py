"""SQL dialects, ordered callback registries, error collections and SQL log formatting."""

__version__ = "0.1.0"