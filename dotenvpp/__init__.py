"""Parse, interpolate and load layered .env files, with a small command line tool."""

__version__ = "0.0.3"

__all__ = ["errors", "parser", "interpolation", "loader", "cli"]