"""League fixture import and pitch booking for a football club."""

__version__ = "0.1.0"
