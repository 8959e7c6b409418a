"""LP Market - LP price aggregation pipeline."""

__version__ = "0.1.0"
