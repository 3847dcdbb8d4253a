"""Cloud Saves: git-backed checkpoints of a data directory."""

__version__ = "1.0.0"

__all__ = ["__version__"]
