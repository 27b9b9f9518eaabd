"""HealthHub — dashboard layouts, text cards, and backup/restore service."""

__version__ = "1.0.0"
