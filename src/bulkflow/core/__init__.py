"""Configuration and wiring for the ingest pipeline."""

from .config import BulkflowConfig

__all__ = ["BulkflowConfig"]
