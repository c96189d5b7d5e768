"""
Core Module - shared infrastructure.

Components:
- logging: loguru sink configuration
"""

from src.core.logging import configure_logging

__all__ = ["configure_logging"]
