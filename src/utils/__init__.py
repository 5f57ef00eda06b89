"""Utility modules for the review scheduler."""

from . import logging
from . import retry

__all__ = ["logging", "retry"]
