"""Core domain types shared across the feedback engine."""

from .ranges import LineRange

__all__ = ["LineRange"]
