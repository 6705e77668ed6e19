"""PairTimer: a focus/break countdown shared between two partners."""

__version__ = "0.1.0"
