"""decern-gate - require an approved decision for high-impact changes."""

__version__ = "0.3.0"
