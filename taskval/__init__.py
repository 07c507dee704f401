"""Validation of structured task definitions and task graphs, with Beads issue creation."""

__version__ = "0.1.0"