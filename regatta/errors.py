"""
Error types surfaced to callers.
Scoring and tie-break anomalies are never raised; they are absorbed and reported in output data.
"""
from __future__ import annotations


class RegattaError(ValueError):
    """Base for errors reported to the immediate caller."""


class ValidationError(RegattaError):
    """Bad user input (result shape, positions, too few teams, no boat sets)."""


class NotFoundError(RegattaError):
    """Referenced race, league or boat set does not exist."""
