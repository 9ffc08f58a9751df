from __future__ import annotations


class BudgetSequencingError(Exception):
    """Base class for simulator errors."""


class ConfigurationError(BudgetSequencingError, ValueError):
    """Raised when a sequencer or step is configured with invalid values."""


class SequencerStateError(BudgetSequencingError, RuntimeError):
    """Raised when a sequencer is run outside of the PENDING state."""
