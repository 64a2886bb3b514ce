"""
Error taxonomy for the analysis engine.

Every analyzer checks its own preconditions at entry and raises one of
these. Nothing in the engine catches them; mapping to exit codes and
user-facing messages happens in the CLI.
"""


class CostExplorerError(Exception):
    """Base class for all analysis failures."""


class ValidationError(CostExplorerError, ValueError):
    """Raised when required input is empty, missing or out of range."""


class LogicError(CostExplorerError):
    """Raised when an intermediate result violates an analyzer precondition."""
