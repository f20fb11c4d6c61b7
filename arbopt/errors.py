"""Exception hierarchy for the optimizer core.

Only configuration errors are fatal. Data-source failures and empty results are
modelled as exceptions so callers can tell them apart, but every component that
owns a fallback catches them before they reach the pipeline boundary.
"""


class ArbOptError(Exception):
    """Base class for all optimizer errors."""


class ConfigurationError(ArbOptError):
    """Raised for programmer or configuration mistakes (e.g. no venues at all)."""


class DataUnavailable(ArbOptError):
    """An external data source failed or timed out.

    Attributes:
        source: Name of the collaborator call that failed (e.g. "get_quote")
        detail: Human-readable failure description
    """

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail


class NoRouteFound(ArbOptError):
    """No valid route exists between two tokens.

    This is a normal empty outcome, not a fault.
    """

    def __init__(self, token_in: str, token_out: str, reason: str) -> None:
        super().__init__(f"No route {token_in} -> {token_out}: {reason}")
        self.token_in = token_in
        self.token_out = token_out
        self.reason = reason


class OptimizationFailure(ArbOptError):
    """The primary optimization path failed; the orchestrator falls back."""


__all__ = [
    "ArbOptError",
    "ConfigurationError",
    "DataUnavailable",
    "NoRouteFound",
    "OptimizationFailure",
]
