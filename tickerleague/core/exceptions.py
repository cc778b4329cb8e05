"""Custom exceptions for the league engine.

Pure computations (return calculation, lineup validation, scheduling) raise
these directly. The settlement engine catches them and reports a structured
outcome instead, so timers and on-demand triggers can log the reason and retry
later without special-casing.
"""


class LeagueError(Exception):
    """Base exception for league engine errors."""


class ValidationError(LeagueError):
    """Raised for malformed input such as an invalid lineup."""


class MissingPriceData(LeagueError):
    """Raised when a ticker required for a return has no weekly price."""

    def __init__(self, ticker: str, message: str | None = None):
        self.ticker = ticker
        super().__init__(message or f"Missing weekly prices for {ticker}.")


class InvalidPriceData(LeagueError):
    """Raised when a price is non-finite or the entry price is not positive."""


class AuthorizationError(LeagueError):
    """Raised when the caller is not a member of the league in question."""


class NotFoundError(LeagueError):
    """Raised when a league, week or participant does not exist."""


class ConfigurationError(LeagueError):
    """Raised for configuration errors."""
