"""Exception types raised by the indexer."""


class MeilidownError(Exception):
    """Base class for indexer errors."""


class ConfigurationError(MeilidownError):
    """Settings are missing or malformed. Only raised at startup."""


class RepositorySyncError(MeilidownError):
    """A repository source could not be cloned or pulled."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Failed to update repository {location}: {reason}")


class IndexUnavailableError(MeilidownError):
    """The index service reported an unhealthy status."""
