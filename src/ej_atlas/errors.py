"""Exceptions shared by the data fetchers."""


class DataUnavailableError(Exception):
    """Raised when an upstream source returns an error or no data."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")
