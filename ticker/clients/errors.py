"""Client error types."""


class FeedUnavailableError(Exception):
    """The price source was unreachable or returned malformed data.

    Recoverable: the refresh loop skips the affected asset for the current
    tick and keeps its previous signal.
    """

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")
