class RobotrieError(Exception):
    """Base class for robotrie errors."""


class RobotsFetchError(RobotrieError):
    """robots.txt could not be downloaded after all retries."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
