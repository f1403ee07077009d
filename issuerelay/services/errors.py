"""Error types shared by the sync core"""

from typing import Optional


class TrackerAPIError(Exception):
    """A tracker REST call answered with an HTTP error status."""

    def __init__(self, status_code: int, message: str, *, system: Optional[str] = None):
        super().__init__(f"{system or 'tracker'} API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.system = system


class StorageError(Exception):
    """The mapping store could not be read or written."""


class PayloadError(ValueError):
    """An inbound webhook body could not be decoded into a known event shape."""
