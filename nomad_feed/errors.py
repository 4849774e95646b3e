"""Exception types raised by the realtime feed."""

from __future__ import annotations

from typing import Optional


class RealtimeFeedError(Exception):
    """Base class for feed errors."""


class UnknownCityError(RealtimeFeedError, LookupError):
    """The city identifier is not in the coordinate table."""

    def __init__(self, city_id: str) -> None:
        super().__init__(f"City not found: {city_id}")
        self.city_id = city_id


class UpstreamError(RealtimeFeedError):
    """The upstream provider could not produce a reading.

    Covers a missing credential, network failures and timeouts, non-2xx
    responses, and bodies that do not have the expected shape.
    """

    def __init__(self, kind: str, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
