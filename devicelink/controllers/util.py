"""Helpers for :mod:`devicelink.controllers`."""

from typing import Any, Tuple

from ..exceptions import DeviceLinkError, RateLimited

ResponseData = Tuple[dict, int, dict]

RATE_LIMITED = 'Rate limit exceeded. Please try again later.'


def failure(error: DeviceLinkError) -> ResponseData:
    """Render a handled failure as response data."""
    data = {'success': False, 'error': error.kind, 'reason': error.reason}
    return data, int(error.status_code), {}


def enforce_limit(components: Any, operation: str, identifier: str,
                  limit: Tuple[int, int]) -> None:
    """
    Count a request against a configured limit.

    Raises
    ------
    :class:`.RateLimited`
    """
    requests, window = limit
    if not components.limiter.allow_for(operation, identifier, requests,
                                        window):
        raise RateLimited(RATE_LIMITED)
