"""Page-by-page reader for providers with numbered listing endpoints."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from candtrack.http import FetchClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageQuery:
    """One paginated listing request.

    Attributes:
        url: Listing endpoint.
        params: Filter parameters sent with every page.
        start_page: First page to request (1-based).
        label: Short description used in logs and error context.
    """

    url: str
    params: Mapping[str, Any] = field(default_factory=dict)
    start_page: int = 1
    label: str = ""


def total_pages_from_pagination(payload: Mapping[str, Any]) -> int:
    """Read the page count from an OpenFEC-style ``pagination`` block."""
    pagination = payload.get("pagination") or {}
    try:
        return int(pagination.get("pages") or 0)
    except (TypeError, ValueError):
        return 0


def iter_records(
    client: FetchClient,
    query: PageQuery,
    results_key: str = "results",
    total_pages_of: Callable[[Mapping[str, Any]], int] = total_pages_from_pagination,
) -> Iterator[dict[str, Any]]:
    """Yield every record of a paginated listing, in page order.

    The total page count is taken from the first page fetched. Between
    pages the client's inter-request delay is observed. Any page failure
    propagates: a missing page cannot be skipped without losing records.

    Args:
        client: Fetch client for the provider.
        query: Endpoint, filters and starting page.
        results_key: Key of the result array in each page.
        total_pages_of: Extracts the total page count from a page payload.

    Yields:
        Raw provider records.

    Raises:
        FetchError: If any page fetch exhausts its retries.
    """
    page = query.start_page
    total_pages: int | None = None

    while total_pages is None or page <= total_pages:
        if total_pages is not None:
            client.pause()
        params = {**query.params, "page": page}
        payload = client.fetch_json(query.url, params)
        if total_pages is None:
            total_pages = total_pages_of(payload)
        results = payload.get(results_key) or []
        logger.info(
            "%s page %d/%d: %d records",
            query.label or query.url,
            page,
            total_pages,
            len(results),
        )
        yield from results
        page += 1
