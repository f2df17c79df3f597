"""Collector for the OpenFEC ``/candidates`` listing.

The FEC is the only provider with a stable candidate id, so its records
are merged with the provider-id policy. Listings are paginated per
office (Senate, House) and filtered to currently active filings for the
cycle.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Mapping
from typing import Any

from candtrack.collectors import register_collector
from candtrack.collectors.base import BaseCollector
from candtrack.errors import ConfigError
from candtrack.http import FetchClient, RetryPolicy
from candtrack.models import CandidateDraft
from candtrack.normalize import normalize_fec_candidate
from candtrack.pagination import PageQuery, iter_records

FEC_BASE_URL = "https://api.open.fec.gov/v1"
FEC_DELAY_S: float = 0.5
FEC_CONFIDENCE: float = 0.85
FEC_PER_PAGE = 100

# FEC office code -> label
FEC_OFFICES: dict[str, str] = {"S": "Senate", "H": "House"}


class FecCollector(BaseCollector[PageQuery]):
    """Collects active Senate and House filings from the FEC."""

    source_name = "fec"
    confidence = FEC_CONFIDENCE
    delay_s = FEC_DELAY_S
    retry = RetryPolicy(max_attempts=3, backoff_s=2.0, exponential=False)

    def build_client(self) -> FetchClient:
        """Create a client that sends the API key as a header, never in the URL."""
        headers = {"X-Api-Key": self.config.fec_api_key} if self.config.fec_api_key else None
        return FetchClient(self.delay_s, retry=self.retry, headers=headers)

    def check_ready(self) -> None:
        if not self.config.fec_api_key:
            raise ConfigError(
                "FEC_API_KEY is required; get one at https://api.open.fec.gov/developers/"
            )

    def build_queries(self, conn: sqlite3.Connection) -> list[PageQuery]:
        """One paginated listing per office.

        Args:
            conn: Database connection (unused; the FEC scope is national).

        Returns:
            Senate and House listing queries.
        """
        return [
            PageQuery(
                url=f"{FEC_BASE_URL}/candidates/",
                params={
                    "election_year": self.cycle,
                    "office": code,
                    "candidate_status": "C",
                    "sort": "name",
                    "per_page": FEC_PER_PAGE,
                },
                label=f"FEC {label}",
            )
            for code, label in FEC_OFFICES.items()
        ]

    def fetch_records(self, query: PageQuery) -> Iterator[dict[str, Any]]:
        return iter_records(self.client, query)

    def normalize(self, raw: Mapping[str, Any], query: PageQuery) -> CandidateDraft:
        return normalize_fec_candidate(raw, self.election_date, self.confidence)

    def describe_query(self, query: PageQuery) -> str:
        return query.label

    def describe_record(self, raw: Mapping[str, Any], query: PageQuery) -> str:
        return f"{raw.get('state', '')} {raw.get('office', '')} {raw.get('name', '')}".strip()


register_collector("fec", FecCollector)
