"""Abstract base class for source collectors.

Subclasses supply the provider's queries, record fetching and field
normalization. The shared ``run`` method owns the ledger lifecycle and
the per-record normalize -> resolve -> merge sequence.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from tqdm import tqdm

from candtrack.errors import FetchError
from candtrack.http import FetchClient, RetryPolicy
from candtrack.ledger import RunLedger
from candtrack.merge import MergeEngine
from candtrack.models import (
    DEFAULT_CYCLE,
    CandidateDraft,
    CollectionRun,
    Office,
    RecordResult,
)
from candtrack.reference import general_election_date
from candtrack.resolver import ElectionResolver

logger = logging.getLogger(__name__)

Q = TypeVar("Q")


@dataclass(frozen=True)
class CollectorConfig:
    """Settings shared by every collector.

    Attributes:
        cycle: Election year to collect.
        fec_api_key: OpenFEC credential; only the FEC collector needs it.
    """

    cycle: int = DEFAULT_CYCLE
    fec_api_key: str = ""


def describe_draft(draft: CandidateDraft) -> str:
    """Short "STATE office[-district] NAME" context for logs and errors."""
    seat = draft.office.value
    if draft.office is Office.HOUSE and draft.district is not None:
        seat = f"{seat}-{draft.district}"
    return f"{draft.state} {seat} {draft.full_name}".strip()


class BaseCollector(ABC, Generic[Q]):
    """Base class for all provider collectors.

    Args:
        config: Shared collector settings.
        client: Optional pre-built fetch client (injected in tests).
    """

    source_name: str
    confidence: float
    delay_s: float
    retry: RetryPolicy = RetryPolicy()
    # When False, a query whose fetch fails is logged to the run and skipped.
    query_failures_fatal: bool = True

    def __init__(
        self,
        config: CollectorConfig | None = None,
        client: FetchClient | None = None,
    ) -> None:
        self.config = config or CollectorConfig()
        self.cycle = self.config.cycle
        self.election_date = general_election_date(self.cycle)
        self.client = client or self.build_client()

    def build_client(self) -> FetchClient:
        """Create the provider's fetch client."""
        return FetchClient(self.delay_s, retry=self.retry)

    def check_ready(self) -> None:
        """Raise ConfigError if a required setting is missing."""

    @abstractmethod
    def build_queries(self, conn: sqlite3.Connection) -> list[Q]:
        """Return the provider queries covering the collector's scope."""

    @abstractmethod
    def fetch_records(self, query: Q) -> Iterable[Mapping[str, Any]]:
        """Fetch the raw provider records for one query."""

    @abstractmethod
    def normalize(self, raw: Mapping[str, Any], query: Q) -> CandidateDraft:
        """Convert one raw record into a candidate draft."""

    def describe_query(self, query: Q) -> str:
        return str(query)

    def describe_record(self, raw: Mapping[str, Any], query: Q) -> str:
        return f"{self.describe_query(query)} {raw.get('name', '')}".strip()

    def process_record(
        self,
        raw: Any,
        query: Q,
        resolver: ElectionResolver,
        merger: MergeEngine,
    ) -> RecordResult:
        """Normalize, resolve and merge one record.

        Exceptions are converted into a failed result carrying the
        record's context, except store-level operational errors, which
        abort the run. A record that is not an object fails with
        the query as its context.

        Returns:
            The record's outcome for the ledger.
        """
        context = self.describe_query(query)
        if not isinstance(raw, Mapping):
            logger.warning("Malformed record in %s: %r", context, raw)
            return RecordResult.failed(
                f"Malformed record: expected an object, got {type(raw).__name__}",
                context,
            )
        try:
            context = self.describe_record(raw, query)
            draft = self.normalize(raw, query)
            context = describe_draft(draft)
            election = resolver.resolve(
                draft.state,
                draft.office,
                draft.district,
                draft.senate_class,
                election_type=draft.election_type,
                election_date=draft.election_date,
            )
            if election is None:
                logger.warning("No election found for %s", context)
                return RecordResult.skipped("No matching election", context)
            result = merger.upsert(draft.attach(election), election.election_id)
        except sqlite3.OperationalError:
            raise
        except Exception as exc:
            logger.warning("Error processing %s: %s", context, exc)
            return RecordResult.failed(str(exc) or type(exc).__name__, context)
        return RecordResult.merged(result)

    def run(self, conn: sqlite3.Connection) -> CollectionRun:
        """Run a full collection and return the finalized ledger entry.

        Args:
            conn: Open database connection.

        Returns:
            The completed run.

        Raises:
            Exception: Any run-fatal error, re-raised after the run has
                been finalized as failed.
        """
        ledger = RunLedger(conn)
        run = ledger.start(self.source_name)
        resolver = ElectionResolver(conn)
        merger = MergeEngine(conn)

        try:
            self.check_ready()
            queries = self.build_queries(conn)
            logger.info(
                "Collecting %s %d: %d queries.",
                self.source_name,
                self.cycle,
                len(queries),
            )
            for query in tqdm(
                queries,
                desc=f"Collecting {self.source_name} {self.cycle}",
                unit="query",
            ):
                self._collect_query(query, run, ledger, resolver, merger)
        except Exception as exc:
            logger.error("%s collection failed: %s", self.source_name, exc)
            try:
                ledger.fail(run, exc)
            except sqlite3.Error as ledger_exc:
                logger.error("Could not record failed run: %s", ledger_exc)
            raise

        return ledger.complete(run)

    def _collect_query(
        self,
        query: Q,
        run: CollectionRun,
        ledger: RunLedger,
        resolver: ElectionResolver,
        merger: MergeEngine,
    ) -> None:
        try:
            for raw in self.fetch_records(query):
                ledger.record(run, self.process_record(raw, query, resolver, merger))
        except FetchError as exc:
            if self.query_failures_fatal:
                raise
            context = self.describe_query(query)
            logger.error("Failed to fetch %s: %s", context, exc)
            ledger.add_error(run, str(exc), context)
