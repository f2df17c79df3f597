"""Shared data containers for the candtrack pipeline."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from enum import Enum


class Party(str, Enum):
    """Canonical party affiliation."""

    DEMOCRATIC = "democratic"
    REPUBLICAN = "republican"
    LIBERTARIAN = "libertarian"
    GREEN = "green"
    CONSTITUTION = "constitution"
    INDEPENDENT = "independent"
    NO_PARTY = "no_party"
    OTHER = "other"


class Office(str, Enum):
    SENATE = "senate"
    HOUSE = "house"
    GOVERNOR = "governor"


class CandidateStatus(str, Enum):
    DECLARED = "declared"
    FILED = "filed"
    QUALIFIED = "qualified"
    EXPLORATORY = "exploratory"
    WITHDRAWN = "withdrawn"
    WON = "won"
    LOST = "lost"
    RUNOFF = "runoff"


class ElectionType(str, Enum):
    REGULAR = "regular"
    SPECIAL = "special"
    PRIMARY = "primary"
    RUNOFF = "runoff"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(str, Enum):
    """What happened to one provider record during a run."""

    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class Election:
    """A canonical contest for one seat.

    Attributes:
        state: Two-letter state code.
        office: Office contested.
        district: House district (0 for at-large), None otherwise.
        senate_class: Senate class 1-3, None for non-Senate contests.
        election_type: Regular, special, primary or runoff.
        election_date: ISO date of the election.
        election_id: Database primary key (set after insertion).
    """

    state: str
    office: Office
    district: int | None
    senate_class: int | None
    election_type: ElectionType
    election_date: str
    election_id: int | None = None


@dataclass
class CandidateDraft:
    """A normalized candidate record, ready for election resolution and merge.

    Attributes:
        source: Provider name (e.g. "fec", "ballotpedia").
        full_name: Display name.
        first_name: Given name, empty when it cannot be inferred.
        last_name: Family name.
        party: Canonical party.
        state: Two-letter state code.
        office: Office sought.
        district: House district, None for statewide offices or when
            unparsable.
        senate_class: Senate class, None when unknown.
        incumbent: Whether the candidate holds the seat.
        status: Candidacy status.
        election_type: Contest type the record belongs to.
        election_date: ISO date of the contest.
        data_confidence: Source trust score in [0, 1].
        provider_id: Immutable provider-issued id, None for sources
            without one.
        source_url: Page the record was taken from, if any.
    """

    source: str
    full_name: str
    first_name: str
    last_name: str
    party: Party
    state: str
    office: Office
    district: int | None
    senate_class: int | None
    incumbent: bool
    status: CandidateStatus
    election_type: ElectionType
    election_date: str
    data_confidence: float
    provider_id: str | None = None
    source_url: str = ""

    def attach(self, election: Election) -> CandidateDraft:
        """Return a copy whose seat fields agree with *election*."""
        senate_class = None
        if election.office is Office.SENATE:
            senate_class = (
                election.senate_class
                if election.senate_class is not None
                else self.senate_class
            )
        return replace(
            self,
            state=election.state,
            office=election.office,
            district=election.district,
            senate_class=senate_class,
            election_type=election.election_type,
            election_date=election.election_date,
        )


@dataclass
class MergeResult:
    """Outcome of one canonical upsert."""

    candidate_id: int | None
    inserted: bool


@dataclass
class RunError:
    """One entry in a collection run's error list."""

    message: str
    context: str = ""


@dataclass
class RecordResult:
    """Per-record result aggregated into the run ledger.

    Attributes:
        outcome: Added, updated, skipped or failed.
        error: Error entry for skipped and failed records.
        candidate_id: Canonical candidate touched, if any.
    """

    outcome: Outcome
    error: RunError | None = None
    candidate_id: int | None = None

    @classmethod
    def merged(cls, result: MergeResult) -> RecordResult:
        outcome = Outcome.ADDED if result.inserted else Outcome.UPDATED
        return cls(outcome=outcome, candidate_id=result.candidate_id)

    @classmethod
    def skipped(cls, message: str, context: str) -> RecordResult:
        return cls(outcome=Outcome.SKIPPED, error=RunError(message, context))

    @classmethod
    def failed(cls, message: str, context: str) -> RecordResult:
        return cls(outcome=Outcome.FAILED, error=RunError(message, context))


@dataclass
class CollectionRun:
    """One execution of a source collector, as tracked in the ledger.

    Attributes:
        source: Provider name.
        run_id: Database primary key (set by the ledger).
        status: Lifecycle state.
        started_at: ISO timestamp of the run start.
        completed_at: ISO timestamp of finalization.
        records_found: Records seen from the provider.
        records_added: Newly inserted canonical candidates.
        records_updated: Existing canonical candidates touched.
        duration_ms: Wall-clock duration, set on finalization.
        errors: Ordered error entries.
    """

    source: str
    run_id: int | None = None
    status: RunStatus = RunStatus.RUNNING
    started_at: str = ""
    completed_at: str | None = None
    records_found: int = 0
    records_added: int = 0
    records_updated: int = 0
    duration_ms: int | None = None
    errors: list[RunError] = field(default_factory=list)


# Default database filename
DB_FILENAME = "candtrack.db"

# Default election cycle
DEFAULT_CYCLE = 2026


def utc_now() -> str:
    """Current UTC time as ISO-8601 text, the format stored in the database."""
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds")
