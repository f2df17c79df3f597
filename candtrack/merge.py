"""Canonical merge engine: upsert candidate drafts into the store.

Two policies sit behind one interface. Drafts carrying a provider-issued
id are upserted on that id; drafts without one are inserted against the
natural key (election, full name) and left alone on conflict. The
natural-key policy does not detect differently spelled duplicates of the
same person; a stronger no-id policy can replace it through
``MergeEngine(no_id_policy=...)`` without touching collectors.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from collections.abc import Callable
from typing import Any, Protocol

import orjson

from candtrack.errors import MergeError
from candtrack.models import CandidateDraft, MergeResult, Office, utc_now

logger = logging.getLogger(__name__)

_INSERT_COLUMNS = """\
    (election_id, provider_id, full_name, first_name, last_name, party,
     state, office, district, senate_class, incumbent, status,
     election_type, election_date, ballotpedia_url, data_confidence,
     data_sources, last_verified, updated_at)
VALUES
    (:election_id, :provider_id, :full_name, :first_name, :last_name, :party,
     :state, :office, :district, :senate_class, :incumbent, :status,
     :election_type, :election_date, :source_url, :data_confidence,
     :data_sources, :now, :now)
"""

# Identity fields only move to a strictly more trusted source's values.
_PROVIDER_ID_UPSERT = f"""\
INSERT INTO candidates
{_INSERT_COLUMNS}
ON CONFLICT(provider_id) WHERE provider_id IS NOT NULL DO UPDATE SET
    full_name = CASE WHEN excluded.data_confidence > candidates.data_confidence
                     THEN excluded.full_name ELSE candidates.full_name END,
    first_name = CASE WHEN excluded.data_confidence > candidates.data_confidence
                      THEN excluded.first_name ELSE candidates.first_name END,
    last_name = CASE WHEN excluded.data_confidence > candidates.data_confidence
                     THEN excluded.last_name ELSE candidates.last_name END,
    party = CASE WHEN excluded.data_confidence > candidates.data_confidence
                 THEN excluded.party ELSE candidates.party END,
    status = excluded.status,
    data_confidence = MAX(candidates.data_confidence, excluded.data_confidence),
    data_sources = CASE
        WHEN EXISTS (SELECT 1 FROM json_each(candidates.data_sources)
                     WHERE value = :source)
        THEN candidates.data_sources
        ELSE json_insert(candidates.data_sources, '$[#]', :source) END,
    merge_count = candidates.merge_count + 1,
    last_verified = excluded.last_verified,
    updated_at = excluded.updated_at
RETURNING candidate_id, merge_count
"""

_NATURAL_KEY_INSERT = f"""\
INSERT INTO candidates
{_INSERT_COLUMNS}
ON CONFLICT DO NOTHING
RETURNING candidate_id
"""


def validate_draft(draft: CandidateDraft, election_id: int | None) -> int:
    """Reject drafts that cannot be stored.

    Returns:
        The election id, now known not to be None.

    Raises:
        MergeError: On a missing election, an empty name, a confidence
            outside [0, 1], or a House seat without a district.
    """
    if election_id is None:
        raise MergeError("Draft has no resolved election")
    if not draft.full_name.strip():
        raise MergeError("Draft has an empty full name")
    confidence = draft.data_confidence
    if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
        raise MergeError(f"data_confidence {confidence!r} outside [0, 1]")
    if draft.office is Office.HOUSE and draft.district is None:
        raise MergeError("House draft has no district")
    return election_id


def _params(draft: CandidateDraft, election_id: int, now: str) -> dict[str, Any]:
    return {
        "election_id": election_id,
        "provider_id": draft.provider_id,
        "full_name": draft.full_name,
        "first_name": draft.first_name,
        "last_name": draft.last_name,
        "party": draft.party.value,
        "state": draft.state,
        "office": draft.office.value,
        "district": draft.district,
        "senate_class": draft.senate_class,
        "incumbent": int(draft.incumbent),
        "status": draft.status.value,
        "election_type": draft.election_type.value,
        "election_date": draft.election_date,
        "source_url": draft.source_url or None,
        "data_confidence": draft.data_confidence,
        "data_sources": orjson.dumps([draft.source]).decode(),
        "source": draft.source,
        "now": now,
    }


class MergePolicy(Protocol):
    """Strategy used by the merge engine for one family of drafts."""

    def upsert(
        self,
        conn: sqlite3.Connection,
        draft: CandidateDraft,
        election_id: int,
        now: str,
    ) -> MergeResult: ...


class ProviderIdPolicy:
    """Upsert keyed on an immutable provider-issued id."""

    def upsert(
        self,
        conn: sqlite3.Connection,
        draft: CandidateDraft,
        election_id: int,
        now: str,
    ) -> MergeResult:
        # fetchall steps the RETURNING statement to completion before commit
        row = conn.execute(
            _PROVIDER_ID_UPSERT, _params(draft, election_id, now)
        ).fetchall()[0]
        return MergeResult(candidate_id=row[0], inserted=row[1] == 1)


class NaturalKeyPolicy:
    """Insert-only against (election, full name); conflicts are no-ops."""

    def upsert(
        self,
        conn: sqlite3.Connection,
        draft: CandidateDraft,
        election_id: int,
        now: str,
    ) -> MergeResult:
        rows = conn.execute(
            _NATURAL_KEY_INSERT, _params(draft, election_id, now)
        ).fetchall()
        if rows:
            return MergeResult(candidate_id=rows[0][0], inserted=True)

        existing = conn.execute(
            """\
            SELECT candidate_id FROM candidates
            WHERE election_id = ? AND full_name = ? AND provider_id IS NULL
            """,
            (election_id, draft.full_name),
        ).fetchone()
        return MergeResult(
            candidate_id=existing[0] if existing else None,
            inserted=False,
        )


class MergeEngine:
    """Single write path for canonical candidates.

    Args:
        conn: Open database connection.
        id_policy: Policy for drafts with a provider id.
        no_id_policy: Policy for drafts without one.
        clock: Returns the timestamp stamped on written rows.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        id_policy: MergePolicy | None = None,
        no_id_policy: MergePolicy | None = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self._conn = conn
        self._id_policy = id_policy or ProviderIdPolicy()
        self._no_id_policy = no_id_policy or NaturalKeyPolicy()
        self._clock = clock

    def upsert(self, draft: CandidateDraft, election_id: int | None) -> MergeResult:
        """Merge *draft* into the canonical store as one transaction.

        Args:
            draft: Normalized candidate attached to its election.
            election_id: Resolved election primary key.

        Returns:
            The touched candidate id and whether the row was new.

        Raises:
            MergeError: If the draft is structurally invalid.
        """
        election_id = validate_draft(draft, election_id)
        policy = self._id_policy if draft.provider_id else self._no_id_policy
        with self._conn:
            result = policy.upsert(self._conn, draft, election_id, self._clock())
        logger.debug(
            "%s %s (%s) in election %d",
            "Inserted" if result.inserted else "Merged",
            draft.full_name,
            draft.source,
            election_id,
        )
        return result
