"""Resolve a normalized seat to its canonical election row.

Regular elections are expected to be seeded ahead of time, special
elections are created lazily. Creation goes through ``INSERT ... ON
CONFLICT DO NOTHING`` followed by a re-select, so two collectors racing
to create the same contest converge on one row.
"""

from __future__ import annotations

import logging
import sqlite3

from candtrack.db import insert_election
from candtrack.models import Election, ElectionType, Office

logger = logging.getLogger(__name__)


def _row_to_election(row: sqlite3.Row) -> Election:
    return Election(
        state=row["state"],
        office=Office(row["office"]),
        district=row["district"],
        senate_class=row["senate_class"],
        election_type=ElectionType(row["election_type"]),
        election_date=row["election_date"],
        election_id=row["election_id"],
    )


class ElectionResolver:
    """Map (state, office, district, senate class) to an election.

    Args:
        conn: Open database connection.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def find(
        self,
        state: str,
        office: Office,
        district: int | None,
        election_type: ElectionType | None = None,
    ) -> Election | None:
        """Return the most recent election for the seat, if any.

        Args:
            state: Two-letter state code.
            office: Office contested.
            district: House district, None for statewide offices.
            election_type: Restrict to this contest type when given.
        """
        query = """\
            SELECT election_id, state, office, district, senate_class,
                   election_type, election_date
            FROM elections
            WHERE state = ? AND office = ? AND district IS ?
        """
        params: list[str | int | None] = [state, office.value, district]
        if election_type is not None:
            query += " AND election_type = ?"
            params.append(election_type.value)
        query += " ORDER BY election_date DESC, election_id DESC LIMIT 1"
        row = self._conn.execute(query, params).fetchone()
        return _row_to_election(row) if row else None

    def resolve(
        self,
        state: str,
        office: Office,
        district: int | None,
        senate_class: int | None,
        *,
        election_type: ElectionType,
        election_date: str,
    ) -> Election | None:
        """Find the seat's election, creating it when allowed.

        Lookup order:
          1. Existing election for (state, office, district); for a
             special election only special contests match.
          2. Special election missing: insert it with the given date,
             then re-select.
          3. Regular election missing: same insert-or-find, but only for
             seats present in the states reference data.
          4. Otherwise None; the caller records the record as skipped.

        Args:
            state: Two-letter state code.
            office: Office contested.
            district: House district, None for statewide offices.
            senate_class: Senate class hint used when creating a contest.
            election_type: Contest type hint used when creating.
            election_date: ISO date hint used when creating.

        Returns:
            The resolved election, or None.
        """
        special = election_type is ElectionType.SPECIAL
        type_filter = ElectionType.SPECIAL if special else None

        election = self.find(state, office, district, type_filter)
        if election is not None:
            return election

        if not election_date or not self._can_create(
            state, office, district, senate_class, special
        ):
            return None

        with self._conn:
            created = insert_election(
                self._conn,
                state,
                office.value,
                district,
                senate_class if office is Office.SENATE else None,
                election_type.value,
                election_date,
            )
        if created:
            logger.info(
                "Created %s %s election for %s %s",
                election_type.value,
                office.value,
                state,
                "" if district is None else district,
            )
        return self.find(state, office, district, type_filter)

    def _can_create(
        self,
        state: str,
        office: Office,
        district: int | None,
        senate_class: int | None,
        special: bool,
    ) -> bool:
        row = self._conn.execute(
            "SELECT house_seats FROM states WHERE code = ?", (state,)
        ).fetchone()
        if row is None:
            return False

        if office is Office.HOUSE:
            if district is None:
                return False
            seats: int = row["house_seats"]
            if seats == 1:
                return district == 0
            return 1 <= district <= seats

        if office is Office.SENATE and not special:
            return senate_class is not None
        return True
