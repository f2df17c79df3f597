"""Collector for Ballotpedia contest pages.

One page per contest: every Senate seat up in the cycle (regular and
special) and every House district of every seeded state. Pages carry no
stable candidate id and only a coarse party marker, so records are
merged with the natural-key policy at a lower confidence than the FEC.
A contest page that does not exist yet (404) yields no records; any
other failure on one contest is recorded on the run and the traversal
moves on to the next contest.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from candtrack.ballotpedia_parsing import (
    contest_url,
    extract_candidates,
    find_senate_class,
    house_slug,
    senate_slug,
)
from candtrack.collectors import register_collector
from candtrack.collectors.base import BaseCollector
from candtrack.db import get_states
from candtrack.http import RetryPolicy
from candtrack.models import CandidateDraft, ElectionType, Office
from candtrack.normalize import normalize_ballotpedia_entry
from candtrack.reference import (
    regular_senate_class,
    regular_senate_states,
    special_senate_elections,
)

logger = logging.getLogger(__name__)

BALLOTPEDIA_DELAY_S: float = 2.0
BALLOTPEDIA_CONFIDENCE: float = 0.70


@dataclass(frozen=True)
class Contest:
    """One Ballotpedia contest page to scrape.

    Attributes:
        state_code: Two-letter state code.
        state_name: Full state name, used in the page slug.
        office: Senate or House.
        district: House district (0 for at-large), None for Senate.
        election_type: Regular or special.
        senate_class: Class of the Senate seat, if known.
    """

    state_code: str
    state_name: str
    office: Office
    district: int | None = None
    election_type: ElectionType = ElectionType.REGULAR
    senate_class: int | None = None

    def slug(self, cycle: int) -> str:
        if self.office is Office.SENATE:
            return senate_slug(
                self.state_name,
                cycle,
                special=self.election_type is ElectionType.SPECIAL,
            )
        return house_slug(self.state_name, self.district or 0, cycle)

    def label(self) -> str:
        if self.office is Office.HOUSE:
            return f"{self.state_code}-{self.district}"
        kind = " special" if self.election_type is ElectionType.SPECIAL else ""
        return f"{self.state_code} Senate{kind}"


class BallotpediaCollector(BaseCollector[Contest]):
    """Scrapes candidate names from Ballotpedia contest pages."""

    source_name = "ballotpedia"
    confidence = BALLOTPEDIA_CONFIDENCE
    delay_s = BALLOTPEDIA_DELAY_S
    retry = RetryPolicy(max_attempts=3, backoff_s=4.0, exponential=True)
    query_failures_fatal = False

    def build_queries(self, conn: sqlite3.Connection) -> list[Contest]:
        """List every contest page for the cycle from the states table.

        Args:
            conn: Database connection with the states table seeded.

        Returns:
            Senate contests followed by House contests, per state.
        """
        senate_states = set(regular_senate_states(self.cycle))
        senate_class = regular_senate_class(self.cycle)
        specials = special_senate_elections(self.cycle)

        states = get_states(conn)
        if not states:
            logger.warning("States table is empty; run the seed stage first.")

        contests: list[Contest] = []
        for row in states:
            code, name, seats = row["code"], row["name"], row["house_seats"]
            if code in senate_states:
                contests.append(
                    Contest(code, name, Office.SENATE, senate_class=senate_class)
                )
            if code in specials:
                contests.append(
                    Contest(
                        code,
                        name,
                        Office.SENATE,
                        election_type=ElectionType.SPECIAL,
                        senate_class=specials[code],
                    )
                )
            districts = [0] if seats == 1 else range(1, seats + 1)
            for district in districts:
                contests.append(Contest(code, name, Office.HOUSE, district=district))
        return contests

    def fetch_records(self, query: Contest) -> list[dict[str, Any]]:
        """Fetch one contest page and extract its candidates.

        Returns:
            Candidate entries annotated with the contest context, or an
            empty list when the page does not exist yet.

        Raises:
            FetchError: On exhausted retries or an unexpected status.
        """
        url = contest_url(query.slug(self.cycle))
        logger.debug("Fetching %s", url)
        soup = self.client.fetch_soup(url)
        if soup is None:
            logger.info("No Ballotpedia page yet for %s", query.label())
            return []

        senate_class: str | int | None = query.senate_class
        if query.office is Office.SENATE and senate_class is None:
            senate_class = find_senate_class(soup)

        return [
            {
                **entry,
                "state": query.state_code,
                "office": query.office.value,
                "district": query.district,
                "senate_class": senate_class,
                "election_type": query.election_type.value,
                "election_date": self.election_date,
                "url": url,
            }
            for entry in extract_candidates(soup)
        ]

    def normalize(self, raw: Mapping[str, Any], query: Contest) -> CandidateDraft:
        return normalize_ballotpedia_entry(raw, self.confidence)

    def describe_query(self, query: Contest) -> str:
        return query.label()


register_collector("ballotpedia", BallotpediaCollector)
