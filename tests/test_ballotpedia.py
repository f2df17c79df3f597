"""Tests for Ballotpedia page parsing and the Ballotpedia collector."""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock, patch

import pytest
from bs4 import BeautifulSoup

from candtrack.ballotpedia_parsing import (
    extract_candidates,
    find_senate_class,
    house_slug,
    ordinal,
    parse_candidate_cell,
    senate_slug,
)
from candtrack.collectors.ballotpedia import BallotpediaCollector, Contest
from candtrack.collectors.base import CollectorConfig
from candtrack.db import init_schema, open_db, seed_reference
from candtrack.errors import FetchError
from candtrack.models import ElectionType, Office, RunStatus


def _make_soup(html: str) -> BeautifulSoup:
    """Create a BeautifulSoup from raw HTML."""
    return BeautifulSoup(html, "html.parser")


VOTEBOX_HTML = """
<html><body>
<p>This is a Class II seat.</p>
<table class="votebox-results">
<tr><td class="votebox-results-cell--text"><a href="/Jane_Smith">Jane Smith</a> (D)</td></tr>
<tr><td class="votebox-results-cell--text"><u><a href="/John_Doe">John Doe</a></u> (R)</td></tr>
<tr><td class="votebox-results-cell--text"><a href="/Sam_Lee">Sam Lee</a> (i) (L)</td></tr>
<tr><td class="votebox-results-cell--text">Other/Write-in votes</td></tr>
</table>
<table class="votebox-results">
<tr><td class="votebox-results-cell--text"><a href="/Jane_Smith">Jane Smith</a> (D)</td></tr>
</table>
</body></html>
"""


@pytest.fixture()
def db() -> sqlite3.Connection:
    conn = open_db(":memory:")
    init_schema(conn)
    seed_reference(conn, 2026)
    return conn


class TestSlugs:
    """Tests for contest page slugs."""

    @pytest.mark.parametrize(
        ("n", "expected"),
        [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
         (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"), (101, "101st")],
    )
    def test_ordinal(self, n: int, expected: str) -> None:
        assert ordinal(n) == expected

    def test_senate(self) -> None:
        assert (
            senate_slug("New Hampshire", 2026)
            == "United_States_Senate_election_in_New_Hampshire,_2026"
        )

    def test_senate_special(self) -> None:
        assert (
            senate_slug("Ohio", 2026, special=True)
            == "United_States_Senate_special_election_in_Ohio,_2026"
        )

    def test_house(self) -> None:
        assert house_slug("Ohio", 3, 2026) == "Ohio's_3rd_Congressional_District_election,_2026"

    def test_house_at_large(self) -> None:
        assert (
            house_slug("Wyoming", 0, 2026)
            == "Wyoming's_At-Large_Congressional_District_election,_2026"
        )


class TestParsing:
    """Tests for candidate extraction from contest pages."""

    def test_votebox_candidates(self) -> None:
        results = extract_candidates(_make_soup(VOTEBOX_HTML))
        assert [r["name"] for r in results] == ["Jane Smith", "John Doe", "Sam Lee"]

    def test_party_and_incumbency(self) -> None:
        by_name = {r["name"]: r for r in extract_candidates(_make_soup(VOTEBOX_HTML))}
        assert by_name["Jane Smith"]["party"] == "D"
        assert by_name["Jane Smith"]["incumbent"] is False
        assert by_name["John Doe"]["incumbent"] is True
        assert by_name["Sam Lee"]["incumbent"] is True
        assert by_name["Sam Lee"]["party"] == "L"

    def test_candidate_list_fallback(self) -> None:
        html = """
        <div class="candidates">
          <ul>
            <li class="candidate"><a href="/Ann_Roe">Ann Roe</a> (R)</li>
            <li class="candidate">Ben Fox</li>
          </ul>
        </div>
        """
        results = extract_candidates(_make_soup(html))
        assert [r["name"] for r in results] == ["Ann Roe", "Ben Fox"]
        assert results[1]["party"] == ""

    def test_empty_cell(self) -> None:
        cell = _make_soup("<td></td>").find("td")
        assert parse_candidate_cell(cell) is None

    def test_senate_class(self) -> None:
        assert find_senate_class(_make_soup(VOTEBOX_HTML)) == "Class II"
        assert find_senate_class(_make_soup("<p>Nothing</p>")) == ""


class TestBuildQueries:
    def test_every_contest_listed(self, db: sqlite3.Connection) -> None:
        contests = BallotpediaCollector(client=MagicMock()).build_queries(db)
        senate = [c for c in contests if c.office is Office.SENATE]
        specials = [c for c in senate if c.election_type is ElectionType.SPECIAL]
        house = [c for c in contests if c.office is Office.HOUSE]
        assert len(senate) == 35
        assert {c.state_code for c in specials} == {"FL", "OH"}
        assert len(house) == 435
        assert Contest("WY", "Wyoming", Office.HOUSE, district=0) in house

    def test_labels(self) -> None:
        assert Contest("OH", "Ohio", Office.HOUSE, district=3).label() == "OH-3"
        special = Contest(
            "FL", "Florida", Office.SENATE, election_type=ElectionType.SPECIAL
        )
        assert special.label() == "FL Senate special"
        assert special.slug(2026).startswith("United_States_Senate_special_election_in_Florida")


class TestRun:
    """Tests for BallotpediaCollector.run."""

    def _collector(self, client: MagicMock) -> BallotpediaCollector:
        return BallotpediaCollector(CollectorConfig(cycle=2026), client=client)

    def test_pages_merged_and_missing_page_empty(self, db: sqlite3.Connection) -> None:
        client = MagicMock()
        client.fetch_soup.side_effect = [_make_soup(VOTEBOX_HTML), None]
        collector = self._collector(client)
        contests = [
            Contest("OH", "Ohio", Office.HOUSE, district=3),
            Contest("WY", "Wyoming", Office.HOUSE, district=0),
        ]

        with patch.object(collector, "build_queries", return_value=contests):
            run = collector.run(db)

        assert run.status is RunStatus.COMPLETED
        assert run.records_found == 3
        assert run.records_added == 3
        assert run.errors == []
        urls = [c.args[0] for c in client.fetch_soup.call_args_list]
        assert urls[0].endswith("Ohio's_3rd_Congressional_District_election,_2026")
        row = db.execute(
            "SELECT ballotpedia_url, data_confidence, provider_id FROM candidates "
            "WHERE full_name = 'John Doe'"
        ).fetchone()
        assert row["ballotpedia_url"] == urls[0]
        assert row["data_confidence"] == 0.70
        assert row["provider_id"] is None

    def test_contest_failure_recorded_and_skipped(self, db: sqlite3.Connection) -> None:
        client = MagicMock()
        client.fetch_soup.side_effect = [
            FetchError("https://ballotpedia.org/x", "HTTP 503 after 3 attempts"),
            _make_soup(VOTEBOX_HTML),
        ]
        collector = self._collector(client)
        contests = [
            Contest("OH", "Ohio", Office.HOUSE, district=3),
            Contest("TX", "Texas", Office.SENATE),
        ]

        with patch.object(collector, "build_queries", return_value=contests):
            run = collector.run(db)

        assert run.status is RunStatus.COMPLETED
        assert run.records_found == 3
        assert [e.context for e in run.errors] == ["OH-3"]
        senate_class = db.execute(
            "SELECT DISTINCT senate_class FROM candidates WHERE state = 'TX'"
        ).fetchall()
        assert [r[0] for r in senate_class] == [2]

    def test_rerun_adds_nothing(self, db: sqlite3.Connection) -> None:
        client = MagicMock()
        client.fetch_soup.side_effect = lambda url: _make_soup(VOTEBOX_HTML)
        contests = [Contest("OH", "Ohio", Office.HOUSE, district=3)]

        for _ in range(2):
            collector = self._collector(client)
            with patch.object(collector, "build_queries", return_value=contests):
                run = collector.run(db)

        assert run.records_added == 0
        assert run.records_updated == 3
        assert db.execute("SELECT COUNT(*) FROM candidates").fetchone()[0] == 3
