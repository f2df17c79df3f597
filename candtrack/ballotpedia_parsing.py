"""Ballotpedia contest page parsing utilities.

Ballotpedia publishes one page per contest. Candidates appear in
``votebox`` result tables (one cell per candidate: linked name followed
by a party marker such as "(D)") and, on pages without results yet, in
list items whose class mentions ``candidate``. Incumbents are
underlined or suffixed with "(i)". None of this carries a stable id.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

BASE_URL = "https://ballotpedia.org"

# ── Compiled patterns ──────────────────────────────────────────────────────

PARTY_MARKER_RE = re.compile(r"\(([A-Za-z][A-Za-z .]*)\)\s*$")
INCUMBENT_MARKER_RE = re.compile(r"\(i\)", re.IGNORECASE)
CANDIDATE_CLASS_RE = re.compile(r"candidate", re.IGNORECASE)
SENATE_CLASS_TEXT_RE = re.compile(r"\bClass\s+(?:III|II|I|[123])\b")
NON_CANDIDATE_RE = re.compile(r"write-in|other/|^other$|^none of these", re.IGNORECASE)

MIN_NAME_LEN = 3
MAX_NAME_LEN = 100


def ordinal(n: int) -> str:
    """Return *n* with its English ordinal suffix ("1st", "22nd", "13th")."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def senate_slug(state_name: str, cycle: int, special: bool = False) -> str:
    """Build the page slug of a Senate contest.

    Example: ``United_States_Senate_election_in_Texas,_2026``.
    """
    kind = "special_election" if special else "election"
    return f"United_States_Senate_{kind}_in_{state_name.replace(' ', '_')},_{cycle}"


def house_slug(state_name: str, district: int, cycle: int) -> str:
    """Build the page slug of a House contest; district 0 is at-large.

    Example: ``Ohio's_3rd_Congressional_District_election,_2026``.
    """
    state = state_name.replace(" ", "_")
    seat = "At-Large" if district == 0 else ordinal(district)
    return f"{state}'s_{seat}_Congressional_District_election,_{cycle}"


def contest_url(slug: str) -> str:
    return f"{BASE_URL}/{slug}"


def _clean_name(text: str) -> str:
    text = INCUMBENT_MARKER_RE.sub("", text)
    text = PARTY_MARKER_RE.sub("", text)
    return re.sub(r"\s+", " ", text).strip(" ,")


def _is_plausible_name(name: str) -> bool:
    if not MIN_NAME_LEN <= len(name) < MAX_NAME_LEN:
        return False
    return not NON_CANDIDATE_RE.search(name)


def parse_candidate_cell(cell: Tag) -> dict[str, str | bool] | None:
    """Extract one candidate from a votebox cell or candidate list item.

    Args:
        cell: The element holding the candidate's name and party marker.

    Returns:
        Dict with keys ``name``, ``party`` and ``incumbent``; or None if
        the element does not hold a plausible candidate.
    """
    text = cell.get_text(" ", strip=True)
    if not text:
        return None

    link = cell.find("a")
    raw_name = link.get_text(" ", strip=True) if isinstance(link, Tag) else text
    name = _clean_name(raw_name)
    if not _is_plausible_name(name):
        return None

    party = ""
    m = PARTY_MARKER_RE.search(INCUMBENT_MARKER_RE.sub("", text).strip())
    if m:
        party = m.group(1).strip()

    incumbent = bool(INCUMBENT_MARKER_RE.search(text)) or cell.find("u") is not None
    return {"name": name, "party": party, "incumbent": incumbent}


def extract_candidates(soup: BeautifulSoup) -> list[dict[str, str | bool]]:
    """Extract every distinct candidate listed on a contest page.

    Votebox result cells are preferred; pages without them fall back to
    any element whose class mentions ``candidate``. Names repeated across
    primary and general boxes are returned once, in page order.

    Args:
        soup: Parsed contest page.

    Returns:
        List of dicts from ``parse_candidate_cell``.
    """
    cells = soup.find_all("td", class_="votebox-results-cell--text")
    if not cells:
        cells = [
            el
            for el in soup.find_all(class_=CANDIDATE_CLASS_RE)
            if isinstance(el, Tag) and el.find(class_=CANDIDATE_CLASS_RE) is None
        ]

    seen: set[str] = set()
    results: list[dict[str, str | bool]] = []
    for cell in cells:
        parsed = parse_candidate_cell(cell)
        if parsed is None:
            continue
        key = str(parsed["name"]).lower()
        if key in seen:
            continue
        seen.add(key)
        results.append(parsed)
    return results


def find_senate_class(soup: BeautifulSoup) -> str:
    """Return the first "Class N" mention on the page, or ""."""
    m = SENATE_CLASS_TEXT_RE.search(soup.get_text(" ", strip=True))
    return m.group(0) if m else ""
