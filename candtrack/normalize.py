"""Convert provider-specific raw fields into canonical typed values.

Every function here is total: malformed or unknown input degrades to
None or to a designated fallback value and never raises. No I/O.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from candtrack.models import (
    CandidateDraft,
    CandidateStatus,
    ElectionType,
    Office,
    Party,
)

# ── Compiled patterns ──────────────────────────────────────────────────────

AT_LARGE_RE = re.compile(r"at.?large", re.IGNORECASE)
NUMBER_RE = re.compile(r"(\d+)")
SENATE_CLASS_RE = re.compile(r"class\s+(iii|ii|i|[123])\b", re.IGNORECASE)
BARE_CLASS_RE = re.compile(r"\s*(iii|ii|i|[123])\s*", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")

_ROMAN: dict[str, int] = {"i": 1, "ii": 2, "iii": 3}

# ── Lookup tables ──────────────────────────────────────────────────────────

FEC_PARTY_CODES: dict[str, Party] = {
    "DEM": Party.DEMOCRATIC,
    "REP": Party.REPUBLICAN,
    "LIB": Party.LIBERTARIAN,
    "GRE": Party.GREEN,
    "CON": Party.CONSTITUTION,
    "IND": Party.INDEPENDENT,
    "NNE": Party.NO_PARTY,
}

PARTY_LABELS: dict[str, Party] = {
    "democratic": Party.DEMOCRATIC,
    "democrat": Party.DEMOCRATIC,
    "republican": Party.REPUBLICAN,
    "libertarian": Party.LIBERTARIAN,
    "green": Party.GREEN,
    "constitution": Party.CONSTITUTION,
    "independent": Party.INDEPENDENT,
    "nonpartisan": Party.NO_PARTY,
    "no party preference": Party.NO_PARTY,
}

PARTY_ABBREVIATIONS: dict[str, Party] = {
    "D": Party.DEMOCRATIC,
    "R": Party.REPUBLICAN,
    "L": Party.LIBERTARIAN,
    "G": Party.GREEN,
    "C": Party.CONSTITUTION,
    "I": Party.INDEPENDENT,
}

FEC_STATUS_CODES: dict[str, CandidateStatus] = {
    "C": CandidateStatus.DECLARED,
    "N": CandidateStatus.DECLARED,
    "P": CandidateStatus.FILED,
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


# ── Party / office / status ────────────────────────────────────────────────


def map_fec_party(code: Any) -> Party:
    """Map a three-letter FEC party code; unknown codes become ``other``."""
    return FEC_PARTY_CODES.get(_text(code).upper(), Party.OTHER)


def map_party_label(label: Any) -> Party:
    """Map a spelled-out party name (e.g. "Republican Party")."""
    text = _text(label).lower()
    text = re.sub(r"\s+party$", "", text)
    return PARTY_LABELS.get(text, Party.OTHER)


def map_party_abbreviation(abbr: Any) -> Party:
    """Map a one-letter ballot abbreviation ("D", "R", ...) or a label."""
    text = _text(abbr).strip("()")
    if text.upper() in PARTY_ABBREVIATIONS:
        return PARTY_ABBREVIATIONS[text.upper()]
    return map_party_label(text)


def map_office(code: Any) -> Office:
    """Map an FEC office code ("S", "H") or office word to an Office.

    Anything that is not recognizably Senate or governor is House.
    """
    text = _text(code).lower()
    if text in ("s", "senate"):
        return Office.SENATE
    if text == "governor":
        return Office.GOVERNOR
    return Office.HOUSE


def map_fec_status(code: Any) -> CandidateStatus:
    """Map an FEC ``candidate_status`` code; defaults to ``declared``."""
    return FEC_STATUS_CODES.get(_text(code).upper(), CandidateStatus.DECLARED)


def parse_incumbent(indicator: Any) -> bool:
    """Interpret an incumbency indicator.

    Accepts the FEC one-letter code ("I" incumbent, "C" challenger,
    "O" open seat) or free text such as "Incumbent".
    """
    text = _text(indicator).lower()
    if text == "i":
        return True
    return text.startswith("incumbent")


# ── District / senate class ────────────────────────────────────────────────


def parse_district(value: Any) -> int | None:
    """Parse a district number.

    Examples:
        "7" -> 7, "At-Large" -> 0, "District 12" -> 12, "00" -> 0,
        "unknown" -> None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    text = _text(value)
    if not text:
        return None
    if AT_LARGE_RE.search(text):
        return 0
    m = NUMBER_RE.search(text)
    return int(m.group(1)) if m else None


def parse_senate_class(value: Any) -> int | None:
    """Parse a Senate class (1-3) from "Class II", "Class 2", "3", etc."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value if value in (1, 2, 3) else None
    text = _text(value)
    m = SENATE_CLASS_RE.search(text) or BARE_CLASS_RE.fullmatch(text)
    if not m:
        return None
    token = m.group(1).lower()
    return int(token) if token.isdigit() else _ROMAN[token]


# ── Names ──────────────────────────────────────────────────────────────────


def parse_fec_name(raw: Any) -> tuple[str, str, str]:
    """Split an FEC "LAST, FIRST MIDDLE SUFFIX" name.

    Without a comma the whole string is both full and last name and no
    first name is inferred.

    Returns:
        (full_name, first_name, last_name)
    """
    text = WHITESPACE_RE.sub(" ", _text(raw))
    last, sep, rest = text.partition(",")
    last = last.strip()
    rest = rest.strip()
    if not sep or not rest:
        return last, "", last
    first = rest.split(" ")[0]
    return f"{first} {last}".strip(), first, last


def split_display_name(raw: Any) -> tuple[str, str, str]:
    """Split a natural-order "First Middle Last" name.

    Returns:
        (full_name, first_name, last_name)
    """
    text = WHITESPACE_RE.sub(" ", _text(raw))
    parts = text.split(" ") if text else []
    if len(parts) < 2:
        return text, "", text
    return text, parts[0], parts[-1]


# ── Record normalizers ─────────────────────────────────────────────────────


def normalize_fec_candidate(
    raw: Any,
    election_date: str,
    confidence: float,
) -> CandidateDraft:
    """Normalize one OpenFEC ``/candidates`` result.

    Args:
        raw: Provider record; anything but an object is read as empty.
        election_date: ISO date of the cycle's general election.
        confidence: Trust score assigned to the FEC.

    Returns:
        A draft keyed on the FEC candidate id.
    """
    if not isinstance(raw, Mapping):
        raw = {}
    full_name, first_name, last_name = parse_fec_name(raw.get("name"))
    office = map_office(raw.get("office"))
    district = parse_district(raw.get("district")) if office is Office.HOUSE else None
    provider_id = _text(raw.get("candidate_id")) or None
    return CandidateDraft(
        source="fec",
        full_name=full_name,
        first_name=first_name,
        last_name=last_name,
        party=map_fec_party(raw.get("party")),
        state=_text(raw.get("state")).upper(),
        office=office,
        district=district,
        senate_class=None,
        incumbent=parse_incumbent(raw.get("incumbent_challenge")),
        status=map_fec_status(raw.get("candidate_status")),
        election_type=ElectionType.REGULAR,
        election_date=election_date,
        data_confidence=confidence,
        provider_id=provider_id,
    )


def normalize_ballotpedia_entry(
    raw: Any,
    confidence: float,
) -> CandidateDraft:
    """Normalize one candidate entry extracted from a Ballotpedia page.

    The entry carries the contest context the collector queried (state,
    office, district, election type and date) alongside the scraped name,
    party marker and incumbency flag.
    """
    if not isinstance(raw, Mapping):
        raw = {}
    full_name, first_name, last_name = split_display_name(raw.get("name"))
    office = map_office(raw.get("office"))
    try:
        election_type = ElectionType(_text(raw.get("election_type")).lower())
    except ValueError:
        election_type = ElectionType.REGULAR
    return CandidateDraft(
        source="ballotpedia",
        full_name=full_name,
        first_name=first_name,
        last_name=last_name,
        party=map_party_abbreviation(raw.get("party")),
        state=_text(raw.get("state")).upper(),
        office=office,
        district=parse_district(raw.get("district")) if office is Office.HOUSE else None,
        senate_class=parse_senate_class(raw.get("senate_class")),
        incumbent=bool(raw.get("incumbent", False)),
        status=CandidateStatus.DECLARED,
        election_type=election_type,
        election_date=_text(raw.get("election_date")),
        data_confidence=confidence,
        provider_id=None,
        source_url=_text(raw.get("url")),
    )
