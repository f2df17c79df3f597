"""Static reference data: states, Senate seats up per cycle, election dates."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass


@dataclass(frozen=True)
class StateInfo:
    """A US state as stored in the ``states`` table.

    Attributes:
        code: USPS two-letter code.
        name: Full state name.
        fips_code: Two-digit FIPS code.
        house_seats: House seats after the 2020 apportionment.
    """

    code: str
    name: str
    fips_code: str
    house_seats: int

    @property
    def at_large(self) -> bool:
        return self.house_seats == 1


STATES: tuple[StateInfo, ...] = (
    StateInfo("AL", "Alabama", "01", 7),
    StateInfo("AK", "Alaska", "02", 1),
    StateInfo("AZ", "Arizona", "04", 9),
    StateInfo("AR", "Arkansas", "05", 4),
    StateInfo("CA", "California", "06", 52),
    StateInfo("CO", "Colorado", "08", 8),
    StateInfo("CT", "Connecticut", "09", 5),
    StateInfo("DE", "Delaware", "10", 1),
    StateInfo("FL", "Florida", "12", 28),
    StateInfo("GA", "Georgia", "13", 14),
    StateInfo("HI", "Hawaii", "15", 2),
    StateInfo("ID", "Idaho", "16", 2),
    StateInfo("IL", "Illinois", "17", 17),
    StateInfo("IN", "Indiana", "18", 9),
    StateInfo("IA", "Iowa", "19", 4),
    StateInfo("KS", "Kansas", "20", 4),
    StateInfo("KY", "Kentucky", "21", 6),
    StateInfo("LA", "Louisiana", "22", 6),
    StateInfo("ME", "Maine", "23", 2),
    StateInfo("MD", "Maryland", "24", 8),
    StateInfo("MA", "Massachusetts", "25", 9),
    StateInfo("MI", "Michigan", "26", 13),
    StateInfo("MN", "Minnesota", "27", 8),
    StateInfo("MS", "Mississippi", "28", 4),
    StateInfo("MO", "Missouri", "29", 8),
    StateInfo("MT", "Montana", "30", 2),
    StateInfo("NE", "Nebraska", "31", 3),
    StateInfo("NV", "Nevada", "32", 4),
    StateInfo("NH", "New Hampshire", "33", 2),
    StateInfo("NJ", "New Jersey", "34", 12),
    StateInfo("NM", "New Mexico", "35", 3),
    StateInfo("NY", "New York", "36", 26),
    StateInfo("NC", "North Carolina", "37", 14),
    StateInfo("ND", "North Dakota", "38", 1),
    StateInfo("OH", "Ohio", "39", 15),
    StateInfo("OK", "Oklahoma", "40", 5),
    StateInfo("OR", "Oregon", "41", 6),
    StateInfo("PA", "Pennsylvania", "42", 17),
    StateInfo("RI", "Rhode Island", "44", 2),
    StateInfo("SC", "South Carolina", "45", 7),
    StateInfo("SD", "South Dakota", "46", 1),
    StateInfo("TN", "Tennessee", "47", 9),
    StateInfo("TX", "Texas", "48", 38),
    StateInfo("UT", "Utah", "49", 4),
    StateInfo("VT", "Vermont", "50", 1),
    StateInfo("VA", "Virginia", "51", 11),
    StateInfo("WA", "Washington", "53", 10),
    StateInfo("WV", "West Virginia", "54", 2),
    StateInfo("WI", "Wisconsin", "55", 8),
    StateInfo("WY", "Wyoming", "56", 1),
)

STATES_BY_CODE: dict[str, StateInfo] = {s.code: s for s in STATES}

# Class II seats are up in 2026 (and every six years from 2020).
CLASS_II_STATES: tuple[str, ...] = (
    "AL", "AK", "AR", "CO", "DE", "GA", "IA", "ID", "IL", "KS",
    "KY", "LA", "ME", "MA", "MI", "MN", "MS", "MT", "NE", "NH",
    "NJ", "NM", "NC", "OK", "OR", "RI", "SC", "SD", "TN", "TX",
    "VA", "WV", "WY",
)

# Special Senate elections by cycle: state code -> senate class.
SPECIAL_SENATE_ELECTIONS: dict[int, dict[str, int]] = {
    2026: {"FL": 3, "OH": 3},
}


def regular_senate_states(cycle: int) -> tuple[str, ...]:
    """Return state codes with a regular Senate election in *cycle*.

    Only the Class II rotation is tabulated; other cycles return ().
    """
    if cycle % 6 == 2026 % 6:
        return CLASS_II_STATES
    return ()


def regular_senate_class(cycle: int) -> int | None:
    return 2 if regular_senate_states(cycle) else None


def special_senate_elections(cycle: int) -> dict[str, int]:
    return dict(SPECIAL_SENATE_ELECTIONS.get(cycle, {}))


def general_election_date(year: int) -> str:
    """Return the federal general election date for *year* as ISO text.

    Election day is the first Tuesday after the first Monday in November.
    """
    nov1 = dt.date(year, 11, 1)
    first_monday = nov1 + dt.timedelta(days=(0 - nov1.weekday()) % 7)
    return (first_monday + dt.timedelta(days=1)).isoformat()


def house_districts(state: StateInfo) -> list[int]:
    """District numbers for *state*; at-large states have the single district 0."""
    if state.at_large:
        return [0]
    return list(range(1, state.house_seats + 1))
