"""Workspace member ids -> display names."""
from __future__ import annotations

TEAM_MEMBERS: tuple[tuple[str, str], ...] = (
    ("132dcc71-5c7a-41fa-a94c-aa9858d6cea3", "Chloé"),
    ("7acbe6c2-21e1-4346-bcff-0ce4797d6e88", "Joseph"),
    ("64d84369-bb20-4b9e-b313-69f423e24438", "Alessandro"),
    ("82cfb7fc-f667-467d-97db-f5459047eeb6", "Olivier"),
    ("93d8a2b8-e953-4c1d-bc62-2a57e5e8e481", "Abel"),
    ("fae2196e-dfb6-4edb-a279-adf24b1e151e", "Max"),
    ("190fc1b3-2b0e-40b9-b1d3-3036ab9b936f", "Thomas"),
    ("e330fcd0-65a3-42ac-9b25-b0035cd175d2", "Antoine"),
)

# Partners and advisors, shown in the LP pipeline only
EXTENDED_TEAM_MEMBERS: tuple[tuple[str, str], ...] = TEAM_MEMBERS + (
    ("e7f8f60f-b83f-45a5-89b7-5650e3c2b4ea", "Alfred"),
    ("2f31b424-0e2e-4f97-beb0-8facf25077a3", "Luc-Emmanuel"),
    ("58d63f40-928b-49b9-bdca-2336a0b2b6bc", "Bertrand"),
    ("673a35f2-c184-48dc-9dc5-0e5114980f7e", "Bettina"),
)

TEAM_MAP: dict[str, str] = dict(TEAM_MEMBERS)
EXTENDED_TEAM_MAP: dict[str, str] = dict(EXTENDED_TEAM_MEMBERS)

BOARD_MEMBER_COLORS: dict[str, str] = {
    "Joseph": "#E63424",
    "Luc-Emmanuel": "#6366F1",
    "Olivier": "#059669",
    "Antoine": "#D97706",
    "Alfred": "#8B5CF6",
}


def member_name(member_id: str | None, extended: bool = False) -> str | None:
    if not member_id:
        return None
    return (EXTENDED_TEAM_MAP if extended else TEAM_MAP).get(member_id, "Unknown")
