"""
Input parsing for titles, usernames, teams and due instants.

Every helper raises InvalidInput with a message fit for the caller.
"""

from datetime import datetime, timezone
from typing import Iterable

from peer_jury.errors import InvalidInput
from peer_jury.models import same_username


def clean_username(raw: str) -> str:
    """Strip a username and reject empty names or names containing commas."""
    username = (raw or "").strip()
    if not username:
        raise InvalidInput("Username required")
    if "," in username:
        raise InvalidInput(f"Username may not contain commas: '{username}'")
    if len(username) > 100:
        raise InvalidInput("Username is too long (maximum 100 characters)")
    return username


def clean_title(raw: str, what: str = "Title") -> str:
    title = (raw or "").strip()
    if not title:
        raise InvalidInput(f"{what} required")
    if len(title) > 200:
        raise InvalidInput(f"{what} is too long (maximum 200 characters)")
    return title


def parse_team_usernames(raw: str | Iterable[str]) -> tuple[str, ...]:
    """
    Parse a team from "ana, bogdan" or from a sequence of names.

    Names are trimmed, blanks dropped and duplicates removed
    case-insensitively, keeping the first spelling.
    """
    parts = raw.split(",") if isinstance(raw, str) else list(raw)

    team: list[str] = []
    for part in parts:
        name = part.strip()
        if not name:
            continue
        if any(same_username(name, seen) for seen in team):
            continue
        team.append(name)

    if not team:
        raise InvalidInput("Team must have at least 1 username")
    return tuple(team)


def parse_due_at(raw: str | datetime, assume_local: bool = True) -> datetime:
    """
    Parse a due instant and return it in UTC.

    Strings are ISO 8601 ("2026-05-01T14:30"). A naive value is read in the
    local timezone when assume_local is set, and rejected otherwise.
    """
    if isinstance(raw, datetime):
        value = raw
    else:
        text = (raw or "").strip()
        if not text:
            raise InvalidInput("Due date required")
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidInput(f"Invalid due date: '{text}'") from e

    if value.tzinfo is None or value.utcoffset() is None:
        if not assume_local:
            raise InvalidInput("Due date must include a timezone")
        value = value.astimezone()

    return value.astimezone(timezone.utc)
