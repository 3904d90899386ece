"""Resolving free-text advisor names to showroom users."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from service_center.models.entities import User

_WHITESPACE = re.compile(r"\s+")


def normalize_advisor_name(name: str | None) -> str:
    if not name:
        return ""
    return _WHITESPACE.sub(" ", name.strip().lower())


def map_advisor_names(names: Iterable[str | None], users: Sequence[User]) -> dict[str, User]:
    """Ingestion-time mapping: case-insensitive exact match, then whitespace-normalized match.

    Only users of the uploading showroom should be passed in. Names with no
    match are left out of the result.
    """

    exact = {user.display_name.strip().lower(): user for user in users if user.display_name}
    normalized = {normalize_advisor_name(user.display_name): user for user in users if user.display_name}

    mapping: dict[str, User] = {}
    for name in names:
        if not name or not name.strip() or name in mapping:
            continue
        user = exact.get(name.strip().lower()) or normalized.get(normalize_advisor_name(name))
        if user is not None:
            mapping[name] = user
    return mapping


def suggest_advisor(name: str | None, users: Sequence[User]) -> User | None:
    """Backfill matching: normalized equality first, then containment in either direction."""

    wanted = normalize_advisor_name(name)
    if not wanted:
        return None

    candidates = [(normalize_advisor_name(user.display_name), user) for user in users if user.display_name]
    for candidate, user in candidates:
        if candidate == wanted:
            return user
    for candidate, user in candidates:
        if candidate and (wanted in candidate or candidate in wanted):
            return user
    return None
