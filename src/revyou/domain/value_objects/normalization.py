"""Normalization helpers for provider payloads and release titles.

Hey future me - providers disagree on EVERYTHING. Deezer sends genres as
``{"id": 132, "name": "Pop"}`` objects, iTunes sends one bare ``"Pop"`` string, and
sometimes we get ``None`` in the list. Everything that ends up in the releases table
goes through these functions so the stored JSON always has one shape:

    genres:       [{"name": str, "id"?: int|str}]
    contributors: [{"name": str, "role": str, "id"?: int|str}]

Examples:
    >>> normalize_title("Midnight - Single")
    'midnight'
    >>> normalize_genres(["Rock", {"name": "Jazz", "id": 12}, None])
    [{'name': 'Rock'}, {'name': 'Jazz', 'id': 12}, {'name': 'Unknown'}]
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from revyou.domain.entities import AlbumType, ProviderSource

UNKNOWN_NAME = "Unknown"
DEFAULT_ROLE = "contributor"

_TYPE_SUFFIX_RE = re.compile(r"\s*-\s*(single|ep|album)\s*$", re.IGNORECASE)
_PARENTHETICAL_RE = re.compile(r"\(.*?\)")
_WHITESPACE_RE = re.compile(r"\s+")

DEEZER_ALBUM_URL = "https://www.deezer.com/album/{id}"
APPLE_MUSIC_ALBUM_URL = "https://music.apple.com/album/{id}"


def normalize_title(title: str) -> str:
    """Build the comparison key used to match release titles across providers.

    Case-folds, strips a trailing "- Single"/"- EP"/"- Album", drops parenthetical
    annotations like "(Remastered 2011)" and collapses whitespace.
    """
    key = title.casefold()
    key = _TYPE_SUFFIX_RE.sub("", key)
    key = _PARENTHETICAL_RE.sub("", key)
    key = _WHITESPACE_RE.sub(" ", key)
    return key.strip()


def map_album_type(raw: str | None) -> AlbumType:
    """Map provider record types ("ep", "Single", "Compilation", "best of") to AlbumType."""
    value = (raw or "").lower()
    if "single" in value or "ep" in value:
        return AlbumType.SINGLE
    if "compilation" in value or "best" in value:
        return AlbumType.COMPILATION
    return AlbumType.ALBUM


def _optional_id(payload: Mapping[str, Any]) -> dict[str, Any]:
    value = payload.get("id")
    return {"id": value} if value is not None else {}


def normalize_genre(item: Any) -> dict[str, Any]:
    """Normalize one raw genre entry.

    Three cases, nothing else: bare string, mapping, anything else (sentinel).
    """
    match item:
        case str() if item.strip():
            return {"name": item.strip()}
        case Mapping():
            name = item.get("name") or item.get("title") or UNKNOWN_NAME
            return {"name": str(name), **_optional_id(item)}
        case _:
            return {"name": UNKNOWN_NAME}


def normalize_contributor(item: Any) -> dict[str, Any]:
    """Normalize one raw contributor entry. Same three cases as genres, plus a role."""
    match item:
        case str() if item.strip():
            return {"name": item.strip(), "role": DEFAULT_ROLE}
        case Mapping():
            name = item.get("name") or item.get("title") or UNKNOWN_NAME
            role = item.get("role") or DEFAULT_ROLE
            return {"name": str(name), "role": str(role), **_optional_id(item)}
        case _:
            return {"name": UNKNOWN_NAME, "role": DEFAULT_ROLE}


def normalize_genres(items: Iterable[Any] | None) -> list[dict[str, Any]]:
    return [normalize_genre(item) for item in items or []]


def normalize_contributors(items: Iterable[Any] | None) -> list[dict[str, Any]]:
    return [normalize_contributor(item) for item in items or []]


def streaming_link_for(source: ProviderSource, album_id: str) -> dict[str, str]:
    """Public album URL(s) for a provider-native album id, keyed by platform."""
    if source is ProviderSource.DEEZER:
        return {"deezer": DEEZER_ALBUM_URL.format(id=album_id)}
    url = APPLE_MUSIC_ALBUM_URL.format(id=album_id)
    return {"itunes": url, "appleMusic": url}
