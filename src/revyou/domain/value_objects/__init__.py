"""Value objects and pure helpers for the domain layer."""

from revyou.domain.value_objects.normalization import (
    UNKNOWN_NAME,
    map_album_type,
    normalize_contributor,
    normalize_contributors,
    normalize_genre,
    normalize_genres,
    normalize_title,
    streaming_link_for,
)

__all__ = [
    "UNKNOWN_NAME",
    "map_album_type",
    "normalize_contributor",
    "normalize_contributors",
    "normalize_genre",
    "normalize_genres",
    "normalize_title",
    "streaming_link_for",
]
