"""Helpers shared by the provider clients."""

from collections.abc import Iterable

from revyou.domain.entities import UnifiedAlbum


def dedupe_and_sort(albums: Iterable[UnifiedAlbum]) -> list[UnifiedAlbum]:
    """Drop repeated provider album ids (first wins) and sort newest first.

    Albums without a release date go to the end.
    """
    seen: set[str] = set()
    unique: list[UnifiedAlbum] = []
    for album in albums:
        if album.id in seen:
            continue
        seen.add(album.id)
        unique.append(album)

    # ISO dates sort lexically; "" sorts below any real date
    return sorted(unique, key=lambda album: album.release_date or "", reverse=True)
