"""Manifest construction and token-to-file matching.

Tokens are minted server-side from the manifest and must be matched back
to local files. Both sides are keyed ``category:name``; when several
files in one category share a name, the first keeps the plain key and
later ones get ``#2``, ``#3``... in declaration order, which is the order
the backend mints their tokens.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from radicacion.models import LocalFile, UploadToken
from radicacion.upload.schemas import ManifestFile, ManifestGroup


def build_manifest(
    files_by_category: Mapping[str, Sequence[LocalFile]],
) -> list[ManifestGroup]:
    """Describe validated files for the initiate call (name and size only)."""
    return [
        ManifestGroup(
            categoria=category,
            files=[ManifestFile(name=f.name, size=f.size) for f in files],
        )
        for category, files in files_by_category.items()
        if files
    ]


class _KeyAllocator:
    """Hands out ``category:name`` keys, suffixing repeats with an ordinal."""

    def __init__(self) -> None:
        self._seen: dict[str, int] = {}

    def next_key(self, category: str, name: str) -> str:
        base = f"{category}:{name}"
        count = self._seen.get(base, 0) + 1
        self._seen[base] = count
        return base if count == 1 else f"{base}#{count}"


def build_file_lookup(
    files_by_category: Mapping[str, Sequence[LocalFile]],
) -> dict[str, LocalFile]:
    """Map disambiguated ``category:name`` keys to local files."""
    allocator = _KeyAllocator()
    lookup: dict[str, LocalFile] = {}
    for category, files in files_by_category.items():
        for file in files:
            lookup[allocator.next_key(category, file.name)] = file
    return lookup


def token_keys(tokens: Iterable[UploadToken]) -> list[str]:
    """Disambiguated lookup key for each token, in token order."""
    allocator = _KeyAllocator()
    return [allocator.next_key(t.category, t.original_name) for t in tokens]


def unmatched_files(
    files_by_category: Mapping[str, Sequence[LocalFile]],
    tokens: Iterable[UploadToken],
) -> list[tuple[str, LocalFile]]:
    """Declared files that no token maps to, as ``(category, file)`` pairs.

    Tokens carry only category and name, so when one of several same-name
    files in a category got no token, the trailing duplicates are the ones
    reported.
    """
    issued = set(token_keys(tokens))
    allocator = _KeyAllocator()
    return [
        (category, file)
        for category, files in files_by_category.items()
        for file in files
        if allocator.next_key(category, file.name) not in issued
    ]
