"""Utility functions for Mummy.

Key functions:
    parse_post_filename: Recognize `@YYYY-MM-DD-slug.ext` post filenames.
    strip_extension: Drop a known (possibly compound) extension from a filename.
    collation_key: Accent and case insensitive sort key for labels.
    fingerprint_file: SHA-256 fingerprint of a generated file.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import NamedTuple

POST_FILENAME_PATTERN = re.compile(r"@((\d{4})-(\d{2})-(\d{2}))-(([^.]+)\.(.+))")


class PostFilename(NamedTuple):
    """Parts of a post source filename.

    Attributes:
        published_on: Date encoded in the filename prefix.
        filename: Filename without the date prefix (`slug.ext`).
        slug: Filename without the date prefix and extension.
    """

    published_on: date
    filename: str
    slug: str


def parse_post_filename(name: str) -> PostFilename | None:
    """Parse a post filename such as `@2024-01-15-hello.md`.

    Args:
        name: Source filename.

    Returns:
        PostFilename if the name is a post with a valid date, None otherwise.

    Examples:
        >>> parse_post_filename("@2024-01-15-hello.md").filename
        'hello.md'

        >>> parse_post_filename("hello.md")
        None
    """
    match = POST_FILENAME_PATTERN.fullmatch(name)
    if match is None:
        return None
    try:
        published_on = date(int(match.group(2)), int(match.group(3)), int(match.group(4)))
    except ValueError:
        return None
    return PostFilename(published_on, match.group(5), match.group(6))


def find_extension(name: str, extensions: Iterable[str]) -> str | None:
    """Return the longest of the given extensions that the filename ends with.

    Extensions are compared case-insensitively and may be compound
    (`foo.bar` matches `page.foo.bar`).
    """
    lowered = name.lower()
    matches = [ext for ext in extensions if lowered.endswith("." + ext.lower())]
    if not matches:
        return None
    return max(matches, key=len)


def strip_extension(name: str, extensions: Iterable[str]) -> str:
    """Drop the longest matching extension from a filename.

    Examples:
        >>> strip_extension("about.xhtml", ["xhtml"])
        'about'
    """
    extension = find_extension(name, extensions)
    if extension is None:
        return name
    return name[: -(len(extension) + 1)]


def compound_extensions(name: str) -> list[str]:
    """List the candidate extensions of a filename, longest first.

    Examples:
        >>> compound_extensions("a.foo.bar")
        ['foo.bar', 'bar']
    """
    parts = name.lower().split(".")[1:]
    return [".".join(parts[i:]) for i in range(len(parts))]


def collation_key(text: str) -> str:
    """Sort key that ignores accents and case (`Émile` sorts with `emile`)."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def fingerprint_file(path: Path) -> str:
    """Return the hex SHA-256 digest of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()
