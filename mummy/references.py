"""Resolving and relativizing references between resources.

References are resolved as URIs (RFC 3986) against a `file:` URI of the
context path, with one deviation: the empty reference resolves to the
context path itself. Collection (directory) paths are given a trailing slash
so that relative references resolve inside them.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from urllib.parse import quote, unquote, urljoin, urlsplit

_SEGMENT_SAFE = "@$!&'()*+,;=~"


def is_relative_path_reference(reference: str) -> bool:
    """Whether a reference is a relative-path reference that may be relocated.

    Absolute URIs (`https://...`, `mailto:...`), network-path references
    (`//host/...`), absolute paths (`/css/main.css`) and references without a
    path (`""`, `#top`, `?q`) are not relocated.
    """
    parts = urlsplit(reference)
    if parts.scheme or parts.netloc:
        return False
    return bool(parts.path) and not parts.path.startswith("/")


def split_reference(reference: str) -> tuple[str, str]:
    """Split a reference into its path and its `?query#fragment` suffix."""
    parts = urlsplit(reference)
    suffix = ""
    if parts.query:
        suffix += "?" + parts.query
    if parts.fragment:
        suffix += "#" + parts.fragment
    return parts.path, suffix


def path_uri(path: Path, is_collection: bool = False) -> str:
    """Return the `file:` URI of an absolute path, with a trailing slash for collections."""
    uri = path.as_uri()
    if is_collection and not uri.endswith("/"):
        uri += "/"
    return uri


def resolve_uri(context_path: Path, reference: str, context_is_collection: bool = False) -> str:
    """Resolve a reference against a context path to a normalized absolute URI."""
    if reference == "":
        return path_uri(context_path, context_is_collection)
    return urljoin(path_uri(context_path, context_is_collection), reference)


def resolve_reference(
    context_path: Path, reference: str, context_is_collection: bool = False
) -> Path | None:
    """Resolve a reference to an absolute filesystem path.

    Args:
        context_path: Path the reference appears in (a file or a collection).
        reference: Relative or absolute reference.
        context_is_collection: Whether the context path is a directory.

    Returns:
        The referenced path, ignoring any query or fragment, or None if the
        reference points outside the local filesystem.
    """
    if reference == "":
        return context_path
    parts = urlsplit(resolve_uri(context_path, reference, context_is_collection))
    if parts.scheme != "file" or parts.netloc not in ("", "localhost"):
        return None
    path = unquote(parts.path)
    if len(path) > 1:
        path = path.rstrip("/")
    return Path(path)


def relativize(
    base_path: Path,
    target_path: Path,
    base_is_collection: bool = False,
    target_is_collection: bool = False,
) -> str:
    """Return a relative reference from a base path to a target path.

    Args:
        base_path: Path the reference will appear in.
        target_path: Path being referred to.
        base_is_collection: Whether the base is a directory.
        target_is_collection: Whether the target is a directory; collection
            references end with a slash.

    Returns:
        A relative URI reference such as `../blog/` or `about.html`.
    """
    base_dir = base_path if base_is_collection else base_path.parent
    base_parts = PurePosixPath(base_dir.as_posix()).parts
    target_parts = PurePosixPath(target_path.as_posix()).parts
    common = 0
    for base_part, target_part in zip(base_parts, target_parts):
        if base_part != target_part:
            break
        common += 1
    segments = [".."] * (len(base_parts) - common) + list(target_parts[common:])
    reference = "/".join(quote(segment, safe=_SEGMENT_SAFE) for segment in segments)
    if target_is_collection:
        return reference + "/" if reference else "./"
    if not reference:
        return quote(target_path.name, safe=_SEGMENT_SAFE)
    return reference
