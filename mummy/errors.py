"""Error types raised while planning and mummifying a site.

Reference problems are not errors: an unresolvable reference is logged as a
warning and left as written. Everything below is fatal for the artifact that
raised it.
"""

from __future__ import annotations

from pathlib import Path


class MummyError(Exception):
    """Base class for all Mummy failures.

    Attributes:
        source_path: Source path of the resource being processed, if known.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.message = message
        self.source_path = source_path
        if source_path is not None:
            super().__init__(f"{source_path}: {message}")
        else:
            super().__init__(message)


class PlanningError(MummyError):
    """A source resource could not be planned (unreadable, bad template reference)."""


class TransformError(MummyError):
    """A page pipeline stage hit an unsupported structure or malformed directive."""


class ParseError(TransformError):
    """A source document could not be parsed into a page tree."""


class SerializationError(MummyError):
    """A finished page tree could not be written out."""


class QueryError(MummyError):
    """An artifact query was built or executed out of order."""
