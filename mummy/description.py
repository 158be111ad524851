"""Artifact descriptions and the incremental description cache.

A description is the ordered property metadata of one artifact. After an
artifact is mummified its description is saved as a YAML sidecar under the
description target directory; the next build reuses it when the source file
has not changed.

Key classes:
- Description: Ordered tag to value mapping with a dirty flag.
- DescriptionLoader: Reuses a cached description or extracts a fresh one.

Key functions:
- parse_metadata_property_value: Convert lexical metadata to typed values.
- load_description_file / save_description_file: Sidecar persistence.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterable, Iterator
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .errors import PlanningError
from .utils import parse_post_filename
from .vocab import (
    ADHOC_NAMESPACE,
    CONTENT_TYPE,
    MUMMY_DESCRIPTION_DIRTY,
    MUMMY_SOURCE_MODIFIED_AT,
    PUBLISHED_ON,
    find_name,
    find_namespace,
    handle_to_tag,
)

if TYPE_CHECKING:
    from .context import MummyContext
    from .mummifiers import AbstractMummifier

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = "@.yaml"


class Description:
    """Ordered mapping of property tag to value.

    Insertion order is kept and is the order properties are written in.
    `merge` applies extracted properties with the first occurrence of a tag
    winning, so duplicates found during extraction are harmless.
    """

    def __init__(self, properties: Iterable[tuple[str, Any]] = ()):
        self._properties: dict[str, Any] = {}
        self.merge(properties)

    def __repr__(self) -> str:
        return f"Description({self._properties!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Description):
            return NotImplemented
        return self._properties == other._properties

    def __contains__(self, tag: object) -> bool:
        return tag in self._properties

    def __getitem__(self, tag: str) -> Any:
        return self._properties[tag]

    def __setitem__(self, tag: str, value: Any) -> None:
        self._properties[tag] = value

    def __delitem__(self, tag: str) -> None:
        del self._properties[tag]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def get(self, tag: str, default: Any = None) -> Any:
        return self._properties.get(tag, default)

    def get_by_handle(self, handle: str, default: Any = None) -> Any:
        """Look up a property by handle (`title`) or CURIE (`og:title`)."""
        return self._properties.get(handle_to_tag(handle), default)

    def items(self):
        return self._properties.items()

    def pop(self, tag: str, default: Any = None) -> Any:
        return self._properties.pop(tag, default)

    def merge(self, properties: Iterable[tuple[str, Any]]) -> None:
        """Add properties whose tags are not present yet (first property wins)."""
        for tag, value in properties:
            if tag not in self._properties:
                self._properties[tag] = value

    def copy(self) -> Description:
        return Description(self._properties.items())

    @property
    def dirty(self) -> bool:
        """Whether the artifact must be regenerated regardless of its target."""
        return bool(self._properties.get(MUMMY_DESCRIPTION_DIRTY, False))

    @dirty.setter
    def dirty(self, value: bool) -> None:
        if value:
            self._properties[MUMMY_DESCRIPTION_DIRTY] = True
        else:
            self._properties.pop(MUMMY_DESCRIPTION_DIRTY, None)

    @property
    def source_content_modified_at(self) -> int | None:
        """Source modification time (nanoseconds) the description was extracted at."""
        return self._properties.get(MUMMY_SOURCE_MODIFIED_AT)

    @source_content_modified_at.setter
    def source_content_modified_at(self, value: int | None) -> None:
        if value is None:
            self._properties.pop(MUMMY_SOURCE_MODIFIED_AT, None)
        else:
            self._properties[MUMMY_SOURCE_MODIFIED_AT] = value


def parse_metadata_property_value(tag: str, value: Any) -> Any:
    """Convert a lexical metadata value to the type its tag implies.

    Ad hoc properties named `...On` (such as `publishedOn`) hold dates. A
    value that does not parse is kept as written and a warning is logged.

    Args:
        tag: Property tag the value belongs to.
        value: Value as found in the source.

    Returns:
        The typed value.
    """
    if not isinstance(value, str):
        return value
    if find_namespace(tag) == ADHOC_NAMESPACE and find_name(tag).endswith("On"):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            logger.warning(f"Invalid date {value!r} for property {tag}; keeping text")
    return value


def load_description_file(path: Path) -> Description:
    """Load a description sidecar.

    Raises:
        PlanningError: If the sidecar is not a YAML mapping.
    """
    with open(path, encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise PlanningError(f"Invalid description file: {exc}", path) from exc
    if not isinstance(loaded, dict):
        raise PlanningError("Description file is not a mapping", path)
    return Description(loaded.items())


def save_description_file(path: Path, description: Description) -> None:
    """Write a description sidecar, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            dict(description.items()), f, sort_keys=False, allow_unicode=True
        )


def source_modified_at(path: Path) -> int | None:
    """Return the modification time of a source file in nanoseconds, if it exists."""
    try:
        return path.stat().st_mtime_ns
    except FileNotFoundError:
        return None


class DescriptionLoader:
    """Loads the description of one source resource.

    In incremental mode a sidecar from a previous build is reused only when
    its recorded source modification time equals the current one exactly.
    Anything else (no sidecar, no timestamp, full build) extracts a fresh,
    dirty description.
    """

    def __init__(self, context: MummyContext):
        self.context = context

    def load(
        self,
        mummifier: AbstractMummifier,
        source_path: Path,
        target_path: Path,
        is_directory: bool = False,
    ) -> Description:
        """Load the description for a source path.

        Args:
            mummifier: Mummifier that owns the resource; extracts metadata.
            source_path: Source file or directory.
            target_path: Planned target path, which locates the sidecar.
            is_directory: Whether the resource is a directory.

        Returns:
            The reused or freshly extracted description.
        """
        modified_at = source_modified_at(source_path)
        sidecar = self.context.description_path_for(target_path, is_directory)
        if not self.context.full and modified_at is not None and sidecar.is_file():
            cached = load_description_file(sidecar)
            if cached.source_content_modified_at == modified_at:
                logger.debug(f"Reusing cached description for {source_path}")
                cached.dirty = False
                return cached
            logger.debug(f"Source changed since last build: {source_path}")

        description = Description(mummifier.load_source_metadata(self.context, source_path))
        published_on = _post_publication_date(source_path)
        if published_on is not None:
            description.merge([(PUBLISHED_ON, published_on)])
        content_type = mummifier.get_content_type(self.context, source_path)
        if content_type is not None:
            description.merge([(CONTENT_TYPE, content_type)])
        description.source_content_modified_at = modified_at
        description.dirty = True
        return description


def _post_publication_date(source_path: Path) -> date | None:
    post = parse_post_filename(source_path.name)
    if post is None:
        return None
    return post.published_on


def guess_content_type(path: Path) -> str | None:
    """Guess a media type from a filename."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type
