"""Artifact data model.

An artifact is one planned unit of output: a source path, a target path, a
description, and the mummifier that generates it. Artifacts are created once
during planning. Only their descriptions change afterwards.

Identity is the target path: two artifacts with the same target path are the
same artifact, whatever their source.

Key classes:
- Artifact: Base artifact.
- FileArtifact: Opaque file copied to the target tree.
- PageArtifact / PostArtifact: Pages generated by the page pipeline.
- PhantomPageArtifact: Generated content page of a directory with no index source.
- ImageArtifact / AspectArtifact: Images and their scaled variants.
- DirectoryArtifact: Collection of child artifacts with an optional content page.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from pathlib import Path
from typing import IO, TYPE_CHECKING

from .description import Description
from .vocab import CONTENT_TYPE, ICON, LABEL, MUMMY_ASPECT, NAME, PUBLISHED_ON, TITLE

if TYPE_CHECKING:
    from .protocols import Mummifier


class Artifact:
    """A planned resource and its generated output.

    Attributes:
        mummifier: Mummifier that plans and generates this artifact.
        source_path: Absolute source path.
        target_path: Absolute target path; the artifact's identity.
        description: Property metadata of the artifact.
    """

    def __init__(
        self,
        mummifier: Mummifier,
        source_path: Path,
        target_path: Path,
        description: Description,
    ):
        self.mummifier = mummifier
        self.source_path = source_path
        self.target_path = target_path
        self.description = description

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Artifact):
            return NotImplemented
        return self.target_path == other.target_path

    def __hash__(self) -> int:
        return hash(self.target_path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source_path} -> {self.target_path})"

    @property
    def name(self) -> str:
        """Filename of the target."""
        return self.target_path.name

    @property
    def referent_source_paths(self) -> tuple[Path, ...]:
        """Source paths that references resolve to this artifact from."""
        return (self.source_path,)

    @property
    def source_directory(self) -> Path:
        """Directory that source-relative references are resolved in."""
        return self.source_path.parent

    @property
    def is_navigable(self) -> bool:
        """Whether the artifact can appear in generated navigation."""
        return False

    @property
    def content_type(self) -> str | None:
        return self.description.get(CONTENT_TYPE)

    @property
    def icon_id(self) -> str | None:
        icon = self.description.get(ICON)
        return str(icon) if icon is not None else None

    def _target_stem(self) -> str:
        name = self.target_path.name
        stem, dot, _ = name.rpartition(".")
        return stem if dot and stem else name

    def determine_title(self) -> str:
        """Title, falling back to the name property and then the target filename stem."""
        for tag in (TITLE, NAME):
            value = self.description.get(tag)
            if value is not None and str(value).strip():
                return str(value)
        return self._target_stem()

    def determine_label(self) -> str:
        """Label for navigation: label, title, name, then target filename stem."""
        value = self.description.get(LABEL)
        if value is not None and str(value).strip():
            return str(value)
        return self.determine_title()

    def mummify(self, context) -> None:
        """Generate this artifact through its mummifier."""
        self.mummifier.mummify(context, self)


class FileArtifact(Artifact):
    """Artifact generated from one source file."""

    @property
    def source_size(self) -> int:
        return self.source_path.stat().st_size

    def open_source(self) -> IO[bytes]:
        return open(self.source_path, "rb")


class PageArtifact(FileArtifact):
    """Page generated from an XHTML, HTML or Markdown source."""

    @property
    def is_navigable(self) -> bool:
        return True


class PostArtifact(PageArtifact):
    """Page whose source filename carries a publication date (`@2024-01-01-slug.md`)."""

    @property
    def published_on(self) -> date | None:
        value = self.description.get(PUBLISHED_ON)
        return value if isinstance(value, date) else None


class PhantomPageArtifact(Artifact):
    """Content page generated for a directory that has no content source file.

    The source path is the directory itself; there is no file to read.
    """

    @property
    def source_directory(self) -> Path:
        return self.source_path

    @property
    def is_navigable(self) -> bool:
        return True


class AspectArtifact(Artifact):
    """Scaled variant of an image, generated beside it in the target tree.

    Attributes:
        aspect_id: Aspect name such as `thumbnail`.
        max_length: Longest side of the variant in pixels.
    """

    def __init__(
        self,
        mummifier: Mummifier,
        source_path: Path,
        target_path: Path,
        description: Description,
        aspect_id: str,
        max_length: int,
    ):
        super().__init__(mummifier, source_path, target_path, description)
        self.aspect_id = aspect_id
        self.max_length = max_length


class ImageArtifact(FileArtifact):
    """Image with aspects; aspects get targets named `<stem>-<aspect><ext>`."""

    def __init__(
        self,
        mummifier: Mummifier,
        source_path: Path,
        target_path: Path,
        description: Description,
        aspect_lengths: dict[str, int] | None = None,
    ):
        super().__init__(mummifier, source_path, target_path, description)
        self._aspects: dict[str, AspectArtifact] = {}
        for aspect_id, max_length in (aspect_lengths or {}).items():
            aspect_description = description.copy()
            aspect_description[MUMMY_ASPECT] = aspect_id
            self._aspects[aspect_id] = AspectArtifact(
                mummifier,
                source_path,
                aspect_target_path(target_path, aspect_id),
                aspect_description,
                aspect_id,
                max_length,
            )

    @property
    def aspects(self) -> Sequence[AspectArtifact]:
        return tuple(self._aspects.values())

    def find_aspect(self, aspect_id: str) -> AspectArtifact | None:
        return self._aspects.get(aspect_id)


def aspect_target_path(target_path: Path, aspect_id: str) -> Path:
    """Return the sibling target of an aspect (`cat.jpg` -> `cat-thumbnail.jpg`)."""
    return target_path.with_name(f"{target_path.stem}-{aspect_id}{target_path.suffix}")


class DirectoryArtifact(Artifact):
    """Directory with child artifacts and an optional content artifact.

    The content artifact (the directory's index page) is subsumed: references
    to its source resolve to the directory.
    """

    def __init__(
        self,
        mummifier: Mummifier,
        source_path: Path,
        target_path: Path,
        description: Description,
        content_artifact: Artifact | None = None,
        child_artifacts: Sequence[Artifact] = (),
    ):
        super().__init__(mummifier, source_path, target_path, description)
        self.content_artifact = content_artifact
        self._child_artifacts = tuple(child_artifacts)

    @property
    def child_artifacts(self) -> Sequence[Artifact]:
        return self._child_artifacts

    @property
    def subsumed_artifacts(self) -> Sequence[Artifact]:
        return (self.content_artifact,) if self.content_artifact is not None else ()

    @property
    def comprised_artifacts(self) -> Sequence[Artifact]:
        return (*self.subsumed_artifacts, *self._child_artifacts)

    @property
    def referent_source_paths(self) -> tuple[Path, ...]:
        if self.content_artifact is None or self.content_artifact.source_path == self.source_path:
            return (self.source_path,)
        return (self.source_path, self.content_artifact.source_path)

    @property
    def source_directory(self) -> Path:
        return self.source_path

    @property
    def is_navigable(self) -> bool:
        return True

    def determine_title(self) -> str:
        """Directory title, taken from its content page when it has none itself."""
        for tag in (TITLE, NAME):
            value = self.description.get(tag)
            if value is not None and str(value).strip():
                return str(value)
        if self.content_artifact is not None:
            for tag in (TITLE, NAME):
                value = self.content_artifact.description.get(tag)
                if value is not None and str(value).strip():
                    return str(value)
        return self.target_path.name

    def determine_label(self) -> str:
        value = self.description.get(LABEL)
        if value is None and self.content_artifact is not None:
            value = self.content_artifact.description.get(LABEL)
        if value is not None and str(value).strip():
            return str(value)
        return self.determine_title()

    @property
    def icon_id(self) -> str | None:
        icon = self.description.get(ICON)
        if icon is None and self.content_artifact is not None:
            icon = self.content_artifact.description.get(ICON)
        return str(icon) if icon is not None else None
