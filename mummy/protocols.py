"""Protocol definitions for Mummy.

Artifacts gain capabilities (holding children, subsuming content, exposing
aspects, reading a source file) by implementing small protocols rather than
by inheriting from a hierarchy of abstract artifact types. Code that needs a
capability checks for it with `isinstance`.

Mummifier, DocumentLoader and DocumentSerializer describe the seams between
planning, parsing and writing.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lxml import etree

    from .artifacts import Artifact
    from .context import MummyContext


@runtime_checkable
class CompositeArtifact(Protocol):
    """An artifact made up of other artifacts.

    Subsumed artifacts collapse into the composite, which becomes their
    principal artifact.
    """

    @property
    def comprised_artifacts(self) -> Sequence[Artifact]:
        """All artifacts this artifact is made of, subsumed ones first."""
        ...

    @property
    def subsumed_artifacts(self) -> Sequence[Artifact]:
        """Artifacts whose identity collapses into this one."""
        ...


@runtime_checkable
class CollectionArtifact(Protocol):
    """An artifact with child artifacts, such as a directory."""

    @property
    def child_artifacts(self) -> Sequence[Artifact]:
        ...


@runtime_checkable
class AspectualArtifact(Protocol):
    """An artifact with named auxiliary variants (aspects)."""

    @property
    def aspects(self) -> Sequence[Artifact]:
        ...

    def find_aspect(self, aspect_id: str) -> Artifact | None:
        ...


@runtime_checkable
class SourceFileArtifact(Protocol):
    """An artifact generated from a single source file."""

    @property
    def source_size(self) -> int:
        ...

    def open_source(self) -> IO[bytes]:
        ...


@runtime_checkable
class Mummifier(Protocol):
    """Plans and generates artifacts for one kind of source resource."""

    @property
    @abstractmethod
    def supported_extensions(self) -> Sequence[str]:
        """Lowercase filename extensions (without dot) this mummifier handles."""
        ...

    @abstractmethod
    def plan(self, context: MummyContext, source_path: Path, target_path: Path) -> Artifact:
        """Plan the artifact for a source path.

        Args:
            context: Build context.
            source_path: Source file or directory.
            target_path: Target path before any mummifier-specific renaming.

        Returns:
            The planned artifact.
        """
        ...

    @abstractmethod
    def mummify(self, context: MummyContext, artifact: Artifact) -> None:
        """Generate the artifact's target output."""
        ...


@runtime_checkable
class DocumentLoader(Protocol):
    """Parses source bytes into an XHTML page tree."""

    @abstractmethod
    def load(self, data: bytes, name: str) -> etree._Element:
        """Parse a document.

        Args:
            data: Source bytes.
            name: Name of the source, used in error messages.

        Returns:
            Root `html` element in the XHTML namespace.

        Raises:
            ParseError: If the source cannot be parsed.
        """
        ...


@runtime_checkable
class DocumentSerializer(Protocol):
    """Writes a finished page tree to bytes."""

    @abstractmethod
    def serialize(self, root: etree._Element) -> bytes:
        ...


@runtime_checkable
class PageGenerator(Protocol):
    """A mummifier that generates pages through the page pipeline."""

    @abstractmethod
    def plan_content_target_path(self, context: MummyContext, directory_target: Path) -> Path:
        """Return the target of a directory's content page."""
        ...

    @abstractmethod
    def load_source_document(self, context: MummyContext, source_path: Path) -> etree._Element:
        """Load a source file as an XHTML page tree."""
        ...
