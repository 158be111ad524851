"""Plan: lookup indices over the finished artifact tree.

The plan is built in one traversal after planning has finished and is
read-only afterwards. It answers structural questions (principal, parent,
children, siblings) and resolves references between sources to artifacts.

Key classes:
- Plan: Indices and reference resolution.
- ArtifactQuery: Fluent, single-use query over artifacts of the plan.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .artifacts import Artifact
from .errors import QueryError
from .protocols import CollectionArtifact, CompositeArtifact
from .references import relativize, resolve_reference, split_reference
from .utils import collation_key


class Plan:
    """Indices over an artifact tree.

    Attributes:
        root_artifact: Root of the planned tree.
    """

    def __init__(self, root_artifact: Artifact):
        self.root_artifact = root_artifact
        principals: dict[Artifact, Artifact] = {}
        parents: dict[Artifact, Artifact] = {}
        by_source: dict[Path, Artifact] = {}
        collection_sources: set[Path] = set()
        artifacts: list[Artifact] = []
        self._index(root_artifact, principals, parents, by_source, collection_sources, artifacts)
        self._principals = MappingProxyType(principals)
        self._parents = MappingProxyType(parents)
        self._by_source = MappingProxyType(by_source)
        self._collection_sources = frozenset(collection_sources)
        self._artifacts = tuple(artifacts)

    def _index(
        self,
        artifact: Artifact,
        principals: dict[Artifact, Artifact],
        parents: dict[Artifact, Artifact],
        by_source: dict[Path, Artifact],
        collection_sources: set[Path],
        artifacts: list[Artifact],
    ) -> None:
        artifacts.append(artifact)
        # Comprised artifacts first so this artifact's own registrations win.
        if isinstance(artifact, CompositeArtifact):
            for comprised in artifact.comprised_artifacts:
                self._index(comprised, principals, parents, by_source, collection_sources, artifacts)
            for subsumed in artifact.subsumed_artifacts:
                principals[subsumed] = artifact
        if isinstance(artifact, CollectionArtifact):
            collection_sources.add(artifact.source_path)
            for child in artifact.child_artifacts:
                parents[child] = artifact
        for source_path in artifact.referent_source_paths:
            by_source[source_path] = artifact

    @property
    def artifacts(self) -> Sequence[Artifact]:
        """Every planned artifact, in traversal order."""
        return self._artifacts

    def is_collection_source(self, source_path: Path) -> bool:
        return source_path in self._collection_sources

    def principal_of(self, artifact: Artifact) -> Artifact:
        """Return the artifact that subsumes this one, or the artifact itself."""
        return self._principals.get(artifact, artifact)

    def parent_of(self, artifact: Artifact) -> Artifact | None:
        """Return the parent collection of the artifact's principal."""
        return self._parents.get(self.principal_of(artifact))

    def children_of(self, artifact: Artifact) -> Sequence[Artifact]:
        """Return the children of the artifact's principal, if it is a collection."""
        principal = self.principal_of(artifact)
        if isinstance(principal, CollectionArtifact):
            return principal.child_artifacts
        return ()

    def siblings_of(self, artifact: Artifact) -> Sequence[Artifact]:
        """Return the children of the artifact's parent, including the artifact itself."""
        parent = self.parent_of(artifact)
        if parent is None:
            return (self.principal_of(artifact),)
        return self.children_of(parent)

    def level_of(self, artifact: Artifact) -> Artifact | None:
        """Return the collection whose children form the artifact's level.

        A collection (or a collection's content page) is its own level; any
        other artifact is on the level of its parent.
        """
        principal = self.principal_of(artifact)
        if isinstance(principal, CollectionArtifact):
            return principal
        return self.parent_of(principal)

    def find_by_source_reference(self, source_path: Path) -> Artifact | None:
        """Find the principal artifact for an absolute source path."""
        return self._by_source.get(source_path)

    def find_by_relative_reference(self, context_path: Path, reference: str) -> Artifact | None:
        """Resolve a reference relative to a source path and find its artifact.

        The empty reference resolves to the context path itself.
        """
        resolved = resolve_reference(
            context_path, reference, self.is_collection_source(context_path)
        )
        if resolved is None:
            return None
        return self.find_by_source_reference(resolved)

    def _is_collection(self, artifact: Artifact) -> bool:
        return isinstance(artifact, CollectionArtifact)

    def reference_in_source(self, context_artifact: Artifact, referent: Artifact) -> str:
        """Relative reference from one artifact's source to another's."""
        return relativize(
            context_artifact.source_path,
            referent.source_path,
            self.is_collection_source(context_artifact.source_path),
            self._is_collection(referent),
        )

    def reference_in_target(self, context_artifact: Artifact, referent: Artifact) -> str:
        """Relative reference from one artifact's target to another's."""
        return relativize(
            context_artifact.target_path,
            referent.target_path,
            self._is_collection(context_artifact),
            self._is_collection(referent),
        )

    def rebase_reference(self, context_artifact: Artifact, base_path: Path, reference: str) -> str:
        """Rewrite a reference written relative to `base_path` so it is relative
        to the context artifact's source.

        Used for content copied into a page from another source file, such as
        its template or a post excerpt. References to planned artifacts are
        rewritten through the plan; anything else is rebased by path alone.
        """
        path, suffix = split_reference(reference)
        resolved = resolve_reference(base_path, path, self.is_collection_source(base_path))
        if resolved is None:
            return reference
        referent = self.find_by_source_reference(resolved)
        if referent is not None:
            return self.reference_in_source(context_artifact, referent) + suffix
        return (
            relativize(
                context_artifact.source_path,
                resolved,
                self.is_collection_source(context_artifact.source_path),
            )
            + suffix
        )

    def query(self) -> ArtifactQuery:
        return ArtifactQuery(self)


class ArtifactQuery:
    """Fluent query over the artifacts of a plan.

    A query starts with exactly one `from_...` call, then takes any number of
    filters, then any number of orderings, and is executed once by `iterate`.

    Example:
        >>> plan.query().from_level_of(page).filter_content_type("text/*").order_by_name().iterate()
    """

    def __init__(self, plan: Plan):
        self.plan = plan
        self._source: Callable[[], Sequence[Artifact]] | None = None
        self._filters: list[Callable[[Artifact], bool]] = []
        self._orderings: list[tuple[Callable[[Artifact], Any], bool]] = []
        self._executed = False

    def _resolve(self, artifact: Artifact, reference: str | None) -> Artifact:
        if reference is None:
            return artifact
        referent = self.plan.find_by_relative_reference(artifact.source_path, reference)
        if referent is None:
            raise QueryError(f"No artifact found for reference {reference!r}", artifact.source_path)
        return referent

    def _set_source(self, source: Callable[[], Sequence[Artifact]]) -> ArtifactQuery:
        if self._source is not None:
            raise QueryError("Query source has already been set")
        self._source = source
        return self

    def _require_source(self) -> None:
        if self._source is None:
            raise QueryError("Query has no source; call a from_... method first")

    def from_children_of(self, artifact: Artifact, reference: str | None = None) -> ArtifactQuery:
        """Query the children of an artifact (or of the artifact a reference leads to)."""
        base = self._resolve(artifact, reference)
        return self._set_source(lambda: self.plan.children_of(base))

    def from_siblings_of(self, artifact: Artifact, reference: str | None = None) -> ArtifactQuery:
        base = self._resolve(artifact, reference)
        return self._set_source(lambda: self.plan.siblings_of(base))

    def from_level_of(self, artifact: Artifact, reference: str | None = None) -> ArtifactQuery:
        """Query the artifacts on an artifact's level (see `Plan.level_of`)."""
        base = self._resolve(artifact, reference)

        def level() -> Sequence[Artifact]:
            collection = self.plan.level_of(base)
            if collection is None:
                return (self.plan.principal_of(base),)
            return self.plan.children_of(collection)

        return self._set_source(level)

    def filter_content_type(self, pattern: str) -> ArtifactQuery:
        """Keep artifacts whose content type matches a pattern such as `text/*`."""
        self._require_source()
        if self._orderings:
            raise QueryError("Filters must come before orderings")
        pattern = pattern.lower()

        def matches(artifact: Artifact) -> bool:
            content_type = artifact.content_type
            if content_type is None:
                return False
            return fnmatch.fnmatchcase(content_type.split(";")[0].strip().lower(), pattern)

        self._filters.append(matches)
        return self

    def order_by_name(self) -> ArtifactQuery:
        """Order by target name, ignoring accents and case."""
        self._require_source()
        self._orderings.append((lambda artifact: collation_key(artifact.name), False))
        return self

    def reversed_order(self) -> ArtifactQuery:
        """Reverse the ordering composed so far, every key included."""
        self._require_source()
        if not self._orderings:
            raise QueryError("No ordering to reverse")
        self._orderings = [(key, not reverse) for key, reverse in self._orderings]
        return self

    def iterate(self) -> Iterator[Artifact]:
        """Execute the query; a query can only be executed once."""
        self._require_source()
        if self._executed:
            raise QueryError("Query has already been executed")
        self._executed = True
        artifacts = [a for a in self._source() if all(f(a) for f in self._filters)]
        # Stable sorts from the least significant ordering to the most.
        for key, reverse in reversed(self._orderings):
            artifacts.sort(key=key, reverse=reverse)
        return iter(artifacts)
