"""Base mummifiers and the directory and opaque-file mummifiers.

Key classes:
- AbstractMummifier: Description loading and target naming shared by all mummifiers.
- AbstractFileMummifier: Incremental generation of one target file.
- OpaqueFileMummifier: Copies a file verbatim.
- DirectoryMummifier: Plans a directory's content page and children.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .artifacts import Artifact, DirectoryArtifact, FileArtifact, PhantomPageArtifact
from .description import Description, guess_content_type, save_description_file
from .planner import list_source_children
from .errors import TransformError
from .protocols import PageGenerator, SourceFileArtifact
from .utils import fingerprint_file, parse_post_filename
from .vocab import CONTENT_FINGERPRINT, CONTENT_MODIFIED_AT, TITLE

if TYPE_CHECKING:
    from .context import MummyContext

logger = logging.getLogger(__name__)


class AbstractMummifier(ABC):
    """Base class for mummifiers.

    Provides shared utilities:
        - load_description: Description loading through the incremental cache.
        - plan_target_path: Mummifier-specific target naming (identity by default).
        - save_description: Sidecar persistence after generation.
    """

    supported_extensions: Sequence[str] = ()

    @abstractmethod
    def plan(self, context: MummyContext, source_path: Path, target_path: Path) -> Artifact:
        ...

    @abstractmethod
    def mummify(self, context: MummyContext, artifact: Artifact) -> None:
        ...

    def plan_target_path(self, context: MummyContext, target_path: Path) -> Path:
        """Return the target path this mummifier generates for a proposed target."""
        return target_path

    def load_source_metadata(
        self, context: MummyContext, source_path: Path
    ) -> list[tuple[str, Any]]:
        """Extract (tag, value) metadata embedded in the source. None by default."""
        return []

    def get_content_type(self, context: MummyContext, source_path: Path) -> str | None:
        return guess_content_type(source_path)

    def load_description(
        self,
        context: MummyContext,
        source_path: Path,
        target_path: Path,
        is_directory: bool = False,
    ) -> Description:
        return context.description_loader.load(self, source_path, target_path, is_directory)

    def save_description(self, context: MummyContext, artifact: Artifact) -> None:
        is_directory = isinstance(artifact, DirectoryArtifact)
        path = context.description_path_for(artifact.target_path, is_directory)
        save_description_file(path, artifact.description)


class AbstractFileMummifier(AbstractMummifier):
    """Mummifier that generates a single target file.

    In incremental builds a target is regenerated only when its description
    is dirty, the target is missing, or the target's modification time no
    longer matches the one recorded when it was last generated.
    """

    @abstractmethod
    def mummify_file(self, context: MummyContext, artifact: Artifact) -> None:
        """Write the artifact's target file."""
        ...

    def is_up_to_date(self, context: MummyContext, artifact: Artifact) -> bool:
        if context.full or artifact.description.dirty:
            return False
        try:
            target_modified_at = artifact.target_path.stat().st_mtime_ns
        except FileNotFoundError:
            return False
        return artifact.description.get(CONTENT_MODIFIED_AT) == target_modified_at

    def mummify(self, context: MummyContext, artifact: Artifact) -> None:
        if self.is_up_to_date(context, artifact):
            logger.debug(f"Target up to date: {artifact.target_path}")
            return
        logger.debug(f"Mummifying {artifact.source_path} -> {artifact.target_path}")
        artifact.target_path.parent.mkdir(parents=True, exist_ok=True)
        self.mummify_file(context, artifact)
        self.stamp_target(context, artifact)

    def stamp_target(self, context: MummyContext, artifact: Artifact) -> None:
        """Record the generated target's state and save the description sidecar."""
        description = artifact.description
        description[CONTENT_MODIFIED_AT] = artifact.target_path.stat().st_mtime_ns
        description[CONTENT_FINGERPRINT] = fingerprint_file(artifact.target_path)
        description.dirty = False
        self.save_description(context, artifact)


class OpaqueFileMummifier(AbstractFileMummifier):
    """Copies a source file to its target unchanged."""

    def plan(self, context: MummyContext, source_path: Path, target_path: Path) -> Artifact:
        description = self.load_description(context, source_path, target_path)
        return FileArtifact(self, source_path, target_path, description)

    def mummify_file(self, context: MummyContext, artifact: Artifact) -> None:
        if not isinstance(artifact, SourceFileArtifact):
            raise TransformError("Opaque artifact has no source file", artifact.source_path)
        with artifact.open_source() as source, open(artifact.target_path, "wb") as target:
            shutil.copyfileobj(source, target)


class DirectoryMummifier(AbstractMummifier):
    """Plans and generates a directory.

    Planning is post-order: the content page and every child are planned
    before the directory artifact is built. A directory without a content
    source gets a phantom content page unless it is part of an asset tree.
    """

    def plan(self, context: MummyContext, source_path: Path, target_path: Path) -> Artifact:
        in_asset_tree = context.is_in_asset_tree(source_path)
        children = list_source_children(context, source_path)

        content_source = None if in_asset_tree else self.find_content_source(context, children)
        if content_source is not None:
            content_mummifier = context.registry.find_for_file(content_source)
            content_target = content_mummifier.plan_content_target_path(context, target_path)
            content_artifact = content_mummifier.plan(context, content_source, content_target)
        elif not in_asset_tree and context.registry.default_page_mummifier is not None:
            content_artifact = self.plan_phantom_content(context, source_path, target_path)
        else:
            content_artifact = None

        child_artifacts = []
        for child_source in children:
            if child_source == content_source:
                continue
            if context.is_in_asset_tree(child_source):
                if child_source.is_dir():
                    mummifier = context.registry.default_directory_mummifier
                else:
                    mummifier = context.registry.default_file_mummifier
            else:
                mummifier = context.registry.get_for_path(child_source)
            child_target = self.plan_child_target_path(
                context, mummifier, child_source, target_path, in_asset_tree
            )
            child_artifacts.append(mummifier.plan(context, child_source, child_target))

        description = self.load_description(context, source_path, target_path, is_directory=True)
        return DirectoryArtifact(
            self, source_path, target_path, description, content_artifact, child_artifacts
        )

    def find_content_source(self, context: MummyContext, children: list[Path]) -> Path | None:
        """Find the directory's content page among its children (`index.*` by default)."""
        for base_name in context.config.collection_content_base_names:
            for child in children:
                if not child.is_file():
                    continue
                mummifier = context.registry.find_for_file(child)
                if mummifier is None or not isinstance(mummifier, PageGenerator):
                    continue
                if child.name.lower().startswith(base_name.lower() + "."):
                    return child
        return None

    def plan_phantom_content(
        self, context: MummyContext, source_path: Path, target_path: Path
    ) -> Artifact:
        """Plan a generated content page titled with the directory name."""
        page_mummifier = context.registry.default_page_mummifier
        content_target = page_mummifier.plan_content_target_path(context, target_path)
        description = Description([(TITLE, source_path.name)])
        description.dirty = True
        return PhantomPageArtifact(page_mummifier, source_path, content_target, description)

    def plan_child_target_path(
        self,
        context: MummyContext,
        mummifier: AbstractMummifier,
        child_source: Path,
        target_dir: Path,
        in_asset_tree: bool,
    ) -> Path:
        """Derive a child's target path from its source name.

        Asset names (`$name`) drop their marker and are never renamed further;
        nothing inside an asset tree is renamed. Posts move into `YYYY/MM/DD`
        folders, veiled names (`_name`) drop their marker, and the child's
        mummifier then applies its own naming (pages get `.html`).
        """
        name = child_source.name
        if in_asset_tree:
            return target_dir / name
        asset_match = context.config.asset_name_pattern.fullmatch(name)
        if asset_match is not None:
            return target_dir / (asset_match.group(1) or name)

        if child_source.is_file():
            post = parse_post_filename(name)
            if post is not None and isinstance(mummifier, PageGenerator):
                published_on = post.published_on
                target_dir = (
                    target_dir
                    / f"{published_on.year:04d}"
                    / f"{published_on.month:02d}"
                    / f"{published_on.day:02d}"
                )
                name = post.filename

        veil_match = context.config.veil_name_pattern.fullmatch(name)
        if veil_match is not None and veil_match.group(1):
            name = veil_match.group(1)
        return mummifier.plan_target_path(context, target_dir / name)

    def mummify(self, context: MummyContext, artifact: Artifact) -> None:
        """Create the target directory, then generate the content page and children.

        Children are generated in order; the first failure propagates and
        the remaining children are not generated.
        """
        artifact.target_path.mkdir(parents=True, exist_ok=True)
        if artifact.content_artifact is not None:
            artifact.content_artifact.mummify(context)
        for child in artifact.child_artifacts:
            child.mummify(context)
        artifact.description.dirty = False
        self.save_description(context, artifact)
