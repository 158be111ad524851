"""Planning the artifact tree from the site source directory.

The planner asks the registry for the root directory's mummifier and lets it
plan; the directory mummifier recurses into children through the same
registry, so the tree is built bottom-up (post-order).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import PlanningError

if TYPE_CHECKING:
    from .artifacts import Artifact
    from .context import MummyContext

logger = logging.getLogger(__name__)


def list_source_children(context: MummyContext, source_dir: Path) -> list[Path]:
    """List the plannable entries of a source directory in name order.

    Dot-prefixed entries and entries that are neither regular files nor
    directories are skipped.

    Raises:
        PlanningError: If the directory cannot be read.
    """
    try:
        entries = sorted(source_dir.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise PlanningError(f"Unable to read directory: {exc.strerror or exc}", source_dir) from exc
    children = []
    for entry in entries:
        if context.is_ignored(entry):
            logger.debug(f"Ignoring {entry}")
            continue
        children.append(entry)
    return children


class Planner:
    """Plans the whole site into an artifact tree."""

    def __init__(self, context: MummyContext):
        self.context = context

    def plan_site(self) -> Artifact:
        """Plan the site source directory.

        Returns:
            The root directory artifact.

        Raises:
            PlanningError: If the source directory is missing or unreadable.
        """
        source_dir = self.context.site_source_dir
        if not source_dir.is_dir():
            raise PlanningError("Site source directory not found", source_dir)
        return self.plan_resource(source_dir, self.context.site_target_dir)

    def plan_resource(self, source_path: Path, target_path: Path) -> Artifact:
        """Plan one source resource with the mummifier the registry assigns it."""
        mummifier = self.context.registry.get_for_path(source_path)
        artifact = mummifier.plan(self.context, source_path, target_path)
        logger.debug(f"Planned {artifact!r}")
        return artifact
