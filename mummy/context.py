"""Build context shared by the planner, mummifiers and the page pipeline.

The context carries configuration, the mummifier registry, and, once
planning has finished, the frozen Plan. Asking for the plan before it exists
is an error so that no stage can look up a half-built index.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from . import GENERATOR_NAME, __version__
from .description import SIDECAR_SUFFIX, DescriptionLoader
from .errors import MummyError

if TYPE_CHECKING:
    from .artifacts import Artifact
    from .config import MummyConfig
    from .navigation import NavigationManager
    from .plan import Plan
    from .registry import MummifierRegistry

logger = logging.getLogger(__name__)


class MummyContext:
    """State of one build.

    Attributes:
        config: Project configuration.
        registry: Mummifier registry, read-only once built.
        full: Whether cached descriptions and up-to-date targets are ignored.
        generated_at: Timestamp stamped on every page of this build.
    """

    def __init__(self, config: MummyConfig, registry: MummifierRegistry, full: bool = False):
        self.config = config
        self.registry = registry
        self.full = full
        self.generated_at = datetime.now(timezone.utc).replace(microsecond=0)
        self.description_loader = DescriptionLoader(self)
        self._plan: Plan | None = None
        self._navigation_manager: NavigationManager | None = None

    @property
    def site_source_dir(self) -> Path:
        return self.config.site_source_dir

    @property
    def site_target_dir(self) -> Path:
        return self.config.site_target_dir

    @property
    def site_description_target_dir(self) -> Path:
        return self.config.site_description_target_dir

    @property
    def generator(self) -> str:
        """Identity of the generator written into every page."""
        return f"{GENERATOR_NAME} {__version__}"

    @property
    def plan(self) -> Plan:
        """The frozen plan; only available after planning has finished."""
        if self._plan is None:
            raise MummyError("The site plan is not available until planning has finished")
        return self._plan

    def set_plan(self, plan: Plan) -> None:
        if self._plan is not None:
            raise MummyError("The site plan has already been set")
        self._plan = plan

    @property
    def navigation_manager(self) -> NavigationManager:
        if self._navigation_manager is None:
            from .navigation import NavigationManager

            self._navigation_manager = NavigationManager(self)
        return self._navigation_manager

    def description_path_for(self, target_path: Path, is_directory: bool = False) -> Path:
        """Locate the description sidecar of a target path.

        The target path is rebased from the site target directory onto the
        description target directory; directories keep their sidecar inside.
        """
        relative = target_path.relative_to(self.site_target_dir)
        rebased = self.site_description_target_dir / relative
        if is_directory:
            return rebased / SIDECAR_SUFFIX
        return rebased.with_name(rebased.name + SIDECAR_SUFFIX)

    def is_ignored(self, path: Path) -> bool:
        """Whether the planner skips a source entry (dotfiles, non-regular files)."""
        if path.name.startswith("."):
            return True
        return not (path.is_file() or path.is_dir())

    def is_asset_name(self, name: str) -> bool:
        return self.config.asset_name_pattern.fullmatch(name) is not None

    def is_veiled_name(self, name: str) -> bool:
        return self.config.veil_name_pattern.fullmatch(name) is not None

    def is_in_asset_tree(self, source_path: Path) -> bool:
        """Whether a source path is an asset or lies inside an asset directory."""
        try:
            relative = source_path.relative_to(self.site_source_dir)
        except ValueError:
            return False
        return any(self.is_asset_name(part) for part in relative.parts)

    def is_asset(self, artifact: Artifact) -> bool:
        return self.is_in_asset_tree(artifact.source_path)

    def is_veiled(self, artifact: Artifact) -> bool:
        return self.is_veiled_name(artifact.source_path.name)
