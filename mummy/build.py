"""Site build orchestration.

A build runs in two phases. Planning walks the source tree into an artifact
tree and freezes it into a Plan; mummification then generates every
artifact's target, depth-first, stopping at the first failure.

Key classes:
- BuildError: Error during site build with file context.
- BuildResult: Outcome of a successful build.

Key functions:
- mummify_site: Plan and generate a site.
- clean_site: Remove generated targets and description sidecars.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .artifacts import Artifact
from .config import MummyConfig, load_config
from .context import MummyContext
from .errors import MummyError
from .plan import Plan
from .planner import Planner
from .registry import create_default_registry

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error, if known.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path | None,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}" if source_path else message)


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        root: Root directory artifact.
        plan: Frozen plan of the site.
        output_dir: Directory where the site was generated.
    """

    root: Artifact
    plan: Plan
    output_dir: Path

    @property
    def artifacts(self) -> list[Artifact]:
        return list(self.plan.artifacts)


def mummify_site(
    project_root: Path,
    full: bool = False,
    config: MummyConfig | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        full: Regenerate everything, ignoring cached descriptions and
            up-to-date targets.
        config: Configuration to use instead of the project's mummy.yaml.

    Returns:
        BuildResult with the planned tree and the output directory.

    Raises:
        BuildError: If planning or generation fails.
    """
    try:
        config = config or load_config(project_root)
        context = MummyContext(config, create_default_registry(config), full=full)
        logger.info(f"Planning site {config.site_source_dir}")
        root = Planner(context).plan_site()
        plan = Plan(root)
        context.set_plan(plan)
        logger.info(f"Mummifying {len(plan.artifacts)} artifacts into {config.site_target_dir}")
        root.mummify(context)
    except MummyError as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc
    except OSError as exc:
        path = Path(exc.filename) if exc.filename else None
        raise BuildError(path, exc.strerror or str(exc), exc) from exc
    return BuildResult(root=root, plan=plan, output_dir=config.site_target_dir)


def clean_site(project_root: Path, config: MummyConfig | None = None) -> list[Path]:
    """Delete the generated site and description directories.

    Returns:
        The directories that existed and were removed.
    """
    config = config or load_config(project_root)
    removed = []
    for directory in (config.site_target_dir, config.site_description_target_dir):
        if directory.exists():
            shutil.rmtree(directory)
            removed.append(directory)
    return removed
