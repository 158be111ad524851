"""Project configuration for Mummy.

Configuration is read from `mummy.yaml` in the project root and merged over
DEFAULT_CONFIG. Relative directories are resolved against the project root.

Key classes:
- MummyConfig: Resolved configuration values.
- ImageConfig: Image scaling and aspect settings.

Key functions:
- load_config: Load configuration from mummy.yaml.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import MummyError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "mummy.yaml"

DEFAULT_IMAGE_ASPECTS: dict[str, int] = {"preview": 1280, "thumbnail": 256}

DEFAULT_IMAGE_CONFIG: dict[str, Any] = {
    "scale_threshold_size": 800_000,
    "scale_max_length": 2560,
    "scale_quality": 0.8,
    "aspects": DEFAULT_IMAGE_ASPECTS,
}

DEFAULT_CONFIG: dict[str, Any] = {
    "site_source_dir": "src/site",
    "site_target_dir": "target/site",
    "site_description_target_dir": "target/site-description",
    "page_names_bare": False,
    "template_base_name": ".template",
    "navigation_base_name": ".navigation",
    "collection_content_base_names": ["index"],
    "asset_name_pattern": r"\$(.*)",
    "veil_name_pattern": r"_(.*)",
    "image": DEFAULT_IMAGE_CONFIG,
}


@dataclass
class ImageConfig:
    """Image processing settings.

    Attributes:
        scale_threshold_size: Images larger than this many bytes are scaled down.
        scale_max_length: Longest side of a scaled image.
        scale_quality: Lossy compression quality from 0 to 1.
        aspects: Aspect id to longest side of the generated variant.
    """

    scale_threshold_size: int = 800_000
    scale_max_length: int = 2560
    scale_quality: float = 0.8
    aspects: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_IMAGE_ASPECTS))


@dataclass
class MummyConfig:
    """Resolved project configuration.

    Attributes:
        project_root: Directory containing mummy.yaml.
        site_source_dir: Root of the site source tree.
        site_target_dir: Root of the generated site.
        site_description_target_dir: Root of the description sidecar tree.
        page_names_bare: Whether page targets drop their extension.
        template_base_name: Base filename of page templates.
        navigation_base_name: Base filename of navigation files.
        collection_content_base_names: Base names of directory content pages.
        asset_name_pattern: Names matching this are copied verbatim; group 1 is the target name.
        veil_name_pattern: Names matching this are hidden from navigation; group 1 is the target name.
        image: Image processing settings.
    """

    project_root: Path
    site_source_dir: Path
    site_target_dir: Path
    site_description_target_dir: Path
    page_names_bare: bool = False
    template_base_name: str = ".template"
    navigation_base_name: str = ".navigation"
    collection_content_base_names: list[str] = field(default_factory=lambda: ["index"])
    asset_name_pattern: re.Pattern[str] = re.compile(r"\$(.*)")
    veil_name_pattern: re.Pattern[str] = re.compile(r"_(.*)")
    image: ImageConfig = field(default_factory=ImageConfig)


def load_config(project_root: Path) -> MummyConfig:
    """Load site configuration from mummy.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        MummyConfig with defaults applied for missing values.

    Raises:
        MummyError: If the file is not valid YAML or a value has the wrong shape.
    """
    config_path = project_root / CONFIG_FILENAME
    values = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise MummyError(f"Invalid configuration: {exc}", config_path) from exc
        if not isinstance(loaded, dict):
            raise MummyError("Configuration must be a mapping", config_path)
        for key in loaded:
            if key not in DEFAULT_CONFIG:
                logger.warning(f"Ignoring unknown configuration key {key!r}")
        values.update({k: v for k, v in loaded.items() if k in DEFAULT_CONFIG})
    return config_from_mapping(project_root, values, config_path)


def config_from_mapping(
    project_root: Path, values: dict[str, Any], origin: Path | None = None
) -> MummyConfig:
    """Build a MummyConfig from raw values (as found in mummy.yaml)."""
    root = project_root.resolve()
    image_values = {**DEFAULT_IMAGE_CONFIG, **(values.get("image") or {})}
    base_names = values.get("collection_content_base_names") or ["index"]
    if isinstance(base_names, str):
        base_names = [base_names]
    try:
        return MummyConfig(
            project_root=root,
            site_source_dir=root / values["site_source_dir"],
            site_target_dir=root / values["site_target_dir"],
            site_description_target_dir=root / values["site_description_target_dir"],
            page_names_bare=bool(values.get("page_names_bare", False)),
            template_base_name=str(values["template_base_name"]),
            navigation_base_name=str(values["navigation_base_name"]),
            collection_content_base_names=[str(name) for name in base_names],
            asset_name_pattern=re.compile(values["asset_name_pattern"]),
            veil_name_pattern=re.compile(values["veil_name_pattern"]),
            image=ImageConfig(
                scale_threshold_size=int(image_values["scale_threshold_size"]),
                scale_max_length=int(image_values["scale_max_length"]),
                scale_quality=float(image_values["scale_quality"]),
                aspects={str(k): int(v) for k, v in (image_values["aspects"] or {}).items()},
            ),
        )
    except (KeyError, TypeError, ValueError, re.error) as exc:
        raise MummyError(f"Invalid configuration value: {exc}", origin) from exc
