"""Image mummifier: scales large images and generates aspect variants.

Key classes:
- ImageMummifier: Plans ImageArtifacts and writes the image and its aspects.

Key functions:
- scale_image: Write a copy of an image no longer than a given length.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from .artifacts import Artifact, ImageArtifact
from .config import ImageConfig
from .errors import TransformError
from .mummifiers import AbstractFileMummifier
from .protocols import AspectualArtifact
from .vocab import TITLE

logger = logging.getLogger(__name__)

# EXIF ImageDescription
EXIF_IMAGE_DESCRIPTION = 270

LOSSY_FORMATS = frozenset({"JPEG", "WEBP"})


def scale_image(source_path: Path, target_path: Path, max_length: int, quality: float) -> None:
    """Write an image scaled so that neither side exceeds `max_length`.

    Images already small enough are re-encoded at their own size. The aspect
    ratio is kept.

    Args:
        source_path: Image to read.
        target_path: File to write, in the source's format.
        max_length: Longest allowed side in pixels.
        quality: Compression quality from 0 to 1 for lossy formats.

    Raises:
        TransformError: If the image cannot be read or written.
    """
    try:
        with Image.open(source_path) as image:
            image_format = image.format
            image.thumbnail((max_length, max_length))
            options: dict[str, Any] = {}
            if image_format in LOSSY_FORMATS:
                options["quality"] = int(round(quality * 100))
                if image.mode not in ("RGB", "L"):
                    image = image.convert("RGB")
            image.save(target_path, format=image_format, **options)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise TransformError(f"Unable to scale image: {exc}", source_path) from exc


class ImageMummifier(AbstractFileMummifier):
    """Generates images and their aspects.

    Images larger than the configured threshold (in bytes) are scaled down;
    others are copied unchanged. Each configured aspect is written next to
    the image as `<stem>-<aspect><ext>`.
    """

    supported_extensions = ("jpg", "jpeg", "png", "gif")

    def __init__(self, image_config: ImageConfig | None = None):
        self.image_config = image_config or ImageConfig()

    def plan(self, context, source_path: Path, target_path: Path) -> Artifact:
        description = self.load_description(context, source_path, target_path)
        return ImageArtifact(
            self, source_path, target_path, description, dict(self.image_config.aspects)
        )

    def load_source_metadata(self, context, source_path: Path) -> list[tuple[str, Any]]:
        """Use the EXIF image description, when present, as the title."""
        try:
            with Image.open(source_path) as image:
                title = image.getexif().get(EXIF_IMAGE_DESCRIPTION)
        except (UnidentifiedImageError, OSError) as exc:
            logger.warning(f"Unable to read image metadata from {source_path}: {exc}")
            return []
        if isinstance(title, bytes):
            title = title.decode("utf-8", errors="replace")
        if isinstance(title, str) and title.strip():
            return [(TITLE, title.strip())]
        return []

    def is_up_to_date(self, context, artifact: Artifact) -> bool:
        if not super().is_up_to_date(context, artifact):
            return False
        aspects = artifact.aspects if isinstance(artifact, AspectualArtifact) else ()
        return all(aspect.target_path.exists() for aspect in aspects)

    def mummify_file(self, context, artifact: Artifact) -> None:
        config = self.image_config
        if artifact.source_size > config.scale_threshold_size:
            logger.debug(f"Scaling {artifact.source_path} to {config.scale_max_length}px")
            scale_image(
                artifact.source_path,
                artifact.target_path,
                config.scale_max_length,
                config.scale_quality,
            )
        else:
            shutil.copyfile(artifact.source_path, artifact.target_path)
        aspects = artifact.aspects if isinstance(artifact, AspectualArtifact) else ()
        for aspect in aspects:
            scale_image(
                artifact.source_path, aspect.target_path, aspect.max_length, config.scale_quality
            )
