"""Mummifier registry.

Maps lowercase filename extensions to mummifiers. Extensions may be compound
(`page.foo.bar` is looked up as `foo.bar`, then `bar`). Sources that no
registered mummifier handles fall back to the default file or directory
mummifier.

Key classes:
- MummifierRegistry: Extension lookup with defaults.

Key functions:
- create_default_registry: Registry with the page, image, file and directory mummifiers.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .utils import compound_extensions

if TYPE_CHECKING:
    from .config import MummyConfig
    from .protocols import Mummifier


class MummifierRegistry:
    """Registry of mummifiers by filename extension.

    Built once at startup and read-only afterwards.
    """

    def __init__(
        self,
        default_file_mummifier: Mummifier,
        default_directory_mummifier: Mummifier,
        default_page_mummifier: Mummifier | None = None,
    ):
        """Initialize the registry.

        Args:
            default_file_mummifier: Used for files no registered mummifier handles.
            default_directory_mummifier: Used for all directories.
            default_page_mummifier: Generates phantom content pages for directories.
        """
        self._mummifiers: dict[str, Mummifier] = {}
        self.default_file_mummifier = default_file_mummifier
        self.default_directory_mummifier = default_directory_mummifier
        self.default_page_mummifier = default_page_mummifier

    def register(self, mummifier: Mummifier) -> None:
        """Register a mummifier for each of its supported extensions.

        Args:
            mummifier: Mummifier to register; later registrations win.
        """
        for extension in mummifier.supported_extensions:
            self._mummifiers[extension.lower()] = mummifier

    @property
    def extensions(self) -> list[str]:
        """Registered extensions in registration order."""
        return list(self._mummifiers)

    def find_for_extension(self, extension: str) -> Mummifier | None:
        return self._mummifiers.get(extension.lower())

    def find_for_file(self, path: Path) -> Mummifier | None:
        """Find the registered mummifier for a filename, trying longer extensions first.

        Args:
            path: Source file path.

        Returns:
            The mummifier, or None if no extension is registered.
        """
        for extension in compound_extensions(path.name):
            mummifier = self._mummifiers.get(extension)
            if mummifier is not None:
                return mummifier
        return None

    def get_for_path(self, path: Path) -> Mummifier:
        """Get the mummifier for a source path, falling back to the defaults."""
        if path.is_dir():
            return self.default_directory_mummifier
        return self.find_for_file(path) or self.default_file_mummifier


def create_default_registry(config: MummyConfig) -> MummifierRegistry:
    """Create a registry with the default mummifiers.

    Args:
        config: Project configuration.

    Returns:
        Configured MummifierRegistry.
    """
    from .images import ImageMummifier
    from .mummifiers import DirectoryMummifier, OpaqueFileMummifier
    from .pages import HtmlPageMummifier, MarkdownPageMummifier, XhtmlPageMummifier

    xhtml = XhtmlPageMummifier()
    registry = MummifierRegistry(OpaqueFileMummifier(), DirectoryMummifier(), xhtml)
    registry.register(xhtml)
    registry.register(HtmlPageMummifier())
    registry.register(MarkdownPageMummifier())
    registry.register(ImageMummifier(config.image))
    return registry
