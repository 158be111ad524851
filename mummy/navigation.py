"""Site navigation: navigation files, default navigation and list regeneration.

A page's navigation comes from the nearest navigation file in its source
directory or an ancestor (`.navigation.lst` or `.navigation.yaml`), or, when
there is none, from the artifacts on the page's level.

`.navigation.lst` holds one relative reference per line. `.navigation.yaml`
holds a list whose entries are either reference strings or mappings:

    - index.xhtml
    - href: blog/
      label: Journal
      icon: fas/fa-book
      navigation:
        - blog/archive.xhtml
    - href: https://example.com/
      label: Elsewhere

Key classes:
- NavigationItem: One entry of a navigation list.
- NavigationManager: Loads navigation and regenerates `<ul mummy:regenerate>` lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from lxml import etree

from .artifacts import Artifact, PostArtifact
from .dom import child_elements, clone, is_element, remove_element, replace_element, xhtml
from .errors import TransformError
from .protocols import CollectionArtifact
from .references import is_relative_path_reference
from .utils import collation_key
from .vocab import MUMMY_ORDER

if TYPE_CHECKING:
    from .context import MummyContext

logger = logging.getLogger(__name__)

NAVIGATION_LIST_EXTENSION = "lst"
NAVIGATION_YAML_EXTENSIONS = ("yaml", "yml")

# Icon groups rendered as a class pair, such as `<span class="fas fa-home">`.
CLASS_ICON_GROUPS = frozenset({"fas", "far", "fal", "fad", "fab"})


@dataclass
class NavigationItem:
    """One navigation entry.

    Attributes:
        label: Link text.
        href: Reference relative to the page source, or None for a plain heading.
        icon_id: Icon id such as `fas/fa-home`.
        navigation: Nested navigation items.
        artifact: Artifact the entry links to, when it is a planned artifact.
    """

    label: str
    href: str | None
    icon_id: str | None = None
    navigation: list[NavigationItem] = field(default_factory=list)
    artifact: Artifact | None = None


def order_of(artifact: Artifact) -> int:
    """Navigation order of an artifact (`mummy:order`, default 0).

    Raises:
        TransformError: If the order is not an integer.
    """
    value = artifact.description.get(MUMMY_ORDER)
    content = getattr(artifact, "content_artifact", None)
    if value is None and content is not None:
        value = content.description.get(MUMMY_ORDER)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise TransformError(f"Invalid navigation order {value!r}", artifact.source_path)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise TransformError(f"Invalid navigation order {value!r}", artifact.source_path) from exc


class NavigationManager:
    """Builds navigation items for pages and regenerates navigation lists."""

    def __init__(self, context: MummyContext):
        self.context = context

    def find_navigation_file(self, artifact: Artifact) -> Path | None:
        """Find the nearest navigation file from the artifact's source directory up."""
        base_name = self.context.config.navigation_base_name
        extensions = (NAVIGATION_LIST_EXTENSION, *NAVIGATION_YAML_EXTENSIONS)
        directory = artifact.source_directory
        while True:
            for extension in extensions:
                candidate = directory / f"{base_name}.{extension}"
                if candidate.is_file():
                    return candidate
            if directory == self.context.site_source_dir or directory.parent == directory:
                return None
            directory = directory.parent

    def navigation_for(self, artifact: Artifact) -> list[NavigationItem]:
        """Return the navigation of a page: its navigation file, or the default."""
        navigation_file = self.find_navigation_file(artifact)
        if navigation_file is not None:
            return self.load_navigation(artifact, navigation_file)
        return self.default_navigation(artifact)

    def load_navigation(self, artifact: Artifact, navigation_file: Path) -> list[NavigationItem]:
        """Load a navigation file for a page.

        Args:
            artifact: Page being generated; hrefs are made relative to its source.
            navigation_file: `.lst` or `.yaml` navigation file.

        Returns:
            Navigation items; entries that resolve to no artifact are skipped.
        """
        extension = navigation_file.suffix.lstrip(".").lower()
        if extension == NAVIGATION_LIST_EXTENSION:
            text = navigation_file.read_text(encoding="utf-8")
            entries: list[Any] = [line.strip() for line in text.splitlines() if line.strip()]
        else:
            with open(navigation_file, encoding="utf-8") as f:
                try:
                    entries = yaml.safe_load(f) or []
                except yaml.YAMLError as exc:
                    raise TransformError(f"Invalid navigation file: {exc}", navigation_file) from exc
            if not isinstance(entries, list):
                raise TransformError("Navigation file must hold a list", navigation_file)
        return self._load_entries(artifact, navigation_file, entries)

    def _load_entries(
        self, artifact: Artifact, navigation_file: Path, entries: list[Any]
    ) -> list[NavigationItem]:
        items = []
        for entry in entries:
            if isinstance(entry, str):
                item = self._item_for_reference(artifact, navigation_file, entry)
            elif isinstance(entry, dict):
                item = self._item_for_record(artifact, navigation_file, entry)
            else:
                raise TransformError(f"Invalid navigation entry {entry!r}", navigation_file)
            if item is not None:
                items.append(item)
        return items

    def _resolve(self, navigation_file: Path, reference: str) -> Artifact | None:
        referent = self.context.plan.find_by_relative_reference(navigation_file, reference)
        if referent is None:
            logger.warning(f"{navigation_file}: no artifact found for navigation reference {reference!r}")
        return referent

    def _item_for_reference(
        self, artifact: Artifact, navigation_file: Path, reference: str
    ) -> NavigationItem | None:
        referent = self._resolve(navigation_file, reference)
        if referent is None:
            return None
        return self.item_for_artifact(artifact, referent)

    def _item_for_record(
        self, artifact: Artifact, navigation_file: Path, record: dict[str, Any]
    ) -> NavigationItem | None:
        href = record.get("href")
        label = record.get("label")
        icon = record.get("icon")
        nested = record.get("navigation") or []
        if not isinstance(nested, list):
            raise TransformError("Nested navigation must be a list", navigation_file)

        if href is None:
            if label is None:
                raise TransformError("Navigation entry needs an href or a label", navigation_file)
            item = NavigationItem(str(label), None, str(icon) if icon else None)
        elif not is_relative_path_reference(str(href)) and str(href) != "":
            if label is None:
                raise TransformError(f"Navigation entry {href!r} needs a label", navigation_file)
            item = NavigationItem(str(label), str(href), str(icon) if icon else None)
        else:
            item = self._item_for_reference(artifact, navigation_file, str(href))
            if item is None:
                return None
            if label is not None:
                item.label = str(label)
            if icon is not None:
                item.icon_id = str(icon)
        item.navigation = self._load_entries(artifact, navigation_file, nested)
        return item

    def item_for_artifact(self, artifact: Artifact, referent: Artifact) -> NavigationItem:
        """Navigation item linking from a page to an artifact."""
        principal = self.context.plan.principal_of(referent)
        return NavigationItem(
            label=principal.determine_label(),
            href=self.context.plan.reference_in_source(artifact, principal),
            icon_id=principal.icon_id,
            artifact=principal,
        )

    def is_navigation_candidate(self, candidate: Artifact) -> bool:
        return (
            candidate.is_navigable
            and not isinstance(candidate, PostArtifact)
            and not self.context.is_asset(candidate)
            and not self.context.is_veiled(candidate)
        )

    def sort_candidates(self, candidates: list[Artifact]) -> list[Artifact]:
        """Sort by `mummy:order`, then by label ignoring accents and case."""
        return sorted(
            candidates,
            key=lambda candidate: (order_of(candidate), collation_key(candidate.determine_label())),
        )

    def parent_navigation_artifact(self, artifact: Artifact) -> Artifact | None:
        """The artifact heading the default navigation.

        A collection (or a collection's content page) heads its own
        navigation; any other artifact is headed by its parent.
        """
        plan = self.context.plan
        principal = plan.principal_of(artifact)
        if isinstance(principal, CollectionArtifact):
            return principal
        return plan.parent_of(principal)

    def default_navigation(self, artifact: Artifact) -> list[NavigationItem]:
        """Navigation built from the plan: the heading artifact first, then this level."""
        plan = self.context.plan
        items = []
        parent = self.parent_navigation_artifact(artifact)
        if parent is not None:
            items.append(self.item_for_artifact(artifact, parent))
        candidates = [
            candidate
            for candidate in plan.query().from_level_of(artifact).iterate()
            if self.is_navigation_candidate(candidate)
        ]
        items.extend(self.item_for_artifact(artifact, c) for c in self.sort_candidates(candidates))
        return items

    def is_active(self, artifact: Artifact, item: NavigationItem) -> bool:
        return item.artifact is not None and item.artifact == self.context.plan.principal_of(artifact)

    def regenerate_navigation_list(self, artifact: Artifact, list_element: etree._Element) -> None:
        """Replace a navigation list's items with the page's navigation.

        Existing items serve as templates: the first item whose first link
        has `href=""` is the active template (used for the page being
        generated), the first other item is the inactive template. A missing
        template falls back to the other one, or to a bare `<li><a/></li>`.
        """
        active_template, inactive_template = find_item_templates(list_element)
        items = self.navigation_for(artifact)
        for child in list(list_element):
            list_element.remove(child)
        list_element.text = None
        self._render_items(artifact, list_element, items, active_template, inactive_template)

    def _render_items(
        self,
        artifact: Artifact,
        list_element: etree._Element,
        items: list[NavigationItem],
        active_template: etree._Element,
        inactive_template: etree._Element,
    ) -> None:
        for item in items:
            template = active_template if self.is_active(artifact, item) else inactive_template
            list_item = clone(template)
            render_item(list_item, item)
            if item.navigation:
                nested = etree.SubElement(list_item, xhtml("ul"))
                self._render_items(artifact, nested, item.navigation, active_template, inactive_template)
            list_element.append(list_item)


def _first_link(list_item: etree._Element) -> etree._Element | None:
    return next(list_item.iter(xhtml("a")), None)


def find_item_templates(list_element: etree._Element) -> tuple[etree._Element, etree._Element]:
    """Find the (active, inactive) item templates of a navigation list."""
    active = None
    inactive = None
    for list_item in child_elements(list_element, "li"):
        link = _first_link(list_item)
        if link is not None and link.get("href") == "":
            if active is None:
                active = list_item
        elif inactive is None:
            inactive = list_item
    if inactive is None:
        inactive = active if active is not None else _synthesize_item()
    if active is None:
        active = inactive
    return _strip_nested_lists(active), _strip_nested_lists(inactive)


def _synthesize_item() -> etree._Element:
    list_item = etree.Element(xhtml("li"))
    etree.SubElement(list_item, xhtml("a"))
    return list_item


def _strip_nested_lists(list_item: etree._Element) -> etree._Element:
    template = clone(list_item)
    for nested in [e for e in template if is_element(e) and e.tag in (xhtml("ul"), xhtml("ol"))]:
        remove_element(nested)
    return template


def icon_element(icon_id: str, placeholder: etree._Element) -> etree._Element:
    """Build the `<span>` that replaces an `<i>` icon placeholder.

    `fas/fa-home` (and the other Font Awesome groups) becomes
    `<span class="fas fa-home">`; another `group/name` becomes
    `<span class="group">name</span>`; an id without a group becomes the
    span's text. Only ids of exactly two non-blank parts have a group.
    """
    span = etree.Element(xhtml("span"))
    for name, value in placeholder.attrib.items():
        span.set(name, value)
    parts = icon_id.split("/")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        span.text = icon_id
        return span
    group, name = parts
    if group in CLASS_ICON_GROUPS:
        span.set("class", f"{group} {name}")
    else:
        span.set("class", group)
        span.text = name
    return span


def render_item(list_item: etree._Element, item: NavigationItem) -> None:
    """Fill a cloned item template with a navigation item's icon, link and label."""
    placeholder = next(list_item.iter(xhtml("i")), None)
    if placeholder is not None:
        if item.icon_id:
            replace_element(placeholder, [icon_element(item.icon_id, placeholder)])
        else:
            remove_element(placeholder)

    link = _first_link(list_item)
    if link is None:
        list_item.text = item.label
        return
    if item.href is None:
        link.attrib.pop("href", None)
    else:
        link.set("href", item.href)
    link.text = None
    for child in link:
        child.tail = None
    children = [child for child in link if is_element(child)]
    if children:
        children[-1].tail = " " + item.label
    else:
        link.text = item.label

