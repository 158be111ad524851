"""Page mummifiers and the page pipeline.

Every page runs through the same fixed stages:

1. load       parse the source into an XHTML tree
2. normalize  drop head metadata already captured in the description
3. template   merge the page into its template
4. process    expand widgets and regenerate navigation lists
5. relocate   rewrite source-relative references to target-relative ones
6. cleanse    remove mummy control elements, attributes and namespaces
7. ascribe    rebuild head metadata from the description
8. serialize  write the tree as HTML5

Tree stages are element transforms; each must hand the document root back
unchanged.

Key classes:
- PageMummifier: Pipeline shared by all page formats.
- XhtmlPageMummifier / HtmlPageMummifier / MarkdownPageMummifier: Format-specific loading.

Key functions:
- merge_head_references: Merge template and source head links without duplicates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from functools import partial
from pathlib import Path
from typing import Any

from lxml import etree

from .artifacts import Artifact, PageArtifact, PhantomPageArtifact, PostArtifact
from .dom import (
    HtmlSerializer,
    child_elements,
    clone,
    ensure_head,
    find_content_element,
    find_head,
    is_xhtml,
    local_name_of,
    mummy,
    namespace_of,
    new_document,
    relocate_element,
    remove_element,
    transform_children,
    transform_root,
    xhtml,
)
from .errors import ParseError, PlanningError, SerializationError, TransformError
from .loaders import HtmlLoader, MarkdownLoader, XhtmlLoader, extract_head_metadata
from .mummifiers import AbstractFileMummifier
from .protocols import DocumentLoader, DocumentSerializer, PageGenerator
from .references import resolve_reference, resolve_uri, split_reference
from .utils import parse_post_filename, strip_extension
from .vocab import (
    ADHOC_NAMESPACE,
    MUMMY_GENERATED_AT,
    MUMMY_GENERATOR,
    MUMMY_NAMESPACE,
    MUMMY_TEMPLATE,
    TITLE,
    UNASCRIBED_NAMESPACES,
    VocabularyRegistrar,
    camel_to_kebab,
    find_name,
    find_namespace,
)
from .widgets import DirectoryWidget

logger = logging.getLogger(__name__)

PAGE_TARGET_EXTENSION = "html"
PAGE_CONTENT_TYPE = "text/html"
REGENERATE_VALUE = "regenerate"

# Written by ascribe after all other metadata.
GENERATOR_META_NAMES = ("generator", "generated-at")


def format_meta_value(value: Any) -> str:
    """Render a description value as `<meta content>` text."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(format_meta_value(item) for item in value)
    return str(value)


def merge_head_references(
    template_head: etree._Element,
    source_head: etree._Element,
    local_name: str,
    attribute: str,
    normalize: Callable[[str], str],
) -> None:
    """Merge the source head's `<link>` (or `<script src>`) elements into the template head.

    References are compared by their normalized absolute URI. Walking the
    template's elements in order, when one matches a source element, the
    source elements up to that match are inserted before it and the template
    element is kept. Later template duplicates are removed. Source elements
    never matched are appended to the end of the head.

    Args:
        template_head: Head of the template; modified in place.
        source_head: Head of the page source.
        local_name: Element name (`link` or `script`).
        attribute: Reference attribute (`href` or `src`).
        normalize: Maps a reference to its normalized absolute URI.
    """
    pending: list[tuple[str, etree._Element]] = []
    pending_keys: set[str] = set()
    for element in child_elements(source_head, local_name):
        reference = element.get(attribute)
        if reference is None:
            continue
        key = normalize(reference)
        if key not in pending_keys:
            pending.append((key, element))
            pending_keys.add(key)

    seen: set[str] = set()
    for template_element in list(child_elements(template_head, local_name)):
        reference = template_element.get(attribute)
        if reference is None:
            continue
        key = normalize(reference)
        if key in seen:
            remove_element(template_element)
            continue
        keys = [pending_key for pending_key, _ in pending]
        if key in keys:
            index = keys.index(key)
            for pending_key, source_element in pending[:index]:
                if pending_key not in seen:
                    template_element.addprevious(clone(source_element))
                    seen.add(pending_key)
            pending = pending[index + 1 :]
        seen.add(key)

    for pending_key, source_element in pending:
        if pending_key not in seen:
            template_head.append(clone(source_element))
            seen.add(pending_key)


class PageMummifier(AbstractFileMummifier):
    """Generates HTML pages through the page pipeline.

    Subclasses provide the loader for their source format.
    """

    loader: DocumentLoader = XhtmlLoader()
    serializer: DocumentSerializer = HtmlSerializer()

    def __init__(self):
        self.widgets = {DirectoryWidget.local_name: DirectoryWidget()}

    # Planning

    def plan(self, context, source_path: Path, target_path: Path) -> Artifact:
        description = self.load_description(context, source_path, target_path)
        if parse_post_filename(source_path.name) is not None:
            artifact = PostArtifact(self, source_path, target_path, description)
        else:
            artifact = PageArtifact(self, source_path, target_path, description)
        if artifact.description.get(MUMMY_TEMPLATE) is not None:
            self.find_template(context, artifact)
        return artifact

    def plan_target_path(self, context, target_path: Path) -> Path:
        """Replace the source extension with `.html`, or drop it for bare page names."""
        base_name = strip_extension(target_path.name, self.supported_extensions)
        if context.config.page_names_bare:
            return target_path.with_name(base_name)
        return target_path.with_name(f"{base_name}.{PAGE_TARGET_EXTENSION}")

    def plan_content_target_path(self, context, directory_target: Path) -> Path:
        base_name = context.config.collection_content_base_names[0]
        return directory_target / f"{base_name}.{PAGE_TARGET_EXTENSION}"

    def get_content_type(self, context, source_path: Path) -> str | None:
        return PAGE_CONTENT_TYPE

    # Loading

    def load_source_document(self, context, source_path: Path) -> etree._Element:
        """Parse a source file of this mummifier's format.

        Raises:
            ParseError: If the source cannot be parsed; carries the source path.
        """
        data = source_path.read_bytes()
        try:
            return self.loader.load(data, source_path.name)
        except ParseError as exc:
            raise ParseError(exc.message, source_path) from exc

    def load_source_metadata(self, context, source_path: Path) -> list[tuple[str, Any]]:
        return extract_head_metadata(self.load_source_document(context, source_path))

    def load_artifact_document(self, context, artifact: Artifact) -> etree._Element:
        if isinstance(artifact, PhantomPageArtifact):
            return new_document()
        return self.load_source_document(context, artifact.source_path)

    # Generation

    def mummify_file(self, context, artifact: Artifact) -> None:
        root = self.load_artifact_document(context, artifact)
        root = self.normalize(context, artifact, root)
        root = self.apply_template(context, artifact, root)
        root = self.process(context, artifact, root)
        root = self.relocate(context, artifact, root)
        root = self.cleanse(context, artifact, root)
        root = self.ascribe(context, artifact, root)
        try:
            data = self.serializer.serialize(root)
        except SerializationError as exc:
            raise SerializationError(exc.message, artifact.source_path) from exc
        artifact.target_path.write_bytes(data)

    # Normalize

    def normalize(self, context, artifact: Artifact, root: etree._Element) -> etree._Element:
        """Remove head `<meta name|property>` elements and RDFa `prefix` attributes."""
        transform_root(root, self._normalize_element, artifact.source_path)
        etree.cleanup_namespaces(root)
        return root

    def _normalize_element(self, element: etree._Element) -> list[etree._Element]:
        if is_xhtml(element, "meta") and (
            element.get("name") is not None or element.get("property") is not None
        ):
            parent = element.getparent()
            if parent is not None and is_xhtml(parent, "head"):
                return []
        element.attrib.pop("prefix", None)
        transform_children(element, self._normalize_element)
        return [element]

    # Template

    def _resolve_explicit_template(self, context, artifact: Artifact, reference: str) -> Path:
        template_path = resolve_reference(
            artifact.source_path,
            reference,
            context_is_collection=isinstance(artifact, PhantomPageArtifact),
        )
        if template_path == artifact.source_path:
            return template_path
        if template_path is None or not template_path.is_file():
            raise PlanningError(f"Template not found: {reference}", artifact.source_path)
        if not isinstance(context.registry.find_for_file(template_path), PageGenerator):
            raise PlanningError(f"Template is not a page: {reference}", artifact.source_path)
        return template_path

    def find_ancestor_template(self, context, artifact: Artifact) -> Path | None:
        """Search the artifact's source directory and its ancestors for a template file."""
        base_name = context.config.template_base_name
        extensions = [
            extension
            for extension in context.registry.extensions
            if isinstance(context.registry.find_for_extension(extension), PageGenerator)
        ]
        directory = artifact.source_directory
        while True:
            for extension in extensions:
                candidate = directory / f"{base_name}.{extension}"
                if candidate.is_file():
                    return candidate
            if directory == context.site_source_dir or directory.parent == directory:
                return None
            directory = directory.parent

    def find_template(self, context, artifact: Artifact) -> Path | None:
        """Find the template of a page.

        An explicit `mummy:template` reference (relative to the page source)
        wins; a reference to the page itself means no template. Otherwise the
        nearest `.template.*` file is used.

        Raises:
            PlanningError: If an explicit template does not exist.
        """
        explicit = artifact.description.get(MUMMY_TEMPLATE)
        if explicit is not None:
            template_path = self._resolve_explicit_template(context, artifact, str(explicit))
            return None if template_path == artifact.source_path else template_path
        return self.find_ancestor_template(context, artifact)

    def apply_template(self, context, artifact: Artifact, root: etree._Element) -> etree._Element:
        """Merge the page into its template and return the template's tree.

        The template's references are first rebased onto the page source so
        both trees share a reference frame.
        """
        template_path = self.find_template(context, artifact)
        if template_path is None:
            return root
        logger.debug(f"Applying template {template_path} to {artifact.source_path}")
        template_mummifier = context.registry.find_for_file(template_path)
        template = template_mummifier.load_source_document(context, template_path)
        plan = context.plan
        transform_root(
            template,
            partial(
                relocate_element,
                relocate=lambda reference: plan.rebase_reference(artifact, template_path, reference),
            ),
            template_path,
        )

        source_head = find_head(root)
        if source_head is not None:
            template_head = ensure_head(template)

            def normalize(reference: str) -> str:
                return resolve_uri(
                    artifact.source_path,
                    reference,
                    plan.is_collection_source(artifact.source_path),
                )

            merge_head_references(template_head, source_head, "link", "href", normalize)
            merge_head_references(template_head, source_head, "script", "src", normalize)
            for element in source_head:
                if (is_xhtml(element, "script") and element.get("src") is None) or is_xhtml(
                    element, "style"
                ):
                    template_head.append(clone(element))

        template_content = find_content_element(template)
        if template_content is None:
            raise TransformError("Template has no content element", template_path)
        source_content = find_content_element(root)
        for child in list(template_content):
            template_content.remove(child)
        template_content.text = None
        if source_content is not None:
            template_content.text = source_content.text
            for name, value in source_content.attrib.items():
                template_content.set(name, value)
            for child in list(source_content):
                template_content.append(child)
        return template

    # Process

    def process(self, context, artifact: Artifact, root: etree._Element) -> etree._Element:
        """Expand widgets and regenerate flagged navigation lists."""
        transform_root(root, partial(self._process_element, context, artifact), artifact.source_path)
        return root

    def _process_element(self, context, artifact: Artifact, element: etree._Element) -> list[etree._Element]:
        if namespace_of(element) == MUMMY_NAMESPACE:
            widget = self.widgets.get(local_name_of(element).lower())
            if widget is not None:
                return widget.process(context, artifact, element)
            logger.warning(f"{artifact.source_path}: unrecognized element {local_name_of(element)}")
            return [element]
        if (
            is_xhtml(element, "ul", "ol")
            and element.get(mummy("regenerate")) == REGENERATE_VALUE
            and any(is_xhtml(ancestor, "nav") for ancestor in element.iterancestors())
        ):
            context.navigation_manager.regenerate_navigation_list(artifact, element)
            return [element]
        transform_children(element, partial(self._process_element, context, artifact))
        return [element]

    # Relocate

    def relocate_reference(self, context, artifact: Artifact, reference: str) -> str | None:
        """Rewrite a source-relative reference to the referent's target.

        Unresolvable references are logged and left unchanged.
        """
        path, suffix = split_reference(reference)
        referent = context.plan.find_by_relative_reference(artifact.source_path, path)
        if referent is None:
            logger.warning(f"{artifact.source_path}: unable to resolve reference {reference!r}")
            return None
        return context.plan.reference_in_target(artifact, referent) + suffix

    def relocate(self, context, artifact: Artifact, root: etree._Element) -> etree._Element:
        transform_root(
            root,
            partial(relocate_element, relocate=partial(self.relocate_reference, context, artifact)),
            artifact.source_path,
        )
        return root

    # Cleanse

    def cleanse(self, context, artifact: Artifact, root: etree._Element) -> etree._Element:
        """Remove everything in the mummy namespace."""
        transform_root(root, self._cleanse_element, artifact.source_path)
        etree.cleanup_namespaces(root)
        return root

    def _cleanse_element(self, element: etree._Element) -> list[etree._Element]:
        if namespace_of(element) == MUMMY_NAMESPACE:
            return []
        for name in list(element.attrib):
            if etree.QName(name).namespace == MUMMY_NAMESPACE:
                del element.attrib[name]
        transform_children(element, self._cleanse_element)
        return [element]

    # Ascribe

    def ascribe(self, context, artifact: Artifact, root: etree._Element) -> etree._Element:
        transform_root(root, partial(self._ascribe_document, context, artifact), artifact.source_path)
        return root

    def _ascribe_document(self, context, artifact: Artifact, root: etree._Element) -> list[etree._Element]:
        """Rebuild the head's title and metadata from the artifact description."""
        description = artifact.description
        head = ensure_head(root)
        registrar = VocabularyRegistrar()

        entries: list[tuple[str, str, str]] = []
        for tag, value in description.items():
            if tag == TITLE:
                continue
            namespace = find_namespace(tag)
            if namespace in UNASCRIBED_NAMESPACES:
                continue
            if namespace == ADHOC_NAMESPACE:
                name = camel_to_kebab(find_name(tag))
                if name in GENERATOR_META_NAMES:
                    continue
                entries.append(("name", name, format_meta_value(value)))
            else:
                entries.append(("property", registrar.curie_for(tag), format_meta_value(value)))
        generated_at = context.generated_at.isoformat()
        entries.append(("name", "generator", context.generator))
        entries.append(("name", "generated-at", generated_at))

        written = {(kind, key) for kind, key, _ in entries}
        for element in list(head):
            if is_xhtml(element, "title"):
                remove_element(element)
            elif is_xhtml(element, "meta") and any(
                (kind, element.get(kind)) in written for kind in ("name", "property")
            ):
                remove_element(element)

        position = 0
        for index, element in enumerate(head):
            if is_xhtml(element, "meta") and element.get("charset") is not None:
                position = index + 1
        title = etree.Element(xhtml("title"))
        title.text = artifact.determine_title()
        head.insert(position, title)
        for offset, (kind, key, value) in enumerate(entries, start=1):
            meta = etree.Element(xhtml("meta"))
            meta.set(kind, key)
            meta.set("content", value)
            head.insert(position + offset, meta)

        if len(registrar):
            head.set("prefix", registrar.prefix_attribute())
        else:
            head.attrib.pop("prefix", None)

        description[MUMMY_GENERATOR] = context.generator
        description[MUMMY_GENERATED_AT] = context.generated_at
        return [root]


class XhtmlPageMummifier(PageMummifier):
    """Pages written as well-formed XHTML (`.xhtml`)."""

    supported_extensions = ("xhtml",)
    loader = XhtmlLoader()


class HtmlPageMummifier(PageMummifier):
    """Pages written as HTML (`.html`, `.htm`)."""

    supported_extensions = ("html", "htm")
    loader = HtmlLoader()


class MarkdownPageMummifier(PageMummifier):
    """Pages written in Markdown with YAML front matter (`.md`, `.markdown`)."""

    supported_extensions = ("md", "markdown")
    loader = MarkdownLoader()

    def load_source_metadata(self, context, source_path: Path) -> list[tuple[str, Any]]:
        try:
            return self.loader.load_metadata(source_path.read_bytes(), source_path.name)
        except ParseError as exc:
            raise ParseError(exc.message, source_path) from exc
