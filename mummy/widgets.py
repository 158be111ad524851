"""Widgets: mummy control elements expanded during page processing.

Key classes:
- DirectoryWidget: `<mummy:Directory>` post listing.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from lxml import etree

from .artifacts import Artifact, PostArtifact
from .dom import clone, find_excerpt, relocate_element, xhtml
from .errors import TransformError
from .protocols import PageGenerator

if TYPE_CHECKING:
    from .context import MummyContext

logger = logging.getLogger(__name__)

DEFAULT_MORE_LABEL = "…"


def format_published_on(published_on: date) -> str:
    """Full date as shown under a post title (`Monday, January 1, 2024`)."""
    return f"{published_on.strftime('%A, %B')} {published_on.day}, {published_on.year}"


def _attribute(element: etree._Element, name: str) -> str | None:
    """Look up an attribute case-insensitively (HTML sources lowercase names)."""
    lowered = name.lower()
    for key, value in element.attrib.items():
        if etree.QName(key).localname.lower() == lowered:
            return value
    return None


class DirectoryWidget:
    """Lists the posts on the page's level, most recent first.

    Attributes on the widget element:
        moreLabel: Text of the link after each excerpt (default `…`).
        count: Maximum number of posts to list.

    Each post is rendered as `<h2><a>title</a></h2>`, an `<h3>` with the
    publication date when there is one, a `<div>` holding the post's
    excerpt when there is one, and a more link. Posts are separated by
    `<hr>`; there is none before the first post.
    """

    local_name = "directory"

    def sorted_posts(self, posts: list[PostArtifact]) -> list[PostArtifact]:
        """Sort posts by publication date descending (undated last), then by title."""
        ordered = sorted(posts, key=lambda post: post.determine_title())
        ordered.sort(key=lambda post: post.published_on or date.min, reverse=True)
        return ordered

    def find_posts(self, context: MummyContext, artifact: Artifact) -> list[PostArtifact]:
        level = context.plan.query().from_level_of(artifact).iterate()
        return [candidate for candidate in level if isinstance(candidate, PostArtifact)]

    def load_excerpt(
        self, context: MummyContext, artifact: Artifact, post: PostArtifact
    ) -> etree._Element | None:
        """Copy a post's excerpt with its references rebased onto the listing page."""
        if not isinstance(post.mummifier, PageGenerator):
            return None
        document = post.mummifier.load_source_document(context, post.source_path)
        excerpt = find_excerpt(document)
        if excerpt is None:
            return None
        excerpt = clone(excerpt)
        relocate_element(
            excerpt,
            lambda reference: context.plan.rebase_reference(artifact, post.source_path, reference),
        )
        return excerpt

    def process(
        self, context: MummyContext, artifact: Artifact, element: etree._Element
    ) -> list[etree._Element]:
        more_label = _attribute(element, "moreLabel") or DEFAULT_MORE_LABEL
        count_value = _attribute(element, "count")
        posts = self.sorted_posts(self.find_posts(context, artifact))
        if count_value is not None:
            try:
                count = int(count_value)
            except ValueError as exc:
                raise TransformError(
                    f"Invalid post count {count_value!r}", artifact.source_path
                ) from exc
            posts = posts[: max(count, 0)]

        rendered: list[etree._Element] = []
        for post in posts:
            if rendered:
                rendered.append(etree.Element(xhtml("hr")))
            href = context.plan.reference_in_source(artifact, post)

            heading = etree.Element(xhtml("h2"))
            etree.SubElement(heading, xhtml("a"), href=href).text = post.determine_title()
            rendered.append(heading)

            if post.published_on is not None:
                published = etree.Element(xhtml("h3"))
                published.text = format_published_on(post.published_on)
                rendered.append(published)

            excerpt = self.load_excerpt(context, artifact, post)
            if excerpt is not None:
                wrapper = etree.Element(xhtml("div"))
                wrapper.append(excerpt)
                rendered.append(wrapper)

            more = etree.Element(xhtml("a"), href=href)
            more.text = more_label
            rendered.append(more)
        logger.debug(f"Listed {len(posts)} posts in {artifact.source_path}")
        return rendered
