from pathlib import Path

import lxml.html
import pytest
from lxml import etree

from mummy.artifacts import PageArtifact
from mummy.build import mummify_site
from mummy.description import Description
from mummy.dom import xhtml
from mummy.errors import TransformError
from mummy.navigation import (
    NavigationItem,
    NavigationManager,
    find_item_templates,
    icon_element,
    order_of,
    render_item,
)
from mummy.vocab import LABEL, MUMMY_ORDER

XHTML_PAGE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<html xmlns="http://www.w3.org/1999/xhtml" xmlns:mummy="https://guise.io/name/mummy/">'
    "<head><title>{title}</title></head><body>{nav}<p>{title}</p></body></html>"
)

SELF_LINK_NAV = (
    '<nav><ul mummy:regenerate="regenerate"><li><a href="">Self</a></li></ul></nav>'
)


def page_with_nav(title: str, nav: str = SELF_LINK_NAV) -> str:
    return XHTML_PAGE.format(title=title, nav=nav)


def create_project(tmp_path: Path, files: dict[str, str]) -> Path:
    site = tmp_path / "src" / "site"
    site.mkdir(parents=True, exist_ok=True)
    for name, text in files.items():
        path = site / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return tmp_path


def nav_links(project: Path, name: str) -> list[tuple[str | None, str]]:
    page = lxml.html.fromstring((project / "target" / "site" / name).read_text(encoding="utf-8"))
    return [(link.get("href"), link.text_content()) for link in page.xpath("//nav//a")]


def candidate(name: str, label: str, order: int | None = None) -> PageArtifact:
    properties = [(LABEL, label)]
    if order is not None:
        properties.append((MUMMY_ORDER, order))
    return PageArtifact(
        None, Path(f"/site/{name}.xhtml"), Path(f"/target/{name}.html"), Description(properties)
    )


def test_candidates_sort_by_order_then_label():
    manager = NavigationManager(None)
    candidates = [candidate("b", "B", 0), candidate("a", "A", 0), candidate("c", "C", 5)]
    assert [c.determine_label() for c in manager.sort_candidates(candidates)] == ["A", "B", "C"]


def test_candidate_labels_sort_ignoring_accents_and_case():
    manager = NavigationManager(None)
    candidates = [candidate("b", "beta"), candidate("e", "Éclair"), candidate("a", "alpha")]
    assert [c.determine_label() for c in manager.sort_candidates(candidates)] == [
        "alpha",
        "beta",
        "Éclair",
    ]


def test_order_of_rejects_non_integers():
    assert order_of(candidate("a", "A")) == 0
    assert order_of(candidate("a", "A", 3)) == 3
    with pytest.raises(TransformError):
        order_of(candidate("a", "A", "soon"))
    with pytest.raises(TransformError):
        order_of(candidate("a", "A", True))


def test_single_active_template_renders_every_candidate(tmp_path):
    project = create_project(
        tmp_path,
        {
            "index.xhtml": page_with_nav("Home"),
            "about.xhtml": page_with_nav("About"),
            "contact.xhtml": page_with_nav("Contact"),
        },
    )
    mummify_site(project)
    assert nav_links(project, "index.html") == [
        ("./", "Home"),
        ("about.html", "About"),
        ("contact.html", "Contact"),
    ]
    assert nav_links(project, "about.html") == [
        ("./", "Home"),
        ("about.html", "About"),
        ("contact.html", "Contact"),
    ]


def test_active_and_inactive_templates(tmp_path):
    nav = (
        '<nav><ul mummy:regenerate="regenerate">'
        '<li class="active"><a href="">Here</a></li>'
        '<li><a href="elsewhere.xhtml">There</a></li>'
        "</ul></nav>"
    )
    project = create_project(
        tmp_path,
        {"about.xhtml": page_with_nav("About", nav), "contact.xhtml": page_with_nav("Contact", nav)},
    )
    mummify_site(project)
    page = lxml.html.fromstring((project / "target" / "site" / "about.html").read_text(encoding="utf-8"))
    items = page.xpath("//nav/ul/li")
    assert [(item.get("class"), item.text_content()) for item in items] == [
        (None, "site"),
        ("active", "About"),
        (None, "Contact"),
    ]


def test_default_navigation_starts_with_heading_collection(tmp_path):
    project = create_project(
        tmp_path,
        {
            "index.xhtml": page_with_nav("Home"),
            "about.xhtml": page_with_nav("About"),
            "blog/intro.xhtml": page_with_nav("Intro"),
            "blog/@2024-01-01-hello.xhtml": page_with_nav("Hello"),
            "blog/_draft.xhtml": page_with_nav("Draft"),
            "blog/$assets/logo.xhtml": page_with_nav("Logo"),
            "blog/notes.txt": "notes",
        },
    )
    mummify_site(project)
    assert nav_links(project, "blog/intro.html") == [("./", "blog"), ("intro.html", "Intro")]
    assert nav_links(project, "index.html") == [("./", "Home"), ("about.html", "About"), ("blog/", "blog")]
    assert nav_links(project, "about.html") == [("./", "Home"), ("about.html", "About"), ("blog/", "blog")]


def test_navigation_list_file(tmp_path, caplog):
    project = create_project(
        tmp_path,
        {
            ".navigation.lst": "contact.xhtml\n\nmissing.xhtml\nabout.xhtml\n",
            "about.xhtml": page_with_nav("About"),
            "contact.xhtml": page_with_nav("Contact"),
            "docs/guide.xhtml": page_with_nav("Guide"),
        },
    )
    mummify_site(project)
    assert nav_links(project, "about.html") == [
        ("contact.html", "Contact"),
        ("about.html", "About"),
    ]
    assert nav_links(project, "docs/guide.html") == [
        ("../contact.html", "Contact"),
        ("../about.html", "About"),
    ]
    assert "missing.xhtml" in caplog.text


def test_navigation_yaml_file(tmp_path):
    nav = (
        '<nav><ul mummy:regenerate="regenerate">'
        '<li><a href=""><i class="icon"></i>Self</a></li></ul></nav>'
    )
    project = create_project(
        tmp_path,
        {
            ".navigation.yaml": (
                "- href: about.xhtml\n"
                "  label: About Us\n"
                "  icon: fas/fa-info\n"
                "- label: Elsewhere\n"
                "  href: https://example.com/\n"
                "- label: Section\n"
                "  navigation:\n"
                "    - contact.xhtml\n"
            ),
            "about.xhtml": page_with_nav("About", nav),
            "contact.xhtml": page_with_nav("Contact", nav),
        },
    )
    mummify_site(project)
    page = lxml.html.fromstring((project / "target" / "site" / "about.html").read_text(encoding="utf-8"))
    top_items = page.xpath("//nav/ul/li")
    assert len(top_items) == 3

    about_link = top_items[0].find("a")
    assert about_link.get("href") == "about.html"
    assert about_link.find("span").get("class") == "fas fa-info"
    assert about_link.text_content() == " About Us"

    external = top_items[1].find("a")
    assert external.get("href") == "https://example.com/"
    assert external.text_content() == "Elsewhere"
    assert external.find("i") is None

    section = top_items[2]
    assert section.find("a").get("href") is None
    assert section.find("a").text_content() == "Section"
    assert [a.get("href") for a in section.xpath("./ul/li/a")] == ["contact.html"]


def test_navigation_yaml_requires_labels_for_external_links(tmp_path):
    from mummy.build import BuildError

    project = create_project(
        tmp_path,
        {
            ".navigation.yaml": "- href: https://example.com/\n",
            "about.xhtml": page_with_nav("About"),
        },
    )
    with pytest.raises(BuildError) as excinfo:
        mummify_site(project)
    assert isinstance(excinfo.value.original_error, TransformError)


def list_element(markup: str) -> etree._Element:
    return etree.fromstring(f'<ul xmlns="http://www.w3.org/1999/xhtml">{markup}</ul>')


def test_find_item_templates_fallbacks():
    active, inactive = find_item_templates(
        list_element('<li class="on"><a href="">x</a><ul><li/></ul></li><li class="off"><a href="y">y</a></li>')
    )
    assert active.get("class") == "on"
    assert inactive.get("class") == "off"
    assert active.find(xhtml("ul")) is None

    active, inactive = find_item_templates(list_element('<li class="off"><a href="y">y</a></li>'))
    assert active.get("class") == inactive.get("class") == "off"

    active, inactive = find_item_templates(list_element(""))
    assert active.tag == xhtml("li")
    assert active.find(xhtml("a")) is not None


def test_icon_element():
    placeholder = etree.Element(xhtml("i"), title="icon")
    assert icon_element("fas/fa-home", placeholder).get("class") == "fas fa-home"
    material = icon_element("material/home", placeholder)
    assert (material.get("class"), material.text) == ("material", "home")
    plain = icon_element("star", placeholder)
    assert (plain.get("class"), plain.text, plain.get("title")) == (None, "star", "icon")


def test_icon_element_without_two_parts_is_text():
    for icon_id in ("a/b/c", "fas/", "/home", " /home", "material/ "):
        span = icon_element(icon_id, etree.Element(xhtml("i")))
        assert (span.get("class"), span.text) == (None, icon_id)


def test_render_item_without_link():
    item = etree.Element(xhtml("li"))
    render_item(item, NavigationItem("Heading", None))
    assert item.text == "Heading"
