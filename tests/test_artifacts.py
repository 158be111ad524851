from pathlib import Path

from mummy.artifacts import (
    DirectoryArtifact,
    FileArtifact,
    ImageArtifact,
    PageArtifact,
    PhantomPageArtifact,
    PostArtifact,
)
from mummy.description import Description
from mummy.protocols import (
    AspectualArtifact,
    CollectionArtifact,
    CompositeArtifact,
)
from mummy.vocab import ICON, LABEL, MUMMY_ASPECT, NAME, TITLE

SOURCE = Path("/project/src/site")
TARGET = Path("/project/target/site")


def page(name: str, *properties, cls=PageArtifact):
    return cls(None, SOURCE / name, TARGET / name.replace(".xhtml", ".html"), Description(properties))


def test_identity_is_the_target_path():
    first = FileArtifact(None, SOURCE / "a.txt", TARGET / "same.txt", Description())
    second = PageArtifact(None, SOURCE / "b.xhtml", TARGET / "same.txt", Description([(TITLE, "B")]))
    other = FileArtifact(None, SOURCE / "a.txt", TARGET / "other.txt", Description())
    assert first == second
    assert hash(first) == hash(second)
    assert first != other
    assert len({first, second, other}) == 2


def test_determine_label_precedence():
    assert page("a.xhtml", (LABEL, "Label"), (TITLE, "Title"), (NAME, "Name")).determine_label() == "Label"
    assert page("a.xhtml", (TITLE, "Title"), (NAME, "Name")).determine_label() == "Title"
    assert page("a.xhtml", (NAME, "Name")).determine_label() == "Name"
    assert page("about.xhtml").determine_label() == "about"


def test_blank_titles_fall_back():
    assert page("about.xhtml", (TITLE, "  "), (LABEL, "")).determine_label() == "about"
    assert page("about.xhtml", (TITLE, " ")).determine_title() == "about"


def test_label_for_names_without_extension():
    artifact = FileArtifact(None, SOURCE / "README", TARGET / "README", Description())
    assert artifact.determine_label() == "README"
    hidden = FileArtifact(None, SOURCE / ".profile", TARGET / ".profile", Description())
    assert hidden.determine_label() == ".profile"


def test_navigability():
    assert page("a.xhtml").is_navigable
    assert page("@2024-01-01-a.xhtml", cls=PostArtifact).is_navigable
    assert not FileArtifact(None, SOURCE / "a.txt", TARGET / "a.txt", Description()).is_navigable


def test_directory_subsumes_content_page():
    content = page("blog/index.xhtml", (TITLE, "Journal"), (ICON, "fas/fa-book"))
    child = page("blog/post.xhtml")
    directory = DirectoryArtifact(
        None, SOURCE / "blog", TARGET / "blog", Description(), content, [child]
    )
    assert directory.subsumed_artifacts == (content,)
    assert directory.comprised_artifacts == (content, child)
    assert directory.child_artifacts == (child,)
    assert directory.referent_source_paths == (SOURCE / "blog", SOURCE / "blog" / "index.xhtml")
    assert directory.source_directory == SOURCE / "blog"
    assert directory.determine_title() == "Journal"
    assert directory.determine_label() == "Journal"
    assert directory.icon_id == "fas/fa-book"
    assert isinstance(directory, CompositeArtifact)
    assert isinstance(directory, CollectionArtifact)
    assert not isinstance(child, CollectionArtifact)


def test_directory_without_titles_uses_its_name():
    directory = DirectoryArtifact(None, SOURCE / "misc", TARGET / "misc", Description())
    assert directory.determine_label() == "misc"
    assert directory.subsumed_artifacts == ()


def test_phantom_page_resolves_in_its_directory():
    phantom = PhantomPageArtifact(
        None, SOURCE / "blog", TARGET / "blog" / "index.html", Description([(TITLE, "blog")])
    )
    assert phantom.source_directory == SOURCE / "blog"
    assert phantom.determine_label() == "blog"


def test_image_aspects():
    image = ImageArtifact(
        None,
        SOURCE / "cat.jpg",
        TARGET / "cat.jpg",
        Description([(TITLE, "Cat")]),
        {"preview": 1280, "thumbnail": 256},
    )
    thumbnail = image.find_aspect("thumbnail")
    assert thumbnail.target_path == TARGET / "cat-thumbnail.jpg"
    assert thumbnail.max_length == 256
    assert thumbnail.description[MUMMY_ASPECT] == "thumbnail"
    assert thumbnail.description[TITLE] == "Cat"
    assert MUMMY_ASPECT not in image.description
    assert [aspect.aspect_id for aspect in image.aspects] == ["preview", "thumbnail"]
    assert image.find_aspect("missing") is None
    assert isinstance(image, AspectualArtifact)
