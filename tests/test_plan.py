from pathlib import Path

import pytest

from mummy.config import DEFAULT_CONFIG, config_from_mapping
from mummy.context import MummyContext
from mummy.errors import MummyError, QueryError
from mummy.plan import Plan
from mummy.planner import Planner
from mummy.registry import create_default_registry

XHTML_PAGE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<html xmlns="http://www.w3.org/1999/xhtml"><head><title>{title}</title></head>'
    "<body><p>{title}</p></body></html>"
)

SITE = {
    "index.xhtml": XHTML_PAGE.format(title="Home"),
    "about.xhtml": XHTML_PAGE.format(title="About"),
    "blog/index.xhtml": XHTML_PAGE.format(title="Blog"),
    "blog/@2024-01-01-hello.xhtml": XHTML_PAGE.format(title="Hello"),
    "$css/site.css": "body {}",
}


def plan_site(tmp_path: Path, files: dict[str, str] = SITE) -> tuple[MummyContext, Plan]:
    config = config_from_mapping(tmp_path, dict(DEFAULT_CONFIG))
    for name, text in files.items():
        path = config.site_source_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    context = MummyContext(config, create_default_registry(config))
    plan = Plan(Planner(context).plan_site())
    context.set_plan(plan)
    return context, plan


def artifact_for(context: MummyContext, plan: Plan, name: str):
    return plan.find_by_source_reference(context.site_source_dir / name)


def test_plan_is_unavailable_until_set(tmp_path):
    config = config_from_mapping(tmp_path, dict(DEFAULT_CONFIG))
    context = MummyContext(config, create_default_registry(config))
    with pytest.raises(MummyError):
        context.plan
    _, plan = plan_site(tmp_path)
    context.set_plan(plan)
    with pytest.raises(MummyError):
        context.set_plan(plan)


def test_structure_queries(tmp_path):
    context, plan = plan_site(tmp_path)
    root = plan.root_artifact
    index = root.content_artifact
    about = artifact_for(context, plan, "about.xhtml")
    blog = artifact_for(context, plan, "blog")
    (post,) = blog.child_artifacts

    assert plan.principal_of(index) is root
    assert plan.principal_of(about) is about
    assert plan.parent_of(about) is root
    assert plan.parent_of(index) is None
    assert plan.parent_of(blog.content_artifact) is root
    assert plan.parent_of(post) is blog
    assert plan.children_of(index) == root.child_artifacts
    assert plan.children_of(about) == ()
    assert plan.siblings_of(about) == root.child_artifacts
    assert plan.siblings_of(root) == (root,)
    assert plan.level_of(index) is root
    assert plan.level_of(about) is root
    assert plan.level_of(post) is blog
    assert plan.is_collection_source(context.site_source_dir / "blog")
    assert not plan.is_collection_source(context.site_source_dir / "about.xhtml")


def test_content_source_resolves_to_directory(tmp_path):
    context, plan = plan_site(tmp_path)
    root = plan.root_artifact
    assert artifact_for(context, plan, "index.xhtml") is root
    assert artifact_for(context, plan, "blog/index.xhtml") is artifact_for(context, plan, "blog")
    assert artifact_for(context, plan, "missing.xhtml") is None
    assert root in plan.artifacts
    assert root.content_artifact in plan.artifacts


def test_empty_reference_resolves_to_context_itself(tmp_path):
    context, plan = plan_site(tmp_path)
    about = artifact_for(context, plan, "about.xhtml")
    (post,) = artifact_for(context, plan, "blog").child_artifacts
    assert plan.find_by_relative_reference(about.source_path, "") is about
    assert plan.find_by_relative_reference(post.source_path, "") is post
    blog_source = context.site_source_dir / "blog"
    assert plan.find_by_relative_reference(blog_source, "") is artifact_for(context, plan, "blog")


def test_relative_references(tmp_path):
    context, plan = plan_site(tmp_path)
    about = artifact_for(context, plan, "about.xhtml")
    blog = artifact_for(context, plan, "blog")
    (post,) = blog.child_artifacts
    css = artifact_for(context, plan, "$css/site.css")

    assert plan.find_by_relative_reference(about.source_path, "blog/") is blog
    assert plan.find_by_relative_reference(post.source_path, "../about.xhtml") is about
    assert plan.reference_in_source(about, blog) == "blog/"
    assert plan.reference_in_source(post, about) == "../about.xhtml"
    assert plan.reference_in_target(about, blog) == "blog/"
    assert plan.reference_in_target(post, about) == "../../../../about.html"
    assert plan.reference_in_target(post, css) == "../../../../css/site.css"
    assert plan.reference_in_target(blog.content_artifact, blog) == "./"


def test_rebase_reference(tmp_path):
    context, plan = plan_site(tmp_path)
    (post,) = artifact_for(context, plan, "blog").child_artifacts
    template = context.site_source_dir / ".template.xhtml"
    assert plan.rebase_reference(post, template, "about.xhtml#top") == "../about.xhtml#top"
    assert plan.rebase_reference(post, template, "$css/site.css") == "../$css/site.css"
    assert plan.rebase_reference(post, template, "img/logo.png") == "../img/logo.png"


def test_query_children_ordering(tmp_path):
    context, plan = plan_site(tmp_path)
    root = plan.root_artifact
    names = [a.name for a in plan.query().from_children_of(root).order_by_name().iterate()]
    assert names == ["about.html", "blog", "css"]
    names = [
        a.name
        for a in plan.query().from_children_of(root).order_by_name().reversed_order().iterate()
    ]
    assert names == ["css", "blog", "about.html"]


def test_query_reversal_covers_every_composed_ordering(tmp_path):
    context, plan = plan_site(tmp_path)
    root = plan.root_artifact
    query = plan.query().from_children_of(root).order_by_name().order_by_name().reversed_order()
    assert [a.name for a in query.iterate()] == ["css", "blog", "about.html"]
    query = plan.query().from_children_of(root).order_by_name().reversed_order().reversed_order()
    assert [a.name for a in query.iterate()] == ["about.html", "blog", "css"]


def test_query_filters_by_content_type(tmp_path):
    context, plan = plan_site(tmp_path)
    about = artifact_for(context, plan, "about.xhtml")
    pages = plan.query().from_siblings_of(about).filter_content_type("text/html").iterate()
    assert [a.name for a in pages] == ["about.html"]
    texts = plan.query().from_children_of(about, "$css/").filter_content_type("text/*").iterate()
    assert [a.name for a in texts] == ["site.css"]


def test_query_from_level_with_reference(tmp_path):
    context, plan = plan_site(tmp_path)
    about = artifact_for(context, plan, "about.xhtml")
    level = list(plan.query().from_level_of(about, "blog/").iterate())
    assert [a.name for a in level] == ["hello.html"]


def test_query_misuse(tmp_path):
    context, plan = plan_site(tmp_path)
    about = artifact_for(context, plan, "about.xhtml")

    with pytest.raises(QueryError):
        plan.query().order_by_name()
    with pytest.raises(QueryError):
        plan.query().iterate()
    with pytest.raises(QueryError):
        plan.query().from_children_of(about).from_siblings_of(about)
    with pytest.raises(QueryError):
        plan.query().from_siblings_of(about).reversed_order()
    with pytest.raises(QueryError):
        plan.query().from_siblings_of(about).order_by_name().filter_content_type("text/*")
    with pytest.raises(QueryError):
        plan.query().from_siblings_of(about, "missing.xhtml")

    query = plan.query().from_siblings_of(about)
    list(query.iterate())
    with pytest.raises(QueryError):
        query.iterate()
