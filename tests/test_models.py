import pytest
from pydantic import ValidationError

from page_composer.models.component import ComponentDefinition
from page_composer.models.enums import PageStatus, WidgetType
from page_composer.models.form import FieldError, FormField, FormView
from page_composer.models.page import ComponentInstance, Page, PageVersion


class TestComponentDefinition:
    def test_defaults(self):
        d = ComponentDefinition(id="text_content", display_name="Text")
        assert d.is_active is True
        assert d.settings_schema == {"type": "object", "properties": {}}
        assert d.ui_schema == {}
        assert d.default_settings == {}
        assert d.max_instances is None

    def test_id_pattern(self):
        ComponentDefinition(id="university.hero-banner_2", display_name="x")
        with pytest.raises(ValidationError):
            ComponentDefinition(id="Hero Banner", display_name="x")

    def test_max_instances_positive(self):
        with pytest.raises(ValidationError):
            ComponentDefinition(id="hero", display_name="x", max_instances=0)


class TestPage:
    def test_new_page_is_draft_v1(self):
        page = Page(id="p1", slug="about", title="About")
        assert page.status == PageStatus.DRAFT
        assert page.version == 1
        assert page.content_data == ()
        assert page.layout_template == "default"
        assert page.created_at.tzinfo is not None

    def test_slug_format(self):
        Page(id="p1", slug="programs/computer-science", title="CS")
        for bad in ["About", "with space", "-lead", "trail-", "a//b", ""]:
            with pytest.raises(ValidationError):
                Page(id="p1", slug=bad, title="x")

    def test_page_is_frozen(self):
        page = Page(id="p1", slug="about", title="About")
        with pytest.raises(ValidationError):
            page.title = "Other"

    def test_content_is_tuple(self):
        page = Page(
            id="p1",
            slug="about",
            title="About",
            content_data=[{"component_type": "hero", "settings": {"a": 1}}],
        )
        assert isinstance(page.content_data, tuple)
        assert page.content_data[0] == ComponentInstance(
            component_type="hero", settings={"a": 1}
        )

    def test_count_of_and_ordered(self):
        page = Page(
            id="p1",
            slug="about",
            title="About",
            content_data=(
                ComponentInstance(component_type="a"),
                ComponentInstance(component_type="b"),
                ComponentInstance(component_type="a"),
            ),
        )
        assert page.count_of("a") == 2
        assert page.count_of("c") == 0
        assert [i for i, _ in page.ordered()] == [0, 1, 2]

    def test_version_must_be_positive(self):
        with pytest.raises(ValidationError):
            Page(id="p1", slug="about", title="About", version=0)

    def test_round_trip_json(self):
        page = Page(
            id="p1",
            slug="about",
            title="About",
            status=PageStatus.PUBLISHED,
            content_data=(ComponentInstance(component_type="a"),),
        )
        restored = Page.model_validate_json(page.model_dump_json())
        assert restored == page


class TestComponentInstance:
    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            ComponentInstance(component_type="a", id="x")

    def test_equality_is_by_value(self):
        a = ComponentInstance(component_type="a", settings={"x": [1, 2]})
        b = ComponentInstance(component_type="a", settings={"x": [1, 2]})
        assert a == b


class TestPageVersion:
    def test_requires_checksum(self):
        with pytest.raises(ValidationError):
            PageVersion(page_id="p1", version=1, status=PageStatus.DRAFT)


class TestFormModels:
    def test_field_lookup(self):
        view = FormView(
            fields=[
                FormField(
                    name="heading", path="heading", label="Heading",
                    widget=WidgetType.TEXT,
                )
            ]
        )
        assert view.field("heading").label == "Heading"
        assert view.field("missing") is None

    def test_nested_children(self):
        child = FormField(name="c", path="p.c", label="c", widget=WidgetType.TEXT)
        parent = FormField(
            name="p", path="p", label="p", widget=WidgetType.OBJECT,
            children=[child],
        )
        assert parent.children[0].path == "p.c"

    def test_field_error(self):
        err = FieldError(path="", message="bad", validator="type")
        assert err.path == ""
