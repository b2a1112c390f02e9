from page_composer.models.page import ComponentInstance
from page_composer.utils import (
    compute_checksum,
    compute_settings_diff,
    serialize_content,
)


class TestUtils:
    def test_serialize_content(self):
        content = (ComponentInstance(component_type="a", settings={"x": 1}),)
        assert serialize_content(content) == [
            {"component_type": "a", "settings": {"x": 1}}
        ]

    def test_checksum_is_stable_and_order_sensitive(self):
        a = ComponentInstance(component_type="a", settings={"x": 1, "y": 2})
        a_reordered_keys = ComponentInstance(
            component_type="a", settings={"y": 2, "x": 1}
        )
        b = ComponentInstance(component_type="b")

        assert compute_checksum([a, b]) == compute_checksum([a_reordered_keys, b])
        assert compute_checksum([a, b]) != compute_checksum([b, a])
        assert len(compute_checksum([])) == 64

    def test_settings_diff(self):
        old = {"heading": "Hi", "cta": {"text": "Go", "link": "/a"}, "tags": [1]}
        new = {"heading": "Hi", "cta": {"text": "Go", "link": "/b"}, "tags": [2], "extra": 1}
        assert compute_settings_diff(old, new) == ["cta.link", "extra", "tags"]

    def test_settings_diff_removed_key(self):
        assert compute_settings_diff({"a": 1, "b": 2}, {"a": 1}) == ["b"]
        assert compute_settings_diff({}, {}) == []
