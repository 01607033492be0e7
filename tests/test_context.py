"""Tests for Context, property paths and value coercion."""

import pytest

from brickrun.exceptions import BusinessError
from brickrun.runtime.context import Context, output_key_var
from brickrun.runtime.paths import get_prop_by_path, is_simple_path
from brickrun.utils import boolean


class TestContext:
    def test_extend_returns_new_context(self):
        """Extending never changes the parent."""
        parent = Context({"@input": {"a": 1}})
        child = parent.extend({"@out": 2})

        assert "@out" in child
        assert "@out" not in parent
        assert child["@input"] == {"a": 1}

    def test_extend_overrides(self):
        ctxt = Context({"@x": 1}).extend({"@x": 2})
        assert ctxt["@x"] == 2

    def test_is_read_only(self):
        ctxt = Context({"@x": 1})
        with pytest.raises(TypeError):
            ctxt["@x"] = 2  # type: ignore[index]

    def test_source_dict_is_copied(self):
        """Mutating the dict a Context was built from doesn't leak in."""
        data = {"@x": 1}
        ctxt = Context(data)
        data["@x"] = 2
        assert ctxt["@x"] == 1

    def test_bind(self):
        ctxt = Context().bind("result", 42)
        assert ctxt.to_dict() == {"@result": 42}

    def test_output_key_var(self):
        assert output_key_var("foo") == "@foo"
        assert output_key_var("@foo") == "@foo"


class TestSimplePath:
    def test_head_must_be_in_context(self):
        ctxt = {"@input": {"name": "Ada"}}
        assert is_simple_path("@input.name", ctxt)
        assert not is_simple_path("@other.name", ctxt)

    def test_templates_are_not_paths(self):
        ctxt = {"@input": {}}
        assert not is_simple_path("{{ @input }}", ctxt)
        assert not is_simple_path("@input name", ctxt)
        assert not is_simple_path("", ctxt)

    def test_optional_parts(self):
        assert is_simple_path("@input?.user?.name", {"@input": {}})

    def test_null_head_is_still_a_path(self):
        assert is_simple_path("@input", {"@input": None})


class TestGetPropByPath:
    def test_nested_lookup(self):
        ctxt = {"@input": {"user": {"name": "Ada"}}}
        assert get_prop_by_path(ctxt, "@input.user.name") == "Ada"

    def test_list_index(self):
        ctxt = {"@input": {"items": ["a", "b"]}}
        assert get_prop_by_path(ctxt, "@input.items.1") == "b"
        assert get_prop_by_path(ctxt, "@input.items.length") == 2

    def test_missing_leaf_is_none(self):
        assert get_prop_by_path({"@input": {}}, "@input.missing") is None

    def test_reading_through_none_raises(self):
        with pytest.raises(BusinessError, match="Cannot read property 'name'"):
            get_prop_by_path({"@input": {}}, "@input.user.name")

    def test_optional_chaining(self):
        assert get_prop_by_path({"@input": {}}, "@input.user?.name") is None

    def test_works_on_context(self):
        assert get_prop_by_path(Context({"@x": {"y": 1}}), "@x.y") == 1


class TestBoolean:
    @pytest.mark.parametrize("value", [True, "true", " Yes ", "on", "1", "t", 1, 2.5])
    def test_truthy(self, value):
        assert boolean(value) is True

    @pytest.mark.parametrize(
        "value", [False, "false", "", "no", "{{ @input.run }}", 0, None, {"a": 1}, [1]]
    )
    def test_falsy(self, value):
        assert boolean(value) is False
