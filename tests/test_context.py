"""
Тесты контекста данных: слияние, поиск, строковое представление.
"""

from pathlib import Path

from incl.context import UNDEFINED, compute_web_root, deep_merge, derive_context, lookup_dotted, stringify


class TestMerge:
    """Производные контексты."""

    def test_nested_mappings_merge(self):
        base = {"site": {"title": "A", "lang": "en"}, "tags": [1, 2, 3]}
        merged = deep_merge(base, {"site": {"title": "B"}, "tags": [9]})
        assert merged == {"site": {"title": "B", "lang": "en"}, "tags": [9]}

    def test_inputs_are_not_modified(self):
        base = {"site": {"title": "A"}}
        override = {"site": {"items": [1]}}
        merged = derive_context(base, override)
        merged["site"]["items"].append(2)
        merged["site"]["title"] = "changed"
        assert base == {"site": {"title": "A"}}
        assert override == {"site": {"items": [1]}}

    def test_empty_overrides_are_skipped(self):
        assert derive_context({"a": 1}, None, {}) == {"a": 1}


class TestLookup:
    """Поиск по пути."""

    def test_dotted_path(self):
        data = {"a": {"b": [{"c": 5}]}}
        assert lookup_dotted(data, "a.b.0.c") == 5
        assert lookup_dotted(data, "a.b.length") == 1
        assert lookup_dotted(data, "a.x.y") is UNDEFINED


class TestStringify:
    """Строковое представление значений."""

    def test_values(self):
        assert stringify(None) == ""
        assert stringify(UNDEFINED) == ""
        assert stringify(False) == "false"
        assert stringify(1.0) == "1"
        assert stringify(1.5) == "1.5"
        assert stringify([1, "a"]) == "1,a"
        assert stringify({"a": 1}) == '{"a":1}'


class TestWebRoot:
    """Относительный путь к корню."""

    def test_file_in_base(self, tmp_path):
        assert compute_web_root(tmp_path / "index.html", tmp_path) == "."

    def test_nested_file(self, tmp_path):
        assert compute_web_root(tmp_path / "a" / "b" / "page.html", tmp_path) == "../.."

    def test_path_objects_and_strings(self):
        assert compute_web_root(Path("/site/docs/x.html"), Path("/site")) == ".."
