"""
Тесты директивы @@loop: повторное подключение файла для каждого элемента.
"""

import pytest

from incl.errors import IncludeRecursionError, MalformedJSONWarning, MissingContextPropertyWarning


class TestLoop:
    """Подключение файла по элементам массива."""

    def test_items_are_concatenated_in_order(self, files, render):
        files({"item.html": "<li>@@n</li>"})
        assert render('@@loop("item.html", [{"n":1},{"n":2}])') == "<li>1</li><li>2</li>"

    def test_each_item_gets_its_own_context(self, files, render):
        files({"item.html": "[@@a|@@b]"})
        result = render('@@loop("item.html", [{"a": "x"}, {"b": "y"}])')
        assert result == "[x|@@b][@@a|y]"

    def test_items_from_context(self, files, render):
        files({"item.html": "<a href=\"@@href\">@@label</a>"})
        nav = [{"href": "/", "label": "Home"}, {"href": "/docs", "label": "Docs"}]
        result = render("@@loop('item.html', @@nav)", data={"nav": nav})
        assert result == '<a href="/">Home</a><a href="/docs">Docs</a>'

    def test_items_from_json_file(self, files, render):
        files({
            "item.html": "@@n;",
            "data/items.json": '[{"n": 1}, {"n": 2}, {"n": 3}]',
        })
        assert render("@@loop('item.html', 'data/items.json')") == "1;2;3;"

    def test_mapping_iterates_values(self, files, render):
        files({"item.html": "@@n;"})
        assert render('@@loop("item.html", {"a": {"n": 1}, "b": {"n": 2}})') == "1;2;"

    def test_non_mapping_items_get_empty_context(self, files, render):
        files({"item.html": "<li>@@n</li>"})
        assert render('@@loop("item.html", [null, {"n": 1}])') == "<li>@@n</li><li>1</li>"

    def test_empty_array_does_not_read_the_file(self, render):
        assert render("a@@loop('missing.html', [])b") == "ab"

    def test_missing_context_reference_renders_nothing(self, render_unit):
        result = render_unit("a@@loop('missing.html', @@ghost)b")
        assert result.contents == "ab"
        assert isinstance(result.warnings[0], MissingContextPropertyWarning)

    def test_scalar_parameter_renders_nothing(self, files, render_unit):
        files({"item.html": "x"})
        result = render_unit("a@@loop('item.html', 5)b")
        assert result.contents == "ab"
        assert isinstance(result.warnings[0], MalformedJSONWarning)

    def test_loop_items_resolve_nested_directives(self, files, render):
        files({
            "item.html": "@@if (active) {*}@@include('label.html', {\"text\": \"@@text\"})",
            "label.html": "<b>@@text</b>",
        })
        result = render('@@loop("item.html", [{"active": true, "text": "A"}, {"active": false, "text": "B"}])')
        assert result == "*<b>A</b><b>B</b>"

    def test_indent_applies_to_each_item(self, files, render):
        files({"item.html": "<li>\n  @@n\n</li>\n"})
        result = render('<ul>\n  @@loop("item.html", [{"n": 1}, {"n": 2}])</ul>', indent=True)
        assert result == "<ul>\n  <li>\n    1\n  </li>\n  <li>\n    2\n  </li>\n  </ul>"

    def test_self_loop(self, render):
        with pytest.raises(IncludeRecursionError):
            render('@@loop("index.html", [{"n": 1}])')
