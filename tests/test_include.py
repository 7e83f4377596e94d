"""
Тесты директивы @@include: пути, параметры, циклы, отступы, фильтры.
"""

import pytest

from incl.errors import (
    FilterError,
    IncludeNotFoundError,
    IncludeRecursionError,
    MalformedJSONWarning,
    MissingFileWarning,
)
from incl.host import process_file
from incl.includes import IncludeCall, parse_include_args


class TestParseIncludeArgs:
    """Разбор аргументов вызова."""

    def test_path_only(self):
        assert parse_include_args("'a.html'") == IncludeCall(path="a.html")

    def test_path_and_parameter(self):
        call = parse_include_args('"a.html", {"x": [1, 2]}')
        assert call.path == "a.html"
        assert call.param == '{"x": [1, 2]}'

    def test_filter_chain(self):
        call = parse_include_args("trim(upper('a.txt', @@data))")
        assert call == IncludeCall(path="a.txt", param="@@data", filters=("trim", "upper"))

    def test_no_quoted_path(self):
        assert parse_include_args("header") is None


class TestInclude:
    """Подключение файлов."""

    def test_parameters_become_data(self, files, render):
        files({"header.html": "<h1>@@title</h1>"})
        assert render('@@include("header.html", {"title": "Hi"})') == "<h1>Hi</h1>"

    def test_included_unit_does_not_inherit_caller_data(self, files, render):
        files({"b.html": "[@@x]"})
        assert render("@@x @@include('b.html')", data={"x": "1"}) == "1 [@@x]"

    def test_configured_context_is_visible_everywhere(self, files, render):
        files({"b.html": "<title>@@site.name</title>"})
        assert render("@@include('b.html')", context={"site": {"name": "Docs"}}) == "<title>Docs</title>"

    def test_nested_paths_are_relative_to_including_file(self, files, render):
        files({
            "partials/a.html": "A(@@include('b.html'))",
            "partials/b.html": "B",
        })
        assert render("@@include('partials/a.html')") == "A(B)"

    def test_fixed_basepath(self, site, files, render):
        files({
            "partials/a.html": "A(@@include('partials/b.html'))",
            "partials/b.html": "B",
        })
        result = render("@@include('partials/a.html')", name="pages/index.html", basepath=str(site))
        assert result == "A(B)"

    def test_parameter_file_is_relative_to_base(self, files, render):
        files({
            "data/page.json": '{"t": "J"}',
            "partials/p.html": "@@t",
        })
        assert render("@@include('../partials/p.html', 'data/page.json')", name="pages/index.html") == "J"

    def test_context_reference_parameter(self, files, render):
        files({"p.html": "@@t"})
        assert render("@@include('p.html', @@cfg)", context={"cfg": {"t": "C"}}) == "C"

    def test_path_built_from_variable(self, files, render):
        files({"p.html": "P"})
        assert render("@@include('@@file')", context={"file": "p.html"}) == "P"

    def test_missing_parameter_file_is_not_fatal(self, files, render_unit):
        files({"p.html": "[@@t]"})
        result = render_unit("@@include('p.html', 'nope.json')")
        assert result.contents == "[@@t]"
        assert len(result.warnings) == 1
        assert isinstance(result.warnings[0], MissingFileWarning)

    def test_non_object_parameter_is_not_fatal(self, files, render_unit):
        files({"p.html": "ok"})
        result = render_unit("@@include('p.html', [1, 2])")
        assert result.contents == "ok"
        assert isinstance(result.warnings[0], MalformedJSONWarning)

    def test_missing_target(self, site, render):
        with pytest.raises(IncludeNotFoundError) as exc:
            render("@@include('nope.html')")
        assert exc.value.target == str(site / "nope.html")
        assert exc.value.path == str(site / "index.html")

    def test_commented_include_is_removed(self, render):
        assert render("a<!-- @@include('missing.html') -->b") == "ab"

    def test_unparseable_arguments_are_left_as_is(self, render):
        assert render("@@include(header)") == "@@include(header)"

    def test_web_root(self, files, render):
        files({"partials/w.html": "@@webRoot"})
        assert render("@@webRoot|@@include('../../partials/w.html')", name="a/b/page.html") == "../..|../.."

    def test_custom_web_root_is_kept(self, render):
        assert render("@@webRoot", name="a/page.html", context={"webRoot": "/static"}) == "/static"


class TestRecursion:
    """Обнаружение циклов."""

    def test_self_include(self, site, render):
        with pytest.raises(IncludeRecursionError) as exc:
            render("@@include('index.html')")
        assert isinstance(exc.value, RecursionError)
        assert str(exc.value) == f"recursion detected in file: {site / 'index.html'}"

    def test_self_include_is_case_insensitive(self, render):
        with pytest.raises(IncludeRecursionError):
            render("@@include('INDEX.html')")

    def test_indirect_cycle(self, site, files):
        files({
            "a.html": "@@include('b.html')",
            "b.html": "@@include('a.html')",
        })
        with pytest.raises(IncludeRecursionError) as exc:
            process_file(site / "a.html")
        assert exc.value.chain == (str(site / "a.html"), str(site / "b.html"), str(site / "a.html"))
        assert "chain:" in str(exc.value)

    def test_same_file_twice_is_not_a_cycle(self, files, render):
        files({"p.html": "p"})
        assert render("@@include('p.html')@@include('p.html')") == "pp"


class TestIndentAndFilters:
    """Отступы и фильтры содержимого."""

    def test_indent(self, files, render):
        files({"li.html": "<li>\n  a\n</li>"})
        result = render("<ul>\n  @@include('li.html')\n</ul>", indent=True)
        assert result == "<ul>\n  <li>\n    a\n  </li>\n</ul>"

    def test_indent_disabled_by_default(self, files, render):
        files({"li.html": "<li>\na\n</li>"})
        assert render("  @@include('li.html')") == "  <li>\na\n</li>"

    def test_filter_chain(self, files, render):
        files({"x.txt": "  hi  "})
        filters = {"upper": lambda s, o=None: s.upper(), "trim": lambda s, o=None: s.strip()}
        assert render("[@@include(trim(upper('x.txt')))]", filters=filters) == "[HI]"

    def test_filters_run_before_nested_resolution(self, files, render):
        files({"x.txt": "@@name"})
        filters = {"upper": lambda s, o=None: s.upper()}
        # фильтр видит сырой текст, поэтому имя переменной становится @@NAME
        assert render("@@include(upper('x.txt', {\"NAME\": \"n\"}))", filters=filters) == "n"

    def test_unknown_filter(self, files, render):
        files({"x.txt": "x"})
        with pytest.raises(FilterError):
            render("@@include(markdown('x.txt'))", filters={"upper": str.upper})

    def test_chain_without_configured_filters_is_ignored(self, files, render):
        files({"x.txt": " x "})
        assert render("[@@include(trim('x.txt'))]") == "[ x ]"
