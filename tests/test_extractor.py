"""
Тесты поиска директив в тексте: баланс скобок, вложенность, префикс/суффикс.
"""

from incl.directives import find_closing, iter_directives, replace_function, replace_operator


class TestFindClosing:
    """Поиск парной скобки."""

    def test_nested_brackets(self):
        text = "(a (b) c)"
        assert find_closing(text, 0, "(", ")") == len(text) - 1

    def test_quote_aware_skips_brackets_in_strings(self):
        text = "('a)' , \")\")x"
        assert find_closing(text, 0, "(", ")", quote_aware=True) == text.index("x") - 1

    def test_unbalanced_returns_minus_one(self):
        assert find_closing("((a)", 0, "(", ")") == -1


class TestIterDirectives:
    """Извлечение вхождений директив."""

    def test_function_args_are_extracted(self):
        found = list(iter_directives("x @@include('a.html') y", "include", kind="function"))
        assert len(found) == 1
        assert found[0].args == "'a.html'"
        assert found[0].span == (2, 21)

    def test_operator_body_keeps_nested_block_of_same_name(self):
        text = "@@if (a) { 1 @@if (b) { 2 } 3 }"
        found = list(iter_directives(text, "if", kind="operator"))
        assert len(found) == 1
        assert found[0].args == "a"
        assert found[0].body == " 1 @@if (b) { 2 } 3 "

    def test_name_must_not_be_a_prefix_of_longer_word(self):
        assert list(iter_directives("@@iffy(a) { b }", "if", kind="operator")) == []

    def test_function_requires_parenthesis_right_after_name(self):
        assert list(iter_directives("@@include ('a.html')", "include", kind="function")) == []

    def test_space_between_prefix_and_name_is_allowed(self):
        found = list(iter_directives("@@ include('a.html')", "include", kind="function"))
        assert [d.args for d in found] == ["'a.html'"]

    def test_unbalanced_directive_is_left_as_text(self):
        text = "@@include('a.html' and @@include('b.html')"
        found = list(iter_directives(text, "include", kind="function"))
        assert [d.args for d in found] == ["'b.html'"]

    def test_leading_whitespace_is_captured(self):
        found = list(iter_directives("<ul>\n\t  @@include('li.html')", "include", kind="function"))
        assert found[0].before == "\t  "

    def test_custom_prefix_and_suffix(self):
        text = "<!--# include('a.html') -->tail"
        found = list(iter_directives(text, "include", kind="function", prefix="<!--#", suffix="-->"))
        assert len(found) == 1
        start, end = found[0].span
        assert text[end:] == "tail"


class TestReplace:
    """Замена директив результатом обработчика."""

    def test_none_keeps_original_text(self):
        text = "a @@include('x') b"
        assert replace_function(text, "include", lambda inst: None) == text

    def test_replacement_is_not_rescanned(self):
        text = "@@include('x')"
        result = replace_function(text, "include", lambda inst: "@@include('y')")
        assert result == "@@include('y')"

    def test_literal_regions_keep_their_order(self):
        text = "A @@if (x) { B } C @@if (y) { D } E"
        result = replace_operator(text, "if", lambda inst: f"[{inst.args}]")
        assert result == "A [x] C [y] E"
