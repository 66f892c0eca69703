"""
Tests for ablesense.core.engine — comment stripping, indentation, and
line-oriented symbol extraction.
"""

import pytest

from ablesense.core.engine import (
    LineNormalizer,
    SymbolTable,
    extract_object_keys,
    indent_level,
    match_class,
    match_constructor_assignment,
    match_function,
    member_candidates,
    merge_symbols,
    parse_symbols,
    strip_comments,
)


# =============================================================================
# Line normalizer
# =============================================================================

class TestStripComments:

    def test_line_comment_removed(self):
        assert strip_comments("x = 1  # note", False) == ("x = 1  ", False)

    def test_hash_inside_string_kept(self):
        text, state = strip_comments('pr("a # b")  # c', False)
        assert text == 'pr("a # b")  '
        assert state is False

    def test_escaped_quote_does_not_close_string(self):
        text, _ = strip_comments(r'x = "say \"hi # there\"" # gone', False)
        assert text == r'x = "say \"hi # there\"" '

    def test_block_comment_on_one_line(self):
        assert strip_comments("a ## hidden ## b", False) == ("a  b", False)

    def test_block_comment_opens_and_carries(self):
        text, state = strip_comments("x = 1 ## starts here", False)
        assert text == "x = 1 "
        assert state is True

    def test_block_comment_closes_on_later_line(self):
        text, state = strip_comments("still hidden ## y = 2", True)
        assert text == " y = 2"
        assert state is False

    def test_block_marker_inside_string_is_text(self):
        text, state = strip_comments('s = "## not a comment"', False)
        assert text == 's = "## not a comment"'
        assert state is False

    def test_empty_line(self):
        assert strip_comments("", True) == ("", True)

    def test_escaped_block_marker_does_not_toggle(self):
        # the escape blocks the toggle; the next "#" still ends the line
        assert strip_comments("x = 1 \\## y", False) == ("x = 1 \\", False)

    def test_escaped_hash_inside_string(self):
        text, state = strip_comments('s = "a\\#b" # c', False)
        assert text == 's = "a\\#b" '
        assert state is False


class TestLineNormalizer:

    def test_state_threads_across_lines(self):
        normalizer = LineNormalizer()
        out = list(normalizer.normalize([
            "a = 1 ##",
            "fun hidden():",
            "## b = 2",
        ]))
        assert out == ["a = 1 ", "", " b = 2"]
        assert normalizer.in_block_comment is False

    def test_unterminated_block_stays_open(self):
        normalizer = LineNormalizer()
        normalizer.feed("## open")
        assert normalizer.in_block_comment is True
        assert normalizer.feed("class Hidden:") == ""


# =============================================================================
# Indentation
# =============================================================================

class TestIndentLevel:

    @pytest.mark.parametrize("line, expected", [
        ("x", 0),
        ("  x", 1),      # half a level rounds up
        (" x", 0),
        ("    x", 1),
        ("      x", 2),
        ("        x", 2),
        ("\tx", 1),
        ("\t\tx", 2),
        ("\t  x", 2),
    ])
    def test_levels(self, line, expected):
        assert indent_level(line) == expected

    def test_stops_at_first_non_whitespace(self):
        assert indent_level("x    ") == 0


# =============================================================================
# Recognition rules
# =============================================================================

class TestRules:

    def test_class_and_function(self):
        assert match_class("class User:") == "User"
        assert match_class("    class Inner(Base):") == "Inner"
        assert match_function("fun greet():") == "greet"
        assert match_function("  async fun fetch(url):") == "fetch"
        assert match_function("funny = 1") is None

    def test_constructor_assignment(self):
        assert match_constructor_assignment("user = User(name)") == ("user", "User")
        assert match_constructor_assignment("user = User") is None

    def test_object_keys_identifier_then_string(self):
        keys = extract_object_keys('"port": 8080, host: "localhost"')
        assert keys == ["host", "port"]


# =============================================================================
# Symbol extraction
# =============================================================================

class TestSymbolExtraction:

    def test_class_method_scenario(self):
        table = parse_symbols(
            "class User:\n"
            "    fun name(this):\n"
            "        return 1\n"
            "fun greet():\n"
            "    return 2\n"
            "user = User()\n"
        )
        assert table.classes == {"User"}
        assert table.functions == {"greet"}
        assert table.class_methods["User"] == {"name"}
        assert table.variable_types["user"] == "User"
        assert "user" in table.variables

    def test_object_literal_scenario(self):
        table = parse_symbols(
            "config = {\n"
            '    host: "localhost",\n'
            '    "port": 8080,\n'
            "}\n"
        )
        assert table.object_properties["config"] == {"host", "port"}
        assert table.variables == {"config"}

    def test_fixture_source(self, able_source):
        table = parse_symbols(able_source)
        assert table.classes == {"User"}
        assert table.functions == {"greet"}
        assert table.class_methods == {"User": {"name"}}
        assert table.variables == {"user", "config"}
        assert table.object_properties == {"config": {"host", "port"}}

    def test_nested_class_methods_go_to_innermost(self):
        table = parse_symbols(
            "class Outer:\n"
            "    class Inner:\n"
            "        fun deep(this):\n"
            "            pass\n"
            "    fun shallow(this):\n"
            "        pass\n"
        )
        assert table.classes == {"Outer", "Inner"}
        assert table.class_methods["Inner"] == {"deep"}
        assert table.class_methods["Outer"] == {"shallow"}

    def test_dedent_closes_class_scope(self):
        table = parse_symbols(
            "class A:\n"
            "    fun method(this):\n"
            "        pass\n"
            "fun free():\n"
            "    pass\n"
        )
        assert table.functions == {"free"}
        assert table.class_methods == {"A": {"method"}}

    def test_indented_assignments_are_not_variables(self):
        table = parse_symbols(
            "fun f():\n"
            "    local = 1\n"
            "    obj = Thing()\n"
        )
        assert table.variables == set()
        assert table.variable_types == {}

    def test_single_line_object(self):
        table = parse_symbols('point = { x: 1, y: 2 }\nafter = 3\n')
        assert table.object_properties == {"point": {"x", "y"}}
        assert table.variables == {"point", "after"}

    def test_object_closed_by_dedent(self):
        table = parse_symbols(
            "    opts = {\n"
            "        a: 1\n"
            "    b: 2\n"
            "c: 3\n"
        )
        # the dedented line still contributes its keys before closing
        assert table.object_properties["opts"] == {"a", "b"}

    def test_nested_object_becomes_active(self):
        table = parse_symbols(
            "settings = {\n"
            "    inner = {\n"
            "        deep: 1\n"
            "    }\n"
            "}\n"
        )
        assert table.object_properties["inner"] == {"deep"}

    def test_commented_declarations_ignored(self):
        table = parse_symbols(
            "# fun nope():\n"
            "##\n"
            "class Hidden:\n"
            "##\n"
            "fun yes():\n"
        )
        assert table.functions == {"yes"}
        assert table.classes == set()

    def test_class_replaces_function_of_same_name(self):
        table = parse_symbols("fun Foo():\n    pass\nclass Foo:\n    fun a(this):\n")
        assert table.classes == {"Foo"}
        assert table.functions == set()

    def test_function_replaces_class_of_same_name(self):
        table = parse_symbols("class Foo:\n    fun a():\n        pass\nfun Foo():\n    pass\n")
        assert table.functions == {"Foo"}
        assert table.classes == set()
        assert not (table.functions & table.classes)

    def test_crlf_line_endings(self):
        table = parse_symbols("class A:\r\n    fun m(this):\r\n        pass\r\n")
        assert table.class_methods == {"A": {"m"}}

    def test_empty_text(self):
        table = parse_symbols("")
        assert table.to_dict() == SymbolTable().to_dict()

    def test_parsing_is_deterministic(self, able_source):
        assert parse_symbols(able_source).to_dict() == parse_symbols(able_source).to_dict()


# =============================================================================
# Table helpers
# =============================================================================

class TestTableHelpers:

    def test_merge_symbols_unions_names(self):
        target = parse_symbols("fun a():\nclass K:\n    fun m(this):\n")
        merge_symbols(target, parse_symbols("fun b():\nclass K:\n    fun n(this):\nx = 1\n"))
        assert target.functions == {"a", "b"}
        assert target.classes == {"K"}
        assert target.class_methods["K"] == {"m", "n"}
        assert target.variables == {"x"}

    def test_member_candidates_via_constructor(self, able_source):
        table = parse_symbols(able_source)
        assert member_candidates(table, "user") == (["name"], [])

    def test_member_candidates_on_class_name(self, able_source):
        table = parse_symbols(able_source)
        assert member_candidates(table, "User") == (["name"], [])

    def test_member_candidates_object_keys(self, able_source):
        table = parse_symbols(able_source)
        assert member_candidates(table, "config") == ([], ["host", "port"])

    def test_member_candidates_unknown(self, able_source):
        assert member_candidates(parse_symbols(able_source), "nobody") == ([], [])

    def test_to_dict_is_sorted(self):
        table = parse_symbols("fun b():\nfun a():\n")
        assert table.to_dict()["functions"] == ["a", "b"]
