"""Tests for argv helpers: key spellings, unparsing and exec-flag extraction."""

import re

import pytest

from commonbin.core.argv import (
    ExecArgv,
    camel_case,
    coerce_value,
    extract_exec_argv,
    kebab_case,
    match_key,
    unparse_argv,
)
from commonbin.core.config import ParserOptions


class TestKeySpelling:
    """Tests for camelCase/kebab-case conversion."""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("debug", "debug"),
            ("debug-brk", "debugBrk"),
            ("inspect-brk-port", "inspectBrkPort"),
            ("es_staging", "es_staging"),
        ],
    )
    def test_camel_case(self, key, expected):
        assert camel_case(key) == expected

    def test_kebab_case_reverts_camel_case(self):
        assert kebab_case("debugBrk") == "debug-brk"
        assert kebab_case("harmonyProxies") == "harmony-proxies"
        assert kebab_case("plain") == "plain"


class TestCoerceValue:
    """Tests for numeric coercion of loose flag values."""

    def test_integers_and_floats(self):
        assert coerce_value("9229") == 9229
        assert coerce_value("-3") == -3
        assert coerce_value("1.5") == 1.5

    def test_leading_zero_stays_string(self):
        """Values like zip codes or octal modes are not numbers."""
        assert coerce_value("0755") == "0755"

    def test_text_untouched(self):
        assert coerce_value("prod") == "prod"
        assert coerce_value("") == ""


class TestMatchKey:
    """Tests for exact and regular-expression key matching."""

    def test_exact_name(self):
        assert match_key("es_staging", ["es_staging"])
        assert not match_key("es_staging_x", ["es_staging"])

    def test_caret_string_is_regex(self):
        assert match_key("harmony-proxies", [r"^harmony.*"])
        assert not match_key("no-harmony", [r"^harmony.*"])

    def test_compiled_pattern(self):
        assert match_key("inspect-brk", [re.compile(r"brk$")])


class TestUnparseArgv:
    """Tests for turning parsed argv back into flag strings."""

    def test_booleans_and_values(self):
        result = unparse_argv({"debug": 7000, "watch": True, "color": False})
        assert result == ["--debug=7000", "--watch", "--no-color"]

    def test_camel_case_twin_written_once(self):
        result = unparse_argv({"debug": 7000, "debug-brk": True, "debugBrk": True})
        assert result == ["--debug=7000", "--debug-brk"]

    def test_lists_repeat_flag(self):
        assert unparse_argv({"require": ["a", "b"]}) == ["--require=a", "--require=b"]

    def test_single_letter_key(self):
        assert unparse_argv({"p": 80}) == ["-p=80"]

    def test_none_skipped_and_positionals_last(self):
        result = unparse_argv({"_": ["build", 3], "target": None, "fast": True})
        assert result == ["--fast", "build", "3"]

    def test_includes_and_excludes(self):
        argv = {"harmony-proxies": True, "inspect": True, "port": 80}
        assert unparse_argv(argv, includes=[r"^harmony"]) == ["--harmony-proxies"]
        assert unparse_argv(argv, excludes=["port"]) == ["--harmony-proxies", "--inspect"]


class TestExtractExecArgv:
    """Tests for collecting interpreter-level flags from parsed argv."""

    def test_debug_key_with_port(self):
        result = extract_exec_argv({"_": [], "inspect": 9229, "port": 80})
        assert result.debug_port == 9229
        assert result.debug_options == {"inspect": 9229}
        assert result.exec_argv_obj == {"inspect": 9229}

    def test_boolean_debug_key_sets_no_port(self):
        result = extract_exec_argv({"inspect-brk": True})
        assert result.debug_port is None
        assert result.debug_options == {"inspect-brk": True}

    def test_patterns_go_to_exec_argv_only(self):
        result = extract_exec_argv({"harmony-proxies": True, "es_staging": True, "expose_debug_as": "v8"})
        assert result.debug_options == {}
        assert result.exec_argv_obj == {
            "harmony-proxies": True,
            "es_staging": True,
            "expose_debug_as": "v8",
        }

    def test_none_values_skipped(self):
        result = extract_exec_argv({"inspect": None})
        assert result.exec_argv_obj == {}

    def test_custom_options(self):
        options = ParserOptions(debug_keys=("trace",), exec_argv_patterns=(r"^X",))
        result = extract_exec_argv({"trace": 1, "Xdev": True, "inspect": 9229}, options)
        assert result.debug_port == 1
        assert result.exec_argv_obj == {"trace": 1, "Xdev": True}


class TestExecArgvMerge:
    """Tests for merging exec flags from a second source."""

    def test_other_flags_overwrite(self):
        base = ExecArgv(exec_argv_obj={"harmony": False})
        base.merge(ExecArgv(exec_argv_obj={"harmony": True, "es_staging": True}))
        assert base.exec_argv_obj == {"harmony": True, "es_staging": True}

    def test_port_kept_when_already_set(self):
        base = ExecArgv(debug_port=9229)
        base.merge(ExecArgv(debug_port=5858))
        assert base.debug_port == 9229

    def test_port_taken_when_missing(self):
        base = ExecArgv()
        base.merge(ExecArgv(debug_port=5858, debug_options={"debug": 5858}))
        assert base.debug_port == 5858
        assert base.debug_options == {"debug": 5858}
