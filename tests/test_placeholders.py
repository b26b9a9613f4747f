"""Tests for #key# placeholder handling."""
from __future__ import annotations

import pytest

from loggy.errors import ConfigError
from loggy.modules.placeholders import check_placeholders, find_placeholders, substitute


class TestFindPlaceholders:
    def test_in_string(self) -> None:
        assert find_placeholders("req.#method#.#status#") == ["method", "status"]

    def test_first_use_order_without_duplicates(self) -> None:
        assert find_placeholders("#b# #a# #b#") == ["b", "a"]

    def test_in_nested_structures(self) -> None:
        value = {"counters": {"hits.#path#": 1}, "timers": {"t": "#ms#"}, "tags": ["#host#"]}
        assert find_placeholders(value) == ["path", "ms", "host"]

    def test_dotted_and_dashed_names(self) -> None:
        assert find_placeholders("#http.status# #x-req-id#") == ["http.status", "x-req-id"]

    def test_non_strings_ignored(self) -> None:
        assert find_placeholders({"a": 1, "b": None, "c": True}) == []

    def test_lone_hash_is_not_a_placeholder(self) -> None:
        assert find_placeholders("# comment") == []


class TestSubstitute:
    def test_replaces_known_fields(self) -> None:
        assert substitute("#ip# -> #path#", {"ip": "1.2.3.4", "path": "/"}) == "1.2.3.4 -> /"

    def test_unknown_placeholder_left_intact(self) -> None:
        assert substitute("#ip# #user#", {"ip": "1.2.3.4"}) == "1.2.3.4 #user#"

    def test_no_placeholders(self) -> None:
        assert substitute("plain", {"ip": "x"}) == "plain"


class TestCheckPlaceholders:
    def test_all_known(self) -> None:
        check_placeholders("processors.out", {"k": "#ip#"}, ["ip"])

    def test_missing_key_named(self) -> None:
        with pytest.raises(ConfigError, match=r"processors\.out: placeholder\(s\) #user#"):
            check_placeholders("processors.out", "#ip# #user#", ["ip"])

    def test_no_output_keys(self) -> None:
        with pytest.raises(ConfigError, match="output keys: none"):
            check_placeholders("processors.out", "#line#", [])
