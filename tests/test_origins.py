from __future__ import annotations

from core.origins import build_allow_list, expand_origin_variants, normalize_origin_id


def test_normalize_origin_id() -> None:
    assert normalize_origin_id(-1001234) == "-1001234"
    assert normalize_origin_id(" -1001234 ") == "-1001234"
    assert normalize_origin_id("+42") == "42"
    assert normalize_origin_id("@MyChannel") == "@mychannel"


def test_expand_chat_id_variants_positive() -> None:
    variants = expand_origin_variants("123")
    assert "123" in variants
    assert "-123" in variants
    assert "-1000000000123" in variants


def test_expand_chat_id_variants_negative_100() -> None:
    variants = expand_origin_variants("-100987654321")
    assert "-100987654321" in variants
    assert "987654321" in variants


def test_expand_basic_group_id() -> None:
    variants = expand_origin_variants(-42)
    assert variants == {"-42", "42"}


def test_build_allow_list_skips_blank_entries() -> None:
    allowed = build_allow_list(["", "  ", "-100555"])
    assert allowed == frozenset({"-100555", "555"})
    assert build_allow_list([]) == frozenset()
