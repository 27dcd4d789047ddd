# tests/backend/xfyun/test_results.py
from __future__ import annotations

import base64
import json

import pytest

from backend.xfyun.results import (
    EncodedResult,
    Operation,
    StructuredResult,
    classify,
    parse_result,
)


def _ws(*words: str) -> list:
    return [{"bg": i, "cw": [{"w": w, "sc": 0}]} for i, w in enumerate(words)]


def _encode(obj: dict) -> str:
    return base64.b64encode(json.dumps(obj, ensure_ascii=False).encode("utf-8")).decode("ascii")


def test_classify_tags_shapes():
    assert classify("abc") == EncodedResult("abc")
    assert classify({"sn": 1}) == StructuredResult({"sn": 1})
    assert classify("") is None
    assert classify(None) is None
    assert classify(42) is None


def test_structured_result_with_words():
    r = parse_result({"sn": 1, "ls": False, "pgs": "apd", "ws": _ws("今天", "天气")})
    assert r.text == "今天天气"
    assert r.sn == 1
    assert r.operation is Operation.APPEND
    assert r.range is None


def test_encoded_result_is_decoded():
    r = parse_result(_encode({"sn": 3, "pgs": "rpl", "rg": [1, 2], "ws": _ws("你好")}))
    assert r.text == "你好"
    assert r.sn == 3
    assert r.operation is Operation.REPLACE_RANGE
    assert r.range == (1, 2)


def test_realtime_layout_cn_st_rt():
    fields = {"cn": {"st": {"rt": [{"ws": _ws("早上")}, {"ws": _ws("好")}]}}, "sn": 2}
    r = parse_result(fields)
    assert r.text == "早上好"
    assert r.sn == 2


def test_nested_text_field_supplies_missing_parts():
    r = parse_result({"text": _encode({"sn": 5, "pgs": "apd", "ws": _ws("嗯")})})
    assert r.text == "嗯"
    assert r.sn == 5


def test_without_sn_is_plain_text():
    r = parse_result({"ws": _ws("hello")})
    assert r.sn is None
    assert r.text == "hello"


@pytest.mark.parametrize("value", ["!!!not-base64!!!", _encode({"x": 1})[:-2] + "@@", {}, []])
def test_unusable_results_yield_none(value):
    assert parse_result(value) is None


def test_encoded_non_object_is_ignored():
    assert parse_result(base64.b64encode(b"[1, 2]").decode()) is None


def test_unknown_pgs_defaults_to_append():
    r = parse_result({"sn": 1, "pgs": "zzz", "ws": _ws("a")})
    assert r.operation is Operation.APPEND


def test_malformed_words_are_skipped():
    r = parse_result({"sn": 1, "ws": [{"cw": [{"w": "a"}, {"w": 3}, "x"]}, "junk", {"cw": [{"w": "b"}]}]})
    assert r.text == "ab"


@pytest.mark.parametrize("cw", [7, True, "word", {"w": "x"}])
def test_non_list_choices_are_skipped(cw):
    r = parse_result({"sn": 1, "ws": [{"cw": cw}, {"cw": [{"w": "ok"}]}]})
    assert r.text == "ok"
