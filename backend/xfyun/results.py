# backend/xfyun/results.py
"""
Normalization of the `data.result` field of XFYun dictation responses.

The field arrives in one of two shapes:

  * EncodedResult    - a base64 string holding the JSON result object;
  * StructuredResult - the result object itself, whose word list may sit
                       under `ws`, under `cn.st.rt[].ws` (real-time API), or
                       inside a nested base64 `text` field.

`normalize_result` is the only place that knows about these shapes; the rest
of the bridge sees `PartialResult`.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

log = logging.getLogger("dicta.xfyun.results")


class Operation(str, Enum):
    APPEND = "apd"
    REPLACE_RANGE = "rpl"


@dataclass(frozen=True)
class PartialResult:
    text: str
    sn: Optional[int] = None
    operation: Operation = Operation.APPEND
    range: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class EncodedResult:
    data: str


@dataclass(frozen=True)
class StructuredResult:
    fields: Dict[str, Any]


RawResult = Union[EncodedResult, StructuredResult]


def classify(value: Any) -> Optional[RawResult]:
    if isinstance(value, str) and value:
        return EncodedResult(value)
    if isinstance(value, dict):
        return StructuredResult(value)
    return None


def _decode(encoded: EncodedResult) -> Optional[Dict[str, Any]]:
    try:
        obj = json.loads(base64.b64decode(encoded.data, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        log.warning("Failed to decode XFYun result: %s", e)
        return None
    return obj if isinstance(obj, dict) else None


def _int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _range(value: Any) -> Optional[Tuple[int, int]]:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    try:
        start, end = int(value[0]), int(value[1])
    except (TypeError, ValueError):
        return None
    return (start, end)


def _operation(value: Any) -> Optional[Operation]:
    try:
        return Operation(value)
    except ValueError:
        return None


def _segments(value: Any) -> List[Any]:
    return [seg for seg in value if isinstance(seg, dict)] if isinstance(value, list) else []


def _words(fields: Dict[str, Any]) -> List[Any]:
    segments = _segments(fields.get("ws"))
    if segments:
        return segments
    cn = fields.get("cn")
    st = cn.get("st") if isinstance(cn, dict) else None
    rt = st.get("rt") if isinstance(st, dict) else None
    if isinstance(rt, list):
        return [seg for entry in rt if isinstance(entry, dict) for seg in _segments(entry.get("ws"))]
    return []


def _text(segments: List[Any]) -> str:
    out: List[str] = []
    for seg in segments:
        choices = seg.get("cw")
        if not isinstance(choices, list):
            continue
        for choice in choices:
            if isinstance(choice, dict) and isinstance(choice.get("w"), str):
                out.append(choice["w"])
    return "".join(out)


def _from_fields(fields: Dict[str, Any]) -> Optional[PartialResult]:
    nested_raw = classify(fields.get("text"))
    nested = normalize_result(nested_raw) if nested_raw is not None else None

    sn = _int(fields.get("sn"))
    if sn is None and nested is not None:
        sn = nested.sn
    op = _operation(fields.get("pgs")) or (nested.operation if nested else None)
    rg = _range(fields.get("rg")) or (nested.range if nested else None)

    segments = _words(fields)
    if segments:
        text = _text(segments)
    elif nested is not None:
        text = nested.text
    else:
        text = ""

    if sn is None and not segments and op is None and rg is None and not text:
        return None
    return PartialResult(text=text, sn=sn, operation=op or Operation.APPEND, range=rg)


def normalize_result(raw: Optional[RawResult]) -> Optional[PartialResult]:
    """Return the PartialResult carried by `raw`, or None if nothing usable."""
    if isinstance(raw, EncodedResult):
        decoded = _decode(raw)
        return _from_fields(decoded) if decoded is not None else None
    if isinstance(raw, StructuredResult):
        return _from_fields(raw.fields)
    return None


def parse_result(value: Any) -> Optional[PartialResult]:
    return normalize_result(classify(value))
