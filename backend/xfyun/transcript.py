# backend/xfyun/transcript.py
from __future__ import annotations

from typing import Dict, List

from backend.xfyun.results import Operation, PartialResult


class TranscriptAccumulator:
    """
    Folds dynamic-correction partial results into one transcript.

    Sequenced fragments are keyed by `sn` and rendered in ascending order. A
    replace-range result first drops every fragment whose sn lies in
    [start, end] (inclusive); an empty replacement is a pure deletion.
    Results without an sn come from the non-incremental API and are appended
    after the sequenced fragments.
    """

    def __init__(self) -> None:
        self._fragments: Dict[int, str] = {}
        self._plain: List[str] = []

    def apply(self, result: PartialResult) -> None:
        if result.sn is None:
            if result.text:
                self._plain.append(result.text)
            return

        if result.operation is Operation.REPLACE_RANGE and result.range is not None:
            start, end = result.range
            for key in [k for k in self._fragments if start <= k <= end]:
                del self._fragments[key]

        if result.text:
            self._fragments[result.sn] = result.text

    def render(self) -> str:
        ordered = "".join(self._fragments[k] for k in sorted(self._fragments))
        return ordered + "".join(self._plain)

    def __len__(self) -> int:
        return len(self._fragments) + len(self._plain)
