"""
DiffEngine: word-level comparison of a trace's original answer and the
reviewer's working copy.
"""

import difflib
import re
from dataclasses import dataclass
from typing import List

from utils.performance import monitor_performance

EQUAL = "equal"
DELETE = "delete"
INSERT = "insert"

# Longer inputs are compared line by line instead of word by word
MAX_WORD_DIFF_CHARS = 100000


@dataclass(frozen=True)
class DiffSegment:
    """A run of text that is unchanged, removed from the original, or added."""

    op: str
    text: str


class DiffEngine:
    """
    Word-level diff between assistant_response and editable_output.

    Whitespace and punctuation are kept as their own tokens so joining the
    EQUAL and DELETE segments gives back the original text and joining the
    EQUAL and INSERT segments gives back the edited text.
    """

    @monitor_performance("compute_diff")
    def compute_diff(self, original: str, modified: str) -> List[DiffSegment]:
        """
        Compare two texts.

        Args:
            original: The assistant's original answer
            modified: The reviewer's edited output

        Returns:
            Ordered segments; adjacent segments never share an op
        """
        original = original or ""
        modified = modified or ""
        if original == modified:
            return [DiffSegment(EQUAL, original)] if original else []

        if len(original) > MAX_WORD_DIFF_CHARS or len(modified) > MAX_WORD_DIFF_CHARS:
            original_tokens = original.splitlines(keepends=True)
            modified_tokens = modified.splitlines(keepends=True)
        else:
            original_tokens = self._split_into_words(original)
            modified_tokens = self._split_into_words(modified)

        matcher = difflib.SequenceMatcher(None, original_tokens, modified_tokens, autojunk=False)
        segments: List[DiffSegment] = []
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                self._append(segments, EQUAL, "".join(original_tokens[i1:i2]))
            if tag in ("delete", "replace"):
                self._append(segments, DELETE, "".join(original_tokens[i1:i2]))
            if tag in ("insert", "replace"):
                self._append(segments, INSERT, "".join(modified_tokens[j1:j2]))
        return segments

    def _split_into_words(self, text: str) -> List[str]:
        """Split into word and non-word runs, keeping every character."""
        return re.findall(r"\w+|\W+", text)

    @staticmethod
    def _append(segments: List[DiffSegment], op: str, text: str) -> None:
        if not text:
            return
        if segments and segments[-1].op == op:
            segments[-1] = DiffSegment(op, segments[-1].text + text)
        else:
            segments.append(DiffSegment(op, text))

    def has_changes(self, original: str, modified: str) -> bool:
        return (original or "") != (modified or "")

    def change_summary(self, segments: List[DiffSegment]) -> dict:
        """Count words added and removed."""
        added = sum(len(re.findall(r"\w+", s.text)) for s in segments if s.op == INSERT)
        removed = sum(len(re.findall(r"\w+", s.text)) for s in segments if s.op == DELETE)
        return {"added": added, "removed": removed}

    @staticmethod
    def reconstruct(segments: List[DiffSegment], side: str = "modified") -> str:
        """Rebuild the original or modified text from segments."""
        skip = INSERT if side == "original" else DELETE
        return "".join(s.text for s in segments if s.op != skip)
