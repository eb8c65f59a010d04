"""Segmentation of text into the initial units fed to byte-pair merging."""

from enum import Enum
from typing import Callable

import regex as re

from .errors import PatternError

type SegmentFn = Callable[[str], list[str]]


class Segmenter(str, Enum):
    """
    Pre-defined segmentation patterns.

    GRAPHEME matches extended grapheme clusters, so combining marks, ZWJ emoji
    sequences and regional indicator pairs stay in one element.
    """

    GRAPHEME = r"\X"
    CODEPOINT = r"(?s)."

    @classmethod
    def get(cls, name: str) -> str:
        """Get patterns by name (case-insensitive)."""
        try:
            return cls[name.upper().replace("-", "_")].value
        except KeyError:
            raise PatternError(
                f"Unknown segmenter: {name!r}. "
                f"Valid segmenters: {', '.join(seg.name.lower() for seg in cls)}"
            )


def list_segmenters() -> list[str]:
    """Return available segmenter names."""
    return [seg.name.lower() for seg in Segmenter]


def segmenter_from_pattern(pattern: str) -> SegmentFn:
    """
    Build a segmentation function from a regex pattern.

    Text not covered by any match is emitted as its own element, so joining
    the segments always reproduces the input.

    :raises PatternError: If the pattern does not compile.
    """
    compiled = _compile_pattern(pattern)

    def segment(text: str) -> list[str]:
        out: list[str] = []
        pos = 0
        for m in compiled.finditer(text):
            start, end = m.span()
            # zero-width matches carry no text
            if start == end:
                continue
            if start > pos:
                out.append(text[pos:start])
            out.append(m.group(0))
            pos = end
        if pos < len(text):
            out.append(text[pos:])
        return out

    return segment


def get_segmenter(segmenter: str | SegmentFn = "grapheme") -> SegmentFn:
    """
    Resolve a segmenter name to a segmentation function.

    Callables are returned unchanged so callers can plug in their own.

    :raises PatternError: If the name is unknown.
    """
    if callable(segmenter):
        return segmenter
    return segmenter_from_pattern(Segmenter.get(segmenter))


def _compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e)


__all__ = [
    "SegmentFn",
    "Segmenter",
    "get_segmenter",
    "list_segmenters",
    "segmenter_from_pattern",
]
