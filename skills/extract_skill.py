"""
extract_skill.py -- Extract code blocks from assistant responses.

A code block is whatever sits strictly between a start marker and the next
end marker. Markers are plain strings or compiled regexes. After a pair
matches, scanning resumes after the end marker, so identical start and end
markers (``` ... ```) pair up in order.

No cleanup and no validation: a block with a syntax error is still a
block. That is for execution to find out.
"""

import re
from typing import List, Optional, Union

from skills.text_helper import code_block_pattern

Marker = Union[str, re.Pattern]


def _find(marker: Marker, text: str, pos: int):
    """Return (start, end) of the next marker occurrence at or after pos, or None."""
    if isinstance(marker, str):
        if not marker:
            raise ValueError("Empty code block marker")
        i = text.find(marker, pos)
        return None if i < 0 else (i, i + len(marker))
    m = marker.search(text, pos)
    return None if m is None else m.span()


def extract_between(text: str, start: Marker, end: Marker) -> List[str]:
    """Extract all substrings between start/end marker pairs, in document order."""
    blocks = []
    pos = 0
    while pos <= len(text):
        opening = _find(start, text, pos)
        if opening is None:
            break
        closing = _find(end, text, opening[1])
        if closing is None:
            break  # unterminated block
        blocks.append(text[opening[1]:closing[0]])
        # Guard against zero-width regex markers looping forever
        pos = closing[1] if closing[1] > pos else pos + 1
    return blocks


def extract_code_blocks(text: str, start: Optional[Marker] = None,
                        end: Optional[Marker] = None) -> List[str]:
    """Extract code blocks using the default fence markers unless given others."""
    default_start, default_end = code_block_pattern()
    return extract_between(text or "", start if start is not None else default_start,
                           end if end is not None else default_end)
