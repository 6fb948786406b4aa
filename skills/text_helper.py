"""
text_helper.py -- Code fence markers and short error summaries.

Two small pure helpers used by the checker:
    code_block_pattern()     default (start, end) markers for fenced code
    short_error_report(e)    one or two line summary of an exception
"""

import re
import traceback
from pathlib import Path
from typing import Optional, Tuple

# ``` plus an optional language label (python, bash, ...) ending at a newline.
# Without a newline the fence is inline and nothing after it is dropped.
CODE_START_RE = re.compile(r"```(?:[ \t]*[\w+#.-]*[ \t]*\n)?")
CODE_END = "```"


def code_block_pattern() -> Tuple[re.Pattern, str]:
    """Return the (start, end) markers for fenced code blocks."""
    return CODE_START_RE, CODE_END


def short_error_report(exc: BaseException, unit_dir: Optional[Path] = None) -> str:
    """Summarize an exception without the full traceback.

    The first line names the innermost frame that belongs to a code unit
    (any file inside unit_dir), e.g. "Error in Test2_... (line 3)". The
    second line is the exception type and message. Syntax errors carry
    their own location, so they are reported as Python formats them.
    """
    message = "".join(traceback.format_exception_only(type(exc), exc)).strip()
    if isinstance(exc, SyntaxError):
        return message

    frame = _innermost_unit_frame(exc, unit_dir)
    if frame is None:
        return message
    return f"Error in {Path(frame.filename).stem} (line {frame.lineno})\n{message}"


def _innermost_unit_frame(exc: BaseException, unit_dir: Optional[Path]):
    frames = traceback.extract_tb(exc.__traceback__)
    if unit_dir is not None:
        root = Path(unit_dir).resolve()
        frames = [f for f in frames if _is_inside(f.filename, root)]
    return frames[-1] if frames else None


def _is_inside(filename: str, root: Path) -> bool:
    try:
        Path(filename).resolve().relative_to(root)
        return True
    except (ValueError, OSError):
        return False
