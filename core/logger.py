"""
logger.py -- Run logger for the code checker.

Prints tagged status lines ([RUN], [OK], [FAIL], ...) to the terminal when
verbose, and always records them in named sections so the whole run can be
written out as a markdown log next to the generated code.
"""

from datetime import datetime
from pathlib import Path


class CheckLogger:
    """Dual-output logger: prints to terminal AND records everything for the md file."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.sections = []
        self._current_lines = []
        self._current_title = None

    def section(self, title: str):
        self._flush_section()
        self._current_title = title

    def log(self, msg: str = ""):
        if self.verbose:
            print(msg)
        self._current_lines.append(msg)

    def log_quiet(self, msg: str):
        self._current_lines.append(msg)

    @property
    def lines(self) -> list:
        """Every recorded line so far, in order."""
        out = []
        for _, content in self.sections:
            out.extend(content.split("\n"))
        out.extend(self._current_lines)
        return out

    def _flush_section(self):
        if self._current_lines:
            self.sections.append((self._current_title or "Log", "\n".join(self._current_lines)))
        self._current_lines = []
        self._current_title = None

    def write_md(self, filepath: Path, response: str, timestamp: str) -> Path:
        self._flush_section()

        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        lines = [
            "# Code Check Run", "",
            f"**Session**: {timestamp}",
            f"**Written**: {ts}",
            "", "## Response", "", response, "", "---", "",
        ]

        for title, content in self.sections:
            lines.extend([f"## {title}", "", content, "", "---", ""])

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text("\n".join(lines), encoding="utf-8")
        return filepath
