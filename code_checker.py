#!/usr/bin/env python3
"""
code_checker.py -- Run the code in an assistant response and report what it does.

Pipeline:
    1. Make a unique session folder: contents/GeneratedCode/Test-<timestamp>/
    2. Extract every fenced code block from the response
    3. Save each block as its own module: Test<i>_<timestamp>.py
    4. Run the modules one by one, capturing output, errors and figures
    5. Join everything into one report for the chat window

This does NOT check that the code is correct, only that it runs.

Usage:
    # Check a saved response
    python code_checker.py response.md

    # Put the session folder somewhere else and keep a run log there
    python code_checker.py response.md --path ./site --save-log

From Python:
    report, errors = run_checks(response_text)
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from core import config as C
from core.logger import CheckLogger
from core.workspace import WorkspaceError, create_session_dir, plan_session, registered, save_code_files
from skills.extract_skill import extract_code_blocks
from skills.report_skill import join_test_results
from skills.run_skill import ArtifactError, run_code_units


class CodeChecker:
    """Checks the code blocks of one assistant response.

    Example:
        checker = CodeChecker(response)
        report, errors = checker.run_checks()
        print(report)

    Each checker owns one session folder and runs once.
    """

    def __init__(self, response: str, path: Optional[Path] = None,
                 image_root: Optional[Path] = None, runner=None, display=None,
                 start_marker=None, end_marker=None, verbose: bool = False):
        self._response = response or ""
        self._session = plan_session(path)
        self._image_root = image_root
        self._runner = runner
        self._display = display
        self._markers = (start_marker, end_marker)
        self._results = []
        self._done = False
        self.log = CheckLogger(verbose=verbose)

    # --- Read-only state ---

    @property
    def chat_response(self) -> str:
        return self._response

    @property
    def timestamp(self) -> str:
        return self._session.timestamp

    @property
    def output_folder(self) -> Path:
        return self._session.output_dir

    @property
    def session(self):
        return self._session

    @property
    def results(self) -> list:
        return list(self._results)

    # --- Public API ---

    def run_checks(self) -> Tuple[str, List[str]]:
        """Run every code block and return (report, error_messages).

        Errors raised by the code itself end up in the report. Errors writing
        the session folder or saving figures are raised (WorkspaceError,
        ArtifactError) and no report is produced.
        """
        if self._done:
            raise RuntimeError("run_checks() already ran for this response")
        self._done = True

        self.log.section("Workspace")
        self._session = create_session_dir(self._session)
        self.log.log(f"[OK] Session folder: {self._session.output_dir}")

        self.log.section("Code Extraction")
        start, end = self._markers
        blocks = extract_code_blocks(self._response, start, end)
        self.log.log(f"[OK] Found {len(blocks)} code block(s)")
        units = save_code_files(self._session, blocks)
        for unit in units:
            self.log.log(f"  [SAVED] {unit.path.name}  ({len(unit.source)} chars)")

        self.log.section("Execution")
        with registered(self._session):
            self._results = run_code_units(units, runner=self._runner,
                                           display=self._display, log=self.log)

        self.log.section("Report")
        report, errors = join_test_results(self._results, self._session,
                                           image_root=self._image_root, log=self.log)
        if errors:
            self.log.log(f"[FAIL] {len(errors)} of {len(units)} block(s) raised an error")
        else:
            self.log.log(f"[OK] {len(units)} block(s) ran without errors")
        return report, errors

    def save_log(self) -> Path:
        """Write the run log as markdown into the session folder."""
        return self.log.write_md(self._session.output_dir / C.RUN_LOG_NAME,
                                 self._response, self._session.timestamp)


def run_checks(response: str, base_path: Optional[Path] = None, **kwargs) -> Tuple[str, List[str]]:
    """Check the code in response. See CodeChecker for the keyword arguments."""
    return CodeChecker(response, base_path, **kwargs).run_checks()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the code blocks of an assistant response")
    parser.add_argument("response", help="Path to a saved response (markdown or text)")
    parser.add_argument("--path", help="Base folder for contents/GeneratedCode (default: cwd)")
    parser.add_argument("--image-root", help="Folder the report is displayed from "
                                             "(default: two levels above the session folder)")
    parser.add_argument("--save-log", action="store_true", help="Write run_log.md into the session folder")
    parser.add_argument("--quiet", action="store_true", help="Print only the report")
    args = parser.parse_args(argv)

    rpath = Path(args.response)
    if not rpath.exists():
        print(f"[ERROR] File not found: {rpath}")
        return 2

    checker = CodeChecker(rpath.read_text(encoding="utf-8"), path=args.path,
                          image_root=args.image_root, verbose=not args.quiet)
    try:
        report, errors = checker.run_checks()
    except (WorkspaceError, ArtifactError) as e:
        print(f"[ERROR] {e}")
        return 2

    if args.save_log:
        log_path = checker.save_log()
        if not args.quiet:
            print(f"[SAVED] {log_path}")

    if not args.quiet:
        print("=" * 50)
    print(report)
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
