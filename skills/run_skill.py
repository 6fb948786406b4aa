"""
run_skill.py -- Run code units one at a time and capture what they produce.

For every unit, in order:
    1. Run it by module name, capturing everything it prints
    2. If it raises, keep a short error summary instead of the output
    3. Save every figure it left open as <unitName>_Figure<j>.png, then close them

Figures that were already open before the run are hidden for its whole
duration and shown again at the end, even if a unit failed. They are never
saved or closed by the run.

Units run strictly one after another. The figure registry is global, so
running two units at once would make it impossible to tell whose figure is
whose.

NOTE: there is no timeout and no sandbox. A unit that never returns blocks
the run, and units run with the full rights of the calling process.
"""

import contextlib
import io
import runpy
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from core import config as C
from core.display import MatplotlibDisplay
from core.logger import CheckLogger
from core.workspace import CodeUnit
from skills.text_helper import short_error_report


class ArtifactError(OSError):
    """A figure could not be exported or moved. Fatal to the run."""


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    output: str


@dataclass(frozen=True)
class Faulted:
    summary: str


Outcome = Union[Success, Faulted]


@dataclass
class ExecutionResult:
    unit: CodeUnit
    outcome: Outcome
    figures: List[Path] = field(default_factory=list)

    @property
    def did_fault(self) -> bool:
        return isinstance(self.outcome, Faulted)

    @property
    def captured_output(self) -> str:
        if self.did_fault:
            return self.outcome.summary
        return self.outcome.output


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class ModuleRunner:
    """Runs a unit by module name as __main__ and returns its console text.

    stdout and stderr go to the same buffer, so warnings show up in the
    output. sys.exit(0) counts as a normal finish; any other exit code is
    raised like an error.
    """

    def run(self, name: str) -> str:
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf), contextlib.redirect_stderr(buf):
            try:
                runpy.run_module(name, run_name="__main__")
            except SystemExit as e:
                if e.code not in (None, 0):
                    raise
        return buf.getvalue()


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def run_code_units(units: List[CodeUnit], runner=None, display=None,
                   export_dir: Optional[Path] = None,
                   log: Optional[CheckLogger] = None) -> List[ExecutionResult]:
    """Run every unit in order and return one ExecutionResult per unit."""
    runner = runner or ModuleRunner()
    display = display or MatplotlibDisplay()
    log = log or CheckLogger()

    previous = display.list_capturable()
    display.hide(previous)
    if previous:
        log.log(f"  [HIDE] {len(previous)} figure(s) open before the run")

    results = []
    try:
        with display.running():
            for unit in units:
                results.append(run_code_unit(unit, runner, display, export_dir, log))
    finally:
        display.show(previous)

    return results


def run_code_unit(unit: CodeUnit, runner, display, export_dir: Optional[Path],
                  log: CheckLogger) -> ExecutionResult:
    log.log(f"  [RUN] {unit.name}")
    try:
        outcome = Success(runner.run(unit.name))
        log.log(f"  [OK] {unit.name}")
    except (Exception, SystemExit) as e:
        outcome = Faulted(short_error_report(e, unit.path.parent))
        log.log(f"  [FAIL] {unit.name}")
        log.log_quiet(f"  {outcome.summary}")

    dest = Path(export_dir) if export_dir else unit.path.parent
    figures = capture_figures(unit.name, display, dest, log)
    return ExecutionResult(unit=unit, outcome=outcome, figures=figures)


def capture_figures(name: str, display, dest: Path, log: CheckLogger) -> List[Path]:
    """Export every capturable figure for one unit, then close them all."""
    nums = display.list_capturable()
    paths = []
    try:
        for j, num in enumerate(nums, start=1):
            path = dest / f"{name}{C.FIGURE_SUFFIX}{j}{C.FIGURE_EXTENSION}"
            try:
                display.export(num, path)
            except Exception as e:
                raise ArtifactError(f"Could not save figure {num} of {name} to {path}: {e}") from e
            log.log(f"  [FIGURE] {path.name}")
            paths.append(path)
    finally:
        display.close(nums)
    return paths
