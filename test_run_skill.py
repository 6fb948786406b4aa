"""
test_run_skill.py -- Tests for running code units and capturing figures.

Uses a fake runner and a fake display to check ordering, error containment
and figure bookkeeping, then runs real modules with runpy and real
matplotlib figures.

Run: python3 -m pytest test_run_skill.py
"""

from datetime import datetime

import matplotlib.pyplot as plt
import pytest

from core.logger import CheckLogger
from core.workspace import create_session, registered, save_code_files
from skills.run_skill import (
    ArtifactError,
    ExecutionResult,
    Faulted,
    ModuleRunner,
    Success,
    run_code_units,
)

NOW = datetime(2026, 10, 16, 9, 15, 2, 123456)


class FakeDisplay:
    """Figure registry stand-in: surfaces are ints, exports write a marker file."""

    def __init__(self, preexisting=(), fail_export=False):
        self.open = list(preexisting)
        self.hidden = set()
        self.fail_export = fail_export
        self.closed = []
        self.in_run = False
        self._next = 100

    def new_surface(self):
        self._next += 1
        self.open.append(self._next)

    def list_capturable(self):
        return [n for n in self.open if n not in self.hidden]

    def hide(self, nums):
        self.hidden.update(nums)

    def show(self, nums):
        self.hidden.difference_update(nums)

    def export(self, num, path):
        if self.fail_export:
            raise OSError("disk full")
        path.write_text(f"figure {num}", encoding="utf-8")
        return path

    def close(self, nums):
        for n in list(nums):
            self.open.remove(n)
            self.closed.append(n)

    def running(self):
        display = self

        class _Ctx:
            def __enter__(self):
                display.in_run = True

            def __exit__(self, *exc):
                display.in_run = False

        return _Ctx()


class FakeRunner:
    """Plays back a script per unit: (output or exception, figures to create)."""

    def __init__(self, display, script):
        self.display = display
        self.script = script
        self.calls = []
        self.capturable_at_start = []

    def run(self, name):
        self.calls.append(name)
        self.capturable_at_start.append(list(self.display.list_capturable()))
        index = int(name[len("Test"):].split("_")[0])
        result, figures = self.script[index]
        for _ in range(figures):
            self.display.new_surface()
        if isinstance(result, BaseException):
            raise result
        return result


def _units(tmp_path, n):
    session = create_session(tmp_path, now=NOW)
    return save_code_files(session, [f"# unit {i}\n" for i in range(1, n + 1)])


# ============================================================
# Ordering and error containment
# ============================================================

def test_one_result_per_unit_in_order(tmp_path):
    units = _units(tmp_path, 3)
    display = FakeDisplay()
    runner = FakeRunner(display, {1: ("one\n", 0), 2: ("two\n", 0), 3: ("three\n", 0)})

    results = run_code_units(units, runner=runner, display=display)

    assert [r.unit for r in results] == units
    assert runner.calls == [u.name for u in units]
    assert [r.captured_output for r in results] == ["one\n", "two\n", "three\n"]
    assert not any(r.did_fault for r in results)


def test_fault_is_recorded_and_later_units_still_run(tmp_path):
    units = _units(tmp_path, 3)
    display = FakeDisplay()
    runner = FakeRunner(display, {1: ("ok\n", 0), 2: (RuntimeError("boom"), 0), 3: ("after\n", 0)})

    results = run_code_units(units, runner=runner, display=display)

    assert [r.did_fault for r in results] == [False, True, False]
    assert isinstance(results[1].outcome, Faulted)
    assert "boom" in results[1].captured_output
    assert results[1].captured_output != ""
    assert results[2].captured_output == "after\n"


def test_system_exit_is_a_fault(tmp_path):
    units = _units(tmp_path, 2)
    display = FakeDisplay()
    runner = FakeRunner(display, {1: (SystemExit(4), 0), 2: ("still runs\n", 0)})

    results = run_code_units(units, runner=runner, display=display)

    assert results[0].did_fault
    assert results[1].captured_output == "still runs\n"


def test_keyboard_interrupt_stops_the_run(tmp_path):
    units = _units(tmp_path, 2)
    display = FakeDisplay(preexisting=[1])
    runner = FakeRunner(display, {1: (KeyboardInterrupt(), 0), 2: ("", 0)})

    with pytest.raises(KeyboardInterrupt):
        run_code_units(units, runner=runner, display=display)
    assert display.hidden == set()


def test_no_units(tmp_path):
    display = FakeDisplay(preexisting=[1])
    assert run_code_units([], runner=FakeRunner(display, {}), display=display) == []
    assert display.hidden == set()


# ============================================================
# Figures
# ============================================================

def test_each_figure_is_exported_with_sequential_names(tmp_path):
    units = _units(tmp_path, 3)
    display = FakeDisplay()
    runner = FakeRunner(display, {1: ("", 3), 2: ("", 0), 3: (ValueError("x"), 2)})

    results = run_code_units(units, runner=runner, display=display)

    first, second, third = results
    assert [p.name for p in first.figures] == [
        f"{units[0].name}_Figure1.png",
        f"{units[0].name}_Figure2.png",
        f"{units[0].name}_Figure3.png",
    ]
    assert second.figures == []
    # Figures made before the error are still captured
    assert [p.name for p in third.figures] == [
        f"{units[2].name}_Figure1.png",
        f"{units[2].name}_Figure2.png",
    ]
    for r in results:
        for p in r.figures:
            assert p.exists()
            assert p.parent == units[0].path.parent


def test_figures_are_closed_before_the_next_unit(tmp_path):
    units = _units(tmp_path, 3)
    display = FakeDisplay()
    runner = FakeRunner(display, {1: ("", 2), 2: ("", 1), 3: ("", 0)})

    run_code_units(units, runner=runner, display=display)

    assert runner.capturable_at_start == [[], [], []]
    assert display.open == []


def test_figures_go_to_export_dir(tmp_path):
    units = _units(tmp_path, 1)
    staging = tmp_path / "staging"
    staging.mkdir()
    display = FakeDisplay()
    runner = FakeRunner(display, {1: ("", 1)})

    results = run_code_units(units, runner=runner, display=display, export_dir=staging)

    assert results[0].figures == [staging / f"{units[0].name}_Figure1.png"]


def test_preexisting_figures_are_hidden_then_restored(tmp_path):
    units = _units(tmp_path, 2)
    display = FakeDisplay(preexisting=[1, 2])
    runner = FakeRunner(display, {1: ("", 1), 2: (RuntimeError("boom"), 1)})

    results = run_code_units(units, runner=runner, display=display)

    assert runner.capturable_at_start == [[], []]
    assert [len(r.figures) for r in results] == [1, 1]
    assert display.open == [1, 2]
    assert display.hidden == set()
    assert 1 not in display.closed and 2 not in display.closed


def test_export_failure_is_fatal_but_restores_figures(tmp_path):
    units = _units(tmp_path, 2)
    display = FakeDisplay(preexisting=[7], fail_export=True)
    runner = FakeRunner(display, {1: ("", 1), 2: ("", 0)})

    with pytest.raises(ArtifactError):
        run_code_units(units, runner=runner, display=display)

    assert runner.calls == [units[0].name]
    assert display.open == [7]
    assert display.hidden == set()
    assert display.in_run is False


def test_log_records_every_unit(tmp_path):
    units = _units(tmp_path, 2)
    display = FakeDisplay()
    runner = FakeRunner(display, {1: ("", 1), 2: (RuntimeError("boom"), 0)})
    log = CheckLogger()

    run_code_units(units, runner=runner, display=display, log=log)

    text = "\n".join(log.lines)
    assert f"[OK] {units[0].name}" in text
    assert f"[FAIL] {units[1].name}" in text
    assert f"{units[0].name}_Figure1.png" in text


# ============================================================
# Result record
# ============================================================

def test_execution_result_views(tmp_path):
    unit = _units(tmp_path, 1)[0]
    ok = ExecutionResult(unit=unit, outcome=Success("2\n"))
    bad = ExecutionResult(unit=unit, outcome=Faulted("NameError: x"))
    assert (ok.did_fault, ok.captured_output, ok.figures) == (False, "2\n", [])
    assert (bad.did_fault, bad.captured_output) == (True, "NameError: x")


# ============================================================
# Real modules and real figures
# ============================================================

def _real_units(tmp_path, codes):
    session = create_session(tmp_path, now=NOW)
    return session, save_code_files(session, codes)


def test_module_runner_captures_stdout_and_stderr(tmp_path):
    session, units = _real_units(tmp_path, [
        "import sys\nprint(1 + 1)\nprint('warn', file=sys.stderr)\n",
    ])
    with registered(session):
        output = ModuleRunner().run(units[0].name)
    assert output == "2\nwarn\n"


def test_module_runner_runs_as_main(tmp_path):
    session, units = _real_units(tmp_path, [
        "if __name__ == '__main__':\n    print('main')\n",
    ])
    with registered(session):
        assert ModuleRunner().run(units[0].name) == "main\n"


def test_module_runner_exit_codes(tmp_path):
    session, units = _real_units(tmp_path, [
        "import sys\nprint('bye')\nsys.exit(0)\n",
        "import sys\nsys.exit(3)\n",
    ])
    with registered(session):
        assert ModuleRunner().run(units[0].name) == "bye\n"
        with pytest.raises(SystemExit):
            ModuleRunner().run(units[1].name)


def test_real_run_with_error_summary(tmp_path):
    session, units = _real_units(tmp_path, [
        "x = 1 + 1\nprint(x)\n",
        "raise RuntimeError('boom')\n",
        "print('third')\n",
    ])
    with registered(session):
        results = run_code_units(units)

    assert results[0].outcome == Success("2\n")
    assert results[1].did_fault
    assert results[1].captured_output == f"Error in {units[1].name} (line 1)\nRuntimeError: boom"
    assert results[2].captured_output == "third\n"


def test_real_figures_are_saved_and_closed(tmp_path):
    keep = plt.figure()
    keep_num = keep.number
    session, units = _real_units(tmp_path, [
        "import matplotlib.pyplot as plt\n"
        "plt.figure()\nplt.plot([1, 2, 3])\n"
        "plt.figure()\nplt.bar([1, 2], [3, 4])\n"
        "plt.show()\n",
        "import matplotlib.pyplot as plt\nplt.close('all')\nprint(len(plt.get_fignums()))\n",
    ])
    with registered(session):
        results = run_code_units(units)

    assert [p.name for p in results[0].figures] == [
        f"{units[0].name}_Figure1.png",
        f"{units[0].name}_Figure2.png",
    ]
    for p in results[0].figures:
        assert p.read_bytes()[:4] == b"\x89PNG"
    assert results[1].captured_output == "0\n"
    assert results[1].figures == []
    # The caller's figure is untouched and still current
    assert plt.get_fignums() == [keep_num]
    assert plt.gcf() is keep


def test_real_run_keeps_the_callers_current_figure(tmp_path):
    mine = plt.figure()
    other = plt.figure()
    plt.figure(mine.number)
    session, units = _real_units(tmp_path, [
        "import matplotlib.pyplot as plt\nplt.figure()\nprint('hi')\n",
    ])
    with registered(session):
        results = run_code_units(units)

    assert results[0].captured_output == "hi\n"
    assert len(results[0].figures) == 1
    assert sorted(plt.get_fignums()) == sorted([mine.number, other.number])
    assert plt.gcf() is mine
