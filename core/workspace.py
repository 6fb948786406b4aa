"""
workspace.py -- Session folders and code unit files.

Every checked response gets its own folder:

    <base>/contents/GeneratedCode/Test-<timestamp>/
        Test1_<timestamp>.py
        Test2_<timestamp>.py
        ...

The folder is created exactly once. If another session already owns the
same timestamp, a "-2", "-3", ... suffix is added instead of reusing it.

Usage:
    session = create_session(base_path)
    units = save_code_files(session, code_texts)
    with registered(session):
        # ... units are importable by name ...
"""

import importlib
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from core import config as C


class WorkspaceError(OSError):
    """The session folder or a unit file could not be written. Fatal to the run."""


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Session:
    timestamp: str
    output_dir: Path
    base_path: Path


@dataclass(frozen=True)
class CodeUnit:
    index: int          # 1-based position in the response
    name: str           # importable module name
    source: str
    path: Path


def make_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(C.TIMESTAMP_FORMAT)


def session_dir(base_path: Path, timestamp: str) -> Path:
    return (Path(base_path) / C.CONTENTS_DIRNAME / C.GENERATED_DIRNAME
            / f"{C.SESSION_PREFIX}{timestamp}")


def unit_name(index: int, timestamp: str) -> str:
    """Module-safe unit name, e.g. Test3_2026_10_16T09_15_02_123456."""
    safe = timestamp.replace("-", "_").replace(".", "_")
    return f"{C.UNIT_PREFIX}{index}_{safe}"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

def _with_suffix(stamp: str, attempt: int) -> str:
    return stamp if attempt == 1 else f"{stamp}-{attempt}"


def plan_session(base_path: Optional[Path] = None, now: Optional[datetime] = None) -> Session:
    """Pick a timestamp and folder that no existing session uses. Nothing is created."""
    base = Path(base_path) if base_path else Path.cwd()
    base = base.resolve()
    stamp = make_timestamp(now)
    timestamp = stamp
    for attempt in range(1, C.MAX_SESSION_ATTEMPTS + 1):
        timestamp = _with_suffix(stamp, attempt)
        if not session_dir(base, timestamp).exists():
            break
    return Session(timestamp=timestamp, output_dir=session_dir(base, timestamp), base_path=base)


def create_session_dir(session: Session) -> Session:
    """Create the session folder. Returns a new Session if the name had to change.

    Raises WorkspaceError when the folder cannot be created (unwritable base,
    a file in the way) or every disambiguated name is taken.
    """
    stamp = session.timestamp
    for attempt in range(1, C.MAX_SESSION_ATTEMPTS + 1):
        timestamp = _with_suffix(stamp, attempt)
        output_dir = session_dir(session.base_path, timestamp)
        try:
            output_dir.mkdir(parents=True, exist_ok=False)
        except FileExistsError as e:
            if output_dir.is_dir():
                continue  # another session got there first
            raise WorkspaceError(f"Cannot create session folder {output_dir}: {e}") from e
        except OSError as e:
            raise WorkspaceError(f"Cannot create session folder {output_dir}: {e}") from e
        return Session(timestamp=timestamp, output_dir=output_dir, base_path=session.base_path)
    raise WorkspaceError(f"No free session folder under {session.output_dir.parent}")


def create_session(base_path: Optional[Path] = None, now: Optional[datetime] = None) -> Session:
    return create_session_dir(plan_session(base_path, now))


# ---------------------------------------------------------------------------
# Code units
# ---------------------------------------------------------------------------

def save_code_files(session: Session, code_texts: Iterable[str]) -> List[CodeUnit]:
    """Write each code text verbatim to its own unit file in the session folder."""
    units = []
    for i, code in enumerate(code_texts, start=1):
        name = unit_name(i, session.timestamp)
        filepath = session.output_dir / f"{name}{C.UNIT_EXTENSION}"
        try:
            with open(filepath, "w", encoding="utf-8", newline="") as f:
                f.write(code)
        except OSError as e:
            raise WorkspaceError(f"Cannot write unit file {filepath}: {e}") from e
        units.append(CodeUnit(index=i, name=name, source=code, path=filepath))
    return units


@contextmanager
def registered(session: Session):
    """Make the session's units importable by name for the duration of the block."""
    entry = str(session.output_dir)
    sys.path.insert(0, entry)
    importlib.invalidate_caches()
    try:
        yield session
    finally:
        try:
            sys.path.remove(entry)
        except ValueError:
            pass
