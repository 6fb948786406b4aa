"""
report_skill.py -- Assemble the check report from execution results.

One section per code unit, in order:

    --------------- Test: Test1_<ts> ---------------

    %% Code:
    <source>

    %% Output:
    <console text or error summary>

    Image saved to: contents/GeneratedCode/Test-<ts>/Test1_<ts>_Figure1.png

    <img src="GeneratedCode/Test-<ts>/Test1_<ts>_Figure1.png" class="ml-figure"/>

Figures are moved into the session folder first if they were saved
anywhere else. Image links are relative to the folder the report is shown
from (image_root). By default that is two levels above the session folder,
which is where the chat page lives in the usual layout.
"""

import os
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from core import config as C
from core.logger import CheckLogger
from core.workspace import Session
from skills.run_skill import ArtifactError, ExecutionResult


def default_image_root(session: Session) -> Path:
    root = session.output_dir
    for _ in range(C.IMAGE_ROOT_DEPTH):
        root = root.parent
    return root


def relative_posix(path: Path, start: Path) -> str:
    """Relative path from start to path with forward slashes, for use in HTML."""
    return Path(os.path.relpath(Path(path), Path(start))).as_posix()


def relocate_artifact(path: Path, session: Session) -> Path:
    """Move a figure into the session folder unless it is already there."""
    path = Path(path)
    dest = session.output_dir / path.name
    if path.resolve() == dest.resolve():
        return dest
    try:
        shutil.move(str(path), str(dest))
    except OSError as e:
        raise ArtifactError(f"Could not move {path} to {dest}: {e}") from e
    return dest


def format_section(result: ExecutionResult, session: Session, image_root: Path,
                   log: Optional[CheckLogger] = None) -> str:
    parts = [
        f"{C.DIVIDER} Test: {result.unit.name} {C.DIVIDER}\n\n",
        f"%% Code:\n{result.unit.source}\n\n",
        f"%% Output:\n{result.captured_output}\n\n",
    ]
    for fig in result.figures:
        moved = relocate_artifact(fig, session)
        if log and Path(fig) != moved:
            log.log(f"  [MOVED] {Path(fig).name} -> {session.output_dir.name}/")
        saved_to = relative_posix(moved, session.base_path)
        src = relative_posix(moved, image_root)
        parts.append(f"Image saved to: {saved_to}\n\n"
                     f'<img src="{src}" class="{C.IMAGE_CLASS}"/>\n\n')
    return "".join(parts)


def join_test_results(results: List[ExecutionResult], session: Session,
                      image_root: Optional[Path] = None,
                      log: Optional[CheckLogger] = None) -> Tuple[str, List[str]]:
    """Build the report text and the list of error messages, in unit order."""
    root = Path(image_root) if image_root else default_image_root(session)

    report = "".join(format_section(r, session, root, log) for r in results)
    error_messages = [r.captured_output for r in results if r.did_fault]

    return report.rstrip(), error_messages
