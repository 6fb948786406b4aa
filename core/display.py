"""
display.py -- Explicit handle on pyplot's global figure registry.

pyplot keeps every open figure in one process-wide registry. The checker
needs to tell figures made by a code unit apart from figures the caller
already had open, so this module wraps the registry in a small object:

    list_capturable()   figure numbers a unit could have produced
    hide(nums)          detach figures so nothing in the run sees or closes them
    show(nums)          re-attach previously hidden figures
    running()           context in which plt.show() does not block
    export(num, path)   save one figure as an image
    close(nums)         close figures

Hidden figures are detached from the registry (not destroyed), so
plt.close("all") inside a unit cannot touch them.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, List

import matplotlib.pyplot as plt
from matplotlib._pylab_helpers import Gcf


class MatplotlibDisplay:
    """Figure registry wrapper used by the executor."""

    def __init__(self, dpi=None):
        self.dpi = dpi
        self._hidden: Dict[int, object] = {}

    def list_capturable(self) -> List[int]:
        """Open figure numbers, lowest first, excluding hidden ones.

        pyplot numbers new figures upwards, so this is creation order unless
        a unit picks its own numbers.
        """
        return sorted(Gcf.figs)

    def hide(self, nums: Iterable[int]):
        """Detach figures, keeping the registry's order (last one is current)."""
        wanted = set(nums)
        for num in [n for n in Gcf.figs if n in wanted]:
            self._hidden[num] = Gcf.figs.pop(num)

    def show(self, nums: Iterable[int]):
        """Re-attach hidden figures in the order they were detached."""
        wanted = set(nums)
        for num in [n for n in self._hidden if n in wanted]:
            Gcf.figs[num] = self._hidden.pop(num)

    @property
    def hidden(self) -> List[int]:
        return list(self._hidden)

    def export(self, num: int, path: Path) -> Path:
        manager = Gcf.figs[num]
        kwargs = {"dpi": self.dpi} if self.dpi else {}
        manager.canvas.figure.savefig(str(path), **kwargs)
        return Path(path)

    def close(self, nums: Iterable[int]):
        for num in list(nums):
            if num in Gcf.figs:
                plt.close(num)

    @contextmanager
    def running(self):
        """Turn plt.show() into a no-op while units run.

        With an interactive backend plt.show() blocks until the window is
        closed by hand; figures are saved from the registry instead.
        """
        original = plt.show
        plt.show = _no_show
        try:
            yield self
        finally:
            plt.show = original


def _no_show(*args, **kwargs):
    return None
