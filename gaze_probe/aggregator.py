"""Left/right sample counting."""

from __future__ import annotations

from .models import Tally, Verdict


def decide_verdict(tally: Tally) -> Verdict:
    if tally.left > tally.right:
        return Verdict.LEFT
    if tally.right > tally.left:
        return Verdict.RIGHT
    return Verdict.TIE


class SampleAggregator:
    """Accumulates per-sample side decisions.

    The midpoint counts as right.
    """

    def __init__(self) -> None:
        self.tally = Tally()

    def reset(self) -> None:
        self.tally = Tally()

    def record(self, normalized_x: float, screen_width: float) -> None:
        if normalized_x < (screen_width / 2.0):
            self.tally.left += 1
        else:
            self.tally.right += 1

    def verdict(self) -> Verdict:
        return decide_verdict(self.tally)
