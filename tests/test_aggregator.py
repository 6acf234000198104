from gaze_probe.aggregator import SampleAggregator, decide_verdict
from gaze_probe.models import Tally, Verdict


def test_midpoint_counts_as_right() -> None:
    aggregator = SampleAggregator()
    aggregator.record(400.0, 800.0)
    assert aggregator.tally == Tally(left=0, right=1)


def test_record_left_and_right() -> None:
    aggregator = SampleAggregator()
    aggregator.record(0.0, 800.0)
    aggregator.record(399.9, 800.0)
    aggregator.record(800.0, 800.0)
    assert aggregator.tally == Tally(left=2, right=1)
    assert aggregator.verdict() == Verdict.LEFT

    aggregator.reset()
    assert aggregator.tally == Tally()


def test_verdict_from_tally() -> None:
    assert decide_verdict(Tally(left=7, right=3)) == Verdict.LEFT
    assert decide_verdict(Tally(left=3, right=7)) == Verdict.RIGHT
    assert decide_verdict(Tally(left=5, right=5)) == Verdict.TIE
    assert decide_verdict(Tally()) == Verdict.TIE
