from drum_trainer.dt_types import Outcome, TimingStats
from drum_trainer.stats import StatsAggregator, performance_grade


def test_streaks_and_counts():
    agg = StatsAggregator()
    for o in (Outcome.PERFECT, Outcome.GOOD, Outcome.PERFECT, Outcome.MISSED, Outcome.GOOD):
        s = agg.record(o)
        assert s.best_streak >= s.current_streak

    s = agg.stats
    assert (s.perfect_hits, s.good_hits, s.missed_hits, s.total_hits) == (2, 2, 1, 5)
    assert s.current_streak == 1
    assert s.best_streak == 3
    assert agg.accuracy == 80


def test_every_non_hit_outcome_breaks_the_streak():
    for o in (Outcome.SLIGHTLY_OFF, Outcome.WRONG_INSTRUMENT, Outcome.MISSED, Outcome.STRAY):
        agg = StatsAggregator()
        agg.record(Outcome.PERFECT)
        agg.record(o)
        assert agg.stats.current_streak == 0
        assert agg.stats.missed_hits == 1
        assert agg.stats.best_streak == 1


def test_accuracy_rounds_and_handles_empty():
    assert TimingStats().accuracy == 0
    assert TimingStats(perfect_hits=1, good_hits=1, total_hits=3).accuracy == 67


def test_snapshot_is_a_copy():
    agg = StatsAggregator()
    snap = agg.snapshot()
    agg.record(Outcome.PERFECT)
    assert snap.total_hits == 0
    agg.reset()
    assert agg.stats == TimingStats()


def test_performance_grade():
    assert performance_grade(95)[0] == "A"
    assert performance_grade(80)[0] == "B"
    assert performance_grade(70)[0] == "C"
    assert performance_grade(60)[0] == "D"
    assert performance_grade(59)[0] == "F"
