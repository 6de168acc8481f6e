from dataclasses import replace

from drum_trainer.dt_types import Outcome, TimingStats

GRADES = ((90, "A", "Excellent!"), (80, "B", "Great job!"), (70, "C", "Good work!"),
          (60, "D", "Keep practicing!"))


def performance_grade(accuracy: int) -> tuple[str, str]:
    for floor, grade, message in GRADES:
        if accuracy >= floor:
            return grade, message
    return "F", "Try again!"


class StatsAggregator:
    """Running counts and streaks. Only ``record`` mutates them."""

    def __init__(self):
        self.stats = TimingStats()

    def reset(self):
        self.stats = TimingStats()

    def record(self, outcome: Outcome) -> TimingStats:
        s = self.stats
        s.total_hits += 1
        if outcome == Outcome.PERFECT:
            s.perfect_hits += 1
        elif outcome == Outcome.GOOD:
            s.good_hits += 1
        else:
            s.missed_hits += 1
            s.current_streak = 0
            return s
        s.current_streak += 1
        s.best_streak = max(s.best_streak, s.current_streak)
        return s

    def snapshot(self) -> TimingStats:
        return replace(self.stats)

    @property
    def accuracy(self) -> int:
        return self.stats.accuracy
