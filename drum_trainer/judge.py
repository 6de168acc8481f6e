import logging
import threading
from collections import defaultdict
from itertools import islice
from typing import Optional

from drum_trainer.config import TrainerConfig
from drum_trainer.dt_types import DetectedHit, Instrument, Notifier, Outcome, OutcomeEvent, ScheduledNote
from drum_trainer.errors import InvariantViolation
from drum_trainer.profiles import detect_instrument
from drum_trainer.stats import StatsAggregator

logger = logging.getLogger(__name__)


def grade_for_dt(dt: float, config: TrainerConfig) -> Outcome:
    """Narrowest window wins. Assumes ``|dt|`` is already within the acceptable window."""
    a = abs(dt)
    if a <= config.perfect_window:
        return Outcome.PERFECT
    if a <= config.good_window:
        return Outcome.GOOD
    return Outcome.SLIGHTLY_OFF


class Judge:
    """
    Matches detected hits to scheduled notes and sweeps notes whose window
    has passed.

    Every note leaves the pending state exactly once, through either ``on_hit``
    or ``sweep``. Both run under ``self.lock`` so the check and the write are
    one step.
    """

    def __init__(self, notes: list[ScheduledNote], config: TrainerConfig,
                 stats: Optional[StatsAggregator] = None, notifier: Optional[Notifier] = None):
        self.notes = notes
        self.config = config
        self.tol = config.acceptable_window
        self.grace = config.grace_window
        self.sequential = config.matching_strategy == "sequential"
        self.count_stray = config.strictness == "count_as_miss"
        self.stats = stats or StatsAggregator()
        self.notifier = notifier
        self.lock = threading.Lock()
        self.cursor = 0
        self.closed = False
        self.evaluated = 0
        self.events: list[OutcomeEvent] = []
        self.per_kind = defaultdict(list)

    # -- schedule -----------------------------------------------------------

    def extend(self, notes: list[ScheduledNote]):
        """
        Queue the next loop's notes behind the current ones.

        Both loops stay matchable around the boundary; the sweep retires the
        old notes. Evaluated notes before the cursor are dropped, stats and
        history carry on.
        """
        with self.lock:
            self._advance_cursor()
            self.notes = self.notes[self.cursor:] + notes
            self.cursor = 0

    def close(self):
        """Stop judging. Later hits and sweeps are dropped."""
        with self.lock:
            self.closed = True

    def _advance_cursor(self):
        while self.cursor < len(self.notes) and self.notes[self.cursor].hit:
            self.cursor += 1

    def current_note(self) -> Optional[ScheduledNote]:
        with self.lock:
            self._advance_cursor()
            return self.notes[self.cursor] if self.cursor < len(self.notes) else None

    def pending(self) -> list[ScheduledNote]:
        with self.lock:
            return [n for n in self.notes if not n.hit]

    @property
    def done(self) -> bool:
        with self.lock:
            return all(n.hit for n in self.notes)

    # -- hit path -----------------------------------------------------------

    def _candidates(self) -> list[ScheduledNote]:
        self._advance_cursor()
        pending = (n for n in self.notes[self.cursor:] if not n.hit)
        if self.sequential:
            # expected note plus the one after it: a hit nearer the next note
            # moves the pointer on and leaves the skipped note to the sweep
            return list(islice(pending, 2))
        return list(pending)

    def on_hit(self, hit: DetectedHit) -> Optional[OutcomeEvent]:
        with self.lock:
            if self.closed:
                return None

            best, best_dt = None, None
            for note in self._candidates():
                dt = hit.time - note.time
                if abs(dt) <= self.tol and (best_dt is None or abs(dt) < abs(best_dt)):
                    best, best_dt = note, dt

            detected = detect_instrument(hit, self.config)
            if best is None:
                if not self.count_stray:
                    logger.debug("Hit at %.3fs matches no scheduled note, discarded", hit.time)
                    return None
                event = OutcomeEvent(outcome=Outcome.STRAY, detected=detected)
                self._emit(event)
                return event

            if detected == best.instrument:
                outcome = grade_for_dt(best_dt, self.config)
            else:
                outcome = Outcome.WRONG_INSTRUMENT
            return self._evaluate(best, outcome, best_dt * 1000.0, detected)

    # -- miss sweep ---------------------------------------------------------

    def sweep(self, now: float) -> list[OutcomeEvent]:
        with self.lock:
            if self.closed:
                return []
            self._advance_cursor()
            events = []
            for note in self.notes[self.cursor:]:
                # sorted by time: nothing later has expired either
                if now <= note.time + self.grace:
                    break
                if not note.hit:
                    events.append(self._evaluate(note, Outcome.MISSED, None, None))
            return events

    # -- shared -------------------------------------------------------------

    def _evaluate(self, note: ScheduledNote, outcome: Outcome, dt_ms: Optional[float],
                  detected: Optional[Instrument]) -> OutcomeEvent:
        if note.hit:
            raise InvariantViolation(f"Note {note.identity} evaluated twice")
        note.hit = True
        note.correct = outcome == Outcome.PERFECT
        note.slightly_off = outcome in (Outcome.GOOD, Outcome.SLIGHTLY_OFF)
        note.wrong_instrument = outcome == Outcome.WRONG_INSTRUMENT
        note.outcome = outcome
        note.dt_ms = dt_ms
        self.evaluated += 1

        event = OutcomeEvent(outcome=outcome, note=note, dt_ms=dt_ms, detected=detected)
        self.per_kind[note.instrument].append(event)
        self._emit(event)
        return event

    def _emit(self, event: OutcomeEvent):
        stats = self.stats.record(event.outcome)
        self.events.append(event)
        if self.notifier:
            self.notifier.send_outcome(event)
        if event.note is None:
            logger.info("stray hit (%s), counted as miss   streak=%d",
                        event.detected.value if event.detected else "?", stats.current_streak)
        else:
            dt = f"{event.dt_ms:+6.1f} ms" if event.dt_ms is not None else "   --   "
            logger.info("[%-7s] %-16s dt=%s   streak=%d", event.note.instrument.value,
                        event.outcome.value, dt, stats.current_streak)

    def finalize(self) -> dict:
        with self.lock:
            self.closed = True
            played = [e for e in self.events if e.dt_ms is not None]
            s = self.stats.snapshot()
            avg_abs_dt = (sum(abs(e.dt_ms) for e in played) / len(played)) if played else 0.0
            per_kind = {
                kind.value: f"{sum(1 for e in evs if e.outcome.is_hit)}/{len(evs)}"
                for kind, evs in self.per_kind.items()
            }
            return {
                "played": len(played),
                "notes_evaluated": self.evaluated,
                "notes_pending": sum(1 for n in self.notes if not n.hit),
                "hits_landed": s.perfect_hits + s.good_hits,
                "perfects": s.perfect_hits,
                "misses": s.missed_hits,
                "avg_abs_dt_ms": avg_abs_dt,
                "max_combo": s.best_streak,
                "accuracy": s.accuracy,
                "per_kind": per_kind,
            }
