"""
One practice session: schedule, detector, judge and the two periodic ticks.

The analysis tick turns the newest audio frame into at most one hit; the
sweep tick declares overdue notes missed. Both funnel into ``Judge``, whose
lock serialises every note mutation, so the ticks may run on separate
threads.

Looping modes queue the next loop's notes one acceptance window before
the boundary, so a downbeat played a little early still finds its note.
"""

import logging
import math
import threading
import time
from typing import Callable, Iterable, Optional

from drum_trainer.analyzer import FrameAnalyzer
from drum_trainer.chart import generate_schedule, shift_schedule, step_duration
from drum_trainer.config import DEFAULT_BPM, TrainerConfig, validate_bpm
from drum_trainer.dt_types import (DetectedHit, FrameSource, Notifier, OutcomeEvent,
                                   ScheduledNote, SessionState)
from drum_trainer.errors import ConfigurationError, NoInputSignal
from drum_trainer.judge import Judge
from drum_trainer.onset import OnsetDetector
from drum_trainer.stats import StatsAggregator

logger = logging.getLogger(__name__)

HitSource = Callable[[float, Callable[[DetectedHit], None], threading.Event], None]


class PracticeSession:
    def __init__(self, config: TrainerConfig, pattern=None, bpm: float = DEFAULT_BPM,
                 notes: Optional[list[ScheduledNote]] = None,
                 source: Optional[FrameSource] = None, notifier: Optional[Notifier] = None,
                 clock=time.monotonic, play_click: bool = False):
        self.config = config.validate()
        self.bpm = validate_bpm(bpm)
        if (pattern is None) == (notes is None):
            raise ConfigurationError("Give either a pattern or an explicit note list")
        self.pattern = pattern
        self.fixed_notes = notes
        self.template = self._build_template()
        if not self.template:
            raise ConfigurationError("Schedule has no notes to practice")
        self.loop_length = self._loop_length()

        self.source = source
        self.notifier = notifier
        self.clock = clock
        self.play_click = play_click

        self.analyzer = FrameAnalyzer(self.config)
        self.detector = OnsetDetector(self.config)
        self.stats = StatsAggregator()
        self.judge: Optional[Judge] = None
        self.state = SessionState()

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    # -- schedule -----------------------------------------------------------

    def _build_template(self) -> list[ScheduledNote]:
        if self.fixed_notes is not None:
            return shift_schedule(self.fixed_notes, 0.0)
        return generate_schedule(self.pattern, self.bpm)

    def _loop_length(self) -> float:
        if self.pattern is not None:
            steps = max((len(s) for s in self.pattern.values()), default=0)
            return steps * step_duration(self.bpm)
        bar = 4 * 60.0 / self.bpm
        last = self.template[-1].time
        return max(1, math.ceil((last + 1e-9) / bar)) * bar

    @property
    def notes(self) -> list[ScheduledNote]:
        return self.judge.notes if self.judge else self.template

    # -- lifecycle ----------------------------------------------------------

    def start(self, start_delay: float = 0.0) -> Optional[float]:
        """Reset everything for a new run. Returns the start anchor, or None if the input failed."""
        self.stats.reset()
        self.detector.reset()
        self.judge = Judge(shift_schedule(self.template, 0.0), self.config, self.stats, self.notifier)
        self.state = SessionState(loop_length=self.loop_length)
        self._stop.clear()

        if self.source is not None:
            try:
                self.source.start()
            except NoInputSignal as e:
                logger.error("%s", e)
                self.state.input_error = str(e)
                self.judge.close()
                return None

        self.state.start_at = self.clock() + start_delay
        self.state.running = True
        logger.info("Session started: mode=%s matching=%s strictness=%s notes/loop=%d",
                    self.config.mode, self.config.matching_strategy, self.config.strictness,
                    len(self.template))
        return self.state.start_at

    def stop(self, reason: str = "stopped"):
        with self._lock:
            self._end(reason, completed=False)
        current = threading.current_thread()
        for th in self._threads:
            if th is not current:
                th.join(timeout=1.0)
        self._threads = []
        if self.source is not None:
            self.source.stop()

    def _end(self, reason: str, completed: bool):
        # caller holds self._lock
        self._stop.set()
        if not self.state.running:
            return
        self.state.running = False
        self.state.completed = completed
        self.state.end_reason = reason
        if self.judge:
            self.judge.close()
        logger.info("Session ended: %s", reason)

    def elapsed(self) -> float:
        if self.state.start_at is None:
            return 0.0
        return self.clock() - self.state.start_at

    # -- ticks --------------------------------------------------------------

    def analysis_tick(self, t: Optional[float] = None) -> Optional[OutcomeEvent]:
        if not self.state.running or self.source is None:
            return None
        t = self.elapsed() if t is None else t
        frame = self.source.read_frame(t)
        if frame is None:
            return None
        hit = self.detector.push(self.analyzer.analyze(frame), t)
        if hit is None:
            return None
        return self.submit_hit(hit)

    def submit_hit(self, hit: DetectedHit) -> Optional[OutcomeEvent]:
        with self._lock:
            if not self.state.running:
                return None
            self.state.hits_seen += 1
            self._roll_loops(hit.time)
        event = self.judge.on_hit(hit)
        if event is not None:
            self.state.last_event = event
        self._check_completion(hit.time)
        return event

    def sweep_tick(self, t: Optional[float] = None) -> list[OutcomeEvent]:
        if not self.state.running:
            return []
        t = self.elapsed() if t is None else t
        events = self.judge.sweep(t)
        if events:
            self.state.last_event = events[-1]
        self._check_completion(t)
        return events

    def _check_completion(self, t: float):
        with self._lock:
            if not self.state.running:
                return
            mode = self.config.mode
            if mode == "timed" and t >= self.config.duration:
                self._end("time up", completed=True)
            elif mode == "notes" and self.judge.evaluated >= self.config.note_limit:
                self._end("note limit reached", completed=True)
            elif mode == "continuous":
                if self.judge.done:
                    self._end("schedule complete", completed=True)
            else:
                self._roll_loops(t)

    def _roll_loops(self, t: float):
        # caller holds self._lock
        if self.config.mode == "continuous":
            return
        # the next loop is queued before its first window opens
        while t >= self.state.loop * self.loop_length - self.config.acceptable_window:
            self._next_loop()

    def _next_loop(self):
        offset = self.state.loop * self.loop_length
        self.judge.extend(shift_schedule(self.template, offset))
        self.state.loop += 1
        logger.info("Loop %d queued at %.2fs", self.state.loop, offset)

    # -- threaded runner ----------------------------------------------------

    def _periodic(self, fn: Callable, period: float):
        next_at = self.clock()
        while not self._stop.is_set():
            fn()
            next_at += period
            self._stop.wait(max(0.0, next_at - self.clock()))

    def _clicks(self):
        from drum_trainer.audio import CLICK, play_mono
        beat = 60.0 / self.bpm
        n = 0
        while not self._stop.is_set():
            at = self.state.start_at + n * beat
            self._stop.wait(max(0.0, at - self.clock()))
            if self._stop.is_set():
                break
            try:
                play_mono(CLICK)
            except Exception as e:
                logger.warning("Metronome disabled: %s", e)
                return
            n += 1

    def _run_hit_source(self, source: HitSource):
        try:
            source(self.state.start_at, self.submit_hit, self._stop)
        except NoInputSignal as e:
            logger.error("%s", e)
            self.state.input_error = str(e)
            with self._lock:
                self._end("input lost", completed=False)

    def run(self, hit_sources: Iterable[HitSource] = (), timeout: Optional[float] = None) -> SessionState:
        """Drive the ticks on worker threads until the session completes, fails or times out."""
        if not self.state.running:
            return self.state
        targets = [(self._periodic, (self.sweep_tick, self.config.sweep_interval))]
        if self.source is not None:
            targets.append((self._periodic, (self.analysis_tick, 1.0 / self.config.analysis_hz)))
        for hs in hit_sources:
            targets.append((self._run_hit_source, (hs,)))
        if self.play_click:
            targets.append((self._clicks, ()))

        self._threads = [threading.Thread(target=fn, args=args, daemon=True) for fn, args in targets]
        for th in self._threads:
            th.start()
        try:
            self._stop.wait(timeout)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()
        return self.state

    def results(self) -> dict:
        summary = self.judge.finalize() if self.judge else {}
        summary.update({
            "loops": self.state.loop,
            "end_reason": self.state.end_reason,
            "hits_detected": self.state.hits_seen,
        })
        return summary
