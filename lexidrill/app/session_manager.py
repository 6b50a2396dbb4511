from __future__ import annotations

"""Session Manager: the practice/quiz/exam state machine.

One instance drives one run: it resolves the pool, generates every question
upfront, locks answers, schedules auto-advance, scores on completion and
hands the Attempt to the store. All transitions happen under one re-entrant
lock; timers only ever re-enter through that lock and carry a token so a
stale timer is a no-op.
"""

import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from ..config.config import default_config
from ..drills.base_drill import BaseDrill, DrillContext
from ..errors import LexidrillError, LoadFailure, PoolTooSmall
from ..results.persist import bump_template_usage, persist_attempt, record_daily_progress, update_question_stats
from ..results.schema import SessionProgress, SessionQuestion
from ..results.scoring import build_attempt, score_answers
from ..samplers.pool_selector import select_pool
from ..storage.library import ContentStore
from ..storage.schema import CONFIDENCE_TAGS, Attempt, ExamConfiguration, ExamSettings, QuestionRecord
from .drill_registry import DrillMeta, get_drill, make_drill
from .events import EventBus
from .explain import trace, warn


class SessionState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    AWAITING_ADVANCE = "awaiting_advance"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERROR = "error"


ACTIVE_STATES = (SessionState.IN_PROGRESS, SessionState.AWAITING_ADVANCE)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def thread_scheduler(delay_s: float, fn: Callable[[], None]) -> threading.Timer:
    t = threading.Timer(delay_s, fn)
    t.daemon = True
    t.start()
    return t


@dataclass(frozen=True)
class SessionRequest:
    """What to play. Library modes use ``pool``; set modes use ``source_ids``."""

    mode: str
    pool: str = "all"
    question_count: int = 10
    source_ids: Tuple[str, ...] = ()
    settings: Optional[ExamSettings] = None
    template_id: Optional[str] = None

    @classmethod
    def from_exam(cls, config: ExamConfiguration) -> "SessionRequest":
        return cls(mode="exam", pool="custom", source_ids=config.source_ids, settings=config.settings, template_id=config.template_id)


class SessionManager:
    def __init__(
        self,
        store: ContentStore,
        request: SessionRequest,
        *,
        cfg: Optional[Dict[str, Any]] = None,
        bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
        scheduler: Scheduler = thread_scheduler,
        clock: Callable[[], float] = time.monotonic,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.request = request
        self.cfg = cfg if cfg is not None else default_config()
        self.bus = bus or EventBus()
        self.rng = rng or random.Random()
        self.scheduler = scheduler
        self.clock = clock
        self.now = now
        self.meta: DrillMeta = get_drill(request.mode)
        self.settings: Optional[ExamSettings] = self._resolve_settings()

        self.state = SessionState.LOADING
        self.questions: Tuple[SessionQuestion, ...] = ()
        self.progress = SessionProgress()
        self.attempt: Optional[Attempt] = None
        self.error: Optional[Exception] = None
        self.saved: Optional[bool] = None

        self._lock = threading.RLock()
        self._drill: Optional[BaseDrill] = None
        self._token = 0
        self._advance_timer: Optional[TimerHandle] = None
        self._expiry_timer: Optional[TimerHandle] = None

    # ----- setup -----

    def _resolve_settings(self) -> Optional[ExamSettings]:
        if self.request.settings is not None:
            return self.request.settings
        if not self.meta.timed:
            return None
        exam = self.cfg.get("exam", {})
        return ExamSettings(
            total_questions=int(exam.get("total_questions", 20)),
            time_limit=int(exam.get("time_limit", 15)),
            negative_marking=bool(exam.get("negative_marking", False)),
            negative_penalty=float(exam.get("negative_penalty", 0.25)),
            passing_score=int(exam.get("passing_score", 60)),
            shuffle_questions=bool(exam.get("shuffle_questions", True)),
            shuffle_options=bool(exam.get("shuffle_options", True)),
        )

    def _drill_context(self) -> DrillContext:
        session = self.cfg.get("session", {})
        options = int(session.get("options_per_question", 4))
        if self.meta.source == "library":
            return DrillContext(question_count=self.request.question_count, options_per_question=options)
        s = self.settings
        return DrillContext(
            question_count=s.total_questions if (s and self.meta.timed) else 10**6,
            options_per_question=options,
            shuffle_questions=s.shuffle_questions if s else False,
            shuffle_options=s.shuffle_options if s else False,
        )

    def _gather_set_records(self) -> List[QuestionRecord]:
        seen: Dict[str, QuestionRecord] = {}
        for sid in self.request.source_ids:
            for r in self.store.get_question_sets_by_container(sid):
                seen.setdefault(r.id, r)
        return list(seen.values())

    def start(self) -> bool:
        """Loading: resolve the pool and build every question. False on abort."""
        with self._lock:
            if self.state != SessionState.LOADING:
                return self.state in ACTIVE_STATES
            minimum = int(self.cfg.get("session", {}).get("min_pool", 4))
            drill = make_drill(self.request.mode, self._drill_context(), self.rng)
            try:
                if self.meta.source == "library":
                    library = self.store.list_questions(drill.content_filter)
                    selection = select_pool(
                        library,
                        self.request.pool,
                        minimum=minimum,
                        mastered_threshold=int(self.cfg.get("pool", {}).get("mastered_threshold", 4)),
                    )
                    if selection.too_small:
                        return self._abort(PoolTooSmall(selection.size, minimum, self.meta.name), selection.message(self.meta.name))
                    questions = drill.build_session(selection.records, library)
                else:
                    records = [r for r in self._gather_set_records() if drill.content_filter(r)]
                    if len(records) < minimum:
                        return self._abort(PoolTooSmall(len(records), minimum, self.meta.name), "No MCQs found in selected sources")
                    questions = drill.build_session(records, records)
            except (LoadFailure, OSError) as exc:
                return self._abort(exc, f"Failed to load {self.meta.name.lower()}")

            self._drill = drill
            self.questions = tuple(questions)
            self.progress = SessionProgress(started_at=self.clock())
            self.state = SessionState.IN_PROGRESS
            trace("session_started", {"mode": self.meta.id, "pool": self.request.pool, "questions": len(self.questions)})

            if self.request.template_id:
                try:
                    bump_template_usage(self.store, self.request.template_id)
                except (LexidrillError, OSError) as exc:
                    warn(f"template usage not recorded: {exc}")
            if self.meta.timed and self.settings is not None:
                session_id = id(self.progress)
                self._expiry_timer = self.scheduler(self.settings.time_limit * 60, lambda: self._on_expiry(session_id))
            self.bus.emit("session_loaded", self)
            return True

    def _abort(self, exc: Exception, message: str) -> bool:
        self.state = SessionState.ERROR
        self.error = exc
        trace("session_aborted", {"mode": self.meta.id, "reason": str(exc)})
        self.bus.notify("error", message)
        self.bus.emit("error", exc)
        return False

    # ----- queries -----

    @property
    def current(self) -> Optional[SessionQuestion]:
        if not self.questions or self.state not in ACTIVE_STATES:
            return None
        return self.questions[self.progress.index]

    @property
    def is_last(self) -> bool:
        return self.progress.index >= len(self.questions) - 1

    def answer_for(self, question_id: str) -> Optional[str]:
        return self.progress.answers.get(question_id)

    def remaining_s(self) -> Optional[float]:
        if not self.meta.timed or self.settings is None or self.progress.started_at is None:
            return None
        end = self.progress.ended_at if self.progress.ended_at is not None else self.clock()
        return max(0.0, self.settings.time_limit * 60 - (end - self.progress.started_at))

    def summary(self) -> Dict[str, Any]:
        answered = len(self.progress.answers)
        return {
            "mode": self.meta.id,
            "state": self.state.value,
            "total": len(self.questions),
            "answered": answered,
            "correct": self.progress.score,
            "index": self.progress.index,
            "marked": sorted(self.progress.marked),
        }

    # ----- answering -----

    def on_answer(self, value: str) -> Optional[bool]:
        """Submit an answer for the active question.

        Returns correctness, or None when the input was ignored (already
        answered, waiting for auto-advance, or session not running).
        """
        with self._lock:
            if self.state != SessionState.IN_PROGRESS:
                return None
            q = self.questions[self.progress.index]
            if q.id in self.progress.answers:
                return None
            if q.kind == "choice" and value not in q.options:
                raise ValueError(f"Not an option of question {q.id}: {value!r}")
            ok = self._drill.grade(value, q.expected)
            self.progress.answers[q.id] = value
            self.progress.results[q.id] = ok
            if ok:
                self.progress.score += 1
            trace("graded", {"index": self.progress.index, "answer": value, "truth": q.expected, "correct": ok})
            self.bus.emit("answer", {"question_id": q.id, "value": value, "correct": ok, "expected": q.expected})

            if self.meta.id == "practice":
                try:
                    update_question_stats(self.store, q.record.container_id or "custom", q.id, ok)
                except (LexidrillError, OSError) as exc:
                    warn(f"question stats not updated: {exc}")

            if self.meta.auto_advance:
                self.state = SessionState.AWAITING_ADVANCE
                self._token += 1
                token = self._token
                delay = float(self.cfg.get("session", {}).get("auto_advance_s", {}).get(self.meta.id, 1.0))
                self._advance_timer = self.scheduler(delay, lambda: self._on_advance_timer(token))
            return ok

    def set_confidence(self, tag: str) -> None:
        with self._lock:
            if not self.meta.supports_confidence:
                raise ValueError(f"{self.meta.name} does not track confidence")
            if tag not in CONFIDENCE_TAGS:
                raise ValueError(f"Unknown confidence tag: {tag}")
            if self.state != SessionState.IN_PROGRESS:
                return
            self.progress.confidence[self.questions[self.progress.index].id] = tag

    def toggle_mark(self) -> bool:
        """Flag/unflag the active question for review. Returns the new flag."""
        with self._lock:
            if self.state != SessionState.IN_PROGRESS:
                return False
            qid = self.questions[self.progress.index].id
            marked = self.progress.marked
            self.progress.marked = marked - {qid} if qid in marked else marked | {qid}
            return qid in self.progress.marked

    # ----- navigation -----

    def _on_advance_timer(self, token: int) -> None:
        with self._lock:
            if self.state != SessionState.AWAITING_ADVANCE or token != self._token:
                return
            self._advance_locked()

    def _advance_locked(self) -> None:
        self._cancel_advance_timer()
        if self.is_last:
            self._complete_locked(auto=False)
            return
        self.progress.index += 1
        self.state = SessionState.IN_PROGRESS
        self.bus.emit("advance", self.progress.index)

    def advance(self) -> None:
        """Skip the remaining feedback delay."""
        with self._lock:
            if self.state == SessionState.AWAITING_ADVANCE:
                self._advance_locked()

    def go_to(self, index: int) -> bool:
        """Free navigation for modes without auto-advance."""
        with self._lock:
            if self.meta.auto_advance or self.state != SessionState.IN_PROGRESS:
                return False
            if not (0 <= index < len(self.questions)) or index == self.progress.index:
                return False
            self.progress.index = index
            self.bus.emit("advance", index)
            return True

    def next(self) -> bool:
        return self.go_to(self.progress.index + 1)

    def previous(self) -> bool:
        return self.go_to(self.progress.index - 1)

    # ----- completion -----

    def _on_expiry(self, session_id: int) -> None:
        with self._lock:
            if self.state not in ACTIVE_STATES or session_id != id(self.progress):
                return
            self._complete_locked(auto=True)

    def check_time(self) -> Optional[Attempt]:
        """Submit the exam if its time limit has passed."""
        with self._lock:
            remaining = self.remaining_s()
            if remaining is not None and remaining <= 0 and self.state in ACTIVE_STATES:
                return self._complete_locked(auto=True)
            return None

    def finish(self) -> Optional[Attempt]:
        """Explicit submit. Unanswered questions count as skipped."""
        with self._lock:
            if self.state not in ACTIVE_STATES:
                return self.attempt
            return self._complete_locked(auto=False)

    def _complete_locked(self, *, auto: bool) -> Attempt:
        if self.progress.completed and self.attempt is not None:
            return self.attempt
        self.progress.completed = True
        self._cancel_advance_timer()
        self._cancel_expiry_timer()
        self.progress.ended_at = self.clock()

        s = self.settings
        passing = s.passing_score if s else int(self.cfg.get("exam", {}).get("passing_score", 60))
        negative = bool(s and s.negative_marking)
        penalty = s.negative_penalty if negative else 0.0
        records = [q.record for q in self.questions]
        card = score_answers(
            records,
            self.progress.answers,
            is_correct=self._drill.is_correct,
            negative_marking=negative,
            penalty=penalty,
            passing_score=passing,
        )
        elapsed = self.progress.ended_at - (self.progress.started_at or self.progress.ended_at)
        if s is not None and self.meta.timed:
            elapsed = min(elapsed, s.time_limit * 60)
        set_ids = self.request.source_ids
        self.attempt = build_attempt(
            card,
            mode=self.meta.id,
            question_ids=[q.id for q in self.questions],
            answers=self.progress.answers,
            confidence=self.progress.confidence if self.meta.supports_confidence else None,
            duration_s=round(elapsed),
            pool=self.request.pool if self.meta.source == "library" else "custom",
            passing_score=passing,
            negative_penalty=penalty,
            template_id=self.request.template_id,
            set_id=set_ids[0] if len(set_ids) == 1 else None,
            now=self.now() if self.now else None,
        )
        self.state = SessionState.COMPLETE
        trace("session_ended", {"mode": self.meta.id, "correct": card.correct, "total": card.total, "score": card.score})

        retries = int(self.cfg.get("persistence", {}).get("attempt_retries", 1))
        self.saved = persist_attempt(self.store, self.attempt, retries=retries, bus=self.bus)
        if self.saved:
            try:
                record_daily_progress(self.store, self.attempt, target=int(self.cfg.get("daily", {}).get("target", 20)))
            except (LexidrillError, OSError) as exc:
                warn(f"daily progress not updated: {exc}")
        if auto:
            self.bus.notify("info", "Time's up! Exam submitted.")
        self.bus.emit("complete", self.attempt)
        return self.attempt

    def on_cancel(self, confirmed: bool = False) -> bool:
        """Abandon the session. Requires the UI's confirmation; nothing is persisted."""
        with self._lock:
            if self.state not in ACTIVE_STATES or not confirmed:
                return False
            self._token += 1
            self._cancel_advance_timer()
            self._cancel_expiry_timer()
            self.state = SessionState.CANCELLED
            trace("session_cancelled", {"mode": self.meta.id, "index": self.progress.index})
            self.bus.emit("cancel", self.summary())
            return True

    def _cancel_advance_timer(self) -> None:
        if self._advance_timer is not None:
            self._advance_timer.cancel()
            self._advance_timer = None

    def _cancel_expiry_timer(self) -> None:
        if self._expiry_timer is not None:
            self._expiry_timer.cancel()
            self._expiry_timer = None
