"""Shared builders and fakes for the test suite."""

from __future__ import annotations

import random
from typing import Callable, List, Optional

from lexidrill.app.events import EventBus
from lexidrill.app.session_manager import SessionManager, SessionRequest
from lexidrill.config.config import default_config
from lexidrill.storage.library import MemoryStore
from lexidrill.storage.schema import QuestionRecord, SourceInfo


def vocab(n: int, *, prefix: str = "w", level: int = 0, favorite: bool = False) -> List[QuestionRecord]:
    return [
        QuestionRecord(
            id=f"{prefix}{i}",
            prompt=f"{prefix}word{i}",
            answer=f"{prefix}meaning{i}",
            examples=(f"frase {i} = I used {prefix}word{i} today",),
            confidence_level=level,
            is_favorite=favorite,
        )
        for i in range(n)
    ]


def mcq_set(set_id: str, n: int) -> List[QuestionRecord]:
    return [
        QuestionRecord(
            id=f"{set_id}-q{i}",
            prompt=f"Question {i} of {set_id}?",
            answer=f"right{i}",
            options=(f"right{i}", f"a{i}", f"b{i}", f"c{i}"),
            explanation=f"Because {i}.",
            container_id=set_id,
        )
        for i in range(n)
    ]


def exam_store(*sizes: int, topic: str = "General") -> MemoryStore:
    records: List[QuestionRecord] = []
    sources = []
    for i, n in enumerate(sizes):
        sid = f"set{i}"
        records.extend(mcq_set(sid, n))
        sources.append(SourceInfo(id=sid, name=f"Set {i}", topic=topic, count=n))
    return MemoryStore(records, sources)


class ManualScheduler:
    """Collects timers; tests fire them explicitly."""

    class Job:
        def __init__(self, delay: float, fn: Callable[[], None]) -> None:
            self.delay = delay
            self.fn = fn
            self.cancelled = False

        def cancel(self) -> None:
            self.cancelled = True

    def __init__(self) -> None:
        self.jobs: List[ManualScheduler.Job] = []

    def __call__(self, delay: float, fn: Callable[[], None]) -> "ManualScheduler.Job":
        job = ManualScheduler.Job(delay, fn)
        self.jobs.append(job)
        return job

    def pending(self) -> List["ManualScheduler.Job"]:
        return [j for j in self.jobs if not j.cancelled]

    def fire(self, job: "ManualScheduler.Job") -> None:
        # fires even when cancelled, to simulate a timer racing its cancel
        job.fn()

    def fire_pending(self) -> None:
        for job in self.pending():
            job.fn()


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class Recorder:
    """Subscribes to every session event and keeps the payloads."""

    EVENTS = ("session_loaded", "answer", "advance", "complete", "cancel", "notice", "error")

    def __init__(self, bus: EventBus) -> None:
        self.events: List[tuple] = []
        for name in self.EVENTS:
            bus.subscribe(name, lambda payload, name=name: self.events.append((name, payload)))

    def names(self) -> List[str]:
        return [n for n, _ in self.events]

    def of(self, name: str) -> list:
        return [p for n, p in self.events if n == name]


def make_session(store, request: SessionRequest, *, seed: int = 7, cfg: Optional[dict] = None):
    bus = EventBus()
    rec = Recorder(bus)
    sched = ManualScheduler()
    clock = FakeClock()
    sm = SessionManager(
        store,
        request,
        cfg=cfg if cfg is not None else default_config(),
        bus=bus,
        rng=random.Random(seed),
        scheduler=sched,
        clock=clock,
    )
    return sm, sched, clock, rec


def answer_all(sm: SessionManager, sched: ManualScheduler, correct: int) -> None:
    """Answer every question of an auto-advancing session; the first ``correct`` right."""
    for i in range(len(sm.questions)):
        q = sm.current
        wrong = next(o for o in q.options if o != q.expected) if q.options else "zzz"
        sm.on_answer(q.expected if i < correct else wrong)
        sched.fire_pending()
