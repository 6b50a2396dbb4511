from __future__ import annotations

"""Persistence helpers run when a session starts or completes.

Attempt writes get one retry and are then dropped with a warning; the daily
aggregate follows an optimistic create-then-update protocol that tolerates a
concurrent writer creating the same day first.
"""

from datetime import date, timedelta
from typing import Optional

from ..app.events import EventBus
from ..app.explain import trace, warn
from ..errors import AlreadyExistsError, LexidrillError
from ..storage.library import ContentStore
from ..storage.schema import Attempt, DailyAggregate, ExamTemplate, QuestionStats, utcnow
from .schema import percent


def persist_attempt(store: ContentStore, attempt: Attempt, *, retries: int = 1, bus: Optional[EventBus] = None) -> bool:
    """Write ``attempt`` once; retry ``retries`` times on failure.

    Returns False when the attempt was dropped. The caller keeps showing the
    score either way.
    """
    last: Optional[Exception] = None
    for n in range(max(0, retries) + 1):
        try:
            store.create_attempt(attempt)
        except AlreadyExistsError:
            # an earlier try landed after all
            return True
        except (LexidrillError, OSError) as exc:
            last = exc
            trace("attempt_write_failed", {"id": attempt.id, "try": n + 1, "error": str(exc)})
            continue
        trace("attempt_saved", {"id": attempt.id, "mode": attempt.mode})
        return True
    warn(f"attempt {attempt.id} dropped after {retries + 1} tries: {last}")
    if bus is not None:
        bus.notify("warning", "Result could not be saved")
    return False


def _computed_aggregate(store: ContentStore, attempt: Attempt, target: int) -> DailyAggregate:
    key = attempt.date
    todays = {a.id: a for a in store.list_attempts() if a.date == key}
    todays[attempt.id] = attempt
    best = max(a.accuracy for a in todays.values())
    yesterday = (date.fromisoformat(key) - timedelta(days=1)).isoformat()
    prev = store.get_daily_aggregate(yesterday)
    streak = prev.streak + 1 if prev is not None and prev.completed_count > 0 else 1
    return DailyAggregate(date_key=key, completed_count=len(todays), target=target, streak=streak, best_accuracy=best)


def record_daily_progress(store: ContentStore, attempt: Attempt, *, target: int = 20) -> DailyAggregate:
    """Create or raise today's aggregate to the values computed from the store.

    Stores offering ``upsert_daily_aggregate`` get a single atomic call.
    Otherwise an optimistic create is tried; when another writer created the
    day first, the existing record is updated only where our values are larger.
    """
    mine = _computed_aggregate(store, attempt, target)
    upsert = getattr(store, "upsert_daily_aggregate", None)
    if callable(upsert):
        return upsert(mine)

    existing = store.get_daily_aggregate(mine.date_key)
    if existing is None:
        try:
            store.create_daily_aggregate(mine)
            trace("daily_created", {"date": mine.date_key, "count": mine.completed_count})
            return mine
        except AlreadyExistsError:
            trace("daily_race", {"date": mine.date_key})
            existing = store.get_daily_aggregate(mine.date_key)
            if existing is None:
                return mine

    partial = {}
    if mine.completed_count > existing.completed_count:
        partial["completed_count"] = mine.completed_count
    if mine.best_accuracy > existing.best_accuracy:
        partial["best_accuracy"] = mine.best_accuracy
    if mine.streak > existing.streak:
        partial["streak"] = mine.streak
    if not partial:
        return existing
    partial["updated_at"] = utcnow()
    trace("daily_updated", {"date": mine.date_key, **{k: v for k, v in partial.items() if k != "updated_at"}})
    return store.update_daily_aggregate(mine.date_key, partial)


def bump_template_usage(store: ContentStore, template_id: str) -> Optional[ExamTemplate]:
    template = store.get_template(template_id)
    if template is None:
        return None
    return store.update_template(template_id, {"used_count": template.used_count + 1})


def update_question_stats(store: ContentStore, set_id: str, question_id: str, correct: bool) -> QuestionStats:
    """Get-or-create the running answer stats of one question within one set."""
    stats_id = f"{set_id}_{question_id}"
    existing = store.get_question_stats(stats_id)
    answered = (existing.times_answered if existing else 0) + 1
    right = (existing.times_correct if existing else 0) + (1 if correct else 0)
    stats = QuestionStats(
        id=stats_id,
        question_id=question_id,
        set_id=set_id,
        times_answered=answered,
        times_correct=right,
        accuracy=percent(right, answered),
    )
    store.put_question_stats(stats)
    return stats
