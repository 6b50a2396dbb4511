import unittest
from datetime import datetime, timedelta, timezone

from lexidrill.errors import AlreadyExistsError
from lexidrill.results.persist import bump_template_usage, record_daily_progress, update_question_stats
from lexidrill.results.scoring import build_attempt, score_answers
from lexidrill.storage.library import MemoryStore
from lexidrill.storage.schema import DailyAggregate, ExamSettings, ExamTemplate
from tests.helpers import vocab

NOW = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


def _attempt(correct: int, total: int = 10, now: datetime = NOW):
    records = vocab(total)
    answers = {r.id: (r.answer if i < correct else "x") for i, r in enumerate(records)}
    card = score_answers(records, answers)
    return build_attempt(card, mode="quiz", question_ids=[r.id for r in records], answers=answers, now=now)


class RacingStore(MemoryStore):
    """Another writer creates the day between our read and our create."""

    def __init__(self, theirs: DailyAggregate):
        super().__init__()
        self.theirs = theirs

    def create_daily_aggregate(self, aggregate):
        super().create_daily_aggregate(self.theirs)
        raise AlreadyExistsError(aggregate.date_key)


class UpsertStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.upserts = []

    def upsert_daily_aggregate(self, aggregate):
        self.upserts.append(aggregate)
        return aggregate


class DailyProgressTests(unittest.TestCase):
    def test_creates_first_aggregate(self) -> None:
        store = MemoryStore()
        a = _attempt(8)
        store.create_attempt(a)
        agg = record_daily_progress(store, a, target=15)
        self.assertEqual((agg.date_key, agg.completed_count, agg.target, agg.streak), ("2026-03-10", 1, 15, 1))
        self.assertEqual(store.get_daily_aggregate("2026-03-10").best_accuracy, 80)

    def test_second_attempt_updates(self) -> None:
        store = MemoryStore()
        for acc in (5, 9, 6):
            a = _attempt(acc)
            store.create_attempt(a)
            record_daily_progress(store, a)
        agg = store.get_daily_aggregate("2026-03-10")
        self.assertEqual(agg.completed_count, 3)
        self.assertEqual(agg.best_accuracy, 90)

    def test_streak_continues_from_yesterday(self) -> None:
        store = MemoryStore()
        store.create_daily_aggregate(DailyAggregate(date_key="2026-03-09", completed_count=2, streak=4))
        a = _attempt(5)
        store.create_attempt(a)
        self.assertEqual(record_daily_progress(store, a).streak, 5)

    def test_race_only_raises_values(self) -> None:
        theirs = DailyAggregate(date_key="2026-03-10", completed_count=3, best_accuracy=50)
        store = RacingStore(theirs)
        a = _attempt(9)
        store.create_attempt(a)
        agg = record_daily_progress(store, a)
        self.assertEqual(agg.completed_count, 3)
        self.assertEqual(agg.best_accuracy, 90)

    def test_race_raises_streak(self) -> None:
        theirs = DailyAggregate(date_key="2026-03-10", completed_count=1, streak=1, best_accuracy=90)
        store = RacingStore(theirs)
        MemoryStore.create_daily_aggregate(store, DailyAggregate(date_key="2026-03-09", completed_count=4, streak=6))
        a = _attempt(5)
        store.create_attempt(a)
        agg = record_daily_progress(store, a)
        self.assertEqual(agg.streak, 7)
        self.assertEqual(agg.best_accuracy, 90)
        self.assertEqual(store.get_daily_aggregate("2026-03-10").streak, 7)

    def test_race_keeps_larger_existing(self) -> None:
        theirs = DailyAggregate(date_key="2026-03-10", completed_count=5, best_accuracy=100)
        store = RacingStore(theirs)
        a = _attempt(1)
        store.create_attempt(a)
        self.assertEqual(record_daily_progress(store, a), theirs)

    def test_upsert_preferred(self) -> None:
        store = UpsertStore()
        a = _attempt(7)
        store.create_attempt(a)
        record_daily_progress(store, a)
        self.assertEqual(len(store.upserts), 1)
        self.assertIsNone(store.get_daily_aggregate("2026-03-10"))

    def test_other_days_not_counted(self) -> None:
        store = MemoryStore()
        store.create_attempt(_attempt(4, now=NOW - timedelta(days=1)))
        a = _attempt(4)
        store.create_attempt(a)
        self.assertEqual(record_daily_progress(store, a).completed_count, 1)


class CounterTests(unittest.TestCase):
    def test_template_usage(self) -> None:
        store = MemoryStore()
        store.create_template(ExamTemplate(id="t", name="T", source_ids=("a",), settings=ExamSettings()))
        bump_template_usage(store, "t")
        self.assertEqual(bump_template_usage(store, "t").used_count, 2)
        self.assertIsNone(bump_template_usage(store, "missing"))

    def test_question_stats_get_or_create(self) -> None:
        store = MemoryStore()
        update_question_stats(store, "s1", "q1", True)
        update_question_stats(store, "s1", "q1", False)
        stats = update_question_stats(store, "s1", "q1", False)
        self.assertEqual(stats.id, "s1_q1")
        self.assertEqual((stats.times_answered, stats.times_correct, stats.accuracy), (3, 1, 33))


if __name__ == "__main__":
    unittest.main()
