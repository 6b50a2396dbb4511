import tempfile
import unittest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from lexidrill.analytics import (
    AnalyticsConfig,
    difficult_questions,
    ewma_by_attempt,
    load_and_prepare,
    mode_history,
    plot_trend,
    plot_weekly,
    weekly_activity,
)
from lexidrill.results.scoring import build_attempt, score_answers
from lexidrill.storage.schema import QuestionStats
from lexidrill.storage.store import append_attempts, validate_records
from tests.helpers import vocab

DAY0 = datetime(2026, 5, 4, 12, 0, tzinfo=timezone.utc)


def _attempt(mode, correct, total=10, day=0, minute=0, penalty=0.0, passing=60):
    records = vocab(total)
    answers = {r.id: (r.answer if i < correct else "x") for i, r in enumerate(records)}
    card = score_answers(records, answers, negative_marking=penalty > 0, penalty=penalty, passing_score=passing)
    return build_attempt(
        card,
        mode=mode,
        question_ids=[r.id for r in records],
        answers=answers,
        negative_penalty=penalty,
        passing_score=passing,
        now=DAY0 + timedelta(days=day, minutes=minute),
    )


class AnalyticsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.data = Path(self.tmp.name)
        attempts = [
            _attempt("quiz", 5, day=0),
            _attempt("quiz", 7, day=1),
            _attempt("quiz", 9, day=1, minute=5),
            _attempt("exam", 8, day=2, penalty=0.5),
            _attempt("exam", 4, day=3, penalty=0.5),
        ]
        append_attempts(validate_records(attempts), self.data)
        self.cfg = AnalyticsConfig(smoothing_span=3)
        self.df = load_and_prepare(self.data, self.cfg)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_prepare_orders_and_computes(self) -> None:
        self.assertEqual(list(self.df["attempt_idx"]), [0, 1, 2, 3, 4])
        self.assertEqual([round(float(v), 2) for v in self.df["acc"]], [0.5, 0.7, 0.9, 0.8, 0.4])
        # 8 right, 2 wrong at 0.5 each
        self.assertAlmostEqual(float(self.df["penalty_loss"].iloc[3]), 1.0)

    def test_mode_history(self) -> None:
        hist = mode_history(self.df)
        self.assertEqual(list(hist["mode"]), ["exam", "quiz"])
        quiz = hist[hist["mode"] == "quiz"].iloc[0]
        self.assertEqual(int(quiz["attempts"]), 3)
        self.assertAlmostEqual(float(quiz["best_acc"]), 0.9, places=5)
        exam = hist[hist["mode"] == "exam"].iloc[0]
        self.assertAlmostEqual(float(exam["pass_rate"]), 0.5)

    def test_weekly_activity_zero_filled(self) -> None:
        week = weekly_activity(self.df, today=date(2026, 5, 8), days=7)
        self.assertEqual(len(week), 7)
        self.assertEqual(week["day"].iloc[0], date(2026, 5, 2))
        self.assertEqual(list(week["count"]), [0, 0, 1, 2, 1, 1, 0])

    def test_ewma_per_mode(self) -> None:
        out = ewma_by_attempt(self.df, "acc", self.cfg.smoothing_span, ["mode"])
        self.assertIn("acc_smooth", out.columns)
        first_exam = out[out["mode"] == "exam"].iloc[0]
        self.assertAlmostEqual(float(first_exam["acc_smooth"]), 0.8, places=5)

    def test_plots_write_files(self) -> None:
        out = self.data / "trend.png"
        plot_trend(ewma_by_attempt(self.df, "acc", 3), save_path=out)
        self.assertTrue(out.exists())
        weekly = self.data / "weekly.png"
        plot_weekly(weekly_activity(self.df, today=date(2026, 5, 8)), target=2, save_path=weekly)
        self.assertTrue(weekly.exists())


class DifficultQuestionTests(unittest.TestCase):
    def test_threshold_and_order(self) -> None:
        def st(qid, answered, right):
            return QuestionStats(
                id=f"s_{qid}",
                question_id=qid,
                set_id="s",
                times_answered=answered,
                times_correct=right,
                accuracy=round(100 * right / answered),
            )

        stats = [st("easy", 5, 5), st("rare", 2, 0), st("hard", 6, 1), st("meh", 4, 2), st("worst", 3, 0)]
        df = difficult_questions(stats, AnalyticsConfig())
        self.assertEqual(list(df["question_id"]), ["worst", "hard", "meh"])
        self.assertEqual(int(df["wrong_count"].iloc[1]), 5)

    def test_empty(self) -> None:
        self.assertTrue(difficult_questions([], AnalyticsConfig()).empty)


if __name__ == "__main__":
    unittest.main()
