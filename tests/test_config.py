import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path

from lexidrill.config.config import default_config, load_config, validate_config
from lexidrill.util.randomness import seed_if_needed


class ConfigTests(unittest.TestCase):
    def test_packaged_defaults(self) -> None:
        cfg = default_config()
        self.assertEqual(cfg["session"]["min_pool"], 4)
        self.assertEqual(cfg["session"]["auto_advance_s"], {"quiz": 1.0, "context": 1.5, "spelling": 1.5})
        self.assertEqual(cfg["exam"]["time_limits"], [15, 20, 30, 45, 60, 90])
        self.assertEqual(cfg["exam"]["passing_score"], 60)

    def test_empty_config_gets_defaults(self) -> None:
        cfg = validate_config({})
        self.assertEqual(cfg["exam"]["total_questions"], 20)
        self.assertEqual(cfg["persistence"]["attempt_retries"], 1)
        self.assertEqual(cfg["daily"]["target"], 20)

    def test_invalid_values_fall_back_with_warning(self) -> None:
        raw = {"exam": {"negative_penalty": 0.4, "passing_score": 99}, "pool": {"mastered_threshold": 9}}
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            cfg = validate_config(raw)
        self.assertEqual(cfg["exam"]["negative_penalty"], 0.25)
        self.assertEqual(cfg["exam"]["passing_score"], 60)
        self.assertEqual(cfg["pool"]["mastered_threshold"], 4)
        self.assertIn("WARNING: Unsupported negative_penalty", buf.getvalue())

    def test_user_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "cfg.yml"
            p.write_text("session:\n  questions: 15\n", encoding="utf-8")
            cfg = validate_config(load_config(str(p)))
        self.assertEqual(cfg["session"]["questions"], 15)
        self.assertEqual(cfg["session"]["min_pool"], 4)

    def test_missing_file_exits(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                load_config("/nonexistent/lexidrill.yml")


class SeedTests(unittest.TestCase):
    def test_seed_env(self) -> None:
        old = os.environ.get("SEED")
        try:
            os.environ["SEED"] = "12"
            self.assertEqual(seed_if_needed(), 12)
            os.environ["SEED"] = "abc"
            self.assertIsNone(seed_if_needed())
        finally:
            if old is None:
                os.environ.pop("SEED", None)
            else:
                os.environ["SEED"] = old


if __name__ == "__main__":
    unittest.main()
