import contextlib
import io
import unittest

from lexidrill.app import explain
from lexidrill.app.events import EventBus


class EventBusTests(unittest.TestCase):
    def test_failing_handler_does_not_block_others(self) -> None:
        bus = EventBus()
        seen = []

        def boom(payload):
            raise RuntimeError("handler bug")

        bus.subscribe("answer", boom)
        bus.subscribe("answer", seen.append)
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            bus.emit("answer", 1)
        self.assertEqual(seen, [1])
        self.assertIn("[WARN] handler for 'answer' failed", err.getvalue())

    def test_unsubscribe_and_notify(self) -> None:
        bus = EventBus()
        seen = []
        bus.subscribe("notice", seen.append)
        bus.notify("info", "hello")
        bus.unsubscribe("notice", seen.append)
        bus.notify("info", "ignored")
        self.assertEqual(seen, [{"level": "info", "message": "hello"}])


class ExplainTests(unittest.TestCase):
    def tearDown(self) -> None:
        explain.enable(False)

    def test_trace_only_when_enabled(self) -> None:
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            explain.trace("graded", {"correct": True})
            explain.enable(True)
            explain.trace("graded", {"correct": True})
        self.assertEqual(out.getvalue().strip(), '[EXPLAIN] graded :: {"correct":true}')


if __name__ == "__main__":
    unittest.main()
