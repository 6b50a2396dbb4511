import unittest

from lexidrill.app.events import EventBus
from lexidrill.app.exam_builder import ExamConfigBuilder, WizardStep, snap_penalty, templates_by_usage
from lexidrill.errors import InvalidConfiguration, PersistenceError
from lexidrill.storage.library import MemoryStore
from lexidrill.storage.schema import ExamSettings, ExamTemplate, SourceInfo
from tests.helpers import Recorder


def _sources():
    return [
        SourceInfo(id="a", name="Algebra", topic="Math", count=8),
        SourceInfo(id="b", name="Geometry", topic="Math", count=4),
        SourceInfo(id="c", name="Verbs", topic="Language", count=3),
        SourceInfo(id="d", name="Nouns", topic="Language", count=30),
    ]


class FailingStore(MemoryStore):
    def create_template(self, template):
        raise PersistenceError("disk full")


class SelectionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.b = ExamConfigBuilder(_sources(), store=MemoryStore())

    def test_clamps_requested_count_to_selection(self) -> None:
        for sid in ("a", "b", "d"):
            self.b.on_source_toggle(sid)
        self.b.on_settings_change({"total_questions": 20})
        self.assertEqual(self.b.settings.total_questions, 20)
        self.b.on_source_toggle("d")
        self.assertEqual(self.b.max_questions, 12)
        self.assertEqual(self.b.settings.total_questions, 12)

    def test_selection_is_replaced_not_mutated(self) -> None:
        before = self.b.selected
        after = self.b.on_source_toggle("a")
        self.assertIsInstance(after, frozenset)
        self.assertEqual(before, frozenset())
        self.assertIsNot(before, after)

    def test_empty_selection_resets_to_floor(self) -> None:
        self.b.on_source_toggle("c")
        self.assertEqual(self.b.settings.total_questions, 3)
        self.b.on_source_toggle("c")
        self.assertEqual(self.b.settings.total_questions, 5)

    def test_growing_selection_raises_count_to_floor(self) -> None:
        self.b.on_source_toggle("c")
        self.assertEqual(self.b.settings.total_questions, 3)
        self.b.on_source_toggle("a")
        self.assertEqual(self.b.max_questions, 11)
        self.assertEqual(self.b.settings.total_questions, 5)
        self.b.advance()
        self.b.advance()
        config = self.b.on_confirm()
        self.assertEqual(config.settings.total_questions, 5)

    def test_topic_select_all_toggles(self) -> None:
        self.b.select_all_in_topic("Math")
        self.assertEqual(self.b.selected, frozenset({"a", "b"}))
        self.b.select_all_in_topic("Math")
        self.assertEqual(self.b.selected, frozenset())

    def test_unknown_source(self) -> None:
        with self.assertRaises(KeyError):
            self.b.on_source_toggle("zzz")


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.b = ExamConfigBuilder(_sources())
        self.b.on_source_toggle("a")
        self.b.on_source_toggle("b")

    def test_values_are_clamped_not_rejected(self) -> None:
        s = self.b.on_settings_change({"total_questions": 99, "passing_score": 95, "time_limit": 0})
        self.assertEqual((s.total_questions, s.passing_score, s.time_limit), (12, 90, 1))
        s = self.b.on_settings_change({"total_questions": 1, "passing_score": 10})
        self.assertEqual((s.total_questions, s.passing_score), (5, 33))

    def test_penalty_snaps(self) -> None:
        self.assertEqual(self.b.on_settings_change({"negative_penalty": 0.3}).negative_penalty, 0.33)
        self.assertEqual(snap_penalty(0.9), 1.0)
        self.assertEqual(snap_penalty(0.0), 0.25)

    def test_unknown_key(self) -> None:
        with self.assertRaises(KeyError):
            self.b.on_settings_change({"difficulty": "hard"})


class NavigationTests(unittest.TestCase):
    def test_sources_guard_and_back(self) -> None:
        b = ExamConfigBuilder(_sources())
        b.on_source_toggle("c")
        self.assertFalse(b.can_advance())
        self.assertEqual(b.advance(), WizardStep.SOURCES)
        b.on_source_toggle("b")
        self.assertEqual(b.advance(), WizardStep.SETTINGS)
        self.assertEqual(b.advance(), WizardStep.REVIEW)
        self.assertFalse(b.can_advance())
        self.assertEqual(b.back(), WizardStep.SETTINGS)
        self.assertEqual(b.back(), WizardStep.SOURCES)
        self.assertIsNone(b.back())
        self.assertTrue(b.exited)

    def test_confirm_only_from_review(self) -> None:
        b = ExamConfigBuilder(_sources())
        with self.assertRaises(Exception):
            b.on_confirm()


class ConfirmTests(unittest.TestCase):
    def _ready(self, store, bus=None):
        b = ExamConfigBuilder(_sources(), store=store, bus=bus, id_factory=lambda: "tmpl-1")
        b.on_source_toggle("a")
        b.on_source_toggle("b")
        b.advance()
        b.on_settings_change({"total_questions": 10, "negative_marking": True, "negative_penalty": 0.5})
        b.advance()
        return b

    def test_emits_configuration(self) -> None:
        b = self._ready(MemoryStore())
        config = b.on_confirm()
        self.assertEqual(config.source_ids, ("a", "b"))
        self.assertEqual(config.settings.total_questions, 10)
        self.assertTrue(config.settings.negative_marking)
        self.assertIsNone(b.saved_template)

    def test_saves_template_with_zero_usage(self) -> None:
        store = MemoryStore()
        b = self._ready(store)
        b.set_template(True, "  Weekly mock ")
        b.on_confirm()
        t = store.get_template("tmpl-1")
        self.assertEqual(t.name, "Weekly mock")
        self.assertEqual(t.used_count, 0)
        self.assertEqual(t.source_ids, ("a", "b"))

    def test_blank_name_saves_nothing(self) -> None:
        store = MemoryStore()
        b = self._ready(store)
        b.set_template(True, "   ")
        b.on_confirm()
        self.assertEqual(store.list_templates(), [])

    def test_template_failure_still_emits_configuration(self) -> None:
        bus = EventBus()
        rec = Recorder(bus)
        b = self._ready(FailingStore(), bus)
        b.set_template(True, "Mock")
        config = b.on_confirm()
        self.assertEqual(config.settings.total_questions, 10)
        self.assertEqual(rec.of("notice"), [{"level": "warning", "message": "Template could not be saved"}])

    def test_check_pool_enforced(self) -> None:
        with self.assertRaises(InvalidConfiguration):
            ExamSettings(total_questions=4).check_pool(10)
        with self.assertRaises(InvalidConfiguration):
            ExamSettings(total_questions=11).check_pool(10)


class TemplateOrderTests(unittest.TestCase):
    def test_most_used_first(self) -> None:
        s = ExamSettings()
        items = [
            ExamTemplate(id="x", name="x", source_ids=("a",), settings=s, used_count=1),
            ExamTemplate(id="y", name="y", source_ids=("a",), settings=s, used_count=5),
        ]
        self.assertEqual([t.id for t in templates_by_usage(items)], ["y", "x"])


if __name__ == "__main__":
    unittest.main()
