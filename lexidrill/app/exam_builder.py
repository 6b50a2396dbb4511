from __future__ import annotations

"""Exam configuration wizard: Sources -> Settings -> Review.

The builder owns the selection and the draft settings; every action replaces
them with new immutable values. Settings edits are clamped or snapped into
range instead of rejected, so the draft is always a valid ExamSettings.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from ..config.config import ALLOWED_PENALTIES, PASSING_SCORE_RANGE
from ..errors import LexidrillError
from ..storage.library import ContentStore
from ..storage.schema import MIN_EXAM_QUESTIONS, ExamConfiguration, ExamSettings, ExamTemplate, SourceInfo
from .events import EventBus
from .explain import trace, warn


class WizardStep(str, Enum):
    SOURCES = "sources"
    SETTINGS = "settings"
    REVIEW = "review"


_ORDER = (WizardStep.SOURCES, WizardStep.SETTINGS, WizardStep.REVIEW)


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def snap_penalty(value: float) -> float:
    """Nearest allowed penalty; ties go to the smaller value."""
    return min(ALLOWED_PENALTIES, key=lambda p: (abs(p - float(value)), p))


class ExamConfigBuilder:
    def __init__(
        self,
        sources: Sequence[SourceInfo],
        *,
        store: Optional[ContentStore] = None,
        bus: Optional[EventBus] = None,
        defaults: Optional[ExamSettings] = None,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self.sources: Dict[str, SourceInfo] = {s.id: s for s in sources}
        self.store = store
        self.bus = bus or EventBus()
        self.id_factory = id_factory
        self.step = WizardStep.SOURCES
        self.selected: frozenset = frozenset()
        self.settings = defaults or ExamSettings()
        self.save_as_template = False
        self.template_name = ""
        self.exited = False
        self.saved_template: Optional[ExamTemplate] = None

    # ----- sources -----

    @property
    def max_questions(self) -> int:
        return sum(self.sources[sid].count for sid in self.selected if sid in self.sources)

    @property
    def topics(self) -> Dict[str, List[SourceInfo]]:
        out: Dict[str, List[SourceInfo]] = {}
        for s in self.sources.values():
            out.setdefault(s.topic, []).append(s)
        return out

    def on_source_toggle(self, source_id: str) -> frozenset:
        if source_id not in self.sources:
            raise KeyError(f"Unknown source: {source_id}")
        if source_id in self.selected:
            self._set_selection(self.selected - {source_id})
        else:
            self._set_selection(self.selected | {source_id})
        return self.selected

    def select_all_in_topic(self, topic: str) -> frozenset:
        """Select every set of ``topic``; deselect them all when already selected."""
        ids = frozenset(s.id for s in self.topics.get(topic, []))
        if not ids:
            return self.selected
        if ids <= self.selected:
            self._set_selection(self.selected - ids)
        else:
            self._set_selection(self.selected | ids)
        return self.selected

    def _set_selection(self, selection: frozenset) -> None:
        self.selected = frozenset(selection)
        hi = self.max_questions
        count = self.settings.total_questions
        if hi == 0:
            count = MIN_EXAM_QUESTIONS
        else:
            count = _clamp(count, min(MIN_EXAM_QUESTIONS, hi), hi)
        if count != self.settings.total_questions:
            self.settings = self.settings.model_copy(update={"total_questions": count})
        trace("exam_sources", {"selected": sorted(self.selected), "max": hi, "count": count})

    # ----- settings -----

    def on_settings_change(self, partial: Mapping[str, Any]) -> ExamSettings:
        current = self.settings.model_dump()
        for key, value in partial.items():
            if key not in current:
                raise KeyError(f"Unknown exam setting: {key}")
            current[key] = value

        hi = self.max_questions
        lo = min(MIN_EXAM_QUESTIONS, hi) if hi else MIN_EXAM_QUESTIONS
        current["total_questions"] = _clamp(int(current["total_questions"]), lo, max(lo, hi))
        p_lo, p_hi = PASSING_SCORE_RANGE
        current["passing_score"] = _clamp(int(current["passing_score"]), p_lo, p_hi)
        current["time_limit"] = max(1, int(current["time_limit"]))
        current["negative_penalty"] = snap_penalty(current["negative_penalty"])
        for flag in ("negative_marking", "shuffle_questions", "shuffle_options"):
            current[flag] = bool(current[flag])
        self.settings = ExamSettings.model_validate(current)
        return self.settings

    def set_template(self, enabled: bool, name: str = "") -> None:
        self.save_as_template = bool(enabled)
        self.template_name = name

    # ----- navigation -----

    def can_advance(self) -> bool:
        if self.step == WizardStep.SOURCES:
            return self.max_questions >= MIN_EXAM_QUESTIONS
        return self.step == WizardStep.SETTINGS

    def advance(self) -> WizardStep:
        if not self.can_advance():
            return self.step
        self.step = _ORDER[_ORDER.index(self.step) + 1]
        return self.step

    def back(self) -> Optional[WizardStep]:
        """One step back; from Sources the wizard exits and None is returned."""
        if self.step == WizardStep.SOURCES:
            self.exited = True
            return None
        self.step = _ORDER[_ORDER.index(self.step) - 1]
        return self.step

    # ----- confirm -----

    def on_confirm(self) -> ExamConfiguration:
        """Emit the configuration; persist a template when requested.

        A failed template write is reported as a warning notice and does not
        block the exam.
        """
        if self.step != WizardStep.REVIEW:
            raise LexidrillError(f"Cannot confirm from step {self.step.value}")
        source_ids = tuple(sorted(self.selected))
        self.settings.check_pool(self.max_questions)

        self.saved_template = None
        name = self.template_name.strip()
        if self.save_as_template and name:
            template = ExamTemplate(id=self.id_factory(), name=name, source_ids=source_ids, settings=self.settings, used_count=0)
            try:
                if self.store is None:
                    raise LexidrillError("no store configured")
                self.store.create_template(template)
                self.saved_template = template
                trace("template_saved", {"id": template.id, "name": name})
            except (LexidrillError, OSError) as exc:
                warn(f"template not saved: {exc}")
                self.bus.notify("warning", "Template could not be saved")

        config = ExamConfiguration(source_ids=source_ids, settings=self.settings)
        trace("exam_configured", {"sources": list(source_ids), "questions": self.settings.total_questions})
        return config


def templates_by_usage(templates: Sequence[ExamTemplate]) -> List[ExamTemplate]:
    """Most used first, newest first among equals."""
    return sorted(templates, key=lambda t: (-t.used_count, -t.created_at.timestamp()))
