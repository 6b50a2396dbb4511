from __future__ import annotations

"""Content/attempt store contract and its in-memory and file-backed implementations.

The engine only talks to the ``ContentStore`` protocol; storage itself is an
external collaborator. ``MemoryStore`` backs tests and embedding, ``FileStore``
backs the CLI: a YAML content library, a Parquet attempt log and a JSON state
document for templates, daily aggregates and per-question stats.
"""

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol

import yaml
from pydantic import ValidationError

from ..errors import AlreadyExistsError, LoadFailure, PersistenceError
from .schema import Attempt, DailyAggregate, ExamTemplate, QuestionRecord, QuestionStats, SourceInfo
from .store import append_attempts, frame_to_attempts, init_store, load_all, validate_records

QuestionFilter = Optional[Callable[[QuestionRecord], bool]]


class ContentStore(Protocol):
    def list_questions(self, filter: QuestionFilter = None) -> List[QuestionRecord]: ...
    def get_question_sets_by_container(self, container_id: str) -> List[QuestionRecord]: ...
    def list_sources(self) -> List[SourceInfo]: ...
    def create_attempt(self, attempt: Attempt) -> None: ...
    def list_attempts(self) -> List[Attempt]: ...
    def get_attempt(self, attempt_id: str) -> Optional[Attempt]: ...
    def create_template(self, template: ExamTemplate) -> None: ...
    def list_templates(self) -> List[ExamTemplate]: ...
    def get_template(self, template_id: str) -> Optional[ExamTemplate]: ...
    def update_template(self, template_id: str, partial: Mapping[str, Any]) -> ExamTemplate: ...
    def get_daily_aggregate(self, date_key: str) -> Optional[DailyAggregate]: ...
    def create_daily_aggregate(self, aggregate: DailyAggregate) -> None: ...
    def update_daily_aggregate(self, date_key: str, partial: Mapping[str, Any]) -> DailyAggregate: ...
    def get_question_stats(self, stats_id: str) -> Optional[QuestionStats]: ...
    def put_question_stats(self, stats: QuestionStats) -> None: ...
    def list_question_stats(self) -> List[QuestionStats]: ...


class MemoryStore:
    def __init__(
        self,
        questions: Iterable[QuestionRecord] = (),
        sources: Iterable[SourceInfo] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._questions: Dict[str, QuestionRecord] = {}
        self._sources: Dict[str, SourceInfo] = {}
        self._attempts: Dict[str, Attempt] = {}
        self._templates: Dict[str, ExamTemplate] = {}
        self._daily: Dict[str, DailyAggregate] = {}
        self._stats: Dict[str, QuestionStats] = {}
        self.add_questions(questions)
        for s in sources:
            self._sources[s.id] = s

    # Content
    def add_questions(self, records: Iterable[QuestionRecord]) -> None:
        with self._lock:
            for r in records:
                self._questions[r.id] = r

    def list_questions(self, filter: QuestionFilter = None) -> List[QuestionRecord]:
        with self._lock:
            items = list(self._questions.values())
        if filter is None:
            return items
        return [r for r in items if filter(r)]

    def get_question_sets_by_container(self, container_id: str) -> List[QuestionRecord]:
        with self._lock:
            return [r for r in self._questions.values() if r.container_id == container_id]

    def list_sources(self) -> List[SourceInfo]:
        with self._lock:
            counts: Dict[str, int] = {}
            for r in self._questions.values():
                if r.container_id is not None:
                    counts[r.container_id] = counts.get(r.container_id, 0) + 1
            out = []
            for sid, info in self._sources.items():
                out.append(info.model_copy(update={"count": counts.pop(sid, 0)}))
            # containers that were never registered still show up
            for sid, n in counts.items():
                out.append(SourceInfo(id=sid, name=sid, count=n))
            return out

    # Attempts
    def create_attempt(self, attempt: Attempt) -> None:
        with self._lock:
            if attempt.id in self._attempts:
                raise AlreadyExistsError(attempt.id)
            self._attempts[attempt.id] = attempt

    def list_attempts(self) -> List[Attempt]:
        with self._lock:
            return list(self._attempts.values())

    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        with self._lock:
            return self._attempts.get(attempt_id)

    # Templates
    def create_template(self, template: ExamTemplate) -> None:
        with self._lock:
            if template.id in self._templates:
                raise AlreadyExistsError(template.id)
            self._templates[template.id] = template

    def list_templates(self) -> List[ExamTemplate]:
        with self._lock:
            return list(self._templates.values())

    def get_template(self, template_id: str) -> Optional[ExamTemplate]:
        with self._lock:
            return self._templates.get(template_id)

    def update_template(self, template_id: str, partial: Mapping[str, Any]) -> ExamTemplate:
        with self._lock:
            current = self._templates.get(template_id)
            if current is None:
                raise PersistenceError(f"Unknown template: {template_id}")
            updated = _revalidate(current, partial)
            self._templates[template_id] = updated
            return updated

    # Daily aggregates
    def get_daily_aggregate(self, date_key: str) -> Optional[DailyAggregate]:
        with self._lock:
            return self._daily.get(date_key)

    def create_daily_aggregate(self, aggregate: DailyAggregate) -> None:
        with self._lock:
            if aggregate.date_key in self._daily:
                raise AlreadyExistsError(aggregate.date_key)
            self._daily[aggregate.date_key] = aggregate

    def update_daily_aggregate(self, date_key: str, partial: Mapping[str, Any]) -> DailyAggregate:
        with self._lock:
            current = self._daily.get(date_key)
            if current is None:
                raise PersistenceError(f"Unknown daily aggregate: {date_key}")
            updated = _revalidate(current, partial)
            self._daily[date_key] = updated
            return updated

    # Per-question stats
    def get_question_stats(self, stats_id: str) -> Optional[QuestionStats]:
        with self._lock:
            return self._stats.get(stats_id)

    def put_question_stats(self, stats: QuestionStats) -> None:
        with self._lock:
            self._stats[stats.id] = stats

    def list_question_stats(self) -> List[QuestionStats]:
        with self._lock:
            return list(self._stats.values())


def _revalidate(model, partial: Mapping[str, Any]):
    try:
        return type(model).model_validate({**model.model_dump(), **dict(partial)})
    except ValidationError as exc:
        raise PersistenceError(str(exc)) from exc


# --- File-backed store ---

STATE_FILE = "state.json"
STATE_SCHEMA = 1


def load_library(path: Path) -> tuple[list[QuestionRecord], list[SourceInfo]]:
    """Parse a YAML content library into records and MCQ set descriptors.

    Layout::

        words:
          - {id, word, meaning, examples?, confidence_level?, favorite?}
        sets:
          - {id, name, topic?, mcqs: [{id, question, options, answer, explanation?}]}
    """
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise LoadFailure(f"Cannot read content library {path}: {exc}") from exc

    records: list[QuestionRecord] = []
    sources: list[SourceInfo] = []
    try:
        for w in data.get("words") or []:
            records.append(
                QuestionRecord(
                    id=str(w["id"]),
                    prompt=str(w["word"]),
                    answer=str(w["meaning"]),
                    examples=tuple(str(e) for e in (w.get("examples") or [])),
                    source=w.get("source"),
                    confidence_level=int(w.get("confidence_level", 0)),
                    is_favorite=bool(w.get("favorite", False)),
                )
            )
        for s in data.get("sets") or []:
            sid = str(s["id"])
            items = [
                QuestionRecord(
                    id=str(q["id"]),
                    prompt=str(q["question"]),
                    answer=str(q["answer"]),
                    options=tuple(str(o) for o in q.get("options") or []),
                    explanation=q.get("explanation"),
                    source=q.get("source"),
                    container_id=sid,
                )
                for q in s.get("mcqs") or []
            ]
            # Questions without options cannot be played as MCQs.
            playable = sum(1 for r in items if r.options)
            sources.append(SourceInfo(id=sid, name=str(s.get("name", sid)), topic=str(s.get("topic", "General")), count=playable))
            records.extend(items)
    except (KeyError, TypeError, ValidationError) as exc:
        raise LoadFailure(f"Malformed content library {path}: {exc}") from exc
    return records, sources


class FileStore(MemoryStore):
    """MemoryStore mirrored to disk under ``data_dir``."""

    def __init__(self, library_path: Path, data_dir: Path) -> None:
        records, sources = load_library(Path(library_path))
        super().__init__(records, sources)
        self.data_dir = Path(data_dir)
        try:
            init_store(self.data_dir)
            for a in frame_to_attempts(load_all(self.data_dir)):
                self._attempts[a.id] = a
        except (OSError, ValueError) as exc:
            raise LoadFailure(f"Cannot read attempt log in {self.data_dir}: {exc}") from exc
        self._load_state()

    def _state_path(self) -> Path:
        return self.data_dir / STATE_FILE

    def _load_state(self) -> None:
        p = self._state_path()
        if not p.exists():
            return
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise LoadFailure(f"Cannot read state file {p}: {exc}") from exc
        if not isinstance(data, dict) or int(data.get("schema", 0)) != STATE_SCHEMA:
            return
        for t in data.get("templates", []):
            tmpl = ExamTemplate.model_validate(t)
            self._templates[tmpl.id] = tmpl
        for d in data.get("daily", []):
            agg = DailyAggregate.model_validate(d)
            self._daily[agg.date_key] = agg
        for s in data.get("stats", []):
            st = QuestionStats.model_validate(s)
            self._stats[st.id] = st

    def _save_state(self) -> None:
        with self._lock:
            data = {
                "schema": STATE_SCHEMA,
                "templates": [t.model_dump(mode="json") for t in self._templates.values()],
                "daily": [d.model_dump(mode="json") for d in self._daily.values()],
                "stats": [s.model_dump(mode="json") for s in self._stats.values()],
            }
        try:
            self._state_path().write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot write state file: {exc}") from exc

    def create_attempt(self, attempt: Attempt) -> None:
        super().create_attempt(attempt)
        try:
            append_attempts(validate_records([attempt]), self.data_dir)
        except (OSError, ValueError) as exc:
            with self._lock:
                self._attempts.pop(attempt.id, None)
            raise PersistenceError(f"Cannot append attempt: {exc}") from exc

    def _persist(self, table: Dict[str, Any], key: str, mutate: Callable[..., Any], *args: Any) -> Any:
        """Apply ``mutate`` and write the state file; undo the entry if the write fails."""
        with self._lock:
            previous = table.get(key)
        out = mutate(*args)
        try:
            self._save_state()
        except PersistenceError:
            with self._lock:
                if previous is None:
                    table.pop(key, None)
                else:
                    table[key] = previous
            raise
        return out

    def create_template(self, template: ExamTemplate) -> None:
        self._persist(self._templates, template.id, super().create_template, template)

    def update_template(self, template_id: str, partial: Mapping[str, Any]) -> ExamTemplate:
        return self._persist(self._templates, template_id, super().update_template, template_id, partial)

    def create_daily_aggregate(self, aggregate: DailyAggregate) -> None:
        self._persist(self._daily, aggregate.date_key, super().create_daily_aggregate, aggregate)

    def update_daily_aggregate(self, date_key: str, partial: Mapping[str, Any]) -> DailyAggregate:
        return self._persist(self._daily, date_key, super().update_daily_aggregate, date_key, partial)

    def put_question_stats(self, stats: QuestionStats) -> None:
        self._persist(self._stats, stats.id, super().put_question_stats, stats)
