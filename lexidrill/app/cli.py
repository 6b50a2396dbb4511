from __future__ import annotations

"""CLI for lexidrill using SessionManager, ExamConfigBuilder and DrillRegistry."""

import argparse
import sys
import time
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .. import __version__
from ..config.config import load_config, validate_config
from ..errors import LexidrillError
from ..results.analyzer import ResultAnalyzer
from ..stats.stats import attempt_stats, format_history, format_summary, history_stats
from ..storage.library import FileStore
from ..storage.schema import ExamSettings
from ..util.randomness import make_rng, seed_if_needed

from .drill_registry import get_drill, list_drills
from .events import EventBus
from .exam_builder import ExamConfigBuilder, WizardStep, templates_by_usage
from .session_manager import SessionManager, SessionRequest, SessionState


class DeferredScheduler:
    """Scheduler for the blocking terminal loop: jobs run when the loop polls."""

    class _Job:
        def __init__(self, due: float, fn: Callable[[], None]) -> None:
            self.due = due
            self.fn = fn
            self.cancelled = False

        def cancel(self) -> None:
            self.cancelled = True

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self.jobs: List[DeferredScheduler._Job] = []

    def __call__(self, delay_s: float, fn: Callable[[], None]) -> "DeferredScheduler._Job":
        job = self._Job(self.clock() + delay_s, fn)
        self.jobs.append(job)
        return job

    def next_due(self) -> Optional[float]:
        live = [j.due for j in self.jobs if not j.cancelled]
        return min(live) if live else None

    def run_due(self, *, wait: bool = False) -> None:
        if wait:
            due = self.next_due()
            if due is not None:
                time.sleep(max(0.0, due - self.clock()))
        now = self.clock()
        for job in list(self.jobs):
            if job.cancelled or job.due > now:
                continue
            self.jobs.remove(job)
            job.fn()
        self.jobs = [j for j in self.jobs if not j.cancelled]


def _build_ui() -> Dict[str, Any]:
    def ask(prompt: str) -> str:
        return input(prompt)

    def inform(msg: str) -> None:
        print(msg)

    def confirm(prompt: str) -> bool:
        return input(f"{prompt} [y/N] ").strip().lower() in ("y", "yes")

    return {"ask": ask, "inform": inform, "confirm": confirm}


def _open_store(cfg: Dict[str, Any], library: Optional[str]) -> FileStore:
    p = cfg["persistence"]
    return FileStore(Path(library or p["library_path"]), Path(p["data_dir"]))


def _wire_notices(bus: EventBus, ui: Dict[str, Any]) -> None:
    bus.subscribe("notice", lambda n: ui["inform"](f"[{n['level'].upper()}] {n['message']}"))


def _show_question(sm: SessionManager, ui: Dict[str, Any]) -> None:
    q = sm.current
    n = sm.progress.index + 1
    header = f"\nQ{n}/{len(sm.questions)}"
    remaining = sm.remaining_s()
    if remaining is not None:
        header += f"  [{int(remaining) // 60}:{int(remaining) % 60:02d} left]"
    if q.id in sm.progress.marked:
        header += "  (marked)"
    ui["inform"](header)
    ui["inform"](q.prompt)
    chosen = sm.answer_for(q.id)
    for i, opt in enumerate(q.options, start=1):
        mark = "*" if opt == chosen else " "
        ui["inform"](f" {mark}{i}. {opt}")


def _help_line(sm: SessionManager) -> str:
    if sm.meta.auto_advance:
        return "Answer, or 'q' to quit."
    parts = ["number to answer", "n/p next/prev", "m mark", "f finish", "q quit"]
    if sm.meta.supports_confidence:
        parts.insert(2, "s/g sure/guess")
    return ", ".join(parts)


def run_session(sm: SessionManager, scheduler: DeferredScheduler, ui: Dict[str, Any]) -> Optional[Any]:
    """Drive a started session from the terminal until it completes or is cancelled."""
    ui["inform"](_help_line(sm))
    while sm.state in (SessionState.IN_PROGRESS, SessionState.AWAITING_ADVANCE):
        scheduler.run_due(wait=sm.state == SessionState.AWAITING_ADVANCE)
        if sm.check_time() is not None or sm.state != SessionState.IN_PROGRESS:
            continue
        q = sm.current
        _show_question(sm, ui)
        raw = ui["ask"]("> ").strip()
        sm.check_time()
        if sm.state != SessionState.IN_PROGRESS:
            continue
        cmd = raw.lower()
        if cmd == "q":
            if ui["confirm"]("Quit this session? Progress will be lost."):
                sm.on_cancel(confirmed=True)
            continue
        if not sm.meta.auto_advance:
            if cmd == "n":
                if not sm.next():
                    ui["inform"]("Last question. Use 'f' to finish.")
                continue
            if cmd == "p":
                sm.previous()
                continue
            if cmd == "m":
                sm.toggle_mark()
                continue
            if cmd == "f":
                unanswered = len(sm.questions) - len(sm.progress.answers)
                if unanswered == 0 or ui["confirm"](f"{unanswered} unanswered. Submit anyway?"):
                    sm.finish()
                continue
            if cmd in ("s", "g") and sm.meta.supports_confidence:
                sm.set_confidence("sure" if cmd == "s" else "guess")
                continue
        if q.kind == "choice":
            try:
                value = q.options[int(raw) - 1]
            except (ValueError, IndexError):
                ui["inform"]("Pick one of the listed numbers.")
                continue
        else:
            value = raw
        ok = sm.on_answer(value)
        if ok is None:
            ui["inform"]("Already answered.")
            continue
        if sm.meta.id != "exam":
            ui["inform"]("Correct!" if ok else f"Wrong. Answer: {q.expected}")
        if sm.state == SessionState.AWAITING_ADVANCE:
            scheduler.run_due(wait=True)
    return sm.attempt


def _report(sm: SessionManager, ui: Dict[str, Any]) -> None:
    if sm.state == SessionState.CANCELLED:
        ui["inform"]("Session cancelled.")
        return
    if sm.attempt is None:
        return
    records = [q.record for q in sm.questions]
    analyzer = ResultAnalyzer(sm.attempt, records)
    split = analyzer.confidence_split() if sm.meta.supports_confidence else None
    ui["inform"]("\nSession Summary:")
    ui["inform"](format_summary(attempt_stats(sm.attempt, split)))
    wrong = analyzer.review("wrong")
    if wrong:
        ui["inform"]("\nReview:")
        for item in wrong:
            ui["inform"](f"- {item.record.prompt}\n  yours: {item.chosen}  answer: {item.expected}")
            if item.record.explanation:
                ui["inform"](f"  {item.record.explanation}")


def _int_or(value: str, current: int) -> int:
    try:
        return int(value)
    except ValueError:
        return current


def _run_wizard(builder: ExamConfigBuilder, cfg: Dict[str, Any], ui: Dict[str, Any]):
    """Interactive Sources -> Settings -> Review. Returns a configuration or None."""
    sources = list(builder.sources.values())
    while not builder.exited:
        if builder.step == WizardStep.SOURCES:
            ui["inform"]("\nSelect sources (number toggles, 't <topic>' toggles a topic, 'next', 'back'):")
            for i, s in enumerate(sources, start=1):
                mark = "x" if s.id in builder.selected else " "
                ui["inform"](f" [{mark}] {i}. {s.name} ({s.topic}, {s.count} questions)")
            ui["inform"](f"Selected: {builder.max_questions} questions")
            raw = ui["ask"]("> ").strip()
            if raw == "next":
                if builder.advance() == WizardStep.SOURCES:
                    ui["inform"]("Select at least 5 questions.")
            elif raw == "back":
                builder.back()
            elif raw.startswith("t "):
                builder.select_all_in_topic(raw[2:].strip())
            elif raw.isdigit() and 1 <= int(raw) <= len(sources):
                builder.on_source_toggle(sources[int(raw) - 1].id)
        elif builder.step == WizardStep.SETTINGS:
            s = builder.settings
            limits = cfg["exam"]["time_limits"]
            count = _int_or(ui["ask"](f"Questions (5-{builder.max_questions}) [{s.total_questions}]: "), s.total_questions)
            minutes = _int_or(ui["ask"](f"Time limit {limits} [{s.time_limit}]: "), s.time_limit)
            neg = ui["ask"](f"Negative marking y/n [{'y' if s.negative_marking else 'n'}]: ").strip().lower()
            update: Dict[str, Any] = {"total_questions": count, "time_limit": minutes}
            if neg in ("y", "n"):
                update["negative_marking"] = neg == "y"
            if update.get("negative_marking", s.negative_marking):
                pen = ui["ask"](f"Penalty per wrong answer [{s.negative_penalty}]: ").strip()
                if pen:
                    try:
                        update["negative_penalty"] = float(pen)
                    except ValueError:
                        pass
            update["passing_score"] = _int_or(ui["ask"](f"Passing score % [{s.passing_score}]: "), s.passing_score)
            builder.on_settings_change(update)
            name = ui["ask"]("Save as template (name, blank to skip): ").strip()
            builder.set_template(bool(name), name)
            builder.advance()
        else:
            s = builder.settings
            ui["inform"](
                f"\n{len(builder.selected)} sources, {s.total_questions} questions, {s.time_limit} min, "
                f"pass {s.passing_score}%, negative {'-' + format(s.negative_penalty, 'g') if s.negative_marking else 'off'}"
            )
            raw = ui["ask"]("Start exam? (y / back) ").strip().lower()
            if raw in ("y", "yes"):
                return builder.on_confirm()
            builder.back()
    return None


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="lexidrill")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--library", default=None, help="Content library YAML (overrides config)")
    p.add_argument("--explain", action="store_true")
    sub = p.add_subparsers(dest="cmd")

    sub.add_parser("list-modes")

    qp = sub.add_parser("quiz", help="Vocabulary quiz, context or spelling session")
    qp.add_argument("--mode", choices=["quiz", "context", "spelling"], default="quiz")
    qp.add_argument("--pool", choices=["all", "mastered", "learning", "favorites"], default="all")
    qp.add_argument("--questions", type=int, default=None)

    pp = sub.add_parser("practice", help="Self-paced MCQ practice over one or more sets")
    pp.add_argument("sets", nargs="+")
    pp.add_argument("--shuffle", action="store_true")

    ep = sub.add_parser("exam", help="Configure and take a timed exam")
    ep.add_argument("--template", default=None, help="Start from a saved template id")

    sub.add_parser("templates", help="List saved exam templates")

    hp = sub.add_parser("history", help="Attempt history and today's progress")
    hp.add_argument("--export", default=None, help="Write the attempt log as NDJSON")
    hp.add_argument("--plot", default=None, help="Save an accuracy trend plot (PNG)")

    args = p.parse_args(argv)

    if args.version:
        print(f"lexidrill {__version__}")
        return 0
    if args.cmd is None:
        p.print_help()
        return 2

    if args.cmd == "list-modes":
        for m in list_drills():
            print(f"{m.id}: {m.name} - {m.description}")
        return 0

    seed = seed_if_needed()
    if args.explain:
        from .explain import enable as explain_enable
        explain_enable(True)
    cfg = validate_config(load_config(args.config))
    try:
        store = _open_store(cfg, args.library)
    except LexidrillError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    ui = _build_ui()
    bus = EventBus()
    _wire_notices(bus, ui)

    if args.cmd == "templates":
        items = templates_by_usage(store.list_templates())
        if not items:
            print("No templates saved.")
        for t in items:
            s = t.settings
            print(f"{t.id}: {t.name} | {len(t.source_ids)} sources, {s.total_questions} q, {s.time_limit} min | used {t.used_count}x")
        return 0

    if args.cmd == "history":
        from ..analytics import (
            AnalyticsConfig,
            difficult_questions,
            ewma_by_attempt,
            load_and_prepare,
            plot_trend,
            weekly_activity,
        )
        from ..storage.store import export_ndjson

        a = cfg["analytics"]
        acfg = AnalyticsConfig(
            smoothing_span=int(a["smoothing_span"]),
            weekly_days=int(a["weekly_days"]),
            difficult_min_answers=int(a["difficult_min_answers"]),
        )
        today = date.today()
        print(format_history(history_stats(store.list_attempts()), store.get_daily_aggregate(today.isoformat())))
        df = load_and_prepare(store.data_dir, acfg)
        week = weekly_activity(df, today=today, days=acfg.weekly_days)
        print("Last days: " + "  ".join(f"{d:%a} {n}" for d, n in zip(week["day"], week["count"])))
        hard = difficult_questions(store.list_question_stats(), acfg)
        if not hard.empty:
            print("Difficult questions:")
            for row in hard.itertuples(index=False):
                print(f"- {row.question_id} ({row.set_id}): wrong {row.wrong_count}, accuracy {row.accuracy}%")
        if args.export:
            export_ndjson(df.drop(columns=["day"]), Path(args.export))
            print(f"Exported {len(df)} attempts to {args.export}")
        if args.plot:
            smoothed = ewma_by_attempt(df, "acc", acfg.smoothing_span, ["mode"]) if not df.empty else df
            plot_trend(smoothed, save_path=args.plot)
            print(f"Saved plot to {args.plot}")
        return 0

    if args.cmd == "quiz":
        count = args.questions if args.questions is not None else int(cfg["session"]["questions"])
        request = SessionRequest(mode=args.mode, pool=args.pool, question_count=count)
    elif args.cmd == "practice":
        settings = ExamSettings(total_questions=1, shuffle_questions=args.shuffle, shuffle_options=args.shuffle)
        request = SessionRequest(mode="practice", pool="custom", source_ids=tuple(args.sets), settings=settings)
    else:
        if args.template:
            template = store.get_template(args.template)
            if template is None:
                print(f"ERROR: Unknown template: {args.template}", file=sys.stderr)
                return 1
            config = template.to_configuration()
        else:
            e = cfg["exam"]
            defaults = ExamSettings(
                total_questions=e["total_questions"],
                time_limit=e["time_limit"],
                negative_marking=e["negative_marking"],
                negative_penalty=e["negative_penalty"],
                passing_score=e["passing_score"],
                shuffle_questions=e["shuffle_questions"],
                shuffle_options=e["shuffle_options"],
            )
            builder = ExamConfigBuilder(store.list_sources(), store=store, bus=bus, defaults=defaults)
            config = _run_wizard(builder, cfg, ui)
            if config is None:
                return 0
        request = SessionRequest.from_exam(config)

    scheduler = DeferredScheduler()
    sm = SessionManager(store, request, cfg=cfg, bus=bus, rng=make_rng(seed), scheduler=scheduler)
    if not sm.start():
        return 1
    print(f"Starting {get_drill(request.mode).name} ({len(sm.questions)} questions).")
    run_session(sm, scheduler, ui)
    _report(sm, ui)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
