from .schema import (
    ATTEMPT_DTYPES,
    MODES,
    POOLS,
    Attempt,
    DailyAggregate,
    ExamConfiguration,
    ExamSettings,
    ExamTemplate,
    QuestionRecord,
    QuestionStats,
    SourceInfo,
)
from .store import (
    init_store,
    validate_records,
    append_attempts,
    load_all,
    frame_to_attempts,
    query_mode,
    export_ndjson,
)
from .library import ContentStore, FileStore, MemoryStore, load_library

__all__ = [
    "ATTEMPT_DTYPES",
    "MODES",
    "POOLS",
    "Attempt",
    "DailyAggregate",
    "ExamConfiguration",
    "ExamSettings",
    "ExamTemplate",
    "QuestionRecord",
    "QuestionStats",
    "SourceInfo",
    "init_store",
    "validate_records",
    "append_attempts",
    "load_all",
    "frame_to_attempts",
    "query_mode",
    "export_ndjson",
    "ContentStore",
    "FileStore",
    "MemoryStore",
    "load_library",
]
