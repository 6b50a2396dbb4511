"""lexidrill package initialization.

Self-study practice and exam engine: pool selection, option generation,
session state machine, exam configuration wizard, scoring and result analysis.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
