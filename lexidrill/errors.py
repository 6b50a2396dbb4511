from __future__ import annotations

"""Exception taxonomy shared by the engine and the store collaborators."""


class LexidrillError(Exception):
    """Base class for engine errors."""


class PoolTooSmall(LexidrillError):
    """Fewer records than the mode requires."""

    def __init__(self, size: int, minimum: int, mode: str = "quiz") -> None:
        super().__init__(f"Not enough questions for {mode} (have {size}, min {minimum})")
        self.size = size
        self.minimum = minimum
        self.mode = mode


class LoadFailure(LexidrillError):
    """Content or attempt store could not be read."""


class AlreadyExistsError(LexidrillError):
    """Create refused because the record key is already taken."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Record already exists: {key}")
        self.key = key


class PersistenceError(LexidrillError):
    """A store write failed."""


class InvalidConfiguration(LexidrillError):
    """Exam settings violate an invariant against the selected pool."""
