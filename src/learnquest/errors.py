"""Exception types raised across the engine boundary."""


class LearnQuestError(Exception):
    """Base class for learnquest errors."""


class PersistenceError(LearnQuestError):
    """A key-value store read or write failed.

    Engine operations catch this and report a failed result; the in-memory
    state is not committed.
    """

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class CatalogError(LearnQuestError):
    """The achievement/badge/mission catalog is missing or malformed."""
