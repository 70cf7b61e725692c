# -----------------------------
# Exceptions
# -----------------------------
class IndexerError(Exception):
    """Base class for every error raised by the indexing service."""


class ConfigurationError(IndexerError):
    """Invalid configuration, rejected before any work is scheduled."""


class RangeResolutionError(IndexerError):
    """No height range can be determined (store or every reader unreachable)."""


class NoPreviousHeight(IndexerError):
    """The store has not recorded any height yet."""


class ReaderError(IndexerError):
    """Transport level failure talking to a chain reader."""


class ReaderRequestError(ReaderError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ReaderRateLimitError(ReaderError):
    pass


class RetryExhausted(IndexerError):
    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
