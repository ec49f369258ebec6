"""Transaction error types."""


class TransactionError(Exception):
    """Base class for errors raised inside a transaction."""


class ResolutionError(TransactionError, LookupError):
    """A required entity could not be found. Aborts the transaction."""


class ConditionEvaluationError(TransactionError):
    """A plant condition could not be computed. Callers recover from it."""
