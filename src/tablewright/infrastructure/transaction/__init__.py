"""Transaction coordination and implicit-commit screening."""

from .coordinator import (
    BatchResult,
    IncrementResult,
    TransactionCoordinator,
    TransactionState,
    normalize_statements,
)
from .implicit_commit import (
    IMPLICIT_COMMIT_RULES,
    ImplicitCommitCheck,
    ImplicitCommitRule,
    classify_statement,
    detect_implicit_commit,
    split_statements,
    strip_leading_comments,
)

__all__ = [
    "BatchResult",
    "IncrementResult",
    "TransactionCoordinator",
    "TransactionState",
    "normalize_statements",
    "IMPLICIT_COMMIT_RULES",
    "ImplicitCommitCheck",
    "ImplicitCommitRule",
    "classify_statement",
    "detect_implicit_commit",
    "split_statements",
    "strip_leading_comments",
]
