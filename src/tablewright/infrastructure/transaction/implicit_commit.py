"""
Implicit-commit detection for MySQL statements.

MySQL ends any open transaction, as if COMMIT had been issued, before it runs
certain statements (DDL, account management, locking, bulk loads, some
administrative and replication statements). Running one of them inside a batch
silently breaks the batch's all-or-nothing guarantee, so the transaction
coordinator screens statement text with ``detect_implicit_commit`` first.

Matching is case-insensitive and anchored at the start of each ``;``-separated
sub-statement, after leading comments are removed.

Example:
    >>> detect_implicit_commit("CREATE TABLE foo (id INT);").category
    'DDL'
    >>> detect_implicit_commit("SELECT 1;").is_safe
    True
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

CATEGORY_DDL = "DDL"
CATEGORY_USER_MANAGEMENT = "user management"
CATEGORY_TRANSACTION_CONTROL = "transaction control or locking"
CATEGORY_DATA_LOADING = "data loading"
CATEGORY_ADMINISTRATIVE = "administrative"
CATEGORY_REPLICATION = "replication control"


@dataclass(frozen=True)
class ImplicitCommitRule:
    """One category of statements that implicitly commit."""

    category: str
    pattern: Pattern[str]

    def matches(self, statement: str) -> bool:
        return self.pattern.match(statement) is not None


def _rule(category: str, *alternatives: str) -> ImplicitCommitRule:
    pattern = re.compile(
        r"^\s*(?:" + "|".join(alternatives) + r")\b", re.IGNORECASE
    )
    return ImplicitCommitRule(category, pattern)


# Modifiers allowed between CREATE/ALTER/DROP and the object keyword.
# TEMPORARY is not listed: temporary tables do not commit.
_DDL_MODIFIERS = (
    r"(?:(?:OR\s+REPLACE|UNIQUE|FULLTEXT|SPATIAL(?=\s+INDEX)|ONLINE|OFFLINE"
    r"|AGGREGATE|UNDO|ALGORITHM\s*=\s*\w+|DEFINER\s*=\s*\S+"
    r"|SQL\s+SECURITY\s+\w+)\s+)*"
)
_DDL_OBJECTS = (
    r"(?:DATABASE|SCHEMA|EVENT|FUNCTION|PROCEDURE|SERVER|TABLESPACE|TABLE"
    r"|VIEW|INDEX|TRIGGER|ROLE|SPATIAL\s+REFERENCE\s+SYSTEM)"
)

IMPLICIT_COMMIT_RULES: Tuple[ImplicitCommitRule, ...] = (
    _rule(
        CATEGORY_DDL,
        rf"(?:ALTER|CREATE|DROP)\s+{_DDL_MODIFIERS}{_DDL_OBJECTS}",
        r"INSTALL\s+PLUGIN",
        r"UNINSTALL\s+PLUGIN",
        r"RENAME\s+TABLE",
        r"TRUNCATE",
    ),
    _rule(
        CATEGORY_USER_MANAGEMENT,
        r"ALTER\s+USER",
        r"CREATE\s+USER",
        r"DROP\s+USER",
        r"GRANT",
        r"RENAME\s+USER",
        r"REVOKE",
        r"SET\s+PASSWORD",
    ),
    _rule(
        CATEGORY_TRANSACTION_CONTROL,
        r"BEGIN",
        r"LOCK\s+TABLES?",
        r"START\s+TRANSACTION",
        r"UNLOCK\s+TABLES?",
        r"SET\s+(?:SESSION\s+|GLOBAL\s+|@@(?:SESSION\.|GLOBAL\.)?)?"
        r"autocommit\s*=\s*(?:1|ON|TRUE)",
    ),
    _rule(
        CATEGORY_DATA_LOADING,
        r"LOAD\s+DATA",
        r"LOAD\s+XML",
    ),
    _rule(
        CATEGORY_REPLICATION,
        r"(?:START|STOP|RESET)\s+(?:REPLICA|SLAVE)",
        r"(?:START|STOP)\s+GROUP_REPLICATION",
        r"CHANGE\s+REPLICATION\s+SOURCE\s+TO",
        r"CHANGE\s+MASTER\s+TO",
    ),
    _rule(
        CATEGORY_ADMINISTRATIVE,
        r"ANALYZE\s+(?:NO_WRITE_TO_BINLOG\s+|LOCAL\s+)?TABLE",
        r"CACHE\s+INDEX",
        r"CHECK\s+TABLE",
        r"FLUSH",
        r"LOAD\s+INDEX\s+INTO\s+CACHE",
        r"OPTIMIZE\s+(?:NO_WRITE_TO_BINLOG\s+|LOCAL\s+)?TABLE",
        r"REPAIR\s+(?:NO_WRITE_TO_BINLOG\s+|LOCAL\s+)?TABLE",
        r"RESET(?!\s+PERSIST)",
    ),
)

_LEADING_COMMENT = re.compile(
    r"^\s*(?:--[^\n]*(?:\n|$)|#[^\n]*(?:\n|$)|/\*.*?\*/)", re.DOTALL
)


@dataclass(frozen=True)
class ImplicitCommitCheck:
    """Outcome of screening one statement; ``category`` is None when safe."""

    category: Optional[str] = None
    statement: str = ""

    @property
    def is_safe(self) -> bool:
        return self.category is None

    def describe(self) -> str:
        if self.is_safe:
            return "safe"
        return f"{self.category}: {self.statement}"


def strip_leading_comments(statement: str) -> str:
    """Remove ``--``, ``#`` and ``/* */`` comments that precede the statement."""
    previous = None
    while previous != statement:
        previous = statement
        statement = _LEADING_COMMENT.sub("", statement, count=1)
    return statement.strip()


def split_statements(sql: str) -> List[str]:
    """Split SQL text on ``;`` into non-empty sub-statements."""
    return [part.strip() for part in sql.split(";") if part.strip()]


def classify_statement(statement: str) -> Optional[str]:
    """Category of a single statement, or None if it does not implicitly commit."""
    statement = strip_leading_comments(statement)
    for rule in IMPLICIT_COMMIT_RULES:
        if rule.matches(statement):
            return rule.category
    return None


def detect_implicit_commit(sql: str) -> ImplicitCommitCheck:
    """
    Screen SQL text for statements that force an implicit commit.

    The first matching sub-statement short-circuits the scan.

    Args:
        sql: One or more ``;``-separated statements

    Returns:
        ImplicitCommitCheck naming the category and offending sub-statement,
        or a safe check when nothing matches
    """
    for statement in split_statements(sql):
        category = classify_statement(statement)
        if category is not None:
            return ImplicitCommitCheck(category, statement)
    return ImplicitCommitCheck()
