"""Guards for model-generated SQL.

Only single, read-only SELECT statements over the catalog tables pass.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

MAX_QUERY_LENGTH = 2000

DANGEROUS_PATTERNS = [
    r"\bDROP\b",
    r"\bDELETE\b",
    r"\bTRUNCATE\b",
    r"\bUPDATE\b",
    r"\bINSERT\b",
    r"\bALTER\b",
    r"\bCREATE\b",
    r"\bGRANT\b",
    r"\bREVOKE\b",
    r"\bEXEC\b",
    r"\bEXECUTE\b",
    r"\bxp_\w+",
    r"\bsp_\w+",
    r";\s*--",
    r";\s*(DROP|DELETE|UPDATE|INSERT|ALTER|CREATE)",
    r"\bINTO\s+OUTFILE\b",
    r"\bLOAD_FILE\b",
    r"\bUNION\s+ALL\s+SELECT\b",
]

ALLOWED_TABLES = {
    "music_releases",
    "artists",
    "labels",
    "countries",
    "formats",
    "genres",
    "packagings",
    "stores",
    "now_playing",
}

_STATEMENT_KEYWORDS = ("SELECT", "DROP", "DELETE", "INSERT", "UPDATE")
_TABLE_REFERENCE = re.compile(r'\b(?:FROM|JOIN)\s+"?(\w+)"?', re.IGNORECASE)


@dataclass
class SqlValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @property
    def error_message(self) -> Optional[str]:
        return "; ".join(self.errors) if self.errors else None


def _describe(pattern: str) -> str:
    return pattern.replace(r"\b", "").replace(r"\s*", " ").replace(r"\s+", " ").replace(r"\w+", "*")


def _contains_multiple_statements(sql: str) -> bool:
    parts = sql.split(";")
    return any(part.strip().upper().startswith(_STATEMENT_KEYWORDS) for part in parts[1:])


def _comment_in_string_literal(sql: str) -> bool:
    index = sql.find("--")
    if index < 0:
        return False
    return sql[:index].count("'") % 2 == 1


def _remove_comments(sql: str) -> str:
    sql = re.sub(r"--.*$", "", sql, flags=re.MULTILINE)
    sql = re.sub(r"/\*.*?\*/", "", sql, flags=re.DOTALL)
    return sql.strip()


def sanitize(sql: Optional[str]) -> str:
    if not sql or not sql.strip():
        return ""
    sanitized = sql.strip().rstrip(";")
    sanitized = _remove_comments(sanitized)
    return sanitized[:MAX_QUERY_LENGTH]


def validate(sql: Optional[str]) -> SqlValidationResult:
    if not sql or not sql.strip():
        return SqlValidationResult(False, ["SQL query cannot be empty"])

    errors = []
    if not sql.strip().upper().startswith("SELECT"):
        errors.append("Only SELECT queries are allowed")

    for pattern in DANGEROUS_PATTERNS:
        if re.search(pattern, sql, re.IGNORECASE):
            errors.append(f"Query contains forbidden pattern: {_describe(pattern)}")

    if _contains_multiple_statements(sql):
        errors.append("Multiple SQL statements are not allowed")

    if "--" in sql and not _comment_in_string_literal(sql):
        errors.append("SQL comments are not allowed for security reasons")

    for table in _TABLE_REFERENCE.findall(sql):
        if table.lower() not in ALLOWED_TABLES:
            errors.append(f"Table '{table}' is not allowed. Allowed tables: {', '.join(sorted(ALLOWED_TABLES))}")

    return SqlValidationResult(not errors, errors)
