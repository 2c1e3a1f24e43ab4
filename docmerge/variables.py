"""
``{Column}`` placeholder handling for templates and filename patterns.

A token is a single pair of braces around one or more non-brace characters.
Substitution is a single left-to-right pass: inserted values are never
scanned again, so a cell containing ``{Other}`` is emitted literally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping

Row = Mapping[str, Any]

VARIABLE_PATTERN = re.compile(r"\{([^{}]+)\}")


def format_value(value: Any) -> str:
    """Render a spreadsheet scalar the way it reads in the grid."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def substitute(template: str, row: Row) -> str:
    """Replace every known ``{Name}`` token in *template* with its row value.

    Tokens whose trimmed name is missing from *row*, or maps to ``None``,
    are left exactly as written.
    """

    def _replace(match: re.Match) -> str:
        value = row.get(match.group(1).strip())
        if value is None:
            return match.group(0)
        return format_value(value)

    return VARIABLE_PATTERN.sub(_replace, template)


def extract_variables(template: str) -> List[str]:
    """Unique variable names in first-seen order."""
    seen: dict[str, None] = {}
    for match in VARIABLE_PATTERN.finditer(template):
        seen.setdefault(match.group(1).strip(), None)
    return list(seen)


def has_unresolved(text: str) -> bool:
    return VARIABLE_PATTERN.search(text) is not None


@dataclass(frozen=True)
class TemplateValidation:
    is_valid: bool
    missing_variables: List[str] = field(default_factory=list)


def validate_template(template: str, columns: Iterable[str]) -> TemplateValidation:
    """Report template variables that have no matching column.

    Advisory only: rendering never depends on the result.
    """
    available = set(columns)
    missing = [name for name in extract_variables(template) if name not in available]
    return TemplateValidation(is_valid=not missing, missing_variables=missing)
