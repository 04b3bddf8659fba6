"""
Small SQL-building helpers shared by repositories

Column and sort names are always taken from whitelists, never from input.
"""
from typing import Dict, Iterable, List, Tuple


def build_set_clause(fields: dict, allowed: Iterable[str]) -> Tuple[str, List]:
    """
    Build "col = %s, ..." for the keys of fields that are in allowed

    Returns:
        (clause, params) - clause is empty when nothing applies
    """
    assignments = []
    params = []
    for column in allowed:
        if column in fields:
            assignments.append(f"{column} = %s")
            params.append(fields[column])
    return ", ".join(assignments), params


def build_order_by(
    sort_by: str,
    sort_order: str,
    allowed: Dict[str, str],
    default: str
) -> str:
    """
    Map a requested sort field to a whitelisted SQL expression

    allowed maps public names to SQL expressions, e.g. {"created_at": "o.created_at"}
    """
    column = allowed.get(sort_by or "", allowed[default])
    direction = "ASC" if (sort_order or "").lower() == "asc" else "DESC"
    return f"{column} {direction}"


def where_clause(conditions: List[str]) -> str:
    return " AND ".join(conditions) if conditions else "1=1"
