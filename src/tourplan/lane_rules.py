"""Rule-based lane auto-assignment.

Lanes may carry ``auto_assign_rules``: a mapping evaluated against an item's
attributes. Rules are either condition nodes::

    {"any": [{"field": "type", "operator": "eq", "value": "travel_segment"},
             {"field": "title", "operator": "contains", "value": "flight"}]}

or shorthand mappings of field to expected value::

    {"type": ["promo_slot", "release_milestone"], "labels.market": "UK"}

String comparisons ignore case, accents and surrounding whitespace. This is an
optional classifier that runs before the engine; the engine itself never
infers lanes.
"""

from __future__ import annotations

import json
import re
import unicodedata
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from .models import ScheduleItem


class LaneDefinition(BaseModel):
    """A configured lane with optional auto-assignment rules."""

    slug: str
    name: str = ""
    sort_order: int = 0
    color: str | None = None
    auto_assign_rules: dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        """Display name, derived from the slug when no name is set."""
        if self.name:
            return self.name
        return " ".join(part.capitalize() for part in re.split(r"[_\s]+", self.slug) if part)


_COMBINATORS = ("all", "any", "none")


def is_condition_node(value: Any) -> bool:
    """True for all/any/none groups and field/operator leaves."""
    if not isinstance(value, Mapping):
        return False
    if any(isinstance(value.get(key), list) for key in _COMBINATORS):
        return True
    return isinstance(value.get("field"), str) and isinstance(value.get("operator"), str)


def normalize_value(value: Any) -> str:
    """Fold a value to lowercase ASCII-ish text for comparison."""
    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.strip().lower()


def get_field_value(context: Mapping[str, Any], field_path: str) -> Any:
    """Resolve a dotted field path such as "labels.market"."""
    value: Any = context
    for segment in (part.strip() for part in field_path.split(".")):
        if not segment:
            continue
        if not isinstance(value, Mapping):
            return None
        value = value.get(segment)
    return value


def _as_number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def compare_value(actual: Any, expected: Any) -> bool:  # noqa: PLR0911 - one branch per value kind
    """Loose equality used by the eq operator and shorthand rules."""
    if isinstance(expected, list):
        targets = {normalize_value(entry) for entry in expected}
        if isinstance(actual, list):
            return any(normalize_value(entry) in targets for entry in actual)
        return normalize_value(actual) in targets

    if isinstance(expected, bool):
        return bool(actual) == expected

    if isinstance(expected, str):
        wanted = normalize_value(expected)
        if isinstance(actual, list):
            return any(normalize_value(entry) == wanted for entry in actual)
        return normalize_value(actual) == wanted

    if isinstance(expected, (int, float)):
        return _as_number(actual) == float(expected)

    if expected is None:
        return actual is None

    if isinstance(expected, Mapping):
        return json.dumps(actual, sort_keys=True, default=str) == json.dumps(
            expected, sort_keys=True, default=str
        )

    return actual == expected


def _contains(value: Any, expected: Any) -> bool:
    needle = normalize_value(expected)
    if isinstance(value, list):
        return any(needle in normalize_value(entry) for entry in value)
    return needle in normalize_value(value)


def _ordered(value: Any, expected: Any, op: str) -> bool:
    left, right = _as_number(value), _as_number(expected)
    if left is None or right is None:
        return False
    return {
        "gt": left > right,
        "gte": left >= right,
        "lt": left < right,
        "lte": left <= right,
    }[op]


_ALIASES = {
    "equals": "eq",
    "not_equals": "ne",
    "greater_than": "gt",
    "greater_than_or_equal": "gte",
    "less_than": "lt",
    "less_than_or_equal": "lte",
}


def evaluate_operator(value: Any, operator: str, expected: Any) -> bool:  # noqa: PLR0911
    """Apply one comparison operator; unknown operators fall back to equality."""
    op = _ALIASES.get(operator, operator)
    if op == "eq":
        return compare_value(value, expected)
    if op == "ne":
        return not compare_value(value, expected)
    if op == "contains":
        return isinstance(value, (str, list)) and _contains(value, expected)
    if op == "not_contains":
        return not isinstance(value, (str, list)) or not _contains(value, expected)
    if op in ("gt", "gte", "lt", "lte"):
        return _ordered(value, expected, op)
    if op == "matches_regex":
        try:
            return isinstance(value, str) and re.search(str(expected), value) is not None
        except re.error:
            return False
    if op in ("in", "not_in"):
        options = expected if isinstance(expected, list) else [expected]
        found = normalize_value(value) in {normalize_value(entry) for entry in options}
        return found if op == "in" else not found
    return compare_value(value, expected)


def evaluate_condition(condition: Mapping[str, Any], context: Mapping[str, Any]) -> bool:
    """Evaluate a condition node; the first non-empty combinator wins."""
    for key in _COMBINATORS:
        children = condition.get(key)
        if isinstance(children, list) and children:
            results = (evaluate_condition(child, context) for child in children)
            if key == "all":
                return all(results)
            if key == "any":
                return any(results)
            return not any(results)

    field_path = condition.get("field")
    operator = condition.get("operator")
    if isinstance(field_path, str) and isinstance(operator, str):
        return evaluate_operator(
            get_field_value(context, field_path), operator, condition.get("value")
        )
    return False


def evaluate_rules(rules: Any, context: Mapping[str, Any]) -> bool:
    """Evaluate a lane's rule mapping against an evaluation context."""
    if not rules or not isinstance(rules, Mapping):
        return False
    if is_condition_node(rules):
        return evaluate_condition(rules, context)

    for raw_field, expected in rules.items():
        field_path = str(raw_field).strip()
        if not field_path:
            continue
        if is_condition_node(expected):
            matched = evaluate_condition(expected, context)
        elif isinstance(expected, Mapping) and "operator" in expected:
            matched = evaluate_operator(
                get_field_value(context, field_path),
                str(expected.get("operator") or "eq"),
                expected.get("value"),
            )
        elif isinstance(expected, Mapping):
            nested = get_field_value(context, field_path)
            matched = evaluate_rules(expected, nested if isinstance(nested, Mapping) else context)
        else:
            matched = compare_value(get_field_value(context, field_path), expected)
        if not matched:
            return False
    return True


def item_context(item: ScheduleItem) -> dict[str, Any]:
    """Evaluation context exposing an item's attributes to rules."""
    context: dict[str, Any] = {
        "id": item.id,
        "title": item.title,
        "type": item.type.value,
        "territory": item.territory,
        "status": item.status,
        "priority": item.priority,
        "labels": dict(item.labels),
    }
    context["metadata"] = dict(context)
    return context


def evaluate_lane_assignment(lane: LaneDefinition, context: Mapping[str, Any]) -> bool:
    """True if the lane's rules match the context. Lanes without rules never match."""
    if not lane.auto_assign_rules:
        return False
    return evaluate_rules(lane.auto_assign_rules, context)


def resolve_auto_assigned_lane(
    lanes: Sequence[LaneDefinition], context: Mapping[str, Any]
) -> LaneDefinition | None:
    """Return the first lane, by (sort_order, name), whose rules match."""
    for lane in sorted(lanes, key=lambda lane: (lane.sort_order, lane.label)):
        if evaluate_lane_assignment(lane, context):
            return lane
    return None


def describe_rules(rules: Mapping[str, Any] | None, limit: int = 3) -> str:
    """Short human summary of shorthand rules, e.g. "Type: promo_slot • Territory: UK"."""
    if not rules:
        return "Manual only"
    if is_condition_node(rules):
        return "Custom rules"
    parts: list[str] = []
    for key, value in rules.items():
        title = " ".join(part.capitalize() for part in re.split(r"[_\s]+", str(key)) if part)
        if isinstance(value, list) and value:
            parts.append(f"{title}: {', '.join(str(entry) for entry in value)}")
        elif isinstance(value, str) and value.strip():
            parts.append(f"{title}: {value}")
    return " • ".join(parts[:limit]) if parts else "Manual only"
