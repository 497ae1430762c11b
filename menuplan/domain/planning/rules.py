"""
Planning rules attached to a menu plan.

Rules are a closed set of tagged variants discriminated by ``kind``, with an
``UnknownRule`` fallback so plans written by newer clients still load.

Enforcement:
- AllowedMealTypesRule: blocking, checked by the allocator
- MaxBudgetPerDayRule / MaxRepeatPerWeekRule: advisory, reported by the
  analytics engine and respected by auto-fill
"""

from __future__ import annotations

from typing import Any, Iterable, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from menuplan.domain.planning.enums import MealType


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)


class MaxBudgetPerDayRule(_Rule):
    """Total estimated cost of a single day must not exceed ``amount``."""

    kind: Literal["max_budget_per_day"] = "max_budget_per_day"
    amount: float = Field(..., gt=0, description="Maximum cost per day")


class MaxRepeatPerWeekRule(_Rule):
    """A menu may appear at most ``max_repeats`` times per ISO week."""

    kind: Literal["max_repeat_per_week"] = "max_repeat_per_week"
    max_repeats: int = Field(..., ge=1, description="Max uses of one menu per week")


class AllowedMealTypesRule(_Rule):
    """Only the listed meal types may be assigned."""

    kind: Literal["allowed_meal_types"] = "allowed_meal_types"
    meal_types: tuple[MealType, ...] = Field(..., min_length=1)

    def allows(self, meal_type: MealType) -> bool:
        return MealType(meal_type) in self.meal_types


class UnknownRule(_Rule):
    """Rule kind not understood by this version; kept verbatim, never enforced."""

    kind: str
    payload: Any = None

    @field_validator("kind")
    @classmethod
    def kind_not_known(cls, v: str) -> str:
        if v in _RULE_TYPES:
            raise ValueError(f"kind {v!r} has a dedicated rule type")
        return v


PlanningRule = Union[MaxBudgetPerDayRule, MaxRepeatPerWeekRule, AllowedMealTypesRule, UnknownRule]

_RULE_TYPES: dict[str, Type[_Rule]] = {
    "max_budget_per_day": MaxBudgetPerDayRule,
    "max_repeat_per_week": MaxRepeatPerWeekRule,
    "allowed_meal_types": AllowedMealTypesRule,
}

# Keys of the legacy free-form mapping -> (rule type, field name)
_LEGACY_KEYS: dict[str, tuple[Type[_Rule], str]] = {
    "maxBudgetPerDay": (MaxBudgetPerDayRule, "amount"),
    "maxRepeatPerWeek": (MaxRepeatPerWeekRule, "max_repeats"),
    "allowedMealTypes": (AllowedMealTypesRule, "meal_types"),
}


def _parse_one(raw: Any) -> PlanningRule:
    if isinstance(raw, _Rule):
        return raw  # type: ignore[return-value]
    if not isinstance(raw, dict) or "kind" not in raw:
        raise ValueError(f"Planning rule must be a mapping with a 'kind': {raw!r}")
    rule_type = _RULE_TYPES.get(raw["kind"])
    if rule_type is None:
        payload = {k: v for k, v in raw.items() if k != "kind"}
        return UnknownRule(kind=raw["kind"], payload=raw.get("payload", payload or None))
    return rule_type.model_validate(raw)  # type: ignore[return-value]


def parse_planning_rules(raw: Optional[Union[Iterable[Any], dict[str, Any]]]) -> list[PlanningRule]:
    """
    Parse planning rules from either representation.

    Accepts:
    - None -> []
    - list of rule instances or ``{"kind": ...}`` mappings
    - legacy ``{key: value}`` mapping, e.g. ``{"maxBudgetPerDay": 50000}``

    Raises:
        ValueError: If a known rule carries invalid values (pydantic
            ValidationError is a ValueError subclass)

    Example:
        >>> rules = parse_planning_rules({"maxBudgetPerDay": 50000, "theme": "local"})
        >>> [r.kind for r in rules]
        ['max_budget_per_day', 'theme']
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        rules: list[PlanningRule] = []
        for key, value in raw.items():
            legacy = _LEGACY_KEYS.get(key)
            if legacy is None:
                rules.append(UnknownRule(kind=key, payload=value))
            else:
                rule_type, field_name = legacy
                rule = rule_type.model_validate({field_name: value})  # type: ignore[arg-type]
                rules.append(rule)
        return rules

    return [_parse_one(item) for item in raw]


R = TypeVar("R", bound=_Rule)


def find_rule(rules: Iterable[PlanningRule], rule_type: Type[R]) -> Optional[R]:
    """Return the first rule of the given type, if any."""
    for rule in rules:
        if isinstance(rule, rule_type):
            return rule
    return None
