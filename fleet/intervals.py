"""Service interval rules keyed by category and engine (cc) type."""

from typing import Any, Dict, Optional

BOLT_ENGINE_TYPE = "125cc BOLT"


class IntervalRules:
    """
    Kilometer intervals between scheduled services.

    Resolution order:
    - Category override (case-insensitive; the override name appears in the category name)
    - Engine type (case-insensitive exact match)
    - Default interval
    """

    def __init__(
        self,
        default_km: int = 4000,
        engine_types: Optional[Dict[str, int]] = None,
        category_overrides: Optional[Dict[str, int]] = None,
    ):
        self.default_km = default_km
        self.engine_types = dict(engine_types or {})
        self.category_overrides = dict(category_overrides or {})

    @classmethod
    def from_dict(cls, dct: Optional[Dict[str, Any]]) -> "IntervalRules":
        """Build rules from the 'intervals' section of a fleet file."""
        if not dct:
            return cls(
                DEFAULT_RULES.default_km,
                DEFAULT_RULES.engine_types,
                DEFAULT_RULES.category_overrides,
            )
        return cls(
            dct.get("defaultKm", DEFAULT_RULES.default_km),
            dct.get("engineTypes", DEFAULT_RULES.engine_types),
            dct.get("categoryOverrides", DEFAULT_RULES.category_overrides),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "defaultKm": self.default_km,
            "engineTypes": dict(self.engine_types),
            "categoryOverrides": dict(self.category_overrides),
        }

    def category_override(self, category_name: Optional[str]) -> Optional[int]:
        """Fixed interval for a category, or None if the category has no override."""
        if not category_name:
            return None
        name = category_name.lower()
        for key, km in self.category_overrides.items():
            if key.lower() in name:
                return km
        return None

    def engine_interval(self, engine_type: Optional[str]) -> int:
        if engine_type:
            wanted = engine_type.strip().lower()
            for key, km in self.engine_types.items():
                if key.lower() == wanted:
                    return km
        return self.default_km


DEFAULT_RULES = IntervalRules(
    default_km=4000,
    engine_types={"50cc": 2500, "125cc": 4000, BOLT_ENGINE_TYPE: 3000},
    category_overrides={"Bolt": 3000, "Private Rental": 4500},
)


def interval_for(
    engine_type: Optional[str],
    category_name: Optional[str],
    rules: IntervalRules = DEFAULT_RULES,
) -> int:
    """Service interval in km. Unknown inputs degrade to the default interval."""
    override = rules.category_override(category_name)
    if override is not None:
        return override
    return rules.engine_interval(engine_type)


def forced_engine_type(category_name: Optional[str]) -> Optional[str]:
    """Engine type every scooter in the category must carry, if any."""
    if category_name and "bolt" in category_name.lower():
        return BOLT_ENGINE_TYPE
    return None


def interval_text(
    engine_type: Optional[str],
    category_name: Optional[str] = None,
    rules: IntervalRules = DEFAULT_RULES,
) -> str:
    """Interval formatted for display, e.g. '3000km'."""
    return f"{interval_for(engine_type, category_name, rules)}km"
