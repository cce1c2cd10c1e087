"""Recipe candidate validation and repair.

Candidates come from the model (parsed JSON) or straight from callers, so
anything can show up: numbers where strings belong, a bare string instead of
a list, ``nutrition_info`` wrapped in an array, nulls everywhere.
``validate_candidate`` repairs what it can and reports what it can't. It never
raises.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from aichef.models.recipe import NUTRITION_KEYS, UNKNOWN_NUTRIENT_VALUE, Recipe

logger = logging.getLogger(__name__)

MISSING_FIELD = "MissingField"
INVALID_SHAPE = "InvalidShape"

LIST_FIELDS = ("ingredients", "instructions")

# Variant keys models like to emit, checked only when the canonical key is absent.
_NUTRIENT_ALIASES = {
    "calories": ("kcal", "energy"),
    "fat": ("fat_g", "total_fat"),
    "cholesterol": ("cholesterol_mg",),
    "sodium": ("sodium_mg", "salt"),
    "carbs": ("carbs_g", "carbohydrates", "carbohydrates_g"),
    "fiber": ("fiber_g", "fibre"),
    "sugar": ("sugar_g", "sugars"),
    "protein": ("protein_g",),
}


@dataclass(frozen=True)
class ValidationIssue:
    """Why a candidate was rejected."""

    kind: str
    message: str
    field: Optional[str] = None


@dataclass
class ValidationResult:
    """Outcome of validating one candidate.

    ``candidate`` holds the repaired mapping even on failure, so a caller can
    decide whether a partial result is still worth showing.
    """

    recipe: Optional[Recipe] = None
    failure: Optional[ValidationIssue] = None
    incomplete: List[str] = field(default_factory=list)
    candidate: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.recipe is not None


def validate_candidate(candidate: Any) -> ValidationResult:
    """Validate and repair a candidate recipe."""
    if not isinstance(candidate, Mapping):
        return ValidationResult(
            failure=ValidationIssue(
                INVALID_SHAPE, f"Expected a JSON object, got {type(candidate).__name__}"
            )
        )

    try:
        repaired = repair_candidate(candidate)
    except Exception as e:
        logger.warning("Candidate repair failed: %s", e, exc_info=True)
        return ValidationResult(failure=ValidationIssue(INVALID_SHAPE, f"Unreadable candidate: {e}"))

    if not repaired.get("title"):
        return ValidationResult(
            failure=ValidationIssue(MISSING_FIELD, "Recipe title is required", field="title"),
            candidate=repaired,
        )

    incomplete = [name for name in LIST_FIELDS if not repaired.get(name)]

    try:
        recipe = Recipe.model_validate(repaired)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(part) for part in first.get("loc", ())) or None
        return ValidationResult(
            failure=ValidationIssue(INVALID_SHAPE, first.get("msg", str(e)), field=loc),
            candidate=repaired,
        )
    except Exception as e:
        logger.warning("Candidate model construction failed: %s", e, exc_info=True)
        return ValidationResult(
            failure=ValidationIssue(INVALID_SHAPE, f"Unreadable candidate: {e}"),
            candidate=repaired,
        )

    if incomplete:
        logger.info("Candidate recipe is incomplete", extra={"title": recipe.title, "incomplete": incomplete})

    return ValidationResult(recipe=recipe, incomplete=incomplete, candidate=repaired)


def repair_candidate(candidate: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce known fields into the recipe shape. Unknown fields are untouched."""
    repaired: Dict[str, Any] = dict(candidate)

    repaired["title"] = _clean_text(repaired.get("title"))
    repaired["highlight"] = _clean_text(repaired.get("highlight"))
    repaired["tag"] = coerce_tags(repaired.get("tag"))
    for name in LIST_FIELDS:
        repaired[name] = coerce_string_list(repaired.get(name))
    repaired["nutrition_info"] = normalize_nutrition(repaired.get("nutrition_info"))

    for key in ("id", "user_id"):
        if repaired.get(key) is not None and not isinstance(repaired[key], str):
            repaired[key] = str(repaired[key])

    image = repaired.get("image")
    repaired["image"] = image.strip() if isinstance(image, str) and image.strip() else None
    repaired["supporting_images"] = [
        url for url in coerce_string_list(repaired.get("supporting_images")) if url
    ]

    return repaired


def repair_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply the same coercions as ``repair_candidate`` to a partial update."""
    repaired = dict(fields)
    if "title" in repaired:
        repaired["title"] = _clean_text(repaired["title"])
    if "highlight" in repaired:
        repaired["highlight"] = _clean_text(repaired["highlight"])
    if "tag" in repaired:
        repaired["tag"] = coerce_tags(repaired["tag"])
    for name in LIST_FIELDS + ("supporting_images",):
        if name in repaired:
            repaired[name] = coerce_string_list(repaired[name])
    if "nutrition_info" in repaired:
        repaired["nutrition_info"] = normalize_nutrition(repaired["nutrition_info"])
    return repaired


def coerce_string_list(value: Any) -> List[str]:
    """Turn whatever the model sent into an ordered list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, Mapping):
        value = list(value.values())
    if not isinstance(value, (list, tuple)):
        text = _stringify_item(value)
        return [text] if text else []

    items: List[str] = []
    for item in value:
        if item is None:
            continue
        text = _stringify_item(item)
        if text:
            items.append(text)
    return items


def coerce_tags(value: Any) -> List[str]:
    """Deduplicate tags, keeping first-seen order for display."""
    seen = set()
    tags: List[str] = []
    for tag in coerce_string_list(value):
        if tag not in seen:
            seen.add(tag)
            tags.append(tag)
    return tags


def normalize_nutrition(value: Any) -> Dict[str, Any]:
    """Return a single flat nutrition mapping with every fixed key filled."""
    if isinstance(value, (list, tuple)):
        objects = [item for item in value if isinstance(item, Mapping)]
        if len(objects) > 1:
            logger.warning("nutrition_info held %d objects, keeping the first", len(objects))
        value = objects[0] if objects else None

    nutrition: Dict[str, Any] = dict(value) if isinstance(value, Mapping) else {}

    for key in NUTRITION_KEYS:
        raw = nutrition.get(key)
        if raw is None:
            raw = next(
                (nutrition[alias] for alias in _NUTRIENT_ALIASES[key] if nutrition.get(alias) is not None),
                None,
            )
        nutrition[key] = _nutrient_value(raw)

    return nutrition


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _stringify_item(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, Mapping):
        # Structured ingredient objects: prefer the raw line, else rebuild one.
        raw = item.get("raw")
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
        parts = [
            str(item[k]).strip()
            for k in ("quantity", "amount", "unit", "name", "item", "preparation", "text", "step")
            if item.get(k) not in (None, "")
        ]
        if parts:
            return " ".join(parts)
        return json.dumps(item, ensure_ascii=False, default=str)
    return str(item).strip()


def _nutrient_value(raw: Any) -> Any:
    if raw is None or isinstance(raw, bool):
        return UNKNOWN_NUTRIENT_VALUE
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return UNKNOWN_NUTRIENT_VALUE
        return raw if raw >= 0 else UNKNOWN_NUTRIENT_VALUE
    if isinstance(raw, str):
        text = raw.strip()
        if text and any(ch.isdigit() for ch in text):
            return text
    return UNKNOWN_NUTRIENT_VALUE
