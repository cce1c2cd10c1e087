"""Turns raw model text into validated recipes.

Models wrap JSON in prose ("Here are some ideas:"), markdown fences, or cut it
off mid-object when they hit the token cap. Parsing is best-effort and a
failure is terminal for the request; the model is never re-asked.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from aichef.models.recipe import Recipe
from aichef.utils.exceptions import ParseFailure, ValidationFailure
from aichef.utils.recipe_validation import ValidationIssue, validate_candidate

logger = logging.getLogger(__name__)

PARSE_FAILURE = "ParseFailure"
VALIDATION_FAILURE = "ValidationFailure"

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class RecipeParseResult:
    """Outcome for a flow that expects exactly one recipe object."""

    recipe: Optional[Recipe] = None
    incomplete: List[str] = field(default_factory=list)
    failure_kind: Optional[str] = None
    message: str = ""
    issue: Optional[ValidationIssue] = None
    candidate: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.failure_kind is None and self.recipe is not None

    def raise_for_failure(self) -> None:
        """Convert a failed outcome into the matching exception."""
        if self.failure_kind == PARSE_FAILURE:
            raise ParseFailure(self.message)
        if self.failure_kind == VALIDATION_FAILURE:
            raise ValidationFailure(
                self.message,
                details={
                    "kind": self.issue.kind if self.issue else None,
                    "field": self.issue.field if self.issue else None,
                    "candidate": self.candidate,
                },
            )


@dataclass(frozen=True)
class CandidateError:
    """An ideation element that failed validation."""

    index: int
    kind: str
    message: str
    candidate: Optional[Dict[str, Any]] = None


@dataclass
class IdeationResult:
    """Outcome for a flow that expects an array of recipes.

    Elements are validated independently: ``recipes`` holds the ones that
    passed (in order), ``failures`` the rest with their original index.
    """

    recipes: List[Recipe] = field(default_factory=list)
    failures: List[CandidateError] = field(default_factory=list)
    parse_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.parse_error is None

    def raise_for_failure(self) -> None:
        if self.parse_error is not None:
            raise ParseFailure(self.parse_error)


def extract_first_json_value(text: Optional[str]) -> Optional[str]:
    """Return the first bracket-balanced JSON object or array in ``text``.

    Scans from the first ``{`` or ``[`` and stops at the bracket that closes
    it, ignoring brackets inside string literals. Returns ``None`` when there
    is no opening bracket or the value never closes (truncated output).
    """
    t = _strip_code_fences(text or "")
    starts = [i for i in (t.find("{"), t.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)

    stack: List[str] = []
    in_string = False
    escaped = False

    for i in range(start, len(t)):
        ch = t[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack[-1] != ch:
                return None
            stack.pop()
            if not stack:
                return t[start : i + 1]

    return None


def load_json_payload(text: Optional[str]) -> Any:
    """Extract and decode the first JSON value.

    Raises:
        ValueError: If there is no balanced JSON value or it does not decode.
    """
    json_text = extract_first_json_value(text)
    if json_text is None:
        raise ValueError("No complete JSON value found in model response")

    try:
        return json.loads(json_text)
    except RecursionError as e:
        raise ValueError("JSON in model response is nested too deeply") from e
    except json.JSONDecodeError:
        repaired = _strip_trailing_commas(json_text)

    try:
        return json.loads(repaired)
    except RecursionError as e:
        raise ValueError("JSON in model response is nested too deeply") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed JSON in model response: {e.msg}") from e


def parse_single_recipe(text: Optional[str]) -> RecipeParseResult:
    """Parse a completion expected to hold one recipe object."""
    try:
        payload = load_json_payload(text)
    except ValueError as e:
        logger.warning("Could not parse recipe object: %s", e, extra={"response_len": len(text or "")})
        return RecipeParseResult(failure_kind=PARSE_FAILURE, message=str(e))

    if isinstance(payload, list):
        objects = [item for item in payload if isinstance(item, dict)]
        if len(objects) != 1:
            return RecipeParseResult(
                failure_kind=PARSE_FAILURE,
                message=f"Expected one recipe object, got {len(objects)} objects in an array of {len(payload)} items",
            )
        payload = objects[0]

    result = validate_candidate(_unwrap(payload))
    if not result.ok:
        return RecipeParseResult(
            failure_kind=VALIDATION_FAILURE,
            message=result.failure.message if result.failure else "Invalid recipe",
            issue=result.failure,
            candidate=result.candidate,
        )

    return RecipeParseResult(recipe=result.recipe, incomplete=result.incomplete, candidate=result.candidate)


def parse_recipe_list(text: Optional[str]) -> IdeationResult:
    """Parse a completion expected to hold an array of recipe objects."""
    try:
        payload = load_json_payload(text)
    except ValueError as e:
        logger.warning("Could not parse recipe array: %s", e, extra={"response_len": len(text or "")})
        return IdeationResult(parse_error=str(e))

    if isinstance(payload, dict):
        payload = _unwrap_list(payload)

    outcome = IdeationResult()
    for index, element in enumerate(payload):
        result = validate_candidate(element)
        if result.ok:
            outcome.recipes.append(result.recipe)
        else:
            outcome.failures.append(
                CandidateError(
                    index=index,
                    kind=result.failure.kind if result.failure else VALIDATION_FAILURE,
                    message=result.failure.message if result.failure else "Invalid recipe",
                    candidate=result.candidate,
                )
            )

    if outcome.failures:
        logger.info(
            "Some recipe ideas failed validation",
            extra={"valid": len(outcome.recipes), "failed": [f.index for f in outcome.failures]},
        )
    return outcome


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _strip_code_fences(text: str) -> str:
    s = text.strip()
    m = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", s, re.IGNORECASE)
    if m:
        return m.group(1).strip()
    return s


def _strip_trailing_commas(json_text: str) -> str:
    # {"a": 1,} -> {"a": 1}  and  [1,2,] -> [1,2]
    return re.sub(r",(\s*[}\]])", r"\1", json_text)


def _unwrap(payload: Any) -> Any:
    # {"recipe": {...}} -> {...}
    if isinstance(payload, dict) and len(payload) == 1:
        key, inner = next(iter(payload.items()))
        if isinstance(inner, dict) and "recipe" in str(key).lower():
            logger.info("Unwrapping nested recipe object from key: %s", key)
            return inner
    return payload


def _unwrap_list(payload: Dict[str, Any]) -> List[Any]:
    # {"recipes": [...]} -> [...]; a lone recipe object -> [object]
    if len(payload) == 1:
        inner = next(iter(payload.values()))
        if isinstance(inner, list):
            return inner
    return [payload]
