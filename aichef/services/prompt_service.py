"""Prompt generation for the three AI operations.

Builders are pure templates over caller data: the same request always yields
the same ``Prompt``, which keeps them testable without a model.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from aichef.utils.exceptions import InvalidRequest
from aichef.utils.recipe_validation import coerce_string_list, coerce_tags

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)

IDEATION_COUNT = 3

_RECIPE_EXAMPLE = """[
  {
    "title": "Avocado Toast Deluxe",
    "highlight": "A savory toast with creamy avocado, chili flakes, and lime.",
    "tag": ["Breakfast", "Snack"],
    "ingredients": ["2 slices bread", "1 avocado", "1/2 lime", "Salt", "Chili flakes"],
    "instructions": [
      "Toast the bread.",
      "Mash the avocado with lime and salt.",
      "Spread on toast and sprinkle chili flakes."
    ],
    "nutrition_info": {
      "calories": 200,
      "fat": 5,
      "cholesterol": 30,
      "sodium": 10,
      "carbs": 2,
      "fiber": 1,
      "sugar": 100,
      "protein": 5
    }
  }
]"""


@dataclass(frozen=True)
class Prompt:
    """System instruction plus user content for one model call."""

    system: str
    user: str
    image_base64: Optional[str] = None
    image_mime_type: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return self.image_base64 is not None


def build_question_prompt(question: Optional[str], recipe: Optional[Mapping[str, Any]]) -> Prompt:
    """Prompt for answering a cooking question about one recipe."""
    if not _present(question) or not recipe:
        raise InvalidRequest("Question and recipe are required.")

    tags = ", ".join(coerce_tags(recipe.get("tag"))) or "Uncategorized"
    ingredients = "\n".join(f"• {item}" for item in coerce_string_list(recipe.get("ingredients")))
    instructions = "\n".join(
        f"{i}. {step}" for i, step in enumerate(coerce_string_list(recipe.get("instructions")), start=1)
    )
    title = str(recipe.get("title") or "Untitled recipe").strip()

    system = f"""
You are a helpful cooking assistant. Use the full recipe context below to answer user questions about substitutions, modifications, or cooking methods.
Be clear, concise, and friendly. When suggesting a change, explain how it affects the rest of the recipe.

Recipe Title: {title}
Category: {tags}

Ingredients:
{ingredients or "(none listed)"}

Instructions:
{instructions or "(none listed)"}
""".strip()

    return Prompt(system=system, user=question.strip())


def build_ideation_prompt(prompt: Optional[str]) -> Prompt:
    """Prompt asking for exactly three recipe ideas as a JSON array."""
    if not _present(prompt):
        raise InvalidRequest("Prompt is required.")

    system = f"""
You are an AI sous-chef. Given a prompt from a home cook, return {IDEATION_COUNT} diverse and fun recipe ideas in JSON format. Each recipe must include:
- "title" (string): the name of the recipe
- "highlight" (string): 1-sentence teaser
- "tag" (array of strings): categories like "Dinner", "Vegan", "Snack", "Breakfast"
- "ingredients" (array of strings): list of ingredients, one per entry
- "instructions" (array of strings): step-by-step instructions, one step per entry
- "nutrition_info" (object): a single flat JSON object (NOT an array or list) with the keys calories, fat, cholesterol, sodium, carbs, fiber, sugar, protein

Respond ONLY with a JSON array of {IDEATION_COUNT} objects, like this:

{_RECIPE_EXAMPLE}

User prompt: {prompt.strip()}
""".strip()

    return Prompt(system=system, user=prompt.strip())


def build_image_extraction_prompt(
    image: Union[str, bytes, None], mime_type: str = "image/jpeg"
) -> Prompt:
    """Prompt asking for one recipe object extracted from an image.

    ``image`` is raw bytes or base64 text (a data URL prefix is allowed).
    """
    if isinstance(image, (bytes, bytearray)):
        image = base64.b64encode(image).decode("ascii")
    payload = strip_data_url(image or "")
    if not payload:
        raise InvalidRequest("Image data is required.")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequest("Image data is not valid base64.") from e

    system = """
You are a recipe extraction assistant. You read photographs of dishes, recipe cards, and cookbook pages and turn them into structured recipes.
Respond ONLY with a single JSON object. No markdown, no commentary before or after the JSON.
""".strip()

    user = """
Analyze this recipe image and extract the following information as one JSON object:
{
  "title": "Recipe name",
  "highlight": "1-sentence teaser",
  "tag": ["category tags like Dinner, Breakfast, etc."],
  "ingredients": ["one ingredient per entry"],
  "instructions": ["one step per entry, in order"],
  "nutrition_info": {
    "calories": number,
    "fat": number,
    "cholesterol": number,
    "sodium": number,
    "carbs": number,
    "fiber": number,
    "sugar": number,
    "protein": number
  }
}

Rules:
- nutrition_info must be a single flat object, never an array.
- Every nutrition_info key must be present with a number. If a value is not visible, estimate it from the ingredients. Never use null or an empty string.
- If the image shows a finished dish without a written recipe, infer a plausible recipe for it.
""".strip()

    return Prompt(system=system, user=user, image_base64=payload, image_mime_type=mime_type)


def strip_data_url(image: str) -> str:
    """Remove a ``data:image/...;base64,`` prefix if present."""
    return _DATA_URL_PREFIX.sub("", image.strip())


def _present(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(value.strip())
