"""AI operations: recipe Q&A, recipe ideas, and recipe extraction from images."""

from __future__ import annotations

import base64
import logging
from typing import Any, Mapping, Optional, Union

from aichef.config import Settings
from aichef.services.completion_parser import (
    IdeationResult,
    RecipeParseResult,
    parse_recipe_list,
    parse_single_recipe,
)
from aichef.services.gemini_service import GeminiService
from aichef.services.image_service import ImageService
from aichef.services.prompt_service import (
    IDEATION_COUNT,
    build_ideation_prompt,
    build_image_extraction_prompt,
    build_question_prompt,
)

logger = logging.getLogger(__name__)


class RecipeAssistant:
    """Builds the prompt, calls the model once, parses the answer.

    Missing input raises ``InvalidRequest`` before the model is called.
    Model errors raise ``ModelFailure``. Parse and validation outcomes come
    back as result values; callers decide how to surface them.
    """

    def __init__(self, model: GeminiService, image_service: ImageService, settings: Settings) -> None:
        self.model = model
        self.image_service = image_service
        self.settings = settings

    async def answer_question(self, question: Optional[str], recipe: Optional[Mapping[str, Any]]) -> str:
        prompt = build_question_prompt(question, recipe)
        logger.info("Answering recipe question", extra={"recipe_title": recipe.get("title")})
        return await self.model.complete(
            prompt,
            model=self.settings.gemini_text_model,
            temperature=self.settings.qa_temperature,
        )

    async def generate_ideas(self, prompt_text: Optional[str]) -> IdeationResult:
        prompt = build_ideation_prompt(prompt_text)
        raw = await self.model.complete(
            prompt,
            model=self.settings.gemini_text_model,
            temperature=self.settings.ideation_temperature,
        )

        result = parse_recipe_list(raw)
        if result.ok and len(result.recipes) + len(result.failures) != IDEATION_COUNT:
            logger.warning(
                "Model returned %d recipe ideas, expected %d",
                len(result.recipes) + len(result.failures),
                IDEATION_COUNT,
            )
        return result

    async def extract_from_image(self, image: Union[str, bytes, None]) -> RecipeParseResult:
        """
        Extract a recipe from an image.

        Args:
            image: Base64 string (data URL prefix allowed) or raw bytes
        """
        image_bytes: Optional[bytes] = None
        encoded: Optional[str] = None
        prompt = None
        try:
            if isinstance(image, (bytes, bytearray)):
                image_bytes = bytes(image)
            else:
                image_bytes = self.image_service.decode_base64_image(image or "")

            image_bytes, mime_type = self.image_service.validate_image(image_bytes)
            image_bytes, mime_type = self.image_service.prepare_for_vision(image_bytes, mime_type)
            encoded = base64.b64encode(image_bytes).decode("ascii")
            prompt = build_image_extraction_prompt(encoded, mime_type)

            logger.info("Extracting recipe from image (mime_type=%s, bytes=%d)", mime_type, len(image_bytes))
            raw = await self.model.complete(
                prompt,
                model=self.settings.gemini_vision_model,
                temperature=self.settings.extraction_temperature,
                max_output_tokens=self.settings.extraction_max_tokens,
            )
        finally:
            # Drop decoded buffers whether or not the call succeeded.
            image_bytes = encoded = prompt = None

        return parse_single_recipe(raw)
