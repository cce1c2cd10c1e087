"""Gemini model client.

One call per request: no structured-output mode, no retries. Callers get the
raw completion text and parse it themselves.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from aichef.config import Settings
from aichef.services.prompt_service import Prompt
from aichef.utils.exceptions import ModelFailure

logger = logging.getLogger(__name__)


class GeminiService:
    """Service for interacting with the Gemini API."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def client(self) -> genai.Client:
        """Get or create Gemini client (lazy initialization)."""
        if self._client is None:
            if not self._settings.gemini_api_key:
                raise ModelFailure("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=self._settings.gemini_api_key)
        return self._client

    async def complete(
        self,
        prompt: Prompt,
        *,
        model: str,
        temperature: float,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """Send one prompt and return the completion text.

        Raises:
            ModelFailure: On SDK errors, timeouts, or an empty completion.
        """
        config = types.GenerateContentConfig(
            system_instruction=prompt.system,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

        def _sync_call() -> Any:
            return self.client.models.generate_content(
                model=model,
                contents=self._build_contents(prompt),
                config=config,
            )

        logger.info(
            "Calling Gemini",
            extra={"model": model, "has_image": prompt.has_image, "temperature": temperature},
        )

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(_sync_call),
                timeout=self._settings.model_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error("Gemini call timed out after %.0fs", self._settings.model_timeout_seconds)
            raise ModelFailure("Gemini call timed out") from e
        except ModelFailure:
            raise
        except Exception as e:
            logger.error("Gemini call failed: %s", e, exc_info=True)
            raise ModelFailure(f"Gemini call failed: {e}") from e

        text = get_response_text(response)
        if not text.strip():
            log_empty_response("[complete]", response)
            raise ModelFailure("Gemini returned empty response")

        logger.debug("Gemini raw response:\n%s", text)
        return text.strip()

    @staticmethod
    def _build_contents(prompt: Prompt) -> Any:
        if not prompt.has_image:
            return prompt.user
        # Decoded bytes live only for the duration of this call.
        image_bytes = base64.b64decode(prompt.image_base64)
        return [
            prompt.user,
            types.Part.from_bytes(data=image_bytes, mime_type=prompt.image_mime_type or "image/jpeg"),
        ]


def get_response_text(response: Any) -> str:
    """
    Robust extraction of text from google-genai responses.

    Tries ``response.text`` first, then the parts of the first candidate.
    """
    try:
        t = getattr(response, "text", None)
        if isinstance(t, str) and t.strip():
            return t
    except Exception:
        # .text raises on responses blocked by safety filters
        pass

    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        texts: List[str] = [
            p.text for p in (getattr(content, "parts", None) or []) if isinstance(getattr(p, "text", None), str)
        ]
        return "".join(texts)

    return ""


def response_debug_summary(response: Any) -> Dict[str, Any]:
    """Compact debug info explaining an empty completion."""
    out: Dict[str, Any] = {}
    candidates = getattr(response, "candidates", None) or []
    out["candidates"] = len(candidates)
    if candidates:
        c0 = candidates[0]
        out["finish_reason"] = str(getattr(c0, "finish_reason", None))
        out["safety_ratings"] = str(getattr(c0, "safety_ratings", None))
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None:
        out["prompt_feedback"] = str(feedback)
    return out


def log_empty_response(prefix: str, response: Any) -> None:
    summary = response_debug_summary(response)
    logger.warning(f"{prefix} empty response text. summary={summary}")
