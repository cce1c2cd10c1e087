"""Custom exception classes."""

from typing import Any, Dict, Optional


class AIChefError(Exception):
    """Base exception for the AI Chef backend.

    ``public_message`` is what the caller sees; the exception text itself may
    carry internal detail and is only logged.
    """

    public_message = "Internal server error"

    def __init__(self, message: str = "", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.public_message)
        self.details: Dict[str, Any] = details or {}


class InvalidRequest(AIChefError):
    """Raised when required caller input is missing or malformed."""

    public_message = "Invalid request"


class RecipeNotFound(AIChefError):
    """Raised when a recipe id does not resolve to a stored recipe."""

    public_message = "Recipe not found"


class ModelFailure(AIChefError):
    """Raised when the generative model call fails or times out."""

    public_message = "AI request failed"


class ParseFailure(AIChefError):
    """Raised when model output contains no recoverable JSON."""

    public_message = "Could not interpret AI response"


class ValidationFailure(AIChefError):
    """Raised when a recipe is structurally present but incomplete or invalid."""

    public_message = "Recipe validation failed"


class StoreFailure(AIChefError):
    """Raised when the persistence layer fails. Carries the underlying cause."""

    public_message = "Storage error"

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ImageProcessingError(InvalidRequest):
    """Raised when an image payload cannot be decoded or is unsupported."""

    public_message = "Invalid image"
