"""Shared API dependencies."""

from fastapi import Request

from aichef.core.context import AppContext
from aichef.services.favorites_service import FavoritesService
from aichef.services.image_service import ImageService
from aichef.services.media_storage import MediaStorage
from aichef.services.recipe_assistant import RecipeAssistant
from aichef.services.recipe_store import RecipeStore


def get_context(request: Request) -> AppContext:
    """The process-wide context attached to the app at startup."""
    return request.app.state.context


def get_recipe_store(request: Request) -> RecipeStore:
    return get_context(request).recipes


def get_favorites_service(request: Request) -> FavoritesService:
    return get_context(request).favorites


def get_media_storage(request: Request) -> MediaStorage:
    return get_context(request).media


def get_image_service(request: Request) -> ImageService:
    return get_context(request).images


def get_recipe_assistant(request: Request) -> RecipeAssistant:
    return get_context(request).assistant
