"""Process-scoped dependencies and per-request context."""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass

from aichef.config import Settings
from aichef.services.favorites_service import FavoritesService
from aichef.services.gemini_service import GeminiService
from aichef.services.image_service import ImageService
from aichef.services.media_storage import MediaStorage
from aichef.services.recipe_assistant import RecipeAssistant
from aichef.services.recipe_store import RecipeStore

# Context variable to store request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def generate_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str:
    return request_id_var.get("")


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


@dataclass
class AppContext:
    """Everything a handler needs, built once per process and injected."""

    settings: Settings
    recipes: RecipeStore
    favorites: FavoritesService
    media: MediaStorage
    images: ImageService
    assistant: RecipeAssistant


def assemble_context(settings: Settings, *, db, bucket, model) -> AppContext:
    """Wire services around already-constructed clients."""
    recipes = RecipeStore(db, settings.recipes_collection, settings.favorites_collection)
    images = ImageService(
        max_bytes=settings.max_image_bytes,
        max_dim=settings.vision_max_dim,
        jpeg_quality=settings.vision_jpeg_quality,
    )
    return AppContext(
        settings=settings,
        recipes=recipes,
        favorites=FavoritesService(db, recipes, settings.favorites_collection),
        media=MediaStorage(bucket),
        images=images,
        assistant=RecipeAssistant(model, images, settings),
    )


def build_context(settings: Settings) -> AppContext:
    """Create the real Firebase and Gemini clients and wire the services."""
    from aichef.services.firebase import get_firestore_client, get_storage_bucket, init_firebase_app

    firebase_app = init_firebase_app(settings)
    return assemble_context(
        settings,
        db=get_firestore_client(firebase_app),
        bucket=get_storage_bucket(firebase_app),
        model=GeminiService(settings),
    )
