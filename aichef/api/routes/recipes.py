"""Recipe CRUD endpoints.

Handlers are plain functions: the Firestore client is blocking, so FastAPI
runs them in its thread pool.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from aichef.api.dependencies import get_image_service, get_media_storage, get_recipe_store
from aichef.models.requests import SaveRecipeRequest, UploadImageRequest
from aichef.services.image_service import ImageService
from aichef.services.media_storage import MediaStorage
from aichef.services.recipe_store import RecipeStore
from aichef.utils.exceptions import InvalidRequest, RecipeNotFound

logger = logging.getLogger(__name__)
router = APIRouter(tags=["recipes"])


@router.get("/api/recipes")
def list_recipes(
    user_id: Optional[str] = Query(None, description="Owner of the recipes"),
    search: Optional[str] = Query(None, description="Case-insensitive title search"),
    tag: Optional[List[str]] = Query(None, description="Tags, comma-separated or repeated"),
    store: RecipeStore = Depends(get_recipe_store),
) -> Dict[str, Any]:
    """List a user's recipes, optionally filtered by title and tags."""
    if not user_id:
        raise InvalidRequest("user_id is required")
    return {"recipes": store.list_by_owner(user_id, search=search, tags=tag)}


@router.get("/api/recipes/{recipe_id}")
def get_recipe(recipe_id: str, store: RecipeStore = Depends(get_recipe_store)) -> Dict[str, Any]:
    recipe = store.get_by_id(recipe_id)
    if recipe is None:
        raise RecipeNotFound(f"Recipe {recipe_id} not found")
    return {"recipe": recipe}


@router.post("/save-recipe")
def save_recipe(body: SaveRecipeRequest, store: RecipeStore = Depends(get_recipe_store)) -> Dict[str, Any]:
    """
    Save a recipe (typed by the user or a confirmed AI candidate).

    The recipe goes through the same validation as model output, so missing
    nutrition values are filled before it is stored.
    """
    recipe = body.recipe
    if not recipe or not str(recipe.get("title") or "").strip():
        raise InvalidRequest("Invalid recipe.")

    logger.info(
        "Route /save-recipe called",
        extra={"route": "/save-recipe", "params": {"title": recipe.get("title"), "user_id": recipe.get("user_id")}},
    )

    recipe_id = store.create(recipe)
    return {"success": True, "id": recipe_id, "recipe": store.get_by_id(recipe_id)}


@router.patch("/update-recipe")
def update_recipe(
    body: Dict[str, Any] = Body(..., description="`id` plus the fields to change"),
    store: RecipeStore = Depends(get_recipe_store),
) -> Dict[str, Any]:
    """Partial update: only the supplied fields are written."""
    fields = dict(body)
    recipe_id = fields.pop("id", None)
    if not recipe_id:
        raise InvalidRequest("Recipe id is required.")

    updated = store.update(str(recipe_id), fields)
    return {"success": True, "recipe": updated}


@router.delete("/api/recipes/{recipe_id}")
def delete_recipe(recipe_id: str, store: RecipeStore = Depends(get_recipe_store)) -> Dict[str, Any]:
    """Delete a recipe together with every favorite pointing at it."""
    removed = store.delete(recipe_id)
    return {"success": True, "favorites_removed": removed}


@router.post("/upload-recipe-image")
def upload_recipe_image(
    body: UploadImageRequest,
    store: RecipeStore = Depends(get_recipe_store),
    media: MediaStorage = Depends(get_media_storage),
    images: ImageService = Depends(get_image_service),
) -> Dict[str, Any]:
    """
    Upload a base64 image for a recipe and record its URL.

    - **image_type**: ``main`` sets ``image``; ``supporting`` appends to
      ``supporting_images``
    """
    if not body.user_id or not body.recipe_id:
        raise InvalidRequest("Missing user_id or recipe_id.")

    recipe = store.get_by_id(body.recipe_id)
    if recipe is None:
        raise RecipeNotFound(f"Recipe {body.recipe_id} not found")

    image_bytes, mime_type = images.validate_image(images.decode_base64_image(body.image or ""))
    url = media.upload_recipe_image(image_bytes, body.user_id, body.recipe_id, body.image_type, mime_type)

    if body.image_type == "main":
        changes: Dict[str, Any] = {"image": url}
    else:
        existing = list(recipe.get("supporting_images") or [])
        changes = {"supporting_images": existing if url in existing else existing + [url]}

    updated = store.update(body.recipe_id, changes)
    return {"success": True, "url": url, "recipe": updated}
