"""Favorite recipe endpoints."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from aichef.api.dependencies import get_favorites_service
from aichef.models.requests import FavoriteRequest
from aichef.services.favorites_service import FavoritesService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["favorites"])


@router.post("/favorite-recipe")
def favorite_recipe(
    body: FavoriteRequest,
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Dict[str, Any]:
    data = favorites.favorite(body.user_id, body.recipe_id)
    return {"success": True, "data": data}


@router.delete("/favorite-recipe")
def unfavorite_recipe(
    body: FavoriteRequest,
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Dict[str, Any]:
    favorites.unfavorite(body.user_id, body.recipe_id)
    return {"success": True}


@router.post("/favorite-recipe-check")
def favorite_recipe_check(
    body: FavoriteRequest,
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Dict[str, bool]:
    return {"isFavorited": favorites.is_favorited(body.user_id, body.recipe_id)}


@router.get("/api/favorite-recipes")
def list_favorite_recipes(
    user_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    tag: Optional[List[str]] = Query(None),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Dict[str, Any]:
    """A user's favorite recipes, filtered like /api/recipes."""
    return {"recipes": favorites.list_favorites_for_user(user_id, search=search, tags=tag)}
