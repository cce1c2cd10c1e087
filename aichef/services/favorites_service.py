"""Favorite relations between users and recipes.

Document ID: sha256(user_id, recipe_id)[:40]. One pair maps to one document,
so a repeated or racing favorite is an upsert and can never leave two rows.
"""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from google.cloud.firestore_v1.base_query import FieldFilter

from aichef.services.recipe_store import RecipeStore, matches_filters, parse_tag_filter, store_errors
from aichef.utils.exceptions import InvalidRequest, RecipeNotFound

logger = logging.getLogger(__name__)


def favorite_doc_id(user_id: str, recipe_id: str) -> str:
    """Deterministic document ID for a (user, recipe) pair."""
    h = hashlib.sha256(f"{user_id}\x1f{recipe_id}".encode()).hexdigest()
    return h[:40]


def _require_pair(user_id: Optional[str], recipe_id: Optional[str]) -> None:
    if not user_id or not recipe_id:
        raise InvalidRequest("Missing user_id or recipe_id.")


class FavoritesService:
    """Favorite/unfavorite, membership checks and favorites listing."""

    def __init__(self, db, recipe_store: RecipeStore, favorites_collection: str = "favorites") -> None:
        self._favorites = db.collection(favorites_collection)
        self._recipes = recipe_store

    def favorite(self, user_id: str, recipe_id: str) -> Dict[str, Any]:
        """Mark a recipe as favorite. Repeating the call is a no-op."""
        _require_pair(user_id, recipe_id)

        if self._recipes.get_by_id(recipe_id) is None:
            raise RecipeNotFound(f"Recipe {recipe_id} not found")

        with store_errors("favorite"):
            doc_ref = self._favorites.document(favorite_doc_id(user_id, recipe_id))
            existing = doc_ref.get()
            if existing.exists:
                logger.info(f"Recipe {recipe_id} already favorited by {user_id}")
                return existing.to_dict()

            data = {
                "user_id": user_id,
                "recipe_id": recipe_id,
                "created_at": datetime.now(timezone.utc),
            }
            doc_ref.set(data)

        logger.info(f"Recipe {recipe_id} favorited by {user_id}")
        return data

    def unfavorite(self, user_id: str, recipe_id: str) -> None:
        """Remove the relation. Absent relations are not an error."""
        _require_pair(user_id, recipe_id)
        with store_errors("unfavorite"):
            self._favorites.document(favorite_doc_id(user_id, recipe_id)).delete()
        logger.info(f"Recipe {recipe_id} unfavorited by {user_id}")

    def is_favorited(self, user_id: str, recipe_id: str) -> bool:
        _require_pair(user_id, recipe_id)
        with store_errors("is_favorited"):
            return self._favorites.document(favorite_doc_id(user_id, recipe_id)).get().exists

    def list_favorites_for_user(
        self,
        user_id: str,
        search: Optional[str] = None,
        tags: Union[None, str, Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """The user's favorite recipes, filtered like ``RecipeStore.list_by_owner``."""
        if not user_id:
            raise InvalidRequest("user_id is required")

        with store_errors("list_favorites_for_user"):
            recipe_ids = [
                s.to_dict().get("recipe_id")
                for s in self._favorites.where(filter=FieldFilter("user_id", "==", user_id)).stream()
            ]

        recipes = self._recipes.get_many([rid for rid in recipe_ids if rid])
        tag_list = parse_tag_filter(tags)
        return [r for r in recipes if matches_filters(r, search, tag_list)]
