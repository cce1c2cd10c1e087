"""Recipe persistence on Firestore.

Collections:
  recipes    auto-id documents holding the recipe fields
  favorites  one document per (user_id, recipe_id) pair, see favorites_service
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from aichef.utils.exceptions import (
    AIChefError,
    InvalidRequest,
    RecipeNotFound,
    StoreFailure,
    ValidationFailure,
)
from aichef.utils.recipe_validation import repair_fields, validate_candidate

logger = logging.getLogger(__name__)

# Firestore limits
BATCH_LIMIT = 500
ARRAY_CONTAINS_ANY_LIMIT = 30

IMMUTABLE_FIELDS = ("id", "user_id")


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise anything the store throws as ``StoreFailure``."""
    try:
        yield
    except AIChefError:
        raise
    except Exception as e:
        logger.error(f"Store operation '{operation}' failed: {e}", exc_info=True)
        raise StoreFailure(f"Store operation '{operation}' failed", cause=e) from e


def parse_tag_filter(tag: Union[None, str, Iterable[str]]) -> List[str]:
    """Accept ``"a,b"``, ``["a", "b"]`` or ``["a,b"]``; drop blanks."""
    if not tag:
        return []
    values = [tag] if isinstance(tag, str) else list(tag)
    tags: List[str] = []
    for value in values:
        for part in str(value).split(","):
            part = part.strip()
            if part and part not in tags:
                tags.append(part)
    return tags


def matches_filters(recipe: Mapping[str, Any], search: Optional[str], tags: List[str]) -> bool:
    """Case-insensitive title substring AND tag-set overlap. Missing filters match."""
    if search:
        title = str(recipe.get("title") or "")
        if search.lower() not in title.lower():
            return False
    if tags:
        recipe_tags = recipe.get("tag") or []
        if isinstance(recipe_tags, str):
            recipe_tags = [recipe_tags]
        if not set(tags).intersection(recipe_tags):
            return False
    return True


class RecipeStore:
    """Create/read/update/delete for recipes, with favorites cascade on delete."""

    def __init__(self, db, recipes_collection: str = "recipes", favorites_collection: str = "favorites") -> None:
        self._db = db
        self._recipes = db.collection(recipes_collection)
        self._favorites = db.collection(favorites_collection)

    def create(self, recipe: Mapping[str, Any]) -> str:
        """
        Validate and store a new recipe.

        Returns:
            The new recipe id

        Raises:
            ValidationFailure: If the recipe does not validate
            InvalidRequest: If ``user_id`` is missing
            StoreFailure: On store errors
        """
        result = validate_candidate(recipe)
        if not result.ok:
            issue = result.failure
            raise ValidationFailure(
                issue.message if issue else "Invalid recipe",
                details={"kind": issue.kind if issue else None, "field": issue.field if issue else None},
            )
        if not result.recipe.user_id:
            raise InvalidRequest("user_id is required")

        record = result.recipe.to_record()
        record["created_at"] = datetime.now(timezone.utc)

        with store_errors("create"):
            doc_ref = self._recipes.document()
            doc_ref.set(record)

        logger.info(
            f"Created recipe {doc_ref.id}",
            extra={"recipe_id": doc_ref.id, "user_id": record["user_id"], "incomplete": result.incomplete},
        )
        return doc_ref.id

    def get_by_id(self, recipe_id: str) -> Optional[Dict[str, Any]]:
        """Return the recipe with its ``id``, or ``None`` if it doesn't exist."""
        if not recipe_id:
            return None
        with store_errors("get_by_id"):
            snapshot = self._recipes.document(recipe_id).get()
        return self._to_dict(snapshot) if snapshot.exists else None

    def get_many(self, recipe_ids: List[str]) -> List[Dict[str, Any]]:
        """Fetch several recipes in one round trip, keeping ``recipe_ids`` order.

        Ids that no longer resolve are skipped.
        """
        if not recipe_ids:
            return []
        refs = [self._recipes.document(rid) for rid in recipe_ids]
        with store_errors("get_many"):
            found = {s.id: self._to_dict(s) for s in self._db.get_all(refs) if s.exists}
        return [found[rid] for rid in recipe_ids if rid in found]

    def list_by_owner(
        self,
        user_id: str,
        search: Optional[str] = None,
        tags: Union[None, str, Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        List a user's recipes, optionally filtered by title and tags.

        Tag overlap runs in the query when the list fits Firestore's
        ``array_contains_any`` limit. Firestore has no substring operator, so
        the title search always runs here.
        """
        if not user_id:
            raise InvalidRequest("user_id is required")

        tag_list = parse_tag_filter(tags)
        query = self._recipes.where(filter=FieldFilter("user_id", "==", user_id))
        if tag_list and len(tag_list) <= ARRAY_CONTAINS_ANY_LIMIT:
            query = query.where(filter=FieldFilter("tag", "array_contains_any", tag_list))

        with store_errors("list_by_owner"):
            recipes = [self._to_dict(s) for s in query.stream()]

        return [r for r in recipes if matches_filters(r, search, tag_list)]

    def update(self, recipe_id: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Partial merge: write only the supplied fields.

        Returns:
            The recipe after the update

        Raises:
            InvalidRequest: On a missing id, an immutable field, or nothing to update
            RecipeNotFound: If the recipe doesn't exist
        """
        if not recipe_id:
            raise InvalidRequest("Recipe id is required.")

        rejected = [name for name in IMMUTABLE_FIELDS if name in fields]
        if rejected:
            raise InvalidRequest(f"Field(s) cannot be updated: {', '.join(rejected)}")
        if not fields:
            raise InvalidRequest("No fields to update.")
        if any(not name for name in fields):
            raise InvalidRequest("Field names cannot be empty.")

        changes = repair_fields(fields)
        if "title" in changes and not changes["title"]:
            raise InvalidRequest("title cannot be empty")

        with store_errors("update"):
            doc_ref = self._recipes.document(recipe_id)
            if not doc_ref.get().exists:
                raise RecipeNotFound(f"Recipe {recipe_id} not found")
            # Quoted: a dotted name is one top-level field, not a nested path.
            doc_ref.update({FieldPath(name).to_api_repr(): value for name, value in changes.items()})
            updated = doc_ref.get()

        logger.info(f"Updated recipe {recipe_id}", extra={"recipe_id": recipe_id, "fields": sorted(changes)})
        return self._to_dict(updated)

    def delete(self, recipe_id: str) -> int:
        """
        Delete a recipe and every favorite pointing at it.

        Favorites and the recipe go out in one batch. When there are more
        favorites than one batch holds, the overflow is deleted first, so a
        favorite never outlives its recipe.

        Returns:
            Number of favorite relations removed
        """
        if not recipe_id:
            raise InvalidRequest("Recipe id is required.")

        with store_errors("delete"):
            recipe_ref = self._recipes.document(recipe_id)
            if not recipe_ref.get().exists:
                raise RecipeNotFound(f"Recipe {recipe_id} not found")

            favorite_refs = [
                s.reference
                for s in self._favorites.where(filter=FieldFilter("recipe_id", "==", recipe_id)).stream()
            ]

            pending = favorite_refs
            while len(pending) >= BATCH_LIMIT:
                batch = self._db.batch()
                for ref in pending[:BATCH_LIMIT]:
                    batch.delete(ref)
                batch.commit()
                pending = pending[BATCH_LIMIT:]

            batch = self._db.batch()
            for ref in pending:
                batch.delete(ref)
            batch.delete(recipe_ref)
            batch.commit()

        logger.info(
            f"Deleted recipe {recipe_id}",
            extra={"recipe_id": recipe_id, "favorites_removed": len(favorite_refs)},
        )
        return len(favorite_refs)

    @staticmethod
    def _to_dict(snapshot) -> Dict[str, Any]:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return data
