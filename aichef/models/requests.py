"""Request/response models for the HTTP surface.

Required caller inputs are declared optional; the services check them and
answer with a 400 naming the missing field.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AskChefRequest(BaseModel):
    question: Optional[str] = None
    recipe: Optional[Dict[str, Any]] = None


class AskChefResponse(BaseModel):
    answer: str


class InspireRequest(BaseModel):
    prompt: Optional[str] = None


class CandidateFailure(BaseModel):
    """One ideation element that did not validate."""

    index: int
    kind: str
    message: str
    candidate: Optional[Dict[str, Any]] = None


class InspireResponse(BaseModel):
    recipes: List[Dict[str, Any]]
    failures: List[CandidateFailure] = Field(default_factory=list)


class AnalyzeImageRequest(BaseModel):
    image: Optional[str] = Field(None, description="Base64 image, optionally a data URL")


class ExtractedRecipeResponse(BaseModel):
    recipe: Dict[str, Any]
    incomplete: List[str] = Field(default_factory=list)


class SaveRecipeRequest(BaseModel):
    recipe: Optional[Dict[str, Any]] = None


class FavoriteRequest(BaseModel):
    user_id: Optional[str] = None
    recipe_id: Optional[str] = None


class UploadImageRequest(BaseModel):
    user_id: Optional[str] = None
    recipe_id: Optional[str] = None
    image: Optional[str] = None
    image_type: str = Field("main", description="'main' or 'supporting'")
