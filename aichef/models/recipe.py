"""Recipe Pydantic models."""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Value written for a nutrient the model (or caller) could not supply.
UNKNOWN_NUTRIENT_VALUE = -1

NUTRITION_KEYS = (
    "calories",
    "fat",
    "cholesterol",
    "sodium",
    "carbs",
    "fiber",
    "sugar",
    "protein",
)

NutrientValue = Union[int, float, str]


class NutritionInfo(BaseModel):
    """Flat nutrition mapping. Every key is always present."""

    model_config = ConfigDict(extra="allow")

    calories: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Calories per serving")
    fat: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Fat in grams")
    cholesterol: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Cholesterol in milligrams")
    sodium: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Sodium in milligrams")
    carbs: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Carbohydrates in grams")
    fiber: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Fiber in grams")
    sugar: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Sugar in grams")
    protein: NutrientValue = Field(UNKNOWN_NUTRIENT_VALUE, description="Protein in grams")


class Recipe(BaseModel):
    """Canonical recipe shape shared by AI candidates and stored recipes.

    Unknown fields are kept so that newer clients can round-trip data this
    service does not know about yet.
    """

    id: Optional[str] = Field(None, description="Recipe ID (null until stored)")
    user_id: Optional[str] = Field(None, description="Owner identifier")
    title: str = Field(..., min_length=1, description="Recipe title")
    highlight: str = Field("", description="One-sentence teaser")
    tag: List[str] = Field(default_factory=list, description="Categories like 'Dinner' or 'Vegan'")
    ingredients: List[str] = Field(default_factory=list, description="One ingredient per entry")
    instructions: List[str] = Field(default_factory=list, description="Steps in execution order")
    nutrition_info: NutritionInfo = Field(default_factory=NutritionInfo)
    image: Optional[str] = Field(None, description="Main image URL")
    supporting_images: List[str] = Field(default_factory=list, description="Additional image URLs")
    created_at: Optional[datetime] = Field(None, description="Assigned by the store")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "title": "Avocado Toast Deluxe",
                "highlight": "A savory toast with creamy avocado, chili flakes, and lime.",
                "tag": ["Breakfast", "Snack"],
                "ingredients": ["2 slices bread", "1 avocado", "1/2 lime", "Salt", "Chili flakes"],
                "instructions": [
                    "Toast the bread.",
                    "Mash the avocado with lime and salt.",
                    "Spread on toast and sprinkle chili flakes.",
                ],
                "nutrition_info": {
                    "calories": 200,
                    "fat": 5,
                    "cholesterol": 30,
                    "sodium": 10,
                    "carbs": 2,
                    "fiber": 1,
                    "sugar": 100,
                    "protein": 5,
                },
            }
        },
    )

    def to_record(self) -> dict:
        """Dump for persistence. The store assigns ``id`` and ``created_at``."""
        record = self.model_dump(exclude={"id"})
        if record.get("created_at") is None:
            record.pop("created_at", None)
        return record
