"""AI endpoints: recipe Q&A, recipe ideas, recipe extraction from images."""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile

from aichef.api.dependencies import get_recipe_assistant
from aichef.middleware.rate_limit import ai_rate_limit
from aichef.models.requests import (
    AnalyzeImageRequest,
    AskChefRequest,
    AskChefResponse,
    CandidateFailure,
    ExtractedRecipeResponse,
    InspireRequest,
    InspireResponse,
)
from aichef.services.completion_parser import RecipeParseResult
from aichef.services.recipe_assistant import RecipeAssistant

logger = logging.getLogger(__name__)
router = APIRouter(tags=["ai"])


@router.post("/ask-ai-chef", response_model=AskChefResponse)
@ai_rate_limit
async def ask_ai_chef(
    request: Request,
    body: AskChefRequest,
    assistant: RecipeAssistant = Depends(get_recipe_assistant),
) -> AskChefResponse:
    """
    Answer a cooking question in the context of one recipe.

    - **question**: What the cook wants to know
    - **recipe**: The full recipe the question is about
    """
    logger.info(
        "Route /ask-ai-chef called",
        extra={
            "route": "/ask-ai-chef",
            "params": {
                "question": (body.question or "")[:200],
                "recipe_title": (body.recipe or {}).get("title"),
            },
        },
    )

    answer = await assistant.answer_question(body.question, body.recipe)
    return AskChefResponse(answer=answer)


@router.post("/inspire-recipes", response_model=InspireResponse)
@ai_rate_limit
async def inspire_recipes(
    request: Request,
    body: InspireRequest,
    assistant: RecipeAssistant = Depends(get_recipe_assistant),
) -> InspireResponse:
    """
    Generate three recipe ideas from a free-text prompt.

    Ideas that fail validation are reported in ``failures`` by index; the
    valid ones are still returned.
    """
    logger.info(
        "Route /inspire-recipes called",
        extra={"route": "/inspire-recipes", "params": {"prompt": (body.prompt or "")[:200]}},
    )

    result = await assistant.generate_ideas(body.prompt)
    result.raise_for_failure()

    return InspireResponse(
        recipes=[recipe.model_dump(mode="json", exclude={"id", "created_at"}) for recipe in result.recipes],
        failures=[
            CandidateFailure(index=f.index, kind=f.kind, message=f.message, candidate=f.candidate)
            for f in result.failures
        ],
    )


@router.post("/analyze-recipe-image", response_model=ExtractedRecipeResponse)
@ai_rate_limit
async def analyze_recipe_image(
    request: Request,
    body: AnalyzeImageRequest,
    assistant: RecipeAssistant = Depends(get_recipe_assistant),
) -> ExtractedRecipeResponse:
    """
    Extract a recipe from a base64-encoded image (data URL prefix allowed).

    Nothing is saved; the client confirms and calls /save-recipe.
    """
    logger.info(
        "Route /analyze-recipe-image called",
        extra={"route": "/analyze-recipe-image", "params": {"image_chars": len(body.image or "")}},
    )

    result = await assistant.extract_from_image(body.image)
    return _extraction_response(result)


@router.post("/recipes/from-image", response_model=ExtractedRecipeResponse)
@ai_rate_limit
async def extract_from_image_upload(
    request: Request,
    file: UploadFile = File(..., description="Image file to extract recipe from"),
    assistant: RecipeAssistant = Depends(get_recipe_assistant),
) -> ExtractedRecipeResponse:
    """
    Same as /analyze-recipe-image for multipart uploads.

    - **file**: Image file (JPEG, PNG, or WebP)
    """
    logger.info(
        "Route /recipes/from-image called",
        extra={
            "route": "/recipes/from-image",
            "params": {"filename": file.filename, "content_type": file.content_type},
        },
    )

    image_data = await file.read()
    try:
        result = await assistant.extract_from_image(image_data)
    finally:
        image_data = None
        await file.close()
    return _extraction_response(result)


def _extraction_response(result: RecipeParseResult) -> ExtractedRecipeResponse:
    result.raise_for_failure()
    return ExtractedRecipeResponse(
        recipe=result.recipe.model_dump(mode="json", exclude={"id", "created_at"}),
        incomplete=result.incomplete,
    )
