"""Tests for the HTTP endpoints."""

import base64
import json

from fastapi.testclient import TestClient

from aichef.models.recipe import NUTRITION_KEYS, UNKNOWN_NUTRIENT_VALUE
from aichef.utils.exceptions import ModelFailure


def _idea(title):
    return {
        "title": title,
        "highlight": "Quick and fun.",
        "tag": ["Dinner"],
        "ingredients": ["1 can chickpeas"],
        "instructions": ["Roast.", "Serve."],
        "nutrition_info": [{"calories": 250, "protein": 12}],
    }


def _save(client, recipe):
    response = client.post("/save-recipe", json={"recipe": recipe})
    assert response.status_code == 200
    return response.json()["id"]


def test_health_check(client: TestClient):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_readiness_check(client: TestClient):
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "dependencies": {"context": True}}


def test_request_id_header_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_ask_ai_chef(client: TestClient, fake_model, sample_recipe):
    fake_model.responses = ["Yes, oat flour works; expect a denser crumb."]
    response = client.post("/ask-ai-chef", json={"question": "Oat flour?", "recipe": sample_recipe})

    assert response.status_code == 200
    assert response.json() == {"answer": "Yes, oat flour works; expect a denser crumb."}
    call = fake_model.calls[0]
    assert call["temperature"] == 0.7
    assert "• 1 avocado" in call["prompt"].system
    assert call["prompt"].user == "Oat flour?"


def test_ask_ai_chef_missing_question(client: TestClient, fake_model, sample_recipe):
    response = client.post("/ask-ai-chef", json={"recipe": sample_recipe})
    assert response.status_code == 400
    assert response.json()["error"] == "Question and recipe are required."
    assert fake_model.calls == []


def test_inspire_recipes(client: TestClient, fake_model, db):
    ideas = [_idea("Crispy Chickpeas"), _idea("Chickpea Curry"), _idea("Hummus Bowl")]
    fake_model.responses = ["Here are some ideas:\n" + json.dumps(ideas) + "\nEnjoy!"]

    response = client.post("/inspire-recipes", json={"prompt": "chickpeas"})

    assert response.status_code == 200
    body = response.json()
    assert [r["title"] for r in body["recipes"]] == ["Crispy Chickpeas", "Chickpea Curry", "Hummus Bowl"]
    assert body["failures"] == []
    nutrition = body["recipes"][0]["nutrition_info"]
    assert set(NUTRITION_KEYS) <= set(nutrition)
    assert nutrition["calories"] == 250
    assert nutrition["fat"] == UNKNOWN_NUTRIENT_VALUE
    assert fake_model.calls[0]["temperature"] == 0.8
    assert db.data["recipes"] == {}


def test_inspire_recipes_reports_invalid_elements(client: TestClient, fake_model):
    fake_model.responses = [json.dumps([_idea("Good"), _idea(""), _idea("Also good")])]
    body = client.post("/inspire-recipes", json={"prompt": "anything"}).json()
    assert [r["title"] for r in body["recipes"]] == ["Good", "Also good"]
    assert body["failures"][0]["index"] == 1
    assert body["failures"][0]["kind"] == "MissingField"


def test_inspire_recipes_unparseable(client: TestClient, fake_model):
    fake_model.responses = ["Sorry, I can only talk about cooking."]
    response = client.post("/inspire-recipes", json={"prompt": "chickpeas"})
    assert response.status_code == 422
    assert response.json()["error"] == "Could not interpret AI response"


def test_inspire_recipes_missing_prompt(client: TestClient, fake_model):
    response = client.post("/inspire-recipes", json={})
    assert response.status_code == 400
    assert fake_model.calls == []


def test_model_failure_is_bad_gateway(client: TestClient, fake_model):
    fake_model.error = ModelFailure("upstream 503: quota exhausted")
    response = client.post("/inspire-recipes", json={"prompt": "chickpeas"})
    assert response.status_code == 502
    assert response.json()["error"] == "AI request failed"
    assert "quota" not in response.text


def test_analyze_recipe_image(client: TestClient, fake_model, db, png_bytes):
    fake_model.responses = ['```json\n{"title": "Shakshuka", "ingredients": ["eggs"], "instructions": ["Cook."]}\n```']
    image = "data:image/png;base64," + base64.b64encode(png_bytes).decode()

    response = client.post("/analyze-recipe-image", json={"image": image})

    assert response.status_code == 200
    recipe = response.json()["recipe"]
    assert recipe["title"] == "Shakshuka"
    assert recipe["nutrition_info"]["protein"] == UNKNOWN_NUTRIENT_VALUE
    call = fake_model.calls[0]
    assert call["temperature"] == 0.2
    assert call["max_output_tokens"] == 1000
    assert call["prompt"].image_base64 == base64.b64encode(png_bytes).decode()
    assert db.data["recipes"] == {}


def test_analyze_recipe_image_truncated_output(client: TestClient, fake_model, db, png_bytes):
    fake_model.responses = ['{"title": "Lasagna", "ingredients": ["pasta", "chee']
    response = client.post("/analyze-recipe-image", json={"image": base64.b64encode(png_bytes).decode()})
    assert response.status_code == 422
    assert db.data["recipes"] == {}


def test_analyze_recipe_image_missing_title(client: TestClient, fake_model, png_bytes):
    fake_model.responses = ['{"ingredients": ["flour"]}']
    response = client.post("/analyze-recipe-image", json={"image": base64.b64encode(png_bytes).decode()})
    assert response.status_code == 422
    body = response.json()
    assert body["field"] == "title"
    assert body["candidate"]["ingredients"] == ["flour"]


def test_analyze_recipe_image_requires_image(client: TestClient, fake_model):
    response = client.post("/analyze-recipe-image", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Image data is required."
    assert fake_model.calls == []


def test_analyze_recipe_image_invalid_base64(client: TestClient, fake_model):
    response = client.post("/analyze-recipe-image", json={"image": "%%% not an image %%%"})
    assert response.status_code == 400
    assert fake_model.calls == []


def test_extract_from_image_upload(client: TestClient, fake_model, png_bytes):
    fake_model.responses = ['{"title": "Pancakes", "ingredients": ["flour"], "instructions": ["Fry."]}']
    response = client.post("/recipes/from-image", files={"file": ("card.png", png_bytes, "image/png")})
    assert response.status_code == 200
    assert response.json()["recipe"]["title"] == "Pancakes"


def test_extract_from_image_upload_rejects_non_image(client: TestClient, fake_model):
    response = client.post("/recipes/from-image", files={"file": ("notes.txt", b"just text", "text/plain")})
    assert response.status_code == 400
    assert fake_model.calls == []


def test_recipe_crud_flow(client: TestClient, sample_recipe):
    recipe_id = _save(client, sample_recipe)

    fetched = client.get(f"/api/recipes/{recipe_id}").json()["recipe"]
    assert fetched["title"] == sample_recipe["title"]
    assert fetched["nutrition_info"]["fat"] == UNKNOWN_NUTRIENT_VALUE

    listed = client.get("/api/recipes", params={"user_id": "user-1", "search": "avocado"}).json()["recipes"]
    assert [r["id"] for r in listed] == [recipe_id]

    updated = client.patch("/update-recipe", json={"id": recipe_id, "title": "Avocado Toast Supreme"})
    assert updated.status_code == 200
    assert updated.json()["recipe"]["title"] == "Avocado Toast Supreme"
    assert updated.json()["recipe"]["ingredients"] == sample_recipe["ingredients"]

    deleted = client.delete(f"/api/recipes/{recipe_id}")
    assert deleted.status_code == 200
    assert client.get(f"/api/recipes/{recipe_id}").status_code == 404


def test_list_recipes_with_tags(client: TestClient, sample_recipe):
    breakfast = _save(client, dict(sample_recipe, tag=["Breakfast"]))
    snack = _save(client, dict(sample_recipe, tag=["Snack"]))
    _save(client, dict(sample_recipe, tag=["Dinner"]))

    by_string = client.get("/api/recipes", params={"user_id": "user-1", "tag": "Breakfast,Snack"}).json()
    by_repeat = client.get("/api/recipes", params=[("user_id", "user-1"), ("tag", "Breakfast"), ("tag", "Snack")]).json()

    assert {r["id"] for r in by_string["recipes"]} == {breakfast, snack}
    assert {r["id"] for r in by_repeat["recipes"]} == {breakfast, snack}


def test_list_recipes_requires_user(client: TestClient):
    assert client.get("/api/recipes").status_code == 400


def test_save_recipe_rejects_missing_title(client: TestClient, sample_recipe):
    response = client.post("/save-recipe", json={"recipe": dict(sample_recipe, title="")})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid recipe."


def test_update_recipe_requires_id(client: TestClient):
    response = client.patch("/update-recipe", json={"title": "No id"})
    assert response.status_code == 400
    assert response.json()["error"] == "Recipe id is required."


def test_update_recipe_rejects_owner_change(client: TestClient, sample_recipe):
    recipe_id = _save(client, sample_recipe)
    response = client.patch("/update-recipe", json={"id": recipe_id, "user_id": "someone-else"})
    assert response.status_code == 400


def test_update_missing_recipe(client: TestClient):
    response = client.patch("/update-recipe", json={"id": "missing", "title": "x"})
    assert response.status_code == 404


def test_favorite_endpoints(client: TestClient, sample_recipe):
    recipe_id = _save(client, sample_recipe)
    pair = {"user_id": "user-2", "recipe_id": recipe_id}

    assert client.post("/favorite-recipe", json=pair).json()["success"] is True
    assert client.post("/favorite-recipe", json=pair).status_code == 200
    assert client.post("/favorite-recipe-check", json=pair).json() == {"isFavorited": True}

    listed = client.get("/api/favorite-recipes", params={"user_id": "user-2"}).json()["recipes"]
    assert [r["id"] for r in listed] == [recipe_id]

    assert client.request("DELETE", "/favorite-recipe", json=pair).json() == {"success": True}
    assert client.post("/favorite-recipe-check", json=pair).json() == {"isFavorited": False}
    assert client.request("DELETE", "/favorite-recipe", json=pair).status_code == 200


def test_favorite_requires_ids(client: TestClient):
    response = client.post("/favorite-recipe", json={"user_id": "user-1"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing user_id or recipe_id."


def test_favorite_missing_recipe(client: TestClient):
    response = client.post("/favorite-recipe", json={"user_id": "user-1", "recipe_id": "missing"})
    assert response.status_code == 404


def test_delete_recipe_cascades_favorites(client: TestClient, sample_recipe, db):
    recipe_id = _save(client, sample_recipe)
    for user in ("user-1", "user-2"):
        client.post("/favorite-recipe", json={"user_id": user, "recipe_id": recipe_id})

    response = client.delete(f"/api/recipes/{recipe_id}")

    assert response.json() == {"success": True, "favorites_removed": 2}
    assert db.data["favorites"] == {}
    check = client.post("/favorite-recipe-check", json={"user_id": "user-1", "recipe_id": recipe_id})
    assert check.json() == {"isFavorited": False}


def test_upload_recipe_image(client: TestClient, sample_recipe, bucket, png_bytes):
    recipe_id = _save(client, sample_recipe)
    encoded = base64.b64encode(png_bytes).decode()

    main = client.post(
        "/upload-recipe-image",
        json={"user_id": "user-1", "recipe_id": recipe_id, "image": encoded},
    ).json()
    supporting = client.post(
        "/upload-recipe-image",
        json={"user_id": "user-1", "recipe_id": recipe_id, "image": encoded, "image_type": "supporting"},
    ).json()

    assert main["recipe"]["image"] == main["url"]
    assert supporting["recipe"]["supporting_images"] == [supporting["url"]]
    assert supporting["recipe"]["image"] == main["url"]
    assert len(bucket.objects) == 2


def test_upload_recipe_image_missing_recipe(client: TestClient, png_bytes):
    response = client.post(
        "/upload-recipe-image",
        json={"user_id": "user-1", "recipe_id": "missing", "image": base64.b64encode(png_bytes).decode()},
    )
    assert response.status_code == 404


def test_store_failure_hides_cause(client: TestClient, db):
    db.fail_with = RuntimeError("credentials for project secret-project expired")
    response = client.get("/api/recipes", params={"user_id": "user-1"})
    assert response.status_code == 500
    assert response.json()["error"] == "Storage error"
    assert "secret-project" not in response.text


def test_ai_recipes_keep_null_extra_fields(client: TestClient, fake_model):
    idea = dict(_idea("Chickpea Salad"), servings=None, cuisine="Levantine")
    fake_model.responses = [json.dumps([idea])]

    recipe = client.post("/inspire-recipes", json={"prompt": "chickpeas"}).json()["recipes"][0]

    assert "servings" in recipe
    assert recipe["servings"] is None
    assert recipe["cuisine"] == "Levantine"
    assert "id" not in recipe
