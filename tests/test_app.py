from __future__ import annotations

from pathlib import Path
import json
import random
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from recipebox import create_app
from recipebox.assistant import PASTA_REPLY
from recipebox.errors import StorageError
from recipebox.storage import InMemoryKeyValueStore
from recipebox.store import RecipeStore


class BrokenKeyValueStore(InMemoryKeyValueStore):
    """Backend that accepts reads but refuses every write."""

    def set(self, key, value):
        raise StorageError("read-only device")


def create_test_client(backend=None):
    store = RecipeStore(backend if backend is not None else InMemoryKeyValueStore())
    app = create_app(store=store, rng=random.Random(7))
    app.config.update(TESTING=True)
    return app.test_client(), store


def recipe_payload(**overrides):
    data = {
        "name": "Chocolate Cake",
        "cookingTime": 60,
        "difficulty": "Medium",
        "cuisine": "French",
        "ingredients": ["flour", "sugar", "cocoa"],
        "instructions": ["Mix", "Bake"],
    }
    data.update(overrides)
    return data


def add_recipe(client, **overrides):
    response = client.post("/recipes", json=recipe_payload(**overrides))
    assert response.status_code == 201
    return response.get_json()["recipe"]


def test_factory_loads_store():
    backend = InMemoryKeyValueStore({"recipes": "[]"})
    client, store = create_test_client(backend)

    response = client.get("/status")

    assert response.get_json() == {"status": "ready", "error": None, "recipes": 0}


def test_status_surfaces_load_failure():
    client, _ = create_test_client(InMemoryKeyValueStore({"recipes": "oops"}))

    body = client.get("/status").get_json()

    assert body["status"] == "error"
    assert body["error"] == "Failed to load recipes"


def test_can_add_recipe():
    client, store = create_test_client()

    recipe = add_recipe(client)

    assert recipe["cookedCount"] == 0
    assert "createdAt" in recipe
    assert [r.name for r in store.recipes] == ["Chocolate Cake"]


def test_cannot_add_recipe_without_ingredients():
    client, store = create_test_client()

    response = client.post("/recipes", json=recipe_payload(ingredients=[]))

    assert response.status_code == 400
    assert response.get_json() == {"error": "Please add at least one ingredient"}
    assert store.recipes == ()


def test_cannot_add_recipe_without_json_body():
    client, _ = create_test_client()

    response = client.post("/recipes", data="name=Cake")

    assert response.status_code == 400


def test_list_recipes_supports_search_and_filters():
    client, _ = create_test_client()
    add_recipe(client, name="Quick Hard Stew", difficulty="Hard", cookingTime=20)
    add_recipe(client, name="Slow Hard Stew", difficulty="Hard", cookingTime=45)
    add_recipe(client, name="Easy Salad", difficulty="Easy", cookingTime=10)

    hard_and_quick = client.get("/recipes?difficulty=Hard&max_time=30").get_json()["recipes"]
    stews = client.get("/recipes?q=stew").get_json()["recipes"]

    assert [r["name"] for r in hard_and_quick] == ["Quick Hard Stew"]
    assert [r["name"] for r in stews] == ["Quick Hard Stew", "Slow Hard Stew"]


def test_list_recipes_rejects_unknown_difficulty():
    client, _ = create_test_client()

    assert client.get("/recipes?difficulty=Extreme").status_code == 400


def test_update_recipe_keeps_identity_and_history():
    client, store = create_test_client()
    recipe = add_recipe(client)
    client.post(f"/recipes/{recipe['id']}/cooked")

    response = client.put(
        f"/recipes/{recipe['id']}",
        json=recipe_payload(name="Dark Chocolate Cake", ingredients=["flour", "dark chocolate"]),
    )

    assert response.status_code == 200
    updated = store.get(recipe["id"])
    assert updated.name == "Dark Chocolate Cake"
    assert updated.ingredients == ("flour", "dark chocolate")
    assert updated.cooked_count == 1
    assert updated.created_at.isoformat() == recipe["createdAt"]


def test_unknown_recipe_answers_not_found():
    client, store = create_test_client()
    add_recipe(client)
    before = store.recipes

    assert client.get("/recipes/nope").status_code == 404
    assert client.put("/recipes/nope", json=recipe_payload()).status_code == 404
    assert client.delete("/recipes/nope").status_code == 404
    assert client.post("/recipes/nope/cooked").status_code == 404
    response = client.put("/recipes/nope/rating", json={"rating": 3})

    assert response.status_code == 404
    assert response.get_json() == {"error": "Recipe not found."}
    assert store.recipes == before


def test_delete_recipe_removes_item():
    client, store = create_test_client()
    recipe = add_recipe(client)

    response = client.delete(f"/recipes/{recipe['id']}")

    assert response.status_code == 200
    assert store.get(recipe["id"]) is None


def test_clear_all_recipes():
    client, store = create_test_client()
    add_recipe(client)
    add_recipe(client, name="Soup")

    assert client.delete("/recipes").status_code == 200
    assert store.recipes == ()


def test_mark_cooked_and_rate():
    client, store = create_test_client()
    recipe = add_recipe(client)

    cooked = client.post(f"/recipes/{recipe['id']}/cooked").get_json()
    rated = client.put(f"/recipes/{recipe['id']}/rating", json={"rating": 5}).get_json()

    assert cooked["recipe"]["cookedCount"] == 1
    assert "Great job cooking Chocolate Cake!" in cooked["message"]
    assert rated["recipe"]["rating"] == 5
    assert store.get(recipe["id"]).last_cooked is not None


def test_rating_out_of_range_is_rejected():
    client, store = create_test_client()
    recipe = add_recipe(client)

    response = client.put(f"/recipes/{recipe['id']}/rating", json={"rating": 7})

    assert response.status_code == 400
    assert store.get(recipe["id"]).rating is None


def test_recent_popular_and_random():
    client, _ = create_test_client()
    first = add_recipe(client, name="First")
    second = add_recipe(client, name="Second")
    client.post(f"/recipes/{second['id']}/cooked")
    client.post(f"/recipes/{first['id']}/cooked")
    client.post(f"/recipes/{second['id']}/cooked")

    recent = client.get("/recipes/recent?n=1").get_json()["recipes"]
    popular = client.get("/recipes/popular").get_json()["recipes"]
    surprise = client.get("/recipes/random").get_json()["recipe"]

    assert [r["name"] for r in recent] == ["Second"]
    assert [r["name"] for r in popular] == ["Second", "First"]
    assert surprise["name"] in {"First", "Second"}


def test_random_recipe_on_empty_collection():
    client, _ = create_test_client()

    response = client.get("/recipes/random")

    assert response.status_code == 404
    assert "Add some recipes first" in response.get_json()["error"]


def test_ingredient_search():
    client, _ = create_test_client()
    add_recipe(client, name="Tomato Soup", ingredients=["Tomatoes", "basil"])
    add_recipe(client, name="Omelette", ingredients=["eggs"])

    found = client.get("/search/ingredients?ingredient=tomato&ingredient=cheese").get_json()
    everything = client.get("/search/ingredients").get_json()

    assert [r["name"] for r in found["recipes"]] == ["Tomato Soup"]
    assert len(everything["recipes"]) == 2


def test_stats():
    client, _ = create_test_client()
    recipe = add_recipe(client, rating=4)
    add_recipe(client, name="Ramen", cuisine="Japanese", cookingTime=30)
    client.post(f"/recipes/{recipe['id']}/cooked")

    stats = client.get("/stats").get_json()

    assert stats == {
        "total_recipes": 2,
        "total_cooked": 1,
        "average_rating": 2.0,
        "top_cuisine": "French",
        "total_cooking_minutes": 60,
        "most_cooked_recipe": "Chocolate Cake",
    }


def test_assistant_endpoints():
    client, _ = create_test_client()

    intro = client.get("/assistant").get_json()
    reply = client.post("/assistant", json={"message": "How do I cook pasta?"}).get_json()
    blank = client.post("/assistant", json={"message": "  "})

    assert intro["quick_questions"]
    assert reply == {"reply": PASTA_REPLY}
    assert blank.status_code == 400


def test_persist_failure_is_advisory():
    backend = BrokenKeyValueStore()
    client, store = create_test_client(backend)

    response = client.post("/recipes", json=recipe_payload())

    assert response.status_code == 201
    assert response.get_json()["warning"] == "Failed to save recipes"
    assert len(store.recipes) == 1


def test_mutations_are_persisted_as_json():
    backend = InMemoryKeyValueStore()
    client, _ = create_test_client(backend)
    add_recipe(client)

    stored = json.loads(backend.get("recipes"))

    assert stored[0]["name"] == "Chocolate Cake"
    assert stored[0]["instructions"] == ["Mix", "Bake"]
    assert "rating" not in stored[0]
