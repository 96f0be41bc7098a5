import logging
import os
import random
from dataclasses import replace
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest, HTTPException, NotFound

from .assistant import GREETING, QUICK_QUESTIONS, CookingAssistant
from .models import Difficulty, Recipe
from .queries import (
    DEFAULT_LIMIT,
    RecipeFilter,
    collection_stats,
    filter_recipes,
    most_cooked,
    random_recipe,
    recently_cooked,
    search_by_ingredients,
    search_by_name,
)
from .storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from .store import DEFAULT_STORAGE_KEY, LoadStatus, RecipeStore
from .validation import RecipeValidationError, validate_rating, validate_recipe_payload

try:
    from .gcp_storage import CloudStorageKeyValueStore, FirestoreKeyValueStore
except ImportError:  # pragma: no cover - allows running tests without optional deps
    CloudStorageKeyValueStore = None  # type: ignore[assignment,misc]
    FirestoreKeyValueStore = None  # type: ignore[assignment,misc]

logger = logging.getLogger(__name__)

RECIPE_NOT_FOUND = "Recipe not found."


def backend_from_env() -> KeyValueStore:
    """Select the key-value backend named by ``RECIPES_BACKEND``."""

    name = os.environ.get("RECIPES_BACKEND", "file").strip().lower()
    logger.info("Using '%s' recipe backend", name)

    if name == "memory":
        return InMemoryKeyValueStore()
    if name == "file":
        return JsonFileKeyValueStore.from_env()
    if name in ("firestore", "gcs"):
        if FirestoreKeyValueStore is None or CloudStorageKeyValueStore is None:
            raise RuntimeError(
                "google-cloud-firestore and google-cloud-storage are not installed. Install the "
                "'gcp' extra or choose RECIPES_BACKEND=file."
            )
        if name == "firestore":
            return FirestoreKeyValueStore.from_env()
        return CloudStorageKeyValueStore.from_env()

    raise ValueError(f"Unknown RECIPES_BACKEND '{name}'. Use file, memory, firestore or gcs.")


def store_from_env() -> RecipeStore:
    key = os.environ.get("RECIPES_STORAGE_KEY", DEFAULT_STORAGE_KEY)
    return RecipeStore(backend_from_env(), key=key)


def create_app(
    store: Optional[RecipeStore] = None,
    *,
    rng: Optional[random.Random] = None,
) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    store:
        Optional recipe store. When ``None`` a store is built from environment
        variables (see :func:`backend_from_env`). A store that has not been
        loaded yet is loaded here.
    rng:
        Random source for "surprise me" picks and the assistant. Defaults to a
        generator seeded from ``RECIPEBOX_SEED`` when that is set.
    """

    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "development-secret-change-me")

    if store is None:
        store = store_from_env()
    if store.status is LoadStatus.LOADING:
        store.load()

    if rng is None:
        seed = os.environ.get("RECIPEBOX_SEED")
        rng = random.Random(int(seed)) if seed else random.Random()

    app.config["RECIPE_STORE"] = store
    app.config["RANDOM"] = rng
    app.config["ASSISTANT"] = CookingAssistant(rng=rng)

    def current_store() -> RecipeStore:
        return app.config["RECIPE_STORE"]

    def with_warning(payload: Dict[str, Any]) -> Dict[str, Any]:
        advisory = current_store().error
        if advisory:
            payload["warning"] = advisory
        return payload

    def require_recipe(recipe_id: str) -> Recipe:
        recipe = current_store().get(recipe_id)
        if recipe is None:
            raise NotFound(RECIPE_NOT_FOUND)
        return recipe

    def json_body() -> Dict[str, Any]:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise BadRequest("Expected a JSON object.")
        return data

    def limit_arg() -> int:
        n = request.args.get("n", DEFAULT_LIMIT, type=int)
        return max(n, 0)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify(error=exc.description), exc.code

    @app.errorhandler(RecipeValidationError)
    def handle_validation_error(exc: RecipeValidationError):
        return jsonify(error=str(exc)), 400

    @app.get("/status")
    def status():
        store_ = current_store()
        return {
            "status": store_.status.value,
            "error": store_.error,
            "recipes": len(store_),
        }

    @app.get("/recipes")
    def list_recipes():
        recipes = search_by_name(current_store().recipes, request.args.get("q"))

        difficulty = request.args.get("difficulty") or None
        if difficulty is not None:
            try:
                difficulty = Difficulty(difficulty)
            except ValueError:
                raise BadRequest("Difficulty must be Easy, Medium or Hard.") from None

        criteria = RecipeFilter(
            difficulty=difficulty,
            cuisine=request.args.get("cuisine") or None,
            max_time=request.args.get("max_time", type=int),
            min_rating=request.args.get("min_rating", type=int),
        )
        return {"recipes": [recipe.to_dict() for recipe in filter_recipes(recipes, criteria)]}

    @app.post("/recipes")
    def create_recipe():
        draft = validate_recipe_payload(json_body())
        recipe = current_store().add(draft)
        return with_warning({"recipe": recipe.to_dict()}), 201

    @app.delete("/recipes")
    def clear_recipes():
        current_store().clear()
        return with_warning({"deleted": True})

    @app.get("/recipes/random")
    def surprise_me():
        recipe = random_recipe(current_store().recipes, app.config["RANDOM"])
        if recipe is None:
            raise NotFound("Add some recipes first to get random suggestions.")
        return {"recipe": recipe.to_dict()}

    @app.get("/recipes/recent")
    def recent_recipes():
        recipes = recently_cooked(current_store().recipes, limit_arg())
        return {"recipes": [recipe.to_dict() for recipe in recipes]}

    @app.get("/recipes/popular")
    def popular_recipes():
        recipes = most_cooked(current_store().recipes, limit_arg())
        return {"recipes": [recipe.to_dict() for recipe in recipes]}

    @app.get("/recipes/<recipe_id>")
    def get_recipe(recipe_id: str):
        return {"recipe": require_recipe(recipe_id).to_dict()}

    @app.put("/recipes/<recipe_id>")
    def update_recipe(recipe_id: str):
        existing = require_recipe(recipe_id)
        draft = validate_recipe_payload(json_body())

        updated = Recipe.from_draft(draft, id=existing.id, created_at=existing.created_at)
        updated = _keep_history(updated, existing)

        if not current_store().update(updated):
            raise NotFound(RECIPE_NOT_FOUND)
        return with_warning({"recipe": updated.to_dict()})

    @app.delete("/recipes/<recipe_id>")
    def delete_recipe(recipe_id: str):
        if not current_store().delete(recipe_id):
            raise NotFound(RECIPE_NOT_FOUND)
        return with_warning({"deleted": True})

    @app.post("/recipes/<recipe_id>/cooked")
    def mark_cooked(recipe_id: str):
        if not current_store().mark_cooked(recipe_id):
            raise NotFound(RECIPE_NOT_FOUND)
        recipe = require_recipe(recipe_id)
        return with_warning(
            {
                "recipe": recipe.to_dict(),
                "message": f"Great job cooking {recipe.name}! Keep up the amazing work!",
            }
        )

    @app.put("/recipes/<recipe_id>/rating")
    def rate_recipe(recipe_id: str):
        rating = validate_rating(json_body().get("rating"))
        if not current_store().set_rating(recipe_id, rating):
            raise NotFound(RECIPE_NOT_FOUND)
        return with_warning({"recipe": require_recipe(recipe_id).to_dict()})

    @app.get("/search/ingredients")
    def ingredient_search():
        terms = [term.strip() for term in request.args.getlist("ingredient") if term.strip()]
        recipes = search_by_ingredients(current_store().recipes, terms)
        return {"recipes": [recipe.to_dict() for recipe in recipes]}

    @app.get("/stats")
    def stats():
        summary = collection_stats(current_store().recipes)
        most = summary.most_cooked_recipe
        return {
            "total_recipes": summary.total_recipes,
            "total_cooked": summary.total_cooked,
            "average_rating": summary.average_rating,
            "top_cuisine": summary.top_cuisine,
            "total_cooking_minutes": summary.total_cooking_minutes,
            "most_cooked_recipe": most.name if most else None,
        }

    @app.get("/assistant")
    def assistant_intro():
        return {"greeting": GREETING, "quick_questions": QUICK_QUESTIONS}

    @app.post("/assistant")
    def ask_assistant():
        message = str(json_body().get("message") or "").strip()
        if not message:
            raise BadRequest("Please type a message.")
        reply = app.config["ASSISTANT"].reply(message, current_store().recipes)
        return {"reply": reply}

    return app


def _keep_history(updated: Recipe, existing: Recipe) -> Recipe:
    """Carry cooking history over an edit; forms never send it."""

    return replace(updated, cooked_count=existing.cooked_count, last_cooked=existing.last_cooked)


__all__ = ["backend_from_env", "create_app", "Recipe", "RecipeStore", "store_from_env"]
