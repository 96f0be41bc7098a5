from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from .models import Difficulty, RecipeDraft


class RecipeValidationError(ValueError):
    """Raised when user supplied recipe data cannot be saved."""


def validate_recipe_payload(data: Mapping[str, Any]) -> RecipeDraft:
    """Turn form or JSON input into a :class:`RecipeDraft`.

    Accepts the persisted camelCase keys (``cookingTime``) as well as
    snake_case. Ingredients and instructions may be lists or newline
    separated text.
    """

    name = _text(data.get("name"))
    if not name:
        raise RecipeValidationError("Please enter a recipe name")

    cooking_time = _positive_int(_first(data, "cookingTime", "cooking_time"))
    if cooking_time is None:
        raise RecipeValidationError("Please enter a valid cooking time")

    cuisine = _text(data.get("cuisine"))
    if not cuisine:
        raise RecipeValidationError("Please enter a cuisine type")

    ingredients = _unique(_lines(data.get("ingredients")))
    if not ingredients:
        raise RecipeValidationError("Please add at least one ingredient")

    try:
        difficulty = Difficulty(data.get("difficulty") or Difficulty.EASY.value)
    except ValueError:
        raise RecipeValidationError("Please choose a difficulty of Easy, Medium or Hard") from None

    instructions = _lines(data.get("instructions"))
    notes = _text(data.get("notes"))
    image = _text(data.get("image"))

    return RecipeDraft(
        name=name,
        cooking_time=cooking_time,
        difficulty=difficulty,
        cuisine=cuisine,
        ingredients=tuple(ingredients),
        instructions=tuple(instructions) if instructions else None,
        notes=notes or None,
        rating=validate_rating(data.get("rating")),
        image=image or None,
    )


def validate_rating(value: Any) -> Optional[int]:
    """Return a rating in 1..5, ``None`` for "unrated" (missing or 0)."""

    if value is None or value == "" or value == "0":
        return None
    rating = _whole_number(value)
    if rating == 0:
        return None
    if rating is None or not 1 <= rating <= 5:
        raise RecipeValidationError("Rating must be between 1 and 5")
    return rating


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _whole_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _positive_int(value: Any) -> Optional[int]:
    number = _whole_number(value)
    return number if number is not None and number > 0 else None


def _lines(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.splitlines()
    else:
        items = [str(item) for item in value]
    return [item.strip() for item in items if item.strip()]


def _unique(items: List[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


__all__ = ["RecipeValidationError", "validate_recipe_payload", "validate_rating"]
