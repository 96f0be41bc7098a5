"""Read-only derivations over a recipe snapshot.

Nothing here mutates its input; pass ``store.recipes`` and use the result.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence

from .models import Difficulty, Recipe

DEFAULT_LIMIT = 3


@dataclass(frozen=True)
class RecipeFilter:
    """Independent, optional constraints; unset (or falsy) fields match everything."""

    difficulty: Optional[Difficulty] = None
    cuisine: Optional[str] = None
    max_time: Optional[int] = None
    min_rating: Optional[int] = None

    def matches(self, recipe: Recipe) -> bool:
        if self.difficulty and recipe.difficulty != self.difficulty:
            return False
        if self.cuisine and self.cuisine.lower() not in recipe.cuisine.lower():
            return False
        if self.max_time and recipe.cooking_time > self.max_time:
            return False
        if self.min_rating and (recipe.rating or 0) < self.min_rating:
            return False
        return True


@dataclass(frozen=True)
class CollectionStats:
    total_recipes: int
    total_cooked: int
    average_rating: float
    top_cuisine: Optional[str]
    total_cooking_minutes: int
    most_cooked_recipe: Optional[Recipe]


def random_recipe(recipes: Sequence[Recipe], rng: Optional[random.Random] = None) -> Optional[Recipe]:
    if not recipes:
        return None
    rng = rng or random
    return recipes[rng.randrange(len(recipes))]


def search_by_ingredients(recipes: Sequence[Recipe], terms: Iterable[str]) -> List[Recipe]:
    """Return recipes sharing at least one ingredient with ``terms``.

    An ingredient and a term match when either contains the other, ignoring
    case, so ``"tomato"`` finds ``"2 cherry tomatoes"`` and ``"chicken breast"``
    finds ``"chicken"``.
    """

    wanted = [term.lower() for term in terms]
    if not wanted:
        return list(recipes)

    def shares_ingredient(recipe: Recipe) -> bool:
        have = [ingredient.lower() for ingredient in recipe.ingredients]
        return any(term in ingredient or ingredient in term for term in wanted for ingredient in have)

    return [recipe for recipe in recipes if shares_ingredient(recipe)]


def search_by_name(recipes: Sequence[Recipe], query: Optional[str]) -> List[Recipe]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(recipes)
    return [recipe for recipe in recipes if needle in recipe.name.lower()]


def filter_recipes(recipes: Sequence[Recipe], criteria: Optional[RecipeFilter] = None) -> List[Recipe]:
    criteria = criteria or RecipeFilter()
    return [recipe for recipe in recipes if criteria.matches(recipe)]


def recently_cooked(recipes: Sequence[Recipe], n: int = DEFAULT_LIMIT) -> List[Recipe]:
    cooked = [recipe for recipe in recipes if recipe.last_cooked is not None]
    cooked.sort(key=lambda recipe: recipe.last_cooked, reverse=True)
    return cooked[: max(n, 0)]


def most_cooked(recipes: Sequence[Recipe], n: int = DEFAULT_LIMIT) -> List[Recipe]:
    # sorted() is stable, so equal counts keep their input order.
    ranked = sorted(recipes, key=lambda recipe: recipe.cooked_count, reverse=True)
    return ranked[: max(n, 0)]


def collection_stats(recipes: Sequence[Recipe]) -> CollectionStats:
    if not recipes:
        return CollectionStats(
            total_recipes=0,
            total_cooked=0,
            average_rating=0.0,
            top_cuisine=None,
            total_cooking_minutes=0,
            most_cooked_recipe=None,
        )

    ratings = sum(recipe.rating or 0 for recipe in recipes)
    # Counter keeps insertion order, so the first cuisine seen wins a tie.
    top_cuisine = Counter(recipe.cuisine for recipe in recipes).most_common(1)[0][0]

    most = recipes[0]
    for recipe in recipes[1:]:
        if recipe.cooked_count > most.cooked_count:
            most = recipe

    return CollectionStats(
        total_recipes=len(recipes),
        total_cooked=sum(recipe.cooked_count for recipe in recipes),
        average_rating=_one_decimal(Decimal(ratings) / len(recipes)),
        top_cuisine=top_cuisine,
        total_cooking_minutes=sum(recipe.cooking_time * recipe.cooked_count for recipe in recipes),
        most_cooked_recipe=most,
    )


def _one_decimal(value: Decimal) -> float:
    # Halves round up, matching how the collection average is shown to users.
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


__all__ = [
    "CollectionStats",
    "DEFAULT_LIMIT",
    "RecipeFilter",
    "collection_stats",
    "filter_recipes",
    "most_cooked",
    "random_recipe",
    "recently_cooked",
    "search_by_ingredients",
    "search_by_name",
]
