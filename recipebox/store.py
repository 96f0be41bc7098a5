"""The recipe store: the single owner of the recipe list.

Every mutation goes through :class:`RecipeStore`. The in-memory list changes
first and is then written back as a whole to the key-value backend. A failed
write is reported through :attr:`RecipeStore.error` and never undoes the
change; the next successful write catches the backend up.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

from .errors import LoadFailure, PersistFailure, StorageError
from .models import Recipe, RecipeDraft
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "recipes"

LOAD_ERROR_MESSAGE = "Failed to load recipes"
SAVE_ERROR_MESSAGE = "Failed to save recipes"

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


class LoadStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _random_id() -> str:
    return uuid.uuid4().hex


class RecipeStore:
    def __init__(
        self,
        backend: KeyValueStore,
        *,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Optional[Clock] = None,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        self._backend = backend
        self._key = key
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _random_id

        self._recipes: List[Recipe] = []
        self.status = LoadStatus.LOADING
        self.error: Optional[str] = None
        self.last_failure: Optional[StorageError] = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def recipes(self) -> Tuple[Recipe, ...]:
        """Return a read-only snapshot of the current list."""

        return tuple(self._recipes)

    def __len__(self) -> int:
        return len(self._recipes)

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self.recipes)

    def get(self, recipe_id: str) -> Optional[Recipe]:
        return next((recipe for recipe in self._recipes if recipe.id == recipe_id), None)

    def load(self) -> Tuple[Recipe, ...]:
        """Replace the in-memory list with the persisted one.

        A missing blob leaves the list empty. An unreadable or malformed blob
        is reported through :attr:`error`; the list stays empty and nothing is
        raised.
        """

        self.status = LoadStatus.LOADING
        try:
            self._recipes = self._read()
        except LoadFailure as exc:
            self._recipes = []
            self._report(LOAD_ERROR_MESSAGE, exc)
            self.status = LoadStatus.ERROR
        else:
            self.status = LoadStatus.READY
            logger.info("Loaded %d recipes from '%s'", len(self._recipes), self._key)
        return self.recipes

    def add(self, draft: RecipeDraft) -> Recipe:
        recipe = Recipe.from_draft(draft, id=self._new_id(), created_at=self._clock())
        self._recipes.append(recipe)
        logger.debug("Added recipe %s (%s)", recipe.id, recipe.name)
        self.persist()
        return recipe

    def update(self, recipe: Recipe) -> bool:
        """Swap in ``recipe`` for the stored record with the same id.

        Unknown ids leave the list untouched.
        """

        return self._replace(recipe.id, lambda _current: recipe)

    def delete(self, recipe_id: str) -> bool:
        remaining = [recipe for recipe in self._recipes if recipe.id != recipe_id]
        if len(remaining) == len(self._recipes):
            return False
        self._recipes = remaining
        logger.debug("Deleted recipe %s", recipe_id)
        self.persist()
        return True

    def mark_cooked(self, recipe_id: str) -> bool:
        cooked_at = self._clock()
        return self._replace(
            recipe_id,
            lambda current: replace(
                current, cooked_count=current.cooked_count + 1, last_cooked=cooked_at
            ),
        )

    def set_rating(self, recipe_id: str, rating: Optional[int]) -> bool:
        return self._replace(recipe_id, lambda current: replace(current, rating=rating))

    def clear(self) -> None:
        self._recipes = []
        logger.debug("Cleared all recipes")
        self.persist()

    def persist(self) -> bool:
        """Write the whole list to the backend.

        Returns ``False`` when the write failed; the failure is recorded in
        :attr:`error` and the in-memory list is kept as is.
        """

        try:
            self._write()
        except PersistFailure as exc:
            self._report(SAVE_ERROR_MESSAGE, exc)
            return False

        if self.error == SAVE_ERROR_MESSAGE:
            self.clear_error()
        return True

    def clear_error(self) -> None:
        self.error = None
        self.last_failure = None

    def _replace(self, recipe_id: str, change: Callable[[Recipe], Recipe]) -> bool:
        for index, current in enumerate(self._recipes):
            if current.id == recipe_id:
                self._recipes[index] = change(current)
                logger.debug("Replaced recipe %s", recipe_id)
                self.persist()
                return True
        return False

    def _new_id(self) -> str:
        existing = {recipe.id for recipe in self._recipes}
        candidate = self._id_factory()
        while candidate in existing:
            candidate = self._id_factory()
        return candidate

    def _read(self) -> List[Recipe]:
        try:
            blob = self._backend.get(self._key)
        except StorageError as exc:
            raise LoadFailure(str(exc)) from exc

        if blob is None:
            return []

        try:
            records = json.loads(blob)
            if not isinstance(records, list):
                raise TypeError("Persisted recipes must be a JSON array.")
            return [Recipe.from_dict(record) for record in records]
        except (ValueError, KeyError, TypeError, RecursionError) as exc:
            raise LoadFailure(f"Malformed recipe data under '{self._key}': {exc}") from exc

    def _write(self) -> None:
        blob = json.dumps([recipe.to_dict() for recipe in self._recipes], ensure_ascii=False)
        try:
            self._backend.set(self._key, blob)
        except StorageError as exc:
            raise PersistFailure(str(exc)) from exc

    def _report(self, message: str, failure: StorageError) -> None:
        self.error = message
        self.last_failure = failure
        logger.warning("%s: %s", message, failure)


__all__ = [
    "DEFAULT_STORAGE_KEY",
    "LOAD_ERROR_MESSAGE",
    "LoadStatus",
    "RecipeStore",
    "SAVE_ERROR_MESSAGE",
]
