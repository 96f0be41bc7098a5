from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


@dataclass(frozen=True)
class RecipeDraft:
    """User supplied recipe data that has not been stored yet."""

    name: str
    cooking_time: int
    difficulty: Difficulty
    cuisine: str
    ingredients: Tuple[str, ...]
    instructions: Optional[Tuple[str, ...]] = None
    notes: Optional[str] = None
    rating: Optional[int] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class Recipe:
    """Domain object representing a stored recipe.

    Instances are immutable; the store swaps whole records when something
    changes, so a snapshot handed out earlier never changes underneath its
    reader.
    """

    id: str
    name: str
    cooking_time: int
    difficulty: Difficulty
    cuisine: str
    ingredients: Tuple[str, ...]
    created_at: datetime
    cooked_count: int = 0
    instructions: Optional[Tuple[str, ...]] = None
    notes: Optional[str] = None
    rating: Optional[int] = None
    last_cooked: Optional[datetime] = None
    image: Optional[str] = field(default=None)

    @classmethod
    def from_draft(cls, draft: RecipeDraft, *, id: str, created_at: datetime) -> "Recipe":
        return cls(
            id=id,
            name=draft.name,
            cooking_time=draft.cooking_time,
            difficulty=Difficulty(draft.difficulty),
            cuisine=draft.cuisine,
            ingredients=tuple(draft.ingredients),
            created_at=created_at,
            cooked_count=0,
            instructions=_optional_tuple(draft.instructions),
            notes=draft.notes,
            rating=draft.rating,
            image=draft.image,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the persisted representation; unset optional fields are omitted."""

        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "cookingTime": self.cooking_time,
            "difficulty": self.difficulty.value,
            "cuisine": self.cuisine,
            "ingredients": list(self.ingredients),
        }
        if self.instructions is not None:
            data["instructions"] = list(self.instructions)
        if self.notes is not None:
            data["notes"] = self.notes
        if self.rating is not None:
            data["rating"] = self.rating
        data["cookedCount"] = self.cooked_count
        if self.last_cooked is not None:
            data["lastCooked"] = format_timestamp(self.last_cooked)
        data["createdAt"] = format_timestamp(self.created_at)
        if self.image is not None:
            data["image"] = self.image
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recipe":
        """Build a recipe from its persisted form.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` when the record is
        malformed.
        """

        if not isinstance(data, dict):
            raise TypeError(f"Expected a recipe object, got {type(data).__name__}.")

        ingredients = data["ingredients"]
        if not isinstance(ingredients, list):
            raise TypeError("Recipe ingredients must be a list.")

        instructions = data.get("instructions")
        if instructions is not None and not isinstance(instructions, list):
            raise TypeError("Recipe instructions must be a list.")

        last_cooked = data.get("lastCooked")

        return cls(
            id=str(data["id"]),
            name=data["name"],
            cooking_time=int(data["cookingTime"]),
            difficulty=Difficulty(data["difficulty"]),
            cuisine=data.get("cuisine", ""),
            ingredients=tuple(ingredients),
            created_at=parse_timestamp(data["createdAt"]),
            cooked_count=int(data.get("cookedCount", 0)),
            instructions=_optional_tuple(instructions),
            notes=data.get("notes"),
            rating=data.get("rating"),
            last_cooked=parse_timestamp(last_cooked) if last_cooked else None,
            image=data.get("image"),
        )


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise TypeError(f"Expected an ISO-8601 string, got {type(value).__name__}.")
    # JavaScript's toISOString() writes a trailing "Z" for UTC.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_tuple(values: Optional[Sequence[str]]) -> Optional[Tuple[str, ...]]:
    if values is None:
        return None
    return tuple(values)


__all__ = ["Difficulty", "Recipe", "RecipeDraft", "format_timestamp", "parse_timestamp"]
