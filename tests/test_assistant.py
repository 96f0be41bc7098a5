from __future__ import annotations

from pathlib import Path
import random
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from recipebox.assistant import (
    COOKING_TIPS,
    EGG_SUBSTITUTE_REPLY,
    EMPTY_COLLECTION_REPLY,
    FALLBACK_REPLY,
    LEAVENING_REPLY,
    ONION_REPLY,
    PASTA_REPLY,
    ROUX_REPLY,
    SEASON_CHICKEN_REPLY,
    CookingAssistant,
    Rule,
    any_of,
    canned,
)
from recipebox.models import Difficulty, Recipe


def make_recipe(name: str = "Green Curry") -> Recipe:
    return Recipe(
        id="r1",
        name=name,
        cooking_time=35,
        difficulty=Difficulty.MEDIUM,
        cuisine="Thai",
        ingredients=("coconut milk",),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.mark.parametrize(
    "message,expected",
    (
        ("How do I cook pasta perfectly?", PASTA_REPLY),
        ("Any NOODLE advice?", PASTA_REPLY),
        ("What can I substitute for eggs?", EGG_SUBSTITUTE_REPLY),
        ("How do I make a roux?", ROUX_REPLY),
        ("What's the best way to season chicken?", SEASON_CHICKEN_REPLY),
        ("How do I prevent onions from making me cry?", ONION_REPLY),
        ("What's the difference between baking soda and baking powder?", LEAVENING_REPLY),
        ("What is the meaning of life?", FALLBACK_REPLY),
    ),
)
def test_canned_replies(message, expected):
    assistant = CookingAssistant(rng=random.Random(0))

    assert assistant.reply(message) == expected


def test_first_matching_rule_wins():
    assistant = CookingAssistant(rng=random.Random(0))

    # Mentions both pasta and a tip; pasta comes first in the table.
    assert assistant.reply("Give me a tip for pasta") == PASTA_REPLY


def test_egg_without_substitute_falls_through():
    assistant = CookingAssistant(rng=random.Random(0))

    assert assistant.reply("How long do I boil an egg?") == FALLBACK_REPLY


def test_recipe_suggestion_with_empty_collection():
    assistant = CookingAssistant(rng=random.Random(0))

    assert assistant.reply("Can you suggest something?", []) == EMPTY_COLLECTION_REPLY


def test_recipe_suggestion_names_a_recipe_from_the_collection():
    assistant = CookingAssistant(rng=random.Random(0))

    reply = assistant.reply("Suggest a recipe", [make_recipe()])

    assert "**Green Curry**" in reply
    assert "medium Thai dish that takes 35 minutes" in reply
    assert "You have 1 recipes" in reply


def test_tip_reply_uses_a_known_tip():
    assistant = CookingAssistant(rng=random.Random(3))

    reply = assistant.reply("Any advice?")

    assert any(f"**{tip}**" in reply for tip in COOKING_TIPS)


def test_custom_rules_and_fallback():
    rules = [Rule("hello", any_of("hello"), canned("Hi there!"))]
    assistant = CookingAssistant(rules, fallback="No idea.")

    assert assistant.reply("HELLO chef") == "Hi there!"
    assert assistant.reply("How do I cook pasta?") == "No idea."


def test_blank_message_is_rejected():
    with pytest.raises(ValueError):
        CookingAssistant().reply("   ")
