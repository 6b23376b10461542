"""LLM prompt templates for recipe extraction and the cooking assistant."""

import json

# --- Recipe Image Extraction ---


def get_recipe_image_prompt(categories: list[dict]) -> str:
    """Generate the prompt for turning a food photo into a structured recipe.

    Args:
        categories: List of dicts with id, name. The model must pick one of these ids.
    """
    category_guide = ", ".join(f"{cat['id']}: {cat['name']}" for cat in categories)

    return f"""Analyze this food image and write the recipe for the dish it shows.

Return exactly ONE JSON object with this schema and nothing else:
{{
  "name": "Recipe name",
  "description": "Brief description (1-2 sentences)",
  "category_id": number,
  "ingredients": [
    {{"name": "ingredient name", "quantity": number | null, "unit": "g/ml/pieces/etc" | null}}
  ],
  "instructions": [
    {{"stepNumber": 1, "instruction": "step description"}}
  ],
  "prep_time_minutes": number,
  "cook_time_minutes": number,
  "servings": number,
  "difficulty_level": "easy" | "medium" | "hard"
}}

Rules:
- category_id MUST be one of these category IDs: {category_guide}
- Number instructions from 1 with no gaps, one action per step
- Ingredient names are the ingredient only (e.g., "Flour", not "200g flour")
- quantity is a positive number; use null when the amount is "to taste"
- Provide reasonable estimates for quantities, times and servings
- difficulty_level is exactly one of: easy, medium, hard

Respond with the JSON object only, no markdown and no commentary."""


# --- Cooking Assistant ---

COOKING_ASSISTANT_SYSTEM_PROMPT = """You are a friendly and knowledgeable cooking assistant.
You give recipe suggestions, cooking tips, ingredient substitutions and measurement conversions,
explain techniques, and share food safety guidelines.

Keep responses concise but informative. If asked about something outside of cooking and food,
politely redirect to cooking-related topics."""


def get_description_prompt(ingredients: list[str], instructions: str) -> str:
    """Generate prompt for a short recipe description."""
    return f"""Given these ingredients: {", ".join(ingredients)}
and these cooking instructions:
{instructions}

Write a brief, engaging description of this recipe in 2-3 sentences. Respond with the description only."""


def get_improvements_prompt(recipe_text: str) -> str:
    """Generate prompt for recipe improvement suggestions."""
    return f"""As a culinary expert, analyze this recipe and suggest 2-3 ways to improve it or make it more interesting.

Recipe:
{recipe_text}

Respond ONLY with a JSON array:
[
  {{"suggestion": "string", "reason": "string"}}
]"""


def get_cooking_tips_prompt(ingredients: list[str]) -> str:
    """Generate prompt for ingredient-specific cooking tips."""
    return f"""Provide 2-3 professional cooking tips specifically for working with these ingredients: {json.dumps(ingredients)}

Respond ONLY with a JSON array:
[
  {{"tip": "string", "explanation": "string"}}
]"""
