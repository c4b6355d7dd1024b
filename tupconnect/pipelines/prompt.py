"""Instruction prompt for the organization-matching classifier."""
from __future__ import annotations

from typing import Sequence

from config.category_taxonomy import AFFILIATION_DESCRIPTIONS, AFFILIATION_TAXONOMY, NO_AFFILIATION
from tupconnect.config import OutputShape

_ROLE = (
    "You are TUPConnect's organization matching AI. Your task is to analyze the "
    "user's provided text (interests, hobbies, course) and identify which of the "
    "following {count} categories are most relevant. Only return categories from this list."
)

_ARRAY_TASK = (
    "Return the result as a simple JSON array of strings, ONLY listing the relevant "
    "categories. Do not include any other text or explanation."
)

_OBJECT_TASK = (
    "Also identify the user's college affiliation if they mention or clearly imply it, "
    "and extract short keywords describing what they are specifically looking for."
)


def _numbered(items: Sequence[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def _object_fields(include_negative_keywords: bool) -> list[str]:
    fields = [
        f'- "user_affiliation": one of {", ".join(AFFILIATION_TAXONOMY)} (use "{NO_AFFILIATION}" if unknown)',
        '- "matched_categories": array of categories from the list above',
        '- "specific_keywords": array of short keywords for what the user wants',
    ]
    if include_negative_keywords:
        fields.append('- "negative_keywords": array of short keywords for what the user wants to avoid')
    return fields


def _object_example(include_negative_keywords: bool) -> str:
    example = '{"user_affiliation": "COS", "matched_categories": ["Category 1"], "specific_keywords": ["keyword"]'
    if include_negative_keywords:
        example += ', "negative_keywords": []'
    return example + "}"


def build_prompt(
    interest: str,
    *,
    shape: OutputShape,
    categories: Sequence[str],
    include_negative_keywords: bool = True,
) -> str:
    """Assemble instruction text, user input and the output-format directive."""
    sections = [_ROLE.format(count=len(categories))]

    if shape == OutputShape.ARRAY:
        sections.append(_ARRAY_TASK)
    else:
        sections.append(_OBJECT_TASK)
        affiliations = "\n".join(f"- {code}: {desc}" for code, desc in AFFILIATION_DESCRIPTIONS.items())
        sections.append(f"The affiliation codes are:\n{affiliations}")

    sections.append(f"The {len(categories)} categories are:\n{_numbered(categories)}")

    if shape == OutputShape.OBJECT:
        fields = "\n".join(_object_fields(include_negative_keywords))
        sections.append(f"The JSON object must have these fields:\n{fields}")

    sections.append(f"User input: {interest}")

    if shape == OutputShape.ARRAY:
        sections.append('Return ONLY a JSON array like: ["Category 1", "Category 2"]')
    else:
        sections.append(f"Return ONLY a JSON object like: {_object_example(include_negative_keywords)}")

    return "\n\n".join(sections)
