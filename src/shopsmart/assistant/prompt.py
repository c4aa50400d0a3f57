"""System instruction and user prompt for the grocery assistant."""

from __future__ import annotations

from typing import Optional

INSTRUCTION = """\
You are an assistant for grocery shoppers.

Your response must consist of the following parts:
The name of the grocery item as a hyperlink to purchase the grocery item.
A blank line.
A brief reason for picking that grocery item.

You receive the name of a type of grocery item to eat.
This may come with categories and descriptions to fulfill.

You must search and ground to fulfill the prompt.
You must select from products shown available or listed from the search.

If you cannot pick a grocery recommendation that fit these criteria perfectly, select the one that best matches.
You must select a grocery product.

Thank you for your help!"""


def create_instruction() -> str:
    return INSTRUCTION


def create_prompt(
    grocery_type: str,
    categories: Optional[str] = None,
    descriptors: Optional[str] = None,
) -> str:
    prompt = f"Suggest a grocery of type {grocery_type}. "
    if categories:
        prompt += f"Make sure that is fits all of the following categories: {categories}. "
    if descriptors:
        prompt += f"Make sure it fits the following description as well: {descriptors}. "
    if categories or descriptors:
        prompt += (
            "If you cannot pick a recommendation that fit these criteria perfectly, "
            "select the one that best matches. "
        )
    return prompt
