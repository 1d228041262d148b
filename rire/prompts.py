"""Prompt builders for translation, revision and website advising.

Every function here is pure: the same arguments always render the same text.
"""

from __future__ import annotations

import json
from typing import Iterable, Mapping, Optional, Sequence

from rire.config import DEFAULT_LANGUAGE_NAMES
from rire.structures import ADVISE_ERROR_TYPES, Entry, ErrorType

WEBSITE_ELEMENT_CATEGORIES = (
    "page titles and meta descriptions",
    "headings",
    "navigation and menu labels",
    "buttons and calls to action",
    "form labels, placeholders and validation messages",
    "body copy",
    "image alt text",
    "footer and legal text",
)


def resolve_language_name(
    target_language: str, language_names: Optional[Mapping[str, str]] = None
) -> str:
    """Human-readable name for a language code, or the code itself when unknown."""
    names = DEFAULT_LANGUAGE_NAMES if language_names is None else language_names
    return names.get(target_language, names.get(target_language.lower(), target_language))


def _serialize_batch(batch: Sequence[Entry]) -> str:
    return json.dumps(dict(batch), ensure_ascii=False, indent=2)


def _describe_error_types(
    error_types: Iterable[str], catalog: Mapping[str, ErrorType]
) -> str:
    lines = []
    for name in error_types:
        info = catalog.get(name)
        lines.append(f"- {name}: {info.description}" if info else f"- {name}")
    return "\n".join(lines)


# Revision descriptions win for names present in both catalogs.
_ERROR_DESCRIPTIONS = ADVISE_ERROR_TYPES


def build_system_prompt(
    target_language: str,
    context: str,
    language_names: Optional[Mapping[str, str]] = None,
) -> str:
    target_name = resolve_language_name(target_language, language_names)
    prompt = f"""You are a professional translator specializing in software localization.
Translate the following UI text from English to {target_name}.

Important guidelines:
- Preserve any placeholders like {{name}}, {{count}}, {{{{variable}}}}, etc.
- Keep the same tone and formality level
- Use natural, idiomatic expressions in the target language
- Maintain any HTML tags or markdown formatting
- Do not add or remove content, only translate"""

    if context:
        prompt += f"\n\nProduct context for better translations:\n{context}"
    return prompt


def build_translation_prompt(system_prompt: str, batch: Sequence[Entry]) -> str:
    return f"""{system_prompt}

Translate each of the following messages. Return ONLY a valid JSON object mapping the original keys to translated values.

Messages to translate:

{_serialize_batch(batch)}"""


def build_revision_system_prompt(error_types: Sequence[str], context: str) -> str:
    descriptions = _describe_error_types(error_types, _ERROR_DESCRIPTIONS)
    prompt = f"""You are a professional editor and proofreader specializing in software localization content.
Analyze the following UI text and find issues that need improvement.

You should look for these types of issues:
{descriptions}

Important guidelines:
- Only report actual issues, not stylistic preferences
- Preserve any placeholders like {{name}}, {{count}}, {{{{variable}}}}, etc.
- Maintain any HTML tags or markdown formatting
- Provide clear, actionable suggestions
- Be concise in your reasoning"""

    if context:
        prompt += f"\n\nProduct context for better understanding:\n{context}"
    return prompt


def build_revision_prompt(system_prompt: str, batch: Sequence[Entry]) -> str:
    return f"""{system_prompt}

Analyze each of the following messages and return a JSON array of suggestions.
For each issue found, include: the message key, the original text, your suggested fix, a brief reason, and the error type.
If a message has no issues, do not include it in the output.

Messages to analyze:

{_serialize_batch(batch)}"""


def build_advise_website_prompt(error_types: Sequence[str], website_url: str) -> str:
    """Prompt for a model that can fetch ``website_url`` itself."""
    descriptions = _describe_error_types(error_types, _ERROR_DESCRIPTIONS)
    categories = "\n".join(f"- {category}" for category in WEBSITE_ELEMENT_CATEGORIES)
    type_names = ", ".join(error_types)
    return f"""You are a UX writing expert specializing in website copy and interface labels.
Visit the website {website_url} and review the text a visitor reads on it.

You should look for these types of issues:
{descriptions}

Only consider text in these elements:
{categories}

Important guidelines:
- Only report genuine issues, not stylistic preferences
- Suggest improvements that match the website's tone and purpose
- Be concise in your reasoning

Return ONLY a JSON array. Each item must be an object with these fields:
- key: where the text appears (page path and element type)
- section: short description of the part of the page
- original: the text as it appears on the page
- suggested: your improved text
- reason: brief explanation
- type: one of {type_names}
- severity: one of "high", "medium", "low", "very low"
If you find no issues, return an empty array []."""


def build_advise_system_prompt(error_types: Sequence[str], website_url: str) -> str:
    """System prompt for reviewing labels already extracted from ``website_url``."""
    descriptions = _describe_error_types(error_types, _ERROR_DESCRIPTIONS)
    return f"""You are a UX writing expert specializing in website copy and interface labels.
You are analyzing labels and text content extracted from the website: {website_url}

Analyze each label in context of the website and find issues that need improvement.

You should look for these types of issues:
{descriptions}

Important guidelines:
- Consider each label in the context of where it appears on the website
- Focus on clarity, conciseness, and user-friendliness
- Only report actual issues, not stylistic preferences
- Suggest improvements that match the website's tone and purpose
- Be concise in your reasoning"""


def build_advise_prompt(system_prompt: str, batch: Sequence[Entry]) -> str:
    return f"""{system_prompt}

Analyze each of the following website labels and return a JSON array of suggestions.
The key indicates where the label appears (page path and element type). The value is the label text.
For each issue found, include: the label key, the original text, your suggested fix, a brief reason, and the error type.
If a label has no issues, do not include it in the output.

Labels to analyze:

{_serialize_batch(batch)}"""


__all__ = [
    "WEBSITE_ELEMENT_CATEGORIES",
    "build_advise_prompt",
    "build_advise_system_prompt",
    "build_advise_website_prompt",
    "build_revision_prompt",
    "build_revision_system_prompt",
    "build_system_prompt",
    "build_translation_prompt",
    "resolve_language_name",
]
