"""Data types shared by the engine and helpers for nested locale files."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

MessageMap = Dict[str, str]
PathType = Tuple[Union[str, int], ...]
Entry = Tuple[str, str]


@dataclass(frozen=True)
class ErrorType:
    label: str
    description: str


REVISION_ERROR_TYPES: Dict[str, ErrorType] = {
    "grammar": ErrorType("Grammar/Spelling", "Grammar or spelling mistakes (critical)"),
    "wording": ErrorType("Bad Wording", "Awkward or incorrect wording (medium)"),
    "phrasing": ErrorType("Non-ideal Phrasing", "Phrases that could be improved (minor)"),
}

WEBSITE_ERROR_TYPES: Dict[str, ErrorType] = {
    "spelling": ErrorType("Spelling", "Misspelled words and typos"),
    "grammar": ErrorType("Grammar", "Grammatical mistakes and incorrect punctuation"),
    "inconsistency": ErrorType(
        "Inconsistency", "Inconsistent terminology, capitalization or tone across the page"
    ),
    "wordiness": ErrorType("Wordiness", "Copy that is longer than it needs to be"),
    "ai-tone": ErrorType(
        "AI Tone", "Generic, overly enthusiastic copy that reads as machine-generated"
    ),
    "ambiguity": ErrorType("Ambiguity", "Labels or sentences that can be read more than one way"),
    "seo": ErrorType("SEO", "Weak or missing titles, headings and descriptions for search"),
    "geo": ErrorType(
        "GEO", "Content that generative search engines would struggle to quote or summarize"
    ),
}

DEFAULT_WEBSITE_ERROR_TYPES = tuple(WEBSITE_ERROR_TYPES)

# Every advise path validates against website and revision types alike.
ADVISE_ERROR_TYPES: Dict[str, ErrorType] = {**WEBSITE_ERROR_TYPES, **REVISION_ERROR_TYPES}

# Ordered from least to most important.
SEVERITIES = ("very low", "low", "medium", "high")


def severity_rank(severity: Optional[str]) -> int:
    """Ordinal of a severity; unknown or missing severities sort lowest."""
    if severity not in SEVERITIES:
        return -1
    return SEVERITIES.index(severity)


@dataclass(frozen=True)
class RevisionSuggestion:
    key: str
    original: str
    suggested: str
    reason: str
    type: str
    section: Optional[str] = None
    severity: Optional[str] = None

    @classmethod
    def from_dict(
        cls, payload: Any, allowed_types: Iterable[str]
    ) -> Optional["RevisionSuggestion"]:
        """Validate a decoded JSON record; returns None when it does not fit."""
        if not isinstance(payload, dict):
            return None
        fields = {}
        for name in ("key", "original", "suggested", "reason", "type"):
            value = payload.get(name)
            if not isinstance(value, str):
                return None
            fields[name] = value
        if fields["type"] not in set(allowed_types):
            return None
        section = payload.get("section")
        if section is not None and not isinstance(section, str):
            return None
        severity = payload.get("severity")
        if severity is not None and severity not in SEVERITIES:
            return None
        return cls(section=section, severity=severity, **fields)

    def to_dict(self) -> Dict[str, str]:
        """JSON-ready view that leaves out unset optional fields."""
        return {name: value for name, value in asdict(self).items() if value is not None}


def apply_suggestions(
    messages: Mapping[str, str], suggestions: Iterable[RevisionSuggestion]
) -> MessageMap:
    """Return a copy of ``messages`` with every accepted suggestion applied."""
    revised = dict(messages)
    for suggestion in suggestions:
        if suggestion.key in revised:
            revised[suggestion.key] = suggestion.suggested
    return revised


def iter_string_nodes(obj: Any, path: PathType = ()) -> Iterator[Tuple[PathType, str]]:
    """Yield paths to every string leaf inside a nested mapping/list."""
    if isinstance(obj, dict):
        for key, value in obj.items():
            yield from iter_string_nodes(value, path + (key,))
    elif isinstance(obj, list):
        for index, value in enumerate(obj):
            yield from iter_string_nodes(value, path + (index,))
    elif isinstance(obj, str):
        yield path, obj


def path_to_key(path: PathType) -> str:
    """Convert a path tuple into the dotted message key used by the engine."""
    parts: List[str] = []
    for part in path:
        if isinstance(part, int):
            if not parts:
                parts.append(f"[{part}]")
            else:
                parts[-1] = f"{parts[-1]}[{part}]"
        else:
            parts.append(str(part))
    return ".".join(parts)


def flatten_messages(document: Mapping[str, Any]) -> Tuple[MessageMap, Dict[str, PathType]]:
    """Flatten a nested locale document into a MessageMap.

    Returns the flat map together with the original path of every key so the
    result can be written back into the same shape with :func:`unflatten_messages`.
    """
    flat: MessageMap = {}
    paths: Dict[str, PathType] = {}
    for path, value in iter_string_nodes(dict(document)):
        key = path_to_key(path)
        flat[key] = value
        paths[key] = path
    return flat, paths


def unflatten_messages(
    template: Mapping[str, Any], paths: Mapping[str, PathType], values: Mapping[str, str]
) -> Dict[str, Any]:
    """Write ``values`` into a deep copy of ``template`` at their recorded paths.

    Keys without a value in ``values`` keep the template's text.
    """
    document = _deep_copy(template)
    for key, path in paths.items():
        if key not in values:
            continue
        current = document
        for part in path[:-1]:
            current = current[part]
        current[path[-1]] = values[key]
    return document


def _deep_copy(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        return {key: _deep_copy(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_deep_copy(value) for value in obj]
    return obj


__all__ = [
    "ADVISE_ERROR_TYPES",
    "DEFAULT_WEBSITE_ERROR_TYPES",
    "Entry",
    "ErrorType",
    "MessageMap",
    "PathType",
    "REVISION_ERROR_TYPES",
    "RevisionSuggestion",
    "SEVERITIES",
    "WEBSITE_ERROR_TYPES",
    "apply_suggestions",
    "flatten_messages",
    "iter_string_nodes",
    "path_to_key",
    "severity_rank",
    "unflatten_messages",
]
