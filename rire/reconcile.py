"""Turn raw model output into translations or suggestions without ever raising.

Two policies exist. Structured output produced under a provider-enforced schema
is trusted as-is, and an empty payload simply contributes nothing. Free text is
searched for its first JSON object or array; when that fails, translation
batches fall back to their source text and revision batches contribute no
suggestions.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from rire.structures import Entry, MessageMap, RevisionSuggestion

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


def extract_json_region(text: str, opener: str) -> Optional[str]:
    """Return the text from the first ``opener`` up to its structural match.

    String literals and escape sequences are honoured, so brackets inside
    quoted values do not count. Returns None when there is no opener or it is
    never closed.
    """
    closer = _CLOSERS[opener]
    start = text.find(opener)
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def _load_region(text: Optional[str], opener: str) -> Any:
    region = extract_json_region(text or "", opener)
    if region is None:
        return None
    try:
        return json.loads(region)
    except json.JSONDecodeError as exc:
        logger.warning(f"Model returned malformed JSON: {exc}")
        return None


def _collect_translations(batch: Sequence[Entry], payload: dict) -> MessageMap:
    expected = {key for key, _ in batch}
    collected: MessageMap = {}
    for key, value in payload.items():
        if key not in expected:
            logger.debug(f"LLM returned unexpected key: {key}")
            continue
        if not isinstance(value, str):
            logger.warning(f"LLM returned non-string value for {key}: {type(value).__name__}")
            continue
        collected[key] = value
    return collected


def translations_from_output(batch: Sequence[Entry], output: Any) -> Tuple[MessageMap, bool]:
    """Strict policy: keep what the schema-validated payload holds for this batch."""
    if not isinstance(output, dict) or not output:
        logger.warning(f"Structured output missing for a batch of {len(batch)} messages")
        return {}, False
    return _collect_translations(batch, output), True


def translations_from_text(batch: Sequence[Entry], text: Optional[str]) -> Tuple[MessageMap, bool]:
    """Free-text policy: parse the first JSON object, fall back to the source text.

    Every key of the batch is present in the result. Keys the model skipped
    keep their source value.
    """
    payload = _load_region(text, "{")
    if not isinstance(payload, dict):
        logger.warning(
            f"No usable JSON object in response, keeping source text for {len(batch)} messages"
        )
        return dict(batch), False
    collected = _collect_translations(batch, payload)
    missing = [key for key, _ in batch if key not in collected]
    if missing:
        logger.warning(f"Model skipped {len(missing)} keys, keeping source text for them")
    return {key: collected.get(key, value) for key, value in batch}, True


def _validate_suggestions(
    records: Iterable[Any], allowed_types: Sequence[str]
) -> List[RevisionSuggestion]:
    suggestions: List[RevisionSuggestion] = []
    dropped = 0
    for record in records:
        suggestion = RevisionSuggestion.from_dict(record, allowed_types)
        if suggestion is None:
            dropped += 1
            continue
        suggestions.append(suggestion)
    if dropped:
        logger.warning(f"Dropped {dropped} suggestion records that did not match the schema")
    return suggestions


def suggestions_from_output(
    output: Any, allowed_types: Sequence[str]
) -> Tuple[List[RevisionSuggestion], bool]:
    """Strict policy for suggestion arrays, optionally wrapped as ``{"suggestions": [...]}``."""
    if isinstance(output, dict):
        output = output.get("suggestions")
    if not isinstance(output, list):
        logger.warning("Structured output missing for a revision batch")
        return [], False
    return _validate_suggestions(output, allowed_types), True


def suggestions_from_text(
    text: Optional[str], allowed_types: Sequence[str]
) -> Tuple[List[RevisionSuggestion], bool]:
    """Free-text policy: parse the first JSON array; contribute nothing on failure.

    A failed parse cannot be told apart from "no issues found" by callers; the
    second tuple item is the only signal.
    """
    payload = _load_region(text, "[")
    if not isinstance(payload, list):
        logger.warning("No usable JSON array in response, batch contributes no suggestions")
        return [], False
    return _validate_suggestions(payload, allowed_types), True


class StreamingArrayParser:
    """Incremental scanner yielding each object of a top-level JSON array.

    States: ``outside`` until the first ``[``, ``array`` between elements,
    and ``object`` while collecting an element (with a depth counter). Once
    inside the array, a ``]`` at array level is ignored and objects keep
    being collected until the stream ends. ``in_string`` and ``escaped``
    track string literals so quoted braces never count as structure.
    """

    OUTSIDE = "outside"
    ARRAY = "array"
    OBJECT = "object"

    def __init__(self) -> None:
        self._buffer: List[str] = []
        self.reset()

    def reset(self) -> None:
        """Forget any partially collected object and start over."""
        self.state = self.OUTSIDE
        self.depth = 0
        self.in_string = False
        self.escaped = False
        self._buffer = []

    def feed(self, chunk: str) -> List[dict]:
        """Consume a chunk and return the objects it completed, in order."""
        completed: List[dict] = []
        for char in chunk:
            parsed = self._consume(char)
            if parsed is not None:
                completed.append(parsed)
        return completed

    def _consume(self, char: str) -> Optional[dict]:
        if self.state == self.OUTSIDE:
            if char == "[":
                self.state = self.ARRAY
            return None
        collecting = self.state == self.OBJECT

        if self.in_string:
            if self.escaped:
                self.escaped = False
            elif char == "\\":
                self.escaped = True
            elif char == '"':
                self.in_string = False
            if collecting:
                self._buffer.append(char)
            return None

        if char == '"':
            self.in_string = True
            if collecting:
                self._buffer.append(char)
            return None

        if self.state == self.ARRAY:
            if char == "{":
                self.state = self.OBJECT
                self.depth = 1
                self._buffer = [char]
            return None

        self._buffer.append(char)
        if char == "{":
            self.depth += 1
        elif char == "}":
            self.depth -= 1
            if self.depth == 0:
                return self._finish_object()
        return None

    def _finish_object(self) -> Optional[dict]:
        text = "".join(self._buffer)
        self._buffer = []
        self.state = self.ARRAY
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"Discarding unparseable streamed object: {text[:80]}")
            return None
        return parsed if isinstance(parsed, dict) else None


def iter_array_objects(chunks: Iterable[str]) -> Iterator[dict]:
    """Yield objects of a streamed JSON array as soon as each one is complete."""
    parser = StreamingArrayParser()
    for chunk in chunks:
        yield from parser.feed(chunk)


__all__ = [
    "StreamingArrayParser",
    "extract_json_region",
    "iter_array_objects",
    "suggestions_from_output",
    "suggestions_from_text",
    "translations_from_output",
    "translations_from_text",
]
