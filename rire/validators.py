import re
from collections import Counter
from typing import Iterable, List, Mapping

TOKEN_DIFF_LIMIT = 5

TOKENS = [
    r"\{\{[^}]+\}\}",
    r"\{[a-zA-Z0-9_]+\}",
    r"%\d+\$s",
    r"%s",
    r"%d",
    r"%f",
    r"<\/?[0-9a-zA-Z]+[^>]*>",
]
TOKEN_RE = re.compile("|".join(TOKENS))


def _token_counts(value: str) -> Counter:
    return Counter(TOKEN_RE.findall(value or ""))


def _format_token_diffs(expected: Counter, actual: Counter) -> Iterable[str]:
    diffs = []
    for token, count in expected.items():
        delta = count - actual.get(token, 0)
        if delta > 0:
            diffs.append(f"missing {token} ×{delta}")
    for token, count in actual.items():
        delta = count - expected.get(token, 0)
        if delta > 0:
            diffs.append(f"unexpected {token} ×{delta}")
    return diffs[:TOKEN_DIFF_LIMIT]


def placeholder_mismatches(source: Mapping[str, str], translated: Mapping[str, str]) -> List[str]:
    """Describe every key whose placeholders/tags differ between source and translation.

    Keys missing from ``translated`` are reported too.
    """
    problems: List[str] = []
    for key, source_value in source.items():
        value = translated.get(key)
        if not isinstance(value, str):
            problems.append(f"{key}: translation missing")
            continue
        expected = _token_counts(source_value)
        actual = _token_counts(value)
        if expected != actual:
            details = ", ".join(_format_token_diffs(expected, actual)) or "token counts differ"
            problems.append(f"{key}: placeholder mismatch ({details})")
    return problems
