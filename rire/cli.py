#!/usr/bin/env python3
"""Command line entry point: translate, revise and advise."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from tqdm import tqdm

from rire.advise import (
    ADVISE_PROVIDER,
    advise_labels,
    advise_website,
    advise_website_stream,
    encode_ndjson,
    normalize_url,
)
from rire.config import (
    DEFAULT_MODELS,
    SUPPORTED_PROVIDERS,
    AppSettings,
    EngineSettings,
    ProviderSettings,
)
from rire.pipeline import revise_messages, translate_messages
from rire.providers import verify_api_key
from rire.retry import RateLimitError
from rire.structures import (
    REVISION_ERROR_TYPES,
    WEBSITE_ERROR_TYPES,
    RevisionSuggestion,
    apply_suggestions,
    flatten_messages,
    severity_rank,
    unflatten_messages,
)
from rire.validators import placeholder_mismatches

logger = logging.getLogger(__name__)

PROBLEM_LIMIT = 20


def load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"{path} not found")
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise TypeError(f"{path} must contain a JSON object at the root")
    return data


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def parse_error_types(raw: Optional[str], valid: Sequence[str]) -> List[str]:
    """Comma-separated error types, keeping only known names."""
    if not raw:
        return []
    allowed = set(valid)
    parsed = [part.strip().lower() for part in raw.split(",")]
    return [name for name in parsed if name in allowed]


def read_context(args: argparse.Namespace) -> str:
    if getattr(args, "context", None):
        return args.context
    if getattr(args, "context_path", None):
        return Path(args.context_path).read_text(encoding="utf-8")
    return ""


def resolve_settings(args: argparse.Namespace, provider: Optional[str] = None) -> AppSettings:
    """Settings from the environment, with command line flags taking precedence."""
    provider = (provider or args.provider or ProviderSettings.default_provider()).lower()
    if not args.api_key:
        settings = AppSettings.load(provider)
    elif provider in SUPPORTED_PROVIDERS:
        model = os.getenv("RIRE_MODEL", DEFAULT_MODELS[provider])
        settings = AppSettings(
            ProviderSettings(provider, args.api_key, model),
            EngineSettings.from_env(),
        )
    else:
        raise ValueError(f"Unsupported provider: {provider}")
    if args.model:
        settings = replace(settings, provider=replace(settings.provider, model=args.model))
    return settings


def progress_reporter(desc: str, disabled: bool) -> Tuple[tqdm, Callable[[int, int], None]]:
    bar = tqdm(total=0, desc=desc, unit="msg", disable=disabled)

    def report(current: int, total: int) -> None:
        bar.total = total
        bar.update(current - bar.n)

    return bar, report


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown_report(website_url: str, suggestions: Sequence[RevisionSuggestion]) -> str:
    """Markdown table of suggestions, most severe first."""
    lines = [
        f"# Suggestions for {website_url}",
        "",
        "| Key | Type | Severity | Original | Suggested | Reason |",
        "| --- | --- | --- | --- | --- | --- |",
    ]
    ordered = sorted(suggestions, key=lambda s: severity_rank(s.severity), reverse=True)
    for s in ordered:
        lines.append(
            f"| {_escape_cell(s.key)} | {s.type} | {s.severity or ''} | "
            f"{_escape_cell(s.original)} | {_escape_cell(s.suggested)} | {_escape_cell(s.reason)} |"
        )
    lines.append("")
    return "\n".join(lines)


def _add_provider_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--provider",
        choices=SUPPORTED_PROVIDERS,
        help="LLM provider (defaults to RIRE_PROVIDER or gemini)",
    )
    parser.add_argument("--model", help="Model identifier (defaults to RIRE_MODEL)")
    parser.add_argument("--api-key", help="API key (defaults to the provider's env variable)")


def _add_context_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--context", help="Product context to improve quality")
    group.add_argument("--context-path", help="File with product context (e.g. README.md)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rire",
        description="Translate and proofread localization files with LLMs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    translate = commands.add_parser("translate", help="Translate a locale JSON file")
    translate.add_argument("src", help="Path to the source (English) locale JSON")
    translate.add_argument("--lang", required=True, help="Target language code (e.g. de, fr)")
    translate.add_argument("--dst", help="Output path (defaults to <lang>.json next to src)")
    translate.add_argument("--batch-size", type=int, help="Messages per LLM request")
    translate.add_argument(
        "--free-text",
        action="store_true",
        help="Parse JSON out of free text instead of requesting structured output",
    )
    translate.add_argument("--no-progress", action="store_true", help="Disable progress bar")
    _add_provider_arguments(translate)
    _add_context_arguments(translate)

    revise = commands.add_parser("revise", help="Proofread a locale JSON file")
    revise.add_argument("src", help="Path to the locale JSON to revise")
    revise.add_argument(
        "--error-types",
        help=f"Comma-separated error types: {','.join(REVISION_ERROR_TYPES)}",
    )
    revise.add_argument("--out", help="Write suggestions as JSON to this path")
    revise.add_argument(
        "--accept-all",
        action="store_true",
        help="Apply every suggestion to the source file",
    )
    revise.add_argument("--batch-size", type=int, help="Messages per LLM request")
    revise.add_argument("--no-progress", action="store_true", help="Disable progress bar")
    _add_provider_arguments(revise)
    _add_context_arguments(revise)

    advise = commands.add_parser("advise", help="Review the copy of a website")
    advise.add_argument("url", help="URL of the website to review")
    advise.add_argument(
        "--error-types",
        help=f"Comma-separated error types: {','.join(WEBSITE_ERROR_TYPES)}",
    )
    advise.add_argument(
        "--labels",
        help="JSON file of labels already extracted from the site (reviewed in batches)",
    )
    advise.add_argument("--stream", action="store_true", help="Print suggestions as NDJSON")
    advise.add_argument("--report", help="Write a markdown report to this path")
    advise.add_argument("--no-progress", action="store_true", help="Disable progress bar")
    _add_provider_arguments(advise)

    verify = commands.add_parser("verify-key", help="Check an API key against a provider")
    verify.add_argument("--provider", choices=SUPPORTED_PROVIDERS, required=True)
    verify.add_argument("--api-key", help="API key (defaults to the provider's env variable)")
    return parser


def run_translate(args: argparse.Namespace) -> int:
    src = Path(args.src)
    document = load_json(src)
    messages, paths = flatten_messages(document)
    settings = resolve_settings(args)
    provider = settings.provider
    dst = Path(args.dst) if args.dst else src.with_name(f"{args.lang}.json")

    bar, report = progress_reporter("Translating", args.no_progress)
    with bar:
        translated = translate_messages(
            messages,
            args.lang,
            read_context(args),
            provider.api_key,
            provider.provider,
            provider.model,
            on_progress=report,
            batch_size=args.batch_size,
            structured_output=False if args.free_text else None,
            settings=settings.engine,
        )

    problems = placeholder_mismatches(messages, translated)
    for problem in problems[:PROBLEM_LIMIT]:
        logger.warning(problem)
    if len(problems) > PROBLEM_LIMIT:
        logger.warning(f"…and {len(problems) - PROBLEM_LIMIT} more")

    write_json(dst, unflatten_messages(document, paths, translated))
    print(f"[ok] wrote {dst} ({len(translated)}/{len(messages)} messages)")
    return 0


def run_revise(args: argparse.Namespace) -> int:
    src = Path(args.src)
    document = load_json(src)
    messages, paths = flatten_messages(document)
    settings = resolve_settings(args)
    provider = settings.provider
    error_types = parse_error_types(args.error_types, list(REVISION_ERROR_TYPES)) or ["grammar"]

    bar, report = progress_reporter("Analyzing", args.no_progress)
    with bar:
        suggestions = revise_messages(
            messages,
            error_types,
            read_context(args),
            provider.api_key,
            provider.provider,
            provider.model,
            on_progress=report,
            batch_size=args.batch_size,
            settings=settings.engine,
        )

    print(f"[ok] {len(suggestions)} suggestions for {len(messages)} messages")
    if args.out:
        write_json(Path(args.out), [s.to_dict() for s in suggestions])
        print(f"[ok] wrote {args.out}")
    else:
        for s in suggestions:
            print(f"- {s.key} [{s.type}]: {s.original!r} → {s.suggested!r} ({s.reason})")
    if args.accept_all and suggestions:
        revised = apply_suggestions(messages, suggestions)
        write_json(src, unflatten_messages(document, paths, revised))
        print(f"[ok] applied {len(suggestions)} suggestions to {src}")
    return 0


def run_advise(args: argparse.Namespace) -> int:
    url = normalize_url(args.url)
    error_types = parse_error_types(args.error_types, list(WEBSITE_ERROR_TYPES))

    if args.labels:
        labels, _ = flatten_messages(load_json(Path(args.labels)))
        settings = resolve_settings(args)
        provider = settings.provider
        bar, report = progress_reporter("Reviewing", args.no_progress)
        with bar:
            suggestions = advise_labels(
                labels,
                url,
                error_types,
                provider.api_key,
                provider.provider,
                provider.model,
                on_progress=report,
                settings=settings.engine,
            )
    else:
        settings = resolve_settings(args, ADVISE_PROVIDER)
        provider = settings.provider
        if args.stream:
            stream = advise_website_stream(url, error_types, provider.api_key, provider.model)
            for line in encode_ndjson(stream):
                sys.stdout.write(line)
                sys.stdout.flush()
            return 0
        suggestions = advise_website(
            url, error_types, provider.api_key, provider.model, settings=settings.engine
        )

    if args.report:
        report_path = Path(args.report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(render_markdown_report(url, suggestions), encoding="utf-8")
        print(f"[ok] wrote {report_path}")
    else:
        print(render_markdown_report(url, suggestions))
    return 0


def run_verify_key(args: argparse.Namespace) -> int:
    api_key = args.api_key or ProviderSettings.env_api_key(args.provider)
    if verify_api_key(api_key or "", args.provider):
        print(f"[ok] {args.provider} API key is valid")
        return 0
    print(f"[fail] {args.provider} API key is invalid")
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    if args.command == "verify-key":
        return run_verify_key(args)

    handlers = {"translate": run_translate, "revise": run_revise, "advise": run_advise}
    try:
        return handlers[args.command](args)
    except RateLimitError as exc:
        print(f"[error] {exc} Wait a moment or check your provider quota.")
        return 3
    except (FileNotFoundError, TypeError, ValueError, RuntimeError) as exc:
        print(f"[error] {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
