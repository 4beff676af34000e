#!/usr/bin/env python3
"""Prompt Import Toolkit - parse pasted prompt documents and LLM JSON output."""

import argparse
import json
import sys
import time
from pathlib import Path

import config
import history
import templates
from extractors import extract_file_text, fetch_url_text, is_url, url_domain
from json_extract import JsonExtractionError, parse_strict_json
from llm import parse_with_ai
from prompt_parser import ParseResult, parse_with_regex, parse_with_template
from prompts import list_prompts, save_prompt

METHODS = ("regex", "template", "ai")


def _accepted(result: ParseResult) -> bool:
    return result.success and result.confidence >= config.min_confidence()


def _finish(result: ParseResult, started: float) -> ParseResult:
    result.processing_time_ms = int((time.monotonic() - started) * 1000)
    return result


def parse_prompt_content(
    raw: str,
    force_method: str | None = None,
    template=None,
    source_hint: str | None = None,
    on_status=None,
) -> ParseResult:
    """
    Parse prompt content with the fallback chain: regex -> template -> AI.

    A forced method runs only that method. Otherwise each step is accepted
    when it succeeds with at least PARSE_MIN_CONFIDENCE; the AI model is only
    asked when the cheaper steps fail. When everything fails the best partial
    result is returned with ``error`` set.
    """
    if on_status is None:
        on_status = print
    started = time.monotonic()

    if force_method is not None and force_method not in METHODS:
        raise ValueError(f"Unknown parsing method: {force_method}")
    if force_method == "regex":
        return _finish(parse_with_regex(raw), started)
    if force_method == "ai":
        return _finish(parse_with_ai(raw, source_hint=source_hint, on_status=on_status), started)
    if force_method == "template":
        if template is not None:
            return _finish(parse_with_template(raw, template, on_status=on_status), started)
        # No template to force; run the normal chain instead
        on_status("[PARSE] No template available, using the normal parsing chain")

    on_status("[PARSE] Trying regex parsing...")
    regex_result = parse_with_regex(raw)
    if _accepted(regex_result):
        on_status(f"[PARSE] Regex parsing succeeded ({regex_result.confidence:.0f}% confidence)")
        return _finish(regex_result, started)

    if template is not None:
        on_status(f"[PARSE] Trying template '{template.name}'...")
        template_result = parse_with_template(raw, template, on_status=on_status)
        if _accepted(template_result):
            on_status(f"[PARSE] Template parsing succeeded ({template_result.confidence:.0f}% confidence)")
            return _finish(template_result, started)

    on_status("[PARSE] Falling back to AI parsing...")
    ai_result = parse_with_ai(raw, source_hint=source_hint, on_status=on_status)
    if ai_result.success:
        on_status(f"[PARSE] AI parsing succeeded ({ai_result.confidence:.0f}% confidence)")
        return _finish(ai_result, started)

    if regex_result.fields_found:
        regex_result.success = False
        regex_result.error = "Partial extraction: could not extract all required fields"
        on_status(f"[PARSE] {regex_result.error}")
        return _finish(regex_result, started)

    ai_result.success = False
    ai_result.confidence = 0
    ai_result.error = "Could not extract prompt fields from content"
    on_status(f"[PARSE] {ai_result.error}")
    return _finish(ai_result, started)


def import_prompt(
    raw: str,
    source_type: str,
    source_identifier: str,
    force_method: str | None = None,
    template_id: str | None = None,
    on_status=None,
) -> tuple[str, ParseResult]:
    """
    Parse imported content and record the import in history.

    Uses the given template, or the first stored template whose source
    pattern matches ``source_identifier``.

    Returns:
        (import_id, ParseResult)
    """
    if on_status is None:
        on_status = print

    if template_id:
        template = templates.get_template(template_id)
        if template is None:
            raise ValueError(f"Template '{template_id}' not found")
    else:
        # URL templates match on the host name
        match_on = url_domain(source_identifier) if source_type == "url" else source_identifier
        template = templates.find_matching_template(source_type, match_on)
    if template is not None:
        on_status(f"[IMPORT] Using template: {template.name}")

    result = parse_prompt_content(
        raw,
        force_method=force_method,
        template=template,
        source_hint=source_identifier,
        on_status=on_status,
    )

    if template is not None and result.method == "template":
        templates.increment_template_stats(template.id, result.success)

    import_id = history.record_import(
        source_type,
        source_identifier,
        result,
        raw_content_length=len(raw or ""),
        template_id=template.id if template is not None and result.method == "template" else None,
    )
    on_status(
        f"[IMPORT] {import_id}: {'succeeded' if result.success else 'partially succeeded'} "
        f"via {result.method}"
    )
    return import_id, result


def _read_source(path: str) -> tuple[str, str, str]:
    """Return (text, source_type, identifier) for a URL, a file path, or '-' for stdin."""
    if path == "-":
        return sys.stdin.read(), "paste", "stdin"
    if is_url(path):
        return fetch_url_text(path), "url", path
    file = Path(path)
    return extract_file_text(file.name, file.read_bytes()), "file", file.name


def run_parse(path: str, method: str | None = None, template_id: str | None = None,
              save: bool = False) -> ParseResult:
    """Parse a prompt document from a file, URL or stdin and print the fields."""
    raw, source_type, identifier = _read_source(path)

    print("\n" + "=" * 60)
    print(f"[IMPORT] Parsing {identifier} ({len(raw)} chars)")
    print("=" * 60)

    import_id, result = import_prompt(
        raw, source_type, identifier, force_method=method, template_id=template_id
    )

    print("\n" + "=" * 60)
    print(f"[RESULT] Method: {result.method}  Confidence: {result.confidence:.0f}%")
    if result.error:
        print(f"[RESULT] {result.error}")
    print("=" * 60)
    print(json.dumps(result.fields.to_dict(), indent=2, ensure_ascii=False))

    if save and result.fields.title:
        prompt_id = save_prompt(result.fields)
        print(f"\n[LIBRARY] Saved as '{prompt_id}'")
    elif save:
        print("\n[LIBRARY] Not saved: no title extracted", file=sys.stderr)
    return result


def run_json(path: str) -> int:
    """Extract JSON from a file of raw LLM output. Returns an exit status."""
    raw = sys.stdin.read() if path == "-" else Path(path).read_text()
    try:
        data = parse_strict_json(raw)
    except JsonExtractionError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    print(json.dumps(data, indent=2, ensure_ascii=False))
    return 0


def display_prompts() -> None:
    saved = list_prompts()
    if not saved:
        print("No saved prompts.")
        return
    for p in saved:
        print(f"  {p['id']}: {p['name']} - {p['description']}")


def display_templates() -> None:
    stored = templates.list_templates()
    if not stored:
        print("No import templates.")
        return
    for t in stored:
        print(
            f"  {t.id}: {t.name} [{t.source_type}] /{t.source_pattern}/ "
            f"({t.success_count} ok, {t.failure_count} failed)"
        )


def display_history() -> None:
    entries = history.list_imports(limit=20)
    if not entries:
        print("No imports yet.")
        return
    for e in entries:
        status = "ok" if e.get("success") else "partial"
        print(
            f"  {e['id']}  {e['source_type']:<5} {e['parsing_method']:<8} "
            f"{status:<7} {e.get('source_identifier', '')}"
        )


def display_stats() -> None:
    stats = history.import_stats()
    print(f"Total imports:      {stats['total_imports']}")
    print(f"Successful imports: {stats['successful_imports']}")
    print("By method:  " + ", ".join(f"{k}={v}" for k, v in stats["by_method"].items()))
    print("By source:  " + ", ".join(f"{k}={v}" for k, v in stats["by_source"].items()))


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Prompt Import Toolkit - parse prompt documents and LLM JSON output"
    )
    parser.add_argument("--parse", metavar="FILE", help="Parse a prompt document ('-' for stdin)")
    parser.add_argument(
        "--url", metavar="URL", help="Fetch a web page and parse it as a prompt document"
    )
    parser.add_argument("--method", choices=METHODS, help="Force a single parsing method")
    parser.add_argument("--template", metavar="ID", help="Import template to use")
    parser.add_argument("--save", action="store_true", help="Save the parsed prompt to the library")
    parser.add_argument("--json", metavar="FILE", help="Extract JSON from LLM output ('-' for stdin)")
    parser.add_argument("--list-prompts", action="store_true", help="List saved prompts")
    parser.add_argument("--list-templates", action="store_true", help="List import templates")
    parser.add_argument("--history", action="store_true", help="Show recent imports")
    parser.add_argument("--stats", action="store_true", help="Show import statistics")

    args = parser.parse_args()

    try:
        config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.parse or args.url:
            run_parse(
                args.parse or args.url, method=args.method, template_id=args.template, save=args.save
            )
        elif args.json:
            sys.exit(run_json(args.json))
        elif args.list_prompts:
            display_prompts()
        elif args.list_templates:
            display_templates()
        elif args.history:
            display_history()
        elif args.stats:
            display_stats()
        else:
            parser.print_help()
            sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
