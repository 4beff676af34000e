"""Parse pasted prompt documents into title, summary, example prompts and code.

Two strategies live here:

- the built-in regex layout (``# **Title**`` / summary /
  ``**Three example prompts:**`` / numbered quoted lines / fenced code)
- per-source import templates that supply their own regex for each field

Each field is located independently so that a missing or malformed section
never costs the other fields.
"""

import re
from dataclasses import dataclass, field

FIELD_NAMES = ("title", "summary", "example_prompts", "prompt_code")
MIN_EXAMPLE_PROMPTS = 3

TITLE_BOLD_RE = re.compile(r"^#\s*\*\*(.*?)\*\*", re.MULTILINE)
TITLE_PLAIN_RE = re.compile(r"^#\s+(.+?)(?:\s*$|\n)", re.MULTILINE)
EXAMPLE_MARKER_RE = re.compile(r"\*\*Three example.*?prompts.*?:\*\*", re.IGNORECASE)
EXAMPLE_PROMPT_RE = re.compile(r"\d+\.\s*[“\"](.*?)[”\"]")
CODE_BLOCK_RE = re.compile(r"```\s*([\s\S]*?)```")
FENCE = "```"


@dataclass
class PromptDocument:
    """Structured fields of a prompt document. Empty values mean "not found"."""
    title: str = ""
    summary: str = ""
    example_prompts: list[str] = field(default_factory=list)
    prompt_code: str = ""

    def is_empty(self) -> bool:
        return not (self.title or self.summary or self.example_prompts or self.prompt_code)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "summary": self.summary,
            "example_prompts": list(self.example_prompts),
            "prompt_code": self.prompt_code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PromptDocument":
        examples = data.get("example_prompts") or data.get("examplePrompts") or []
        return cls(
            title=str(data.get("title") or ""),
            summary=str(data.get("summary") or ""),
            example_prompts=[str(e) for e in examples] if isinstance(examples, list) else [],
            prompt_code=str(data.get("prompt_code") or data.get("promptCode") or ""),
        )


@dataclass
class FieldPattern:
    """A template regex for one field. ``flags`` uses JavaScript letters (i, m, s)."""
    pattern: str
    flags: str = ""
    group_index: int = 1

    def to_dict(self) -> dict:
        return {"pattern": self.pattern, "flags": self.flags, "group_index": self.group_index}

    @classmethod
    def from_dict(cls, data: dict) -> "FieldPattern":
        return cls(
            pattern=data.get("pattern", ""),
            flags=data.get("flags") or "",
            group_index=int(data.get("group_index", data.get("groupIndex", 1))),
        )


@dataclass
class ParseResult:
    """Outcome of one parsing strategy."""
    success: bool
    confidence: float
    fields_found: list[str]
    fields: PromptDocument
    method: str = "regex"
    template_id: str | None = None
    error: str | None = None
    tokens_used: int | None = None
    processing_time_ms: int | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "confidence": self.confidence,
            "fields_found": list(self.fields_found),
            "fields": self.fields.to_dict(),
            "method": self.method,
            "template_id": self.template_id,
            "error": self.error,
            "tokens_used": self.tokens_used,
            "processing_time_ms": self.processing_time_ms,
        }


# ---------------------------------------------------------------------------
# Field extraction steps (each returns None on a miss)
# ---------------------------------------------------------------------------

def _match_title(text: str) -> re.Match | None:
    return TITLE_BOLD_RE.search(text) or TITLE_PLAIN_RE.search(text)


def extract_title(text: str) -> str | None:
    """Return the H1 heading text, preferring the ``# **bold**`` form."""
    match = _match_title(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def _marker_start(text: str) -> int:
    match = EXAMPLE_MARKER_RE.search(text)
    return match.start() if match else -1


def extract_summary(text: str) -> str | None:
    """Return the text between the title and the example-prompts marker.

    Without a usable title, everything before the marker is taken (including
    any preamble). Without the marker, or with the title after the marker,
    there is no summary.
    """
    marker_start = _marker_start(text)
    if marker_start == -1:
        return None

    match = _match_title(text)
    if match and match.group(1).strip():
        if match.end() >= marker_start:
            return None
        summary = text[match.end():marker_start]
    else:
        summary = text[:marker_start]
    return summary.strip() or None


def extract_example_prompts(text: str) -> list[str] | None:
    """Return numbered quoted lines between the marker and the next fence."""
    marker_start = _marker_start(text)
    if marker_start == -1:
        return None

    fence_start = text.find(FENCE, marker_start)
    section = text[marker_start:fence_start] if fence_start != -1 else text[marker_start:]
    prompts = [m.group(0).strip() for m in EXAMPLE_PROMPT_RE.finditer(section)]
    return prompts or None


def extract_prompt_code(text: str) -> str | None:
    """Return the trimmed body of the first fenced code block."""
    match = CODE_BLOCK_RE.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def parse_prompt_document(raw: str) -> PromptDocument:
    """Parse a pasted prompt document. Never raises; misses become empty values."""
    text = (raw or "").strip()
    return PromptDocument(
        title=extract_title(text) or "",
        summary=extract_summary(text) or "",
        example_prompts=extract_example_prompts(text) or [],
        prompt_code=extract_prompt_code(text) or "",
    )


def pad_example_prompts(prompts: list[str], minimum: int = MIN_EXAMPLE_PROMPTS) -> list[str]:
    """Pad with empty strings to at least ``minimum`` entries for editing."""
    return list(prompts) + [""] * max(0, minimum - len(prompts))


def fields_found(document: PromptDocument) -> list[str]:
    found = []
    if document.title.strip():
        found.append("title")
    if document.summary.strip():
        found.append("summary")
    if document.example_prompts:
        found.append("example_prompts")
    if document.prompt_code.strip():
        found.append("prompt_code")
    return found


def score(document: PromptDocument, method: str, template_id: str | None = None) -> ParseResult:
    """Wrap a document in a ParseResult. Title and prompt code are required for success."""
    found = fields_found(document)
    return ParseResult(
        success="title" in found and "prompt_code" in found,
        confidence=len(found) / len(FIELD_NAMES) * 100,
        fields_found=found,
        fields=document,
        method=method,
        template_id=template_id,
    )


def empty_result(method: str, error: str | None = None) -> ParseResult:
    return ParseResult(
        success=False,
        confidence=0,
        fields_found=[],
        fields=PromptDocument(),
        method=method,
        error=error,
    )


def parse_with_regex(raw: str) -> ParseResult:
    """Parse with the built-in layout and score the result."""
    if not (raw or "").strip():
        return empty_result("regex")
    return score(parse_prompt_document(raw), "regex")


# ---------------------------------------------------------------------------
# Template parsing
# ---------------------------------------------------------------------------

_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def compile_pattern(field_pattern: FieldPattern) -> re.Pattern:
    """Compile a template pattern. Raises re.error for invalid patterns."""
    flags = 0
    for letter in field_pattern.flags:
        flags |= _FLAG_MAP.get(letter, 0)
    return re.compile(field_pattern.pattern, flags)


def _capture(match: re.Match, group_index: int) -> str:
    value = match.group(group_index) if 0 <= group_index <= match.re.groups else None
    return (value or match.group(0)).strip()


def parse_with_template(raw: str, template, on_status=None) -> ParseResult:
    """
    Parse using a template's per-field patterns.

    ``template`` needs ``id`` and ``field_patterns`` (a dict from field name
    to FieldPattern). An invalid pattern skips only its own field.
    """
    if on_status is None:
        on_status = print

    text = (raw or "").strip()
    if not text:
        result = empty_result("template")
        result.template_id = template.id
        return result

    document = PromptDocument()
    for name in FIELD_NAMES:
        field_pattern = template.field_patterns.get(name)
        if field_pattern is None or not field_pattern.pattern:
            continue
        try:
            regex = compile_pattern(field_pattern)
        except re.error as e:
            on_status(f"[TEMPLATE] Invalid pattern for {name}: {e}")
            continue

        if name == "example_prompts":
            document.example_prompts = [
                _capture(m, field_pattern.group_index) for m in regex.finditer(text)
            ]
            continue

        match = regex.search(text)
        if match:
            setattr(document, name, _capture(match, field_pattern.group_index))

    return score(document, "template", template_id=template.id)
