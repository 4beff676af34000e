import json
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path

from prompt_parser import EXAMPLE_PROMPT_RE, PromptDocument, parse_prompt_document

CONTEXT_DIR = Path("context")
PROMPTS_DIR = CONTEXT_DIR / "prompts"
MAX_PROMPTS = 100
EXAMPLE_MARKER = "**Three example prompts:**"


def _parse_frontmatter(text: str) -> tuple[dict, str]:
    """Parse YAML frontmatter from markdown text.

    Returns (metadata dict, body without frontmatter).
    If no frontmatter, returns ({}, original text).
    """
    if not text.startswith("---"):
        return {}, text
    end = text.find("---", 3)
    if end == -1:
        return {}, text
    raw = text[3:end].strip()
    body = text[end + 3:].lstrip("\n")
    meta = {}
    for line in raw.split("\n"):
        if ":" in line:
            key, _, val = line.partition(":")
            meta[key.strip()] = val.strip()
    return meta, body


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _format_example(index: int, example: str) -> str:
    example = example.strip()
    if EXAMPLE_PROMPT_RE.fullmatch(example):
        return example
    return f'{index}. "{example}"'


def render_prompt_document(doc: PromptDocument) -> str:
    """Render a document in the layout parse_prompt_document reads back.

    Sections with no content are left out.
    """
    parts = []
    if doc.title:
        parts.append(f"# **{doc.title}**")
    if doc.summary:
        parts.append(doc.summary)
    examples = [e for e in doc.example_prompts if e.strip()]
    if examples:
        lines = [_format_example(i, e) for i, e in enumerate(examples, 1)]
        parts.append(EXAMPLE_MARKER + "\n" + "\n".join(lines))
    if doc.prompt_code:
        parts.append(f"```\n{doc.prompt_code}\n```")
    return "\n\n".join(parts) + "\n"


def save_prompt(doc: PromptDocument, prompt_id: str | None = None, description: str = "") -> str:
    """Save a document to the library with frontmatter metadata. Returns the prompt ID."""
    if not prompt_id:
        prompt_id = slugify(doc.title)
    # Enforce valid id pattern
    prompt_id = re.sub(r"[^a-z0-9-]", "", prompt_id.lower().replace(" ", "-")).strip("-")
    if not prompt_id:
        raise ValueError("A prompt needs a title or an ID to be saved")
    prompt_dir = PROMPTS_DIR / prompt_id
    prompt_dir.mkdir(parents=True, exist_ok=True)
    saved_at = datetime.now(timezone.utc).isoformat()
    name = doc.title or prompt_id
    desc = description or doc.summary.split("\n")[0][:120] or "Saved prompt"
    frontmatter = (
        f"---\nid: {prompt_id}\nname: {name}\ndescription: {desc}\nsaved_at: {saved_at}\n---\n\n"
    )
    (prompt_dir / "prompt.md").write_text(frontmatter + render_prompt_document(doc))
    # Exact copy of the fields; the Markdown can't hold fences or quotes inside them
    (prompt_dir / "prompt.json").write_text(json.dumps(doc.to_dict(), indent=2))
    return prompt_id


def load_prompt(prompt_id: str) -> PromptDocument | None:
    """Load a saved prompt.

    Reads prompt.json when present; hand-written folders with only a
    prompt.md are parsed from the Markdown body.
    """
    prompt_dir = PROMPTS_DIR / prompt_id
    fields = prompt_dir / "prompt.json"
    if fields.exists():
        try:
            return PromptDocument.from_dict(json.loads(fields.read_text()))
        except (json.JSONDecodeError, OSError, AttributeError, TypeError):
            pass  # fall back to the Markdown copy
    path = prompt_dir / "prompt.md"
    if not path.exists():
        return None
    _, body = _parse_frontmatter(path.read_text())
    return parse_prompt_document(body)


def prompt_exists(prompt_id: str) -> bool:
    """Check if a saved prompt with the given ID already exists."""
    return (PROMPTS_DIR / prompt_id / "prompt.md").exists()


def delete_prompt(prompt_id: str) -> bool:
    """Delete a saved prompt by ID. Returns True if deleted."""
    prompt_dir = PROMPTS_DIR / prompt_id
    if prompt_dir.exists() and prompt_dir.is_dir():
        shutil.rmtree(prompt_dir)
        return True
    return False


def list_prompts(limit: int = MAX_PROMPTS) -> list[dict]:
    """List saved prompts, newest first.

    Returns list of dicts with keys: id, name, description, saved_at
    """
    if not PROMPTS_DIR.exists():
        return []
    saved = []
    for d in PROMPTS_DIR.iterdir():
        md = d / "prompt.md"
        if not d.is_dir() or not md.exists():
            continue
        meta, body = _parse_frontmatter(md.read_text())
        if meta:
            name = meta.get("name", d.name)
            description = meta.get("description", "Saved prompt")
        else:
            # Fallback: read H1 title from markdown
            name = parse_prompt_document(body).title or d.name
            description = "Saved prompt"
        saved.append({
            "id": d.name,
            "name": name,
            "description": description,
            "saved_at": meta.get("saved_at", ""),
        })
    saved.sort(key=lambda p: p["saved_at"], reverse=True)
    return saved[:limit]
