"""Persist import templates to disk as JSON files in context/templates/."""

import json
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from prompt_parser import FieldPattern

TEMPLATES_DIR = Path("context/templates")
SOURCE_TYPES = ("url", "file", "paste")
# Errors that mark a template file as unreadable
_UNREADABLE = (json.JSONDecodeError, OSError, KeyError, ValueError, TypeError, AttributeError)


@dataclass
class ImportTemplate:
    """Regex field patterns to apply to content from a matching source."""
    id: str
    name: str
    source_type: str
    source_pattern: str
    field_patterns: dict[str, FieldPattern] = field(default_factory=dict)
    parsing_instructions: str = ""
    success_count: int = 0
    failure_count: int = 0
    is_default: bool = False
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "source_type": self.source_type,
            "source_pattern": self.source_pattern,
            "field_patterns": {k: v.to_dict() for k, v in self.field_patterns.items()},
            "parsing_instructions": self.parsing_instructions,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "is_default": self.is_default,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImportTemplate":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            source_type=data.get("source_type", "paste"),
            source_pattern=data.get("source_pattern", ""),
            field_patterns={
                k: FieldPattern.from_dict(v) for k, v in (data.get("field_patterns") or {}).items()
            },
            parsing_instructions=data.get("parsing_instructions", ""),
            success_count=data.get("success_count", 0),
            failure_count=data.get("failure_count", 0),
            is_default=bool(data.get("is_default", False)),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


def _ensure_dir():
    TEMPLATES_DIR.mkdir(parents=True, exist_ok=True)


def _path(template_id: str) -> Path:
    return TEMPLATES_DIR / f"{template_id}.json"


def _write(template: ImportTemplate):
    _ensure_dir()
    _path(template.id).write_text(json.dumps(template.to_dict(), indent=2))


def _generate_id() -> str:
    now = datetime.now(timezone.utc)
    return f"tmpl_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:6]}"


def create_template(
    name: str,
    source_type: str,
    source_pattern: str,
    field_patterns: dict[str, FieldPattern],
    parsing_instructions: str = "",
    is_default: bool = False,
) -> ImportTemplate:
    """Create and store a new template. Returns the stored template."""
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {source_type}")
    now = datetime.now(timezone.utc).isoformat()
    template = ImportTemplate(
        id=_generate_id(),
        name=name,
        source_type=source_type,
        source_pattern=source_pattern,
        field_patterns=dict(field_patterns),
        parsing_instructions=parsing_instructions,
        is_default=is_default,
        created_at=now,
        updated_at=now,
    )
    _write(template)
    return template


def get_template(template_id: str) -> ImportTemplate | None:
    """Read a single template by ID. Returns None if not found."""
    path = _path(template_id)
    if not path.exists():
        return None
    try:
        return ImportTemplate.from_dict(json.loads(path.read_text()))
    except _UNREADABLE:
        return None


def list_templates(source_type: str | None = None, limit: int = 50) -> list[ImportTemplate]:
    """Read all templates, most successful first, then newest first."""
    _ensure_dir()
    templates = []
    for path in TEMPLATES_DIR.glob("*.json"):
        try:
            template = ImportTemplate.from_dict(json.loads(path.read_text()))
        except _UNREADABLE:
            continue
        if source_type and template.source_type != source_type:
            continue
        templates.append(template)
    templates.sort(key=lambda t: (t.success_count, t.created_at), reverse=True)
    return templates[:limit]


def find_matching_template(source_type: str, identifier: str) -> ImportTemplate | None:
    """Return the first template whose source pattern matches ``identifier``.

    Patterns are case-insensitive regexes; invalid ones are skipped.
    """
    for template in list_templates(source_type=source_type):
        try:
            if re.search(template.source_pattern, identifier, re.IGNORECASE):
                return template
        except re.error:
            continue
    return None


def update_template(template_id: str, **updates) -> ImportTemplate | None:
    """Apply field updates to a stored template. Unknown fields are ignored."""
    template = get_template(template_id)
    if template is None:
        return None
    for key in ("name", "source_type", "source_pattern", "field_patterns",
                "parsing_instructions", "is_default"):
        if key in updates and updates[key] is not None:
            setattr(template, key, updates[key])
    template.updated_at = datetime.now(timezone.utc).isoformat()
    _write(template)
    return template


def delete_template(template_id: str) -> bool:
    """Delete a template by ID. Returns True if deleted."""
    path = _path(template_id)
    if path.exists():
        path.unlink()
        return True
    return False


def increment_template_stats(template_id: str, success: bool):
    """Count one more successful or failed use of a template."""
    template = get_template(template_id)
    if template is None:
        return
    if success:
        template.success_count += 1
    else:
        template.failure_count += 1
    _write(template)
