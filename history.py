"""Persist prompt import history to disk as JSON files in context/history/."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path

HISTORY_DIR = Path("context/history")
PARSING_METHODS = ("regex", "template", "ai")
SOURCE_TYPES = ("url", "file", "paste")


def _ensure_dir():
    HISTORY_DIR.mkdir(parents=True, exist_ok=True)


def record_import(source_type, source_identifier, result, raw_content_length, template_id=None):
    """Write one import entry for a ParseResult. Returns the import_id (filename stem)."""
    _ensure_dir()
    now = datetime.now(timezone.utc)
    import_id = f"imp_{now.strftime('%Y%m%d-%H%M%S')}_{uuid.uuid4().hex[:8]}"
    entry = {
        "id": import_id,
        "source_type": source_type,
        "source_identifier": source_identifier,
        "template_id": template_id or result.template_id,
        "parsing_method": result.method,
        "success": result.success,
        "error": result.error,
        "parsed_fields": result.fields.to_dict(),
        "confidence": result.confidence,
        "raw_content_length": raw_content_length,
        "processing_time_ms": result.processing_time_ms,
        "created_at": now.isoformat(),
    }
    (HISTORY_DIR / f"{import_id}.json").write_text(json.dumps(entry, indent=2))
    return import_id


def _read_all():
    _ensure_dir()
    entries = []
    for path in HISTORY_DIR.glob("*.json"):
        try:
            entries.append(json.loads(path.read_text()))
        except (json.JSONDecodeError, OSError):
            continue
    entries.sort(key=lambda e: e.get("created_at", ""), reverse=True)
    return entries


def list_imports(limit=100, offset=0):
    """Read history entries, newest first."""
    return _read_all()[offset:offset + limit]


def get_import(import_id):
    """Read a single import entry by ID. Returns None if not found."""
    path = HISTORY_DIR / f"{import_id}.json"
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return None


def cleanup_old_imports(keep_count=100):
    """Delete all but the newest ``keep_count`` entries. Returns count deleted."""
    stale = _read_all()[keep_count:]
    for entry in stale:
        (HISTORY_DIR / f"{entry['id']}.json").unlink(missing_ok=True)
    return len(stale)


def import_stats():
    """Totals plus per-method and per-source counts."""
    entries = _read_all()
    by_method = {m: 0 for m in PARSING_METHODS}
    by_source = {s: 0 for s in SOURCE_TYPES}
    for e in entries:
        method = e.get("parsing_method")
        if method in by_method:
            by_method[method] += 1
        source = e.get("source_type")
        if source in by_source:
            by_source[source] += 1
    return {
        "total_imports": len(entries),
        "successful_imports": sum(1 for e in entries if e.get("success")),
        "by_method": by_method,
        "by_source": by_source,
    }


def clear_history():
    """Delete all history files. Returns count deleted."""
    _ensure_dir()
    files = list(HISTORY_DIR.glob("*.json"))
    for f in files:
        f.unlink()
    return len(files)
