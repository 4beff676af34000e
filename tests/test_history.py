import history
from prompt_parser import PromptDocument, empty_result, score


def regex_success():
    return score(PromptDocument(title="T", prompt_code="c"), "regex")


def test_record_and_get():
    import_id = history.record_import("paste", "clipboard", regex_success(), raw_content_length=42)
    assert import_id.startswith("imp_")
    entry = history.get_import(import_id)
    assert entry["source_type"] == "paste"
    assert entry["parsing_method"] == "regex"
    assert entry["success"] is True
    assert entry["confidence"] == 50
    assert entry["parsed_fields"]["prompt_code"] == "c"
    assert entry["raw_content_length"] == 42


def test_template_id_taken_from_result():
    result = regex_success()
    result.method = "template"
    result.template_id = "tmpl_1"
    import_id = history.record_import("url", "https://x", result, raw_content_length=1)
    assert history.get_import(import_id)["template_id"] == "tmpl_1"


def test_list_with_limit_and_offset():
    ids = [
        history.record_import("file", f"f{i}.md", regex_success(), raw_content_length=i)
        for i in range(5)
    ]
    assert len(history.list_imports()) == 5
    assert len(history.list_imports(limit=2)) == 2
    assert len(history.list_imports(limit=10, offset=3)) == 2
    assert {e["id"] for e in history.list_imports()} == set(ids)


def test_stats():
    history.record_import("paste", "a", regex_success(), raw_content_length=1)
    history.record_import("file", "b.md", empty_result("ai", error="x"), raw_content_length=1)
    stats = history.import_stats()
    assert stats["total_imports"] == 2
    assert stats["successful_imports"] == 1
    assert stats["by_method"] == {"regex": 1, "template": 0, "ai": 1}
    assert stats["by_source"] == {"url": 0, "file": 1, "paste": 1}


def test_cleanup_keeps_newest_count():
    for i in range(4):
        history.record_import("paste", str(i), regex_success(), raw_content_length=1)
    assert history.cleanup_old_imports(keep_count=3) == 1
    assert len(history.list_imports()) == 3
    assert history.cleanup_old_imports(keep_count=3) == 0


def test_corrupt_and_missing_entries():
    history.record_import("paste", "a", regex_success(), raw_content_length=1)
    (history.HISTORY_DIR / "imp_broken.json").write_text("{")
    assert len(history.list_imports()) == 1
    assert history.get_import("imp_broken") is None
    assert history.get_import("imp_missing") is None


def test_clear_history():
    history.record_import("paste", "a", regex_success(), raw_content_length=1)
    assert history.clear_history() == 1
    assert history.list_imports() == []
