import json

import pytest

import config
import history
import main
import templates
from prompt_parser import FieldPattern, PromptDocument, empty_result, score

GOOD_DOCUMENT = '# **Title**\nSummary.\n**Three example prompts:**\n1. "x"\n```\ncode\n```'
CUSTOM_LAYOUT = "Prompt: Custom\n<prompt>do it</prompt>"


@pytest.fixture
def ai_calls(monkeypatch):
    """Replace the AI step; returns the list of contents it was called with."""
    calls = []

    def fake(raw, source_hint=None, on_status=None):
        calls.append(raw)
        return empty_result("ai", error="model offline")

    monkeypatch.setattr(main, "parse_with_ai", fake)
    return calls


@pytest.fixture
def custom_template():
    return templates.create_template(
        "Custom layout",
        "paste",
        r"notes\.example",
        {
            "title": FieldPattern(r"^Prompt:\s*(.+)$", "m"),
            "prompt_code": FieldPattern(r"<prompt>(.*?)</prompt>", "s"),
        },
    )


def test_regex_success_skips_other_steps(ai_calls, status_log):
    result = main.parse_prompt_content(GOOD_DOCUMENT, on_status=status_log.append)
    assert result.success
    assert result.method == "regex"
    assert result.processing_time_ms is not None
    assert ai_calls == []


def test_template_used_when_regex_fails(ai_calls, custom_template, status_log):
    result = main.parse_prompt_content(
        CUSTOM_LAYOUT, template=custom_template, on_status=status_log.append
    )
    assert result.success
    assert result.method == "template"
    assert result.fields.title == "Custom"
    assert ai_calls == []


def test_ai_used_when_regex_and_template_fail(monkeypatch, status_log):
    def fake(raw, source_hint=None, on_status=None):
        return score(PromptDocument(title="AI", prompt_code="c"), "ai")

    monkeypatch.setattr(main, "parse_with_ai", fake)
    result = main.parse_prompt_content("unstructured text", on_status=status_log.append)
    assert result.success
    assert result.method == "ai"


def test_partial_regex_result_returned_when_everything_fails(ai_calls, status_log):
    result = main.parse_prompt_content("# **Only a title**", on_status=status_log.append)
    assert not result.success
    assert result.method == "regex"
    assert result.fields.title == "Only a title"
    assert result.error == "Partial extraction: could not extract all required fields"
    assert ai_calls == ["# **Only a title**"]


def test_nothing_found_returns_ai_failure(ai_calls, status_log):
    result = main.parse_prompt_content("nothing useful", on_status=status_log.append)
    assert not result.success
    assert result.method == "ai"
    assert result.confidence == 0
    assert result.error == "Could not extract prompt fields from content"


def test_min_confidence_gates_regex_success(monkeypatch, ai_calls, status_log):
    monkeypatch.setattr(config, "PARSE_MIN_CONFIDENCE", "100")
    raw = "# **Title**\n```\ncode\n```"
    result = main.parse_prompt_content(raw, on_status=status_log.append)
    assert len(ai_calls) == 1
    assert result.method == "regex"
    assert not result.success


def test_forced_regex_never_calls_ai(ai_calls):
    result = main.parse_prompt_content("nothing", force_method="regex", on_status=lambda _: None)
    assert result.method == "regex"
    assert ai_calls == []


def test_forced_template_without_template_runs_normal_chain(ai_calls, status_log):
    result = main.parse_prompt_content(
        GOOD_DOCUMENT, force_method="template", on_status=status_log.append
    )
    assert result.method == "regex"
    assert result.success
    assert "[PARSE] No template available, using the normal parsing chain" in status_log


def test_unknown_method_rejected():
    with pytest.raises(ValueError):
        main.parse_prompt_content(GOOD_DOCUMENT, force_method="magic")


def test_import_records_history(ai_calls, status_log):
    import_id, result = main.import_prompt(
        GOOD_DOCUMENT, "paste", "clipboard", on_status=status_log.append
    )
    entry = history.get_import(import_id)
    assert entry["parsing_method"] == "regex"
    assert entry["success"] is True
    assert entry["raw_content_length"] == len(GOOD_DOCUMENT)
    assert entry["parsed_fields"]["title"] == "Title"
    assert entry["template_id"] is None


def test_import_matches_template_by_source_and_counts_use(ai_calls, custom_template, status_log):
    import_id, result = main.import_prompt(
        CUSTOM_LAYOUT, "paste", "https://notes.example/p/1", on_status=status_log.append
    )
    assert result.method == "template"
    assert history.get_import(import_id)["template_id"] == custom_template.id
    assert templates.get_template(custom_template.id).success_count == 1


def test_import_unknown_template_id():
    with pytest.raises(ValueError):
        main.import_prompt(GOOD_DOCUMENT, "paste", "x", template_id="tmpl_missing")


def test_run_json_prints_extracted_value(tmp_path, capsys):
    source = tmp_path / "reply.txt"
    source.write_text('Sure!\n```json\n{"topics": ["a"]}\n```')
    assert main.run_json(str(source)) == 0
    assert json.loads(capsys.readouterr().out) == {"topics": ["a"]}


def test_run_json_reports_failure(tmp_path, capsys):
    source = tmp_path / "reply.txt"
    source.write_text("no json here")
    assert main.run_json(str(source)) == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_run_parse_saves_to_library(tmp_path, ai_calls, capsys):
    source = tmp_path / "prompt.md"
    source.write_text(GOOD_DOCUMENT)
    result = main.run_parse(str(source), save=True)
    assert result.success
    assert "Saved as 'title'" in capsys.readouterr().out


def test_run_parse_fetches_url_and_matches_template_on_host(monkeypatch, ai_calls, capsys):
    template = templates.create_template(
        "Notes site",
        "url",
        r"^notes\.example$",
        {
            "title": FieldPattern(r"^Prompt:\s*(.+)$", "m"),
            "prompt_code": FieldPattern(r"<prompt>(.*?)</prompt>", "s"),
        },
    )
    fetched = []

    def fake_fetch(url):
        fetched.append(url)
        return CUSTOM_LAYOUT

    monkeypatch.setattr(main, "fetch_url_text", fake_fetch)
    result = main.run_parse("https://notes.example/p/1")

    assert fetched == ["https://notes.example/p/1"]
    assert result.method == "template"
    assert result.fields.title == "Custom"
    entry = history.list_imports()[0]
    assert entry["source_type"] == "url"
    assert entry["template_id"] == template.id


def test_run_parse_rejects_unsupported_file(tmp_path, ai_calls):
    source = tmp_path / "slides.pptx"
    source.write_bytes(b"PK")
    with pytest.raises(ValueError, match="Unsupported file type"):
        main.run_parse(str(source))
