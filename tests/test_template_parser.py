import re
from types import SimpleNamespace

from prompt_parser import FieldPattern, compile_pattern, parse_with_template

BLOG_POST = """Prompt: Code Reviewer
About: Reviews a diff and lists risky changes.
- Try: review this PR
- Try: check my migration
<prompt>
You are a strict code reviewer.
</prompt>
"""


def make_template(**patterns):
    return SimpleNamespace(id="tmpl_test", name="Blog", field_patterns=patterns)


def test_template_extracts_each_field():
    template = make_template(
        title=FieldPattern(r"^Prompt:\s*(.+)$", "m"),
        summary=FieldPattern(r"^About:\s*(.+)$", "m"),
        example_prompts=FieldPattern(r"^- Try:\s*(.+)$", "m"),
        prompt_code=FieldPattern(r"<prompt>(.*?)</prompt>", "s"),
    )
    result = parse_with_template(BLOG_POST, template, on_status=lambda _: None)
    assert result.success
    assert result.method == "template"
    assert result.template_id == "tmpl_test"
    assert result.confidence == 100
    assert result.fields.title == "Code Reviewer"
    assert result.fields.summary == "Reviews a diff and lists risky changes."
    assert result.fields.example_prompts == ["review this PR", "check my migration"]
    assert result.fields.prompt_code == "You are a strict code reviewer."


def test_group_index_zero_uses_whole_match():
    template = make_template(title=FieldPattern(r"Prompt: \w+", group_index=0))
    result = parse_with_template(BLOG_POST, template, on_status=lambda _: None)
    assert result.fields.title == "Prompt: Code"


def test_missing_group_falls_back_to_whole_match():
    template = make_template(title=FieldPattern(r"Prompt: \w+", group_index=3))
    result = parse_with_template(BLOG_POST, template, on_status=lambda _: None)
    assert result.fields.title == "Prompt: Code"


def test_invalid_pattern_skips_only_that_field(status_log):
    template = make_template(
        title=FieldPattern(r"^Prompt:\s*(.+)$", "m"),
        summary=FieldPattern(r"(unclosed"),
    )
    result = parse_with_template(BLOG_POST, template, on_status=status_log.append)
    assert result.fields.title == "Code Reviewer"
    assert result.fields.summary == ""
    assert result.fields_found == ["title"]
    assert not result.success
    assert any("Invalid pattern for summary" in line for line in status_log)


def test_unmatched_patterns_leave_fields_empty():
    template = make_template(prompt_code=FieldPattern(r"<code>(.*)</code>", "s"))
    result = parse_with_template(BLOG_POST, template, on_status=lambda _: None)
    assert result.fields.is_empty()
    assert result.confidence == 0


def test_empty_content():
    template = make_template(title=FieldPattern(r"(.+)"))
    result = parse_with_template("  ", template, on_status=lambda _: None)
    assert not result.success
    assert result.template_id == "tmpl_test"


def test_javascript_flags_are_translated():
    regex = compile_pattern(FieldPattern("abc", flags="gims"))
    assert regex.search("x\nABC")
    assert regex.flags & re.IGNORECASE
    assert regex.flags & re.DOTALL
