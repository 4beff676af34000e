import ollama

import config
from json_extract import parse_strict_json
from prompt_parser import PromptDocument, empty_result, score

AI_SYSTEM_PROMPT = (
    "You are a prompt parsing assistant. Extract structured fields from prompt content.\n"
    "Return ONLY valid JSON with no explanation or markdown formatting."
)

AI_USER_PROMPT = """Extract the following fields from this prompt content:
- title: The prompt's title or name
- summary: A brief description of what the prompt does
- examplePrompts: An array of example user messages that could use this prompt (look for numbered lists, bullet points, or quoted examples)
- promptCode: The actual prompt template/code (often in code blocks or XML-like tags)

{source_context}

Content to parse:
---
{content}
---

Return JSON with exactly this structure:
{{
  "title": "extracted title",
  "summary": "extracted summary",
  "examplePrompts": ["example 1", "example 2"],
  "promptCode": "the prompt template code"
}}

If a field cannot be found, use an empty string or empty array."""


def _chat(system_prompt: str, user_prompt: str):
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
    return ollama.chat(
        model=config.OLLAMA_MODEL,
        messages=messages,
    )


def analyze_data(system_prompt: str, user_prompt: str) -> str:
    """Query Ollama once and return the reply text."""
    response = _chat(system_prompt, user_prompt)
    return response["message"].get("content", "")


def _tokens_used(response) -> int:
    total = 0
    for key in ("prompt_eval_count", "eval_count"):
        try:
            total += int(response[key] or 0)
        except (KeyError, TypeError, ValueError):
            continue
    return total


def parse_with_ai(raw: str, source_hint: str | None = None, on_status=None):
    """
    Ask the model to extract the prompt fields.

    Used as the last step of the fallback chain, for layouts neither the
    built-in regexes nor a template understand. Failures are returned as an
    unsuccessful ParseResult with ``error`` set.
    """
    if on_status is None:
        on_status = print

    source_context = f"The content was imported from: {source_hint}" if source_hint else ""
    user_prompt = AI_USER_PROMPT.format(
        source_context=source_context,
        content=(raw or "")[:config.ai_content_limit()],
    )

    on_status(f"[AI] Sending {len(user_prompt)} chars to {config.OLLAMA_MODEL}...")
    try:
        response = _chat(AI_SYSTEM_PROMPT, user_prompt)
        data = parse_strict_json(response["message"].get("content", ""))
    except Exception as e:
        on_status(f"[AI] Error: {e}")
        return empty_result("ai", error=str(e))

    if not isinstance(data, dict):
        on_status("[AI] Model did not return a JSON object")
        return empty_result("ai", error="Model did not return a JSON object")

    result = score(PromptDocument.from_dict(data), "ai")
    result.tokens_used = _tokens_used(response)
    on_status(f"[AI] Parsed {len(result.fields_found)} field(s), {result.tokens_used} tokens")
    return result
