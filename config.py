import os
from dotenv import load_dotenv

load_dotenv()

OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "mistral")
PARSE_MIN_CONFIDENCE = os.getenv("PARSE_MIN_CONFIDENCE", "50")
AI_CONTENT_LIMIT = os.getenv("AI_CONTENT_LIMIT", "8000")


def min_confidence() -> int:
    return int(PARSE_MIN_CONFIDENCE)


def ai_content_limit() -> int:
    return int(AI_CONTENT_LIMIT)


def validate():
    """Validate configuration values are usable."""
    invalid = []
    if not OLLAMA_MODEL:
        invalid.append("OLLAMA_MODEL")
    try:
        if not 0 <= min_confidence() <= 100:
            invalid.append("PARSE_MIN_CONFIDENCE")
    except (TypeError, ValueError):
        invalid.append("PARSE_MIN_CONFIDENCE")
    try:
        if ai_content_limit() <= 0:
            invalid.append("AI_CONTENT_LIMIT")
    except (TypeError, ValueError):
        invalid.append("AI_CONTENT_LIMIT")
    if invalid:
        raise ValueError(f"Invalid environment variables: {', '.join(invalid)}")
