import pytest

import config


def test_defaults_are_valid():
    config.validate()


@pytest.mark.parametrize("name,value", [
    ("PARSE_MIN_CONFIDENCE", "abc"),
    ("PARSE_MIN_CONFIDENCE", "150"),
    ("AI_CONTENT_LIMIT", "0"),
    ("OLLAMA_MODEL", ""),
])
def test_invalid_values_are_reported(monkeypatch, name, value):
    monkeypatch.setattr(config, name, value)
    with pytest.raises(ValueError, match=name):
        config.validate()
