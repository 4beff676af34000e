import pytest

import history
import prompts
import templates


@pytest.fixture(autouse=True)
def storage(tmp_path, monkeypatch):
    """Point every on-disk store at a fresh temporary directory."""
    monkeypatch.setattr(history, "HISTORY_DIR", tmp_path / "history")
    monkeypatch.setattr(templates, "TEMPLATES_DIR", tmp_path / "templates")
    monkeypatch.setattr(prompts, "PROMPTS_DIR", tmp_path / "prompts")
    return tmp_path


@pytest.fixture
def status_log():
    """A list to pass as on_status=status_log.append."""
    return []
