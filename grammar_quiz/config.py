from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "gemini",
    "llm_model": "gemini-2.5-flash",
    "ollama_url": "http://localhost:11434",
    "llm_thinking": False,
    "batch_size": 5,
    "learner_profile": "Chinese middle school students",
    "explanation_language": "Chinese",
    "question_temperature": 1.0,
    "explanation_temperature": 0.7,
    "max_sessions": 100,
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    llm_thinking: bool = DEFAULTS["llm_thinking"]
    batch_size: int = DEFAULTS["batch_size"]
    learner_profile: str = DEFAULTS["learner_profile"]
    explanation_language: str = DEFAULTS["explanation_language"]
    question_temperature: float = DEFAULTS["question_temperature"]
    explanation_temperature: float = DEFAULTS["explanation_temperature"]
    max_sessions: int = DEFAULTS["max_sessions"]

    def to_dict(self) -> dict:
        return asdict(self)


def load_settings() -> Settings:
    """Read config.json; a missing file means all defaults."""
    if not CONFIG_PATH.exists():
        return Settings()
    raw = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    known = {f.name for f in fields(Settings)}
    return Settings(**{k: v for k, v in raw.items() if k in known})


def save_settings(settings: Settings) -> None:
    text = json.dumps(settings.to_dict(), indent=4, ensure_ascii=False)
    CONFIG_PATH.write_text(text + "\n", encoding="utf-8")
