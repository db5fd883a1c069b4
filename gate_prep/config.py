# gate_prep/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

from gate_prep.ai.gemini_client import GeminiConfig
from gate_prep.engine.question_generator import DEFAULT_MAX_ATTEMPTS


def _get_env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class AppConfig:
    gemini: GeminiConfig
    max_generation_attempts: int = DEFAULT_MAX_ATTEMPTS
    data_dir: str = "data"
    log_level: str = "INFO"
    points_per_correct: int = 10

    @staticmethod
    def from_env() -> "AppConfig":
        return AppConfig(
            gemini=GeminiConfig(
                api_key=_get_env("GEMINI_API_KEY"),
                model=_get_env("GEMINI_MODEL", "gemini-2.0-flash"),
                temperature=float(_get_env("GEMINI_TEMPERATURE", "0.7")),
                max_output_tokens=int(_get_env("GEMINI_MAX_TOKENS", "8192")),
            ),
            max_generation_attempts=int(_get_env("QUIZ_MAX_GENERATION_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))),
            data_dir=_get_env("QUIZ_DATA_DIR", "data"),
            log_level=_get_env("QUIZ_LOG_LEVEL", "INFO").upper(),
            points_per_correct=int(_get_env("QUIZ_POINTS_PER_CORRECT", "10")),
        )
