from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class RuntimeEnv:
    openai_api_key: str
    openai_base_url: str | None
    debug: bool


@dataclass
class AppConfig:
    model: str
    base_url: str | None
    system_prompt: str | None
    working_directory: str | None
    memory_db_path: str
    max_tool_turns: int
    max_tool_result_chars: int
    log_level: str
    log_consumers: list | None


def load_json_config(directory: Path | None = None) -> dict:
    config_path = (directory or Path.cwd()) / "config.json"
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_app_config(config: dict) -> AppConfig:
    return AppConfig(
        model=str(config.get("Model", "gpt-4o-mini")),
        base_url=_optional_str(config.get("BaseUrl")),
        system_prompt=config.get("SystemPrompt"),
        working_directory=_optional_str(config.get("WorkingDirectory")),
        memory_db_path=str(config.get("MemoryDbPath", ".termcoder/termcoder.db")),
        max_tool_turns=int(config.get("MaxToolTurns", 25)),
        max_tool_result_chars=int(config.get("MaxToolResultChars", 40_000)),
        log_level=str(config.get("LogLevel", "INFO")).upper(),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        openai_base_url=_optional_str(os.environ.get("OPENAI_BASE_URL")),
        debug=_to_bool(os.environ.get("TERMCODER_DEBUG"), default=False),
    )
