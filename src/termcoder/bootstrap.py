from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from termcoder.app_config import AppConfig, RuntimeEnv
from termcoder.logging_config import setup_logging
from termcoder.memory import MemoryStore, SessionRepository
from termcoder.orchestrator import Orchestrator
from termcoder.providers.openai_provider import OpenAIProvider
from termcoder.system_prompt import build_system_prompt
from termcoder.tool_executor import ToolExecutor, builtin_tools


@dataclass
class AppRuntime:
    orchestrator: Orchestrator
    memory_store: MemoryStore
    executor: ToolExecutor
    log_descriptions: list[str]


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    log_level = "DEBUG" if env.debug else app.log_level
    log_descriptions = setup_logging(level=log_level, consumers=app.log_consumers)

    executor = ToolExecutor(
        builtin_tools(app.working_directory),
        max_result_chars=app.max_tool_result_chars,
    )

    system_prompt = app.system_prompt
    if system_prompt is None:
        system_prompt = build_system_prompt(app.working_directory)

    gateway = OpenAIProvider(
        env.openai_api_key,
        executor.definitions(),
        system_prompt=system_prompt,
        base_url=app.base_url or env.openai_base_url,
    )

    db_path = Path(app.memory_db_path)
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    memory_store = MemoryStore(str(db_path))

    orchestrator = Orchestrator(
        gateway=gateway,
        executor=executor,
        persistence=SessionRepository(memory_store),
        model=app.model,
        max_tool_turns=app.max_tool_turns,
    )
    orchestrator.load_sessions()

    return AppRuntime(
        orchestrator=orchestrator,
        memory_store=memory_store,
        executor=executor,
        log_descriptions=log_descriptions,
    )
