import asyncio

from dotenv import load_dotenv
from loguru import logger

from termcoder.app_config import load_json_config, parse_app_config, resolve_runtime_env
from termcoder.bootstrap import bootstrap_runtime
from termcoder.terminal import TerminalApp


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    env = resolve_runtime_env()
    runtime = bootstrap_runtime(app, env)
    orchestrator = runtime.orchestrator
    terminal = TerminalApp(orchestrator)

    print("termcoder (type 'exit' to quit, '/help' for commands)")
    print(f"Model: {app.model}")
    print(f"Tools: {', '.join(runtime.executor.tool_names)}")
    if app.working_directory:
        print(f"Working directory: {app.working_directory}")
    session = orchestrator.active_session
    if session is not None:
        print(f"Session: {session.title} ({len(session.messages)} messages)")
    if not env.openai_api_key:
        print("Warning: OPENAI_API_KEY is not set; model requests will fail.")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()
    terminal.mark_seen()

    try:
        while True:
            try:
                user_input = input("you> ")
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()

            if trimmed in ("exit", "quit"):
                break

            if not trimmed:
                continue

            try:
                await terminal.handle_line(trimmed)
                print()
            except Exception as ex:
                logger.exception(f"Unhandled error: {ex}")
                print(f"Error: {ex}")
    finally:
        runtime.memory_store.close()
        logger.info("Application finished.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
