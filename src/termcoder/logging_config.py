import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_LOG_PATH = ".termcoder/termcoder.log"

_CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> <level>{level:<7}</level> <cyan>{name}</cyan> | {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {name}:{function}:{line} | {message}"


@dataclass(frozen=True)
class LogSink:
    """One entry of the ``LogConsumers`` config list.

    ``kind`` is "console" (stderr) or "file". File sinks rotate by size and
    keep ``retention`` old files next to ``path``.
    """

    kind: str
    level: str
    path: str = DEFAULT_LOG_PATH
    rotation: str = "5 MB"
    retention: int = 5

    def describe(self) -> str:
        if self.kind == "console":
            return f"console (stderr, {self.level})"
        return f"file ({self.path}, {self.level})"


def parse_log_sinks(consumers: list[dict[str, Any]] | None, level: str) -> tuple[list[LogSink], list[str]]:
    """Turn raw config entries into sinks. Returns the sinks and the rejected kinds."""
    # The REPL owns the terminal, so console output is opt-in.
    if consumers is None:
        consumers = [{"type": "file"}]

    sinks: list[LogSink] = []
    rejected: list[str] = []
    for entry in consumers:
        kind = str(entry.get("type", ""))
        sink_level = str(entry.get("level", level)).upper()
        if kind == "console":
            sinks.append(LogSink(kind, sink_level))
        elif kind == "file":
            sinks.append(LogSink(
                kind,
                sink_level,
                path=str(entry.get("path", DEFAULT_LOG_PATH)),
                rotation=str(entry.get("rotation", "5 MB")),
                retention=int(entry.get("retention", 5)),
            ))
        else:
            rejected.append(kind)
    return sinks, rejected


def _register(sink: LogSink) -> None:
    if sink.kind == "console":
        logger.add(sys.stderr, level=sink.level, format=_CONSOLE_FORMAT)
        return
    Path(sink.path).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        sink.path,
        level=sink.level,
        format=_FILE_FORMAT,
        rotation=sink.rotation,
        retention=sink.retention,
        encoding="utf-8",
    )


def setup_logging(level: str = "INFO", consumers: list[dict[str, Any]] | None = None) -> list[str]:
    """Replace loguru's default handler with the configured sinks.

    Returns a one-line description per registered sink for the startup banner.
    """
    logger.remove()
    sinks, rejected = parse_log_sinks(consumers, level.upper())
    for sink in sinks:
        _register(sink)
    for kind in rejected:
        logger.warning(f"Ignoring log consumer with unknown type: {kind!r}")
    return [sink.describe() for sink in sinks]
