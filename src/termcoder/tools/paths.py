from pathlib import Path


def resolve_path(path: str, working_directory: str | None) -> Path:
    """Resolve a tool-supplied path against the configured working directory."""
    candidate = Path(path).expanduser()
    if not candidate.is_absolute() and working_directory:
        candidate = Path(working_directory) / candidate
    return candidate
