from __future__ import annotations

from pathlib import Path


class PromptLoadError(RuntimeError):
    pass


def project_root() -> Path:
    # mapmind/prompts.py -> mapmind/ -> project root
    return Path(__file__).resolve().parents[1]


def load_prompt(name: str) -> str:
    """Load a prompt text file from the repo `prompts/` directory.

    Example:
        load_prompt("base_analyst.txt")
    """

    path = project_root() / "prompts" / name
    try:
        return path.read_text(encoding="utf-8").strip() + "\n"
    except FileNotFoundError as e:
        raise PromptLoadError(f"Prompt not found: {path}") from e


def load_prompt_lines(name: str) -> tuple[str, ...]:
    """Load a prompt fixture as its non-blank lines, in file order."""

    return tuple(line.strip() for line in load_prompt(name).splitlines() if line.strip())
