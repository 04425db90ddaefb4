from __future__ import annotations

from pathlib import Path

from mapmind.rounds.singleton import init_rounds


def init_rounds_for_app() -> None:
    # project root is two levels up from this file: mapmind/rounds/startup.py
    project_root = Path(__file__).resolve().parents[2]
    init_rounds(project_root=project_root)
