from __future__ import annotations

from pathlib import Path

from mapmind.rounds.registry import RoundDeck, load_round_deck


_DECK: RoundDeck | None = None


def init_rounds(*, project_root: Path) -> RoundDeck:
    """Load the round deck once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _DECK
    if _DECK is None:
        _DECK = load_round_deck(root=project_root)
    return _DECK


def reset_rounds_for_tests() -> None:
    """Reset the cached deck so tests can initialize it from fixture directories."""

    global _DECK
    _DECK = None


def get_rounds() -> RoundDeck:
    if _DECK is None:
        raise RuntimeError("Round deck not initialized. Call init_rounds() at startup.")
    return _DECK
