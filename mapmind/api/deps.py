from __future__ import annotations

from mapmind.agents.factory import create_reasoning_provider
from mapmind.config import GameSettings, settings_from_env
from mapmind.rounds.registry import RoundDeck
from mapmind.rounds.singleton import get_rounds
from mapmind.session import ProviderFactory


def get_settings() -> GameSettings:
    return settings_from_env()


def get_round_deck() -> RoundDeck:
    return get_rounds()


def get_provider_factory() -> ProviderFactory:
    return create_reasoning_provider
