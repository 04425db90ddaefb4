from __future__ import annotations

import random
from typing import cast

from mapmind.agents.base import ChatModel, ReasoningProvider
from mapmind.agents.external import ModelReasoningProvider
from mapmind.agents.profiles import AgentProfile
from mapmind.agents.scripted import ScriptedReasoningProvider
from mapmind.config import GameSettings


def create_default_model(agent: AgentProfile) -> ChatModel:
    """Create the LLM chat model backing one analyst.

    Currently uses AG2/autogen and reads model configuration from env.
    """

    from mapmind.agents.ag2_backend import Ag2ChatModel
    from mapmind.agents.autogen_config import settings_from_env

    model = settings_from_env().model
    return cast(ChatModel, Ag2ChatModel(name=f"mapmind-{agent.id}", model=model))


def create_reasoning_provider(*, settings: GameSettings, seed: int) -> ReasoningProvider:
    """Build the reasoning provider for one session."""

    if settings.reasoning_provider == "external":
        return ModelReasoningProvider(model_for=create_default_model)
    return ScriptedReasoningProvider(rng=random.Random(seed))
