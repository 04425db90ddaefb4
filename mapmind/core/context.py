from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class BaseAnalystContext:
    """Global, shared instructions for every model-backed analyst."""

    system_prompt: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PersonaContext:
    """Per-agent overlay: who the analyst is and how it reasons."""

    agent_id: str
    display_name: str
    prompt: str = ""


@dataclass(frozen=True, slots=True)
class RenderedContext:
    """Final, merged context passed into the LLM agent."""

    system_prompt: str

    def as_messages(self) -> list[dict[str, str]]:
        return [{"role": "system", "content": self.system_prompt}]


def compose_context(*, base: BaseAnalystContext, persona: PersonaContext) -> RenderedContext:
    parts: list[str] = [base.system_prompt.strip()]

    parts.append(
        "\n".join(
            [
                "ANALYST PERSONA:",
                f"- agent_id: {persona.agent_id}",
                f"- display_name: {persona.display_name}",
                "- persona_prompt:",
                persona.prompt.strip(),
            ]
        ).strip()
    )

    system_prompt = "\n\n".join([p for p in parts if p.strip()]).strip()
    return RenderedContext(system_prompt=system_prompt)
