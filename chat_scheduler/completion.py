"""Language-model completions for free-form messages in the start stage."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from openai import AsyncOpenAI, OpenAIError

from chat_scheduler.errors import CompletionError

log = logging.getLogger("chat_scheduler.completion")


class CompletionProvider(ABC):
    """Answers a user's message that is not (yet) a booking request."""

    @abstractmethod
    async def complete(self, text: str, lang: str = "de") -> str:
        """Return the reply text. Raises CompletionError on failure."""


def build_prompt(bot_name: str, persona: str, text: str, lang: str) -> str:
    return (
        f"Du bist {bot_name}, {persona}. Lead hat Interesse an einer Hypothek.\n"
        "Antworte freundlich, stelle qualifizierte Fragen, leite ggf. zur "
        "Terminbuchung über (der Nutzer kann dazu einfach 'Termin' schreiben).\n"
        f'Nutzer: "{text}" ({lang})'
    )


class OpenAICompletionProvider(CompletionProvider):
    """OpenAI chat-completions adapter."""

    def __init__(
        self,
        api_key: str,
        bot_name: str,
        persona: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._bot_name = bot_name
        self._persona = persona
        self._model = model
        self._temperature = temperature

    async def complete(self, text: str, lang: str = "de") -> str:
        prompt = build_prompt(self._bot_name, self._persona, text, lang)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
            )
        except OpenAIError as e:
            raise CompletionError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            raise CompletionError("OpenAI returned no choices")
        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise CompletionError("OpenAI returned an empty message")

        log.debug("Completion (%d chars) for %d-char input", len(content), len(text))
        return content
