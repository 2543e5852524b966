"""Prompt expansion: short song/artist prompt to a descriptive image prompt."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import openai

from sketchy.core.errors import InvalidRequestError, UpstreamError

logger = logging.getLogger(__name__)

EXPANSION_TEMPLATE = (
    'Create a vivid and detailed description for an image based on the following song or '
    'artist: "{prompt}". The description should describe the song or artist in vivid detail '
    "with specific references to the song or something distinctive about the artist so an "
    "image can be generated from the description. If there is an iconic logo or visual "
    "reference for the band, include that in the image."
)


def _require_prompt(original: str) -> str:
    prompt = (original or "").strip()
    if not prompt:
        raise InvalidRequestError("Prompt is required")
    return prompt


class PromptExpander(ABC):
    @abstractmethod
    def expand(self, original: str) -> str:
        """Return the descriptive generation prompt for *original*."""


class IdentityPromptExpander(PromptExpander):
    """Pass-through used when expansion is disabled."""

    def expand(self, original: str) -> str:
        return _require_prompt(original)


class OpenAIPromptExpander(PromptExpander):
    """Expand prompts with an OpenAI chat completion.

    Failures are not masked: an API error or an empty completion fails the
    whole generation request.

    Args:
        client: An ``openai.OpenAI`` client.
        model: Chat model name.
        max_words: Optional length hint included in the instruction.  It is
            advisory only; the completion is not truncated.
    """

    def __init__(self, client: openai.OpenAI, model: str = "gpt-3.5-turbo", max_words: int | None = None):
        self.client = client
        self.model = model
        self.max_words = max_words

    def build_instruction(self, prompt: str) -> str:
        instruction = EXPANSION_TEMPLATE.format(prompt=prompt)
        if self.max_words:
            instruction += f" Keep the description under {self.max_words} words."
        return instruction

    def expand(self, original: str) -> str:
        prompt = _require_prompt(original)
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": self.build_instruction(prompt)}],
            )
        except openai.OpenAIError as e:
            raise UpstreamError("Prompt expansion failed", str(e)) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise UpstreamError("Prompt expansion failed", "Empty completion returned")

        generated = content.strip()
        logger.info(f"Generated prompt: {generated}")
        return generated
