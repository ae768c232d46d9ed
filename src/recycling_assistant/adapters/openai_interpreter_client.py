"""OpenAI chat completion client used as a recycling interpreter."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from recycling_assistant.domain.errors import InterpreterHttpError, InterpreterParseError
from recycling_assistant.services.interpretation import LLMClient

SYSTEM_PROMPT = (
    "You are a recycling expert. Always respond with valid JSON only, "
    "no additional text."
)


@dataclass
class OpenAIInterpreterClient(LLMClient):
    """Interpreter backed by OpenAI chat completions in JSON mode."""

    client: AsyncOpenAI
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 300
    name: str = "openai"

    @classmethod
    def create(cls, api_key: str, model: str) -> "OpenAIInterpreterClient":
        """Create an OpenAI interpreter client."""
        return cls(client=AsyncOpenAI(api_key=api_key), model=model)

    async def complete(self, prompt: str) -> str:
        """Return the model's JSON answer as text."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIError as exc:
            raise InterpreterHttpError(self.name, str(exc)) from exc
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise InterpreterParseError(self.name, "OpenAI returned an empty response")
        return content
