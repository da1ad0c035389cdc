"""
LLM Adapter for Story Generation.

Provides an abstraction layer over chat-completion providers with optional
tool calling, plus a mock provider for testing and development. Providers
normalize their responses into ChatResponse and map transport failures to
ModelUnavailable / ModelRequestError.
"""
import json
import time
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from ..errors import ModelUnavailable, ModelRequestError

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


class ToolCall(BaseModel):
    """A model request to invoke a declared tool."""
    id: str = ""
    name: str
    arguments: str = Field("", description="JSON encoded arguments, unparsed")


class ChatResponse(BaseModel):
    """Normalized chat completion result (first choice only)."""
    content: Optional[Any] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    model: Optional[str] = None
    prompt_tokens: int = 0
    completion_tokens: int = 0


def force_tool_choice(name: str) -> Dict[str, Any]:
    """Tool choice forcing the model to call the named function."""
    return {"type": "function", "function": {"name": name}}


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name = "base"

    @abstractmethod
    async def invoke(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Dict[str, Any]] = None
    ) -> ChatResponse:
        """Run one chat completion."""
        pass


class MockLLMProvider(BaseLLMProvider):
    """Mock LLM provider for testing and development."""

    name = "mock"

    def __init__(self):
        self.invocation_count = 0
        self.mock_elements = {
            "title": "The Lantern Keeper",
            "genre": "fantasy",
            "mood": "wistful",
            "characters": ["Mara", "The Old Ferryman"],
            "setting": "a fog-bound harbor at dusk",
            "imageDescription": "A lone figure holding a lantern on a wooden pier as fog rolls in over the water."
        }
        self.mock_story = """Every evening, when the fog came in off the water, Mara walked to the end of the old pier with her grandfather's lantern.

Nobody in the harbor remembered when the ferry had stopped running. The timetable at the ticket booth had faded to a pale grey ghost of itself, and the bell that once announced departures hung silent, green with age. Still, Mara lit the lantern, because her grandfather had lit it every night for forty years, and because some promises outlive the people who make them.

On the night the fog was thickest, she heard oars.

The sound came slow and patient, a rhythm she knew from stories rather than memory. Out of the grey drifted a narrow boat, and in it sat an old man in a coat the color of wet slate. He shipped his oars and looked up at her with eyes that caught the lantern light like coins at the bottom of a well.

"You kept it burning," said the Old Ferryman.

"I didn't know anyone still needed it," Mara said.

"Lights are not for the ones who need them," he replied. "They are for the ones who might. Your grandfather understood that. He waited every night, not because he was sure I would come, but because he could not bear the thought of me arriving to a dark shore."

Mara felt the weight of the lantern in her hand, warmer than it should have been.

"Where do you take people?" she asked.

The ferryman smiled. "Home. Wherever that happens to be. Tonight, I only came to say thank you, and to tell you that you may rest now, if you wish."

She looked back at the harbor, at the sleeping houses and the single window still glowing in her own kitchen. Then she looked at the lantern.

"I think I'll keep it lit a little longer," she said.

The ferryman nodded as though he had expected nothing else. He lifted his oars, and the fog folded around him like a closing book. Mara stood at the end of the pier until dawn, the small flame steady against the grey, a promise kept for one more night."""

    async def invoke(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Dict[str, Any]] = None
    ) -> ChatResponse:
        """Return canned output: a tool call when one is forced, prose otherwise."""
        self.invocation_count += 1

        if tool_choice and tool_choice.get("type") == "function":
            tool_name = tool_choice["function"]["name"]
            return ChatResponse(
                tool_calls=[ToolCall(
                    id=f"call_mock_{self.invocation_count}",
                    name=tool_name,
                    arguments=json.dumps(self.mock_elements)
                )],
                model="mock-vision",
                prompt_tokens=self._estimate_tokens(messages)
            )

        return ChatResponse(
            content=self.mock_story,
            model="mock-vision",
            prompt_tokens=self._estimate_tokens(messages),
            completion_tokens=int(len(self.mock_story.split()) * 1.3)  # Rough token approximation
        )

    def _estimate_tokens(self, messages: List[Message]) -> int:
        total_chars = 0
        for message in messages:
            content = message.get("content", "")
            if isinstance(content, str):
                total_chars += len(content)
            elif isinstance(content, list):
                total_chars += sum(len(part.get("text", "")) for part in content if part.get("type") == "text")
        return total_chars // 4


class OpenAIProvider(BaseLLMProvider):
    """OpenAI-compatible chat completion provider."""

    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o", base_url: Optional[str] = None,
                 client: Optional[AsyncOpenAI] = None):
        self.model = model
        # Retries are the caller's decision, never the transport's
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def invoke(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Dict[str, Any]] = None
    ) -> ChatResponse:
        request: Dict[str, Any] = {"model": self.model, "messages": messages}
        if tools:
            request["tools"] = tools
        if tool_choice:
            request["tool_choice"] = tool_choice

        try:
            completion = await self.client.chat.completions.create(**request)
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise ModelUnavailable(f"Model endpoint unreachable: {e}") from e
        except openai.APIError as e:
            raise ModelRequestError(f"Model request failed: {e}") from e

        if not completion.choices:
            raise ModelRequestError("Model returned no choices")

        message = completion.choices[0].message
        tool_calls = [
            ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "")
            for call in (message.tool_calls or [])
            if getattr(call, "function", None) is not None
        ]
        usage = completion.usage

        return ChatResponse(
            content=message.content,
            tool_calls=tool_calls,
            model=completion.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0
        )


class LLMAdapter:
    """Main adapter class used by the pipeline stages."""

    def __init__(self, provider: Optional[BaseLLMProvider] = None):
        """Initialize LLM adapter with provider."""
        self.provider = provider or MockLLMProvider()
        self.generation_stats = {
            'total_invocations': 0,
            'failed_invocations': 0,
            'total_tokens': 0,
            'average_invocation_time': 0.0
        }

    async def invoke(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Dict[str, Any]] = None
    ) -> ChatResponse:
        """
        Send a chat request to the provider.

        Args:
            messages: Role-tagged messages; content is text or a list of parts
            tools: Optional function declarations
            tool_choice: Optional forced tool choice

        Returns:
            ChatResponse for the first choice

        Raises:
            ModelUnavailable: Endpoint unreachable
            ModelRequestError: Endpoint rejected the request
        """
        start_time = time.time()
        try:
            response = await self.provider.invoke(messages, tools=tools, tool_choice=tool_choice)
        except (ModelUnavailable, ModelRequestError) as e:
            self.generation_stats['failed_invocations'] += 1
            logger.error(f"LLM invocation failed ({self.provider.name}): {e}")
            raise

        self._update_stats(response, time.time() - start_time)
        return response

    def _update_stats(self, response: ChatResponse, elapsed: float):
        """Update generation statistics."""
        self.generation_stats['total_invocations'] += 1
        self.generation_stats['total_tokens'] += response.prompt_tokens + response.completion_tokens

        old_avg = self.generation_stats['average_invocation_time']
        count = self.generation_stats['total_invocations']
        self.generation_stats['average_invocation_time'] = (old_avg * (count - 1) + elapsed) / count

    def get_stats(self) -> Dict[str, Any]:
        """Get generation statistics."""
        return {'provider': self.provider.name, **self.generation_stats}


def create_llm_adapter(settings) -> LLMAdapter:
    """Build the adapter configured in settings."""
    if settings.llm_provider == "openai":
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER=openai")
        provider = OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.openai_base_url
        )
        return LLMAdapter(provider)
    return LLMAdapter(MockLLMProvider())
