"""
Story extraction stage.

Turns one image into StoryElements. The default strategy forces the model to
call a single declared function and validates its arguments; anything
unusable is replaced by DEFAULT_STORY_ELEMENTS so a run never fails on
malformed structure alone.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..errors import ExtractionParseError
from ..llm.adapter import ChatResponse, LLMAdapter, force_tool_choice
from ..models import StoryElements, DEFAULT_STORY_ELEMENTS

logger = logging.getLogger(__name__)

EXTRACT_TOOL_NAME = "extract_story_elements"

ANALYST_SYSTEM_PROMPT = (
    "You are a creative storyteller and image analyst. Analyze the provided image and "
    "extract key story elements. You must use the extract_story_elements function to "
    "structure your analysis."
)

ANALYSIS_INSTRUCTION = (
    "Analyze this image and extract story elements. What story could this image inspire? "
    "Provide a detailed analysis."
)

STORY_ELEMENTS_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": EXTRACT_TOOL_NAME,
        "description": "Extract key story elements from the image",
        "parameters": {
            "type": "object",
            "properties": {
                "title": {
                    "type": "string",
                    "description": "A compelling title for the story",
                },
                "genre": {
                    "type": "string",
                    "description": "Genre of the story (e.g., fantasy, mystery, romance, sci-fi)",
                },
                "mood": {
                    "type": "string",
                    "description": "The mood or atmosphere (e.g., mysterious, joyful, dark, peaceful)",
                },
                "characters": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Main characters in the story",
                },
                "setting": {
                    "type": "string",
                    "description": "The setting or location of the story",
                },
                "imageDescription": {
                    "type": "string",
                    "description": "Detailed description of what is in the image",
                },
            },
            "required": ["title", "genre", "mood", "characters", "setting", "imageDescription"],
        },
    },
}


def build_image_part(image_url: str, image_base64: Optional[str] = None) -> Dict[str, Any]:
    """Image content part; inline bytes win over the URL."""
    url = f"data:image/jpeg;base64,{image_base64}" if image_base64 else image_url
    return {
        "type": "image_url",
        "image_url": {
            "url": url,
            "detail": "high",
        },
    }


class BaseStoryExtractor(ABC):
    """Abstract base class for extraction strategies."""

    @abstractmethod
    async def extract(self, image_url: str, image_base64: Optional[str] = None) -> StoryElements:
        """
        Derive story elements from an image.

        Args:
            image_url: Durable URL of the image
            image_base64: Optional inline image bytes

        Returns:
            StoryElements, never partially filled
        """
        pass


class ToolCallStoryExtractor(BaseStoryExtractor):
    """Extracts elements by forcing a single function call."""

    def __init__(self, llm: LLMAdapter):
        self.llm = llm

    def build_messages(self, image_url: str, image_base64: Optional[str] = None):
        return [
            {"role": "system", "content": ANALYST_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    build_image_part(image_url, image_base64),
                    {"type": "text", "text": ANALYSIS_INSTRUCTION},
                ],
            },
        ]

    async def extract(self, image_url: str, image_base64: Optional[str] = None) -> StoryElements:
        response = await self.llm.invoke(
            self.build_messages(image_url, image_base64),
            tools=[STORY_ELEMENTS_TOOL],
            tool_choice=force_tool_choice(EXTRACT_TOOL_NAME)
        )

        try:
            return self.parse_response(response)
        except ExtractionParseError as e:
            logger.warning(f"Story element extraction fell back to defaults: {e}")
            return DEFAULT_STORY_ELEMENTS.model_copy(deep=True)

    @staticmethod
    def parse_response(response: ChatResponse) -> StoryElements:
        """
        Validate the first tool call of an extraction response.

        Raises:
            ExtractionParseError: No matching tool call, or its arguments are
                not valid JSON or do not satisfy the element schema
        """
        if not response.tool_calls:
            raise ExtractionParseError("response contained no tool call")

        tool_call = response.tool_calls[0]
        if tool_call.name != EXTRACT_TOOL_NAME:
            raise ExtractionParseError(f"unexpected tool call '{tool_call.name}'")

        try:
            arguments = json.loads(tool_call.arguments)
        except json.JSONDecodeError as e:
            raise ExtractionParseError(f"tool arguments are not valid JSON: {e}") from e

        if not isinstance(arguments, dict):
            raise ExtractionParseError("tool arguments are not a JSON object")

        try:
            return StoryElements.model_validate(arguments)
        except ValidationError as e:
            raise ExtractionParseError(f"tool arguments failed validation: {e}") from e
