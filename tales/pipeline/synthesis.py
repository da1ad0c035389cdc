"""
Story synthesis stage: StoryElements in, prose out.
"""
from typing import Any

from ..llm.adapter import LLMAdapter
from ..models import StoryElements

STORYTELLER_SYSTEM_PROMPT = (
    "You are a creative and talented storyteller. Write engaging, vivid stories that "
    "captivate the reader."
)


def build_story_prompt(elements: StoryElements) -> str:
    """User prompt embedding the extracted elements verbatim."""
    return f"""
You are a master storyteller. Based on the following image analysis and story elements, write a compelling and engaging story.

Image Description: {elements.image_description}
Title: {elements.title}
Genre: {elements.genre}
Mood: {elements.mood}
Characters: {", ".join(elements.characters)}
Setting: {elements.setting}

Write a complete story (300-500 words) that incorporates these elements. Make it engaging, vivid, and emotionally resonant. The story should feel inspired by the image.
"""


class StorySynthesizer:
    """Writes the narrative with a plain completion (no tools)."""

    def __init__(self, llm: LLMAdapter):
        self.llm = llm

    async def synthesize(self, elements: StoryElements) -> Any:
        """
        Generate story prose.

        Returns the first choice's raw content, which may be None or a
        non-string structure; the orchestrator decides how to store it.
        """
        response = await self.llm.invoke([
            {"role": "system", "content": STORYTELLER_SYSTEM_PROMPT},
            {"role": "user", "content": build_story_prompt(elements)},
        ])
        return response.content
