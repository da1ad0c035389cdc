from .extraction import (
    BaseStoryExtractor,
    ToolCallStoryExtractor,
    STORY_ELEMENTS_TOOL,
    EXTRACT_TOOL_NAME,
    build_image_part,
)
from .synthesis import StorySynthesizer, build_story_prompt
from .upload import ImageUploader, storage_key
from .orchestrator import StoryPipeline

__all__ = [
    "BaseStoryExtractor",
    "ToolCallStoryExtractor",
    "STORY_ELEMENTS_TOOL",
    "EXTRACT_TOOL_NAME",
    "build_image_part",
    "StorySynthesizer",
    "build_story_prompt",
    "ImageUploader",
    "storage_key",
    "StoryPipeline",
]
