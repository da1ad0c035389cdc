"""
Shared fixtures for the Picture Tales test suite.
"""
import json
from typing import Any, Dict, List, Union

import pytest

from shared.database import DatabaseHandle, StoryStore, UserStore
from shared.storage import LocalBlobStore
from tales.llm.adapter import BaseLLMProvider, ChatResponse, LLMAdapter, ToolCall
from tales.pipeline import (
    EXTRACT_TOOL_NAME, ImageUploader, StoryPipeline, StorySynthesizer, ToolCallStoryExtractor
)


ALLEY_CAT_ELEMENTS = {
    "title": "The Alley Cat",
    "genre": "fantasy",
    "mood": "whimsical",
    "characters": ["Whiskers"],
    "setting": "a rainy alley",
    "imageDescription": "a cat in rain"
}

ALLEY_CAT_STORY = " ".join(["Whiskers padded through the rain."] * 70)


class ScriptedProvider(BaseLLMProvider):
    """Replays queued responses and records every request."""

    name = "scripted"

    def __init__(self, responses: List[Union[ChatResponse, Exception]]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, messages, tools=None, tool_choice=None) -> ChatResponse:
        self.calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def tool_response(arguments: Union[Dict[str, Any], str], name: str = EXTRACT_TOOL_NAME) -> ChatResponse:
    """Extraction response carrying one tool call."""
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return ChatResponse(tool_calls=[ToolCall(id="call_1", name=name, arguments=arguments)])


def text_response(content: Any) -> ChatResponse:
    """Synthesis response carrying plain content."""
    return ChatResponse(content=content)


@pytest.fixture
def db_handle():
    """Fresh in-memory database per test."""
    handle = DatabaseHandle("sqlite:///:memory:")
    yield handle
    handle.reset()


@pytest.fixture
def story_store(db_handle):
    return StoryStore(db_handle)


@pytest.fixture
def user_store(db_handle):
    return UserStore(db_handle, owner_id="owner-1")


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"), "https://store")


@pytest.fixture
def uploader(blob_store):
    return ImageUploader(blob_store, clock=lambda: 171)


def build_pipeline(provider: ScriptedProvider, store: StoryStore) -> StoryPipeline:
    llm = LLMAdapter(provider)
    return StoryPipeline(
        extractor=ToolCallStoryExtractor(llm),
        synthesizer=StorySynthesizer(llm),
        store=store
    )
