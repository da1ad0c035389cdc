"""
Process-scoped collaborators for the API, built once from settings.

Each provider is a FastAPI dependency; tests replace them through
`app.dependency_overrides`.
"""
from functools import lru_cache

from shared.database import DatabaseHandle, StoryStore, UserStore
from shared.storage import BaseBlobStore, LocalBlobStore, HttpBlobStore

from .config import settings
from .llm.adapter import LLMAdapter, create_llm_adapter
from .pipeline import ImageUploader, StoryPipeline, StorySynthesizer, ToolCallStoryExtractor


@lru_cache()
def get_database() -> DatabaseHandle:
    return DatabaseHandle.from_settings()


@lru_cache()
def get_llm_adapter() -> LLMAdapter:
    return create_llm_adapter(settings)


@lru_cache()
def get_blob_store() -> BaseBlobStore:
    if settings.storage_backend == "http":
        if not settings.storage_api_url or not settings.storage_api_key:
            raise ValueError("STORAGE_API_URL and STORAGE_API_KEY are required when STORAGE_BACKEND=http")
        return HttpBlobStore(settings.storage_api_url, settings.storage_api_key)
    return LocalBlobStore(settings.storage_dir, settings.storage_public_url)


def get_story_store() -> StoryStore:
    return StoryStore(get_database())


def get_user_store() -> UserStore:
    return UserStore(get_database(), owner_id=settings.owner_id)


def get_image_uploader() -> ImageUploader:
    return ImageUploader(get_blob_store())


def get_story_pipeline() -> StoryPipeline:
    llm = get_llm_adapter()
    return StoryPipeline(
        extractor=ToolCallStoryExtractor(llm),
        synthesizer=StorySynthesizer(llm),
        store=get_story_store()
    )
