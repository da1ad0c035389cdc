"""
Picture Tales Service - FastAPI application for image-inspired stories.

Provides endpoints for image upload, story generation, and per-user story
management. Internal failure details are logged, never returned.
"""
import logging
import os
from typing import List

from fastapi import FastAPI, HTTPException, Depends
from fastapi.staticfiles import StaticFiles

from shared.database import DatabaseHandle, StoryStore
from shared.errors import PersistenceError

from .auth import get_current_user, authorize_story_access
from .config import settings
from .dependencies import (
    get_database, get_llm_adapter, get_story_store, get_image_uploader, get_story_pipeline
)
from .errors import StoryGenerationFailed, ImageUploadFailed, UnauthorizedAccess
from .llm.adapter import LLMAdapter
from .models import (
    CurrentUser, StoryRecord, UploadImageRequest, UploadImageResponse,
    GenerateStoryRequest, GenerateStoryResponse, DeleteStoryResponse
)
from .pipeline import ImageUploader, StoryPipeline

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# FastAPI app
app = FastAPI(
    title="Picture Tales",
    description="Turn photographs into short stories with a vision language model",
    version="1.0.0"
)


def mount_media(target: FastAPI, storage_dir: str):
    """Serve locally stored uploads under /media, creating the directory if needed."""
    if any(getattr(route, "name", None) == "media" for route in target.routes):
        return
    os.makedirs(storage_dir, exist_ok=True)
    target.mount("/media", StaticFiles(directory=storage_dir), name="media")
    logger.info(f"[Storage] Serving {storage_dir} at /media")


@app.on_event("startup")
async def startup_event():
    """Prepare local blob storage when the app is served."""
    if settings.storage_backend == "local":
        mount_media(app, settings.storage_dir)


@app.get("/health")
async def health_check(
    llm: LLMAdapter = Depends(get_llm_adapter),
    database: DatabaseHandle = Depends(get_database)
):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "picture-tales",
        "version": "1.0.0",
        "database_connected": database.get_engine() is not None,
        "llm": llm.get_stats()
    }


@app.get("/auth/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
    """Return the authenticated caller."""
    return user


@app.post("/stories/images", response_model=UploadImageResponse)
async def upload_image(
    request: UploadImageRequest,
    user: CurrentUser = Depends(get_current_user),
    uploader: ImageUploader = Depends(get_image_uploader)
):
    """Store an image and return its durable URL for story generation."""
    try:
        url = await uploader.upload_image(request.base64, request.filename)
    except ImageUploadFailed as e:
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"User {user.id} uploaded {request.filename}")
    return UploadImageResponse(url=url)


@app.post("/stories", response_model=GenerateStoryResponse)
async def generate_story(
    request: GenerateStoryRequest,
    user: CurrentUser = Depends(get_current_user),
    pipeline: StoryPipeline = Depends(get_story_pipeline)
):
    """
    Generate a story from an uploaded image.

    Analyzes the image, writes the story, and saves it for the caller. A
    story that was generated but could not be saved is reported as
    success=false with no story.
    """
    try:
        story = await pipeline.generate_story(
            user_id=user.id,
            image_url=request.image_url,
            image_base64=request.image_base64
        )
    except StoryGenerationFailed as e:
        raise HTTPException(status_code=500, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Failed to persist story for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail=str(StoryGenerationFailed()))

    return GenerateStoryResponse(success=story is not None, story=story)


@app.get("/stories", response_model=List[StoryRecord])
async def get_my_stories(
    user: CurrentUser = Depends(get_current_user),
    store: StoryStore = Depends(get_story_store)
):
    """List the caller's stories, most recent first."""
    return [StoryRecord.model_validate(story) for story in store.list_by_user(user.id)]


@app.get("/stories/{story_id}", response_model=StoryRecord)
async def get_story(
    story_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: StoryStore = Depends(get_story_store)
):
    """Get one of the caller's stories."""
    story = store.get_by_id(story_id)
    if story is None:
        raise HTTPException(status_code=404, detail="Story not found")

    try:
        authorize_story_access(story, user)
    except UnauthorizedAccess as e:
        logger.warning(f"User {user.id} denied read of story {story_id}")
        raise HTTPException(status_code=403, detail=str(e))

    return StoryRecord.model_validate(story)


@app.delete("/stories/{story_id}", response_model=DeleteStoryResponse)
async def delete_story(
    story_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: StoryStore = Depends(get_story_store)
):
    """Delete one of the caller's stories."""
    try:
        authorize_story_access(store.get_by_id(story_id), user)
    except UnauthorizedAccess as e:
        logger.warning(f"User {user.id} denied delete of story {story_id}")
        raise HTTPException(status_code=403, detail=str(e))

    success = store.delete_by_id(story_id)
    if success:
        logger.info(f"Deleted story {story_id} for user {user.id}")
    return DeleteStoryResponse(success=success)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tales.service:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning"
    )
