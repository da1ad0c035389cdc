"""
Story pipeline orchestrator.

Runs extraction then synthesis for one image, and persists the result for
the calling user. Model failures abort the run before anything is written.
"""
import json
import logging
import uuid
from typing import Callable, Optional

from shared.database import StoryStore

from ..errors import StoryGenerationFailed
from ..models import StoryRecord
from .extraction import BaseStoryExtractor
from .synthesis import StorySynthesizer

logger = logging.getLogger(__name__)


def new_story_id() -> str:
    return str(uuid.uuid4())


class StoryPipeline:
    """Sequences the two model stages and the story store."""

    def __init__(
        self,
        extractor: BaseStoryExtractor,
        synthesizer: StorySynthesizer,
        store: StoryStore,
        id_factory: Callable[[], str] = new_story_id
    ):
        self.extractor = extractor
        self.synthesizer = synthesizer
        self.store = store
        self.id_factory = id_factory

    async def generate_story(
        self,
        user_id: str,
        image_url: str,
        image_base64: Optional[str] = None
    ) -> Optional[StoryRecord]:
        """
        Generate and persist a story for one image.

        Args:
            user_id: Owner of the new story
            image_url: Durable blob URL; this is what gets persisted
            image_base64: Optional inline bytes, preferred for analysis

        Returns:
            The persisted story, or None if the store could not write it

        Raises:
            StoryGenerationFailed: Either model stage failed
            PersistenceError: The database connection dropped during the write
        """
        try:
            elements = await self.extractor.extract(image_url, image_base64)
            content = await self.synthesizer.synthesize(elements)
        except Exception as e:
            logger.error(f"Error generating story for user {user_id}: {e}")
            raise StoryGenerationFailed() from e

        story_text = content if isinstance(content, str) else ""
        if not story_text:
            logger.warning(f"Synthesis returned no text for user {user_id}; storing empty story")

        story_id = self.id_factory()
        saved = self.store.create(
            id=story_id,
            user_id=user_id,
            image_url=image_url,
            image_description=elements.image_description,
            story=story_text,
            title=elements.title,
            genre=elements.genre,
            mood=elements.mood,
            characters=json.dumps(elements.characters, separators=(",", ":")),
            setting=elements.setting
        )

        if saved is None:
            logger.error(f"Story {story_id} for user {user_id} was generated but not persisted")
            return None

        logger.info(f"Created story {story_id} for user {user_id}")
        return StoryRecord.model_validate(saved)
