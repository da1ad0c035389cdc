"""
Picture Tales Models - Pydantic schemas for the story pipeline and its API.

JSON field names are camelCase (`imageUrl`, `userId`); Python attributes are
snake_case. Both spellings are accepted on input.
"""
import json
from datetime import datetime
from typing import List, Optional, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class StoryElements(CamelModel):
    """Structured story metadata extracted from an image."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, description="A compelling title for the story")
    genre: str = Field(..., min_length=1, description="Genre of the story")
    mood: str = Field(..., min_length=1, description="The mood or atmosphere")
    characters: List[str] = Field(..., min_length=1, description="Main characters in the story")
    setting: str = Field(..., min_length=1, description="The setting or location of the story")
    image_description: str = Field(..., min_length=1, description="Detailed description of the image")


DEFAULT_STORY_ELEMENTS = StoryElements(
    title="Untitled Story",
    genre="Fiction",
    mood="Mysterious",
    characters=["The Protagonist"],
    setting="An Unknown Place",
    image_description="An intriguing image",
)


class StoryRecord(CamelModel):
    """A persisted story as returned to its owner."""

    id: str
    user_id: str
    image_url: str
    image_description: Optional[str] = None
    story: str
    title: Optional[str] = None
    genre: Optional[str] = None
    mood: Optional[str] = None
    characters: Optional[str] = Field(None, description="JSON array of character names")
    setting: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def character_list(self) -> List[str]:
        """Deserialize the stored character array."""
        return json.loads(self.characters) if self.characters else []


class UploadImageRequest(CamelModel):
    """Request to store an uploaded image."""
    base64: str = Field(..., min_length=1, description="Base64 encoded image bytes")
    filename: str = Field(..., min_length=1, max_length=255, description="Original filename")

    @field_validator('filename')
    @classmethod
    def validate_filename(cls, v):
        """Reject names that would escape the storage prefix."""
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("Filename must not contain path separators")
        return v


class UploadImageResponse(CamelModel):
    url: str


class GenerateStoryRequest(CamelModel):
    """Request to generate a story from an uploaded image."""
    image_url: str = Field(..., description="Durable URL returned by the image upload")
    image_base64: Optional[str] = Field(None, description="Inline image bytes, preferred for analysis")

    @field_validator('image_url')
    @classmethod
    def validate_image_url(cls, v):
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid image URL: {v}")
        return v


class GenerateStoryResponse(CamelModel):
    success: bool
    story: Optional[StoryRecord] = None


class DeleteStoryResponse(CamelModel):
    success: bool


class CurrentUser(CamelModel):
    """The authenticated caller."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    login_method: Optional[str] = None
    role: Literal["user", "admin"] = "user"
