"""
Picture Tales - Story Pipeline Module

Turns a photograph into a short story: a vision model extracts structured
story elements, a second call writes the prose, and the result is saved
for the user who uploaded the image.
"""

from .models import StoryElements, StoryRecord, DEFAULT_STORY_ELEMENTS
from .errors import (
    ModelUnavailable,
    ModelRequestError,
    StoryGenerationFailed,
    ImageUploadFailed,
    UnauthorizedAccess,
)

__version__ = "1.0.0"

__all__ = [
    "StoryElements",
    "StoryRecord",
    "DEFAULT_STORY_ELEMENTS",
    "ModelUnavailable",
    "ModelRequestError",
    "StoryGenerationFailed",
    "ImageUploadFailed",
    "UnauthorizedAccess",
]
