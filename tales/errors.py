"""
Error taxonomy for the story pipeline.

Only the generic messages of the boundary-facing errors are shown to callers;
causes are chained and logged.
"""


class StoryEngineError(Exception):
    """Base class for story pipeline errors."""


class ModelError(StoryEngineError):
    """Base class for language model invocation failures."""


class ModelUnavailable(ModelError):
    """The model endpoint could not be reached."""


class ModelRequestError(ModelError):
    """The model endpoint rejected the request (auth, quota, bad request)."""


class ExtractionParseError(StoryEngineError):
    """The extraction response carried no usable tool call."""


class StoryGenerationFailed(StoryEngineError):
    """A pipeline run failed before anything was persisted."""

    def __init__(self, message: str = "Failed to generate story"):
        super().__init__(message)


class ImageUploadFailed(StoryEngineError):
    """The uploaded image could not be stored."""

    def __init__(self, message: str = "Failed to upload image"):
        super().__init__(message)


class UnauthorizedAccess(StoryEngineError):
    """The caller does not own the requested story."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
