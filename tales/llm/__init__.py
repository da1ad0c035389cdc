from .adapter import (
    BaseLLMProvider,
    ChatResponse,
    LLMAdapter,
    MockLLMProvider,
    OpenAIProvider,
    ToolCall,
    create_llm_adapter,
    force_tool_choice,
)

__all__ = [
    "BaseLLMProvider",
    "ChatResponse",
    "LLMAdapter",
    "MockLLMProvider",
    "OpenAIProvider",
    "ToolCall",
    "create_llm_adapter",
    "force_tool_choice",
]
