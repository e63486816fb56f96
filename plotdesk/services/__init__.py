from .gemini_proxy import get_gemini_proxy, GeminiProxy, GenerationError
from .story_store import get_story_store, StoryStore

__all__ = [
    "get_gemini_proxy",
    "GeminiProxy",
    "GenerationError",
    "get_story_store",
    "StoryStore",
]
