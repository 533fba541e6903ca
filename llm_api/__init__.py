from .client import GeminiClient
from .mood import analyze_playlist_mood
from .parsing import parse_json_from_text
from .recommendations import get_ai_recommendations, get_deep_analysis

__all__ = [
    "GeminiClient",
    "analyze_playlist_mood",
    "get_ai_recommendations",
    "get_deep_analysis",
    "parse_json_from_text",
]
