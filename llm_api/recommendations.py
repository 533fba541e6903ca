from typing import Any, Dict, List, Optional

from .client import GeminiClient
from .prompts import build_deep_analysis_prompt, build_recommendation_prompt


async def get_ai_recommendations(
    client: GeminiClient,
    top_tracks: List[Dict[str, Any]],
    top_artists: List[Dict[str, Any]],
    top_genre: Optional[str],
) -> Dict[str, Any]:
    """Three song picks (safe bet / wild card / discovery) for a listening profile."""

    # Search grounding keeps the model from inventing songs.
    prompt = build_recommendation_prompt(top_tracks, top_artists, top_genre)
    return await client.call_json(prompt, use_search_grounding=True)


async def get_deep_analysis(
    client: GeminiClient,
    top_tracks: List[Dict[str, Any]],
    top_artists: List[Dict[str, Any]],
    quiz_answers: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Archetype, hidden metrics and a short profile from quiz answers + listening data."""

    prompt = build_deep_analysis_prompt(top_tracks, top_artists, quiz_answers)
    return await client.call_json(prompt, use_search_grounding=False)
