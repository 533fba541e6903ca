import logging
from typing import Any, Dict, List

from utils.errors import LLMRequestError

from .client import GeminiClient
from .prompts import MOOD_CATEGORIES, build_mood_prompt

logger = logging.getLogger(__name__)


def usable_playlist_tracks(playlist_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Track objects from a playlist page, skipping local files and nameless entries."""

    tracks = []
    for item in playlist_items or []:
        track = (item or {}).get("track")
        if not isinstance(track, dict) or track.get("is_local") or not track.get("name"):
            continue
        tracks.append(track)
    return tracks


def summarize_mood_scores(tracks: List[Dict[str, Any]], analysis: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Average per-category scores and pick one top song per category.

    Top songs are chosen greedily so each category gets a different track when
    the playlist allows it; otherwise the absolute best is reused.
    """

    scores_by_index = {}
    for entry in analysis:
        if not isinstance(entry, dict) or not isinstance(entry.get("scores"), dict):
            continue
        # Models sometimes quote the index ("0")
        try:
            index = int(entry.get("index"))
        except (TypeError, ValueError, OverflowError):
            continue
        scores_by_index[index] = entry["scores"]

    scored = []
    for index, track in enumerate(tracks):
        scores = scores_by_index.get(index)
        if scores is None:
            continue
        scored.append({**track, "scores": scores})

    if not scored:
        raise ValueError("Failed to match any tracks with AI analysis")

    averages = {
        cat: round(sum(float(t["scores"].get(cat) or 0) for t in scored) / len(scored), 3)
        for cat in MOOD_CATEGORIES
    }

    selected_ids = set()
    top_songs: Dict[str, Any] = {}
    for cat in MOOD_CATEGORIES:
        ranked = sorted(scored, key=lambda t: float(t["scores"].get(cat) or 0), reverse=True)
        best = next((t for t in ranked if t.get("id") not in selected_ids), ranked[0])
        selected_ids.add(best.get("id"))
        top_songs[cat] = {**best, "score": float(best["scores"].get(cat) or 0)}

    return {"averages": averages, "top_songs": top_songs}


async def analyze_playlist_mood(client: GeminiClient, playlist_items: List[Dict[str, Any]]) -> Dict[str, Any]:
    tracks = usable_playlist_tracks(playlist_items)
    if not tracks:
        raise ValueError("No valid tracks found in playlist")

    indexed = [
        {
            "index": index,
            "name": track.get("name"),
            "artists": ", ".join(a.get("name") for a in track.get("artists") or [] if a.get("name")) or "Unknown",
        }
        for index, track in enumerate(tracks)
    ]

    result = await client.call_json(build_mood_prompt(indexed))
    analysis = result.get("analysis")
    if not isinstance(analysis, list):
        raise LLMRequestError("Invalid analysis format from AI")

    logger.info("Mood analysis scored %d of %d tracks", len(analysis), len(tracks))
    return summarize_mood_scores(tracks, analysis)
