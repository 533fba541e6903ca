"""Prompt builders for the LLM features.

Every prompt asks for a bare JSON object; parse_json_from_text still cleans
up fences and prose because models do not always comply.
"""

import json
from typing import Any, Dict, List, Optional

MOOD_CATEGORIES = ("happiness", "sadness", "energy", "aura")

_JSON_ONLY_RULES = """IMPORTANT RESPONSE RULES:
1. Output ONLY a valid JSON object.
2. Do NOT use Markdown code blocks.
3. Do NOT write any introduction, explanation, or conclusion.
4. Start the response immediately with "{"."""


def describe_tracks(tracks: Optional[List[Dict[str, Any]]]) -> str:
    parts = []
    for t in tracks or []:
        artists = t.get("artists") or []
        first_artist = (artists[0] or {}).get("name") if artists else None
        parts.append(f"{t.get('name')} by {first_artist or 'Unknown'}")
    return ", ".join(parts)


def describe_artists(artists: Optional[List[Dict[str, Any]]]) -> str:
    return ", ".join(str(a.get("name")) for a in artists or [] if a.get("name"))


def describe_quiz(answers: Optional[List[Dict[str, Any]]]) -> str:
    return "\n".join(f"Q: {q.get('question')} A: {q.get('answer')}" for q in answers or [])


def build_recommendation_prompt(top_tracks, top_artists, top_genre: Optional[str]) -> str:
    return f"""You are an expert music curator.
User Profile:
- Top Tracks: {describe_tracks(top_tracks)}
- Top Artists: {describe_artists(top_artists)}
- Favorite Genre: {top_genre or 'unknown'}

Task: Recommend 3 songs, using Google Search to verify they exist.

{_JSON_ONLY_RULES}

Required Songs:
1. "Safe Bet": Matches their taste perfectly.
2. "Wild Card": An unexpected choice that still fits their vibe (adjacent genres or deep cuts).
3. "Discovery": A highly-rated, less-known gem.

Output JSON format:
{{
    "recommendations": [
        {{
            "title": "Exact Song Title",
            "artist": "Exact Artist Name",
            "type": "Safe Bet",
            "reason": "Why they will like it."
        }}
    ]
}}
"""


def build_deep_analysis_prompt(top_tracks, top_artists, quiz_answers) -> str:
    return f"""You are a music psychologist.
Blend the user's self-reflection (quiz) with their listening behavior.

User Reflection (Quiz):
{describe_quiz(quiz_answers)}

Listening Behavior:
- Top Tracks: {describe_tracks(top_tracks)}
- Top Artists: {describe_artists(top_artists)}

Task:
1. Create a "Music Archetype" (a unique title).
2. Provide 3 "Hidden Metrics" with a % value and a 1-sentence explanation.
3. Write a 2-sentence "Deep Profile" on the core of their taste.

{_JSON_ONLY_RULES}
5. Be concise. The profile MUST be exactly 2 sentences.

Output JSON format:
{{
    "archetype": "The Ethereal Voyager",
    "metrics": [
        {{ "label": "Sonic Curiosity", "value": 85, "description": "You crave textures that defy standard genres." }}
    ],
    "profile": "Two sentences."
}}
"""


def build_mood_prompt(indexed_tracks: List[Dict[str, Any]]) -> str:
    categories = ", ".join(MOOD_CATEGORIES)
    return f"""Return ONLY valid JSON, starting with {{ and ending with }}.

Role: You are a musicologist and data processing engine.

Task: For EVERY track below, score each of these categories from 0.000 to 1.000
with exactly 3 decimal places: {categories}.
- happiness: 0 = depressing, 1 = ecstatic
- sadness: 0 = not sad, 1 = devastating
- energy: 0 = acoustic/sleepy, 1 = high tempo/intense
- aura: 0 = weak presence, 1 = main-character confidence or atmospheric vibe

Keep the "index" of each input track.

Output JSON format:
{{
    "analysis": [
        {{ "index": 0, "scores": {{ "happiness": 0.857, "sadness": 0.234, "energy": 0.723, "aura": 0.641 }} }}
    ]
}}

Tracks:
{json.dumps(indexed_tracks, indent=2)}
"""
