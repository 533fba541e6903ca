import asyncio
from typing import Optional

import questionary

from llm_api.client import GeminiClient
from llm_api.mood import analyze_playlist_mood
from llm_api.recommendations import get_ai_recommendations, get_deep_analysis
from spotify_api.client import SpotifyClient
from spotify_api.data_loader import SpotifyDataLoader
from spotify_api.session_manager import SessionManager
from utils.errors import AuthenticationError, CuratifyError
from utils.logger import log_info, log_warning, log_error

QUIZ_QUESTIONS = [
    ("When do you listen to music the most?", ["Working or studying", "Commuting", "Working out", "Winding down"]),
    ("What pulls you into a new song first?", ["The beat", "The lyrics", "The melody", "The atmosphere"]),
    ("How adventurous is your listening?", ["I stick to favorites", "Some exploring", "Always hunting for new sounds"]),
]


async def _recommendations(loader: SpotifyDataLoader, llm: GeminiClient) -> dict:
    profile = await loader.load_listening_profile()
    return await get_ai_recommendations(llm, profile["top_tracks"], profile["top_artists"], profile["top_genre"])


async def _deep_analysis(loader: SpotifyDataLoader, llm: GeminiClient, answers: list) -> dict:
    tracks = await loader.fetch_top_tracks(limit=10)
    artists = await loader.fetch_top_artists(limit=10)
    return await get_deep_analysis(llm, tracks, artists, answers)


async def _mood(client: SpotifyClient, llm: GeminiClient, playlist_id: str) -> dict:
    page = await client.playlist_tracks(playlist_id)
    return await analyze_playlist_mood(llm, page.get("items") or [])


def show_recommendations(result: dict) -> None:
    recs = result.get("recommendations") or []
    if not recs:
        log_warning("The model returned no recommendations.")
        return
    for rec in recs:
        log_info(f"[{rec.get('type', '?')}] {rec.get('title')} — {rec.get('artist')}")
        if rec.get("reason"):
            log_info(f"    {rec.get('reason')}")


def show_deep_analysis(result: dict) -> None:
    log_info(f"Archetype: {result.get('archetype', 'Unknown')}")
    for metric in result.get("metrics") or []:
        log_info(f"- {metric.get('label')}: {metric.get('value')}% — {metric.get('description')}")
    if result.get("profile"):
        log_info(result["profile"])


def show_mood(result: dict) -> None:
    for cat, avg in (result.get("averages") or {}).items():
        top = (result.get("top_songs") or {}).get(cat) or {}
        log_info(f"{cat:>9}: {avg:.3f}  top: {top.get('name', '-')} ({top.get('score', 0):.3f})")


def ask_quiz() -> Optional[list]:
    answers = []
    for question, choices in QUIZ_QUESTIONS:
        answer = questionary.select(question, choices=choices).ask()
        if answer is None:
            return None
        answers.append({"question": question, "answer": answer})
    return answers


def _choose_playlist(client: SpotifyClient) -> Optional[str]:
    page = asyncio.run(client.user_playlists())
    playlists = [p for p in page.get("items") or [] if isinstance(p, dict) and p.get("id")]
    if not playlists:
        log_warning("No playlists found on this account.")
        return None

    choices = [questionary.Choice(title=p.get("name") or p["id"], value=p["id"]) for p in playlists]
    return questionary.select("Pick a playlist to analyze:", choices=choices).ask()


def recommender_menu(config: dict, manager: Optional[SessionManager] = None, llm: Optional[GeminiClient] = None) -> None:
    manager = manager or SessionManager(config)
    llm = llm or GeminiClient(config)
    client = SpotifyClient(manager, config)
    loader = SpotifyDataLoader(client)

    while True:
        choice = questionary.select(
            "✨ Recommendations — What would you like to do?",
            choices=[
                "Get song recommendations",
                "Deep music analysis (quiz)",
                "Analyze a playlist's mood",
                "Back",
            ],
        ).ask()

        if choice == "Back" or choice is None:
            break

        try:
            if choice == "Get song recommendations":
                show_recommendations(asyncio.run(_recommendations(loader, llm)))

            elif choice == "Deep music analysis (quiz)":
                answers = ask_quiz()
                if answers:
                    show_deep_analysis(asyncio.run(_deep_analysis(loader, llm, answers)))

            elif choice == "Analyze a playlist's mood":
                playlist_id = _choose_playlist(client)
                if playlist_id:
                    show_mood(asyncio.run(_mood(client, llm, playlist_id)))

        except AuthenticationError:
            log_warning("You are not logged in (or the session expired). Log in from the Account menu.")
        except (CuratifyError, ValueError) as e:
            log_error(f"{choice} failed: {e}")
