from typing import Any, Dict, List, Optional

from .client import SpotifyClient


class SpotifyDataLoader:
    """Listening-profile helpers built on SpotifyClient.

    The profile feeds the LLM prompts (see llm_api.recommendations):
      - top_tracks: raw Spotify track objects
      - top_artists: raw Spotify artist objects
      - top_genre: most frequent genre across the artists of the top 50 tracks
    """

    def __init__(self, client: SpotifyClient):
        self.client = client

    async def fetch_top_tracks(self, limit: int = 3) -> List[Dict[str, Any]]:
        page = await self.client.top_tracks(limit=limit)
        return list(page.get("items") or [])

    async def fetch_top_artists(self, limit: int = 10) -> List[Dict[str, Any]]:
        page = await self.client.top_artists(limit=limit)
        return list(page.get("items") or [])

    async def fetch_top_artist(self) -> Optional[Dict[str, Any]]:
        artists = await self.fetch_top_artists(limit=1)
        if not artists:
            return None

        artist = artists[0]
        images = artist.get("images") or []
        return {
            "name": artist.get("name"),
            "image": (images[0] or {}).get("url") if images else None,
            "url": (artist.get("external_urls") or {}).get("spotify"),
        }

    async def fetch_top_genre(self) -> Optional[str]:
        tracks = await self.fetch_top_tracks(limit=50)
        if not tracks:
            return None

        artist_ids = self.extract_artist_ids(tracks)
        if not artist_ids:
            return None

        response = await self.client.artists(artist_ids)
        return self.calculate_top_genre(tracks, response.get("artists") or [])

    async def load_listening_profile(self, *, track_limit: int = 3, artist_limit: int = 10) -> Dict[str, Any]:
        return {
            "top_tracks": await self.fetch_top_tracks(limit=track_limit),
            "top_artists": await self.fetch_top_artists(limit=artist_limit),
            "top_genre": await self.fetch_top_genre(),
        }

    @staticmethod
    def extract_artist_ids(tracks: List[Dict[str, Any]]) -> List[str]:
        """Unique artist ids in first-seen order."""

        seen: Dict[str, None] = {}
        for track in tracks or []:
            for artist in (track or {}).get("artists") or []:
                artist_id = (artist or {}).get("id")
                if artist_id:
                    seen.setdefault(artist_id, None)
        return list(seen)

    @staticmethod
    def calculate_top_genre(tracks: List[Dict[str, Any]], artists: List[Dict[str, Any]]) -> Optional[str]:
        """Most common genre over every (track, artist) appearance; first seen wins ties."""

        if not tracks or not artists:
            return None

        artist_map = {a.get("id"): a for a in artists if isinstance(a, dict)}

        counts: Dict[str, int] = {}
        for track in tracks:
            for track_artist in (track or {}).get("artists") or []:
                full_artist = artist_map.get((track_artist or {}).get("id"))
                for genre in (full_artist or {}).get("genres") or []:
                    counts[genre] = counts.get(genre, 0) + 1

        top_genre = None
        max_count = 0
        for genre, count in counts.items():
            if count > max_count:
                top_genre = genre
                max_count = count
        return top_genre
