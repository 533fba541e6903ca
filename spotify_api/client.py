import logging
from typing import Any, Dict, List, Optional

import httpx

from utils.errors import AuthenticationError, SpotifyAPIError

from .session_manager import DEFAULT_HTTP_TIMEOUT, SessionManager

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"
MAX_ARTIST_IDS = 50


class SpotifyClient:
    """Thin async Spotify Web API client.

    Every request asks the SessionManager for a valid token first, so expiry
    and refresh are handled there and never here.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        config: Optional[Dict[str, Any]] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session_manager = session_manager
        self.config = config or session_manager.config
        self._transport = transport

    async def request_json(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = await self.session_manager.get_valid_access_token()
        if not token:
            raise AuthenticationError("not authenticated")

        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        timeout = float(self.config.get("http_timeout") or DEFAULT_HTTP_TIMEOUT)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.request(
                    method.upper(),
                    f"{SPOTIFY_API_BASE_URL}{path}",
                    params=query,
                    headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning("Spotify API %s %s failed: %s", method.upper(), path, e)
            raise SpotifyAPIError(None, str(e)) from e

        if not resp.is_success:
            logger.warning("Spotify API %s %s -> %s", method.upper(), path, resp.status_code)
            raise SpotifyAPIError(resp.status_code, resp.text)

        if not resp.content:
            return {}
        return resp.json()

    # -----------------
    # Endpoints
    # -----------------

    async def me(self) -> Dict[str, Any]:
        return await self.request_json("GET", "/me")

    async def top_tracks(self, *, limit: int = 50, time_range: str = "short_term") -> Dict[str, Any]:
        return await self.request_json("GET", "/me/top/tracks", params={"limit": limit, "time_range": time_range})

    async def top_artists(self, *, limit: int = 50, time_range: str = "short_term") -> Dict[str, Any]:
        return await self.request_json("GET", "/me/top/artists", params={"limit": limit, "time_range": time_range})

    async def artists(self, ids: List[str]) -> Dict[str, Any]:
        """Return full artist objects for up to 50 ids."""

        ids = [str(i).strip() for i in (ids or []) if str(i).strip()]
        if not ids:
            return {"artists": []}
        return await self.request_json("GET", "/artists", params={"ids": ",".join(ids[:MAX_ARTIST_IDS])})

    async def user_playlists(self, *, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        return await self.request_json("GET", "/me/playlists", params={"limit": limit, "offset": offset})

    async def playlist_tracks(self, playlist_id: str) -> Dict[str, Any]:
        return await self.request_json("GET", f"/playlists/{playlist_id}/tracks")
