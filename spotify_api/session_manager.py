import asyncio
import json
import logging
import math
import time
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from utils.errors import AuthenticationError

from .auth import (
    SPOTIFY_TOKEN_URL,
    build_authorize_url,
    code_challenge_from_verifier,
    generate_code_verifier,
    require_spotify_credentials,
)
from .storage import JsonFileStore, KeyValueStore, DEFAULT_STORE_PATH

logger = logging.getLogger(__name__)

SESSION_KEY = "spotify_session"
VERIFIER_KEY = "spotify_verifier"

LEGACY_ACCESS_TOKEN_KEY = "spotify_access_token"
LEGACY_REFRESH_TOKEN_KEY = "spotify_refresh_token"
LEGACY_EXPIRES_AT_KEY = "spotify_token_expires_at"
LEGACY_KEYS = (LEGACY_ACCESS_TOKEN_KEY, LEGACY_REFRESH_TOKEN_KEY, LEGACY_EXPIRES_AT_KEY)

EXPIRY_BUFFER_MS = 60_000
DEFAULT_EXPIRES_IN = 3600
DEFAULT_HTTP_TIMEOUT = 30.0


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Session:
    """Persisted token triple. expires_at is epoch milliseconds."""

    access_token: str
    refresh_token: str
    expires_at: int

    @staticmethod
    def issue(access_token: str, refresh_token: str, expires_in: Any, *, now_ms: int) -> "Session":
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError):
            seconds = DEFAULT_EXPIRES_IN
        return Session(
            access_token=str(access_token),
            refresh_token=str(refresh_token),
            expires_at=int(now_ms) + seconds * 1000,
        )

    @staticmethod
    def from_json(raw: str) -> Optional["Session"]:
        """Decode a stored record; None when it is not a complete session."""

        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None

        if not isinstance(data, dict):
            return None

        access_token = data.get("accessToken")
        refresh_token = data.get("refreshToken")
        expires_at = data.get("expiresAt")

        if not isinstance(access_token, str) or not access_token:
            return None
        if not isinstance(refresh_token, str) or not refresh_token:
            return None
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            return None
        # json.loads accepts NaN, Infinity and 1e400
        if not math.isfinite(expires_at):
            return None

        return Session(access_token=access_token, refresh_token=refresh_token, expires_at=int(expires_at))

    def to_json(self) -> str:
        return json.dumps(
            {
                "accessToken": self.access_token,
                "refreshToken": self.refresh_token,
                "expiresAt": self.expires_at,
            }
        )

    def expires_soon(self, now_ms: int, *, buffer_ms: int = EXPIRY_BUFFER_MS) -> bool:
        return now_ms > self.expires_at - buffer_ms


class SessionManager:
    """Owns the Spotify PKCE login, the persisted session and token refresh.

    One instance per store. Concurrent refreshes on the same instance share a
    single in-flight request (see refresh_access_token).
    """

    def __init__(
        self,
        config: Dict[str, Any],
        store: Optional[KeyValueStore] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], int]] = None,
        open_url: Optional[Callable[[str], Any]] = None,
    ):
        self.config = config or {}
        self.store = store or JsonFileStore(str(self.config.get("session_store_path") or DEFAULT_STORE_PATH))
        self._transport = transport
        self._clock = clock or _now_ms
        self.open_url = open_url or webbrowser.open
        self._refresh_task: Optional[asyncio.Task] = None

    # -----------------
    # Login
    # -----------------

    def build_login_url(self) -> str:
        """Create and persist a fresh PKCE verifier; return the authorize URL."""

        client_id, redirect_uri = require_spotify_credentials(self.config)

        verifier = generate_code_verifier()
        challenge = code_challenge_from_verifier(verifier)
        self.store.set(VERIFIER_KEY, verifier)

        return build_authorize_url(
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_challenge=challenge,
            scopes=self.config.get("spotify_scopes") or [],
        )

    def begin_login(self) -> None:
        url = self.build_login_url()
        logger.info("Opening Spotify authorization page")
        self.open_url(url)

    async def exchange_code_for_token(self, code: str) -> str:
        """Trade an authorization code for a session; return the access token.

        Raises ConfigurationError when client id / redirect URI are missing and
        AuthenticationError for everything else (missing verifier, empty code,
        provider rejection, transport failure).
        """

        client_id, redirect_uri = require_spotify_credentials(self.config)

        verifier = self.store.get(VERIFIER_KEY)
        if not verifier:
            raise AuthenticationError("missing verifier")

        code = str(code or "").strip()
        if not code:
            raise AuthenticationError("Authorization code is missing.")

        try:
            resp = await self._post_token_request(
                {
                    "client_id": client_id,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "code_verifier": verifier,
                }
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Spotify token request failed: {e}") from e

        if not resp.is_success:
            raise AuthenticationError(f"Failed to get access token: {self._describe_error(resp)}")

        try:
            payload = self._json_object(resp)
        except ValueError as e:
            raise AuthenticationError(f"Spotify token response was not usable JSON: {e}") from e

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        if not access_token or not refresh_token:
            raise AuthenticationError("Spotify token response did not include access_token and refresh_token.")

        self.store.delete(VERIFIER_KEY)
        session = Session.issue(access_token, refresh_token, payload.get("expires_in"), now_ms=self._clock())
        self._store_session(session)
        logger.info("Spotify session established")
        return session.access_token

    # -----------------
    # Token access
    # -----------------

    async def get_valid_access_token(self) -> Optional[str]:
        """Return a usable access token, refreshing inside the expiry buffer.

        None means "no token right now" (logged out, or the refresh failed).
        """

        session = self.load_session()
        if session is None:
            return None

        if session.expires_soon(self._clock()):
            return await self.refresh_access_token()

        return session.access_token

    async def refresh_access_token(self) -> Optional[str]:
        """Mint a new access token; concurrent callers share one request.

        The shared task is shielded so a cancelled caller does not abort the
        refresh for everyone else (and the session write always completes).
        """

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> Optional[str]:
        try:
            client_id = str(self.config.get("spotify_client_id") or "").strip()
            if not client_id:
                return None

            session = self.load_session()
            if session is None or not session.refresh_token:
                return None

            resp = await self._post_token_request(
                {
                    "client_id": client_id,
                    "grant_type": "refresh_token",
                    "refresh_token": session.refresh_token,
                }
            )

            if not resp.is_success:
                # Refresh token revoked or expired: only a new login can recover.
                logger.warning("Spotify refresh rejected (%s); clearing session", self._describe_error(resp))
                self.clear_session()
                return None

            payload = self._json_object(resp)
            access_token = payload.get("access_token")
            if not access_token:
                raise ValueError("refresh response did not include access_token")

            refreshed = Session.issue(
                access_token,
                payload.get("refresh_token") or session.refresh_token,
                payload.get("expires_in"),
                now_ms=self._clock(),
            )
            self._store_session(refreshed)
            logger.info("Spotify access token refreshed")
            return refreshed.access_token
        except Exception as e:
            logger.error("Spotify token refresh failed: %s", e)
            return None
        finally:
            self._refresh_task = None

    def is_token_expired(self) -> bool:
        session = self.load_session()
        if session is None:
            return True
        return session.expires_soon(self._clock())

    def get_stored_token(self) -> Optional[str]:
        session = self.load_session()
        return session.access_token if session else None

    # -----------------
    # Persistence
    # -----------------

    def load_session(self) -> Optional[Session]:
        """Read the session, migrating legacy keys and discarding corrupt records."""

        raw = self.store.get(SESSION_KEY)
        if raw:
            session = Session.from_json(raw)
            if session is None:
                logger.warning("Discarding corrupt Spotify session record")
                self.store.delete(SESSION_KEY)
            return session

        return self._migrate_legacy_keys()

    def _migrate_legacy_keys(self) -> Optional[Session]:
        access_token = self.store.get(LEGACY_ACCESS_TOKEN_KEY)
        refresh_token = self.store.get(LEGACY_REFRESH_TOKEN_KEY)
        expires_at = self.store.get(LEGACY_EXPIRES_AT_KEY)
        if not (access_token and refresh_token and expires_at):
            return None

        # Original issue time is unknown; assume a fresh default lifetime.
        session = Session.issue(access_token, refresh_token, DEFAULT_EXPIRES_IN, now_ms=self._clock())
        self._store_session(session)
        logger.info("Migrated legacy Spotify token keys to the unified session record")
        return session

    def _store_session(self, session: Session) -> None:
        self.store.set(SESSION_KEY, session.to_json())
        self._clear_legacy_keys()

    def _clear_legacy_keys(self) -> None:
        for key in LEGACY_KEYS:
            self.store.delete(key)

    def clear_session(self) -> None:
        self.store.delete(SESSION_KEY)
        self.store.delete(VERIFIER_KEY)
        self._clear_legacy_keys()

    # -----------------
    # HTTP helpers
    # -----------------

    async def _post_token_request(self, form: Dict[str, str]) -> httpx.Response:
        timeout = float(self.config.get("http_timeout") or DEFAULT_HTTP_TIMEOUT)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=False, transport=self._transport) as client:
            return await client.post(
                SPOTIFY_TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

    @staticmethod
    def _json_object(resp: httpx.Response) -> Dict[str, Any]:
        payload = resp.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Spotify token response was not an object: {payload}")
        return payload

    @staticmethod
    def _describe_error(resp: httpx.Response) -> str:
        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            message = payload.get("error_description") or payload.get("error")
            if message:
                return str(message)
        return f"HTTP {resp.status_code}"
