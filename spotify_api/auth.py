import base64
import hashlib
import secrets
import string
import urllib.parse
from typing import Any, Dict, Iterable, Tuple

from utils.errors import ConfigurationError

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"

VERIFIER_LENGTH = 128
VERIFIER_ALPHABET = string.ascii_letters + string.digits


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    """Random PKCE verifier drawn from [A-Za-z0-9] (RFC 7636 allows 43-128 chars)."""

    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(int(length)))


def code_challenge_from_verifier(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) with the '=' padding stripped."""

    digest = hashlib.sha256(str(verifier or "").encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def _credential(config: Dict[str, Any], key: str) -> str:
    return str((config or {}).get(key) or "").strip()


def require_spotify_credentials(config: Dict[str, Any]) -> Tuple[str, str]:
    """Return (client_id, redirect_uri) or raise ConfigurationError if either is blank."""

    client_id = _credential(config, "spotify_client_id")
    if not client_id:
        raise ConfigurationError(
            "Spotify client id is missing. Set spotify_client_id in config.json or SPOTIFY_CLIENT_ID in the environment."
        )

    redirect_uri = _credential(config, "spotify_redirect_uri")
    if not redirect_uri:
        raise ConfigurationError(
            "Spotify redirect URI is missing. Set spotify_redirect_uri in config.json or SPOTIFY_REDIRECT_URI in the environment."
        )
    return client_id, redirect_uri


def check_spotify_credentials(config: Dict[str, Any]) -> Dict[str, Any]:
    """Non-raising variant of require_spotify_credentials for status screens."""

    try:
        require_spotify_credentials(config)
        ok, message = True, "Spotify app settings are complete."
    except ConfigurationError as e:
        ok, message = False, str(e)

    return {
        "ok": ok,
        "message": message,
        "client_id": _credential(config, "spotify_client_id"),
        "redirect_uri": _credential(config, "spotify_redirect_uri"),
        "scopes": list((config or {}).get("spotify_scopes") or []),
    }


def spotify_app_setup_instructions(*, redirect_uri: str = DEFAULT_REDIRECT_URI) -> str:
    redirect_uri = str(redirect_uri or "").strip() or DEFAULT_REDIRECT_URI
    steps = [
        "Open https://developer.spotify.com/dashboard and create (or pick) an app.",
        f"Register exactly this redirect URI on the app: {redirect_uri}",
        "Put the app's Client ID in config.json as spotify_client_id, or export SPOTIFY_CLIENT_ID.",
        "Log in from the Account menu. No client secret is needed; the login uses PKCE.",
    ]
    return "Spotify app setup:\n" + "\n".join(f"  {n}. {step}" for n, step in enumerate(steps, 1))


def build_authorize_url(
    *,
    client_id: str,
    redirect_uri: str,
    code_challenge: str,
    scopes: Iterable[str] = (),
) -> str:
    params: Dict[str, str] = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "code_challenge_method": "S256",
        "code_challenge": str(code_challenge),
    }

    scope = " ".join(s.strip() for s in map(str, scopes) if s.strip())
    if scope:
        params["scope"] = scope

    return f"{SPOTIFY_AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"


def extract_code_from_redirect_url(redirect_url: str) -> Dict[str, str]:
    """Pick code, state and error out of a pasted redirect URL; absent ones are left out."""

    query = urllib.parse.urlsplit(str(redirect_url or "").strip()).query
    found: Dict[str, str] = {}
    for name, value in urllib.parse.parse_qsl(query):
        if name in ("code", "state", "error") and value and name not in found:
            found[name] = value
    return found
