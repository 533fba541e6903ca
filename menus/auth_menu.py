import asyncio
import time
from typing import Optional

import questionary

from spotify_api.auth import check_spotify_credentials, extract_code_from_redirect_url, spotify_app_setup_instructions
from spotify_api.session_manager import SessionManager
from utils.errors import AuthenticationError, ConfigurationError
from utils.logger import log_info, log_success, log_warning, log_error


def spotify_setup_help(config: dict) -> None:
    creds = check_spotify_credentials(config)
    log_info("\n" + "=" * 72)
    log_info("SPOTIFY SETUP")
    log_info("=" * 72)
    log_info(spotify_app_setup_instructions(redirect_uri=creds.get("redirect_uri") or "http://127.0.0.1:8888/callback"))
    log_info("Current config status:")
    log_info(f"- spotify_client_id: {'SET' if creds.get('client_id') else 'NOT SET'}")
    log_info(f"- spotify_redirect_uri: {creds.get('redirect_uri') or ''}")
    log_info(f"- spotify_scopes: {', '.join(creds.get('scopes') or [])}")
    log_info("")
    if not creds.get("ok"):
        log_warning(creds["message"])
    else:
        log_info(creds["message"])
    log_info("=" * 72 + "\n")


def session_status(manager: SessionManager) -> str:
    session = manager.load_session()
    if session is None:
        return "Not logged in."
    exp_str = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(session.expires_at / 1000))
    expired = manager.is_token_expired()
    return f"Logged in: YES | Token expired: {'YES' if expired else 'NO'} | Expires at: {exp_str}"


def _code_from_paste(pasted: str) -> Optional[str]:
    """Accept either the full redirect URL or the bare code value."""

    if "http://" in pasted or "https://" in pasted:
        parsed = extract_code_from_redirect_url(pasted)
        if parsed.get("error"):
            log_error(f"Spotify returned an error: {parsed.get('error')}")
            return None
        return parsed.get("code") or None
    return pasted


def login(config: dict, manager: SessionManager) -> bool:
    """Interactive PKCE login: open the browser, then paste the redirect URL back."""

    try:
        url = manager.build_login_url()
    except ConfigurationError as e:
        log_error(str(e))
        spotify_setup_help(config)
        return False

    log_info("\n" + "=" * 72)
    log_info("SPOTIFY LOGIN")
    log_info("=" * 72)
    log_info("1) Approve access in the browser (or open the URL below yourself).")
    log_info("2) Spotify redirects you to your redirect_uri.")
    log_info("3) Copy the FULL redirect URL from the browser and paste it back here.")
    log_info("")
    log_info(f"Authorize URL:\n{url}")
    log_info("=" * 72)

    if questionary.confirm("Open the authorize URL in your default browser?", default=True).ask():
        manager.open_url(url)

    pasted = (questionary.text("Paste the full redirect URL (preferred) OR just the code value:").ask() or "").strip()
    if not pasted:
        log_warning("No redirect URL / code provided. Cancelling login.")
        return False

    code = _code_from_paste(pasted)
    if not code:
        log_error("Could not find an authorization code. Paste the full redirect URL that contains ?code=...")
        return False

    try:
        asyncio.run(manager.exchange_code_for_token(code))
    except (AuthenticationError, ConfigurationError) as e:
        log_error(f"Spotify login failed: {e}")
        log_info("Tip: start the login again; each code and verifier can only be used once.")
        return False

    log_success("Spotify login successful.")
    return True


def logout(manager: SessionManager) -> None:
    manager.clear_session()
    log_success("Logged out and cleared the stored Spotify session.")


def auth_menu(config: dict, manager: Optional[SessionManager] = None) -> None:
    manager = manager or SessionManager(config)

    while True:
        log_info("")
        log_info("Spotify status: " + session_status(manager))

        choice = questionary.select(
            "🎧 Spotify Account — What would you like to do?",
            choices=[
                "Log in with Spotify",
                "Spotify setup help",
                "Log out",
                "Back",
            ],
        ).ask()

        if choice == "Log in with Spotify":
            login(config, manager)

        elif choice == "Spotify setup help":
            spotify_setup_help(config)

        elif choice == "Log out":
            logout(manager)

        elif choice == "Back" or choice is None:
            break
