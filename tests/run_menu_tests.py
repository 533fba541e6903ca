#!/usr/bin/env python3
"""Curatify menu test runner.

Runs lightweight, local tests for:
- Spotify login wiring (browser prompt, pasted redirect URL, code exchange)
- Logout and the missing-config path of the account menu
- Recommendation display helpers

This runner never talks to Spotify or Gemini; HTTP goes through httpx.MockTransport.

Usage:
  python3 -m tests.run_menu_tests

"""

from __future__ import annotations

import types
import unittest
import urllib.parse
from dataclasses import dataclass
from typing import Any

# Ensure imports like `utils.*` and `menus.*` work even when executed from repo root.
import sys
from pathlib import Path

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spotify_api.session_manager import SESSION_KEY, VERIFIER_KEY, Session, SessionManager
from spotify_api.storage import MemoryStore

NOW = 1_700_000_000_000

CONFIG = {
    "spotify_client_id": "cid",
    "spotify_redirect_uri": "http://127.0.0.1:8888/callback",
    "spotify_scopes": ["user-top-read"],
}


# -------------------------
# Simple questionary mocks
# -------------------------

@dataclass
class _Askable:
    """Mimic questionary prompt objects that return a value from .ask()."""

    value: Any

    def ask(self):
        return self.value


class _QuestionaryMock:
    """A minimal questionary stand-in that returns queued answers and captures messages."""

    def __init__(self):
        self._queue: list[Any] = []
        self.messages: list[str] = []

    def queue(self, *answers: Any) -> None:
        self._queue.extend(list(answers))

    def _pop(self, message: str) -> _Askable:
        self.messages.append(message)
        if not self._queue:
            raise AssertionError("QuestionaryMock queue exhausted")
        return _Askable(self._queue.pop(0))

    def select(self, message: str, choices: list[Any], **kwargs):
        return self._pop(message)

    def confirm(self, message: str, default: bool = True):
        return self._pop(message)

    def text(self, message: str, **kwargs):
        return self._pop(message)


class _PatchModuleAttr:
    """Context manager to temporarily patch module attributes."""

    def __init__(self, module: types.ModuleType, attr: str, value: Any):
        self.module = module
        self.attr = attr
        self.value = value
        self._old = None

    def __enter__(self):
        self._old = getattr(self.module, self.attr)
        setattr(self.module, self.attr, self.value)

    def __exit__(self, exc_type, exc, tb):
        setattr(self.module, self.attr, self._old)


# -------------------------
# Helpers
# -------------------------


def _manager(store: MemoryStore, handler=None, config: dict | None = None):
    opened: list[str] = []
    forms: list[dict] = []

    def token_endpoint(request: httpx.Request) -> httpx.Response:
        forms.append(dict(urllib.parse.parse_qsl(request.content.decode("utf-8"))))
        return httpx.Response(200, json={"access_token": "at-new", "refresh_token": "rt-new", "expires_in": 3600})

    manager = SessionManager(
        config if config is not None else dict(CONFIG),
        store,
        transport=httpx.MockTransport(handler or token_endpoint),
        clock=lambda: NOW,
        open_url=opened.append,
    )
    return manager, opened, forms


# -------------------------
# Tests
# -------------------------


class TestLoginFlow(unittest.TestCase):
    def test_login_opens_browser_and_exchanges_pasted_code(self):
        import menus.auth_menu as am

        store = MemoryStore()
        manager, opened, forms = _manager(store)

        q = _QuestionaryMock()
        q.queue(True, "http://127.0.0.1:8888/callback?code=CODE-123&state=x")

        with _PatchModuleAttr(am, "questionary", q):
            ok = am.login(CONFIG, manager)

        self.assertTrue(ok)
        self.assertEqual(len(opened), 1)
        self.assertTrue(opened[0].startswith("https://accounts.spotify.com/authorize?"))

        self.assertEqual(forms[0]["grant_type"], "authorization_code")
        self.assertEqual(forms[0]["code"], "CODE-123")
        self.assertEqual(len(forms[0]["code_verifier"]), 128)

        self.assertIsNone(store.get(VERIFIER_KEY))
        self.assertEqual(manager.load_session().access_token, "at-new")

    def test_login_accepts_bare_code_without_opening_browser(self):
        import menus.auth_menu as am

        manager, opened, forms = _manager(MemoryStore())

        q = _QuestionaryMock()
        q.queue(False, "BARE-CODE")

        with _PatchModuleAttr(am, "questionary", q):
            self.assertTrue(am.login(CONFIG, manager))

        self.assertEqual(opened, [])
        self.assertEqual(forms[0]["code"], "BARE-CODE")

    def test_login_reports_denied_authorization(self):
        import menus.auth_menu as am

        manager, _, forms = _manager(MemoryStore())

        q = _QuestionaryMock()
        q.queue(False, "http://127.0.0.1:8888/callback?error=access_denied")

        with _PatchModuleAttr(am, "questionary", q):
            self.assertFalse(am.login(CONFIG, manager))
        self.assertEqual(forms, [])

    def test_login_failure_keeps_user_logged_out(self):
        import menus.auth_menu as am

        store = MemoryStore()
        manager, _, _ = _manager(
            store,
            handler=lambda request: httpx.Response(400, json={"error": "invalid_grant", "error_description": "bad code"}),
        )

        q = _QuestionaryMock()
        q.queue(False, "CODE")

        with _PatchModuleAttr(am, "questionary", q):
            self.assertFalse(am.login(CONFIG, manager))
        self.assertIsNone(manager.load_session())

    def test_login_without_client_id_shows_setup_help(self):
        import menus.auth_menu as am

        manager, opened, _ = _manager(MemoryStore(), config=dict(CONFIG, spotify_client_id=""))

        q = _QuestionaryMock()
        with _PatchModuleAttr(am, "questionary", q):
            self.assertFalse(am.login(manager.config, manager))

        # No prompt is shown before the configuration problem is reported.
        self.assertEqual(q.messages, [])
        self.assertEqual(opened, [])


class TestAccountMenu(unittest.TestCase):
    def test_logout_clears_session(self):
        import menus.auth_menu as am

        store = MemoryStore({SESSION_KEY: Session("at", "rt", NOW + 3_600_000).to_json()})
        manager, _, _ = _manager(store)

        q = _QuestionaryMock()
        q.queue("Log out", "Back")

        with _PatchModuleAttr(am, "questionary", q):
            am.auth_menu(CONFIG, manager)

        self.assertIsNone(store.get(SESSION_KEY))
        self.assertEqual(am.session_status(manager), "Not logged in.")

    def test_session_status_reports_expiry(self):
        import menus.auth_menu as am

        store = MemoryStore({SESSION_KEY: Session("at", "rt", NOW + 30_000).to_json()})
        manager, _, _ = _manager(store)

        self.assertIn("Token expired: YES", am.session_status(manager))


class TestRecommenderMenu(unittest.TestCase):
    def test_offline_spotify_is_reported_not_raised(self):
        import menus.recommender_menu as rm
        from spotify_api.client import SpotifyClient

        store = MemoryStore({SESSION_KEY: Session("at", "rt", NOW + 3_600_000).to_json()})
        manager, _, _ = _manager(store)

        def offline(request):
            raise httpx.ConnectError("offline", request=request)

        def offline_client(session_manager, config=None):
            return SpotifyClient(session_manager, config, transport=httpx.MockTransport(offline))

        q = _QuestionaryMock()
        q.queue("Analyze a playlist's mood", "Back")

        with _PatchModuleAttr(rm, "questionary", q), _PatchModuleAttr(rm, "SpotifyClient", offline_client):
            rm.recommender_menu(CONFIG, manager, llm=object())

        self.assertEqual(q._queue, [])


class TestRecommenderDisplay(unittest.TestCase):
    def test_show_recommendations_handles_missing_fields(self):
        import menus.recommender_menu as rm

        # Must not raise on partial model output.
        rm.show_recommendations({"recommendations": [{"title": "T"}, {}]})
        rm.show_recommendations({})


if __name__ == "__main__":
    unittest.main(verbosity=2)
