import base64
import hashlib
import json
import os
import tempfile
import unittest
import urllib.parse

# Ensure local imports work when running this file directly.
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
if THIS_DIR not in os.sys.path:
    os.sys.path.insert(0, THIS_DIR)

from spotify_api.auth import (
    VERIFIER_ALPHABET,
    build_authorize_url,
    check_spotify_credentials,
    code_challenge_from_verifier,
    extract_code_from_redirect_url,
    generate_code_verifier,
    require_spotify_credentials,
)
from spotify_api.session_manager import Session
from spotify_api.storage import JsonFileStore, MemoryStore
from utils.errors import ConfigurationError


class TestSpotifyAuthHelpers(unittest.TestCase):
    def test_code_challenge_matches_sha256_base64url_no_pad(self):
        verifier = "abc"
        expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("utf-8")).digest()).decode("utf-8").rstrip("=")
        challenge = code_challenge_from_verifier(verifier)
        self.assertEqual(challenge, expected)
        self.assertNotIn("=", challenge)
        self.assertNotIn("+", challenge)
        self.assertNotIn("/", challenge)

    def test_generate_code_verifier_is_alphanumeric_and_fixed_length(self):
        verifier = generate_code_verifier()
        self.assertEqual(len(verifier), 128)
        self.assertTrue(all(ch in VERIFIER_ALPHABET for ch in verifier))
        self.assertNotEqual(verifier, generate_code_verifier())

    def test_build_authorize_url_params(self):
        url = build_authorize_url(
            client_id="example-client-id",
            redirect_uri="http://127.0.0.1:8888/callback",
            code_challenge="CHALLENGE",
            scopes=["user-read-private", "user-top-read"],
        )
        parsed = urllib.parse.urlparse(url)
        qs = urllib.parse.parse_qs(parsed.query)

        self.assertEqual(f"{parsed.scheme}://{parsed.netloc}{parsed.path}", "https://accounts.spotify.com/authorize")
        self.assertEqual(qs["client_id"], ["example-client-id"])
        self.assertEqual(qs["response_type"], ["code"])
        self.assertEqual(qs["redirect_uri"], ["http://127.0.0.1:8888/callback"])
        self.assertEqual(qs["code_challenge_method"], ["S256"])
        self.assertEqual(qs["code_challenge"], ["CHALLENGE"])
        self.assertEqual(qs["scope"], ["user-read-private user-top-read"])

    def test_extract_code_from_redirect_url(self):
        parsed = extract_code_from_redirect_url("http://localhost:8888/callback?code=AAA&state=BBB")
        self.assertEqual(parsed.get("code"), "AAA")
        self.assertEqual(parsed.get("state"), "BBB")

        denied = extract_code_from_redirect_url("http://localhost:8888/callback?error=access_denied")
        self.assertEqual(denied, {"error": "access_denied"})

    def test_require_spotify_credentials(self):
        self.assertEqual(
            require_spotify_credentials({"spotify_client_id": " cid ", "spotify_redirect_uri": "http://x/cb"}),
            ("cid", "http://x/cb"),
        )
        with self.assertRaises(ConfigurationError):
            require_spotify_credentials({"spotify_client_id": "", "spotify_redirect_uri": "http://x/cb"})
        with self.assertRaises(ConfigurationError):
            require_spotify_credentials({"spotify_client_id": "cid", "spotify_redirect_uri": "  "})

    def test_check_spotify_credentials_reports_missing_client_id(self):
        status = check_spotify_credentials({"spotify_redirect_uri": "http://x/cb", "spotify_scopes": ["a"]})
        self.assertFalse(status["ok"])
        self.assertIn("client id", status["message"])
        self.assertEqual(status["scopes"], ["a"])


class TestSessionRecord(unittest.TestCase):
    def test_issue_computes_expiry_in_milliseconds(self):
        session = Session.issue("at", "rt", 3600, now_ms=1_000)
        self.assertEqual(session.expires_at, 1_000 + 3_600_000)

    def test_from_json_rejects_incomplete_records(self):
        self.assertIsNone(Session.from_json("not json"))
        self.assertIsNone(Session.from_json(json.dumps([1, 2])))
        self.assertIsNone(Session.from_json(json.dumps({"accessToken": "at", "refreshToken": "", "expiresAt": 5})))
        self.assertIsNone(Session.from_json(json.dumps({"accessToken": "at", "refreshToken": "rt"})))
        self.assertIsNone(Session.from_json(json.dumps({"accessToken": "at", "refreshToken": "rt", "expiresAt": "5"})))

        session = Session.from_json(json.dumps({"accessToken": "at", "refreshToken": "rt", "expiresAt": 5}))
        self.assertEqual(session, Session("at", "rt", 5))


class TestStores(unittest.TestCase):
    def test_json_file_store_roundtrip_and_delete(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "nested", "store.json")
            store = JsonFileStore(path)

            self.assertIsNone(store.get("k"))
            store.set("k", "v")
            store.set("other", "x")
            self.assertEqual(JsonFileStore(path).get("k"), "v")

            store.delete("k")
            store.delete("k")
            self.assertIsNone(store.get("k"))
            self.assertEqual(store.get("other"), "x")

            with open(path, "r", encoding="utf-8") as f:
                self.assertEqual(json.load(f), {"other": "x"})

    def test_json_file_store_treats_garbage_file_as_empty(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "store.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{oops")
            store = JsonFileStore(path)
            self.assertIsNone(store.get("k"))
            store.set("k", "v")
            self.assertEqual(store.get("k"), "v")

    def test_memory_store_delete_missing_is_noop(self):
        store = MemoryStore({"a": "1"})
        store.delete("missing")
        self.assertEqual(store.keys(), ["a"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
