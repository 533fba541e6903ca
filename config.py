import json
import os
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

CONFIG_PATH = "config.json"

DEFAULT_CONFIG = {
    # Spotify OAuth (Authorization Code + PKCE)
    "spotify_client_id": "",
    "spotify_redirect_uri": "http://127.0.0.1:8888/callback",
    "spotify_scopes": [
        "user-read-private",
        "user-read-email",
        "user-top-read",
        "user-modify-playback-state",
    ],
    "session_store_path": "data/session_store.json",

    # LLM (Gemini generateContent endpoint)
    "llm_api_url": "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent",
    "llm_api_key": "",
    "llm_max_attempts": 3,
    "llm_backoff_base": 1.0,

    # Applied to every outbound HTTP request
    "http_timeout": 30.0,
}

# Environment variables win over config.json (.env is read through python-dotenv)
ENV_OVERRIDES = {
    "SPOTIFY_CLIENT_ID": "spotify_client_id",
    "SPOTIFY_REDIRECT_URI": "spotify_redirect_uri",
    "LLM_API_URL": "llm_api_url",
    "LLM_API_KEY": "llm_api_key",
}

NUMBER = (int, float)

CONFIG_SCHEMA = {
    "spotify_client_id": {"type": str},
    "spotify_redirect_uri": {"type": str, "required": True},
    "spotify_scopes": {"type": list, "items": str},
    "session_store_path": {"type": str, "required": True},

    "llm_api_url": {"type": str},
    "llm_api_key": {"type": str},
    "llm_max_attempts": {"type": int, "min": 1, "max": 10},
    "llm_backoff_base": {"type": NUMBER, "min": 0, "max": 30},

    "http_timeout": {"type": NUMBER, "min": 1, "max": 300},
}

# Never echoed back to the terminal
SECRET_KEYS = {"llm_api_key"}


def _type_label(expected) -> str:
    if isinstance(expected, tuple):
        return "number"
    return expected.__name__


def _read_config_file(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Build the effective config: defaults, then config.json, then the environment."""
    load_dotenv()

    config = {key: list(value) if isinstance(value, list) else value for key, value in DEFAULT_CONFIG.items()}
    config.update(_read_config_file(path))

    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            config[key] = value

    return config


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)


def check_field(key: str, value: Any) -> Optional[str]:
    """Return a human readable problem with one config value, or None if it is fine."""
    rules = CONFIG_SCHEMA[key]
    expected = rules["type"]

    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, expected):
        return f"'{key}' should be a {_type_label(expected)}, not {type(value).__name__}"

    if "items" in rules:
        wrong = [item for item in value if not isinstance(item, rules["items"])]
        if wrong:
            return f"'{key}' may only contain {rules['items'].__name__} values; got {wrong}"

    if "min" in rules and value < rules["min"]:
        return f"'{key}' is {value}, below the minimum of {rules['min']}"
    if "max" in rules and value > rules["max"]:
        return f"'{key}' is {value}, above the maximum of {rules['max']}"

    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Check every known key; returns (is_valid, problems)."""
    problems = []
    for key, rules in CONFIG_SCHEMA.items():
        if key not in config:
            if rules.get("required"):
                problems.append(f"'{key}' is required")
            continue
        problem = check_field(key, config[key])
        if problem:
            problems.append(problem)
    return not problems, problems


def update_config(key: str, value: Any, path: str = CONFIG_PATH) -> Tuple[bool, str]:
    """Validate and persist a single setting; returns (ok, message)."""
    if key not in CONFIG_SCHEMA:
        return False, f"No such setting: {key}"

    problem = check_field(key, value)
    if problem:
        return False, problem

    # Rewrite only what the file already holds; env values (secrets) stay out of config.json.
    stored = _read_config_file(path)
    stored[key] = value
    save_config(stored, path)

    shown = "(hidden)" if key in SECRET_KEYS else repr(value)
    return True, f"Saved {key} = {shown}"


def reset_to_defaults(path: str = CONFIG_PATH) -> Tuple[bool, str]:
    try:
        save_config(dict(DEFAULT_CONFIG), path)
    except OSError as e:
        return False, f"Could not write {path}: {e}"
    return True, "Configuration reset to defaults"
