from typing import Any, Optional

import questionary

from config import CONFIG_SCHEMA, SECRET_KEYS, load_config, reset_to_defaults, update_config, validate_config
from utils.logger import log_error, log_info, log_success, log_warning

SECTIONS = {
    "Spotify": ["spotify_client_id", "spotify_redirect_uri", "spotify_scopes", "session_store_path"],
    "Gemini": ["llm_api_url", "llm_api_key", "llm_max_attempts", "llm_backoff_base"],
    "Network": ["http_timeout"],
}


def config_menu(config: dict) -> dict:
    """Settings loop; returns the (possibly changed) config."""
    while True:
        choice = questionary.select(
            "⚙️ Settings — What would you like to do?",
            choices=["Show settings", "Change a setting", "Check settings", "Restore defaults", "Back"],
        ).ask()

        if choice == "Show settings":
            show_settings(config)
        elif choice == "Change a setting":
            config = change_setting(config)
        elif choice == "Check settings":
            check_settings(config)
        elif choice == "Restore defaults":
            config = restore_defaults(config)
        else:
            return config


def masked(key: str, value: Any) -> str:
    if key in SECRET_KEYS:
        return "configured" if value else "missing"
    if isinstance(value, list):
        return " ".join(str(v) for v in value) or "(none)"
    return str(value)


def show_settings(config: dict) -> None:
    for section, keys in SECTIONS.items():
        log_info(f"[{section}]")
        for key in keys:
            log_info(f"  {key:<22} {masked(key, config.get(key, ''))}")


def _ask_value(key: str, current: Any) -> Optional[Any]:
    """Prompt for a new value in the shape the schema expects; None means cancelled or unusable."""
    rules = CONFIG_SCHEMA[key]

    if key in SECRET_KEYS:
        return questionary.password(f"New {key}:").ask()

    if rules["type"] is list:
        answer = questionary.text(
            f"{key} (separate values with spaces):",
            default=" ".join(current or []),
        ).ask()
        return None if answer is None else answer.split()

    answer = questionary.text(f"{key}:", default="" if current is None else str(current)).ask()
    if answer is None or rules["type"] is str:
        return answer

    try:
        return int(answer) if rules["type"] is int else float(answer)
    except ValueError:
        log_error(f"'{answer}' is not a number.")
        return None


def change_setting(config: dict) -> dict:
    key = questionary.select("Which setting?", choices=list(CONFIG_SCHEMA) + ["Back"]).ask()
    if key not in CONFIG_SCHEMA:
        return config

    value = _ask_value(key, config.get(key))
    if value is None:
        return config

    ok, message = update_config(key, value)
    if not ok:
        log_error(message)
        return config

    log_success(message)
    return {**config, key: value}


def check_settings(config: dict) -> None:
    ok, problems = validate_config(config)
    if ok:
        log_success("All settings look valid.")
        return
    for problem in problems:
        log_warning(problem)


def restore_defaults(config: dict) -> dict:
    if not questionary.confirm("Overwrite config.json with the default settings?", default=False).ask():
        return config

    ok, message = reset_to_defaults()
    if not ok:
        log_error(message)
        return config

    log_success(message)
    return load_config()
