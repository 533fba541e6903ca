import json
import sys

from config import load_config
from llm_api.client import GeminiClient
from menus.auth_menu import auth_menu
from menus.config_menu import config_menu
from menus.main_menu import main_menu
from menus.recommender_menu import recommender_menu
from spotify_api.session_manager import SessionManager
from utils.logger import setup_logging, log_info, log_error


def run() -> int:
    setup_logging()

    try:
        config = load_config()
    except json.JSONDecodeError as e:
        log_error(f"Config file contains invalid JSON: {e}")
        return 1
    except OSError as e:
        log_error(f"Error loading config: {e}")
        return 1

    manager = SessionManager(config)

    while True:
        choice = main_menu()

        if choice == "Account":
            auth_menu(config, manager)

        elif choice == "Recommendations":
            recommender_menu(config, manager, GeminiClient(config))

        elif choice == "Config Menu":
            config = config_menu(config)
            manager = SessionManager(config)

        elif choice == "Exit" or choice is None:
            log_info("Exiting program...")
            return 0

        else:
            log_error("Invalid choice.")


if __name__ == "__main__":
    sys.exit(run())
