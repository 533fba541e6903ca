import questionary


def main_menu():
    """Displays the main menu and returns the selected choice."""
    return questionary.select(
        "🎵 Curatify — Main Menu",
        choices=[
            "Account",
            "Recommendations",
            "Config Menu",
            "Exit",
        ],
    ).ask()
