#!/usr/bin/env python3
"""
Example usage of mtgdeck without the interactive prompt.

Runs the same commands a user would type at the prompt against the card
database in ~/.mtgdeck/cards. Run "download" at the prompt first.
"""

from pathlib import Path

from mtgdeck.card_database import CardDatabase
from mtgdeck.config import get_default_config
from mtgdeck.session import DeckSession


def main():
    """Build and save a small burn deck."""

    print("mtgdeck - Example Usage")
    print("=" * 50)

    config = get_default_config()
    card_db = CardDatabase(Path(config.cards_dir))
    if not card_db.is_available:
        print("No card database found. Start mtgdeck and run \"download\" first.")
        return

    session = DeckSession(card_db, Path("burn_deck.json"))

    # Example 1: Search
    print("Example 1: Search")
    print("-" * 30)
    print(session.search(["lightning", "bolt"]))
    print()

    # Example 2: Add cards, including the copy limit
    print("Example 2: Add Cards")
    print("-" * 30)
    for _ in range(5):
        print(session.add(["lightning", "bolt"]))
    for _ in range(6):
        print(session.add(["mountain"]))
    print()

    # Example 3: Print and save
    print("Example 3: Print and Save")
    print("-" * 30)
    print(session.print_deck())
    print(session.save())


if __name__ == "__main__":
    main()
