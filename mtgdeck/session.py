"""
Interactive deck building session.

A DeckSession owns the in-memory deck and the card database. Each command
handler returns the reply shown at the prompt; card listings are written to
the session's output stream.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .card_database import CardDatabase, CardDatabaseError, ProgressCallback
from .models import Card, Deck, CopyLimitError, CardNotInDeckError, DeckFormatError, title_case


DEFAULT_MESSAGE = 'type: <command> [options]'
NO_CARDS_MESSAGE = 'no cards found, run download'


class DeckSession:
    """Holds the deck being built and implements the REPL commands."""

    def __init__(self, card_db: CardDatabase, default_deck_path: Path, out: Optional[TextIO] = None):
        """
        Initialize a session with an empty deck.

        Args:
            card_db: Card database used for search and add
            default_deck_path: File used by save and load when no path is given
            out: Stream for card listings (defaults to stdout)
        """
        self.logger = logging.getLogger(__name__)
        self.card_db = card_db
        self.default_deck_path = Path(default_deck_path).expanduser()
        self.out = out or sys.stdout
        self.deck = Deck()

    def _print(self, text: str = '') -> None:
        print(text, file=self.out)

    def download(self, progress: Optional[ProgressCallback] = None) -> str:
        """Download the card database to the local cache."""
        self._print(f"downloading card db to {self.card_db.cards_file}\n")
        try:
            count = self.card_db.download(progress=progress)
        except CardDatabaseError as e:
            self.logger.error(f"Card database download failed: {e}")
            return f"download failed: {e}"

        self.logger.info(f"Downloaded {count} cards")
        return 'download complete'

    def search(self, terms: List[str]) -> str:
        """List every card whose name contains the search terms."""
        if not self.card_db.is_available:
            return NO_CARDS_MESSAGE

        results = self.card_db.search(terms)
        if not results:
            return 'no results found'

        for card in results:
            self._print(self.format_card(card))
            self._print('-------\n')

        self.logger.debug(f"Search {' '.join(terms)!r} matched {len(results)} cards")
        return DEFAULT_MESSAGE

    def add(self, words: List[str]) -> str:
        """Add one copy of the named card to the deck."""
        if not self.card_db.is_available:
            return NO_CARDS_MESSAGE

        card = self.card_db.get(self.card_db.resolve_name(' '.join(words)))
        if card is None:
            return 'no card by that name exists'

        try:
            count = self.deck.add(card)
        except CopyLimitError as e:
            return str(e)

        return f"{card.name} x {count}"

    def remove(self, words: List[str]) -> str:
        """Remove one copy of the named card from the deck."""
        typed = ' '.join(words)
        name = self.deck.find(typed) or title_case(typed)

        try:
            count = self.deck.remove(name)
        except CardNotInDeckError as e:
            return str(e)

        if count == 0:
            return f"{name} removed from deck"
        return f"{name} x {count}"

    def print_deck(self) -> str:
        """List the deck with counts."""
        if self.deck.is_empty:
            return 'you have no cards in deck, run add'

        for name in self.deck:
            self._print(f"{name} x {self.deck[name].count}")
        self._print('-----')
        self._print(f"{self.deck.total_cards} cards\n")
        return DEFAULT_MESSAGE

    def save(self, path: Optional[str] = None) -> str:
        """Write the deck as pretty-printed JSON."""
        target = self._resolve_path(path)
        try:
            with open(target, 'w', encoding='utf-8') as f:
                json.dump(self.deck.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            self.logger.warning(f"Failed to save deck to {target}: {e}")
            return str(e)

        self.logger.info(f"Saved {len(self.deck)} entries to {target}")
        return f"deck saved to {target}"

    def load(self, path: Optional[str] = None) -> str:
        """Replace the deck with one read from a JSON file."""
        target = self._resolve_path(path)
        try:
            with open(target, 'r', encoding='utf-8') as f:
                deck = Deck.from_dict(json.load(f))
        except (OSError, ValueError, DeckFormatError) as e:
            self.logger.warning(f"Failed to load deck from {target}: {e}")
            return str(e)

        self.deck = deck
        self._print('deck loaded')
        self.logger.info(f"Loaded {len(deck)} entries from {target}")
        return DEFAULT_MESSAGE

    def clear(self) -> str:
        """Empty the deck."""
        self.deck.clear()
        return 'deck cleared'

    def _resolve_path(self, path: Optional[str]) -> Path:
        return Path(path).expanduser() if path else self.default_deck_path

    @staticmethod
    def format_card(card: Card) -> str:
        """Format a search result the way it is listed at the prompt."""
        return f"{card.name}\t\t{card.mana_cost}\n{card.type}\n\n{card.text}"
