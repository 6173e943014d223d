"""
Data models for the mtgdeck deck list builder.

This module contains the core data structures used throughout the application,
including the Card record, DeckEntry and Deck classes.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterator, Optional
import re


MAX_COPIES = 4

# Relentless Rats, Shadowborn Apostle and friends
ANY_NUMBER_PATTERN = re.compile(r'a deck can have any number of cards named', re.IGNORECASE)


class DeckError(Exception):
    """Base class for deck manipulation errors."""
    pass


class CopyLimitError(DeckError):
    """Raised when adding a card would exceed the copy limit."""
    pass


class CardNotInDeckError(DeckError):
    """Raised when removing a card the deck does not hold."""
    pass


class DeckFormatError(DeckError):
    """Raised when a saved deck does not have the expected shape."""
    pass


def title_case(text: str) -> str:
    """
    Normalize user input to title case.

    Args:
        text: Raw user input, e.g. "lightning   BOLT"

    Returns:
        Whitespace-collapsed title-cased text, e.g. "Lightning Bolt"
    """
    words = text.split()
    return ' '.join(word[:1].upper() + word[1:].lower() for word in words)


@dataclass
class Card:
    """Represents a single card from the card database."""
    name: str
    type: str
    mana_cost: str = ""
    text: str = ""

    @classmethod
    def from_record(cls, name: str, record: Any) -> 'Card':
        """
        Create a Card from a raw card database record.

        The database key is the card name. MTGJSON atomic records are a list
        of faces; only the first face is used.
        """
        if isinstance(record, list):
            record = record[0] if record else {}
        if not isinstance(record, dict):
            record = {}

        return cls(
            name=name,
            type=record.get('type') or record.get('type_line') or '',
            mana_cost=record.get('manaCost') or record.get('mana_cost') or '',
            text=record.get('text') or record.get('oracle_text') or ''
        )

    def to_record(self) -> Dict[str, str]:
        """Convert to the flat record stored in the local card file."""
        return {
            'name': self.name,
            'type': self.type,
            'manaCost': self.mana_cost,
            'text': self.text
        }

    @property
    def is_basic_land(self) -> bool:
        """Check for the Basic supertype on a land (snow basics included)."""
        types = self.type.split('—')[0].split()
        return 'Basic' in types and 'Land' in types

    @property
    def ignores_copy_limit(self) -> bool:
        """Cards that may appear in a deck in any number."""
        return self.is_basic_land or bool(ANY_NUMBER_PATTERN.search(self.text))


@dataclass
class DeckEntry:
    """A card held in the deck with its quantity."""
    count: int
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Deck:
    """In-memory deck list keyed by card name, in insertion order."""

    def __init__(self, entries: Optional[Dict[str, DeckEntry]] = None):
        self.entries: Dict[str, DeckEntry] = dict(entries or {})

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __getitem__(self, name: str) -> DeckEntry:
        return self.entries[name]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def total_cards(self) -> int:
        """Total number of cards, counting every copy."""
        return sum(entry.count for entry in self.entries.values())

    def find(self, name: str) -> Optional[str]:
        """
        Find the stored spelling of a card name.

        Args:
            name: Card name in any case

        Returns:
            The name as held in the deck, or None if absent
        """
        if name in self.entries:
            return name

        lowered = name.lower()
        for stored in self.entries:
            if stored.lower() == lowered:
                return stored
        return None

    def add(self, card: Card) -> int:
        """
        Add one copy of a card.

        Args:
            card: Card to add

        Returns:
            Number of copies held after the add

        Raises:
            CopyLimitError: If the deck already holds MAX_COPIES of a limited card
        """
        # Decks loaded from disk may spell the name in a different case
        name = self.find(card.name) or card.name
        entry = self.entries.get(name)
        if entry is None:
            self.entries[card.name] = DeckEntry(count=1, type=card.type)
            return 1

        if entry.count >= MAX_COPIES and not self._ignores_copy_limit(card, entry):
            raise CopyLimitError(f"you can only have {MAX_COPIES} of a non-basic-land card")

        entry.count += 1
        return entry.count

    def remove(self, name: str) -> int:
        """
        Remove one copy of a card.

        Args:
            name: Card name as held in the deck

        Returns:
            Number of copies left; 0 means the entry was deleted

        Raises:
            CardNotInDeckError: If the deck has no such card
        """
        entry = self.entries.get(name)
        if entry is None:
            raise CardNotInDeckError("no card in deck by that name")

        if entry.count <= 1:
            del self.entries[name]
            return 0

        entry.count -= 1
        return entry.count

    def clear(self) -> None:
        self.entries.clear()

    def _ignores_copy_limit(self, card: Card, entry: DeckEntry) -> bool:
        # Entries loaded from disk may carry a richer type than the card record
        stored = Card(name=card.name, type=entry.type)
        return card.ignores_copy_limit or stored.is_basic_land

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Convert to the JSON shape written by save."""
        return {name: entry.to_dict() for name, entry in self.entries.items()}

    @classmethod
    def from_dict(cls, data: Any) -> 'Deck':
        """
        Create a Deck from the JSON shape written by save.

        Raises:
            DeckFormatError: If the data is not a mapping of name to count and type
        """
        if not isinstance(data, dict):
            raise DeckFormatError("deck file must contain a JSON object")

        entries = {}
        for name, value in data.items():
            if not isinstance(value, dict):
                raise DeckFormatError(f"invalid entry for {name}: expected an object")

            count = value.get('count')
            # bool is an int subclass
            if not isinstance(count, int) or isinstance(count, bool) or count < 1:
                raise DeckFormatError(f"invalid count for {name}: {count!r}")

            card_type = value.get('type', '')
            if not isinstance(card_type, str):
                raise DeckFormatError(f"invalid type for {name}: {card_type!r}")

            entries[name] = DeckEntry(count=count, type=card_type)

        return cls(entries)
