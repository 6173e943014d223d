"""
Unit tests for the deck building session commands.
"""

import io
import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from mtgdeck.card_database import CardDatabase, CardDatabaseError, CARDS_FILENAME
from mtgdeck.session import DeckSession, DEFAULT_MESSAGE, NO_CARDS_MESSAGE


SAMPLE_CARDS = {
    "Lightning Bolt": {
        "name": "Lightning Bolt", "type": "Instant", "manaCost": "{R}",
        "text": "Lightning Bolt deals 3 damage to any target."
    },
    "Urza's Tower": {
        "name": "Urza's Tower", "type": "Land — Urza's Power-Plant", "manaCost": "",
        "text": "{T}: Add {C}."
    },
    "Jace, the Mind Sculptor": {
        "name": "Jace, the Mind Sculptor", "type": "Legendary Planeswalker — Jace",
        "manaCost": "{2}{U}{U}", "text": "+2: Look at the top card of target player's library."
    },
    "Mountain": {"name": "Mountain", "type": "Basic Land — Mountain", "manaCost": "", "text": "({T}: Add {R}.)"}
}


class SessionTestCase(unittest.TestCase):
    """Shared fixtures: a session over a temporary card file."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.cards_dir = Path(self.temp_dir) / "cards"
        self.cards_dir.mkdir()
        with open(self.cards_dir / CARDS_FILENAME, 'w', encoding='utf-8') as f:
            json.dump(SAMPLE_CARDS, f)

        self.deck_path = Path(self.temp_dir) / "deck.json"
        self.out = io.StringIO()
        self.session = DeckSession(CardDatabase(self.cards_dir), self.deck_path, out=self.out)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestSearchCommand(SessionTestCase):
    """Test cases for the search command."""

    def test_search_prints_matches(self):
        """Test matches are listed with mana cost, type and text."""
        reply = self.session.search(["bolt"])

        self.assertEqual(reply, DEFAULT_MESSAGE)
        output = self.out.getvalue()
        self.assertIn("Lightning Bolt\t\t{R}\nInstant\n\nLightning Bolt deals 3 damage", output)
        self.assertIn("-------", output)

    def test_search_no_results(self):
        """Test a search without matches."""
        self.assertEqual(self.session.search(["counterspell"]), "no results found")
        self.assertEqual(self.out.getvalue(), "")

    def test_search_without_database(self):
        """Test search before download."""
        session = DeckSession(CardDatabase(Path(self.temp_dir) / "empty"), self.deck_path, out=self.out)

        self.assertEqual(session.search(["bolt"]), NO_CARDS_MESSAGE)


class TestAddRemoveCommands(SessionTestCase):
    """Test cases for the add and remove commands."""

    def test_add_title_cases_input(self):
        """Test lower-case input adds the card."""
        self.assertEqual(self.session.add(["lightning", "bolt"]), "Lightning Bolt x 1")
        self.assertEqual(self.session.add(["Lightning", "Bolt"]), "Lightning Bolt x 2")

    def test_add_keeps_database_spelling(self):
        """Test names with lower-case words and apostrophes resolve."""
        self.assertEqual(self.session.add(["jace,", "the", "mind", "sculptor"]), "Jace, the Mind Sculptor x 1")
        self.assertEqual(self.session.add(["urza's", "tower"]), "Urza's Tower x 1")

    def test_add_unknown_card(self):
        """Test adding a card that does not exist."""
        self.assertEqual(self.session.add(["black", "lotus"]), "no card by that name exists")
        self.assertTrue(self.session.deck.is_empty)

    def test_add_copy_limit(self):
        """Test a fifth copy is refused."""
        for _ in range(4):
            self.session.add(["lightning", "bolt"])

        self.assertEqual(self.session.add(["lightning", "bolt"]), "you can only have 4 of a non-basic-land card")
        self.assertEqual(self.session.deck["Lightning Bolt"].count, 4)

    def test_add_basic_land_beyond_limit(self):
        """Test basic lands are not limited."""
        for _ in range(5):
            reply = self.session.add(["mountain"])

        self.assertEqual(reply, "Mountain x 5")

    def test_add_without_database(self):
        """Test add before download."""
        session = DeckSession(CardDatabase(Path(self.temp_dir) / "empty"), self.deck_path, out=self.out)

        self.assertEqual(session.add(["lightning", "bolt"]), NO_CARDS_MESSAGE)

    def test_remove(self):
        """Test remove decrements, then deletes."""
        self.session.add(["lightning", "bolt"])
        self.session.add(["lightning", "bolt"])

        self.assertEqual(self.session.remove(["lightning", "bolt"]), "Lightning Bolt x 1")
        self.assertEqual(self.session.remove(["LIGHTNING", "BOLT"]), "Lightning Bolt removed from deck")
        self.assertNotIn("Lightning Bolt", self.session.deck)

    def test_remove_missing(self):
        """Test removing a card that is not in the deck."""
        self.assertEqual(self.session.remove(["sol", "ring"]), "no card in deck by that name")


class TestPrintCommand(SessionTestCase):
    """Test cases for the print command."""

    def test_print_empty_deck(self):
        """Test printing an empty deck."""
        self.assertEqual(self.session.print_deck(), "you have no cards in deck, run add")

    def test_print_deck(self):
        """Test printing lists each card with its count."""
        self.session.add(["lightning", "bolt"])
        self.session.add(["lightning", "bolt"])
        self.session.add(["mountain"])

        reply = self.session.print_deck()

        self.assertEqual(reply, DEFAULT_MESSAGE)
        lines = self.out.getvalue().splitlines()
        self.assertEqual(lines[:4], ["Lightning Bolt x 2", "Mountain x 1", "-----", "3 cards"])


class TestSaveLoadCommands(SessionTestCase):
    """Test cases for persisting the deck."""

    def test_save_default_path(self):
        """Test save writes pretty JSON to the default path."""
        self.session.add(["lightning", "bolt"])

        reply = self.session.save()

        self.assertEqual(reply, f"deck saved to {self.deck_path}")
        text = self.deck_path.read_text(encoding='utf-8')
        self.assertIn('\n  "Lightning Bolt"', text)
        self.assertEqual(json.loads(text), {"Lightning Bolt": {"count": 1, "type": "Instant"}})

    def test_save_explicit_path(self):
        """Test save to a given path."""
        target = Path(self.temp_dir) / "burn.json"

        self.assertEqual(self.session.save(str(target)), f"deck saved to {target}")
        self.assertEqual(json.loads(target.read_text(encoding='utf-8')), {})

    def test_save_to_missing_directory(self):
        """Test the OS error message is shown verbatim."""
        target = Path(self.temp_dir) / "missing" / "deck.json"

        reply = self.session.save(str(target))

        self.assertIn("No such file or directory", reply)

    def test_save_then_load(self):
        """Test a saved deck loads back."""
        self.session.add(["lightning", "bolt"])
        self.session.add(["mountain"])
        self.session.save()
        self.session.clear()

        reply = self.session.load()

        self.assertEqual(reply, DEFAULT_MESSAGE)
        self.assertIn("deck loaded", self.out.getvalue())
        self.assertEqual(self.session.deck.to_dict(), {
            "Lightning Bolt": {"count": 1, "type": "Instant"},
            "Mountain": {"count": 1, "type": "Basic Land — Mountain"}
        })

    def test_load_missing_file(self):
        """Test loading a missing file reports the error and keeps the deck."""
        self.session.add(["lightning", "bolt"])

        reply = self.session.load(str(Path(self.temp_dir) / "nope.json"))

        self.assertIn("No such file or directory", reply)
        self.assertIn("Lightning Bolt", self.session.deck)

    def test_load_invalid_json(self):
        """Test a JSON parse failure is reported."""
        self.deck_path.write_text("{oops", encoding='utf-8')

        reply = self.session.load()

        self.assertIn("Expecting property name", reply)
        self.assertTrue(self.session.deck.is_empty)

    def test_load_invalid_shape(self):
        """Test a deck file with bad counts is rejected."""
        self.deck_path.write_text('{"Lightning Bolt": {"count": "many"}}', encoding='utf-8')

        reply = self.session.load()

        self.assertIn("invalid count for Lightning Bolt", reply)

    def test_load_non_utf8_file(self):
        """Test a deck file that is not valid UTF-8 is reported and the deck kept."""
        self.session.add(["lightning", "bolt"])
        self.deck_path.write_bytes(b'\xff\xfe{"Sol Ring": {"count": 1}}')

        reply = self.session.load()

        self.assertIn("can't decode", reply)
        self.assertEqual(self.session.deck["Lightning Bolt"].count, 1)
        self.assertNotIn("Sol Ring", self.session.deck)

    def test_add_to_loaded_deck_with_other_case(self):
        """Test the copy limit holds for an entry saved under a different case."""
        self.deck_path.write_text(
            '{"Jace, The Mind Sculptor": {"count": 4, "type": "Legendary Planeswalker — Jace"}}',
            encoding='utf-8'
        )
        self.session.load()

        reply = self.session.add(["jace,", "the", "mind", "sculptor"])

        self.assertEqual(reply, "you can only have 4 of a non-basic-land card")
        self.assertEqual(len(self.session.deck), 1)
        self.assertEqual(self.session.deck["Jace, The Mind Sculptor"].count, 4)

    def test_load_does_not_need_database(self):
        """Test a deck can be loaded and edited before download."""
        self.deck_path.write_text('{"Sol Ring": {"count": 2, "type": "Artifact"}}', encoding='utf-8')
        session = DeckSession(CardDatabase(Path(self.temp_dir) / "empty"), self.deck_path, out=self.out)

        session.load()

        self.assertEqual(session.remove(["sol", "ring"]), "Sol Ring x 1")


class TestDownloadCommand(SessionTestCase):
    """Test cases for the download command."""

    def test_download_success(self):
        """Test the download reply."""
        self.session.card_db = MagicMock()
        self.session.card_db.cards_file = self.cards_dir / CARDS_FILENAME
        self.session.card_db.download.return_value = 4

        reply = self.session.download()

        self.assertEqual(reply, "download complete")
        self.assertIn("downloading card db to", self.out.getvalue())

    def test_download_failure(self):
        """Test download errors are reported at the prompt."""
        self.session.card_db = MagicMock()
        self.session.card_db.download.side_effect = CardDatabaseError("Request timeout")

        self.assertEqual(self.session.download(), "download failed: Request timeout")


if __name__ == '__main__':
    unittest.main()
