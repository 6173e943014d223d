"""
Card database service with a local file cache.

This module downloads the MTGJSON card list once, normalises it to a flat
mapping of card name to card metadata and stores it on disk so that later
sessions can search and look up cards without touching the network.
"""

import json
import time
import logging
import random
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import requests

from .models import Card, title_case


CARDS_FILENAME = "AllCards.json"

ProgressCallback = Callable[[int, Optional[int]], None]


class CardDatabaseError(Exception):
    """Raised when the card database cannot be downloaded or written."""
    pass


class TransientDownloadError(CardDatabaseError):
    """Raised for download failures worth retrying (timeouts, 429, 5xx)."""
    pass


class CardDatabase:
    """Downloads, caches and queries the card database."""

    DEFAULT_URL = "https://mtgjson.com/api/v5/AtomicCards.json"
    CHUNK_SIZE = 1024 * 1024

    def __init__(
        self,
        cards_dir: Path,
        url: str = DEFAULT_URL,
        timeout: int = 60,
        retry_attempts: int = 3
    ):
        """
        Initialize the card database.

        Args:
            cards_dir: Directory holding the cached card file
            url: Where to download the card list from
            timeout: Per-request timeout in seconds
            retry_attempts: Retries after the first failed download attempt
        """
        self.logger = logging.getLogger(__name__)

        self.cards_dir = Path(cards_dir).expanduser()
        self.cards_file = self.cards_dir / CARDS_FILENAME
        self.url = url
        self.timeout = timeout

        # Exponential backoff settings
        self.max_retries = max(0, retry_attempts)
        self.base_delay = 1.0
        self.max_delay = 30.0
        self.backoff_factor = 2.0

        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'mtgdeck/1.0.0'
        })

        self._cards: Optional[Dict[str, Dict[str, Any]]] = None
        self._lower_index: Optional[Dict[str, str]] = None

    @property
    def is_available(self) -> bool:
        """True if the card file can be loaded."""
        return self.load() is not None

    def __len__(self) -> int:
        cards = self.load()
        return len(cards) if cards else 0

    def download(self, progress: Optional[ProgressCallback] = None) -> int:
        """
        Download the card list and replace the local card file.

        Args:
            progress: Optional callback receiving (bytes_downloaded, total_bytes)

        Returns:
            Number of cards written

        Raises:
            CardDatabaseError: If the download fails after retries or the payload is unusable
        """
        self.cards_dir.mkdir(parents=True, exist_ok=True)
        raw_file = self.cards_dir / f"{CARDS_FILENAME}.download"

        try:
            self._download_with_retry(raw_file, progress)

            try:
                with open(raw_file, 'r', encoding='utf-8') as f:
                    payload = json.load(f)
            except ValueError as e:
                raise CardDatabaseError(f"Invalid JSON in card database: {e}")

            cards = self.normalize_payload(payload)
            if not cards:
                raise CardDatabaseError("Card database download contained no cards")

            self._write_cards(cards)
        finally:
            if raw_file.exists():
                raw_file.unlink()

        self._set_cards(cards)
        self.logger.info(f"Saved {len(cards)} cards to {self.cards_file}")
        return len(cards)

    def load(self) -> Optional[Dict[str, Dict[str, Any]]]:
        """
        Load the cached card file.

        Returns:
            Mapping of card name to record, or None if no usable file exists
        """
        if self._cards is not None:
            return self._cards

        if not self.cards_file.exists():
            self.logger.debug(f"No card file at {self.cards_file}")
            return None

        try:
            with open(self.cards_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (ValueError, OSError) as e:
            self.logger.warning(f"Failed to load card file {self.cards_file}: {e}")
            return None

        if not isinstance(data, dict):
            self.logger.warning(f"Card file {self.cards_file} does not hold a JSON object")
            return None

        self._set_cards(data)
        self.logger.debug(f"Loaded {len(data)} cards from {self.cards_file}")
        return self._cards

    def search(self, terms: List[str]) -> List[Card]:
        """
        Find cards whose name contains the search terms.

        Args:
            terms: Search words; joined with single spaces

        Returns:
            Matching cards in database order
        """
        cards = self.load()
        if not cards:
            return []

        needle = ' '.join(terms).lower()
        return [
            Card.from_record(name, record)
            for name, record in cards.items()
            if needle in name.lower()
        ]

    def get(self, name: str) -> Optional[Card]:
        """
        Look up a card by name.

        Args:
            name: Exact card name, or the name in any case

        Returns:
            Card if found, None otherwise
        """
        cards = self.load()
        if not cards:
            return None

        if name in cards:
            return Card.from_record(name, cards[name])

        stored = self._lower_index.get(name.lower())
        if stored is not None:
            return Card.from_record(stored, cards[stored])

        return None

    def resolve_name(self, raw: str) -> str:
        """
        Turn user-typed words into a card name.

        Returns the database's spelling when the card is known in any case,
        otherwise the title-cased input.
        """
        name = ' '.join(raw.split())
        card = self.get(name)
        if card is not None:
            return card.name
        return title_case(name)

    @staticmethod
    def normalize_payload(payload: Any) -> Dict[str, Dict[str, Any]]:
        """
        Flatten a downloaded card list to name -> {name, type, manaCost, text}.

        Accepts the MTGJSON v5 envelope ({"meta": ..., "data": {...}}) and the
        older flat mapping.
        """
        if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
            payload = payload['data']

        if not isinstance(payload, dict):
            raise CardDatabaseError("Card database must be a JSON object keyed by card name")

        return {
            name: Card.from_record(name, record).to_record()
            for name, record in payload.items()
        }

    def _set_cards(self, cards: Dict[str, Dict[str, Any]]) -> None:
        self._cards = cards
        self._lower_index = {}
        for name in cards:
            self._lower_index.setdefault(name.lower(), name)

    def _write_cards(self, cards: Dict[str, Dict[str, Any]]) -> None:
        tmp_file = self.cards_file.with_suffix('.json.tmp')
        try:
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(cards, f, ensure_ascii=False)
            tmp_file.replace(self.cards_file)
        except OSError as e:
            raise CardDatabaseError(f"Failed to write card file {self.cards_file}: {e}")

    def _download_with_retry(self, destination: Path, progress: Optional[ProgressCallback]) -> None:
        """Download to a file with exponential backoff retry logic."""
        for attempt in range(self.max_retries + 1):
            try:
                self._download_raw(destination, progress)
                return
            except TransientDownloadError as e:
                if attempt < self.max_retries:
                    delay = self._calculate_backoff_delay(attempt)
                    self.logger.warning(f"Download failed (attempt {attempt + 1}): {e}. Retrying in {delay:.1f}s")
                    time.sleep(delay)
                else:
                    self.logger.error(f"Failed to download card database after {attempt + 1} attempts: {e}")
                    raise

    def _download_raw(self, destination: Path, progress: Optional[ProgressCallback]) -> None:
        """Stream the card list to disk without retry logic."""
        self.logger.debug(f"Downloading card database from {self.url}")
        try:
            response = self.session.get(self.url, stream=True, timeout=self.timeout)
        except requests.Timeout:
            raise TransientDownloadError("Request timeout")
        except requests.ConnectionError as e:
            raise TransientDownloadError(f"Connection error: {e}")
        except requests.RequestException as e:
            raise CardDatabaseError(f"Network error: {e}")

        try:
            if response.status_code == 429 or response.status_code >= 500:
                raise TransientDownloadError(f"Server responded with status {response.status_code}")
            if response.status_code != 200:
                raise CardDatabaseError(f"Download failed with status {response.status_code}")

            total = response.headers.get('Content-Length')
            total = int(total) if total and total.isdigit() else None
            downloaded = 0

            with open(destination, 'wb') as f:
                for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    downloaded += len(chunk)
                    if progress:
                        progress(downloaded, total)

        except requests.RequestException as e:
            raise TransientDownloadError(f"Network error while downloading: {e}")
        except OSError as e:
            raise CardDatabaseError(f"Failed to write {destination}: {e}")
        finally:
            response.close()

    def _calculate_backoff_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay with jitter."""
        delay = self.base_delay * (self.backoff_factor ** attempt)
        delay = min(delay, self.max_delay)

        # Add jitter (±25% of delay)
        jitter = delay * 0.25 * (random.random() - 0.5)
        delay += jitter

        return max(0.1, delay)
