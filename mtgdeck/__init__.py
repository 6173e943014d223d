"""mtgdeck

An interactive command-line tool for building Magic: The Gathering deck
lists from a downloaded card database.
"""

__version__ = "1.0.0"
__author__ = "mtgdeck"
__description__ = "Search the card database and build a deck list at an interactive prompt"
