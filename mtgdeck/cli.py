"""Command-line interface and interactive prompt for mtgdeck."""

import argparse
import shlex
import sys
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from . import __version__
from .card_database import CardDatabase, CardDatabaseError
from .config import ConfigManager, apply_env_overrides
from .models import DeckError
from .session import DeckSession, DEFAULT_MESSAGE


PROMPT = '> '
GOODBYE_MESSAGE = 'goodbye 👋'


class CommandExit(Exception):
    """Raised by the prompt's argument parser instead of exiting the process."""

    def __init__(self, message: str = '', status: int = 0):
        super().__init__(message)
        self.message = message
        self.status = status


class PromptArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports help and errors back to the prompt."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._pending_output = ''

    def _print_message(self, message, file=None):
        if message:
            self._pending_output += message

    def exit(self, status=0, message=None):
        output = self._pending_output + (message or '')
        self._pending_output = ''
        raise CommandExit(output.rstrip('\n'), status)

    def error(self, message):
        raise CommandExit(f"{self.format_usage()}{self.prog}: error: {message}".strip(), 2)


def build_command_parser() -> PromptArgumentParser:
    """
    Build the parser for commands typed at the prompt.

    Returns:
        Parser with one sub-command per prompt command
    """
    parser = PromptArgumentParser(
        prog='mtgdeck',
        description='Build a Magic: The Gathering deck list',
        add_help=False
    )
    subparsers = parser.add_subparsers(dest='command', metavar='<command>')
    subparsers.required = True

    subparsers.add_parser(
        'download', prog='download',
        help='download an up-to-date list of mtg cards'
    )

    search = subparsers.add_parser('search', prog='search', help='search for a card')
    search.add_argument('terms', nargs='+', help='words the card name must contain')

    add = subparsers.add_parser('add', prog='add', help='add a card to your deck')
    add.add_argument('name', nargs='+', help='card name')

    remove = subparsers.add_parser('remove', prog='remove', help='remove a card from your deck')
    remove.add_argument('name', nargs='+', help='card name')

    subparsers.add_parser('print', prog='print', help='print your deck')

    save = subparsers.add_parser('save', prog='save', help='save your deck')
    save.add_argument('path', nargs='?', help='where should your deck be saved? (default: ~/deck.json)')

    load = subparsers.add_parser('load', prog='load', help='load a deck')
    load.add_argument('path', nargs='?', help='where should your deck be loaded from? (default: ~/deck.json)')

    subparsers.add_parser('clear', prog='clear', help='remove every card from your deck')

    subparsers.add_parser('exit', prog='exit', aliases=['quit'], help='exit deck building app')

    help_parser = subparsers.add_parser('help', prog='help', help='show this help')
    help_parser.add_argument('topic', nargs='?', help='command to show help for')

    return parser


def split_command_line(line: str) -> List[str]:
    """
    Split a prompt line into words.

    Only double quotes group words so that apostrophes in card names
    ("Urza's Tower") are kept literally.

    Raises:
        ValueError: On an unterminated double quote
    """
    lexer = shlex.shlex(line, posix=True)
    lexer.whitespace_split = True
    lexer.quotes = '"'
    lexer.commenters = ''
    return list(lexer)


class ProgressIndicator:
    """Simple progress indicator for long-running operations."""

    def __init__(self, message: str, verbose: bool = False, quiet: bool = False, out: Optional[TextIO] = None):
        self.message = message
        self.verbose = verbose
        self.quiet = quiet
        self.out = out or sys.stdout
        self.start_time = None
        self._last_reported = 0

    def __enter__(self):
        if not self.quiet:
            if self.verbose:
                print(f"[{time.strftime('%H:%M:%S')}] Starting: {self.message}", file=self.out)
            else:
                print(f"⏳ {self.message}...", end='', flush=True, file=self.out)

        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None or self.quiet:
            return

        duration = time.time() - self.start_time
        status = 'Completed' if exc_type is None else 'Failed'
        if self.verbose:
            print(f"[{time.strftime('%H:%M:%S')}] {status}: {self.message} ({duration:.1f}s)", file=self.out)
        else:
            mark = '✓' if exc_type is None else '✗'
            print(f" {mark} ({duration:.1f}s)", file=self.out)

    def update(self, status: str):
        """Update progress status."""
        if not self.quiet and self.verbose:
            print(f"[{time.strftime('%H:%M:%S')}] {self.message}: {status}", file=self.out)

    def report_bytes(self, downloaded: int, total: Optional[int]) -> None:
        """Progress callback for downloads; reports every 10 MB."""
        step = 10 * 1024 * 1024
        if downloaded - self._last_reported < step:
            return
        self._last_reported = downloaded

        megabytes = downloaded / (1024 * 1024)
        if total:
            self.update(f"{megabytes:.0f} MB of {total / (1024 * 1024):.0f} MB")
        else:
            self.update(f"{megabytes:.0f} MB")


class DeckShell:
    """Reads commands at the prompt and dispatches them to a DeckSession."""

    def __init__(self, session: DeckSession, verbose: bool = False, quiet: bool = False, out: Optional[TextIO] = None):
        self.logger = logging.getLogger(__name__)
        self.session = session
        self.verbose = verbose
        self.quiet = quiet
        self.out = out or sys.stdout
        self.parser = build_command_parser()
        self.running = True

    def _print(self, text: str = '') -> None:
        print(text, file=self.out)

    def print_banner(self) -> None:
        self._print(f"welcome to the Magic The Gathering deck building app (mtgdeck {__version__})\n")
        self._print('run "help" to get started')

    def execute(self, line: str) -> Optional[str]:
        """
        Run one prompt line.

        Args:
            line: Raw text typed at the prompt

        Returns:
            Reply to show, or None when there is nothing to say
        """
        try:
            words = split_command_line(line)
        except ValueError as e:
            return f"error: {e}"

        if not words:
            return None

        try:
            args = self.parser.parse_args(words)
        except CommandExit as e:
            # Help output and usage errors
            if e.message:
                self._print(f"{e.message}\n")
            return DEFAULT_MESSAGE

        self.logger.debug(f"Running command: {args.command}")
        return self.dispatch(args)

    def dispatch(self, args: argparse.Namespace) -> Optional[str]:
        command = args.command

        if command == 'download':
            with ProgressIndicator("Downloading card database", self.verbose, self.quiet, self.out) as progress:
                reply = self.session.download(progress=progress.report_bytes)
            return reply
        if command == 'search':
            return self.session.search(args.terms)
        if command == 'add':
            return self.session.add(args.name)
        if command == 'remove':
            return self.session.remove(args.name)
        if command == 'print':
            return self.session.print_deck()
        if command == 'save':
            return self.session.save(args.path)
        if command == 'load':
            return self.session.load(args.path)
        if command == 'clear':
            return self.session.clear()
        if command in ('exit', 'quit'):
            self.stop()
            return None
        if command == 'help':
            return self.show_help(args.topic)

        return f"unknown command: {command}"

    def show_help(self, topic: Optional[str] = None) -> str:
        if topic:
            # Reuse the sub-command's own --help output
            return self.execute(f'"{topic}" --help')

        self._print(self.parser.format_help())
        return DEFAULT_MESSAGE

    def load_initial_deck(self) -> None:
        """Load the session's default deck file if it already exists."""
        deck_path = self.session.default_deck_path
        if not deck_path.exists():
            self.logger.info(f"No deck at {deck_path} yet; starting empty")
            return
        self._print(self.session.load(str(deck_path)))

    def stop(self) -> None:
        self._print(GOODBYE_MESSAGE)
        self.running = False

    def loop(self, input_func: Callable[[str], str] = input) -> None:
        """Prompt for commands until exit, EOF or Ctrl-C."""
        while self.running:
            try:
                line = input_func(PROMPT)
            except (EOFError, KeyboardInterrupt):
                self._print()
                self.stop()
                break

            try:
                reply = self.execute(line)
            except (OSError, ValueError, CardDatabaseError, DeckError) as e:
                # The in-memory deck must survive a failed command
                self.logger.error(f"Command failed: {e}")
                reply = handle_user_friendly_errors(e, self.verbose)

            if reply:
                self._print(reply)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments for the interactive prompt.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='mtgdeck',
        description='Interactive Magic: The Gathering deck list builder',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --deck ./decks/burn.json
  %(prog)s --cards-dir /tmp/mtg-cards --verbose

At the prompt, type "help" for the list of commands.
        """
    )

    parser.add_argument(
        '--cards-dir',
        type=str,
        help='Directory holding the downloaded card database (default: ~/.mtgdeck/cards)'
    )

    parser.add_argument(
        '--deck',
        type=str,
        help='Deck file used by save and load; loaded at start-up when it exists (default: ~/deck.json)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output with detailed progress information'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress all log output except errors'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        parser.error("--verbose and --quiet cannot be used together")

    return args


def setup_logging(verbose: bool = False, quiet: bool = False, log_dir: Optional[Path] = None) -> None:
    """
    Set up logging for the interactive prompt.

    Args:
        verbose: Enable debug logging, plus a log file when log_dir is given
        quiet: Enable quiet mode (errors only)
        log_dir: Directory for the per-run log file in verbose mode
    """
    if quiet:
        level = logging.ERROR
        format_str = '%(levelname)s: %(message)s'
    elif verbose:
        level = logging.DEBUG
        format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    else:
        # Keep the prompt clean; warnings and errors still show
        level = logging.WARNING
        format_str = '%(levelname)s: %(message)s'

    class MultilineFormatter(logging.Formatter):
        def format(self, record):
            formatted = super().format(record)
            if '\n' in formatted:
                lines = formatted.split('\n')
                return '\n'.join([lines[0]] + ['  ' + line for line in lines[1:]])
            return formatted

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    for handler in logging.root.handlers:
        handler.setFormatter(MultilineFormatter(format_str, datefmt='%Y-%m-%d %H:%M:%S'))

    logging.getLogger('mtgdeck').setLevel(level)

    if not verbose:
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)

    if verbose and log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"mtgdeck_{time.strftime('%Y%m%d_%H%M%S')}.log"

            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(MultilineFormatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))

            logging.root.addHandler(file_handler)
            logging.info(f"Detailed logs will be saved to: {log_file}")

        except OSError as e:
            logging.warning(f"Could not set up file logging: {e}")


def handle_user_friendly_errors(error: Exception, verbose: bool = False) -> str:
    """
    Convert technical errors into user-friendly error messages.

    Args:
        error: Exception to convert
        verbose: Whether to include technical details

    Returns:
        User-friendly error message
    """
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error}"

    elif isinstance(error, CardDatabaseError):
        return f"Card database error: {error}"

    elif isinstance(error, DeckError):
        return f"Deck error: {error}"

    elif isinstance(error, ValueError):
        return f"Invalid input: {error}"

    elif isinstance(error, OSError):
        return f"File system error: {error}"

    else:
        if verbose:
            return f"Unexpected error: {error}"
        else:
            return "An unexpected error occurred. Use --verbose for more details."


def create_shell(args: argparse.Namespace, config_manager: ConfigManager) -> DeckShell:
    """
    Wire the card database, session and shell from arguments and configuration.

    Precedence is command line, then environment, then config file.
    """
    config = apply_env_overrides(config_manager.get_config())
    verbose = (args.verbose or config.verbose_output) and not args.quiet

    setup_logging(verbose, args.quiet, config_manager.get_logs_dir() if verbose else None)

    card_db = CardDatabase(
        Path(args.cards_dir or config.cards_dir),
        url=config.card_db_url,
        timeout=config.download_timeout_seconds,
        retry_attempts=config.download_retry_attempts
    )
    session = DeckSession(card_db, Path(args.deck or config.default_deck_path))
    return DeckShell(session, verbose=verbose, quiet=args.quiet)


def main(argv: Optional[List[str]] = None):
    """Main entry point for the mtgdeck prompt."""
    args = None
    verbose = False

    try:
        args = parse_arguments(argv)
        shell = create_shell(args, ConfigManager())
        verbose = shell.verbose

        shell.print_banner()
        if args.deck:
            shell.load_initial_deck()
        shell.loop()

    except KeyboardInterrupt:
        print(f"\n{GOODBYE_MESSAGE}")
        sys.exit(1)

    except Exception as e:
        if verbose:
            logging.error(f"Unexpected error: {e}")
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {handle_user_friendly_errors(e, verbose)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
