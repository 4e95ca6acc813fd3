#!/usr/bin/env python3
"""BookVerse CLI - Open Library search with Gemini Q&A."""
import argparse
import asyncio
import shlex
import sys
from contextlib import asynccontextmanager
from tabulate import tabulate
from bookverse.catalog_client import CatalogClient
from bookverse.qa_client import QAClient
from bookverse.controller import BookVerseController
from bookverse.database import Database
from bookverse.display import TerminalView
from bookverse.storage import FavoriteStore, JsonFileStorage, StorageError
from bookverse.config import Config
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SHELL_HELP = """Commands:
  search <query>     new search (empty query uses the default)
  more               load the next page
  open <n|id>        show details for a listed book
  ask <question>     ask Gemini about the open book
  fav <n|id>         toggle a favorite
  favs               list favorite ids
  read               open the preview page in a browser
  close              close the open book
  help               show this help
  quit               leave the shell"""


def setup_storage(config: Config):
    """Pick the favorites backend."""
    if config.FAVORITES_BACKEND == "postgres":
        db = Database(config.DATABASE_URL)
        db.init_schema()
        return db
    return JsonFileStorage(config.FAVORITES_PATH)


def close_storage(storage):
    """Close storage backends that hold connections."""
    close = getattr(storage, "close", None)
    if close:
        close()


def print_favorites(ids):
    """Print favorite ids as a table."""
    if not ids:
        print("No favorites yet.")
        return
    print(tabulate([[i, book_id] for i, book_id in enumerate(ids, 1)], headers=["#", "Book ID"], tablefmt="grid"))


@asynccontextmanager
async def open_controller(config: Config, view: TerminalView):
    """Create clients and storage, and close them afterwards."""
    storage = setup_storage(config)

    try:
        async with CatalogClient(
            base_url=config.OPENLIBRARY_BASE_URL,
            covers_url=config.COVERS_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT,
            page_size=config.PAGE_SIZE
        ) as catalog, QAClient(
            api_url=config.GEMINI_API_URL,
            api_key=config.GEMINI_API_KEY,
            use_proxy=bool(config.GEMINI_PROXY_URL),
            timeout=max(config.DEFAULT_TIMEOUT, 30)
        ) as qa:
            yield BookVerseController(
                catalog,
                qa,
                FavoriteStore(storage),
                view,
                page_size=config.PAGE_SIZE,
                default_query=config.DEFAULT_QUERY
            )
    finally:
        close_storage(storage)


async def search_books(args, config: Config):
    """Search and print one or more pages."""
    view = TerminalView(args.format)
    async with open_controller(config, view) as controller:
        logger.info(f"Searching for: {args.query}")
        await controller.submit_search(args.query)

        for _ in range(args.pages - 1):
            if not view.load_more_visible:
                break
            await controller.load_more()


async def show_details(args, config: Config):
    """Print the full record of one work."""
    view = TerminalView()
    async with open_controller(config, view) as controller:
        await controller.open_book(args.book_id)


async def ask_question(args, config: Config):
    """Fetch a work and answer a question about it."""
    view = TerminalView()
    async with open_controller(config, view) as controller:
        await controller.open_book(args.book_id)
        await controller.ask(args.question)


def toggle_favorite(args, config: Config):
    """Toggle one favorite id."""
    view = TerminalView()
    storage = setup_storage(config)
    try:
        favorites = FavoriteStore(storage)
        added = favorites.toggle(args.book_id)
        view.notify("Added to your favorites!" if added else "Removed from your favorites!")
    finally:
        close_storage(storage)


def list_favorites(args, config: Config):
    """Print stored favorite ids."""
    storage = setup_storage(config)
    try:
        print_favorites(FavoriteStore(storage).all())
    finally:
        close_storage(storage)


async def run_shell(args, config: Config):
    """Interactive session that mirrors the browser page."""
    view = TerminalView(args.format)
    async with open_controller(config, view) as controller:
        print(SHELL_HELP)
        await controller.submit_search(args.query or config.DEFAULT_QUERY)

        while True:
            try:
                line = await asyncio.to_thread(input, "\nbookverse> ")
            except EOFError:
                break

            try:
                parts = shlex.split(line)
            except ValueError:
                parts = line.split()
            if not parts:
                continue

            command, rest = parts[0].lower(), " ".join(parts[1:])

            if command in ("quit", "exit"):
                break
            elif command == "help":
                print(SHELL_HELP)
            elif command == "search":
                await controller.submit_search(rest)
            elif command == "more":
                if view.load_more_visible:
                    await controller.load_more()
                else:
                    view.notify("No more results to load.", "error")
            elif command == "open" and rest:
                await controller.open_book(view.resolve(rest))
            elif command == "ask":
                await controller.ask(rest)
            elif command == "fav" and rest:
                controller.toggle_favorite(view.resolve(rest))
            elif command == "favs":
                print_favorites(controller.favorites.all())
            elif command == "read":
                controller.read_book()
            elif command == "close":
                controller.close_book()
            else:
                print(f"Unknown command: {line.strip()} (type 'help')")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="BookVerse - Open Library search with Gemini Q&A",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search with defaults
  %(prog)s search "harry potter"

  # Fetch three pages as JSON
  %(prog)s search tolkien --pages 3 --format json

  # Ask about a work
  %(prog)s ask OL82565W "Who is the main character?"

  # Interactive session
  %(prog)s shell
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search for books")
    search_parser.add_argument("query", nargs="?", default="", help="Search query (default: DEFAULT_QUERY)")
    search_parser.add_argument("--pages", type=int, default=1, help="Pages to load (default: 1)")
    search_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    # Details command
    details_parser = subparsers.add_parser("details", help="Show details for a work")
    details_parser.add_argument("book_id", help="Work id, e.g. OL82565W or /works/OL82565W")

    # Ask command
    ask_parser = subparsers.add_parser("ask", help="Ask Gemini about a work")
    ask_parser.add_argument("book_id", help="Work id")
    ask_parser.add_argument("question", help="Question about the book")

    # Favorite commands
    favorite_parser = subparsers.add_parser("favorite", help="Toggle a favorite")
    favorite_parser.add_argument("book_id", help="Book id")
    subparsers.add_parser("favorites", help="List favorite ids")

    # Shell command
    shell_parser = subparsers.add_parser("shell", help="Interactive session")
    shell_parser.add_argument("query", nargs="?", default="", help="Initial search query")
    shell_parser.add_argument("--format", choices=["table", "compact"], default="compact", help="Result format")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    try:
        if args.command == "search":
            asyncio.run(search_books(args, config))

        elif args.command == "details":
            asyncio.run(show_details(args, config))

        elif args.command == "ask":
            asyncio.run(ask_question(args, config))

        elif args.command == "favorite":
            toggle_favorite(args, config)

        elif args.command == "favorites":
            list_favorites(args, config)

        elif args.command == "shell":
            asyncio.run(run_shell(args, config))

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except StorageError as e:
        logger.error(f"❌ Storage error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
