"""Main entry point for the bggproxy application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines one CLI command per facade operation, and prints the results as JSON.
"""

import asyncio
import logging
import sys
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional

import typer

logger = logging.getLogger(__name__)

# --- Core Layer ---
from bggproxy.core.exceptions import UpstreamError
from bggproxy.core.services.bgg_service import BggService

# --- Infrastructure Layer ---
# Config
from bggproxy.infrastructure.config.settings import (
    get_bgg_api_token,
    get_bgg_base_url,
    get_http_timeout,
    get_l1_max_items,
    get_log_file,
    get_log_level,
    get_rate_limit_spacing,
    get_storage_options,
    get_storage_type,
    get_ttl_overrides,
    load_configuration,
)
# UI
from bggproxy.infrastructure.cli.display import ConsoleDisplay
# Upstream
from bggproxy.infrastructure.upstream.bgg_client import BggFetcher
# Cache
from bggproxy.infrastructure.cache.caching_service import CachingServiceImpl
from bggproxy.infrastructure.cache.memory_cache import MemoryCache
from bggproxy.infrastructure.cache.ttl_policy import TtlPolicyTable
# Storage
from bggproxy.infrastructure.storage.factory import create_storage_backend
# Normalization
from bggproxy.infrastructure.normalization.normalizer import XmlNormalizer
# Monitoring
from bggproxy.infrastructure.monitoring.logger_setup import setup_logging

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    # 1. Load Configuration First
    load_configuration()
    setup_logging(log_level=get_log_level(), log_file=get_log_file())
    logger.debug("Configuration and logging initialized.")

    dependencies: Dict[str, Any] = {}

    # 2. Instantiate Infrastructure Adapters & Services
    dependencies['ui'] = ConsoleDisplay()
    dependencies['fetcher'] = BggFetcher.create(
        get_bgg_base_url(),
        min_spacing=get_rate_limit_spacing(),
        timeout_seconds=get_http_timeout(),
        api_token=get_bgg_api_token(),
    )
    dependencies['storage'] = create_storage_backend(get_storage_type(), get_storage_options())
    dependencies['cache_service'] = CachingServiceImpl(
        l1=MemoryCache(max_items=get_l1_max_items()),
        l2=dependencies['storage'],
    )
    dependencies['ttl_table'] = TtlPolicyTable(get_ttl_overrides())

    # 3. Instantiate Core Services
    dependencies['bgg_service'] = BggService(
        fetcher=dependencies['fetcher'],
        cache=dependencies['cache_service'],
        normalizer=XmlNormalizer(),
        ttl_table=dependencies['ttl_table'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


_dependencies: Optional[Dict[str, Any]] = None


def get_dependencies() -> Dict[str, Any]:
    """Returns the wired dependencies, creating them on first use."""
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="bggproxy",
    help="bggproxy: cached, rate-limited access to the BoardGameGeek XML API.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(operation: Callable[[BggService], Awaitable[Any]], render: Optional[Callable[[Any], None]] = None) -> None:
    """Runs one facade operation, prints its result and closes connections."""
    deps = get_dependencies()
    service: BggService = deps['bgg_service']
    ui: ConsoleDisplay = deps['ui']

    async def runner() -> Any:
        try:
            return await operation(service)
        finally:
            await service.close()

    try:
        result = asyncio.run(runner())
    except UpstreamError as e:
        logger.error(f"Upstream call failed: {e}")
        hint = "This is usually temporary; try again in a few seconds." if e.retryable_later else None
        ui.display_error(str(e), hint=hint)
        raise typer.Exit(code=1)

    if render is not None:
        render(result)
    else:
        ui.display_json(_to_jsonable(result))


def _to_jsonable(result: Any) -> Any:
    if result is None:
        return None
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


def _not_found(what: str) -> Callable[[Any], None]:
    def render(result: Any) -> None:
        ui: ConsoleDisplay = get_dependencies()['ui']
        if result is None:
            ui.display_error(f"{what} not found")
            raise typer.Exit(code=1)
        ui.display_json(_to_jsonable(result))
    return render


# --- CLI Commands ---

@app.command()
def thing(
    thing_id: Annotated[str, typer.Argument(help="Upstream id of the thing.")],
):
    """Show one thing (game, expansion, accessory...)."""
    run_async(lambda s: s.get_thing(thing_id), _not_found(f"Thing {thing_id}"))


@app.command()
def things(
    thing_ids: Annotated[List[str], typer.Argument(help="Upstream ids, fetched 20 per request.")],
):
    """Show several things at once."""
    run_async(lambda s: s.get_things(thing_ids))


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Name to search for.")],
    thing_type: Annotated[Optional[str], typer.Option("--type", "-t", help="e.g. 'boardgame', 'boardgameexpansion'.")] = None,
    exact: Annotated[bool, typer.Option("--exact", help="Only exact name matches.")] = False,
    table: Annotated[bool, typer.Option("--table", help="Print a table instead of JSON.")] = False,
):
    """Search things by name."""
    render = None
    if table:
        render = lambda result: get_dependencies()['ui'].display_things_table(result, title=f"Search: {query}")
    run_async(lambda s: s.search_things(query, thing_type, exact), render)


@app.command()
def hot(
    item_type: Annotated[Optional[str], typer.Option("--type", "-t", help="e.g. 'boardgame', 'rpg'.")] = None,
    table: Annotated[bool, typer.Option("--table", help="Print a table instead of JSON.")] = False,
):
    """Show the current hot list."""
    render = None
    if table:
        render = lambda result: get_dependencies()['ui'].display_things_table(result, title="Hot items")
    run_async(lambda s: s.get_hot_items(item_type), render)


@app.command()
def user(
    username: Annotated[str, typer.Argument(help="Upstream account name.")],
):
    """Show a user profile."""
    run_async(lambda s: s.get_user(username), _not_found(f"User {username}"))


@app.command()
def collection(
    username: Annotated[str, typer.Argument(help="Upstream account name.")],
    subtype: Annotated[Optional[str], typer.Option("--subtype", "-s", help="'boardgame' also returns expansions.")] = None,
):
    """Show a user's collection."""
    run_async(lambda s: s.get_user_collection(username, subtype), _not_found(f"Collection of {username}"))


@app.command()
def plays(
    username: Annotated[str, typer.Argument(help="Upstream account name.")],
    thing_id: Annotated[Optional[str], typer.Option("--id", help="Only plays of this thing.")] = None,
    mindate: Annotated[Optional[str], typer.Option(help="YYYY-MM-DD")] = None,
    maxdate: Annotated[Optional[str], typer.Option(help="YYYY-MM-DD")] = None,
    page: Annotated[Optional[int], typer.Option(help="Page number (100 plays per page).")] = None,
):
    """Show one page of a user's logged plays."""
    filters = {"id": thing_id, "mindate": mindate, "maxdate": maxdate, "page": page}
    run_async(lambda s: s.get_user_plays(username, {k: v for k, v in filters.items() if v is not None}))


@app.command()
def geeklist(
    geeklist_id: Annotated[str, typer.Argument(help="Upstream id of the geeklist.")],
):
    """Show a geeklist and its items."""
    run_async(lambda s: s.get_geeklist(geeklist_id), _not_found(f"Geeklist {geeklist_id}"))


@app.command()
def geeklists(
    username: Annotated[str, typer.Argument(help="Upstream account name.")],
    page: Annotated[int, typer.Option(help="Page number.")] = 1,
):
    """List the geeklists of a user."""
    run_async(lambda s: s.get_geeklists(username, page))


@app.command(name="clear-cache")
def clear_cache_command(
    level: Annotated[str, typer.Option(help="Level ('l1', 'l2', 'all').")] = 'all'
):
    """Clears the response cache."""
    ui: ConsoleDisplay = get_dependencies()['ui']
    if level not in ('l1', 'l2', 'all'):
        ui.display_error(f"Unknown cache level '{level}'")
        raise typer.Exit(code=2)
    run_async(lambda s: s.clear_cache(level), lambda _: ui.display_info(f"Cleared cache level: {level}"))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    try:
        app()
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    cli_entry_point()
