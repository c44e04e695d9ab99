"""Implementations of the esb commands.

Each *_command function is called from main.py and ends with sys.exit(0) on
success. Library errors propagate to main() which maps them to exit codes.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table

from ..client import SearchClient
from ..config import ClientConfig, config_from_env, load_config
from ..errors import ConfigError
from ..sort.values import SortValues
from .output import print_info, print_json, print_success

console = Console()
logger = logging.getLogger(__name__)


def create_client(url: Optional[str] = None, config_path: Optional[str] = None) -> SearchClient:
    """Build a client from --config, ESBRIDGE_* variables, and --url (highest priority)."""
    if config_path:
        config = load_config(Path(config_path))
    else:
        config = config_from_env()
    if url:
        config = ClientConfig(**{**config.model_dump(), "hosts": url.split(",")})
    return SearchClient(config)


def parse_json_option(value: Optional[str], option: str):
    """Parse a JSON command line option, None when not given."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint=option)


def parse_sort_option(sort: List[str]) -> List[dict]:
    """Turn ["date:desc", "id"] into [{"date": "desc"}, {"id": "asc"}]."""
    clauses = []
    for item in sort:
        field, _, order = item.partition(":")
        order = order or "asc"
        if not field or order not in ("asc", "desc"):
            raise click.BadParameter(f"expected FIELD[:asc|desc], got '{item}'", param_hint="--sort")
        clauses.append({field: order})
    return clauses


def ping_command(url: Optional[str], config_path: Optional[str], output_json: bool):
    """Implementation for 'esb ping'."""
    client = create_client(url, config_path)
    alive = client.ping()
    if output_json:
        print_json("success" if alive else "error", "Server reachable" if alive else "Server unreachable",
                   data={"url": client.config.url, "alive": alive})
    else:
        console.print(f"{client.config.url}: " + ("[green]up[/green]" if alive else "[red]down[/red]"))
    sys.exit(0 if alive else 1)


def info_command(url: Optional[str], config_path: Optional[str], output_json: bool):
    """Implementation for 'esb info'."""
    client = create_client(url, config_path)
    info = client.info()

    if output_json:
        print_json("success", f"Cluster {info.cluster_name}", data=info.model_dump(mode="json"))
    else:
        table = Table(title="Cluster")
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Name", info.name)
        table.add_row("Cluster", info.cluster_name)
        table.add_row("UUID", info.cluster_uuid)
        table.add_row("Version", info.version.number)
        table.add_row("Lucene", info.version.lucene_version or "")
        console.print(table)
    sys.exit(0)


def count_command(index: str, query: Optional[str], url: Optional[str], config_path: Optional[str], output_json: bool):
    """Implementation for 'esb count'."""
    query_body = parse_json_option(query, "--query")
    client = create_client(url, config_path)
    total = client.count(index, query_body)
    print_success(f"{total}" if not output_json else f"{total} documents in '{index}'",
                  json_output=output_json, data={"index": index, "count": total})
    sys.exit(0)


def search_command(
    index: str,
    query: Optional[str],
    sort: List[str],
    size: int,
    after: Optional[str],
    signature: Optional[str],
    url: Optional[str],
    config_path: Optional[str],
    output_json: bool,
    verbose: bool
):
    """
    Implementation for 'esb search'.

    Prints one page of hits and the cursor to pass as --after for the next page.

    Args:
        index: Index to search
        query: Query DSL as JSON (default: match_all)
        sort: Sort clauses as FIELD[:asc|desc]
        size: Page size
        after: Cursor from a previous page, as a JSON array
        signature: Optional type signature for decoding the cursor (e.g. "is")
        output_json: If True, output JSON format
        verbose: If True, show sort values of every hit
    """
    body = {"query": parse_json_option(query, "--query") or {"match_all": {}}}
    clauses = parse_sort_option(sort)

    search_after = None
    if after is not None:
        try:
            search_after = SortValues.from_json(after, signature=signature)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--after")
        if search_after and not clauses:
            raise ConfigError("--after requires --sort")

    client = create_client(url, config_path)
    logger.info(f"Searching '{index}' size={size} sort={clauses} after={after}")
    page = client.search_page(index, body, size=size, sort=clauses or None, search_after=search_after)
    cursor = page.last_sort(signature=signature)
    next_after = cursor.to_json() if cursor else None

    if output_json:
        print_json("success", f"Found {page.hits.total.value} results", data={
            "index": index,
            "total": page.hits.total.value,
            "took": page.took,
            "hits": [hit.model_dump(mode="json", by_alias=True) for hit in page.hits.hits],
            "next_after": next_after,
        })
        sys.exit(0)

    console.print(f"\n[bold]Search Results[/bold] ({page.took}ms)")
    console.print(f"Found {page.hits.total.value} matches in '{index}'\n")

    if not page.hits.hits:
        console.print("[dim]No results found[/dim]")
    for i, hit in enumerate(page.hits.hits, 1):
        score = f"{hit.score:.3f}" if hit.score is not None else "-"
        console.print(f"[cyan]{i}. {hit.index}/{hit.id}[/cyan] (score {score})")
        if verbose and hit.sort is not None:
            console.print(f"   sort: {hit.sort.to_json()}", markup=False)
        if hit.source is not None:
            source = json.dumps(hit.source, ensure_ascii=False)
            if len(source) > 200:
                source = source[:200] + "..."
            console.print(f"   {source}", markup=False)

    if next_after and len(page.hits.hits) >= size:
        print_info(f"Next page: --after '{next_after}'")
    sys.exit(0)
