"""CLI entry points: hix init, hix status, hix search, hix browse, hix save, hix wait-task."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from .config import Config
from .errors import IndexClientError


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log requests and polling at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Hosted Index: search, write, browse and wait on a remote search index."""
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    try:
        Config().load_env_file()  # Seed os.environ before constructing final config
        ctx.obj["config"] = Config()
    except IndexClientError as e:
        raise click.ClickException(str(e)) from e


def _open_client(ctx: click.Context):
    from .client import SearchClient

    try:
        return SearchClient(ctx.obj["config"])
    except IndexClientError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create the credentials env file."""
    config = ctx.obj["config"]
    if config.ensure_env_file():
        click.echo(f"Created {config.env_file}")
        click.echo(f"  Add your credentials: {config.env_file}")
    else:
        click.echo(f"Env file: {config.env_file} (already exists)")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show how configuration was resolved."""
    config = ctx.obj["config"]

    click.echo("Hosted Index Status")
    click.echo("=" * 40)

    click.echo(f"\nEnv file: {config.env_file}")
    click.echo(f"  Exists: {'yes' if config.env_file.exists() else 'no (run hix init to create)'}")

    click.echo(f"\nApplication id: {config.app_id or 'not set'}")
    click.echo(f"API key: {'set' if config.api_key else 'not set'}")
    try:
        click.echo(f"Base URL: {config.resolved_base_url}")
    except IndexClientError:
        click.echo("Base URL: unknown (set HIX_APP_ID or HIX_BASE_URL)")

    click.echo(f"\nRead retries: {config.read_retries}")
    click.echo(f"Wait-task attempts: {config.wait_task_retry}")


@cli.command()
@click.argument("index_name")
@click.argument("query")
@click.option("--hits-per-page", "-n", type=int, default=10, help="Max hits to return")
@click.option("--json", "as_json", is_flag=True, help="Output the raw response as JSON")
@click.pass_context
def search(ctx: click.Context, index_name: str, query: str, hits_per_page: int, as_json: bool) -> None:
    """Search an index."""
    from .options import RequestOptions

    with _open_client(ctx) as client:
        index = client.init_index(index_name)
        try:
            response = index.search(query, RequestOptions().set_body_parameter("hitsPerPage", hits_per_page))
        except IndexClientError as e:
            raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(response, indent=2))
        return

    hits = response.get("hits", [])
    if not hits:
        click.echo("No results found.")
        return
    click.echo(f"{response.get('nbHits', len(hits))} hit(s)")
    for rank, hit in enumerate(hits, start=1):
        hit = {k: v for k, v in hit.items() if not k.startswith("_")}
        click.echo(f"[{rank}] {hit.get('objectID', '?')}: {json.dumps(hit)[:200]}")


@cli.command()
@click.argument("index_name")
@click.option(
    "--kind",
    type=click.Choice(["objects", "rules", "synonyms"]),
    default="objects",
    help="What to browse",
)
@click.pass_context
def browse(ctx: click.Context, index_name: str, kind: str) -> None:
    """Stream every record of an index as JSON lines."""
    with _open_client(ctx) as client:
        index = client.init_index(index_name)
        if kind == "rules":
            records = index.browse_rules()
        elif kind == "synonyms":
            records = index.browse_synonyms()
        else:
            records = index.browse()
        try:
            for record in records:
                click.echo(json.dumps(record))
        except IndexClientError as e:
            raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("index_name")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--replace", is_flag=True, help="Atomically replace all objects in the index")
@click.option("--wait", is_flag=True, help="Block until the write is published")
@click.pass_context
def save(ctx: click.Context, index_name: str, file: Path, replace: bool, wait: bool) -> None:
    """Save the records of a JSON array file into an index."""
    from .index import task_id_of

    try:
        records = json.loads(file.read_text())
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{file} is not valid JSON: {e}") from e
    if not isinstance(records, list):
        raise click.ClickException(f"{file} must contain a JSON array of records")

    with _open_client(ctx) as client:
        index = client.init_index(index_name)
        try:
            if replace:
                index.replace_all_objects(records, wait=wait)
                click.echo(f"Replaced {index_name} with {len(records)} record(s)")
            else:
                response = index.save_objects(records)
                click.echo(f"Saved {len(records)} record(s) (task {task_id_of(response)})")
                if wait:
                    index.wait_task(task_id_of(response))
            if wait:
                click.echo("Published.")
        except IndexClientError as e:
            raise click.ClickException(str(e)) from e


@cli.command("wait-task")
@click.argument("index_name")
@click.argument("task_id")
@click.option("--max-attempts", type=int, default=None, help="Polling budget (default: HIX_WAIT_TASK_RETRY)")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def wait_task(ctx: click.Context, index_name: str, task_id: str, max_attempts: int | None, timeout: float | None) -> None:
    """Block until a task is published."""
    from .cancellation import Cancellation

    cancellation = Cancellation.after(timeout) if timeout is not None else None
    with _open_client(ctx) as client:
        index = client.init_index(index_name)
        try:
            result = index.wait_task(task_id, max_attempts=max_attempts, cancellation=cancellation)
        except IndexClientError as e:
            raise click.ClickException(str(e)) from e
    click.echo(f"Task {task_id}: {result.get('status')}")
