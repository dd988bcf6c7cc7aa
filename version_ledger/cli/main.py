# version_ledger/cli/main.py
"""
CLI for recording and querying components, versions, setups and test results.
"""

import json
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from version_ledger.config import LedgerConfig, load_config
from version_ledger.core.errors import ConflictError, LedgerError
from version_ledger.engine.session import LedgerSession

app = typer.Typer(
    name="version-ledger",
    help="Record and query component versions, test setups and test results",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


@contextmanager
def ledger_errors():
    try:
        yield
    except LedgerError as e:
        console.print(f"[red]ERROR ({type(e).__name__}): {e}[/]", soft_wrap=True)
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]ERROR: {e}[/]", soft_wrap=True)
        raise typer.Exit(1)


def open_session(ctx: typer.Context, create_if_missing: bool = False) -> LedgerSession:
    config: LedgerConfig = ctx.obj
    with ledger_errors():
        session = LedgerSession(
            config.store_uri, path=config.path, max_attempts=config.max_attempts, token=config.token
        )
        ctx.call_on_close(session.close)
        return session.fetch(create_if_missing=create_if_missing)


def parse_version_pairs(pairs: List[str], versions_json: Optional[str]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    if versions_json:
        try:
            loaded = json.loads(versions_json)
        except ValueError as e:
            raise typer.BadParameter(f"--versions-json is not valid JSON: {e}")
        if not isinstance(loaded, dict):
            raise typer.BadParameter("--versions-json must be a JSON object of componentId -> tag")
        mapping.update(loaded)
    for pair in pairs:
        component_id, sep, tag = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected <componentId>=<tag>, got: {pair}")
        mapping[component_id.strip()] = tag.strip()
    return mapping


@app.callback()
def main(
    ctx: typer.Context,
    store: Optional[str] = typer.Option(
        None, "--store", help="Store URI: sqlite://<path>, github://<owner>/<repo>[@branch] (overrides LEDGER_STORE_URI)"
    ),
    path: Optional[str] = typer.Option(None, "--path", help="Document path inside the store (overrides LEDGER_PATH)"),
    attempts: Optional[int] = typer.Option(None, "--attempts", help="Write attempts on revision conflict"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
):
    """Manage the shared component version ledger."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    try:
        ctx.obj = load_config(store_uri=store, path=path, max_attempts=attempts)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/]")
        raise typer.Exit(1)


@app.command()
def init(ctx: typer.Context):
    """Create an empty ledger document."""
    config: LedgerConfig = ctx.obj
    with ledger_errors():
        session = LedgerSession(config.store_uri, path=config.path, token=config.token)
        try:
            session.engine.initialize()
        except ConflictError:
            console.print(f"[yellow]Ledger {config.path} already exists in {config.store_uri}[/]")
            return
        finally:
            session.close()
    console.print(f"[green]Created empty ledger {config.path} in {config.store_uri}[/]")


@app.command()
def components(ctx: typer.Context):
    """List components with their latest version."""
    session = open_session(ctx)
    doc = session.document
    if not doc.components:
        console.print("[yellow]No components recorded yet.[/]")
        return

    latest = session.latest_versions()
    table = Table(title="Components")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Latest")
    for c in doc.components:
        version = latest.get(c.id)
        table.add_row(c.id, c.name, version.tag if version else "—")
    console.print(table)


@app.command("add-component")
def add_component(
    ctx: typer.Context,
    component_id: str = typer.Argument(..., help="Component id (kebab-case)"),
    name: str = typer.Argument(..., help="Display name"),
):
    """Register a new component."""
    session = open_session(ctx)
    with ledger_errors():
        session.add_component(component_id, name)
    console.print(f"[green]SUCCESS: Added component {component_id}[/]")


@app.command("add-setup")
def add_setup(
    ctx: typer.Context,
    setup_id: str = typer.Argument(..., help="Setup id"),
    name: str = typer.Argument(..., help="Display name"),
    component_ids: List[str] = typer.Argument(..., help="Ids of the components in this setup"),
):
    """Register a new setup (a fixed set of components)."""
    session = open_session(ctx)
    with ledger_errors():
        result = session.add_setup(setup_id, name, component_ids)
    setup = result.entries[0]
    console.print(f"[green]SUCCESS: Added setup {setup.id} ({', '.join(setup.component_ids)})[/]")


@app.command("add-version")
def add_version(
    ctx: typer.Context,
    component_id: str = typer.Argument(..., help="Component id"),
    tag: str = typer.Argument(..., help="Semantic version tag"),
):
    """Record a released version. Unknown components are created automatically."""
    session = open_session(ctx)
    with ledger_errors():
        session.add_version(component_id, tag)
    console.print(f"[green]SUCCESS: Added version {component_id}@{tag}[/]")


@app.command("add-test")
def add_test(
    ctx: typer.Context,
    setup_id: str = typer.Argument(..., help="Setup id"),
    status: str = typer.Argument(..., help="Test outcome, e.g. passed / failed"),
    version: List[str] = typer.Option([], "--version", help="<componentId>=<tag>, repeatable"),
    versions_json: Optional[str] = typer.Option(None, "--versions-json", help='JSON object, e.g. {"api": "1.0.0"}'),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
):
    """Record a test result for a setup against concrete component versions."""
    mapping = parse_version_pairs(version, versions_json)
    session = open_session(ctx)
    with ledger_errors():
        session.add_test(setup_id, status, mapping, description=description)
    console.print(f"[green]SUCCESS: Added test result {setup_id} - {status}[/]")
    for cid, tag in sorted(mapping.items()):
        console.print(f"  {cid}@{tag}")


@app.command()
def latest(
    ctx: typer.Context,
    setup: Optional[str] = typer.Option(None, "--setup", "-s", help="Only components of this setup"),
    as_json: bool = typer.Option(False, "--json", help="Print componentId -> tag as JSON"),
):
    """Show the latest version of every component (or of one setup's components)."""
    session = open_session(ctx)
    with ledger_errors():
        versions = session.latest_versions(setup)

    if as_json:
        console.print_json(data={cid: (v.tag if v else None) for cid, v in versions.items()})
        return

    table = Table(title=f"Latest versions{f' for {setup}' if setup else ''}")
    table.add_column("Component")
    table.add_column("Tag")
    table.add_column("Recorded")
    for cid, v in versions.items():
        table.add_row(cid, v.tag if v else "—", str(v.date) if v else "")
    console.print(table)


@app.command()
def versions(
    ctx: typer.Context,
    component_ids: List[str] = typer.Argument(..., help="Component ids"),
):
    """List every recorded tag of the given components, newest first."""
    session = open_session(ctx)
    for cid, tags in session.components_versions(component_ids).items():
        console.print(f"[bold cyan]{cid}[/]: {', '.join(tags) if tags else '(no versions)'}")


@app.command("setup")
def show_setup(
    ctx: typer.Context,
    setup_id: str = typer.Argument(..., help="Setup id"),
):
    """Show a setup's components and its recorded test results."""
    session = open_session(ctx)
    with ledger_errors():
        members = session.setup_components(setup_id)
    tests = session.setup_tests(setup_id)

    console.print(f"[bold]{setup_id}[/]: {', '.join(c.id for c in members) or '(no components)'}")
    if not tests:
        console.print("[yellow]No test results recorded for this setup.[/]")
        return

    table = Table(title="Test results")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Versions")
    table.add_column("Description")
    for t in tests:
        pairs = ", ".join(f"{cid}@{tag}" for cid, tag in sorted(t.component_version_map.items()))
        table.add_row(str(t.date), t.status, pairs, t.description or "")
    console.print(table)


if __name__ == "__main__":
    app()
