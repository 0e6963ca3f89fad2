"""tc -- Time Capsule CLI.

Checks capsule archives locally and talks to the viewer API.

Usage:
    tc check PATH [--min-tags N] [--strict]
    tc [--api-url URL] COMMAND [OPTIONS]
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

import click
import httpx
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from capsule.config import get_config
from capsule.engine.loader import CapsuleReport, load_capsule
from capsule.lib.archive.zip_source import ArchiveError
from capsule.lib.manifest.models import Severity, ValidationError
from capsule.lib.manifest.parser import parse_manifest

DEFAULT_API_URL = "http://localhost:8000"

console = Console()

_SEVERITY_STYLE = {Severity.ERROR: "red", Severity.WARNING: "yellow"}


class ApiClient:
    """Simple HTTP client for the Time Capsule API."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict | None = None,
        params: dict | None = None,
        content: bytes | None = None,
    ) -> Any:
        """Make an HTTP request and return parsed JSON.

        Raises:
            click.ClickException: On connection or HTTP errors.
        """
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/zip"} if content is not None else None
        try:
            resp = httpx.request(
                method,
                url,
                json=json_body,
                params=params,
                content=content,
                headers=headers,
                timeout=30.0,
            )
        except httpx.ConnectError:
            raise click.ClickException(
                f"Cannot connect to Time Capsule API at {self.base_url}"
            )
        except httpx.TimeoutException:
            raise click.ClickException("Request timed out")

        if resp.status_code == 204:
            return None
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise click.ClickException(f"API error ({resp.status_code}): {detail}")

        return resp.json()

    def get(self, path: str, **params: Any) -> Any:
        clean = {k: v for k, v in params.items() if v is not None}
        return self._request("GET", path, params=clean)

    def post(self, path: str, body: dict | None = None) -> Any:
        return self._request("POST", path, json_body=body)

    def upload(self, path: str, data: bytes, **params: Any) -> Any:
        clean = {k: v for k, v in params.items() if v is not None}
        return self._request("POST", path, params=clean, content=data)

    def delete(self, path: str) -> Any:
        return self._request("DELETE", path)


@click.group()
@click.option(
    "--api-url",
    default=DEFAULT_API_URL,
    envvar="TC_API_URL",
    help="Time Capsule API base URL.",
    show_default=True,
)
@click.pass_context
def cli(ctx: click.Context, api_url: str) -> None:
    """tc -- Time Capsule command-line interface."""
    ctx.obj = ApiClient(api_url)


# ── check (local) ─────────────────────────────────────────────────────────


def _diagnostics_table(errors: list[ValidationError], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Line", justify="right", style="cyan")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Problem")
    table.add_column("Expected", style="dim")
    for e in errors:
        style = _SEVERITY_STYLE[e.severity]
        table.add_row(
            str(e.line_number),
            f"[{style}]{e.severity.value}[/{style}]",
            e.category.value,
            escape(e.error),
            escape(e.expected_format),
        )
    return table


def _print_requirements(report: CapsuleReport) -> None:
    req = report.requirements
    policy = req.policy
    mark = "[green]met[/green]" if req.is_valid else "[red]not met[/red]"
    console.print(f"[bold]Requirements:[/bold] {mark}")
    console.print(f"  News:     {req.news_count}/{policy.min_news}")
    console.print(f"  Media:    {req.media_count}/{policy.min_media}")
    console.print(f"  Personal: {req.personal_count}/{policy.min_personal}")
    console.print(f"  Memes:    {req.meme_count}")
    console.print(f"  Tagged:   {req.files_with_valid_tags}/{req.total_files}")

    expl = report.explanations
    if expl.total_personal or expl.total_memes:
        console.print(
            f"  Explanations: personal {expl.valid_personal}/{expl.total_personal}, "
            f"memes {expl.valid_memes}/{expl.total_memes}"
        )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--min-tags", type=int, default=None, help="Override the minimum tag count.")
@click.option("--strict", is_flag=True, help="Fail on warnings too.")
def check(path: Path, min_tags: int | None, strict: bool) -> None:
    """Validate a capsule ZIP or a bare manifest file locally."""
    cfg = get_config()
    if min_tags is not None:
        cfg = dataclasses.replace(
            cfg, validation=dataclasses.replace(cfg.validation, min_tags=min_tags)
        )

    report: CapsuleReport | None = None
    if path.suffix.lower() == ".zip":
        try:
            archive, report = load_capsule(path.read_bytes(), filename=path.name, config=cfg)
        except ArchiveError as e:
            raise click.ClickException(str(e))
        archive.close()
        items = report.items
        errors = report.all_errors()
    else:
        result = parse_manifest(
            path.read_text(encoding="utf-8-sig"), min_tags=cfg.validation.min_tags
        )
        items = result.items
        errors = result.errors

    console.print(f"[bold]{escape(path.name)}[/bold]: {len(items)} items, {len(errors)} diagnostics")
    if errors:
        console.print(_diagnostics_table(errors, "Diagnostics"))
    else:
        console.print("[green]✓ No problems found.[/green]")

    if report is not None:
        _print_requirements(report)

    failing = [e for e in errors if strict or e.severity is Severity.ERROR]
    if failing:
        raise SystemExit(1)


# ── capsules (remote) ─────────────────────────────────────────────────────


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def upload(client: ApiClient, path: Path) -> None:
    """Upload a capsule ZIP to the viewer."""
    data = client.upload("/api/capsules", path.read_bytes(), filename=path.name)
    click.echo(f"✓ Uploaded {path.name} as {data['capsule_id']}")
    click.echo(
        f"  Items: {data['item_count']}  Errors: {data['error_count']}  "
        f"Warnings: {data['warning_count']}"
    )
    if not data.get("requirements_met"):
        click.echo("  Requirements: not met")


@cli.command("list")
@click.pass_obj
def list_capsules(client: ApiClient) -> None:
    """List loaded capsules."""
    data = client.get("/api/capsules")
    if not data:
        click.echo("No capsules loaded.")
        return
    click.echo(f"{'ID':<14s} {'FILE':<30s} {'ITEMS':>5s} {'ERR':>4s} {'WARN':>5s}")
    for c in data:
        click.echo(
            f"{c['capsule_id']:<14s} {c['filename']:<30s} {c['item_count']:>5d} "
            f"{c['error_count']:>4d} {c['warning_count']:>5d}"
        )


@cli.command()
@click.argument("capsule_id")
@click.pass_obj
def show(client: ApiClient, capsule_id: str) -> None:
    """Show a capsule summary and its requirements."""
    data = client.get(f"/api/capsules/{capsule_id}")
    req = client.get(f"/api/capsules/{capsule_id}/requirements")
    click.echo(f"Capsule: {data['capsule_id']} ({data['filename']})")
    click.echo(f"Manifest: {data.get('manifest_name') or 'missing'}")
    click.echo(f"Items: {data['item_count']}")
    click.echo(f"Errors: {data['error_count']}  Warnings: {data['warning_count']}")
    click.echo(f"Requirements: {'met' if req['is_valid'] else 'not met'}")
    for rule in req.get("unmet", []):
        click.echo(f"  ✕ {rule['description']}: {rule['actual']}/{rule['required']}")


@cli.command()
@click.argument("capsule_id")
@click.option("--type", "item_type", default=None, help="Filter by item type.")
@click.option("--tag", default=None, help="Filter by tag.")
@click.pass_obj
def items(client: ApiClient, capsule_id: str, item_type: str | None, tag: str | None) -> None:
    """List a capsule's items."""
    data = client.get(f"/api/capsules/{capsule_id}/items", type=item_type, tag=tag)
    if not data:
        click.echo("No items.")
        return
    for i in data:
        click.echo(f"  {i['emoji']} {i['filename']:<30s} {i['type']:<10s} {i['title']}")


@cli.command()
@click.argument("capsule_id")
@click.option("--category", default=None, help="Filter by category.")
@click.option("--severity", default=None, help="Filter by severity.")
@click.pass_obj
def errors(
    client: ApiClient, capsule_id: str, category: str | None, severity: str | None
) -> None:
    """List a capsule's diagnostics."""
    data = client.get(
        f"/api/capsules/{capsule_id}/errors", category=category, severity=severity
    )
    if not data:
        click.echo("No diagnostics.")
        return
    for e in data:
        marker = "✕" if e["severity"] == "error" else "!"
        click.echo(f"  {marker} Line {e['line_number']}: {e['error']} [{e['category']}]")


@cli.command()
@click.argument("capsule_id")
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt.")
@click.pass_obj
def delete(client: ApiClient, capsule_id: str, confirm: bool) -> None:
    """Unload a capsule."""
    if not confirm:
        click.confirm(f"Unload capsule '{capsule_id}'?", abort=True)
    client.delete(f"/api/capsules/{capsule_id}")
    click.echo(f"✓ Deleted capsule: {capsule_id}")


# ── info / serve ──────────────────────────────────────────────────────────


@cli.command()
@click.pass_obj
def info(client: ApiClient) -> None:
    """Show system information."""
    data = client.get("/api/info")
    click.echo(f"Time Capsule v{data.get('version', '?')}")
    click.echo(
        f"Loaded Capsules: {data.get('loaded_capsules', 0)}/{data.get('max_capsules', 0)}"
    )
    click.echo(f"Manifest: {data.get('manifest_name', 'manifest.txt')}")
    click.echo(f"Minimum Tags: {data.get('min_tags', 5)}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True)
def serve(host: str, port: int) -> None:
    """Run the viewer API with uvicorn."""
    import uvicorn

    uvicorn.run("capsule.api.app:create_app", factory=True, host=host, port=port)


# ── entry point ───────────────────────────────────────────────────────────


def main() -> None:
    """Entry point for the tc command."""
    cli()


if __name__ == "__main__":
    main()
