import logging
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .errors import RobotrieError
from .robots import RobotsFile, fetch_robots, parse_robots, request_path, robots_url
from .trie import ALLOW

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load(file: Optional[str], url: Optional[str]) -> RobotsFile:
    if bool(file) == bool(url):
        raise click.UsageError("Pass exactly one of --file or --url.")
    if file:
        with open(file, encoding="utf-8", errors="replace") as f:
            return parse_robots(f.read())
    try:
        return fetch_robots(url)
    except RobotrieError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(2)


source_options = [
    click.option("--file", "file", type=click.Path(exists=True, dir_okay=False), help="Local robots.txt"),
    click.option("--url", help="Any URL on the site; its /robots.txt is fetched"),
    click.option("--agent", "-a", default="*", show_default=True, help="User-agent to check as"),
]


def with_source(f):
    for opt in reversed(source_options):
        f = opt(f)
    return f


@click.group(help="robotrie - robots.txt rule checker")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def app(verbose: bool):
    _setup_logging(verbose)


@app.command("check")
@click.argument("paths", nargs=-1, required=True)
@with_source
@click.option("--default-deny", is_flag=True, help="Block paths no rule matches")
def check(paths: Tuple[str, ...], file: Optional[str], url: Optional[str], agent: str, default_deny: bool):
    """Check whether PATHS (paths or full URLs) may be fetched."""
    robots = _load(file, url)
    perms = robots.permissions_for(agent, default_permission=not default_deny)

    blocked = 0
    for p in paths:
        path = request_path(p) if "://" in p else p
        if perms.is_allowed(path):
            console.print(f"[green]allowed[/] {escape(p)}")
        else:
            blocked += 1
            console.print(f"[red]blocked[/] {escape(p)}")

    if blocked:
        console.print(f"[bold]{blocked}/{len(paths)}[/] blocked for agent {agent!r}")
        raise SystemExit(1)


@app.command("rules")
@with_source
def rules(file: Optional[str], url: Optional[str], agent: str):
    """List the rules that apply to an agent, in file order."""
    robots = _load(file, url)
    selected = robots.rules_for(agent)

    source = file or robots_url(url)
    if not selected:
        console.print(f"[yellow]No rules for agent {agent!r} in {source}[/]")
    else:
        table = Table(title=f"{source} ({agent})")
        table.add_column("#", justify="right")
        table.add_column("rule")
        table.add_column("pattern")
        for i, (pattern, kind) in enumerate(selected, start=1):
            style = "green" if kind == ALLOW else "red"
            table.add_row(str(i), f"[{style}]{kind}[/]", escape(pattern) or "[dim](empty)[/]")
        console.print(table)

    if robots.sitemaps:
        console.print("[bold]Sitemaps[/]:")
        for s in robots.sitemaps:
            console.print(f"- {s}")


def main():
    app(auto_envvar_prefix="ROBOTRIE")


if __name__ == "__main__":
    main()
