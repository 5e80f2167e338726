"""FastNginx CLI - Deploy and manage nginx reverse-proxy sites."""

import click
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
import questionary

from . import __version__
from .config import CONFIG_FILE, Settings, initialize, load_settings
from .exceptions import FastNginxError, ValidationError
from .lifecycle import SiteManager
from .nginx import NginxService
from .records import DEFAULT_HOST, DEFAULT_IP

console = Console()

custom_style = questionary.Style([
    ('qmark', 'fg:green bold'),
    ('question', 'bold'),
    ('answer', 'fg:green bold'),
    ('pointer', 'fg:green bold'),
    ('highlighted', 'fg:green bold'),
    ('selected', 'fg:green'),
])


class Context:
    def __init__(self, config_file: Path, root_check: bool):
        self.config_file = config_file
        self.root_check = root_check
        self._settings = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            try:
                self._settings = load_settings(self.config_file)
            except FastNginxError as e:
                console.print(f"[red]Error:[/red] {escape(str(e))}")
                sys.exit(1)
        return self._settings

    def manager(self) -> SiteManager:
        if not self.settings.base_path:
            console.print("[red]Error:[/red] Not initialized. Run [bold]fastnginx init[/bold] first.")
            sys.exit(1)
        try:
            return SiteManager.from_settings(self.settings)
        except FastNginxError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)


pass_context = click.make_pass_decorator(Context)


def check_root(ctx: Context):
    """Ensure running as root."""
    if ctx.root_check and os.geteuid() != 0:
        console.print("[red]Error:[/red] This command must be run as root (sudo)")
        sys.exit(1)


def setup_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def print_report(report) -> bool:
    """Show each step of an operation and return overall success."""
    title = f"{report.action.title()} {report.domain}".strip()
    if report.error:
        console.print(f"[red]✗[/red] {escape(title)}: {escape(report.error)}")
        return False

    for step in report.steps:
        if step.skipped:
            console.print(f"[dim]-[/dim] {step.name} [dim]({escape(step.detail)})[/dim]")
        elif step.ok:
            detail = f" [dim]{escape(step.detail)}[/dim]" if step.detail else ""
            console.print(f"[green]✓[/green] {step.name}{detail}")
        elif step.required:
            console.print(f"[red]✗[/red] {step.name} failed")
            if step.detail:
                console.print(step.detail, style="red", markup=False, highlight=False)
        else:
            console.print(f"[yellow]⚠[/yellow] {step.name}: {escape(step.detail)}")

    if report.manual_hosts_line:
        console.print("\n[cyan]Please add this line to the hosts file:[/cyan]")
        console.print(report.manual_hosts_line, markup=False, highlight=False)

    if report.success:
        console.print(f"\n[bold green]✓ {title} complete[/bold green]")
    else:
        failed = ", ".join(s.name for s in report.failed_steps if s.required)
        console.print(f"\n[bold red]✗ {title} incomplete[/bold red] (failed: {failed})")
    return report.success


def print_records(records):
    table = Table(title="Configuration Matrix", border_style="green")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("")
    table.add_column("Domain", style="green")
    table.add_column("Backend")
    table.add_column("Type", style="dim")
    for i, record in enumerate(records, start=1):
        dot = "[green]●[/green]" if record.is_active else "[red]●[/red]"
        table.add_row(f"{i:02d}", dot, record.domain, f"{record.host}:{record.port}", record.type)
    console.print(table)


def print_record(record):
    lines = "\n".join(f"[green]{k}:[/green] {escape(v)}" for k, v in record.as_dict().items())
    console.print(Panel(lines, title=record.primary_domain, border_style="cyan"))


def finish(ok: bool):
    if not ok:
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="fastnginx")
@click.option("--config", "config_file", type=click.Path(path_type=Path), default=CONFIG_FILE,
              envvar="FASTNGINX_CONFIG", show_default=True, help="Settings file")
@click.option("--debug", is_flag=True, help="Verbose logging")
@click.option("--no-root-check", is_flag=True, help="Skip the root check")
@click.pass_context
def main(ctx, config_file, debug, no_root_check):
    """FastNginx - Deploy and manage nginx reverse-proxy sites."""
    setup_logging(debug)
    ctx.obj = Context(config_file, root_check=not no_root_check)


@main.command()
@click.option("--path", "base_path", default=None, help="Directory holding nginx_data/")
@pass_context
def init(ctx, base_path):
    """Initialize the data directory and configuration index."""
    settings = ctx.settings
    if base_path is None:
        base_path = questionary.text(
            "Initialize system path:",
            default=settings.base_path,
            style=custom_style
        ).ask()
    settings.base_path = (base_path or "").strip()

    try:
        done = initialize(settings, ctx.config_file)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)

    for line in done:
        console.print(f"[green]✓[/green] {line}")
    console.print("[bold green]System ready for operation[/bold green]")


@main.command()
@click.option("--domain", "-d", default=None, help="Domain(s); the first one names the files")
@click.option("--port", "-p", default=None, help="Backend port")
@click.option("--host", default=None, help=f"Backend host [{DEFAULT_HOST}]")
@click.option("--ip", default=None, help=f"IP for the hosts file [{DEFAULT_IP}]")
@click.option("--hosts/--no-hosts", "add_hosts", default=None, help="Add the domain to the hosts file")
@pass_context
def deploy(ctx, domain, port, host, ip, add_hosts):
    """Deploy a new proxy configuration."""
    check_root(ctx)
    manager = ctx.manager()

    console.print(Panel("[bold green]Proxy Configuration[/bold green]", border_style="green"))
    if domain is None:
        domain = questionary.text("Target domain:", style=custom_style).ask()
    if port is None:
        port = questionary.text("Backend port:", style=custom_style).ask()
    if host is None:
        host = questionary.text("Backend host:", default=DEFAULT_HOST, style=custom_style).ask()
    if add_hosts is None:
        add_hosts = questionary.confirm(
            "Add domain to hosts file?",
            default=False,
            style=custom_style
        ).ask()
    if add_hosts and ip is None:
        ip = questionary.text("IP address for hosts file:", default=DEFAULT_IP, style=custom_style).ask()

    with Progress(SpinnerColumn(), TextColumn("Deploying configuration..."), console=console) as progress:
        progress.add_task("", total=None)
        report = manager.deploy(domain or "", port or "", host or DEFAULT_HOST, ip or DEFAULT_IP, bool(add_hosts))
    finish(print_report(report))


@main.command("list")
@pass_context
def list_sites(ctx):
    """List managed configurations."""
    manager = ctx.manager()
    if not manager.records:
        console.print("[cyan]Configuration database is empty[/cyan]")
        return
    print_records(manager.records)


@main.command()
@click.argument("selection", type=int)
@pass_context
def show(ctx, selection):
    """Show one configuration."""
    manager = ctx.manager()
    try:
        _, record = manager.select(selection)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)
    print_record(record)


def prompt_edit(record):
    return dict(
        domain=questionary.text("New domain:", default=record.domain, style=custom_style).ask(),
        port=questionary.text("New port:", default=record.port, style=custom_style).ask(),
        host=questionary.text("New backend host:", default=record.host or DEFAULT_HOST, style=custom_style).ask(),
        ip=questionary.text("New IP for hosts file:", default=record.ip or DEFAULT_IP, style=custom_style).ask(),
    )


@main.command()
@click.argument("selection", type=int)
@click.option("--domain", "-d", default=None, help="New domain(s)")
@click.option("--port", "-p", default=None, help="New backend port")
@click.option("--host", default=None, help="New backend host")
@click.option("--ip", default=None, help="New hosts file IP")
@pass_context
def edit(ctx, selection, domain, port, host, ip):
    """Edit a configuration."""
    check_root(ctx)
    manager = ctx.manager()
    values = dict(domain=domain, port=port, host=host, ip=ip)
    if all(v is None for v in values.values()):
        try:
            _, record = manager.select(selection)
        except ValidationError as e:
            console.print(f"[red]✗[/red] {e}")
            sys.exit(1)
        values = prompt_edit(record)
    finish(print_report(manager.edit(selection, **values)))


@main.command()
@click.argument("selection", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@pass_context
def delete(ctx, selection, yes):
    """Delete a configuration."""
    check_root(ctx)
    manager = ctx.manager()
    if not yes:
        try:
            _, record = manager.select(selection)
        except ValidationError as e:
            console.print(f"[red]✗[/red] {e}")
            sys.exit(1)
        if not questionary.confirm(f"Delete {record.domain}?", default=False, style=custom_style).ask():
            console.print("[cyan]Operation cancelled[/cyan]")
            return
    finish(print_report(manager.delete(selection)))


@main.command()
@click.argument("selection", type=int)
@pass_context
def toggle(ctx, selection):
    """Enable or disable a configuration."""
    check_root(ctx)
    manager = ctx.manager()
    finish(print_report(manager.toggle(selection)))


@main.command()
@pass_context
def manage(ctx):
    """Interactive configuration manager."""
    check_root(ctx)
    manager = ctx.manager()

    while manager.records:
        print_records(manager.records)
        choices = [
            questionary.Choice(f"[{i:02d}] {r.domain} ({r.status})", value=i)
            for i, r in enumerate(manager.records, start=1)
        ]
        choices.append(questionary.Choice("Done", value=None))
        selection = questionary.select("Select configuration:", choices=choices, style=custom_style).ask()
        if selection is None:
            return

        _, record = manager.select(selection)
        print_record(record)
        action = questionary.select(
            "Action:",
            choices=["Edit", "Delete", "Toggle", "Cancel"],
            style=custom_style
        ).ask()

        if action == "Edit":
            print_report(manager.edit(selection, **prompt_edit(record)))
        elif action == "Delete":
            if questionary.confirm(f"Delete {record.domain}?", default=False, style=custom_style).ask():
                print_report(manager.delete(selection))
        elif action == "Toggle":
            print_report(manager.toggle(selection))
        else:
            console.print("[cyan]Operation cancelled[/cyan]")
        console.print()

    console.print("[cyan]Configuration database is empty[/cyan]")


@main.command()
@pass_context
def diagnose(ctx):
    """Run system diagnostics."""
    nginx = NginxService.from_settings(ctx.settings)
    with Progress(SpinnerColumn(), TextColumn("Running system diagnostics..."), console=console) as progress:
        progress.add_task("", total=None)
        result = nginx.diagnose()

    console.print("\n[bold]System Diagnostics[/bold]\n")
    if result.service_active:
        console.print("[green]✓[/green] Nginx service: ONLINE")
    else:
        console.print("[red]✗[/red] Nginx service: OFFLINE")
    if result.syntax_valid:
        console.print("[green]✓[/green] Configuration syntax: VALID")
    else:
        console.print("[red]✗[/red] Configuration syntax: INVALID")
        console.print(result.syntax_output, markup=False, highlight=False)
    if result.ports_ok:
        console.print("[green]✓[/green] Port scan completed")
    else:
        console.print(f"[red]✗[/red] Port scan failed: {result.ports_output}")
    console.print()


@main.command()
@pass_context
def reload(ctx):
    """Reload nginx configuration."""
    check_root(ctx)
    ok, output = NginxService.from_settings(ctx.settings).reload()
    if ok:
        console.print("[green]✓[/green] Nginx reloaded")
    else:
        console.print(f"[red]✗[/red] Reload failed: {output}")
        sys.exit(1)


if __name__ == "__main__":
    main()
