"""
Main CLI entry point for the Rebrand Tool.

This module provides the command-line interface using Click with Rich
formatting. Every command delegates to the ``DeploymentOrchestrator``.
"""

import asyncio
import json
import posixpath
import sys
from typing import Callable, Optional

import click
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from rebrand_tool import __version__
from rebrand_tool.config import ConfigurationService, ConfigurationStore
from rebrand_tool.core.exceptions import RebrandToolError
from rebrand_tool.dns.templates import expand_templates
from rebrand_tool.models.config import PhpMode
from rebrand_tool.registry.modules import DEFAULT_REGISTRY, ModuleCategory
from rebrand_tool.transfer.classifier import group_results
from rebrand_tool.transfer.selection import SelectionSet
from rebrand_tool.utils.helpers import format_bytes, sanitize_dict
from rebrand_tool.utils.logging import get_log_history, read_log_file, setup_logging

console = Console()


def fail(message: str, code: int = 1) -> None:
    console.print(f"[red]{message}[/red]")
    sys.exit(code)


def get_config_service(ctx: click.Context) -> ConfigurationService:
    obj = ctx.ensure_object(dict)
    if 'config_service' not in obj:
        if 'orchestrator' in obj:
            obj['config_service'] = obj['orchestrator'].config_service
        else:
            store = ConfigurationStore(obj.get('config_path'))
            obj['config_service'] = ConfigurationService(store=store)
    return obj['config_service']


def get_orchestrator(ctx: click.Context):
    obj = ctx.ensure_object(dict)
    if 'orchestrator' not in obj:
        from rebrand_tool.orchestrator import DeploymentOrchestrator

        service = get_config_service(ctx)
        settings = service.config.settings
        setup_logging(
            level="DEBUG" if obj.get('verbose') else settings.log_level.value,
            log_file=settings.log_file,
            audit_log_file=settings.audit_log_file,
            structured_logging=settings.structured_logging,
            log_rotation=settings.log_rotation,
            max_log_size=settings.max_log_size,
            backup_count=settings.log_backup_count,
        )
        obj['orchestrator'] = DeploymentOrchestrator(service)
    return obj['orchestrator']


def run_operation(ctx: click.Context, operation: Callable):
    """Run ``operation(orchestrator)`` in a fresh event loop, then release its clients."""
    orchestrator = get_orchestrator(ctx)

    async def runner():
        try:
            return await operation(orchestrator)
        finally:
            await orchestrator.aclose()

    return asyncio.run(runner())


@click.group(invoke_without_command=True)
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False),
              help='Configuration file (default: ~/.rebrand-tool/config.yaml)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--version', is_flag=True, help='Show version information')
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool, version: bool):
    """
    Rebrand Tool

    Deploy panel modules to domains on a remote hosting server, create
    subdomains and their DNS records.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    if config_path:
        ctx.obj['config_path'] = config_path

    if version:
        console.print(f"Rebrand Tool version {__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@main.command('test-connection')
@click.pass_context
def test_connection_command(ctx: click.Context):
    """Check that the remote server is reachable."""
    try:
        result = run_operation(ctx, lambda o: o.test_connection())
    except RebrandToolError as e:
        fail(f"Connection test failed: {e.message}")
        return

    if result.get('success'):
        console.print(
            f"[green]✓ Connected: {result['directory_count']} directories in "
            f"{result['base_path']}[/green]"
        )
    else:
        fail(f"Connection test failed: {result.get('error', 'unknown error')}")


@main.command('ls')
@click.argument('path', required=False, default="")
@click.pass_context
def list_remote(ctx: click.Context, path: str):
    """List a directory below the source base path."""
    try:
        entries = run_operation(ctx, lambda o: o.list_remote_directory(path))
    except RebrandToolError as e:
        fail(f"Error listing {path or '/'}: {e.message}")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type", style="green")
    table.add_column("Size", style="yellow", justify="right")
    for entry in entries:
        table.add_row(
            entry.name,
            "dir" if entry.is_directory else "file",
            "" if entry.is_directory else format_bytes(entry.size or 0)
        )
    console.print(table)


@main.command('get')
@click.argument('path')
@click.argument('local_path', type=click.Path(), required=False)
@click.pass_context
def download(ctx: click.Context, path: str, local_path: Optional[str]):
    """Download a file or directory below the source base path."""
    target = local_path or posixpath.basename(path.rstrip("/")) or "."
    try:
        files = run_operation(ctx, lambda o: o.download(path, target))
    except RebrandToolError as e:
        fail(f"Error downloading {path}: {e.message}")
        return
    console.print(f"[green]✓ Downloaded {len(files)} file(s) to {target}[/green]")


# Domains

@main.group()
def domains():
    """Discover, analyze and create domains."""
    pass


@domains.command('list')
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def domains_list(ctx: click.Context, output_format: str):
    """List domains found on the remote server."""
    try:
        found = run_operation(ctx, lambda o: o.list_domains())
    except RebrandToolError as e:
        fail(f"Error listing domains: {e.message}")
        return

    if output_format == 'json':
        console.print(json.dumps([d.to_dict() for d in found], indent=2))
        return

    if not found:
        console.print("[yellow]No domains found[/yellow]")
        return

    table = Table(title="Domains", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("Path", style="dim")
    for domain in found:
        table.add_row(domain.name, domain.path)
    console.print(table)


@domains.command('analyze')
@click.argument('domain')
@click.option('--path', help='Domain directory (default: under the domains root)')
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def domains_analyze(ctx: click.Context, domain: str, path: Optional[str], output_format: str):
    """Show which panels and modules are installed on DOMAIN."""
    analysis = run_operation(ctx, lambda o: o.analyze_domain(domain, path))

    if output_format == 'json':
        console.print(json.dumps(analysis.to_dict(), indent=2, default=str))
    if analysis.error:
        fail(f"Error analyzing {domain}: {analysis.error}")
        return
    if output_format == 'json':
        return

    table = Table(title=f"{domain} ({analysis.web_root})", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Component", style="cyan")
    table.add_column("Type", style="dim")
    table.add_column("Installed", style="green")
    table.add_column("Latest", style="blue")
    table.add_column("Update", justify="center")

    components = [analysis.main_panel, analysis.branding, analysis.support, analysis.webview]
    for module in [c for c in components if c] + analysis.modules:
        table.add_row(
            module.display_name,
            module.type or "",
            module.version or "[dim]unknown[/dim]",
            module.latest_version or "",
            "[yellow]available[/yellow]" if module.has_update else ""
        )
    console.print(table)

    updates = analysis.updates_available
    if updates:
        console.print(f"[yellow]{len(updates)} update(s) available[/yellow]")


@domains.command('create')
@click.argument('subdomain')
@click.option('--description', '-d', help='Description stored with the domain')
@click.option('--php-mode', type=click.Choice([m.value for m in PhpMode]), help='PHP execution mode')
@click.option('--php-version', help='PHP version, e.g. 8.1')
@click.pass_context
def domains_create(
    ctx: click.Context,
    subdomain: str,
    description: Optional[str],
    php_mode: Optional[str],
    php_version: Optional[str]
):
    """Create SUBDOMAIN under the parent domain."""
    try:
        result = run_operation(ctx, lambda o: o.create_subdomain(
            subdomain, description=description, php_mode=php_mode, php_version=php_version
        ))
    except RebrandToolError as e:
        fail(f"Error creating subdomain: {e.message}")
        return

    if not result.success:
        fail(f"Error creating {result.domain_name}: {result.error}")
        return

    console.print(f"[green]✓ Created {result.domain_name}[/green]")
    console.print(f"[dim]Web root: {result.web_root_path}[/dim]")
    if result.php_config_warning:
        console.print(f"[yellow]⚠ {result.php_config_warning}[/yellow]")


# DNS

@main.group()
def dns():
    """Create DNS records for subdomains."""
    pass


@dns.command('preview')
@click.argument('subdomain')
@click.pass_context
def dns_preview(ctx: click.Context, subdomain: str):
    """Show the records that would be created for SUBDOMAIN."""
    config = get_config_service(ctx).config
    table = Table(title=f"{subdomain}.{config.dns.root_domain or '<root domain>'}",
                  box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Type", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Content")
    table.add_column("Proxied", justify="center")
    for record in expand_templates(subdomain, config.dns):
        table.add_row(record.type, record.name, record.content or "[red]not configured[/red]",
                      "yes" if record.proxied else "no")
    console.print(table)


@dns.command('create')
@click.argument('subdomain')
@click.pass_context
def dns_create(ctx: click.Context, subdomain: str):
    """Create the standard DNS records for SUBDOMAIN."""
    result = run_operation(ctx, lambda o: o.create_dns_records(subdomain))
    _print_dns_result(result)
    if not result.success:
        sys.exit(1)


def _print_dns_result(result) -> None:
    if result.records:
        table = Table(box=box.ROUNDED, header_style="bold magenta")
        table.add_column("Type", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Status")
        for record in result.records:
            status = record.status.value
            if record.error:
                status = f"[red]{status}: {record.error}[/red]"
            table.add_row(record.type, record.name, status)
        console.print(table)
    style = "green" if result.success else "red"
    console.print(f"[{style}]{result.message}[/{style}]")


# Modules

@main.group()
def modules():
    """Browse the module registry."""
    pass


@modules.command('list')
@click.option('--category', type=click.Choice([c.value for c in ModuleCategory]),
              help='Only list modules in this category')
def modules_list(category: Optional[str]):
    """List deployable modules."""
    registry = DEFAULT_REGISTRY
    descriptors = registry.in_category(category) if category else registry.all()

    table = Table(title="Modules", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Version", style="blue")
    table.add_column("Category", style="dim")
    for module in descriptors:
        table.add_row(module.key, module.display_name, module.version, module.category.value)
    console.print(table)


# Transfer

@main.command()
@click.argument('domain')
@click.argument('module_keys', nargs=-1, metavar='MODULE...')
@click.option('--dns', 'create_dns', is_flag=True, help='Also create DNS records for the subdomain')
@click.pass_context
def transfer(ctx: click.Context, domain: str, module_keys, create_dns: bool):
    """Copy MODULE... to the web root of DOMAIN."""
    if not module_keys and not create_dns:
        fail("Nothing to do: name at least one module or pass --dns")
        return

    orchestrator = get_orchestrator(ctx)
    selection = SelectionSet(orchestrator.registry)
    try:
        for key in module_keys:
            selection.select(key)
    except RebrandToolError as e:
        fail(e.message)
        return

    result = run_operation(ctx, lambda o: o.deploy(domain, selection, create_dns=create_dns))
    summary = result.transfer

    if summary.error:
        console.print(f"[red]Transfer failed: {summary.error}[/red]")
    elif summary.total_count:
        for category, results in group_results(summary.results).items():
            console.print(f"[bold]{category.value}[/bold]")
            for item in results:
                if item.succeeded:
                    console.print(f"  [green]✓[/green] {item.name} → {item.path}")
                else:
                    console.print(f"  [red]✗[/red] {item.name}: {item.error}")
        style = "green" if summary.fully_succeeded else ("yellow" if summary.success else "red")
        console.print(
            f"[{style}]Transfer complete: {summary.success_count}/{summary.total_count} "
            f"items transferred[/{style}]"
        )
        if not summary.ownership_fixed:
            console.print("[yellow]⚠ Final ownership fix-up failed; see the log[/yellow]")

    if result.dns is not None:
        _print_dns_result(result.dns)

    transfer_ok = summary.success or (not module_keys and summary.error is None)
    dns_ok = result.dns is None or result.dns.success
    if not (transfer_ok and dns_ok):
        sys.exit(1)


# Configuration

@main.group()
def config():
    """Show and change configuration."""
    pass


@config.command('show')
@click.option('--format', '-f', 'output_format', type=click.Choice(['yaml', 'json']),
              default='yaml', help='Output format')
@click.pass_context
def config_show(ctx: click.Context, output_format: str):
    """Show the configuration with secrets masked."""
    try:
        service = get_config_service(ctx)
    except RebrandToolError as e:
        fail(f"Error loading configuration: {e.message}")
        return

    data = sanitize_dict(service.config.model_dump(mode="json"))
    if output_format == 'json':
        console.print(json.dumps(data, indent=2))
    else:
        console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


@config.command('set')
@click.argument('key')
@click.argument('value')
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str):
    """Set KEY (section.field) to VALUE and save."""
    try:
        get_config_service(ctx).set(key, value)
    except RebrandToolError as e:
        fail(f"Error updating configuration: {e.message}")
        return
    console.print(f"[green]✓ {key} updated[/green]")


# Logs

@main.command()
@click.option('--limit', '-n', default=50, show_default=True, help='Number of entries to show')
@click.option('--level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                           case_sensitive=False), help='Only show this level')
@click.pass_context
def logs(ctx: click.Context, limit: int, level: Optional[str]):
    """Show recent audit log entries."""
    audit_file = get_config_service(ctx).config.settings.audit_log_file
    if audit_file:
        entries = read_log_file(audit_file)
        if level:
            entries = [e for e in entries if e.level.value == level.upper()]
        entries = entries[-limit:] if limit else []
    else:
        console.print("[dim]No audit log file configured (settings.audit_log_file); "
                      "showing this session's history[/dim]")
        entries = get_log_history(limit=limit, level=level)

    if not entries:
        console.print("[yellow]No log entries[/yellow]")
        return

    table = Table(box=box.SIMPLE, header_style="bold magenta")
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Level")
    table.add_column("Category", style="cyan")
    table.add_column("Message")
    for entry in entries:
        details = entry.metadata.get('details') if entry.operation else None
        message = entry.message
        if isinstance(details, dict) and details.get('command'):
            message = f"{details.get('label') or entry.operation}: {details['command']} ({details.get('status')})"
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.level.value,
            entry.category.value,
            message
        )
    console.print(table)


if __name__ == '__main__':
    main()
