"""
Command-line interface for the Clinic Shipping Agent.
Provides commands for quoting, shipping, tracking and running the sync scheduler.
"""

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clinic_shipping import __version__

console = Console()


def _load_config(ctx: click.Context):
    from clinic_shipping.config import init_config
    from clinic_shipping.logging_config import setup_logging

    config = init_config(ctx.obj.get("config_file"))
    if ctx.obj.get("verbose"):
        config.log_level = "DEBUG"
    setup_logging(config, console=ctx.obj.get("verbose", False))
    return config


def _run_with_components(ctx: click.Context, action):
    """Build the components, run an async action with them, close the session."""
    from clinic_shipping.service import build_components

    config = _load_config(ctx)
    components = build_components(config)

    async def runner():
        try:
            return await action(components)
        finally:
            await components.close()

    return asyncio.run(runner())


@click.group()
@click.version_option(version=__version__, prog_name="Clinic Shipping Agent")
@click.option(
    "--config", "-c", "config_file",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.option("--verbose", "-v", is_flag=True, help="Log to console at DEBUG level")
@click.pass_context
def cli(ctx, config_file, verbose):
    """Clinic Shipping Agent - Envioclick quotes, labels and tracking"""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("city")
@click.argument("department")
@click.pass_context
def resolve(ctx, city, department):
    """Show the DANE codes for a city and department."""
    from clinic_shipping.geo import get_resolver

    _load_config(ctx)
    geo = get_resolver().resolve(city, department)

    if geo is None:
        console.print(f"[red]✗ Ciudad no cubierta: {city}, {department}[/red]")
        raise SystemExit(1)

    console.print(f"[green]✓ {city}, {department}[/green] -> city [bold]{geo.city_code}[/bold], state [bold]{geo.state_code}[/bold]")


@cli.command()
@click.argument("city")
@click.argument("department")
@click.option("--weight", "-w", type=float, default=1.0, show_default=True, help="Item weight (kg)")
@click.option("--quantity", "-q", type=int, default=1, show_default=True, help="Item quantity")
@click.option("--total", "-t", type=float, default=0.0, show_default=True, help="Order total (COP)")
@click.pass_context
def quote(ctx, city, department, weight, quantity, total):
    """Quote shipping rates to a destination."""
    from clinic_shipping.models import LineItem

    items = [LineItem(weight=weight, quantity=quantity)]
    result = _run_with_components(
        ctx, lambda c: c.quoter.quote(city, department, items, total)
    )

    if not result.success:
        console.print(f"[red]✗ {result.error}[/red]")
        raise SystemExit(1)

    table = Table(title=f"Rates to {city}, {department}")
    table.add_column("Carrier", style="cyan")
    table.add_column("Service")
    table.add_column("Flete", justify="right", style="green")
    table.add_column("Delivery")
    table.add_column("Rate ID", style="dim")

    for q in result.quotes:
        table.add_row(q.carrier, q.service, f"${q.shipping_cost:,.0f}", q.delivery_estimate, str(q.id_rate))

    console.print(table)


@cli.command()
@click.argument("order_id")
@click.pass_context
def ship(ctx, order_id):
    """Generate the shipment for an approved (processing) order."""
    result = _run_with_components(
        ctx, lambda c: c.service.handle_order_approved(order_id)
    )

    if result is None:
        console.print(f"[yellow]Order {order_id} skipped (not processing, zero total or already shipped)[/yellow]")
    elif result.success:
        console.print(f"[green]✓ Shipment created: {result.tracking_number} ({result.carrier})[/green]")
        if result.label_url:
            console.print(f"  Label: {result.label_url}")
    else:
        console.print(f"[red]✗ {result.error}[/red]")
        raise SystemExit(1)


@cli.command("retry-shipment")
@click.argument("order_id")
@click.pass_context
def retry_shipment(ctx, order_id):
    """Retry shipment generation for an order without a tracking number."""
    from clinic_shipping.exceptions import OrderNotFoundError

    try:
        result = _run_with_components(
            ctx, lambda c: c.service.retry_shipment_generation(order_id)
        )
    except OrderNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1)

    if result.success:
        console.print(f"[green]✓ Shipment created: {result.tracking_number} ({result.carrier})[/green]")
    else:
        console.print(f"[red]✗ {result.error}[/red]")
        raise SystemExit(1)


@cli.command()
@click.argument("tracking_code")
@click.pass_context
def track(ctx, tracking_code):
    """Look up the carrier status of a tracking code."""
    from clinic_shipping.tracking import map_carrier_status

    result = _run_with_components(
        ctx, lambda c: c.tracking_client.track(tracking_code)
    )

    if not result.success:
        console.print(f"[red]✗ {result.error}[/red]")
        raise SystemExit(1)

    mapped = map_carrier_status(result.status)
    console.print(f"[bold]{tracking_code}[/bold]: {result.status}")
    if result.detail:
        console.print(f"  {result.detail}")
    console.print(f"  Order status: {mapped.value if mapped else '[dim]unchanged[/dim]'}")


@cli.command()
@click.pass_context
def sync(ctx):
    """Run the tracking sync once."""
    report = _run_with_components(ctx, lambda c: c.sync_job.run())

    table = Table(title="Tracking Sync")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Scanned", str(report.orders_scanned))
    table.add_row("Status updated", str(report.orders_updated))
    table.add_row("Unchanged", str(report.orders_unchanged))
    table.add_row("Failed", str(report.orders_failed))
    table.add_row("Skipped", str(report.orders_skipped))
    table.add_row("Duration", f"{report.duration_ms} ms")

    console.print(table)

    for error in report.errors:
        console.print(f"[red]✗ {error.get('order_id', '?')}: {error.get('error')}[/red]")


@cli.command()
@click.pass_context
def run(ctx):
    """Run the tracking scheduler in foreground mode."""
    from clinic_shipping.config import init_config
    from clinic_shipping.scheduler import run_scheduler

    console.print(Panel.fit(
        f"[bold blue]Clinic Shipping Agent v{__version__}[/bold blue]\n"
        "Press Ctrl+C to stop",
        title="Starting Scheduler"
    ))

    run_scheduler(config=init_config(ctx.obj.get("config_file")))


@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration and validation status."""
    from clinic_shipping.config import ShippingConfig
    from clinic_shipping.geo import DaneResolver

    console.print(Panel.fit(
        f"[bold]Clinic Shipping Agent v{__version__}[/bold]",
        title="Status"
    ))

    config = ShippingConfig.from_env(ctx.obj.get("config_file"))

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("API URL", config.envioclick_api_url)
    table.add_row("API Key", "set" if config.envioclick_api_key else "[dim]Not set[/dim]")
    table.add_row("Sandbox", str(config.envioclick_sandbox))
    table.add_row("Request Timeout", f"{config.request_timeout}s")
    table.add_row("Origin DANE", config.origin_dane_code)
    table.add_row("Package (HxWxL)", f"{config.package_height}x{config.package_width}x{config.package_length}")
    table.add_row("Order Store", str(config.order_store_file))
    table.add_row("Sync Interval", f"{config.sync_interval_hours}h")
    table.add_row("Sync Concurrency", str(config.sync_concurrency))
    table.add_row("Log File", config.log_file)

    if config.dane_codes_file.exists():
        table.add_row("DANE Cities", str(len(DaneResolver.from_file(config.dane_codes_file))))

    console.print(table)

    for error in config.validate():
        console.print(f"[yellow]! {error}[/yellow]")


@cli.command()
@click.argument("config_path", type=click.Path())
def init(config_path):
    """Initialize configuration file."""
    config_path = Path(config_path)

    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    template = '''# Clinic Shipping Agent Configuration

# Envioclick
ENVIOCLICK_API_KEY=your-api-key-here
ENVIOCLICK_API_URL=https://api.envioclickpro.com.co/api/v2
ENVIOCLICK_SANDBOX=false
REQUEST_TIMEOUT=10

# Origin (clinic)
ORIGIN_COMPANY=Rostro Dorado Clinic
ORIGIN_FIRST_NAME=Rostro
ORIGIN_LAST_NAME=Dorado
ORIGIN_EMAIL=contacto@rostrodorado.com
ORIGIN_PHONE=3000000000
ORIGIN_ADDRESS=Calle 12 #12-03 local 2
ORIGIN_DANE_CODE=44001000
ORIGIN_STATE_CODE=44

# Package defaults (cm), declared value floor (COP)
PACKAGE_HEIGHT=10
PACKAGE_WIDTH=10
PACKAGE_LENGTH=10
MIN_CONTENT_VALUE=20000
MAX_ADDRESS_LENGTH=40

# Data
ORDER_STORE_FILE=data/orders.json

# Tracking sync
SYNC_ENABLED=true
SYNC_INTERVAL_HOURS=2
SYNC_CONCURRENCY=5

# Logging
LOG_LEVEL=INFO
LOG_FILE=logs/shipping.log
'''

    config_path.write_text(template, encoding='utf-8')
    console.print(f"[green]✓ Configuration file created: {config_path}[/green]")
    console.print("\nEdit this file with your settings, then run:")
    console.print(f"  clinic-shipping --config {config_path} run")


@cli.command()
@click.option("--lines", "-n", type=int, default=50, show_default=True)
@click.pass_context
def logs(ctx, lines):
    """View recent logs."""
    from clinic_shipping.config import ShippingConfig
    config = ShippingConfig.from_env(ctx.obj.get("config_file"))

    log_file = Path(config.log_file)

    if not log_file.exists():
        console.print(f"[yellow]Log file not found: {log_file}[/yellow]")
        return

    console.print(f"[bold]Recent logs from {log_file}:[/bold]\n")

    with open(log_file, "r", encoding="utf-8") as f:
        recent = f.readlines()[-lines:]

    for line in recent:
        # Color based on log level
        if "ERROR" in line:
            console.print(f"[red]{line.rstrip()}[/red]")
        elif "WARNING" in line:
            console.print(f"[yellow]{line.rstrip()}[/yellow]")
        elif "INFO" in line:
            console.print(f"[green]{line.rstrip()}[/green]")
        else:
            console.print(line.rstrip())


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
