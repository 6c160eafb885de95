"""
Command line interface for the holiday CRM booking core.

Commands:
- quote: price a cabin or room for a travel date and occupancy
- demo: run create -> confirm -> cancel against the mock store
- config: show the effective configuration with secrets masked
"""

import asyncio
from datetime import date, timedelta

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models.enums import BookingStatus, BookingType
from .services.booking_lifecycle import BookingLifecycle
from .services.errors import AppError
from .services.pricing import PricingEngine
from .storage import MockStorage
from .utils.config import configure_logging, get_config
from .utils.formatters import format_currency, format_percentage

app = typer.Typer(help="Yorke Holidays CRM booking core")
console = Console()


def print_section(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", box=box.DOUBLE))


@app.command()
def quote(
    base_price: float = typer.Option(..., "--base-price", "-b", help="Base price before adjustments"),
    travel_date: str = typer.Option(
        date.today().isoformat(), "--date", "-d", help="Travel date (YYYY-MM-DD)"
    ),
    room_type: str = typer.Option("Interior", "--room-type", "-r", help="Cabin or room type"),
    occupancy: int = typer.Option(2, "--occupancy", "-o", help="Guests sharing the room"),
):
    """Price a stay and show the breakdown."""
    try:
        breakdown = PricingEngine().calculate_price(base_price, travel_date, room_type, occupancy)
    except AppError as e:
        console.print(f"[red]✗[/red] {e.message}")
        raise typer.Exit(code=1)

    if room_type not in PricingEngine.ROOM_TYPE_MULTIPLIERS:
        console.print(f"[yellow]Unknown room type '{room_type}', priced as standard[/yellow]")

    table = Table(title=f"Price for {room_type} on {breakdown.travel_date.isoformat()}", box=box.ROUNDED)
    table.add_column("Item", style="cyan")
    table.add_column("Multiplier", justify="right")
    table.add_column("Adjustment", justify="right", style="magenta")

    table.add_row("Base price", "", format_currency(breakdown.base_price))
    table.add_row(
        f"Season ({breakdown.season})",
        f"x{breakdown.seasonal_multiplier}",
        format_currency(breakdown.seasonal_adjustment),
    )
    table.add_row("Room type", f"x{breakdown.room_type_multiplier}", format_currency(breakdown.room_type_adjustment))
    table.add_row(
        f"Occupancy ({breakdown.occupancy})",
        f"x{breakdown.occupancy_multiplier}",
        format_currency(breakdown.occupancy_adjustment),
    )
    table.add_row("[bold]Total[/bold]", "", f"[bold]{format_currency(breakdown.total_price)}[/bold]")
    table.add_row("Per person", "", format_currency(breakdown.price_per_person))
    table.add_row("Savings", "", f"[green]{format_currency(breakdown.savings)}[/green]")

    console.print(table)


@app.command()
def demo(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show service log output"),
):
    """Create, confirm and cancel a sample booking in memory."""
    if verbose:
        configure_logging("INFO")

    try:
        asyncio.run(_run_demo())
    except AppError as e:
        console.print(f"[red]✗[/red] {e.code}: {e.message}")
        raise typer.Exit(code=1)


async def _run_demo() -> None:
    lifecycle = BookingLifecycle(MockStorage())
    today = date.today()

    print_section("1. Create booking")
    booking = await lifecycle.create(
        {
            "type": BookingType.CRUISE,
            "item_id": "cruise-001",
            "item_name": "Mediterranean Explorer",
            "agent_id": "agent-001",
            "agent_name": "Priya Sharma",
            "customer_name": "Rahul Mehta",
            "customer_email": "rahul.mehta@example.com",
            "customer_phone": "+91 98765 43210",
            "booking_date": today,
            "travel_date": today + timedelta(days=90),
            "total_amount": 125000,
            "guests": 2,
            "region": "Mumbai",
            "special_requests": "Sea-facing cabin <b>please</b>",
        }
    )
    console.print(f"[green]✓[/green] {booking.booking_reference} created for {booking.customer_name}")
    console.print(f"[dim]Commission:[/dim] {format_currency(booking.commission_amount)}")

    print_section("2. Confirm booking")
    booking = await lifecycle.update_status(booking.id, BookingStatus.CONFIRMED, "agent-001", "Priya Sharma")
    console.print(f"[green]✓[/green] Status: {booking.status.value}")
    for document in booking.documents:
        console.print(f"[dim]{document.name}:[/dim] {document.url}")

    print_section("3. Cancel booking")
    result = await lifecycle.cancel(booking.id, "customer request", "agent-001", "Priya Sharma")
    console.print(
        f"[green]✓[/green] Status: {result.booking.status.value}, payment: {result.booking.payment_status.value}"
    )
    console.print(
        f"[dim]Refund:[/dim] {result.refund.refund_id} {format_currency(result.refund.amount)} "
        f"({result.refund.status.value}, ~{result.refund.estimated_days} days)"
    )

    table = Table(title="Timeline", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Description")
    table.add_column("By", style="magenta")
    for event in result.booking.display_timeline:
        table.add_row(str(event.sequence), event.type.value, event.description, event.user_name or event.user_id)
    console.print()
    console.print(table)

    analytics = await lifecycle.get_analytics()
    console.print(
        f"\n[bold]Bookings:[/bold] {analytics.total_bookings}  "
        f"[bold]Conversion:[/bold] {format_percentage(analytics.conversion_rate)}  "
        f"[bold]Revenue:[/bold] {format_currency(analytics.total_revenue)}"
    )


@app.command("config")
def show_config():
    """Show the effective configuration."""
    try:
        config = get_config()
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"{config.app_name} {config.app_version}", box=box.ROUNDED, show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.masked().items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)

    if config.use_remote_storage and not config.has_remote_credentials:
        console.print("[yellow]Remote storage requested without credentials; demo mode will be used[/yellow]")


if __name__ == "__main__":
    app()
