"""
Main CLI application using Typer.
"""

from pathlib import Path
from typing import Annotated, NoReturn, Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..adapters.booking_store import JsonFileBookingStore
from ..config import SchedulingSettings, get_default_config_path
from ..domain.exceptions import BookingEngineError
from ..domain.models import Booking, BookingStatus
from ..logger import configure_logging
from ..services.booking_service import BookingService

app = typer.Typer(
    name="bookingengine",
    help="List bookable appointment slots and manage bookings",
    add_completion=False
)

console = Console()

DEFAULT_LEDGER_FILE = Path("bookings.json")

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
LedgerOption = Annotated[Path, typer.Option("--ledger", "-l", help="Path to the booking ledger JSON file")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]

STATUS_STYLES = {
    BookingStatus.PENDING: "yellow",
    BookingStatus.CONFIRMED: "green",
    BookingStatus.CANCELLED: "dim",
}


def _build_service(config_file: Optional[Path], ledger_file: Path, verbose: bool) -> BookingService:
    configure_logging(verbose)
    config_path = config_file or get_default_config_path()
    settings = SchedulingSettings.load_from_yaml(config_path)
    return BookingService(settings=settings, store=JsonFileBookingStore(ledger_file))


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _print_booking(booking: Booking, timezone: str, title: str) -> None:
    start = booking.start.in_timezone(timezone)
    end = booking.end.in_timezone(timezone)
    style = STATUS_STYLES[booking.status]
    console.print(f"\n[bold]{title}[/bold]")
    console.print(f"   ID: {booking.id}")
    console.print(f"   Type: {booking.appointment_type_name} ({booking.appointment_type_id})")
    console.print(f"   When: {start.format('dddd, YYYY-MM-DD HH:mm')} - {end.format('HH:mm')}")
    console.print(f"   Customer: {booking.customer.name} <{booking.customer.email}>")
    console.print(f"   Status: [{style}]{booking.status.value}[/{style}]\n")


@app.command()
def types(
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List the enabled appointment types.
    """
    try:
        configure_logging(verbose)
        settings = SchedulingSettings.load_from_yaml(config_file or get_default_config_path())
        appointment_types = settings.build_catalog().list_enabled()
    except (OSError, ValueError) as e:
        _fail(e)

    if not appointment_types:
        console.print("[yellow]No appointment types are enabled.[/yellow]")
        return

    table = Table(
        title="Appointment Types",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Duration", justify="right")
    table.add_column("Buffers (before/after)", justify="right", style="dim")

    for appointment_type in appointment_types:
        table.add_row(
            appointment_type.id,
            appointment_type.name,
            f"{appointment_type.duration_minutes} min",
            f"{appointment_type.buffers.before_minutes}/{appointment_type.buffers.after_minutes} min",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD) in the provider's time zone")],
    appointment_type: Annotated[str, typer.Option("--type", "-t", help="Appointment type id")],
    days: Annotated[int, typer.Option("--days", "-n", min=1, help="Number of days to search")] = 1,
    config_file: ConfigOption = None,
    ledger_file: LedgerOption = DEFAULT_LEDGER_FILE,
    verbose: VerboseOption = False,
):
    """
    Show available slots for an appointment type.

    Examples:

        bookingengine slots 2024-11-25 --type consultation

        bookingengine slots 2024-11-25 --type pickup --days 7
    """
    try:
        service = _build_service(config_file, ledger_file, verbose)
        start = pendulum.from_format(date, "YYYY-MM-DD")
        end = start.add(days=days - 1)
        day_slots = service.list_available_slots_between(
            start.to_date_string(),
            end.to_date_string(),
            appointment_type,
        )
    except (BookingEngineError, OSError, ValueError) as e:
        _fail(e)

    console.print()
    if not day_slots:
        console.print(
            "[yellow]⚠ No available slots found.[/yellow]\n"
            "Try a later date or a longer period."
        )
        console.print()
        return

    total = sum(len(day.slots) for day in day_slots)
    console.print(f"[bold green]✓ {total} available slot(s) found:[/bold green]\n")
    for day in day_slots:
        console.print(f"[bold]{day.date.format('dddd, YYYY-MM-DD')}[/bold]")
        console.print("  " + "  ".join(slot.wall_clock() for slot in day.slots))
    console.print()


@app.command()
def book(
    appointment_type: Annotated[str, typer.Argument(help="Appointment type id")],
    start: Annotated[str, typer.Argument(help="Start time, e.g. 2024-11-25T09:30 (provider time)")],
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    email: Annotated[str, typer.Option("--email", help="Customer email")],
    phone: Annotated[str, typer.Option("--phone", help="Customer phone")] = "",
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes for the provider")] = None,
    config_file: ConfigOption = None,
    ledger_file: LedgerOption = DEFAULT_LEDGER_FILE,
    verbose: VerboseOption = False,
):
    """
    Book a slot for a customer.
    """
    try:
        service = _build_service(config_file, ledger_file, verbose)
        booking = service.create_booking(
            appointment_type,
            start,
            name=name,
            email=email,
            phone=phone,
            notes=notes,
        )
    except (BookingEngineError, OSError, ValueError) as e:
        _fail(e)

    _print_booking(booking, service.timezone, "✓ Booking created")
    console.print(service.settings.confirmation_message)


@app.command()
def confirm(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
    ledger_file: LedgerOption = DEFAULT_LEDGER_FILE,
    verbose: VerboseOption = False,
):
    """
    Confirm a pending booking.
    """
    try:
        service = _build_service(config_file, ledger_file, verbose)
        booking = service.confirm(booking_id)
    except (BookingEngineError, OSError, ValueError) as e:
        _fail(e)

    _print_booking(booking, service.timezone, "✓ Booking confirmed")


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    reason: Annotated[Optional[str], typer.Option("--reason", help="Cancellation reason")] = None,
    config_file: ConfigOption = None,
    ledger_file: LedgerOption = DEFAULT_LEDGER_FILE,
    verbose: VerboseOption = False,
):
    """
    Cancel a booking.
    """
    try:
        service = _build_service(config_file, ledger_file, verbose)
        booking = service.cancel(booking_id, reason)
    except (BookingEngineError, OSError, ValueError) as e:
        _fail(e)

    _print_booking(booking, service.timezone, "✓ Booking cancelled")


@app.command()
def bookings(
    status: Annotated[Optional[BookingStatus], typer.Option("--status", "-s", help="Only show bookings with this status")] = None,
    config_file: ConfigOption = None,
    ledger_file: LedgerOption = DEFAULT_LEDGER_FILE,
    verbose: VerboseOption = False,
):
    """
    List bookings, newest first.
    """
    try:
        service = _build_service(config_file, ledger_file, verbose)
        records = service.list_bookings(status)
    except (BookingEngineError, OSError, ValueError) as e:
        _fail(e)

    if not records:
        console.print("[yellow]No bookings found.[/yellow]")
        return

    table = Table(
        title="Bookings",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="dim")
    table.add_column("When")
    table.add_column("Type")
    table.add_column("Customer")
    table.add_column("Status")

    for booking in records:
        start = booking.start.in_timezone(service.timezone)
        style = STATUS_STYLES[booking.status]
        table.add_row(
            booking.id,
            start.format("YYYY-MM-DD HH:mm"),
            booking.appointment_type_name,
            f"{booking.customer.name} <{booking.customer.email}>",
            f"[{style}]{booking.status.value}[/{style}]",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
