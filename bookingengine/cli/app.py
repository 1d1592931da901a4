"""
Main CLI application using Typer.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..domain.catalog import ServiceCatalog
from ..domain.exceptions import BookingEngineError, ConflictError, ConflictKind
from ..domain.models import Booking, BookingStatus, TimeRange
from ..domain.slot_generator import SlotGenerator
from ..services.availability import AvailabilityReporter
from ..services.ledger import BookingLedger

app = typer.Typer(
    name="bookingengine",
    help="Check availability and manage bookings of a resource calendar",
    add_completion=False
)

console = Console()

STATUS_STYLES = {
    BookingStatus.PENDING: "yellow",
    BookingStatus.CONFIRMED: "green",
    BookingStatus.CANCELLED: "red",
    BookingStatus.COMPLETED: "dim",
}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./bookingengine.yaml"),
]


@dataclass
class Engine:
    config: AppConfig
    catalog: ServiceCatalog
    ledger: BookingLedger
    reporter: AvailabilityReporter


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_engine(config_file: Optional[Path]) -> Engine:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    _configure_logging(config.log_level)

    catalog = config.build_catalog()
    ledger = BookingLedger(repository=config.build_repository(), timezone=config.timezone)
    reporter = AvailabilityReporter(
        ledger=ledger,
        catalog=catalog,
        slot_generator=SlotGenerator(config.build_operating_window()),
    )
    return Engine(config=config, catalog=catalog, ledger=ledger, reporter=reporter)


def _load_engine(config_file: Optional[Path]) -> Engine:
    try:
        return _build_engine(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except BookingEngineError as e:
        _fail(e)


def _fail(error: BookingEngineError) -> NoReturn:
    """Print a typed engine error and exit with status 1."""
    if isinstance(error, ConflictError):
        if error.kind == ConflictKind.DUPLICATE_REQUEST:
            console.print(f"[bold yellow]Already booked:[/bold yellow] {error}")
        else:
            console.print(f"[bold yellow]Slot no longer available:[/bold yellow] {error}")
    else:
        console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _parse_day(value: str, tz: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Could not parse date '{value}': {e}[/red]")
        raise typer.Exit(1)


def _parse_instant(value: str, tz: str):
    try:
        return pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse timestamp '{value}': {e}[/red]")
        raise typer.Exit(1)


def _resolve_interval(engine: Engine, service_id: str, start: str, end: Optional[str]) -> TimeRange:
    """Use the explicit end if given, otherwise the service duration."""
    tz = engine.config.timezone
    start_at = _parse_instant(start, tz)
    if end is None:
        return engine.catalog.booking_interval(service_id, start_at)
    return TimeRange(start=start_at, end=_parse_instant(end, tz))


def _print_booking(booking: Booking, title: str) -> None:
    style = STATUS_STYLES[booking.status]
    console.print(f"[bold green]✓ {title}[/bold green]")
    console.print(f"   ID: [bold]{booking.id}[/bold]")
    console.print(f"   Resource: {booking.resource_id}  Subject: {booking.subject_id}  Service: {booking.service_id}")
    console.print(f"   Time: {booking.interval}")
    console.print(f"   Status: [{style}]{booking.status.value}[/{style}]")


@app.command()
def availability(
    resource: Annotated[str, typer.Argument(help="Resource (employee) id")],
    service: Annotated[str, typer.Option("--service", "-s", help="Service id")],
    subject: Annotated[str, typer.Option("--subject", "-u", help="Requesting subject (client) id")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Day (YYYY-MM-DD). Defaults to today.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the report as JSON.")] = False,
    config_file: ConfigOption = None,
):
    """
    Show available and reserved slots of a resource for one day.

    Examples:

        bookingengine availability emp-1 --service haircut --subject client-7 --date 2024-11-25
    """
    engine = _load_engine(config_file)
    tz = engine.config.timezone
    target_day = _parse_day(day, tz) if day else pendulum.today(tz).date()

    try:
        report = engine.reporter.get_availability(
            resource_id=resource,
            service_id=service,
            subject_id=subject,
            day=target_day,
        )
    except BookingEngineError as e:
        _fail(e)

    if as_json:
        console.print_json(json.dumps(report.to_dict()))
        return

    table = Table(
        title=f"Slots for {resource} on {target_day.isoformat()}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Slot", style="bold")
    table.add_column("State")

    own = set(report.own_slots)
    reserved = set(report.reserved_slots)
    for slot in sorted(report.available_slots + report.reserved_slots, key=lambda s: s.start):
        if slot in own:
            state = "[blue]yours[/blue]"
        elif slot in reserved:
            state = "[red]reserved[/red]"
        else:
            state = "[green]available[/green]"
        table.add_row(str(slot), state)

    console.print()
    console.print(table)
    console.print(f"\n{len(report.available_slots)} of {len(reserved) + len(report.available_slots)} slot(s) available.\n")


@app.command()
def reserve(
    resource: Annotated[str, typer.Argument(help="Resource (employee) id")],
    service: Annotated[str, typer.Option("--service", "-s", help="Service id")],
    subject: Annotated[str, typer.Option("--subject", "-u", help="Requesting subject (client) id")],
    start: Annotated[str, typer.Option("--start", help="Start timestamp (ISO-8601)")],
    end: Annotated[Optional[str], typer.Option("--end", help="End timestamp. Defaults to start plus the service duration.")] = None,
    config_file: ConfigOption = None,
):
    """
    Reserve a time window on a resource's calendar.
    """
    engine = _load_engine(config_file)

    try:
        interval = _resolve_interval(engine, service, start, end)
        booking = engine.ledger.reserve(resource, subject, service, interval)
    except BookingEngineError as e:
        _fail(e)

    _print_booking(booking, "Booking created")


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    subject: Annotated[str, typer.Option("--subject", "-u", help="Subject performing the cancellation")],
    config_file: ConfigOption = None,
):
    """
    Cancel a booking. Cancelling twice is harmless.
    """
    engine = _load_engine(config_file)

    try:
        booking = engine.ledger.cancel(booking_id, subject)
    except BookingEngineError as e:
        _fail(e)

    _print_booking(booking, "Booking cancelled")


@app.command()
def set_status(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    status: Annotated[BookingStatus, typer.Argument(help="New status", case_sensitive=False)],
    config_file: ConfigOption = None,
):
    """
    Change the stored status of a booking.
    """
    engine = _load_engine(config_file)

    try:
        booking = engine.ledger.update_status(booking_id, status)
    except BookingEngineError as e:
        _fail(e)

    _print_booking(booking, "Status updated")


@app.command()
def reschedule(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    start: Annotated[str, typer.Option("--start", help="New start timestamp (ISO-8601)")],
    end: Annotated[Optional[str], typer.Option("--end", help="New end timestamp. Defaults to start plus the service duration.")] = None,
    config_file: ConfigOption = None,
):
    """
    Move an active booking to a new time window.
    """
    engine = _load_engine(config_file)

    try:
        booking = engine.ledger.get(booking_id)
        interval = _resolve_interval(engine, booking.service_id, start, end)
        booking = engine.ledger.reschedule(booking_id, interval)
    except BookingEngineError as e:
        _fail(e)

    _print_booking(booking, "Booking rescheduled")


@app.command()
def bookings(
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Only bookings on this day (YYYY-MM-DD)")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of bookings")] = None,
    config_file: ConfigOption = None,
):
    """
    List bookings with the status shown to users right now.
    """
    engine = _load_engine(config_file)
    tz = engine.config.timezone
    target_day = _parse_day(day, tz) if day else None

    try:
        rows = engine.reporter.describe_bookings(engine.ledger.list_bookings(day=target_day, limit=limit))
    except BookingEngineError as e:
        _fail(e)

    if not rows:
        console.print("[yellow]No bookings found.[/yellow]")
        return

    table = Table(title="Bookings", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Resource", style="bold yellow")
    table.add_column("Subject")
    table.add_column("Service")
    table.add_column("Time")
    table.add_column("Status")

    for booking, shown in rows:
        style = STATUS_STYLES[shown]
        table.add_row(
            booking.id,
            booking.resource_id,
            booking.subject_id,
            booking.service_id,
            booking.interval.start.in_timezone(tz).format("DD.MM.YYYY HH:mm"),
            f"[{style}]{shown.value}[/{style}]",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def services(
    config_file: ConfigOption = None,
):
    """
    List all configured services.
    """
    engine = _load_engine(config_file)

    if not len(engine.catalog):
        console.print("[yellow]No services defined in the config file.[/yellow]")
        return

    table = Table(
        title="Configured services",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Duration", justify="right")
    table.add_column("Price", justify="right", style="dim")

    for service in engine.catalog:
        price = f"{service.price:.2f}" if service.price is not None else "-"
        table.add_row(service.id, service.name, f"{service.duration_minutes} min", price)

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
