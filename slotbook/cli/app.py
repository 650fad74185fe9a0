"""
Main CLI application using Typer.
"""

import asyncio
import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Iterator, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_store import JsonDataStore
from ..adapters.notifier import OutboxNotifier
from ..config import AppConfig, load_config
from ..domain.exceptions import SchedulingError
from ..domain.models import (
    Booking,
    BookingStatus,
    NotificationKind,
    RecurrencePattern,
    RecurrenceRule,
    parse_date,
    parse_time,
)
from ..services.booking_engine import BookingEngine

app = typer.Typer(
    name="slotbook",
    help="Find bookable time slots and schedule single or recurring appointments",
    add_completion=False
)

console = Console()

SAMPLE_DATA = Path(__file__).parent.parent / "adapters" / "sample_data.json"

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
DataOption = Annotated[
    Optional[Path],
    typer.Option("--data", "-d", help="JSON data file. Defaults to data_file from the config"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")]


@dataclass
class _Session:
    config: AppConfig
    store: JsonDataStore
    engine: BookingEngine
    notifier: OutboxNotifier


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@contextmanager
def _open_session(config_file: Optional[Path], data_file: Optional[Path], verbose: bool) -> Iterator[_Session]:
    """Load config and data file; the data file stays locked until the block exits."""
    config = load_config(config_file)
    _configure_logging("DEBUG" if verbose else config.log_level)

    with JsonDataStore.open(
        data_file or config.data_file,
        timezone=config.timezone,
        lock_timeout=config.scheduling.lock_timeout_seconds,
    ) as store:
        notifier = OutboxNotifier()
        engine = BookingEngine.from_config(
            config,
            booking_store=store.bookings,
            schedule_store=store.schedules,
            service_catalog=store.services,
            notifier=notifier,
        )
        yield _Session(config=config, store=store, engine=engine, notifier=notifier)


def _fail(message: object) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)


def _report_notifications(notifier: OutboxNotifier) -> None:
    for intent in notifier.drain():
        console.print(f"[dim]→ {intent.kind.value} notification queued for booking #{intent.booking_id}[/dim]")


def _bookings_table(title: str, bookings: List[Booking], session: _Session) -> Table:
    staff_names = session.store.staff_names()
    service_names = session.store.service_names()

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Min", justify="right")
    table.add_column("Staff")
    table.add_column("Service")
    table.add_column("Status")

    for booking in bookings:
        staff = "-" if booking.staff_id is None else staff_names.get(booking.staff_id, str(booking.staff_id))
        table.add_row(
            str(booking.id),
            booking.date.isoformat(),
            booking.start_time.strftime("%H:%M"),
            str(booking.duration_minutes),
            staff,
            service_names.get(booking.service_id, str(booking.service_id)),
            booking.status.value,
        )
    return table


@app.command()
def init(
    data_file: Annotated[Path, typer.Option("--data", "-d", help="Where to write the data file")] = Path("bookings.json"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing data file")] = False,
):
    """
    Create a data file with sample services, staff and bookings.
    """
    if data_file.exists() and not force:
        _fail(f"{data_file} already exists, use --force to overwrite it")

    shutil.copyfile(SAMPLE_DATA, data_file)
    console.print(f"[green]✓ Sample data written to {data_file}[/green]")


@app.command()
def slots(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    service: Annotated[int, typer.Option("--service", "-s", help="Service id")],
    staff: Annotated[Optional[int], typer.Option("--staff", help="Staff id; omit for unassigned services")] = None,
    free_only: Annotated[bool, typer.Option("--free-only", help="Hide taken slots")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the bookable slots for a service on one day.

    Examples:

        slotbook slots 2024-01-08 --service 1 --staff 1

        slotbook slots 2024-01-08 --service 1 --free-only
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        found = asyncio.run(session.engine.availability(parse_date(day), service, staff))

    if free_only:
        found = [slot for slot in found if slot.is_available]

    if not found:
        console.print(
            "[yellow]⚠ No slots available.[/yellow]\n"
            "The staff member may not be working that day."
        )
        return

    table = Table(title=f"Slots on {day}", show_header=True, header_style="bold cyan")
    table.add_column("Start", style="bold")
    table.add_column("End")
    table.add_column("Status")
    for slot in found:
        status = "[green]free[/green]" if slot.is_available else "[red]taken[/red]"
        table.add_row(
            slot.time_range.start.format("HH:mm"),
            slot.time_range.end.format("HH:mm"),
            status,
        )

    free = sum(1 for slot in found if slot.is_available)
    console.print()
    console.print(table)
    console.print(f"\n[bold green]{free}[/bold green] of {len(found)} slot(s) free\n")


@app.command()
def schedule(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    staff: Annotated[Optional[int], typer.Option("--staff", help="Staff id; all staff when omitted")] = None,
    service: Annotated[Optional[int], typer.Option("--service", "-s", help="Size slots for this service")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show working hours and slot counts per staff member.
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        schedules = asyncio.run(session.engine.staff_schedule(parse_date(day), staff, service))

    names = session.store.staff_names()
    table = Table(title=f"Staff schedule on {day}", show_header=True, header_style="bold cyan")
    table.add_column("Staff", style="bold yellow")
    table.add_column("Hours")
    table.add_column("Free", justify="right")
    table.add_column("Taken", justify="right")

    for entry in schedules:
        if entry.working_interval is None:
            hours = "[dim]not working[/dim]"
        else:
            hours = (
                f"{entry.working_interval.start.format('HH:mm')} - "
                f"{entry.working_interval.end.format('HH:mm')}"
            )
        free = sum(1 for slot in entry.slots if slot.is_available)
        table.add_row(
            names.get(entry.staff_id) or str(entry.staff_id),
            hours,
            str(free),
            str(len(entry.slots) - free),
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    service: Annotated[int, typer.Option("--service", "-s", help="Service id")],
    staff: Annotated[Optional[int], typer.Option("--staff", help="Staff id")] = None,
    customer: Annotated[Optional[int], typer.Option("--customer", help="Customer id")] = None,
    notes: Annotated[str, typer.Option("--notes", help="Free-text notes")] = "",
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Book a single appointment.
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        outcome = asyncio.run(
            session.engine.book(
                service_id=service,
                day=parse_date(day),
                start_time=parse_time(start),
                staff_id=staff,
                customer_id=customer,
                notes=notes,
            )
        )
        if not outcome.created:
            _fail(f"booking rejected ({outcome.reason.value})")
        session.store.save()

    booking = outcome.booking
    staff = session.store.staff_names().get(booking.staff_id, "-")
    console.print(Panel.fit(
        f"[bold green]✓ Booking #{booking.id} created[/bold green]\n\n"
        f"[bold]When:[/bold] {booking.date.isoformat()} {booking.start_time.strftime('%H:%M')} "
        f"({booking.duration_minutes} min)\n"
        f"[bold]Staff:[/bold] {staff}\n"
        f"[bold]Status:[/bold] {booking.status.value}",
        title="Booking"
    ))
    _report_notifications(session.notifier)


@app.command()
def recurring(
    start_date: Annotated[str, typer.Argument(help="First occurrence (YYYY-MM-DD)")],
    end_date: Annotated[str, typer.Argument(help="Last possible occurrence (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    service: Annotated[int, typer.Option("--service", "-s", help="Service id")],
    pattern: Annotated[RecurrencePattern, typer.Option("--pattern", "-p", help="Repeat pattern")] = RecurrencePattern.WEEKLY,
    staff: Annotated[Optional[int], typer.Option("--staff", help="Staff id")] = None,
    customer: Annotated[Optional[int], typer.Option("--customer", help="Customer id")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="Minutes; defaults to the service duration")] = None,
    notes: Annotated[str, typer.Option("--notes", help="Free-text notes")] = "",
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Book a weekly, biweekly or monthly series. Conflicting dates are skipped.

    Examples:

        slotbook recurring 2024-01-01 2024-01-22 10:00 --service 1 --staff 1
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        rule = RecurrenceRule(
            pattern=pattern,
            start_date=parse_date(start_date),
            end_date=parse_date(end_date),
            start_time=parse_time(start),
            service_id=service,
            staff_id=staff,
            customer_id=customer,
            duration_minutes=duration,
            notes=notes,
        )
        result = asyncio.run(session.engine.book_recurring(rule))
        session.store.save()

    total = len(result.outcomes)
    console.print(
        f"[bold green]✓ Created {len(result.created)} of {total} occurrence(s)[/bold green] "
        f"[dim](group {result.group_id[:8]})[/dim]"
    )

    if result.skipped:
        table = Table(title="Skipped occurrences", show_header=True, header_style="bold yellow")
        table.add_column("Date")
        table.add_column("Reason")
        for skipped in result.skipped:
            table.add_row(skipped.date.isoformat(), skipped.reason.value)
        console.print(table)

    _report_notifications(session.notifier)


@app.command()
def status(
    booking_id: Annotated[int, typer.Argument(help="Booking id")],
    new_status: Annotated[BookingStatus, typer.Argument(help="New status")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Confirm, complete or cancel a booking.
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        booking = asyncio.run(session.engine.update_status(booking_id, new_status))
        session.store.save()

    console.print(f"[green]✓ Booking #{booking.id} is now {booking.status.value}[/green]")
    _report_notifications(session.notifier)


@app.command()
def reschedule(
    booking_id: Annotated[int, typer.Argument(help="Booking id")],
    day: Annotated[Optional[str], typer.Option("--date", help="New date (YYYY-MM-DD)")] = None,
    start: Annotated[Optional[str], typer.Option("--time", help="New start time (HH:MM)")] = None,
    staff: Annotated[Optional[int], typer.Option("--staff", help="New staff id")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="New duration in minutes")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Move a booking to another date, time or staff member.

    Options left out keep their current value.

    Examples:

        slotbook reschedule 3 --time 14:00

        slotbook reschedule 3 --date 2024-01-09 --staff 2
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        outcome = asyncio.run(
            session.engine.reschedule(
                booking_id,
                day=parse_date(day) if day else None,
                start_time=parse_time(start) if start else None,
                staff_id=staff,
                duration_minutes=duration,
            )
        )
        if not outcome.created:
            _fail(f"move rejected ({outcome.reason.value})")
        session.store.save()

    booking = outcome.booking
    console.print(
        f"[green]✓ Booking #{booking.id} moved to {booking.date.isoformat()} "
        f"{booking.start_time.strftime('%H:%M')} ({booking.duration_minutes} min)[/green]"
    )
    _report_notifications(session.notifier)


@app.command()
def conflicts(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    duration: Annotated[int, typer.Option("--duration", help="Duration in minutes")],
    staff: Annotated[Optional[int], typer.Option("--staff", help="Staff id; all bookings when omitted")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    List active bookings that overlap a proposed interval.
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        found = asyncio.run(
            session.engine.check_conflicts(
                day=parse_date(day),
                start_time=parse_time(start),
                duration_minutes=duration,
                staff_id=staff,
            )
        )

    if not found:
        console.print("[green]✓ No conflicts[/green]")
        return

    console.print(_bookings_table("Conflicting bookings", found, session))


@app.command()
def bookings(
    day: Annotated[Optional[str], typer.Option("--date", help="Only this date (YYYY-MM-DD)")] = None,
    staff: Annotated[Optional[int], typer.Option("--staff", help="Only this staff id")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    List bookings, cancelled ones included.
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        found = asyncio.run(
            session.engine.list_bookings(parse_date(day) if day else None, staff)
        )

    if not found:
        console.print("[yellow]No bookings found.[/yellow]")
        return

    console.print(_bookings_table("Bookings", found, session))


@app.command()
def notify(
    booking_id: Annotated[int, typer.Argument(help="Booking id")],
    kind: Annotated[NotificationKind, typer.Option("--kind", "-k", help="Notification kind")] = NotificationKind.REMINDER,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Queue a confirmation, reminder or cancellation notification.
    """
    with _handle_errors(), _open_session(config_file, data_file, verbose) as session:
        asyncio.run(session.engine.send_notification(booking_id, kind))

    _report_notifications(session.notifier)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
