"""
Main CLI application using Typer.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.mock_backend import MockSalonBackend
from ..adapters.rest_backend import RestSalonBackend
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SalonBookingError
from ..domain.models import ANY_STAFF, BookingDraft, parse_date
from ..domain.workflow import (
    DateSelected,
    InfoSubmitted,
    ServiceSelected,
    StaffSelected,
    Step,
    TimeSelected,
)
from ..services.availability import AvailabilityService
from ..services.progress_store import FileProgressStore
from ..services.scheduler import AsyncioScheduler
from ..services.workflow import BookingWorkflow

app = typer.Typer(
    name="salonbook",
    help="Check salon availability and book appointments",
    add_completion=False
)

console = Console()

BACK = "b"

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use the bundled sample salon instead of the backend.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Salon appointment booking from the command line.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_backend(config: AppConfig, mock: bool):
    if mock:
        console.print("[yellow]⚠  Mock mode: using sample salon data[/yellow]\n")
        return MockSalonBackend(timezone=config.timezone)

    return RestSalonBackend(
        base_url=config.backend.base_url,
        api_key=config.backend.api_key,
        timeout_seconds=config.backend.timeout_seconds,
    )


def _build_availability(config: AppConfig, mock: bool) -> AvailabilityService:
    return AvailabilityService(
        backend=_build_backend(config, mock),
        salon_id=config.salon_id,
        settings=config.availability_settings(),
    )


def _parse_date_option(value: str):
    try:
        return parse_date(value)
    except ValueError as e:
        console.print(f"[red]Invalid date {value!r}: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def days(
    week: Annotated[int, typer.Option("--week", "-w", help="Shift the window by this many weeks")] = 0,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the open days in the booking window.
    """
    try:
        config = _load_config(config_file)
        availability = _build_availability(config, mock)
        asyncio.run(availability.load())

        open_days = availability.get_available_days(week_offset=week)
        if not open_days:
            console.print("[yellow]⚠ No bookable days in this window.[/yellow]")
            return

        console.print(f"[bold green]✓ {len(open_days)} bookable day(s):[/bold green]\n")
        for day in open_days:
            console.print(f"  {day.format('dddd, DD.MM.YYYY')}")
        console.print()

    except (FileNotFoundError, ValueError, SalonBookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Day to check (YYYY-MM-DD)")],
    service: Annotated[str, typer.Option("--service", "-s", help="Service name")],
    staff: Annotated[Optional[str], typer.Option("--staff", help="Only check this staff id")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show the time slots of a day and whether they can be booked.
    """
    day = _parse_date_option(date)

    try:
        config = _load_config(config_file)
        availability = _build_availability(config, mock)

        async def load():
            await availability.load()
            await availability.load_day(day)

        asyncio.run(load())

        if availability.find_service(service) is None:
            console.print(f"[bold red]Error:[/bold red] Unknown service: {service}")
            raise typer.Exit(1)

        draft = BookingDraft(service=service)
        candidates = availability.get_time_slots_for_day(day, service)
        if not candidates:
            console.print("[yellow]⚠ The salon is closed on this day.[/yellow]")
            return

        table = Table(
            title=f"{service} on {day.format('dddd, DD.MM.YYYY')}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Time", style="bold")
        table.add_column("Available")
        table.add_column("Free staff", style="dim")

        for time in candidates:
            available = availability.is_slot_available(draft, day, time, staff)
            free = ", ".join(employee.name for employee in availability.available_staff(draft, day, time))
            table.add_row(
                time,
                "[green]yes[/green]" if available else "[red]no[/red]",
                free or "-",
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, SalonBookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def staff(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the staff and the services they perform.
    """
    try:
        config = _load_config(config_file)
        availability = _build_availability(config, mock)
        asyncio.run(availability.load())

        if not availability.staff:
            console.print("[yellow]No staff configured for this salon.[/yellow]")
            return

        table = Table(title="Staff", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold yellow")
        table.add_column("Services")

        for employee in availability.staff:
            table.add_row(employee.id, employee.name, ", ".join(sorted(employee.services)))

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, SalonBookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def services(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the service catalog.
    """
    try:
        config = _load_config(config_file)
        availability = _build_availability(config, mock)
        asyncio.run(availability.load())

        table = Table(title="Services", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="bold yellow")
        table.add_column("Duration")
        table.add_column("Price")
        table.add_column("Active")

        for service in availability.services:
            table.add_row(
                service.name,
                f"{service.duration} min",
                str(service.price),
                "yes" if service.active else "[dim]no[/dim]",
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, SalonBookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _choose(prompt: str, options: List[str], allow_back: bool = True) -> Optional[int]:
    """
    Prompt for a numbered option.

    Returns:
        0-based index, or None when the user asked to go back
    """
    for idx, option in enumerate(options, 1):
        console.print(f"  {idx}. {option}")

    hint = f" (number{', b = back' if allow_back else ''})"
    while True:
        answer = typer.prompt(f"\n→ {prompt}{hint}").strip().lower()
        if allow_back and answer == BACK:
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return int(answer) - 1
        console.print("[yellow]Please pick one of the listed numbers.[/yellow]")


async def _run_wizard(workflow: BookingWorkflow, week: int) -> None:
    """
    Walk through the booking steps until success or exit.
    """
    availability = workflow.availability

    while not workflow.session.exited and workflow.session.step != Step.SUCCESS:
        session = workflow.session
        draft = session.draft
        console.print()

        try:
            if session.step == Step.SERVICE:
                console.print("[bold]1️⃣  Choose a service[/bold]")
                active = availability.active_services
                choice = _choose("Service", [f"{s.name} ({s.duration} min)" for s in active])
                if choice is None:
                    workflow.go_back()
                    continue
                await workflow.advance(ServiceSelected(active[choice].name))

            elif session.step == Step.DATE:
                console.print("[bold]2️⃣  Choose a date[/bold]")
                open_days = availability.get_available_days(week_offset=week)
                if not open_days:
                    console.print("[yellow]⚠ No bookable days available.[/yellow]")
                    workflow.go_back()
                    continue
                choice = _choose("Date", [day.format("dddd, DD.MM.YYYY") for day in open_days])
                if choice is None:
                    workflow.go_back()
                    continue
                await workflow.advance(DateSelected(open_days[choice]))

            elif session.step == Step.TIME:
                console.print(f"[bold]3️⃣  Choose a time[/bold] ({draft.date.format('DD.MM.YYYY')})")
                times = workflow.available_time_slots()
                if not times:
                    console.print("[yellow]⚠ No free slots on this day, pick another date.[/yellow]")
                    workflow.go_back()
                    continue
                choice = _choose("Time", times)
                if choice is None:
                    workflow.go_back()
                    continue
                await workflow.advance(TimeSelected(times[choice]))

            elif session.step == Step.STAFF:
                console.print("[bold]4️⃣  Choose a staff member[/bold]")
                free = availability.available_staff(draft, draft.date, draft.time)
                choice = _choose("Staff", ["Any available"] + [employee.name for employee in free])
                if choice is None:
                    workflow.go_back()
                    continue
                staff_id = ANY_STAFF if choice == 0 else free[choice - 1].id
                await workflow.advance(StaffSelected(staff_id))

            elif session.step == Step.INFO:
                console.print("[bold]5️⃣  Your details[/bold] (enter b to go back)")
                name = typer.prompt("→ Name", default=draft.customer.name or "").strip()
                if name.lower() == BACK:
                    workflow.go_back()
                    continue
                phone = typer.prompt("→ Phone", default=draft.customer.phone or "").strip()
                await workflow.advance(InfoSubmitted(name=name, phone=phone))

            elif session.step == Step.CONFIRM:
                console.print("[bold]6️⃣  Confirm[/bold]")
                console.print(f"   Service: {draft.service}")
                console.print(f"   When:    {draft.date.format('dddd, DD.MM.YYYY')} {draft.time}")
                console.print(f"   Staff:   {draft.staff}")
                console.print(f"   Name:    {draft.customer.name} ({draft.customer.phone})")

                if not typer.confirm("\n→ Book this appointment?", default=True):
                    workflow.go_back()
                    continue

                result = await workflow.commit()
                if not result.succeeded:
                    console.print(f"[bold red]✗ {result.error}[/bold red]")
                    if not result.retryable or not typer.confirm("→ Try again?", default=True):
                        return
                    # Conflicts send the customer back to choose another time
                    while workflow.session.step not in (Step.TIME, Step.SERVICE):
                        workflow.go_back()

        except SalonBookingError as e:
            console.print(f"[bold red]✗ {e}[/bold red]")

    if workflow.session.step == Step.SUCCESS:
        console.print(f"\n[bold green]✓ Booking request sent![/bold green] Reference: {workflow.session.booking_id}\n")
    else:
        console.print("\n[yellow]Booking cancelled.[/yellow]\n")


@app.command()
def book(
    week: Annotated[int, typer.Option("--week", "-w", help="Start the date list this many weeks ahead")] = 0,
    session_id: Annotated[Optional[str], typer.Option("--session", help="Resume progress saved under this session id")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book an appointment interactively.

    Examples:

        # Interactive booking against the configured backend
        salonbook book

        # Try it out with the sample salon
        salonbook book --mock

        # Resume a booking started earlier
        salonbook book --session my-session
    """
    try:
        config = _load_config(config_file)
        backend = _build_backend(config, mock)
        availability = AvailabilityService(
            backend=backend,
            salon_id=config.salon_id,
            settings=config.availability_settings(),
        )
        progress_store = FileProgressStore(
            directory=config.progress.directory,
            session_id=session_id or uuid.uuid4().hex,
            ttl_minutes=config.progress.ttl_minutes,
        )

        async def run():
            workflow = BookingWorkflow(
                availability=availability,
                backend=backend,
                progress_store=progress_store,
                scheduler=AsyncioScheduler(),
                auto_advance_delay=0,
                commit_timeout=config.booking.commit_timeout_seconds,
            )
            session = await workflow.start()
            if session.step != Step.SERVICE:
                console.print(f"[cyan]Resuming your booking at step '{session.step.value}'.[/cyan]")
            await _run_wizard(workflow, week)

        console.print("\n" + "="*60)
        console.print("[bold cyan]💅  Book an appointment[/bold cyan]")
        console.print("="*60)

        asyncio.run(run())

    except (FileNotFoundError, ValueError, SalonBookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command("test-connection")
def check_connection(
    config_file: ConfigOption = None,
):
    """
    Check that the configured salon backend is reachable.
    """
    try:
        config = _load_config(config_file)
        backend = RestSalonBackend(
            base_url=config.backend.base_url,
            api_key=config.backend.api_key,
            timeout_seconds=config.backend.timeout_seconds,
        )

        console.print(f"\n[bold]Connecting to {backend.base_url}...[/bold]\n")
        salon = backend.test_connection(config.salon_id)

        console.print(f"[bold green]✓ Connected.[/bold green] Salon: {salon.get('name', config.salon_id)}\n")

    except (FileNotFoundError, ValueError, SalonBookingError) as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
