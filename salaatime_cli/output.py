from __future__ import annotations

from datetime import datetime

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .hijri import approximate_hijri
from .methods import METHODS, CalculationConfig
from .models import (
    PRAYER_KEYS,
    PRAYER_LABELS,
    DayInstants,
    Location,
    NextPrayerState,
    PrayerKey,
    TimeFormat,
)
from .prayer_logic import describe_state, format_countdown


def format_time_for_display(value: str, time_format: TimeFormat) -> str:
    if time_format == "24h" or value == "--:--":
        return value

    parsed = datetime.strptime(value, "%H:%M")
    rendered = parsed.strftime("%I:%M %p")
    return rendered[1:] if rendered.startswith("0") else rendered


def _row_style(
    key: PrayerKey,
    instants: DayInstants,
    state: NextPrayerState | None,
    now: datetime,
) -> str | None:
    value = instants.get(key)
    if value is None:
        return "red"
    if state is None:
        return None
    if state.key == key and not state.is_tomorrow:
        return "bold green"
    if state.is_tomorrow and key == "fajr":
        return "bold green"
    if value.absolute_minutes <= now.hour * 60 + now.minute:
        return "dim"
    return None


def build_prayer_table(
    instants: DayInstants,
    state: NextPrayerState | None,
    time_format: TimeFormat,
    now: datetime,
) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=False)
    table.add_column("Prayer", style="bold")
    table.add_column("Time", justify="right")

    for key in PRAYER_KEYS:
        display_time = format_time_for_display(instants.display(key), time_format)
        value = instants.get(key)
        if value is not None and value.day_offset:
            display_time += f" ({value.day_offset:+d}d)"

        name = PRAYER_LABELS[key]
        if state is not None and state.is_tomorrow and key == "fajr":
            name = "Fajr (tomorrow)"
            display_time = format_time_for_display(state.time, time_format)

        table.add_row(name, display_time, style=_row_style(key, instants, state, now))

    return table


def render_today(
    console: Console,
    location: Location,
    instants: DayInstants,
    state: NextPrayerState | None,
    calculation: CalculationConfig,
    time_format: TimeFormat,
    now: datetime,
    show_hijri: bool = True,
    hijri_offset: int = 0,
) -> None:
    resolved = calculation.resolve()
    title = Text(location.describe(), style="bold")
    subtitle = (
        f"{instants.date.isoformat()} | {METHODS[resolved.method].name} | "
        f"Asr: {calculation.asr} | UTC{instants.utc_offset:+g}"
    )
    parts: list = [title, subtitle]
    if show_hijri:
        hijri = approximate_hijri(instants.date, hijri_offset)
        parts.append(Text(f"{hijri} AH (approx.)", style="dim"))

    parts.append(build_prayer_table(instants, state, time_format, now))

    for key, exc in instants.failures.items():
        parts.append(Text(f"{PRAYER_LABELS[key]}: {exc}", style="red"))

    if state is not None and state.has_data:
        parts.append(Text(f"Next: {state.label} in {describe_state(state)}", style="bold yellow"))
    elif state is not None:
        parts.append(Text(f"Next prayer unavailable: {state.reason}", style="red"))

    console.print(Panel(Group(*parts), title="SalaaTime", border_style="blue"))


def build_next_panel(
    location: Location,
    state: NextPrayerState,
    time_format: TimeFormat,
) -> Panel:
    if not state.has_data:
        body = Group(
            Text(f"Location: {location.describe()}", style="cyan"),
            Text("Next Prayer: N/A", style="bold red"),
            Text(state.reason or "No data", style="red"),
        )
        return Panel(body, title="SalaaTime Next", border_style="red")

    next_time = format_time_for_display(state.time, time_format)
    if state.is_tomorrow:
        next_time += " (tomorrow)"
    countdown = format_countdown(state.remaining)

    body = Group(
        Text(f"Location: {location.describe()}", style="cyan"),
        Text(f"Next Prayer: {state.label}", style="bold green"),
        Text(f"At: {next_time}", style="bold"),
        Text(f"Remaining: {describe_state(state)}", style="white"),
        Text(f"Countdown: {countdown}", style="bold yellow"),
    )
    return Panel(body, title="SalaaTime Next", border_style="green")


def build_methods_table() -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Method", style="bold")
    table.add_column("Name")
    table.add_column("Fajr", justify="right")
    table.add_column("Maghrib", justify="right")
    table.add_column("Isha", justify="right")

    for key, params in METHODS.items():
        table.add_row(
            key,
            params.name,
            f"{params.fajr_angle:g}°",
            params.describe_maghrib(),
            params.describe_isha(),
        )
    return table
