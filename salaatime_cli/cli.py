from __future__ import annotations

import json
import logging
import time
from datetime import date, datetime
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler

from . import __version__
from .config import CONFIG_PATH, Config, load_config, save_config
from .errors import ConfigurationError, SalaaTimeError
from .methods import (
    ASR_FACTORS,
    HIGH_LATITUDE_RULES,
    METHODS,
    OVERRIDE_KEYS,
    OVERRIDE_PAIRS,
    normalize_asr,
    normalize_high_latitude,
    normalize_method,
)
from .models import PRAYER_KEYS, Location, TimeFormat
from .notify import run_notify_daemon
from .output import build_methods_table, build_next_panel, render_today
from .prayer_logic import offset_timezone
from .tracker import PrayerTracker, fixed_offset, system_utc_offset

app = typer.Typer(
    help="SalaaTime CLI: prayer times calculated on your machine",
    no_args_is_help=False,
    invoke_without_command=True,
    add_completion=True,
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
        force=True,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"salaatime-cli {__version__}")
        raise typer.Exit()


def _validate_time_format(value: str) -> TimeFormat:
    if value not in ("12h", "24h"):
        raise typer.BadParameter("time format must be either '12h' or '24h'")
    return value  # type: ignore[return-value]


def _validate_coordinates(lat: float, lon: float) -> None:
    if not (-90.0 <= lat <= 90.0):
        raise typer.BadParameter("latitude must be between -90 and 90")
    if not (-180.0 <= lon <= 180.0):
        raise typer.BadParameter("longitude must be between -180 and 180")


def _parse_minutes(
    values: list[str],
    allowed: set[str] | frozenset[str],
    option: str,
) -> dict[str, float]:
    parsed: dict[str, float] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        if not sep or key not in allowed:
            raise typer.BadParameter(
                f"{option} expects KEY=NUMBER with KEY one of {', '.join(sorted(allowed))}"
            )
        try:
            parsed[key] = float(raw)
        except ValueError as exc:
            raise typer.BadParameter(f"{option}: {raw!r} is not a number") from exc
    return parsed


def _build_tracker(config: Config) -> PrayerTracker:
    offset_provider = (
        system_utc_offset if config.utc_offset is None else fixed_offset(config.utc_offset)
    )
    return PrayerTracker(
        location=config.location,
        config=config.calculation(),
        utc_offset=offset_provider,
        skip_sunrise=config.skip_sunrise,
    )


def _now(config: Config) -> datetime:
    if config.utc_offset is None:
        return datetime.now()
    return datetime.now(offset_timezone(config.utc_offset))


def _load_tracker() -> tuple[Config, PrayerTracker]:
    config = load_config()
    try:
        return config, _build_tracker(config)
    except SalaaTimeError as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(code=1)


def _print_config(config: Config) -> None:
    payload = config.to_dict()
    console.print_json(json.dumps(payload, ensure_ascii=False, indent=2))
    console.print(f"[dim]Config path:[/dim] {CONFIG_PATH}")


def _show_day(day: date | None) -> None:
    config, tracker = _load_tracker()
    now = _now(config)
    today = tracker.local_date(now)
    target = day or today

    try:
        instants = tracker.instants_for(target) if target == today else tracker.compute(target)
    except SalaaTimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    state = tracker.state_at(now) if target == today else None
    render_today(
        console=console,
        location=config.location,
        instants=instants,
        state=state,
        calculation=config.calculation(),
        time_format=config.time_format,
        now=now,
        show_hijri=config.show_hijri,
        hijri_offset=config.hijri_offset,
    )


@app.callback(invoke_without_command=True)
def root(
    ctx: typer.Context,
    day: Optional[datetime] = typer.Option(
        None,
        "--date",
        formats=["%Y-%m-%d"],
        help="Show prayer times for another date (YYYY-MM-DD).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Show today's prayer times."""
    _ = version
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        _show_day(day.date() if day else None)


@app.command("next")
def next_command(
    once: bool = typer.Option(False, "--once", help="Show next prayer once and exit."),
) -> None:
    """Show next prayer and a live countdown."""
    config, tracker = _load_tracker()

    def _current_panel() -> Any:
        state = tracker.state_at(_now(config))
        return build_next_panel(
            location=config.location,
            state=state,
            time_format=config.time_format,
        )

    if once:
        console.print(_current_panel())
        return

    try:
        with Live(_current_panel(), console=console, refresh_per_second=4) as live:
            while True:
                live.update(_current_panel())
                time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


@app.command("methods")
def methods_command() -> None:
    """List the supported calculation methods and their angles."""
    console.print(build_methods_table())
    console.print(f"[dim]Asr methods:[/dim] {', '.join(ASR_FACTORS)}")
    console.print(f"[dim]High latitude rules:[/dim] {', '.join(HIGH_LATITUDE_RULES)}")


@app.command("config")
def config_command(
    show: bool = typer.Option(False, "--show", help="Print current configuration."),
    lat: Optional[float] = typer.Option(None, "--lat"),
    lon: Optional[float] = typer.Option(None, "--lon"),
    label: Optional[str] = typer.Option(None, "--label", help="Display name for the location."),
    method: Optional[str] = typer.Option(
        None,
        "--method",
        help=f"Calculation method: {', '.join(METHODS)}.",
    ),
    asr: Optional[str] = typer.Option(None, "--asr", help="Asr method: Standard or Hanafi."),
    high_latitude: Optional[str] = typer.Option(
        None,
        "--high-latitude",
        help=f"High latitude rule: {', '.join(HIGH_LATITUDE_RULES)}.",
    ),
    utc_offset: Optional[float] = typer.Option(
        None,
        "--utc-offset",
        help="Fixed UTC offset in hours, positive east of Greenwich.",
    ),
    system_offset: bool = typer.Option(
        False,
        "--system-offset",
        help="Follow the system time zone instead of a fixed offset.",
    ),
    dhuhr_minutes: Optional[float] = typer.Option(None, "--dhuhr-minutes"),
    tune: List[str] = typer.Option(
        [],
        "--tune",
        help="Per-prayer minute adjustment, e.g. --tune fajr=2 (repeatable).",
    ),
    override: List[str] = typer.Option(
        [],
        "--override",
        help="Custom method parameter, e.g. --override fajr_angle=17 (repeatable).",
    ),
    time_format: Optional[str] = typer.Option(
        None,
        "--time-format",
        help="Display format: 12h or 24h.",
    ),
    skip_sunrise: Optional[bool] = typer.Option(
        None,
        "--skip-sunrise/--include-sunrise",
        help="Whether sunrise can be the next prayer.",
    ),
    show_hijri: Optional[bool] = typer.Option(None, "--hijri/--no-hijri"),
    hijri_offset: Optional[int] = typer.Option(None, "--hijri-offset"),
) -> None:
    """Set location, calculation method, and display preferences."""
    config = load_config()

    has_update_flags = any(
        [
            lat is not None,
            lon is not None,
            label is not None,
            method is not None,
            asr is not None,
            high_latitude is not None,
            utc_offset is not None,
            system_offset,
            dhuhr_minutes is not None,
            tune,
            override,
            time_format is not None,
            skip_sunrise is not None,
            show_hijri is not None,
            hijri_offset is not None,
        ]
    )

    if not has_update_flags:
        _print_config(config)
        return

    if lat is not None or lon is not None:
        new_lat = config.location.lat if lat is None else lat
        new_lon = config.location.lon if lon is None else lon
        _validate_coordinates(new_lat, new_lon)
        new_label = config.location.label if label is None else label or None
        config.location = Location(lat=new_lat, lon=new_lon, label=new_label)
    elif label is not None:
        config.location = Location(config.location.lat, config.location.lon, label or None)

    try:
        if method is not None:
            config.method = normalize_method(method)
            if config.method != "Custom":
                config.overrides = {}
        if asr is not None:
            config.asr_method = normalize_asr(asr)
        if high_latitude is not None:
            config.high_latitude = normalize_high_latitude(high_latitude)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if system_offset:
        config.utc_offset = None
    elif utc_offset is not None:
        if not (-12.0 <= utc_offset <= 14.0):
            raise typer.BadParameter("UTC offset must be between -12 and 14 hours")
        config.utc_offset = utc_offset

    if dhuhr_minutes is not None:
        config.dhuhr_minutes = dhuhr_minutes
    if tune:
        config.tune.update(_parse_minutes(tune, set(PRAYER_KEYS), "--tune"))
    if override:
        if config.method != "Custom":
            raise typer.BadParameter("--override requires --method Custom")
        parsed = _parse_minutes(override, OVERRIDE_KEYS, "--override")
        for key in parsed:
            partner = OVERRIDE_PAIRS.get(key)
            if partner and partner not in parsed:
                config.overrides.pop(partner, None)
        config.overrides.update(parsed)

    if time_format is not None:
        config.time_format = _validate_time_format(time_format)
    if skip_sunrise is not None:
        config.skip_sunrise = skip_sunrise
    if show_hijri is not None:
        config.show_hijri = show_hijri
    if hijri_offset is not None:
        config.hijri_offset = hijri_offset

    try:
        config.calculation().resolve()
    except SalaaTimeError as exc:
        raise typer.BadParameter(str(exc)) from exc

    save_config(config)
    console.print("[green]Configuration saved.[/green]")
    _print_config(config)


@app.command("notify")
def notify_command() -> None:
    """Daemon mode: send a system notification at each prayer time."""
    config, tracker = _load_tracker()
    try:
        run_notify_daemon(
            console=console,
            tracker=tracker,
            time_format=config.time_format,
            clock=lambda: _now(config),
        )
    except KeyboardInterrupt:
        console.print("\n[dim]Notification daemon stopped.[/dim]")


if __name__ == "__main__":
    app()
