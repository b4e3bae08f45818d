"""usermodel command-line interface."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from . import __version__
from .config import Config, ConfigError, load_config, resolve_config_path
from .engine import UserModel
from .events import LoggingEventSink
from .history import policy_from_config, winning_category
from .loader import ModelLoadError, ModelSlot, load_resources
from .logging import configure_logging
from .network import NetworkProbeError, SSIDProbe
from .store import EVENTS_FILENAME, EventLogger, StateStore
from .types import ScrapedPage, Serve, UserModelState

app = typer.Typer(help="On-device page classification and ad eligibility utilities.")
LOGGER = logging.getLogger(__name__)


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None


@dataclass
class Environment:
    config: Config
    store: StateStore
    slot: ModelSlot
    engine: UserModel


@app.callback()
def _usermodel(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to config (env USERMODEL_CONFIG or ~/.config/usermodel/config.yaml).",
        ),
    ] = None,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(config_path=resolved)


@app.command()
def classify(
    ctx: typer.Context,
    page_path: Annotated[Path, typer.Argument(help="JSON file with url, headers and body.")],
) -> None:
    """Classify a scraped page and record its scores in the history."""

    env = _load_environment(_state(ctx))
    page = _read_page(page_path)
    previous = env.store.load()
    state = env.engine.classify_page(previous, page)
    env.store.save(state)

    typer.echo(f"Page: {page.url}")
    if state is previous:
        typer.echo("Result: skipped (model not ready or too few words)")
        return
    typer.echo("Result: recorded")
    typer.echo(f"History: {len(state.page_score_history)}/{env.config.history.capacity}")
    typer.echo(f"Winner over time: {_winner(env, state) or 'none'}")


@app.command()
def visit(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL of the page the user navigated to.")],
) -> None:
    """Update the shopping and search intent flags for a visited URL."""

    env = _load_environment(_state(ctx))
    state = env.store.load()
    state = env.engine.test_shopping_data(state, url)
    state = env.engine.test_search_state(state, url)
    env.store.save(state)
    typer.echo(f"Shopping: {'active' if state.shopping.active else 'inactive'}")
    typer.echo(f"Search: {'active' if state.search.active else 'inactive'}")


@app.command()
def serve(
    ctx: typer.Context,
    window_id: Annotated[
        int | None,
        typer.Option("--window-id", help="Window the notification belongs to."),
    ] = None,
) -> None:
    """Run one eligibility cycle and show an ad when allowed."""

    env = _load_environment(_state(ctx))
    state = env.store.load()
    decision = env.engine.evaluate(state)
    updated = env.engine.check_ready_ad_serve(state, window_id)
    env.store.save(updated)

    typer.echo("Decision:")
    if isinstance(decision, Serve):
        typer.echo("  action: serve")
        typer.echo(f"  category: {decision.category}")
    else:
        typer.echo("  action: suppress")
        typer.echo(f"  reason: {decision.reason.value}")
    if updated.ad_history != state.ad_history:
        typer.echo(f"  ad: {updated.ad_history.last_ad_id}")


@app.command()
def status(ctx: typer.Context) -> None:
    """Display configuration and stored user-model state."""

    cli_state = _state(ctx)
    env = _load_environment(cli_state)
    state = env.store.load()
    context = env.slot.snapshot()

    typer.echo("→ usermodel Status")
    typer.echo(f"Version: {__version__}")
    typer.echo(f"Config path: {resolve_config_path(cli_state.config_path)}")
    typer.echo(f"Root dir: {env.config.root_dir}")
    typer.echo(f"Model: {'ready' if context.ready else 'not ready'}")
    typer.echo("")
    typer.echo(f"Ads enabled: {'yes' if state.ads_enabled else 'no'}")
    typer.echo(f"Ad identifier: {state.ad_uuid or 'none'}")
    frequency = "unset" if state.ad_frequency is None else f"{state.ad_frequency:g}/day"
    typer.echo(f"Ad frequency: {frequency} (stored only)")
    typer.echo(f"History: {len(state.page_score_history)}/{env.config.history.capacity}")
    typer.echo(f"Winner over time: {_winner(env, state) or 'none'}")
    last = state.ad_history
    if last.last_ad_time is not None:
        typer.echo(
            f"Last ad: {last.last_ad_id} ({last.last_ad_category}) "
            f"at {last.last_ad_time.isoformat()}"
        )
    else:
        typer.echo("Last ad: none")
    typer.echo(f"Shopping: {'active' if state.shopping.active else 'inactive'}")
    typer.echo(f"Search: {'active' if state.search.active else 'inactive'}")
    typer.echo(f"Network: {state.network_id or 'unknown'}")


@app.command("reset-history")
def reset_history(ctx: typer.Context) -> None:
    """Forget page scores, ad history and intent flags."""

    env = _load_environment(_state(ctx))
    state = env.engine.remove_all_history(env.store.load())
    env.store.save(state)
    typer.echo("History cleared.")


@app.command("enable-ads")
def enable_ads(ctx: typer.Context) -> None:
    """Enable ads, creating the anonymous identifier if needed."""

    env = _load_environment(_state(ctx))
    state = env.engine.set_ads_enabled(env.store.load(), True)
    env.store.save(state)
    typer.echo(f"Ads enabled (identifier {state.ad_uuid}).")


@app.command("disable-ads")
def disable_ads(ctx: typer.Context) -> None:
    """Disable ads; the anonymous identifier is kept."""

    env = _load_environment(_state(ctx))
    state = env.engine.set_ads_enabled(env.store.load(), False)
    env.store.save(state)
    typer.echo("Ads disabled.")


@app.command()
def frequency(
    ctx: typer.Context,
    ads_per_day: Annotated[float, typer.Argument(help="Preferred number of ads per day.")],
) -> None:
    """Store the ads-per-day preference."""

    env = _load_environment(_state(ctx))
    try:
        state = env.engine.change_ad_frequency(env.store.load(), ads_per_day)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc
    env.store.save(state)
    typer.echo(f"Ad frequency set to {ads_per_day:g}/day.")


@app.command()
def ssid(ctx: typer.Context) -> None:
    """Look up the current wireless network and store it."""

    env = _load_environment(_state(ctx))
    try:
        network_id = SSIDProbe(background=False).lookup()
    except NetworkProbeError as exc:
        typer.secho(f"SSID unavailable: {exc}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(1) from exc
    state = env.engine.on_ssid_received(env.store.load(), network_id)
    env.store.save(state)
    typer.echo(f"Network: {network_id}")


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        state = CLIState(config_path=None)
        ctx.obj = state
    return state


def _load_environment(state: CLIState) -> Environment:
    config = _load_config(state.config_path)
    log_dir = configure_logging(config.logging, config.root_dir)
    event_logger = EventLogger(log_dir / EVENTS_FILENAME) if config.logging.events_file else None
    slot = ModelSlot()
    if config.model.complete:
        try:
            slot.publish(load_resources(config.model))
        except (ModelLoadError, OSError) as exc:
            LOGGER.error("Failed to load category model: %s", exc)
    engine = UserModel(config, slot, event_sink=LoggingEventSink(event_logger))
    return Environment(config=config, store=StateStore(config.root_dir), slot=slot, engine=engine)


def _load_config(path: Path | None) -> Config:
    try:
        return load_config(path)
    except ConfigError as exc:  # pragma: no cover - exercised via CLI tests
        _config_failure(exc)


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


def _read_page(path: Path) -> ScrapedPage:
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        typer.secho(f"Page file not found: {path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None
    except json.JSONDecodeError as exc:
        typer.secho(f"Failed to parse page: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc
    if not isinstance(raw, dict) or not isinstance(raw.get("url"), str):
        typer.secho(
            "Page JSON must be an object with a 'url' string.", fg=typer.colors.RED, err=True
        )
        raise typer.Exit(1)
    return ScrapedPage(
        url=raw["url"],
        headers=_as_lines(raw.get("headers")),
        body=_as_lines(raw.get("body")),
    )


def _as_lines(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(line) for line in value]
    typer.secho("Page headers and body must be strings or lists.", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _winner(env: Environment, state: UserModelState) -> str | None:
    context = env.slot.snapshot()
    if context.model is None:
        return None
    return winning_category(
        state.page_score_history,
        context.model.names,
        policy_from_config(env.config.history),
    )


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
