"""Command-line interface for Larder."""

from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Any, Optional, Type, TypeVar

import typer
from pydantic import BaseModel, ValidationError

from larder.barcode import OpenFoodFactsClient, missing_nutrition_fields, resolve_barcode_lookup
from larder.clock import utc_now
from larder.config import get_settings
from larder.logging_utils import configure_from_settings
from larder.models.pantry import InventoryItem, PantrySnapshot, Recipe
from larder.planner.inventory import archive_inventory_item, upsert_inventory_item
from larder.planner.meal_plan import DEFAULT_DRAFT_LIMIT, draft_weekly_meal_plan
from larder.planner.pipeline import demand_for_snapshot, shopping_list_for_snapshot
from larder.planner.recipes import upsert_recipe, validate_and_normalize_recipe
from larder.planner.recommendations import rank_recipe_recommendations
from larder.planner.shopping import STORE_SECTIONS, group_shopping_items_by_store_section
from larder.retention import run_retention_jobs
from larder.sync.envelope import (
    SYNC_FILENAME,
    create_sync_envelope,
    migrate_sync_envelope,
    resolve_sync_conflict,
)

app = typer.Typer(help="Larder pantry planning, sync, and retention commands.")

PRETTY_OPTION = typer.Option(False, "--pretty", help="Pretty-print output JSON.")
DATE_FORMATS = ["%Y-%m-%d"]
DATETIME_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S%z"]


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _write_json(path: str, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")


ModelT = TypeVar("ModelT", bound=BaseModel)


def _load_model(model: Type[ModelT], path: str, label: str) -> ModelT:
    try:
        return model.model_validate(_read_json(path))
    except ValidationError as exc:
        typer.secho(f"Invalid {label} {path}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _load_snapshot(path: str) -> PantrySnapshot:
    return _load_model(PantrySnapshot, path, "pantry snapshot")


def _load_state(path: str) -> dict[str, Any]:
    payload = _read_json(path)
    if not isinstance(payload, dict):
        typer.secho(f"{path} must contain a JSON object.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return payload


def _emit(payload: Any, pretty: bool) -> None:
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json", by_alias=True)


def _save_collection(snapshot_path: str, key: str, records: list[Any]) -> None:
    """Rewrite one collection of a snapshot file, leaving every other key as stored."""

    raw = _load_state(snapshot_path)
    raw[key] = [record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in records]
    _write_json(snapshot_path, raw)


@app.command()
def recommend(
    snapshot_path: str,
    now: Optional[datetime] = typer.Option(None, "--now", formats=DATETIME_FORMATS, help="Reference time (UTC)."),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """
    Rank recipes by expiry urgency and inventory coverage for a pantry snapshot JSON file.
    """
    snapshot = _load_snapshot(snapshot_path)
    ranked = rank_recipe_recommendations(snapshot.recipes, snapshot.inventory, now=now)
    _emit(_dump(ranked), pretty)


@app.command("plan-week")
def plan_week(
    snapshot_path: str,
    week_start: datetime = typer.Option(..., "--week-start", formats=DATE_FORMATS),
    limit: int = typer.Option(DEFAULT_DRAFT_LIMIT, "--limit", min=1, help="Recipes to schedule."),
    now: Optional[datetime] = typer.Option(None, "--now", formats=DATETIME_FORMATS),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Draft a week of meal-plan entries from the top ranked recipes."""

    snapshot = _load_snapshot(snapshot_path)
    ranked = rank_recipe_recommendations(snapshot.recipes, snapshot.inventory, now=now)
    entries = draft_weekly_meal_plan(ranked, week_start.date(), limit=limit)
    _emit([_dump(entry) for entry in entries], pretty)


@app.command()
def demand(
    snapshot_path: str,
    week_start: Optional[datetime] = typer.Option(None, "--week-start", formats=DATE_FORMATS),
    week_end: Optional[datetime] = typer.Option(None, "--week-end", formats=DATE_FORMATS),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Aggregate ingredient demand for the snapshot's meal plan."""

    snapshot = _load_snapshot(snapshot_path)
    rows = demand_for_snapshot(
        snapshot,
        week_start=week_start.date() if week_start else None,
        week_end=week_end.date() if week_end else None,
    )
    _emit([_dump(row) for row in rows], pretty)


@app.command("shopping-list")
def shopping_list(
    snapshot_path: str,
    week_start: Optional[datetime] = typer.Option(None, "--week-start", formats=DATE_FORMATS),
    week_end: Optional[datetime] = typer.Option(None, "--week-end", formats=DATE_FORMATS),
    group: bool = typer.Option(False, "--group", help="Group items by store section."),
    section: Optional[str] = typer.Option(
        None, "--section", help=f"Only list items in one store section ({', '.join(STORE_SECTIONS)})."
    ),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Derive shopping gaps from meal-plan demand and current inventory."""

    if section is not None and section not in STORE_SECTIONS:
        raise typer.BadParameter(
            f"unknown store section {section!r}; expected one of {', '.join(STORE_SECTIONS)}",
            param_hint="--section",
        )

    snapshot = _load_snapshot(snapshot_path)
    items = shopping_list_for_snapshot(
        snapshot,
        week_start=week_start.date() if week_start else None,
        week_end=week_end.date() if week_end else None,
    )
    if section is not None:
        items = [item for item in items if item.store_section == section]
    if group:
        grouped = group_shopping_items_by_store_section(items)
        _emit({name: [_dump(item) for item in rows] for name, rows in grouped.items()}, pretty)
        return
    _emit([_dump(item) for item in items], pretty)


@app.command("validate-recipe")
def validate_recipe(
    recipe_path: str,
    snapshot_path: str,
    save: bool = typer.Option(False, "--save", help="Store the recipe in the snapshot when it is valid."),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Check a recipe JSON file against the snapshot's inventory and normalize its units."""

    recipe = _load_model(Recipe, recipe_path, "recipe")
    snapshot = _load_snapshot(snapshot_path)
    result = validate_and_normalize_recipe(recipe, snapshot.inventory)
    _emit(_dump(result), pretty)
    if result.errors:
        raise typer.Exit(code=1)
    if save:
        _save_collection(snapshot_path, "recipes", upsert_recipe(snapshot.recipes, recipe))


@app.command("upsert-item")
def upsert_item(snapshot_path: str, item_path: str, pretty: bool = PRETTY_OPTION) -> None:
    """Add an inventory item JSON file to the snapshot, replacing any item with the same id."""

    item = _load_model(InventoryItem, item_path, "inventory item")
    snapshot = _load_snapshot(snapshot_path)
    _save_collection(snapshot_path, "inventory", upsert_inventory_item(snapshot.inventory, item))
    _emit(_dump(item), pretty)


@app.command("archive-item")
def archive_item(
    snapshot_path: str,
    item_id: str,
    now: Optional[datetime] = typer.Option(None, "--now", formats=DATETIME_FORMATS, help="Archive time (UTC)."),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Stamp an inventory item in the snapshot as archived."""

    snapshot = _load_snapshot(snapshot_path)
    if not any(item.id == item_id for item in snapshot.inventory):
        typer.secho(f"No inventory item {item_id} in {snapshot_path}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    inventory = archive_inventory_item(snapshot.inventory, item_id, now or utc_now())
    _save_collection(snapshot_path, "inventory", inventory)
    _emit(_dump(next(item for item in inventory if item.id == item_id)), pretty)


@app.command("export-envelope")
def export_envelope(
    state_path: str,
    device_id: Optional[str] = typer.Option(None, "--device-id"),
    source: Optional[str] = typer.Option(None, "--source"),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help=f"Also write the envelope to DIR/{SYNC_FILENAME}."
    ),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Wrap an exported state JSON file in a sync envelope."""

    settings = get_settings()
    envelope = create_sync_envelope(
        _load_state(state_path),
        device_id=device_id or settings.device_id,
        source=source or settings.sync_source,
    )
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        target = os.path.join(output_dir, SYNC_FILENAME)
        _write_json(target, _dump(envelope))
    _emit(_dump(envelope), pretty)


@app.command("migrate-envelope")
def migrate_envelope(envelope_path: str, pretty: bool = PRETTY_OPTION) -> None:
    """Upgrade a stored sync envelope to the current schema."""

    _emit(_dump(migrate_sync_envelope(_read_json(envelope_path))), pretty)


@app.command("sync-resolve")
def sync_resolve(
    local_path: Optional[str] = typer.Option(None, "--local", help="Local envelope JSON file."),
    remote_path: Optional[str] = typer.Option(None, "--remote", help="Remote envelope JSON file."),
    drift_tolerance_ms: Optional[int] = typer.Option(None, "--drift-tolerance-ms", min=0),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Decide whether the local or remote snapshot should win."""

    settings = get_settings()
    local = migrate_sync_envelope(_read_json(local_path)) if local_path else None
    remote = migrate_sync_envelope(_read_json(remote_path)) if remote_path else None
    tolerance = drift_tolerance_ms if drift_tolerance_ms is not None else settings.sync_drift_tolerance_ms
    _emit(_dump(resolve_sync_conflict(local, remote, drift_tolerance_ms=tolerance)), pretty)


@app.command()
def retention(
    state_path: str,
    now: Optional[datetime] = typer.Option(None, "--now", formats=DATETIME_FORMATS),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Archive stale records and drop expired archives and pricing history."""

    settings = get_settings()
    outcome = run_retention_jobs(
        _load_state(state_path),
        now=now,
        archive_after_days=settings.retention_archive_after_days,
        delete_after_archive_days=settings.retention_delete_after_archive_days,
        retain_months=settings.pricing_retain_months,
    )
    _emit({"state": outcome.state, "report": _dump(outcome.report)}, pretty)


@app.command()
def barcode(
    code: str = typer.Argument(..., help="Barcode to look up."),
    snapshot_path: Optional[str] = typer.Option(
        None, "--snapshot", help="Pantry snapshot checked for a local match first."
    ),
    pretty: bool = PRETTY_OPTION,
) -> None:
    """Resolve a barcode against local inventory, then Open Food Facts."""

    settings = get_settings()
    local_match = None
    if snapshot_path:
        snapshot = _load_snapshot(snapshot_path)
        local_match = next((item for item in snapshot.inventory if item.barcode == code), None)

    client = OpenFoodFactsClient()
    resolution = resolve_barcode_lookup(
        code,
        local_match,
        client.lookup_by_barcode,
        max_attempts=settings.barcode_max_attempts,
    )
    _emit(_dump(resolution), pretty)
    if not resolution.ok:
        raise typer.Exit(code=2)
    missing = missing_nutrition_fields(resolution.draft.nutrition)
    if missing:
        typer.secho(f"Draft is missing nutrition values: {', '.join(missing)}", fg=typer.colors.YELLOW, err=True)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m larder`."""
    configure_from_settings(get_settings())
    app(prog_name="larder", args=argv)


if __name__ == "__main__":
    main()
