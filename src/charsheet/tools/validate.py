from __future__ import annotations
from pathlib import Path
from collections import Counter
from typing import List
import typer
from charsheet.engine.exceptions import SheetFormatError
from charsheet.engine.index import build_modifier_index
from charsheet.engine.loader import iter_sheet_files, load_sheet
from charsheet.engine.requirements import unsatisfied_user_values
from charsheet.engine.sheet import CharacterSheet

app = typer.Typer(add_completion=False)


def check_sheet(sheet: CharacterSheet, *, strict: bool = False) -> tuple[list[str], list[str]]:
    """Returns (errors, warnings) for one parsed sheet."""
    errors: list[str] = []
    warnings: list[str] = []

    # 1) Modifiers shadowed by an earlier definition of the same property
    index = build_modifier_index(sheet.active_features)
    for col in index.collisions:
        warnings.append(f"modifier collision: {col.describe()}")

    # 2) Feature set names must be unique across active and inactive lists
    counts = Counter(fs.name for fs in sheet.active_features + sheet.inactive_features)
    for name, n in sorted(counts.items()):
        if n > 1:
            errors.append(f"feature set name '{name}' is used {n} times")

    # 3) Inputs the rules need but the operator has not supplied
    missing = unsatisfied_user_values(sheet)
    if missing:
        msg = f"missing required user values: {', '.join(missing)}"
        (errors if strict else warnings).append(msg)

    # 4) Scripts reading themselves can never resolve
    for name, ref in index.items():
        if name in ref.dependencies:
            warnings.append(f"'{name}' in {ref} depends on itself")
    return errors, warnings


@app.command("validate")
def validate(
    paths: List[Path] = typer.Argument(..., help="Sheet files or directories"),
    strict: bool = typer.Option(False, "--strict", help="Treat missing required user values as errors"),
):
    ok = True
    seen = 0
    for root in paths:
        for fp in iter_sheet_files(root):
            seen += 1
            try:
                sheet = load_sheet(fp)
            except SheetFormatError as e:
                ok = False
                typer.echo(f"[ERROR] {e}", err=True)
                continue
            errors, warnings = check_sheet(sheet, strict=strict)
            for msg in warnings:
                typer.echo(f"[WARN] {fp}: {msg}")
            for msg in errors:
                typer.echo(f"[ERROR] {fp}: {msg}", err=True)
            ok = ok and not errors
    if seen == 0:
        typer.echo("[ERROR] no sheet files found", err=True)
        raise typer.Exit(code=1)
    if not ok:
        raise typer.Exit(code=1)
    typer.echo("Sheets validated successfully.")


@app.command("export-schemas")
def export_schemas_cmd(out: Path = typer.Option(Path("docs/schemas"), "--out")):
    from charsheet.tools.export_schemas import export_schemas
    export_schemas(out)
    typer.echo(f"Exported schemas to {out}")


if __name__ == "__main__":
    app()
