import logging
from pathlib import Path
from typing import Optional
import typer
from charsheet.engine.errors import describe_result, dump_results
from charsheet.engine.exceptions import CharsheetError, DiceNotationError
from charsheet.engine.loader import load_sheet, save_sheet
from charsheet.engine.requirements import sorted_required_user_values, unsatisfied_user_values
from charsheet.engine.resolver import calculate_all_values
from charsheet.engine.scripts import get_evaluator
from charsheet.engine.settings import Settings, load_settings
from charsheet.engine.sheet import CharacterSheet
from charsheet.engine.trace import TraceSession
from charsheet.engine.values import parse_dice
from charsheet.tools.validate import app as tools_app

app = typer.Typer(add_completion=False)
app.add_typer(tools_app, name="tools", help="Sheet validation and schema export")

def _sheet_arg():
    return typer.Argument(..., exists=True, dir_okay=False, help="Sheet file (.json/.yaml/.yml)")

def _fail(msg: str) -> None:
    typer.echo(f"[ERROR] {msg}", err=True)
    raise typer.Exit(code=1)

def _load(path: Path) -> CharacterSheet:
    try:
        return load_sheet(path)
    except CharsheetError as e:
        _fail(str(e))

def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else Settings()

@app.callback()
def main(ctx: typer.Context,
         verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    settings = load_settings()
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = settings

@app.command()
def calculate(ctx: typer.Context,
              sheet: Path = _sheet_arg(),
              evaluator: Optional[str] = typer.Option(None, "--evaluator", "-e", help="literal | expression"),
              explain: bool = typer.Option(False, "--explain", help="Show how each property was resolved"),
              as_json: bool = typer.Option(False, "--json", help="Print the result map as JSON")):
    settings = _settings(ctx)
    try:
        ev = get_evaluator(evaluator or settings.evaluator)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--evaluator")
    cs = _load(sheet)
    trace = TraceSession() if (explain or settings.explain) else None
    results = calculate_all_values(cs, evaluator=ev, trace=trace)
    if as_json:
        typer.echo(dump_results(results, indent=2))
    else:
        for name in sorted(results):
            typer.echo(f"{name}: {describe_result(results[name])}")
    if trace is not None:
        typer.echo("[Explain]")
        for line in trace.dump():
            typer.echo(f"  {line}")

@app.command()
def required(sheet: Path = _sheet_arg(),
             missing_only: bool = typer.Option(False, "--missing-only", help="Hide inputs the sheet already supplies")):
    cs = _load(sheet)
    names = unsatisfied_user_values(cs) if missing_only else sorted_required_user_values(cs)
    for name in names:
        typer.echo(name)

@app.command("set-value")
def set_value(sheet: Path = _sheet_arg(), name: str = typer.Argument(...),
              value: str = typer.Argument(..., help="Integer or dice notation, e.g. 14 or 2d6+1")):
    cs = _load(sheet)
    try:
        cs.set_user_value(name, parse_dice(value))
    except DiceNotationError as e:
        raise typer.BadParameter(str(e), param_hint="VALUE")
    save_sheet(cs, sheet)
    typer.echo(f"{name} = {cs.user_values[name]}")

@app.command("unset-value")
def unset_value(sheet: Path = _sheet_arg(), name: str = typer.Argument(...)):
    cs = _load(sheet)
    cs.remove_user_value(name)
    save_sheet(cs, sheet)
    typer.echo(f"Removed user value: {name}")

@app.command()
def activate(sheet: Path = _sheet_arg(), feature_set: str = typer.Argument(...)):
    cs = _load(sheet)
    try:
        cs.activate(feature_set)
    except CharsheetError as e:
        _fail(str(e))
    save_sheet(cs, sheet)
    typer.echo(f"Activated: {feature_set}")

@app.command()
def deactivate(sheet: Path = _sheet_arg(), feature_set: str = typer.Argument(...)):
    cs = _load(sheet)
    try:
        cs.deactivate(feature_set)
    except CharsheetError as e:
        _fail(str(e))
    save_sheet(cs, sheet)
    typer.echo(f"Deactivated: {feature_set}")

if __name__ == "__main__":
    app()
