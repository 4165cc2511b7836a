from __future__ import annotations
from pathlib import Path
import json
from charsheet.engine.errors import ResultMapAdapter
from charsheet.engine.sheet import CharacterSheet, FeatureSet
from charsheet.engine.values import StaticValueAdapter

def export_schemas(out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    schemas = {
        "CharacterSheet.schema.json": CharacterSheet.model_json_schema(by_alias=True),
        "FeatureSet.schema.json": FeatureSet.model_json_schema(by_alias=True),
        "StaticValueType.schema.json": StaticValueAdapter.json_schema(by_alias=True),
        "CalculationResults.schema.json": ResultMapAdapter.json_schema(by_alias=True),
    }
    written: list[Path] = []
    for name, schema in schemas.items():
        path = out_dir / name
        path.write_text(json.dumps(schema, indent=2), encoding="utf-8")
        written.append(path)
    return written

if __name__ == "__main__":
    root = Path(__file__).resolve().parents[3] / "docs" / "schemas"
    export_schemas(root)
    print(f"Exported schemas to {root}")
