"""Export JSON schemas for the request and itinerary models."""

import json
from pathlib import Path

from backend.enrichment.models import GenerationRequest, Itinerary, RefinementResult


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for model in (GenerationRequest, Itinerary, RefinementResult):
        schema = model.model_json_schema()
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(schema, f, indent=2, ensure_ascii=False)
        print(f"Exported {model.__name__} schema to {path}")


if __name__ == "__main__":
    main()
