import json
import sys
from pathlib import Path


def main() -> int:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.append(str(repo_root / "backend"))

    from app.schemas.progress import (  # noqa: WPS433
        OverallStats,
        ProgressResponse,
        attempt_records_adapter,
    )

    schemas = {
        "attempt_records.schema.json": attempt_records_adapter.json_schema(),
        "progress_response.schema.json": ProgressResponse.model_json_schema(),
        "overall_stats.schema.json": OverallStats.model_json_schema(),
    }

    out_dir = repo_root / "docs" / "progress_schemas"
    out_dir.mkdir(parents=True, exist_ok=True)

    for filename, schema in schemas.items():
        path = out_dir / filename
        path.write_text(json.dumps(schema, indent=2, sort_keys=True), encoding="utf-8")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
