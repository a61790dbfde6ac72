from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

script_path = Path(__file__).resolve()
backend_root = script_path.parents[1]
project_root = backend_root.parent
sys.path.append(str(backend_root))

from app.main import app


def main() -> None:
    parser = argparse.ArgumentParser(description="Write the progress API OpenAPI document")
    parser.add_argument(
        "--output",
        type=Path,
        default=project_root / "docs" / "openapi.json",
    )
    args = parser.parse_args()

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(app.openapi(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
