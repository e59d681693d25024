# scripts/smoke.py
"""
Smoke Test Script for the jsonbridge pipeline.

Usage
-----
1. Run against the built-in sample document:
    $ python scripts/smoke.py

2. Run against a local file with a blocks registry file:
    $ python scripts/smoke.py --file data.json --blocks blocks.json
"""

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path

from dotenv import load_dotenv

from jsonbridge.core.errors import JsonBridgeError
from jsonbridge.core.registry import BlockRegistry
from jsonbridge.pipelines.json_processor import JsonProcessor

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("Loaded .env file")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# --------------------------------------------------------------------------- #
# Test Data
# --------------------------------------------------------------------------- #
DEFAULT_BLOCKS = {"users": "id_user", "contacts": "id_contact", "countries": "code"}
DEFAULT_DOCUMENT = {
    "company": "Acme",
    "users": [
        {
            "id_user": 1,
            "name": "Ada",
            "contacts": [{"id_contact": 10, "countries": {"code": "UK"}}],
        },
        {"id_user": 2, "name": "Linus", "contacts": {"id_contact": 11}},
    ],
}


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run jsonbridge Smoke Test")
    parser.add_argument("--file", "-f", type=str, help="Path to an input JSON document")
    parser.add_argument("--blocks", "-b", type=str, help="Path to a blocks registry file")
    args = parser.parse_args()

    # 1. Prepare Input Data
    registry = (
        BlockRegistry.from_file(args.blocks)
        if args.blocks
        else BlockRegistry.from_mapping(DEFAULT_BLOCKS)
    )
    processor = JsonProcessor(registry, cycle_policy="warn")

    # 2. Execution Phase
    try:
        if args.file:
            print(f"\nUsing input file: {args.file}")
            result = processor.process_file(args.file)
        else:
            print("\nUsing the built-in sample document (no --file provided)")
            result = processor.process_object(DEFAULT_DOCUMENT)
    except (JsonBridgeError, ValueError, OSError) as exc:
        print(f"\nPipeline Crashed: {exc}")
        traceback.print_exc()
        return

    # 3. Inspection Phase
    print("\n" + "=" * 60)
    print("Pipeline Finished Successfully!")
    print("=" * 60)

    print("\nInsertion order:")
    for i, (name, items) in enumerate(result["ordered_blocks"], start=1):
        print(f"  {i}. {name}: {len(items)} instance(s)")
    if result["unresolved"]:
        print(f"  (cyclic: {', '.join(result['unresolved'])})")

    print("\nTrace Log:")
    for i, snap in enumerate(result["blackboard"].traces()):
        if snap.note:
            print(f"  {i+1}. {snap.note}")

    print("\nRewritten document:")
    print(json.dumps(result["document"], indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
