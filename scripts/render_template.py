#!/usr/bin/env python
"""Render a template JSON and a record JSON into a PDF, offline.

Usage:
  python scripts/render_template.py template.json record.json
  python scripts/render_template.py template.json record.json --agency PIXEL --out-dir out/
"""
import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Ensure project root is on sys.path so `cvstudio` package can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from cvstudio.errors import CVStudioError
from cvstudio.logging_config import setup_logging
from cvstudio.schemas.record import Record
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.asset_loader import AssetLoader
from cvstudio.services.composition_service import CompositionService


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render a CV template to PDF")
    parser.add_argument("template", type=Path, help="Template JSON (camelCase wire format)")
    parser.add_argument("record", type=Path, help="Record JSON (flat key/value map with optional photos)")
    parser.add_argument("--agency", default=None, help="Agency display name used in the filename")
    parser.add_argument("--out-dir", type=Path, default=Path("."), help="Directory for the PDF")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


async def render(args) -> Path:
    template = CustomTemplate.model_validate(json.loads(args.template.read_text(encoding="utf-8")))
    record = Record.model_validate(json.loads(args.record.read_text(encoding="utf-8")))

    # Relative page paths resolve against the template file
    composer = CompositionService(loader=AssetLoader(base_dir=args.template.parent, allow_any_host=True))
    document = await composer.compose(record, template, agency_name=args.agency)

    args.out_dir.mkdir(parents=True, exist_ok=True)
    target = args.out_dir / document.filename
    target.write_bytes(document.content)
    return target


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        target = asyncio.run(render(args))
    except CVStudioError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
