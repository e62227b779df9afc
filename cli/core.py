"""Shared helpers for CLI commands."""
from __future__ import annotations

import argparse
import json
import sys
import time
from typing import Any, Dict

from boxport.catalog_client import CatalogClient
from boxport.config import load_config
from boxport.models import Box


def get_client(args: argparse.Namespace) -> CatalogClient:
    """Build a catalog client: CLI args > env > ~/.boxport/auth.json."""
    config = load_config(
        base_url=getattr(args, "url", None),
        token=getattr(args, "token", None),
    )
    if getattr(args, "debug", False):
        from dataclasses import replace
        config = replace(config, debug=True)
    deadline = getattr(args, "deadline", None)
    if deadline:
        config = config.with_deadline(time.monotonic() + float(deadline))
    return CatalogClient(config)


def box_summary(box: Box) -> Dict[str, Any]:
    """Subset of box fields shown by the listing commands."""
    return {
        "name": box.name,
        "id": box.id_str,
        "owner": box.owner,
        "visibility": box.visibility.value if box.visibility else None,
        "created": box.created.isoformat() if box.created else None,
        "updated": box.extra.get("updated"),
    }


def output_json(data: Any) -> None:
    """Write a command result as JSON to stdout."""
    json.dump(data, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
