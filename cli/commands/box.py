"""Box commands: import, ls, stack, versions, rm."""
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Tuple

from boxport.boxes import import_box
from boxport.logger import BoxportError
from boxport.models import Box
from cli.core import box_summary, get_client, output_json


def _version_key(box: Box) -> Tuple[int, int, int]:
    number = box.version.extra.get("number") if box.version else None
    if not isinstance(number, dict):
        return (0, 0, 0)
    parts = []
    for key in ("major", "minor", "patch"):
        try:
            parts.append(int(number.get(key, 0) or 0))
        except (TypeError, ValueError):
            parts.append(0)
    return (parts[0], parts[1], parts[2])


def cmd_import(args: argparse.Namespace) -> None:
    """Import a box directory, creating or replacing the catalog box."""
    with get_client(args) as client:
        box = import_box(
            client,
            args.path,
            owner=getattr(args, "owner", "") or "",
            as_draft=bool(getattr(args, "as_draft", False)),
            raw_import=bool(getattr(args, "raw", False)),
        )
    file_variables = [
        {"name": v.name, "value": v.value} for v in box.variables if v.is_file
    ]
    output_json({
        "ok": True,
        "id": box.id_str,
        "uri": box.uri or None,
        "file_variables": file_variables,
    })


def cmd_list(args: argparse.Namespace) -> None:
    """List all boxes, or the given box ids; a failing id does not stop the rest."""
    box_ids: List[str] = list(getattr(args, "box_ids", None) or [])
    errors: List[Dict[str, Any]] = []
    with get_client(args) as client:
        if not box_ids:
            boxes = client.get_boxes()
        else:
            boxes = []
            for box_id in box_ids:
                try:
                    boxes.append(client.get_box(box_id))
                except BoxportError as e:
                    print(f"Failed to query box {box_id}: {e}", file=sys.stderr)
                    errors.append({"id": box_id, "error": str(e)})
    output_json({
        "ok": not errors,
        "boxes": [box_summary(b) for b in boxes],
        "errors": errors,
    })


def cmd_stack(args: argparse.Namespace) -> None:
    """List the box stack of a box, the box itself first."""
    with get_client(args) as client:
        boxes = client.get_box_stack(args.box_id)
    ordered = [b for b in boxes if b.id_str == args.box_id]
    ordered += [b for b in boxes if b.id_str != args.box_id]
    output_json({"ok": True, "boxes": [box_summary(b) for b in ordered]})


def cmd_versions(args: argparse.Namespace) -> None:
    """List the versions of a box, oldest first."""
    with get_client(args) as client:
        boxes = client.get_box_versions(args.box_id)
    rows = []
    for b in sorted(boxes, key=_version_key):
        row = box_summary(b)
        row["version"] = "%d.%d.%d" % _version_key(b)
        rows.append(row)
    output_json({"ok": True, "versions": rows})


def cmd_delete(args: argparse.Namespace) -> None:
    """Delete boxes; each id is attempted even if an earlier one failed."""
    results: List[Dict[str, Any]] = []
    with get_client(args) as client:
        for box_id in args.box_ids:
            try:
                client.delete_box(box_id)
                results.append({"id": box_id, "deleted": True})
            except BoxportError as e:
                print(f"FATAL: failed to delete box {box_id}: {e}", file=sys.stderr)
                results.append({"id": box_id, "deleted": False, "error": str(e)})
    output_json({
        "ok": all(r["deleted"] for r in results),
        "results": results,
    })
