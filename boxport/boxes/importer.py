"""
boxes/importer.py - Import a box directory into the catalog.

    load box.yaml -> look up catalog copy -> reconcile -> upload artifacts -> submit
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from boxport.boxes.artifacts import upload_artifacts
from boxport.boxes.interfaces import BoxCatalog
from boxport.boxes.loader import load_box
from boxport.boxes.reconcile import ImportPlan, reconcile
from boxport.boxes.remote import fetch_remote_box
from boxport.logger import ContextLogger
from boxport.models import Box

logger = logging.getLogger(__name__)


def submit_box(catalog: BoxCatalog, plan: ImportPlan) -> Box:
    box = plan.box
    submit = catalog.upload_appliance_box if plan.appliance else catalog.upload_box
    existing_id = plan.existing_id

    if box.version is not None:
        logger.warning("[box_import] box version handling is not fully functional yet")
        if box.version.box is not None and box.version.box != box.id:
            existing_id = str(box.version.box)
    else:
        box.created = datetime.now(timezone.utc)

    return submit(box, existing_id)


def import_box(
    catalog: BoxCatalog,
    box_dir: str | Path,
    owner: str = "",
    as_draft: bool = False,
    raw_import: bool = False,
) -> Box:
    """Import the box in @box_dir, creating it or replacing its catalog copy.

    Args:
        catalog: catalog API (see boxes.interfaces.BoxCatalog)
        box_dir: directory holding box.yaml (possibly under draft/)
        owner: overrides the box owner when non-empty
        as_draft: submit as draft; the box must carry an id
        raw_import: appliance import, forces Public visibility

    Returns:
        The box as stored by the catalog.
    """
    loaded = load_box(box_dir, as_draft=as_draft)
    clog = ContextLogger(logger, box_id=loaded.box.id_str, box_dir=str(loaded.root))

    lookup = fetch_remote_box(catalog, loaded.box)
    clog.debug("[box_import] Remote lookup done", step="lookup", status=lookup.status.value)

    plan = reconcile(
        loaded.box,
        lookup.box,
        resolve_owner=catalog.get_token_subject,
        owner_override=owner,
        as_draft=as_draft,
        raw_import=raw_import,
    )

    clog.debug("[box_import] Uploading artifacts", step="artifacts")
    upload_artifacts(plan.box, loaded.root, catalog)

    mode = "replace" if plan.is_update else "create"
    clog.info(f"[box_import] Submitting box {plan.box.name!r} ({mode})", step="submit",
              appliance=plan.appliance)
    return submit_box(catalog, plan)
