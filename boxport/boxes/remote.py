"""
boxes/remote.py - Look up the catalog copy of a box before importing it.

A failed lookup never stops an import: the box is then treated as new, even
if it carries an id (authors may pick the id of a box the catalog has not
seen yet). Not-found and other failures are still reported apart.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from boxport.boxes.interfaces import BoxCatalog
from boxport.logger import BoxportError, NotFoundError
from boxport.models import Box

logger = logging.getLogger(__name__)


class LookupStatus(str, Enum):
    SKIPPED = "skipped"  # box has no id
    FOUND = "found"
    NOT_FOUND = "not_found"
    LOOKUP_FAILED = "lookup_failed"


@dataclass(frozen=True)
class RemoteLookup:
    status: LookupStatus
    box: Optional[Box] = None
    error: Optional[Exception] = None


def fetch_remote_box(catalog: BoxCatalog, box: Box) -> RemoteLookup:
    if box.id is None:
        return RemoteLookup(LookupStatus.SKIPPED)
    box_id = box.id_str
    try:
        existing = catalog.get_box(box_id)
    except NotFoundError as e:
        logger.info(f"[box_import] Box {box_id} not known to the catalog, importing as new box")
        return RemoteLookup(LookupStatus.NOT_FOUND, error=e)
    except BoxportError as e:
        logger.warning(f"[box_import] Lookup of box {box_id} failed, importing as new box: {e}")
        return RemoteLookup(LookupStatus.LOOKUP_FAILED, error=e)
    return RemoteLookup(LookupStatus.FOUND, box=existing)
