"""
boxes/reconcile.py - Merge a local box definition with its catalog copy.

Rules, in order:
1. raw import forces Public visibility and the appliance endpoint;
2. new box: organization defaults to DEFAULT_ORGANIZATION;
3. existing box: replace it by id, inherit organization (and categories for
   raw imports) when unset, take the catalog owner; members are never copied
   from the catalog, they may hold entries the catalog rejects;
4. existing box, not a draft or with a declared version: link to the catalog
   version (or a new one for this box id);
5. members is always a list;
6. owner: override > definition > token subject;
7. schema defaults to the script box schema.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from boxport.logger import OwnerUnresolved, SchemaResolutionError
from boxport.models import (
    DEFAULT_ORGANIZATION,
    SCRIPT_BOX_SCHEMA,
    VERSION_DESCRIPTION,
    Box,
    BoxVersion,
    Visibility,
    parse_schema_uri,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportPlan:
    box: Box
    existing_id: str = ""  # empty: create, otherwise replace this box
    appliance: bool = False

    @property
    def is_update(self) -> bool:
        return bool(self.existing_id)


def _resolve_owner(box: Box, override: str, resolve_owner: Callable[[], str]) -> str:
    if override:
        return override
    if box.owner:
        return box.owner
    try:
        owner = resolve_owner()
    except Exception as e:
        raise OwnerUnresolved(f"unable to determine token owner: {e}") from e
    if not owner:
        raise OwnerUnresolved("unable to determine token owner: empty subject")
    return owner


def reconcile(
    local: Box,
    remote: Optional[Box],
    *,
    resolve_owner: Callable[[], str],
    owner_override: str = "",
    as_draft: bool = False,
    raw_import: bool = False,
) -> ImportPlan:
    """Return the plan for submitting @local; @local and @remote are not modified."""
    box = copy.deepcopy(local)
    plan = ImportPlan(box=box)

    if raw_import:
        box.visibility = Visibility.PUBLIC
        plan.appliance = True

    if remote is None:
        if not box.organization:
            box.organization = DEFAULT_ORGANIZATION
    else:
        plan.existing_id = box.id_str
        box.owner = remote.owner

        if not box.organization:
            box.organization = remote.organization
        if raw_import and not box.categories:
            box.categories = list(remote.categories)

        if not as_draft or box.version is not None:
            if remote.version is None:
                box.version = BoxVersion(box=box.id)
            else:
                box.version = copy.deepcopy(remote.version)
            box.version.description = VERSION_DESCRIPTION

    if not box.members:
        box.members = []

    box.owner = _resolve_owner(box, owner_override, resolve_owner)

    if box.visibility is None:
        box.visibility = Visibility.WORKSPACE

    if not box.schema:
        try:
            box.schema = parse_schema_uri(SCRIPT_BOX_SCHEMA)
        except ValueError as e:
            raise SchemaResolutionError(f"unable to set Script Box schema: {e}") from e

    logger.debug(
        f"[box_import] Reconciled {box.name or '<unnamed>'}: "
        f"{'update ' + plan.existing_id if plan.is_update else 'create'}, owner={box.owner}"
    )
    return plan
