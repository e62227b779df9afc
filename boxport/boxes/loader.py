"""
boxes/loader.py - Read a box directory into a Box definition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from boxport.logger import (
    BoxDefinitionError,
    BoxDirectoryNotFound,
    MissingIdentityForDraft,
    NotADirectory,
)
from boxport.models import BOX_FILE, Box

logger = logging.getLogger(__name__)

DRAFT_DIR = "draft"


@dataclass(frozen=True)
class LoadedBox:
    root: Path  # effective root: all relative paths in the box resolve against it
    box: Box


def resolve_box_root(box_dir: str | Path) -> Path:
    """Validate @box_dir and return the directory box.yaml is read from.

    Export tools sometimes wrap the contents in a 'draft' directory; when
    draft/box.yaml exists, that directory is used instead.
    """
    root = Path(box_dir).expanduser()
    if not root.exists():
        raise BoxDirectoryNotFound(f"box directory does not exist: {str(root)!r}")
    if not root.is_dir():
        raise NotADirectory(f"not a directory: {str(root)!r}")
    if (root / DRAFT_DIR / BOX_FILE).exists():
        logger.debug(f"[box_loader] Using nested {DRAFT_DIR}/ directory of {root}")
        return root / DRAFT_DIR
    return root


def load_box(box_dir: str | Path, as_draft: bool = False) -> LoadedBox:
    root = resolve_box_root(box_dir)
    box_file = root / BOX_FILE
    try:
        content = box_file.read_text(encoding="utf-8")
    except OSError as e:
        raise BoxDefinitionError(f"unable to read {box_file}: {e}") from e
    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise BoxDefinitionError(f"failed to deserialize {box_file}: {e}") from e
    if raw is None:
        raise BoxDefinitionError(f"{box_file} is empty")

    try:
        box = Box.from_dict(raw)
    except BoxDefinitionError as e:
        raise BoxDefinitionError(f"{box_file}: {e}") from e

    if as_draft and box.id is None:
        raise MissingIdentityForDraft(f"box without id can not be uploaded as draft ({box_file})")
    return LoadedBox(root=root, box=box)
