"""
boxes/artifacts.py - Upload the files a box refers to and point the definition
at the uploaded copies.

Uploads run one after another; the first failure raises ArtifactError and
nothing is submitted. Already uploaded artifacts are left in place.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from boxport.boxes.interfaces import ArtifactUploader
from boxport.logger import ArtifactError, BoxportError
from boxport.models import README_NAME, SCRIPT_BOX_SCHEMA, BlobResponse, Box, BoxEvent

logger = logging.getLogger(__name__)

EVENTS_DIR = "events"


class ArtifactRole(str, Enum):
    EVENT = "event"
    FILE_VARIABLE = "file variable"
    ICON = "icon"
    README = "readme"


@dataclass(frozen=True)
class ArtifactReference:
    path: str  # relative to the effective box root
    role: ArtifactRole

    @property
    def upload_name(self) -> str:
        return PurePosixPath(self.path).name

    def resolve(self, root: Path) -> Path:
        return root / self.path.lstrip("/")


def upload_artifact(uploader: ArtifactUploader, root: Path, ref: ArtifactReference,
                    name: str | None = None) -> BlobResponse:
    local_path = ref.resolve(root)
    try:
        content = local_path.read_bytes()
    except OSError as e:
        raise ArtifactError(f"unable to read {ref.role.value}", ref.path, e) from e
    try:
        result = uploader.upload_file(name or ref.upload_name, content)
    except BoxportError as e:
        raise ArtifactError(f"failed to upload {ref.role.value}", ref.path, e) from e
    logger.info(f"[box_import] Uploaded {ref.role.value} {ref.path} -> {result.url}")
    return result


def upload_event_scripts(box: Box, root: Path, uploader: ArtifactUploader) -> None:
    """Replace box.events with the scripts found under events/."""
    box.events = {}
    for event in BoxEvent:
        ref = ArtifactReference(f"{EVENTS_DIR}/{event.value}", ArtifactRole.EVENT)
        if not ref.resolve(root).exists():
            continue
        box.events[event] = upload_artifact(uploader, root, ref, name=event.value)


def upload_file_variables(box: Box, root: Path, uploader: ArtifactUploader) -> None:
    for variable in box.variables:
        if not variable.is_file or not variable.value:
            continue
        ref = ArtifactReference(str(variable.value), ArtifactRole.FILE_VARIABLE)
        result = upload_artifact(uploader, root, ref)
        variable.value = str(result.url)


def upload_icon(box: Box, root: Path, uploader: ArtifactUploader) -> None:
    metadata = box.icon_metadata
    if metadata is not None and metadata.image:
        if metadata.is_uploaded:
            return
        # FIXME: a re-import with an image under a different name keeps the
        #        file name already recorded in the catalog.
        ref = ArtifactReference(metadata.image, ArtifactRole.ICON)
        metadata.image = str(upload_artifact(uploader, root, ref).url)
    elif box.icon:
        ref = ArtifactReference(box.icon, ArtifactRole.ICON)
        box.icon = str(upload_artifact(uploader, root, ref).url)


def upload_readme(box: Box, root: Path, uploader: ArtifactUploader) -> None:
    ref = ArtifactReference(README_NAME, ArtifactRole.README)
    if ref.resolve(root).exists():
        box.readme = upload_artifact(uploader, root, ref)


def upload_artifacts(box: Box, root: Path, uploader: ArtifactUploader) -> Box:
    if box.schema == SCRIPT_BOX_SCHEMA:
        upload_event_scripts(box, root, uploader)
    upload_file_variables(box, root, uploader)
    upload_icon(box, root, uploader)
    upload_readme(box, root, uploader)
    return box
