"""Catalog operations the import engine depends on.

CatalogClient implements all of them; tests substitute a recording fake.
"""
from __future__ import annotations

from typing import Protocol

from boxport.models import BlobResponse, Box


class ArtifactUploader(Protocol):
    def upload_file(self, name: str, content: bytes) -> BlobResponse:
        ...


class BoxCatalog(ArtifactUploader, Protocol):
    def get_box(self, box_id: str) -> Box:
        ...

    def upload_box(self, box: Box, existing_id: str = "") -> Box:
        ...

    def upload_appliance_box(self, box: Box, existing_id: str = "") -> Box:
        ...

    def get_token_subject(self) -> str:
        ...
