#!/usr/bin/env python3
"""
Catalog API client for boxport.

Thin wrapper over the catalog service's box and blob endpoints. All requests go
through a single requests Session with the retrying adapter from
boxport.transport; non-success responses are raised as CatalogAPIError (or
NotFoundError for 404). Box responses are parsed leniently: values this
client does not model survive in ``extra``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from boxport.auth_utils import token_subject
from boxport.config import ClientConfig
from boxport.logger import CatalogAPIError, ConfigurationError, NotFoundError
from boxport.models import BlobResponse, Box
from boxport.transport import build_session, request_timeout

logger = logging.getLogger(__name__)

BOXES_PATH = "/services/boxes"
APPLIANCE_BOXES_PATH = "/services/appliances/boxes"
BLOB_UPLOAD_PATH = "/services/blobs/upload"


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if isinstance(msg, dict):
            msg = msg.get("message")
        if msg:
            return str(msg)[:200]
    return str(body)[:200]


class CatalogClient:
    """Client for the catalog service box API."""

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        if not config.base_url:
            raise ConfigurationError("catalog client needs a base URL")
        self.config = config
        self.session = session or build_session(config)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.config.base_url}{path}"
        kwargs.setdefault("timeout", request_timeout(self.config))
        if self.config.debug:
            logger.info(f"[catalog] {method} {url}")
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise CatalogAPIError(method, path, detail=str(e)) from e
        if self.config.debug:
            logger.info(f"[catalog] {method} {url} -> {response.status_code}")
        if response.status_code == 404:
            raise NotFoundError(method, path, 404, _error_detail(response))
        if response.status_code >= 400:
            raise CatalogAPIError(method, path, response.status_code, _error_detail(response))
        return response

    def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise CatalogAPIError(method, path, response.status_code, f"invalid JSON: {e}") from e

    def _box_list(self, path: str) -> List[Box]:
        payload = self._json("GET", path)
        if not isinstance(payload, list):
            raise CatalogAPIError("GET", path, detail="expected a list of boxes")
        return [Box.from_dict(item, strict=False) for item in payload]

    # ------------------------------------------------------------------
    # Boxes
    # ------------------------------------------------------------------
    def get_box(self, box_id: str) -> Box:
        return Box.from_dict(self._json("GET", f"{BOXES_PATH}/{box_id}"), strict=False)

    def get_boxes(self) -> List[Box]:
        return self._box_list(BOXES_PATH)

    def get_box_stack(self, box_id: str) -> List[Box]:
        return self._box_list(f"{BOXES_PATH}/{box_id}/stack")

    def get_box_versions(self, box_id: str) -> List[Box]:
        return self._box_list(f"{BOXES_PATH}/{box_id}/versions")

    def delete_box(self, box_id: str) -> None:
        self._request("DELETE", f"{BOXES_PATH}/{box_id}")

    def _submit(self, base_path: str, box: Box, existing_id: str) -> Box:
        payload: Dict[str, Any] = box.to_dict()
        # default=str: box.yaml may carry timestamps YAML parsed into datetimes
        body = json.dumps(payload, default=str)
        headers = {"Content-Type": "application/json"}
        if existing_id:
            result = self._json("PUT", f"{base_path}/{existing_id}", data=body, headers=headers)
        else:
            result = self._json("POST", base_path, data=body, headers=headers)
        return Box.from_dict(result, strict=False)

    def upload_box(self, box: Box, existing_id: str = "") -> Box:
        """Create @box, or replace the box @existing_id when it is non-empty."""
        return self._submit(BOXES_PATH, box, existing_id)

    def upload_appliance_box(self, box: Box, existing_id: str = "") -> Box:
        """Same as upload_box, against the appliance (raw import) endpoint."""
        return self._submit(APPLIANCE_BOXES_PATH, box, existing_id)

    # ------------------------------------------------------------------
    # Blobs and identity
    # ------------------------------------------------------------------
    def upload_file(self, name: str, content: bytes) -> BlobResponse:
        files = {"blob": (name, content, "application/octet-stream")}
        logger.debug(f"[catalog] Uploading {name} ({len(content)} bytes)")
        payload = self._json("POST", BLOB_UPLOAD_PATH, files=files)
        if not isinstance(payload, dict) or not payload.get("url"):
            raise CatalogAPIError("POST", BLOB_UPLOAD_PATH, detail="upload returned no blob url")
        return BlobResponse.from_dict(payload)

    def get_token_subject(self) -> str:
        """Return the user name the API token was issued to."""
        if not self.config.token:
            raise ConfigurationError("no API token configured")
        try:
            return token_subject(self.config.token)
        except ValueError as e:
            raise ConfigurationError(f"unable to read token subject: {e}") from e
