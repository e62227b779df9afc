import json
import sys
import threading
import time
import uuid
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest
import yaml

# Ensure repository root is on sys.path so `import boxport...` works locally
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from boxport.logger import NotFoundError  # noqa: E402
from boxport.models import BlobResponse, Box  # noqa: E402


class FakeCatalog:
    """Records every catalog call the import engine makes."""

    def __init__(self, remote: Optional[Dict[str, Box]] = None, subject: str = "token-user"):
        self.remote = dict(remote or {})
        self.subject = subject
        self.lookup_error: Optional[Exception] = None
        self.upload_error: Optional[Exception] = None
        self.uploads: List[Tuple[str, bytes]] = []
        self.submissions: List[Tuple[str, Box, str]] = []
        self.lookups: List[str] = []
        self.subject_calls = 0

    def get_box(self, box_id: str) -> Box:
        self.lookups.append(box_id)
        if self.lookup_error is not None:
            raise self.lookup_error
        if box_id not in self.remote:
            raise NotFoundError("GET", f"/services/boxes/{box_id}", 404)
        return self.remote[box_id]

    def upload_file(self, name: str, content: bytes) -> BlobResponse:
        if self.upload_error is not None:
            raise self.upload_error
        self.uploads.append((name, content))
        n = len(self.uploads)
        return BlobResponse(
            url=f"https://catalog.example/services/blobs/download/{n}/{name}",
            length=len(content),
            content_type="application/octet-stream",
        )

    def _submit(self, endpoint: str, box: Box, existing_id: str) -> Box:
        self.submissions.append((endpoint, box, existing_id))
        stored = Box.from_dict(box.to_dict())
        if stored.id is None:
            stored.id = uuid.uuid4()
        stored.uri = f"/services/boxes/{stored.id}"
        return stored

    def upload_box(self, box: Box, existing_id: str = "") -> Box:
        return self._submit("boxes", box, existing_id)

    def upload_appliance_box(self, box: Box, existing_id: str = "") -> Box:
        return self._submit("appliance", box, existing_id)

    def get_token_subject(self) -> str:
        self.subject_calls += 1
        if not self.subject:
            raise ValueError("no subject")
        return self.subject


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def write_box(tmp_path):
    """Create a box directory: write_box({"name": ...}, files={"events/install": b"..."})."""

    def _write(definition: Dict[str, Any], files: Optional[Dict[str, bytes]] = None,
               subdir: str = "box") -> Path:
        box_dir = tmp_path / subdir
        box_dir.mkdir(parents=True, exist_ok=True)
        (box_dir / "box.yaml").write_text(yaml.safe_dump(definition), encoding="utf-8")
        for rel, content in (files or {}).items():
            target = box_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        return box_dir

    return _write


SCRIPTED_BOX_ID = "6c1d2e3f-4a5b-4c6d-8e7f-8091a2b3c4d5"


class _ScriptedHandler(BaseHTTPRequestHandler):
    def _serve(self):
        length = int(self.headers.get("Content-Length") or 0)
        body_in = self.rfile.read(length) if length else b""
        server = self.server
        server.hits.append((self.command, self.path))
        server.requests.append({"method": self.command, "path": self.path,
                                "headers": dict(self.headers), "body": body_in})
        if server.delay:
            time.sleep(server.delay)
        status = server.statuses.pop(0) if server.statuses else 200
        body = json.dumps(server.body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_GET = do_POST = do_PUT = do_DELETE = _serve

    def log_message(self, format, *args):
        pass


@pytest.fixture
def scripted_server():
    """Local HTTP server answering with server.statuses in order (then 200) and
    server.body, each reply held back by server.delay seconds."""
    server = HTTPServer(("127.0.0.1", 0), _ScriptedHandler)
    server.hits = []
    server.requests = []
    server.statuses = []
    server.delay = 0.0
    server.body = {"id": SCRIPTED_BOX_ID, "name": "web", "owner": "alice"}
    host, port = server.server_address
    server.base_url = f"http://{host}:{port}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
