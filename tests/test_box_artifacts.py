"""Artifact upload step: event scripts, File variables, icon, readme."""
import pytest

from boxport.boxes.artifacts import (
    upload_artifacts,
    upload_event_scripts,
    upload_file_variables,
    upload_icon,
    upload_readme,
)
from boxport.logger import ArtifactError, CatalogAPIError
from boxport.models import (
    SCRIPT_BOX_SCHEMA,
    BlobResponse,
    Box,
    BoxEvent,
    IconMetadata,
    Variable,
    VariableType,
)
from conftest import FakeCatalog

pytestmark = pytest.mark.unit


def _files(root, files):
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(content)


def test_event_scripts_uploaded_in_event_order(tmp_path):
    _files(tmp_path, {"events/start": b"run", "events/install": b"apt-get install nginx"})
    catalog = FakeCatalog()
    box = Box(events={BoxEvent.STOP: BlobResponse(url="https://old/stop")})

    upload_event_scripts(box, tmp_path, catalog)

    assert [name for name, _ in catalog.uploads] == ["install", "start"]
    assert set(box.events) == {BoxEvent.INSTALL, BoxEvent.START}
    assert box.events[BoxEvent.INSTALL].url.endswith("/install")


def test_file_variable_rewritten_to_upload_url(tmp_path):
    _files(tmp_path, {"data/config.json": b'{"a": 1}'})
    catalog = FakeCatalog()
    box = Box(variables=[
        Variable("cfg", VariableType.FILE, "data/config.json"),
        Variable("empty", VariableType.FILE, ""),
        Variable("text", VariableType.TEXT, "data/config.json"),
    ])

    upload_file_variables(box, tmp_path, catalog)

    assert catalog.uploads == [("config.json", b'{"a": 1}')]
    assert box.variables[0].value == "https://catalog.example/services/blobs/download/1/config.json"
    assert box.variables[1].value == ""
    assert box.variables[2].value == "data/config.json"


def test_unreadable_file_variable_aborts(tmp_path):
    box = Box(variables=[Variable("cfg", VariableType.FILE, "missing.txt")])
    with pytest.raises(ArtifactError, match="missing.txt") as exc:
        upload_file_variables(box, tmp_path, FakeCatalog())
    assert exc.value.step == "unable to read file variable"


def test_failed_upload_aborts_with_step(tmp_path):
    _files(tmp_path, {"a.txt": b"a"})
    catalog = FakeCatalog()
    catalog.upload_error = CatalogAPIError("POST", "/services/blobs/upload", 503)
    box = Box(variables=[Variable("cfg", VariableType.FILE, "a.txt")])
    with pytest.raises(ArtifactError, match="failed to upload file variable"):
        upload_file_variables(box, tmp_path, catalog)
    assert box.variables[0].value == "a.txt"


def test_icon_metadata_image_uploaded(tmp_path):
    _files(tmp_path, {"icons/logo.png": b"\x89PNG"})
    catalog = FakeCatalog()
    box = Box(icon="legacy.png", icon_metadata=IconMetadata(image="icons/logo.png"))

    upload_icon(box, tmp_path, catalog)

    assert catalog.uploads == [("logo.png", b"\x89PNG")]
    assert box.icon_metadata.image.endswith("/logo.png")
    assert box.icon == "legacy.png"


@pytest.mark.parametrize("image", ["images/abc.png", "/images/abc.png", "https://cdn.example/images/abc.png"])
def test_already_uploaded_icon_is_left_alone(tmp_path, image):
    catalog = FakeCatalog()
    box = Box(icon="legacy.png", icon_metadata=IconMetadata(image=image))
    upload_icon(box, tmp_path, catalog)
    assert catalog.uploads == []
    assert box.icon_metadata.image == image


def test_legacy_icon_used_without_metadata(tmp_path):
    _files(tmp_path, {"icon.png": b"img"})
    catalog = FakeCatalog()
    box = Box(icon="icon.png")
    upload_icon(box, tmp_path, catalog)
    assert box.icon.endswith("/icon.png")


def test_readme_attached_as_upload_result(tmp_path):
    _files(tmp_path, {"readme.md": b"# hello"})
    catalog = FakeCatalog()
    box = Box()
    upload_readme(box, tmp_path, catalog)
    assert isinstance(box.readme, BlobResponse)
    assert box.readme.length == len(b"# hello")


def test_no_readme_no_upload(tmp_path):
    catalog = FakeCatalog()
    box = Box()
    upload_readme(box, tmp_path, catalog)
    assert box.readme is None
    assert catalog.uploads == []


def test_events_only_collected_for_script_boxes(tmp_path):
    _files(tmp_path, {"events/install": b"x"})
    catalog = FakeCatalog()
    box = Box(schema="http://elasticbox.net/schemas/boxes/cloudformation")
    upload_artifacts(box, tmp_path, catalog)
    assert catalog.uploads == []

    box.schema = SCRIPT_BOX_SCHEMA
    upload_artifacts(box, tmp_path, catalog)
    assert list(box.events) == [BoxEvent.INSTALL]
