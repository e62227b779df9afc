#!/usr/bin/env python3
"""
Test CLI commands - verify the box commands delegate to the catalog client and
the import engine, and report results as JSON on stdout.
"""
from __future__ import annotations

import json
import logging
import uuid
from unittest.mock import MagicMock, patch

import pytest

from boxport.logger import CatalogAPIError, NotFoundError
from boxport.models import Box, BoxVersion, Variable, VariableType, Visibility

pytestmark = pytest.mark.unit

BOX_ID = "0f6b8d4e-2c1a-4e9b-9a7d-3e5f6a7b8c9d"


def _client(**methods):
    client = MagicMock()
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    for name, value in methods.items():
        setattr(client, name, value)
    return client


def _stdout(capsys):
    return json.loads(capsys.readouterr().out)


class TestImportCommand:
    def test_import_passes_flags_and_reports_file_variables(self, capsys):
        from cli.commands.box import cmd_import

        args = MagicMock(path="boxes/web", owner="carol", as_draft=False, raw=True)
        client = _client()
        result = Box(
            id=uuid.UUID(BOX_ID),
            uri=f"/services/boxes/{BOX_ID}",
            variables=[
                Variable(name="conf", type=VariableType.FILE, value="https://catalog.example/blobs/1"),
                Variable(name="port", type=VariableType.PORT, value=80),
            ],
        )
        with patch("cli.commands.box.get_client", return_value=client), \
                patch("cli.commands.box.import_box", return_value=result) as mock_import:
            cmd_import(args)

        mock_import.assert_called_once_with(
            client, "boxes/web", owner="carol", as_draft=False, raw_import=True,
        )
        out = _stdout(capsys)
        assert out["ok"] is True
        assert out["id"] == BOX_ID
        assert out["file_variables"] == [{"name": "conf", "value": "https://catalog.example/blobs/1"}]


class TestListCommands:
    def test_ls_without_ids_lists_all(self, capsys):
        from cli.commands.box import cmd_list

        boxes = [Box(id=uuid.UUID(BOX_ID), name="web", visibility=Visibility.PUBLIC)]
        client = _client(get_boxes=MagicMock(return_value=boxes))
        with patch("cli.commands.box.get_client", return_value=client):
            cmd_list(MagicMock(box_ids=[]))

        out = _stdout(capsys)
        assert out["boxes"][0]["name"] == "web"
        assert out["boxes"][0]["visibility"] == "Public"
        assert out["errors"] == []

    def test_ls_reports_failing_ids_and_continues(self, capsys):
        from cli.commands.box import cmd_list

        def get_box(box_id):
            if box_id == "missing":
                raise NotFoundError("GET", "/services/boxes/missing", 404)
            return Box(id=uuid.UUID(BOX_ID), name="web")

        client = _client(get_box=MagicMock(side_effect=get_box))
        with patch("cli.commands.box.get_client", return_value=client):
            cmd_list(MagicMock(box_ids=["missing", BOX_ID]))

        captured = capsys.readouterr()
        out = json.loads(captured.out)
        assert out["ok"] is False
        assert [b["id"] for b in out["boxes"]] == [BOX_ID]
        assert out["errors"][0]["id"] == "missing"
        assert "Failed to query box missing" in captured.err

    def test_stack_puts_requested_box_first(self, capsys):
        from cli.commands.box import cmd_stack

        parent = Box(id=uuid.uuid4(), name="base")
        child = Box(id=uuid.UUID(BOX_ID), name="app")
        client = _client(get_box_stack=MagicMock(return_value=[parent, child]))
        with patch("cli.commands.box.get_client", return_value=client):
            cmd_stack(MagicMock(box_id=BOX_ID))

        assert [b["name"] for b in _stdout(capsys)["boxes"]] == ["app", "base"]

    def test_versions_sorted_by_number(self, capsys):
        from cli.commands.box import cmd_versions

        def version(major, minor, patch_):
            return Box(
                id=uuid.uuid4(),
                name=f"v{major}.{minor}.{patch_}",
                version=BoxVersion(box=uuid.UUID(BOX_ID),
                                   extra={"number": {"major": major, "minor": minor, "patch": patch_}}),
            )

        client = _client(get_box_versions=MagicMock(return_value=[
            version(1, 2, 0), version(0, 9, 3), version(1, 0, 10),
        ]))
        with patch("cli.commands.box.get_client", return_value=client):
            cmd_versions(MagicMock(box_id=BOX_ID))

        assert [v["version"] for v in _stdout(capsys)["versions"]] == ["0.9.3", "1.0.10", "1.2.0"]


class TestDeleteCommand:
    def test_rm_attempts_every_id(self, capsys):
        from cli.commands.box import cmd_delete

        def delete_box(box_id):
            if box_id == "a":
                raise CatalogAPIError("DELETE", "/services/boxes/a", 500, "boom")

        client = _client(delete_box=MagicMock(side_effect=delete_box))
        with patch("cli.commands.box.get_client", return_value=client):
            cmd_delete(MagicMock(box_ids=["a", "b"]))

        out = _stdout(capsys)
        assert out["ok"] is False
        assert [r["deleted"] for r in out["results"]] == [False, True]
        assert client.delete_box.call_count == 2


class TestMainDispatch:
    def test_alias_dispatches_to_import_and_raw_disables_draft(self):
        from cli import main as cli_main

        with patch("cli.commands.box.cmd_import") as mock_cmd:
            cli_main.main(["up", "boxes/web", "--raw", "--url", "http://catalog"])

        args = mock_cmd.call_args[0][0]
        assert args.path == "boxes/web"
        assert args.raw is True
        assert args.as_draft is False

    def test_draft_is_default(self):
        from cli import main as cli_main

        with patch("cli.commands.box.cmd_import") as mock_cmd:
            cli_main.main(["import", "boxes/web"])
        assert mock_cmd.call_args[0][0].as_draft is True

    def test_errors_exit_nonzero_with_json(self, capsys):
        from cli import main as cli_main

        with patch("cli.commands.box.cmd_delete", side_effect=CatalogAPIError("DELETE", "/x", 500)):
            with pytest.raises(SystemExit) as exc:
                cli_main.main(["rm", BOX_ID])

        assert exc.value.code == 1
        out = _stdout(capsys)
        assert out["ok"] is False
        assert "DELETE /x returned 500" in out["error"]

    def test_log_json_flag_switches_logging(self, monkeypatch):
        from cli import main as cli_main

        monkeypatch.delenv("BOXPORT_LOG_JSON", raising=False)
        with patch("boxport.logger.enable_json_logging") as mock_json, \
                patch("cli.commands.box.cmd_list"):
            cli_main.main(["ls"])
            assert not mock_json.called
            cli_main.main(["--log-json", "ls"])
            assert mock_json.call_count == 1

            monkeypatch.setenv("BOXPORT_LOG_JSON", "1")
            cli_main.main(["ls"])
            assert mock_json.call_count == 2

    def test_debug_enables_debug_records(self, monkeypatch):
        from cli import main as cli_main

        monkeypatch.delenv("BOXPORT_LOG_JSON", raising=False)
        root = logging.getLogger("boxport")
        previous = root.level
        try:
            with patch("cli.commands.box.cmd_list"):
                cli_main.main(["--debug", "ls"])
            assert root.getEffectiveLevel() == logging.DEBUG
        finally:
            root.setLevel(previous)
