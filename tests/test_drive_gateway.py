"""
Tests for the Drive gateway against a mocked googleapiclient service
"""

from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from services.drive_gateway import DriveGateway, FOLDER_MIME_TYPE, describe_drive_error, get_drive_gateway
from utils.error_handling import NotFoundError, UpstreamError, ValidationError


def http_error(status, message):
    body = f'{{"error": {{"code": {status}, "message": "{message}"}}}}'.encode("utf-8")
    return HttpError(httplib2.Response({"status": str(status)}), body)


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def gateway(service):
    drive_gateway = DriveGateway(MagicMock(), default_parent_id="parent-default", page_size=100, service=service)
    drive_gateway._new_http = lambda: None
    return drive_gateway


class TestDriveGateway:

    @pytest.mark.asyncio
    async def test_create_folder_sanitizes_and_uses_default_parent(self, gateway, service):
        service.files.return_value.create.return_value.execute.return_value = {
            "id": "f1", "name": "Case 1", "webViewLink": "https://drive.google.com/drive/folders/f1"
        }

        folder = await gateway.create_folder("  Case: 1  ")

        assert folder["id"] == "f1"
        kwargs = service.files.return_value.create.call_args.kwargs
        assert kwargs["body"] == {"name": "Case 1", "mimeType": FOLDER_MIME_TYPE, "parents": ["parent-default"]}

    @pytest.mark.asyncio
    async def test_create_folder_explicit_parent(self, gateway, service):
        service.files.return_value.create.return_value.execute.return_value = {"id": "f2", "name": "x"}
        await gateway.create_folder("x", ["p1"])
        assert service.files.return_value.create.call_args.kwargs["body"]["parents"] == ["p1"]

    @pytest.mark.asyncio
    async def test_create_folder_rejects_empty_name(self, gateway, service):
        with pytest.raises(ValidationError):
            await gateway.create_folder("?*")
        service.files.return_value.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_children_query(self, gateway, service):
        service.files.return_value.list.return_value.execute.return_value = {"files": [{"id": "a"}]}

        files = await gateway.list_children("root1", mime_type=FOLDER_MIME_TYPE, order_by="name", page_size=500)

        assert files == [{"id": "a"}]
        kwargs = service.files.return_value.list.call_args.kwargs
        assert kwargs["q"] == f"'root1' in parents and trashed = false and mimeType = '{FOLDER_MIME_TYPE}'"
        assert kwargs["orderBy"] == "name"
        assert kwargs["pageSize"] == 100

    @pytest.mark.asyncio
    async def test_list_children_escapes_query_literals(self, gateway, service):
        service.files.return_value.list.return_value.execute.return_value = {"files": []}

        await gateway.list_children("x' in parents or trashed = false or 'y")

        query = service.files.return_value.list.call_args.kwargs["q"]
        assert query == "'x\\' in parents or trashed = false or \\'y' in parents and trashed = false"

    @pytest.mark.asyncio
    async def test_list_children_escapes_backslash(self, gateway, service):
        service.files.return_value.list.return_value.execute.return_value = {"files": []}
        await gateway.list_children("a\\b")
        assert service.files.return_value.list.call_args.kwargs["q"].startswith("'a\\\\b' in parents")

    @pytest.mark.asyncio
    async def test_list_children_empty_response(self, gateway, service):
        service.files.return_value.list.return_value.execute.return_value = {}
        assert await gateway.list_children("root1") == []

    @pytest.mark.asyncio
    async def test_reparent(self, gateway, service):
        service.files.return_value.update.return_value.execute.return_value = {"id": "f", "parents": ["dst"]}
        await gateway.reparent("f", "dst", ["src1", "src2"])
        kwargs = service.files.return_value.update.call_args.kwargs
        assert kwargs["addParents"] == "dst"
        assert kwargs["removeParents"] == "src1,src2"

    @pytest.mark.asyncio
    async def test_grant_public_read(self, gateway, service):
        service.permissions.return_value.create.return_value.execute.return_value = {"id": "perm"}
        await gateway.grant_public_read("f")
        kwargs = service.permissions.return_value.create.call_args.kwargs
        assert kwargs["body"] == {"role": "reader", "type": "anyone"}

    @pytest.mark.asyncio
    async def test_not_found_maps_to_404(self, gateway, service):
        service.files.return_value.get.return_value.execute.side_effect = http_error(404, "File not found: zz.")
        with pytest.raises(NotFoundError) as exc_info:
            await gateway.get_metadata("zz")
        assert exc_info.value.message == "File not found: zz."

    @pytest.mark.asyncio
    async def test_other_errors_map_to_upstream(self, gateway, service):
        service.files.return_value.get.return_value.execute.side_effect = http_error(403, "Rate limit exceeded")
        with pytest.raises(UpstreamError) as exc_info:
            await gateway.get_metadata("zz")
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Rate limit exceeded"

    @pytest.mark.asyncio
    async def test_create_file(self, gateway, service):
        service.files.return_value.create.return_value.execute.return_value = {"id": "file1", "name": "a.pdf"}

        created = await gateway.create_file("a.pdf", "folder1", "application/pdf", b"%PDF")

        assert created["id"] == "file1"
        kwargs = service.files.return_value.create.call_args.kwargs
        assert kwargs["body"] == {"name": "a.pdf", "parents": ["folder1"]}
        assert kwargs["media_body"].mimetype() == "application/pdf"
        assert kwargs["media_body"].getbytes(0, 4) == b"%PDF"

    @pytest.mark.asyncio
    async def test_update_description(self, gateway, service):
        service.files.return_value.update.return_value.execute.return_value = {"id": "f", "description": "note"}

        updated = await gateway.update_description("f", "note")

        assert updated["description"] == "note"
        kwargs = service.files.return_value.update.call_args.kwargs
        assert kwargs["fileId"] == "f"
        assert kwargs["body"] == {"description": "note"}

    @pytest.mark.asyncio
    async def test_trash(self, gateway, service):
        service.files.return_value.update.return_value.execute.return_value = {"id": "root1"}

        await gateway.trash("root1")

        kwargs = service.files.return_value.update.call_args.kwargs
        assert kwargs["fileId"] == "root1"
        assert kwargs["body"] == {"trashed": True}


class ScriptedDownload:
    """Replaces MediaIoBaseDownload; each step writes bytes into the buffer or raises"""

    def __init__(self, steps):
        self.steps = list(steps)
        self.chunksize = None

    def __call__(self, fd, request, chunksize):
        self.fd = fd
        self.chunksize = chunksize
        return self

    def next_chunk(self):
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        self.fd.write(step)
        return None, not self.steps


class TestIterBytes:

    @pytest.mark.asyncio
    async def test_yields_each_chunk_once(self, gateway, monkeypatch):
        download = ScriptedDownload([b"abc", b"", b"def"])
        monkeypatch.setattr("services.drive_gateway.MediaIoBaseDownload", download)

        chunks = [chunk async for chunk in gateway.iter_bytes("f", chunk_size=3)]

        assert chunks == [b"abc", b"def"]
        assert download.chunksize == 3

    @pytest.mark.asyncio
    async def test_missing_file(self, gateway, monkeypatch):
        monkeypatch.setattr("services.drive_gateway.MediaIoBaseDownload",
                            ScriptedDownload([http_error(404, "File not found: f.")]))

        with pytest.raises(NotFoundError):
            async for _ in gateway.iter_bytes("f"):
                pass

    @pytest.mark.asyncio
    async def test_failure_after_first_chunk(self, gateway, monkeypatch):
        monkeypatch.setattr("services.drive_gateway.MediaIoBaseDownload",
                            ScriptedDownload([b"abc", http_error(500, "Backend Error")]))

        received = []
        with pytest.raises(UpstreamError) as exc_info:
            async for chunk in gateway.iter_bytes("f"):
                received.append(chunk)

        assert received == [b"abc"]
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Backend Error"


class TestDescribeDriveError:

    def test_http_error_message(self):
        assert describe_drive_error(http_error(500, "Backend Error")) == "Backend Error"

    def test_plain_exception(self):
        assert describe_drive_error(RuntimeError("socket closed")) == "socket closed"

    def test_empty_exception(self):
        assert describe_drive_error(RuntimeError()) == "Google Drive API error"


def test_gateway_not_initialized(monkeypatch):
    monkeypatch.setattr("services.drive_gateway._drive_gateway", None)
    with pytest.raises(UpstreamError):
        get_drive_gateway()
