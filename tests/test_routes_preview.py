"""
Tests for the token-gated preview stream and scoped folder listing
"""

import hashlib

import pytest

from services.file_transfer import content_disposition
from fakes import bearer

PDF_BYTES = b"%PDF-1.7\n" + b"x" * 100


@pytest.fixture
def stored_file(drive, case_tree):
    pending_name = case_tree["statusFolders"]["pending"]["name"]
    folder = case_tree["docFolders"][pending_name][0]
    return drive.add_file("Relevé mai.pdf", folder["id"], PDF_BYTES)


@pytest.fixture
def debtor_token(token_service, case_tree):
    return token_service.issue(case_tree["root"]["id"], "Jane Doe", ["ID"])


class TestPreview:

    def test_streams_file(self, client, stored_file, debtor_token):
        response = client.get(f"/files/preview/{stored_file['id']}", headers=bearer(debtor_token))

        assert response.status_code == 200
        assert response.content == PDF_BYTES
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["etag"] == f"\"{hashlib.md5(PDF_BYTES).hexdigest()}\""
        assert response.headers["cache-control"] == "private, max-age=60"
        assert response.headers["content-length"] == str(len(PDF_BYTES))
        disposition = response.headers["content-disposition"]
        assert disposition.startswith("inline; ")
        assert "filename*=UTF-8''Relev%C3%A9%20mai.pdf" in disposition

    def test_reviewer_without_root(self, client, token_service, stored_file):
        token = token_service.issue(None, "Reviewer", [], role="reviewer")
        response = client.get(f"/files/preview/{stored_file['id']}", headers=bearer(token))
        assert response.status_code == 200

    def test_debtor_without_scope(self, client, token_service, case_tree, stored_file):
        token = token_service.issue(case_tree["root"]["id"], "Jane", ["ID"], scope=[])
        response = client.get(f"/files/preview/{stored_file['id']}", headers=bearer(token))
        assert response.status_code == 403

    def test_outside_root(self, client, drive, debtor_token):
        stray = drive.add_file("other.pdf", drive.add_folder("Other case")["id"])
        response = client.get(f"/files/preview/{stray['id']}", headers=bearer(debtor_token))
        assert response.status_code == 403

    def test_unknown_file(self, client, debtor_token):
        response = client.get("/files/preview/missing", headers=bearer(debtor_token))
        assert response.status_code == 404

    def test_missing_token(self, client, stored_file):
        assert client.get(f"/files/preview/{stored_file['id']}").status_code == 401

    def test_too_large(self, client, stored_file, debtor_token, monkeypatch):
        monkeypatch.setattr("api.routes.preview.PREVIEW_MAX_BYTES", 10)
        response = client.get(f"/files/preview/{stored_file['id']}", headers=bearer(debtor_token))
        assert response.status_code == 413

    def test_workspace_document(self, client, drive, case_tree, debtor_token):
        pending_id = case_tree["statusFolders"]["pending"]["id"]
        sheet = drive.add_file("Budget", pending_id, b"", mime_type="application/vnd.google-apps.spreadsheet")
        response = client.get(f"/files/preview/{sheet['id']}", headers=bearer(debtor_token))
        assert response.status_code == 400

    def test_download_fails_before_first_byte(self, client, drive, stored_file, debtor_token):
        drive.fail_stream_immediately = True
        response = client.get(f"/files/preview/{stored_file['id']}", headers=bearer(debtor_token))
        assert response.status_code == 502
        assert response.json()["error"] == "Download failed"

    def test_read_error_mid_stream_aborts_response(self, client, drive, stored_file, debtor_token, monkeypatch):
        monkeypatch.setattr("api.routes.preview.PREVIEW_CHUNK_SIZE", 10)
        drive.fail_stream_after_first_chunk = True

        # Headers and the first chunk are already sent, so the error cannot become a JSON response
        with pytest.raises(RuntimeError, match="response already started"):
            client.get(f"/files/preview/{stored_file['id']}", headers=bearer(debtor_token))


class TestScopedList:

    def test_list_root(self, client, case_tree, debtor_token):
        response = client.get(f"/files/list/{case_tree['root']['id']}", headers=bearer(debtor_token))
        assert response.status_code == 200
        assert {f["id"] for f in response.json()["files"]} == \
            {f["id"] for f in case_tree["statusFolders"].values()}

    def test_list_subfolder(self, client, case_tree, stored_file, debtor_token):
        pending_name = case_tree["statusFolders"]["pending"]["name"]
        folder_id = case_tree["docFolders"][pending_name][0]["id"]
        response = client.get(f"/files/list/{folder_id}", headers=bearer(debtor_token))
        assert [f["id"] for f in response.json()["files"]] == [stored_file["id"]]

    def test_list_outside_root(self, client, drive, debtor_token):
        other = drive.add_folder("Other case")
        response = client.get(f"/files/list/{other['id']}", headers=bearer(debtor_token))
        assert response.status_code == 403

    def test_preview_scope_only(self, client, token_service, case_tree):
        token = token_service.issue(case_tree["root"]["id"], "Jane", ["ID"], scope=["preview"])
        response = client.get(f"/files/list/{case_tree['root']['id']}", headers=bearer(token))
        assert response.status_code == 403


class TestContentDisposition:

    def test_control_characters_dropped_from_fallback(self):
        header = content_disposition("report\r\nSet-Cookie: x\t.pdf")
        fallback = header.split(";")[1]
        assert fallback == ' filename="reportSet-Cookie: x.pdf"'
        assert all(ord(ch) >= 0x20 for ch in header)

    def test_utf8_name_keeps_encoded_form(self):
        header = content_disposition('Relevé "mai".pdf')
        assert header.startswith('inline; filename="Relev_ _mai_.pdf"; ')
        assert header.endswith("filename*=UTF-8''Relev%C3%A9%20%22mai%22.pdf")
