"""
Tests for portal link issuance and the debtor portal routes
"""

import re
from urllib.parse import parse_qs, urlparse

import pytest

from fakes import bearer


@pytest.fixture
def portal_token(client, case_tree):
    response = client.post("/issue-portal-link", json={
        "rootId": case_tree["root"]["id"],
        "debtorName": "Jane Doe",
        "docTypes": ["ID", "Bank Statements"],
    })
    assert response.status_code == 200
    return response.json()["token"]


def pending_ids(case_tree):
    pending_name = case_tree["statusFolders"]["pending"]["name"]
    return {f["name"]: f["id"] for f in case_tree["docFolders"][pending_name]}


class TestIssuePortalLink:

    def test_issue(self, client, case_tree, token_service):
        response = client.post("/issue-portal-link", json={
            "rootId": case_tree["root"]["id"],
            "debtorName": "Jane Doe",
            "docTypes": ["ID"],
            "ttlSeconds": 120,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["expiresIn"] == 120
        url = urlparse(body["url"])
        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://portal.example.com/portal"
        assert parse_qs(url.query)["token"] == [body["token"]]

        claims = token_service.verify(body["token"])
        assert claims.doc_types == ["ID"]
        assert claims.scope == ["preview", "list"]

    def test_doc_types_default_to_pending_children(self, client, case_tree, token_service):
        response = client.post("/issue-portal-link", json={
            "rootId": case_tree["root"]["id"], "debtorName": "Jane Doe",
        })
        claims = token_service.verify(response.json()["token"])
        assert sorted(claims.doc_types) == ["Bank Statements", "ID"]
        assert response.json()["expiresIn"] == token_service.default_ttl

    @pytest.mark.parametrize("body,field", [
        ({"debtorName": "Jane"}, "rootId"),
        ({"rootId": "r"}, "debtorName"),
        ({"rootId": "r", "debtorName": "Jane", "ttlSeconds": 0}, "ttlSeconds"),
    ])
    def test_missing_fields(self, client, body, field):
        response = client.post("/issue-portal-link", json=body)
        assert response.status_code == 400
        assert field in response.json()["error"]


class TestPortalRoutes:

    def test_info(self, client, case_tree, portal_token):
        response = client.get("/portal/info", headers=bearer(portal_token))
        assert response.status_code == 200
        body = response.json()
        assert body["debtorName"] == "Jane Doe"
        assert body["rootId"] == case_tree["root"]["id"]
        assert body["docTypes"] == ["ID", "Bank Statements"]

    def test_token_in_query(self, client, portal_token):
        assert client.get("/portal/info", params={"token": portal_token}).status_code == 200

    def test_structure(self, client, case_tree, portal_token):
        response = client.get("/portal/structure", headers=bearer(portal_token))
        assert response.status_code == 200
        assert response.json() == {"pending": pending_ids(case_tree)}

    def test_structure_only_token_doc_types(self, client, case_tree):
        token = client.post("/issue-portal-link", json={
            "rootId": case_tree["root"]["id"], "debtorName": "Jane", "docTypes": ["ID", "Unknown"],
        }).json()["token"]
        response = client.get("/portal/structure", headers=bearer(token))
        assert response.json()["pending"] == {"ID": pending_ids(case_tree)["ID"]}

    def test_upload_then_list(self, client, drive, case_tree, portal_token):
        response = client.post(
            "/portal/upload",
            headers=bearer(portal_token),
            files={"file": ("passport.jpg", b"jpeg-bytes", "image/jpeg")},
            data={"docType": "ID"},
        )

        assert response.status_code == 200
        stored = response.json()["file"]
        assert re.fullmatch(r"ID_\d{13}_passport\.jpg", stored["name"])
        assert drive.records[stored["id"]]["parents"] == [pending_ids(case_tree)["ID"]]
        assert drive.permissions == []

        listed = client.get("/portal/files", headers=bearer(portal_token), params={"docType": "ID"})
        assert listed.status_code == 200
        assert [f["id"] for f in listed.json()["files"]] == [stored["id"]]

    def test_upload_doc_type_not_on_token(self, client, case_tree):
        token = client.post("/issue-portal-link", json={
            "rootId": case_tree["root"]["id"], "debtorName": "Jane", "docTypes": ["ID"],
        }).json()["token"]
        response = client.post(
            "/portal/upload",
            headers=bearer(token),
            files={"file": ("s.pdf", b"x", "application/pdf")},
            data={"docType": "Bank Statements"},
        )
        assert response.status_code == 403

    def test_upload_missing_doc_type(self, client, portal_token):
        response = client.post(
            "/portal/upload",
            headers=bearer(portal_token),
            files={"file": ("s.pdf", b"x", "application/pdf")},
        )
        assert response.status_code == 400

    def test_doc_type_folder_missing(self, client, drive, case_tree, portal_token):
        pending_id = pending_ids(case_tree)["ID"]
        drive.records[pending_id]["trashed"] = True
        response = client.get("/portal/files", headers=bearer(portal_token), params={"docType": "ID"})
        assert response.status_code == 404

    def test_missing_token(self, client):
        response = client.get("/portal/info")
        assert response.status_code == 401

    def test_malformed_header(self, client, portal_token):
        response = client.get("/portal/info", headers={"Authorization": f"Token {portal_token}"})
        assert response.status_code == 401

    def test_expired_token(self, client, token_service, case_tree):
        token = token_service.issue(case_tree["root"]["id"], "Jane", ["ID"], ttl=-1)
        response = client.get("/portal/info", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_reviewer_token_rejected(self, client, token_service, case_tree):
        token = token_service.issue(case_tree["root"]["id"], "Reviewer", [], role="reviewer")
        response = client.get("/portal/structure", headers=bearer(token))
        assert response.status_code == 403
