"""HTTP surface exercised through FastAPI's TestClient"""
import os

from doc_intelligence.api.errors import to_http_exception
from doc_intelligence.core.exceptions import (
    AuthenticationError, DocumentIntelligenceException, DocumentNotFoundError, ValidationError
)
from doc_intelligence.models import SEVERITY_RANK

from .conftest import CONTRACT_TEXT, INVOICE_TEXT, signup


def _upload(client, headers, text=CONTRACT_TEXT, filename="msa.pdf", mime_type="application/pdf", **form):
    return client.post(
        "/api/documents",
        headers=headers,
        files={"file": (filename, text.encode("utf-8"), mime_type)},
        data=form,
    )


def _uploaded(client, headers, **kwargs):
    response = _upload(client, headers, **kwargs)
    assert response.status_code == 201, response.text
    return response.json()


# --- Auth ---

def test_signup_login_and_current_user(client):
    headers = signup(client, email="Dana@Example.com")

    me = client.get("/api/auth/user", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "dana@example.com"
    assert me.json()["role"] == "user"

    login = client.post("/api/auth/login", json={"email": "dana@example.com", "password": "secret123"})
    assert login.status_code == 200
    assert login.json()["user"]["name"] == "Dana"


def test_duplicate_signup_and_bad_login(client, auth_headers):
    duplicate = client.post("/api/auth/signup",
                            json={"name": "Dana", "email": "DANA@example.com", "password": "secret123"})
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"

    bad = client.post("/api/auth/login", json={"email": "dana@example.com", "password": "wrong-password"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid email or password"


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/documents").status_code == 401
    assert client.get("/api/auth/user", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


# --- Documents ---

def test_upload_is_processed_in_background(client, auth_headers):
    created = _uploaded(client, auth_headers, document_name="Master Agreement", version="2.1")
    assert created["status"] == "pending"
    assert created["document_name"] == "Master Agreement"
    assert created["version"] == "2.1"

    doc = client.get(f"/api/documents/{created['id']}", headers=auth_headers).json()
    assert doc["status"] == "completed"
    assert doc["document_type"] == "contract"
    assert doc["risk_score"] > 0

    listed = client.get("/api/documents", headers=auth_headers).json()
    assert [d["id"] for d in listed] == [created["id"]]

    structure = client.get(f"/api/documents/{created['id']}/structure", headers=auth_headers).json()
    assert structure["document_id"] == created["id"]
    assert any(f["field_name"] == "Client" for f in structure["extracted_fields"])


def test_upload_name_falls_back_to_filename(client, auth_headers):
    created = _uploaded(client, auth_headers, filename="invoice.pdf", text=INVOICE_TEXT)
    assert created["document_name"] == "invoice.pdf"
    assert created["original_name"] == "invoice.pdf"


def test_upload_rejects_unsupported_type(client, auth_headers):
    response = _upload(client, auth_headers, filename="notes.txt", mime_type="text/plain")
    assert response.status_code == 400
    assert response.json()["detail"] == "File type not allowed."


def test_documents_are_private(client, auth_headers):
    created = _uploaded(client, auth_headers)
    other = signup(client, email="sam@example.com", name="Sam")

    assert client.get(f"/api/documents/{created['id']}", headers=other).status_code == 404
    assert client.get("/api/documents", headers=other).json() == []
    assert client.delete(f"/api/documents/{created['id']}", headers=other).status_code == 404


def test_file_download_accepts_query_token(client, auth_headers):
    created = _uploaded(client, auth_headers)
    token = auth_headers["Authorization"].split(" ", 1)[1]

    response = client.get(f"/api/documents/{created['id']}/file", params={"token": token})
    assert response.status_code == 200
    assert response.content == CONTRACT_TEXT.encode("utf-8")
    assert response.headers["etag"] == f'"{created["id"]}"'
    assert "immutable" in response.headers["cache-control"]

    assert client.get(f"/api/documents/{created['id']}/file").status_code == 401


def test_delete_cascades(client, storage, auth_headers):
    created = _uploaded(client, auth_headers)
    doc_id = created["id"]
    file_path = storage.documents[doc_id].file_path
    client.post(f"/api/documents/{doc_id}/chat", headers=auth_headers, json={"message": "Who is the client?"})
    assert storage.embeddings[doc_id]

    response = client.delete(f"/api/documents/{doc_id}", headers=auth_headers)

    assert response.status_code == 204
    assert client.get(f"/api/documents/{doc_id}", headers=auth_headers).status_code == 404
    assert doc_id not in storage.structures
    assert doc_id not in storage.embeddings
    assert doc_id not in storage.risk_flags
    assert storage.chat_history == []
    assert not os.path.exists(file_path)


def test_reprocess(client, processor, auth_headers):
    created = _uploaded(client, auth_headers)
    processor.fail = True

    response = client.post(f"/api/documents/{created['id']}/reprocess", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Reprocessing started. Refresh in a few seconds."
    assert client.get(f"/api/documents/{created['id']}", headers=auth_headers).json()["status"] == "failed"


# --- Chat and risk ---

def test_chat_and_history(client, auth_headers):
    created = _uploaded(client, auth_headers)
    url = f"/api/documents/{created['id']}/chat"

    answer = client.post(url, headers=auth_headers, json={"message": "Who is the client?"})
    assert answer.status_code == 200
    assert answer.json()["message"] == "Based on the document: **Client**: Globex Retail Limited (Page 1)."
    assert answer.json()["confidence"] == 0.95

    empty = client.post(url, headers=auth_headers, json={"message": ""})
    assert empty.status_code == 400

    history = client.get(url, headers=auth_headers).json()
    assert [h["question"] for h in history] == ["Who is the client?"]


def test_risk_analysis_and_flag_ordering(client, auth_headers):
    contract = _uploaded(client, auth_headers)
    _uploaded(client, auth_headers, filename="invoice.pdf", text=INVOICE_TEXT, document_name="Invoice")

    analysis = client.get(f"/api/documents/{contract['id']}/risk", headers=auth_headers).json()
    assert analysis["document_id"] == contract["id"]
    assert analysis["risk_factors"]
    assert all(f["location"] == {"page": 1} for f in analysis["risk_factors"])

    flags = client.get("/api/risk/flags", headers=auth_headers).json()
    ranks = [SEVERITY_RANK[f["severity"]] for f in flags]
    assert ranks == sorted(ranks, reverse=True)
    assert {f["document_name"] for f in flags} == {"msa.pdf", "Invoice"}


# --- Review, export and analysis ---

def test_review_then_export_csv(client, auth_headers):
    created = _uploaded(client, auth_headers)
    base = f"/api/documents/{created['id']}"

    reviewed = client.patch(f"{base}/review/field", headers=auth_headers,
                            json={"field_name": "client", "override_value": "Globex Holdings"})
    assert reviewed.status_code == 200
    client_field = next(f for f in reviewed.json() if f["field_name"] == "Client")
    assert client_field["override_value"] == "Globex Holdings"
    assert client_field["reviewed"] is True

    missing = client.patch(f"{base}/review/field", headers=auth_headers, json={"field_name": "Invoice Number"})
    assert missing.status_code == 404
    assert missing.json()["detail"]["message"] == "Field not found"

    export = client.get(f"{base}/export/csv", headers=auth_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert 'filename="msa.pdf_export.csv"' in export.headers["content-disposition"]
    assert '"Client","Globex Holdings",1,0.85,true' in export.text


def test_export_json(client, auth_headers):
    created = _uploaded(client, auth_headers, document_name="MSA")

    export = client.get(f"/api/documents/{created['id']}/export/json", headers=auth_headers)

    assert export.status_code == 200
    assert 'filename="MSA_export.json"' in export.headers["content-disposition"]
    body = export.json()
    assert body["document"]["document_type"] == "contract"
    assert body["structure"]["extracted_fields"]


def test_compare_analyze_and_schema(client, auth_headers):
    first = _uploaded(client, auth_headers)
    second = _uploaded(client, auth_headers, text=CONTRACT_TEXT.replace("Net 30 days", "Net 45 days"), version="2.0")

    compare = client.post("/api/documents/compare", headers=auth_headers,
                          json={"base_document_id": first["id"], "comparison_document_id": second["id"]})
    assert compare.status_code == 200
    assert compare.json()["comparison_document"]["version"] == "2.0"
    assert [d["type"] for d in compare.json()["differences"]] == ["modification"]

    analyze = client.post("/api/documents/analyze", headers=auth_headers,
                          json={"document_ids": [first["id"], second["id"]]})
    assert analyze.json()["consolidated_summary"] == "2 documents analyzed"
    too_few = client.post("/api/documents/analyze", headers=auth_headers, json={"document_ids": [first["id"]]})
    assert too_few.status_code == 400
    assert too_few.json()["detail"] == "At least 2 document IDs required"

    schema = client.post(f"/api/documents/{first['id']}/schema", headers=auth_headers, json={"schema": "contract"})
    assert schema.status_code == 200
    assert schema.json()["schema_name"] == "contract"
    assert client.post(f"/api/documents/{first['id']}/schema", headers=auth_headers, json={}).status_code == 400


# --- Health ---

def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    detailed = client.get("/health/detailed").json()
    assert detailed["components"]["storage_backend"] == "memory"
    assert "documents" in detailed["components"]["counts"]


def test_domain_errors_map_to_status_codes():
    not_found = to_http_exception(DocumentNotFoundError("Field not found", {"available_fields": ["Client"]}))
    assert not_found.status_code == 404
    assert not_found.detail == {"message": "Field not found", "available_fields": ["Client"]}
    assert to_http_exception(AuthenticationError("Invalid email or password")).status_code == 401
    assert to_http_exception(ValidationError("bad")).detail == "bad"
    assert to_http_exception(DocumentIntelligenceException()).status_code == 500
