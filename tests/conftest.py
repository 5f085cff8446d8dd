"""Shared fixtures: in-memory storage, fake Gemini and a text-only document processor"""
import os
import tempfile

os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="doc_intelligence_uploads_")
os.environ["GEMINI_API_KEY"] = ""
os.environ["MONGODB_URL"] = ""
os.environ["CHROMA_URL"] = ""
os.environ["CHROMA_PERSIST_DIR"] = ""
os.environ["EMBEDDING_BACKEND"] = "local"

import pytest
from fastapi.testclient import TestClient

from doc_intelligence.core.dependencies import (
    get_ai_service, get_document_processor, get_embeddings, get_storage, get_vector_store
)
from doc_intelligence.main import app
from doc_intelligence.models import (
    ExtractedStructure, MultiDocAnalysis, SchemaMapping, UserRecord
)
from doc_intelligence.services.document_processor import ProcessingResult
from doc_intelligence.services.embedding_service import LocalHashEmbeddings
from doc_intelligence.services.pipeline import DocumentPipeline
from doc_intelligence.storage.managers import InMemoryStorage
from doc_intelligence.utils.text_diff import simple_text_diff

CONTRACT_TEXT = (
    "MASTER SERVICE AGREEMENT\n\n"
    "Parties: Globex Retail Limited (\"Client\")\n"
    "Provider: Acme Technologies Pvt Ltd (\"Service Provider\")\n\n"
    "This agreement is entered into between the parties named above. Whereas the Client "
    "requires software services, the parties hereby agree as follows.\n\n"
    "PAYMENT TERMS:\n"
    "Payment is due within Net 30 days from the invoice date.\n\n"
    "TERMINATION:\n"
    "Either party may terminate at any time without notice.\n\n"
    "CONFIDENTIALITY:\n"
    "Both parties must hold in confidence all proprietary information.\n\n"
    "Effective Date: 1 January 2024\n"
    "Term: 12 months\n"
)

INVOICE_TEXT = (
    "TAX INVOICE\n"
    "Invoice Number: INV-2024-001\n"
    "Invoice Date: 05/01/2024\n"
    "Vendor: Acme Technologies\n"
    "Bill To: Globex Retail\n"
    "Payment Terms: Net 15 days\n"
    "Subtotal: 1000.00\n"
    "Grand Total: 1180.00\n"
    "Due Date: 20/01/2024\n"
)

ID_TEXT = (
    "DRIVER LICENSE\n"
    "Name: Jordan Smith\n"
    "Date of Birth: 12/03/1990\n"
    "Sex: F\n"
    "Customer Number: 123456789\n"
    "Expiry: 12/03/2030\n"
)


class FakeAIService:
    """Stands in for GeminiService; every answer is preset by the test"""

    enabled = False

    def __init__(self):
        self.structure = ExtractedStructure(page_count=1)
        self.image_structure = ExtractedStructure(page_count=1)
        self.semantic_risk = None
        self.grounded_answer = None
        self.context_answer = None
        self.analyzed_documents = None
        self.mapped_fields = None

    def extract_structure_from_text(self, raw_text, page_count=1):
        return self.structure.model_copy(update={"page_count": page_count}, deep=True)

    def extract_structure_from_image(self, image_bytes, mime_type="image/png"):
        return self.image_structure.model_copy(deep=True)

    def detect_risks_semantic(self, clause_text, clause_type=None):
        return self.semantic_risk

    def compare_versions(self, text1, text2, clauses1=None, clauses2=None):
        return simple_text_diff(text1, text2)

    def analyze_multi_document(self, documents):
        self.analyzed_documents = documents
        return MultiDocAnalysis(consolidated_summary=f"{len(documents)} documents analyzed")

    def map_to_schema(self, fields, target_schema):
        self.mapped_fields = fields
        return SchemaMapping(schema_name=target_schema, unmapped_fields=[f.field_name for f in fields])

    def generate_with_grounded_citations(self, question, context):
        return self.grounded_answer

    def generate_with_context(self, question, context, system_instruction=None):
        return self.context_answer


class FakeProcessor:
    """Treats uploaded bytes as UTF-8 text, one page per form feed"""

    def __init__(self):
        self.image_text = ""
        self.fail = False

    def extract_pdf_pages(self, content):
        if self.fail:
            raise RuntimeError("corrupt PDF")
        pages = content.decode("utf-8").split("\f")
        return ProcessingResult(pages=pages, page_count=len(pages), method="text")

    def extract_image_text(self, content):
        return self.image_text


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def ai_service():
    return FakeAIService()


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def embeddings():
    return LocalHashEmbeddings()


@pytest.fixture
def pipeline(storage, ai_service, processor, embeddings):
    return DocumentPipeline(storage, ai_service, processor, embeddings)


@pytest.fixture
async def user(storage):
    return await storage.create_user(UserRecord(name="Dana", email="dana@example.com", password_hash="x"))


@pytest.fixture
def write_file(tmp_path):
    def _write(name, text):
        path = tmp_path / name
        path.write_bytes(text.encode("utf-8") if isinstance(text, str) else text)
        return str(path)
    return _write


@pytest.fixture
def client(storage, ai_service, processor, embeddings):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_document_processor] = lambda: processor
    app.dependency_overrides[get_embeddings] = lambda: embeddings
    app.dependency_overrides[get_vector_store] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client, email="dana@example.com", password="secret123", name="Dana"):
    response = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return signup(client)
