"""
Regex heuristics used when (or in addition to when) Gemini is unavailable:
document type classification, labelled field extraction, identity-card
fields, plain-text table detection and blank-line section splitting.
"""
import re
import logging
from typing import List, Optional

from ..models import DocumentType, ExtractedField, Section, Table, TableRow

logger = logging.getLogger(__name__)

HEURISTIC_FIELD_CONFIDENCE = 0.85
ID_FIELD_CONFIDENCE = 0.88

_CONTRACT_INDICATORS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"agreement", r"contract", r"parties", r"between\s+[a-z]",
        r"whereas", r"hereby", r"terms?\s*and\s*conditions",
        r"termination", r"confidentiality", r"liability",
        r"indemnif", r"governing\s*law", r"arbitration",
        r"service\s*agreement", r"master\s*agreement",
        r"this\s+agreement", r"party\s+of\s+the",
        r"witnesseth", r"herein", r"notwithstanding",
    )
]

_INVOICE_INDICATORS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"tax\s*invoice", r"invoice\s*number", r"bill\s*to\s*:",
        r"gst\s*invoice", r"vendor\s*:", r"bill\s*amount",
        r"subtotal", r"grand\s*total", r"due\s*date",
        r"payment\s*terms.*days", r"net\s*\d+\s*days",
        r"invoice\s*date", r"total\s*amount", r"balance\s*due",
    )
]

_ID_INDICATORS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"driver'?s?\s*licen[sc]e", r"identification\s*(?:card|document)",
        r"id\s*card", r"date\s*of\s*birth", r"expiry",
        r"customer\s*number", r"license\s*number",
    )
]

_NDA_PATTERN = re.compile(r"\bnda\b|non[-\s]?disclosure|confidentiality\s*agreement", re.IGNORECASE)
_NDA_SUBJECT_PATTERN = re.compile(r"confidential|proprietary|trade\s*secret", re.IGNORECASE)
_SLA_PATTERN = re.compile(r"\bsla\b|service\s*level\s*agreement|service\s*guarantee|uptime|response\s*time", re.IGNORECASE)
_PO_PATTERN = re.compile(r"purchase\s*order|\bp\.?o\b\.?|po\s*number|order\s*date|ship\s*to|vendor\s*quote", re.IGNORECASE)

# Loose aliases Gemini tends to answer with
_DOCUMENT_TYPE_ALIASES = {
    "agreement": DocumentType.CONTRACT.value,
    "service_agreement": DocumentType.CONTRACT.value,
    "master_agreement": DocumentType.CONTRACT.value,
    "legal_contract": DocumentType.CONTRACT.value,
    "non_disclosure_agreement": DocumentType.NDA.value,
    "confidentiality_agreement": DocumentType.NDA.value,
    "service_level_agreement": DocumentType.SLA.value,
    "po": DocumentType.PURCHASE_ORDER.value,
    "tax_invoice": DocumentType.INVOICE.value,
    "gst_invoice": DocumentType.INVOICE.value,
    "bill": DocumentType.INVOICE.value,
    "identity": DocumentType.IDENTITY_DOCUMENT.value,
    "id_card": DocumentType.IDENTITY_DOCUMENT.value,
    "drivers_license": DocumentType.IDENTITY_DOCUMENT.value,
    "driver_license": DocumentType.IDENTITY_DOCUMENT.value,
    "passport": DocumentType.IDENTITY_DOCUMENT.value,
}


def detect_document_type(raw_text: str) -> str:
    """Classify a document from its text alone"""
    if not raw_text or len(raw_text) < 20:
        return DocumentType.UNKNOWN.value

    text = raw_text.lower()

    contract_score = sum(1 for p in _CONTRACT_INDICATORS if p.search(text))
    if contract_score >= 3 or ("agreement" in text and contract_score >= 2):
        return DocumentType.CONTRACT.value

    if _NDA_PATTERN.search(text) and _NDA_SUBJECT_PATTERN.search(text):
        return DocumentType.NDA.value

    if _SLA_PATTERN.search(text):
        return DocumentType.SLA.value

    if _PO_PATTERN.search(text):
        return DocumentType.PURCHASE_ORDER.value

    invoice_score = sum(1 for p in _INVOICE_INDICATORS if p.search(text))
    if invoice_score >= 3:
        return DocumentType.INVOICE.value

    id_score = sum(1 for p in _ID_INDICATORS if p.search(text))
    if id_score >= 2:
        return DocumentType.IDENTITY_DOCUMENT.value

    if contract_score >= 1:
        return DocumentType.CONTRACT.value

    return DocumentType.UNKNOWN.value


def normalize_document_type(value: Optional[str]) -> Optional[str]:
    """Map a free-form type name (e.g. from Gemini) onto a known type, else None"""
    if not value or not isinstance(value, str):
        return None
    key = re.sub(r"[\s\-/]+", "_", value.strip().lower()).replace("'", "")
    known = {t.value for t in DocumentType}
    if key in known:
        return None if key == DocumentType.UNKNOWN.value else key
    return _DOCUMENT_TYPE_ALIASES.get(key)


# --- Field extraction ---

_FIELD_PATTERNS = [
    {'name': "Invoice Number", 'pattern': r"Invoice\s*Number\s*:\s*([^\s\n]+)"},
    {'name': "Invoice Date", 'pattern': r"Invoice\s*Date\s*:\s*([^\n]+?)(?:\s+Vendor|\s*$)"},
    {'name': "Vendor", 'pattern': r"Vendor\s*:\s*([^\n]+?)(?:\s+Bill|\s*$)"},
    {'name': "Bill To", 'pattern': r"Bill\s*To\s*:\s*([^\n]+?)(?:\s+Payment|\s*$)"},
    {'name': "Payment Terms", 'pattern': r"Payment\s*Terms\s*:\s*([^\n]+)"},
    {'name': "Subtotal", 'pattern': r"Subtotal\s*:\s*([^\n]+)"},
    {'name': "GST", 'pattern': r"GST\s*\([^)]*\)\s*:\s*([^\n]+)"},
    {'name': "Grand Total", 'pattern': r"Grand\s*Total\s*:\s*([^\n]+)"},
    {'name': "Due Date", 'pattern': r"Due\s*Date\s*:\s*([^\n]+)"},
    {'name': "Parties", 'pattern': r"(?:parties?|between)\s*[:\s]+([^\n]{3,120})"},
    {'name': "Effective Date", 'pattern': r"effective\s*date\s*[:\s]+([^\n]+)"},
    {'name': "Term", 'pattern': r"(?:term|duration)\s*[:\s]+([^\n]+)"},
    {'name': "Client", 'pattern': r"(?:between\s+)?([A-Za-z0-9\s.,&]+(?:Pvt\.?|Private|Limited|Ltd\.?|Inc\.?|LLC)?)\s*\(\s*[\"']?Client[\"']?\s*\)"},
    {'name': "Service Provider", 'pattern': r"([A-Za-z0-9\s.,&]+(?:Pvt\.?|Private|Limited|Ltd\.?|Inc\.?|LLC)?)\s*\(\s*[\"']?Service\s*Provider[\"']?\s*\)"},
]
_COMPILED_FIELD_PATTERNS = [(p['name'], re.compile(p['pattern'], re.IGNORECASE)) for p in _FIELD_PATTERNS]

_ID_FIELD_PATTERNS = [
    ("Name", re.compile(r"(?:name|customer\s*name)\s*:\s*([^\n]+)", re.IGNORECASE)),
    ("Name", re.compile(r"(\b[A-Z][a-z]+,\s*[A-Z][a-z]+\b)")),
    ("Date of Birth", re.compile(r"(?:date\s*of\s*birth|dob)\s*:\s*([^\n]+)", re.IGNORECASE)),
    ("Customer Number", re.compile(r"(?:customer\s*number)\s*:\s*(\d+)", re.IGNORECASE)),
    ("License Number", re.compile(r"(?:licen[sc]e\s*(?:number|no\.?))\s*:\s*([^\n]+)", re.IGNORECASE)),
    ("Expiry", re.compile(r"(?:expiry|date\s*of\s*expiry|exp\.?)\s*:\s*([^\n]+)", re.IGNORECASE)),
    ("Address", re.compile(r"(?:address)\s*:\s*([^\n]+)", re.IGNORECASE)),
]

_LEADING_BETWEEN = re.compile(r"^\s*between\s+", re.IGNORECASE)


def extract_fields_from_text(raw_text: str) -> List[ExtractedField]:
    """Labelled invoice/contract fields ("Invoice Number: 42", "... (Client)")"""
    fields = []
    for name, pattern in _COMPILED_FIELD_PATTERNS:
        match = pattern.search(raw_text or "")
        if match:
            value = _LEADING_BETWEEN.sub("", match.group(1).strip()).strip()
            fields.append(ExtractedField(
                field_name=name,
                value=value,
                page_number=1,
                confidence_score=HEURISTIC_FIELD_CONFIDENCE,
            ))
    return fields


def extract_id_fields_from_text(raw_text: str) -> List[ExtractedField]:
    """Identity-card fields; duplicate name/value pairs are kept once"""
    fields = []
    seen = set()
    for name, pattern in _ID_FIELD_PATTERNS:
        match = pattern.search(raw_text or "")
        if not match:
            continue
        value = (match.group(1) or match.group(0)).strip()
        key = f"{name}:{value[:50]}"
        if key in seen:
            continue
        seen.add(key)
        fields.append(ExtractedField(
            field_name=name,
            value=value,
            page_number=1,
            confidence_score=ID_FIELD_CONFIDENCE,
        ))
    return fields


# --- Tables ---

INVOICE_TABLE_HEADERS = ["Item", "Description", "Quantity", "Unit Price", "Total"]

_DIGITS = re.compile(r"^\d+$")
_NUMBER_LIKE = re.compile(r"^[\d,]+\.?\d*$")
_HAS_NUMBER = re.compile(r"[\d,]")
_CELL_SPLIT = re.compile(r"\s{2,}|\t+")


def _non_empty_lines(text: str) -> List[str]:
    return [line.strip() for line in re.split(r"\r?\n", text or "") if line.strip()]


def detect_invoice_table(page_text: str, page_number: int) -> Optional[Table]:
    """Invoice line items under an 'Item Description ... Quantity ...' header"""
    lines = _non_empty_lines(page_text)
    header_idx = next(
        (i for i, line in enumerate(lines)
         if re.search(r"item\s+description", line, re.IGNORECASE)
         and re.search(r"quantity", line, re.IGNORECASE)
         and (re.search(r"total|unit\s*price", line, re.IGNORECASE) or _HAS_NUMBER.search(line))),
        -1,
    )
    if header_idx == -1:
        return None

    rows = []
    for line in lines[header_idx + 1:]:
        parts = line.split()
        if len(parts) >= 5 and _DIGITS.match(parts[0]) and _DIGITS.match(parts[-3]):
            description = " ".join(parts[1:-3])
            rows.append(TableRow(cells=[parts[0], description, parts[-3], parts[-2], parts[-1]]))

    if not rows:
        return None
    return Table(page_number=page_number, headers=list(INVOICE_TABLE_HEADERS), rows=rows)


def detect_tables_from_text(page_text: str, page_number: int) -> List[Table]:
    """Invoice table first; otherwise column-aligned text becomes a generic table"""
    tables = []
    invoice_table = detect_invoice_table(page_text, page_number)
    if invoice_table:
        tables.append(invoice_table)

    lines = _non_empty_lines(page_text)
    if len(lines) < 2:
        return tables

    rows = []
    for line in lines:
        cells = [c.strip() for c in _CELL_SPLIT.split(line) if c.strip()]
        if len(cells) < 2:
            parts = line.split()
            if (len(parts) >= 3
                    and (_DIGITS.match(parts[0]) or _NUMBER_LIKE.match(parts[0]))
                    and _HAS_NUMBER.search(parts[-1])):
                cells = parts
            elif len(parts) >= 2 and _HAS_NUMBER.search(parts[-1]):
                cells = parts
        if len(cells) >= 2:
            rows.append(cells)

    if len(rows) >= 2 and not tables:
        header_row = rows[0]
        data_rows = [TableRow(cells=r) for r in rows[1:] if any(r)]
        if data_rows:
            headers = [h or f"Col{i + 1}" for i, h in enumerate(header_row)]
            tables.append(Table(page_number=page_number, headers=headers, rows=data_rows))
    return tables


# --- Sections ---

_SECTION_HEADING = re.compile(r"^(Section|Article|Clause|Part)\s+\d+", re.IGNORECASE)


def extract_sections_from_text(raw_text: str) -> List[Section]:
    """Split on blank lines; short upper-case / colon / 'Section N' first lines become titles"""
    sections = []
    blocks = [b.strip() for b in re.split(r"\n\s*\n", raw_text or "") if b.strip()]
    for block in blocks:
        lines = re.split(r"\r?\n", block)
        first = lines[0].strip() if lines else ""
        is_header = len(first) < 80 and (
            first == first.upper()
            or re.search(r":\s*$", first) is not None
            or _SECTION_HEADING.match(first) is not None
        )
        title = re.sub(r"\s*:\s*$", "", first) if is_header else "Content"
        content = "\n".join(lines[1:]).strip() if is_header else block
        if content:
            sections.append(Section(title=title, content=content, page_number=1))

    if sections:
        return sections
    return [Section(title="Document", content=(raw_text or "")[:5000], page_number=1)]
