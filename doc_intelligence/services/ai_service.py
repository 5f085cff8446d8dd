"""
AI/LLM Integration Service

Wraps Google Gemini (google-generativeai) for layout-aware extraction,
semantic risk detection, version comparison, multi-document reasoning,
schema mapping and grounded question answering. Every call walks the
configured model list until one returns a usable response; when no API
key is configured or every model fails, each operation returns its
documented default instead of raising.
"""
import re
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import (
    COMPARE_PROMPT_LIMIT, GEMINI_API_KEY, GEMINI_FALLBACK_MODELS, GEMINI_MODEL,
    MULTI_DOC_TEXT_LIMIT, STRUCTURE_PROMPT_LIMIT
)
from ..models import (
    Citation, CrossReference, ExtractedClause, ExtractedField, ExtractedStructure,
    GroundedAnswer, MultiDocAnalysis, Relationship, SchemaMapping, Section, SemanticRisk,
    SignatureBlock, Table, VersionDifference
)
from ..utils.text_diff import simple_text_diff

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Gemini API key not configured or no working model available."

_FENCE_RE = re.compile(r"```json\n?|\n?```")
_PAGE_REF_RE = re.compile(r"\[Page\s+(\d+)\]")

SCHEMA_DEFINITIONS = {
    "invoice": "Invoice: invoice_number, invoice_date, due_date, vendor_name, vendor_address, bill_to, "
               "line_items[{description, quantity, unit_price, total}], subtotal, tax, total, payment_terms, currency",
    "contract": "Contract: parties[], effective_date, termination_date, term, governing_law, dispute_resolution, "
                "confidentiality, indemnification, limitation_of_liability, force_majeure, amendments",
    "purchase_order": "PO: po_number, po_date, vendor, ship_to, line_items[{item, quantity, unit_price, total}], "
                      "subtotal, tax, shipping, total, payment_terms, delivery_date",
    "nda": "NDA: parties[], effective_date, term, confidential_information_scope, permitted_disclosure, "
           "obligations, remedies, governing_law",
    "sla": "SLA: service_provider, customer, effective_date, term, service_description, "
           "service_levels[{metric, target, measurement}], remedies, escalation, termination",
}

_BOX = '"bounding_box": { "x": number, "y": number, "width": number, "height": number }'

_STRUCTURE_FIELDS = f"""
"sections": array of {{ "title": string, "content": string, "page_number": number, "level": number (1-3), {_BOX} }} for each logical section.

"clauses": array of {{ "id": string, "title": string, "content": string, "page_number": number, "clause_type": "definition"|"obligation"|"restriction"|"right"|"termination"|"payment"|"liability"|"confidentiality"|"dispute"|"general", "confidence_score": number 0-1, {_BOX}, "cross_references": [{{ "ref": string, "target": string }}] }} - legal/contract clauses with type classification.

"signatures": array of {{ "id": string, "role": "signatory"|"witness"|"notary"|"authorized_representative", "name": string, "title": string, "company": string, "date": string, "page_number": number, "confidence_score": number }} - signature blocks.

"cross_references": array of {{ "id": string, "ref_type": "section"|"article"|"clause"|"appendix"|"exhibit"|"schedule"|"annex", "ref_number": string, "target_page_number": number, "target_section": string, "context": string, "page_number": number }} - references to other sections.

"relationships": array of {{ "id": string, "type": "references"|"modifies"|"supersedes"|"annex"|"appendix"|"exhibit"|"related", "source": {{ "clause_id": string, "text": string }}, "target": {{ "clause_id": string, "text": string }}, "page_number": number }} - relationships between clauses.

"extracted_fields": array of {{ "field_name": string, "value": string or number, "page_number": number, "confidence_score": number 0-1, {_BOX} }} for key data: dates, parties, amounts, invoice number, due date, total, etc.

"tables": array of {{ "page_number": number, "headers": string[], "rows": [ {{ "cells": string[] }} ] }} - any tabular data.

"summary": string (brief executive summary, 2-4 sentences).

"document_type": string - detected document type (contract, invoice, agreement, NDA, SLA, etc.)

"language": string - detected language (en, es, fr, etc.)

All bounding_box values must be in normalized 0-1 coordinates (x=left, y=top, width, height). Provide best-effort estimates."""

GROUNDED_INSTRUCTION = """Answer the question based ONLY on the provided context.
For each factual claim in your answer, cite the source using [Page X] format.
Include the specific text that supports your answer.
If the answer cannot be determined from the context, say "No evidence found."

Respond with JSON:
{
  "answer": string,
  "used_fields": string[] (field names used from context),
  "confidence": number 0-1 (based on how well the context supports the answer)
}"""


def parse_json_response(text: str) -> Any:
    """Strip markdown code fences and parse the JSON body"""
    return json.loads(_FENCE_RE.sub("", text or "").strip())


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _build_items(items: Any, model, prepare: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None) -> list:
    """Validate AI-produced dicts into models, skipping malformed entries"""
    built = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        data = prepare(dict(item)) if prepare else item
        try:
            built.append(model.model_validate(data))
        except PydanticValidationError as e:
            logger.debug(f"Skipping malformed {model.__name__} from AI response: {e}")
    return built


def _drop_empty(item: Dict[str, Any]) -> Dict[str, Any]:
    """Remove nulls so model defaults (ids, page numbers, confidence) apply"""
    return {k: v for k, v in item.items() if v is not None and v != ""}


def _enum_preparer(key: str) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Lowercase the enum-valued key before validation; unknown values still reject the item"""
    def prepare(item: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(item.get(key), str):
            item[key] = item[key].strip().lower()
        return _drop_empty(item)
    return prepare


def _prepare_clause(item: Dict[str, Any]) -> Dict[str, Any]:
    item = _enum_preparer("clause_type")(item)
    item["content"] = str(item.get("content", ""))
    return item


def _field_preparer(default_confidence: float) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    def prepare(item: Dict[str, Any]) -> Dict[str, Any]:
        value = item.get("value")
        item = _drop_empty(item)
        item["field_name"] = str(item.get("field_name", ""))
        item["value"] = value
        item.setdefault("confidence_score", default_confidence)
        return item
    return prepare


def _prepare_table(item: Dict[str, Any]) -> Dict[str, Any]:
    item = _drop_empty(item)
    item["headers"] = [str(h) for h in _as_list(item.get("headers"))]
    rows = []
    for row in _as_list(item.get("rows")):
        cells = row.get("cells") if isinstance(row, dict) else row
        rows.append({"cells": [str(c) for c in _as_list(cells)]})
    item["rows"] = rows
    return item


def normalize_structure(parsed: Dict[str, Any], page_count: Optional[int] = None,
                        default_field_confidence: float = 0.5) -> ExtractedStructure:
    """Turn a parsed Gemini extraction into an ExtractedStructure with defaults filled in"""
    if not isinstance(parsed, dict):
        return ExtractedStructure(page_count=page_count)

    return ExtractedStructure(
        layout_elements=[e for e in _as_list(parsed.get("layout_elements")) if isinstance(e, dict)],
        sections=_build_items(parsed.get("sections"), Section, _drop_empty),
        clauses=_build_items(parsed.get("clauses"), ExtractedClause, _prepare_clause),
        relationships=_build_items(parsed.get("relationships"), Relationship, _enum_preparer("type")),
        signatures=_build_items(parsed.get("signatures"), SignatureBlock, _enum_preparer("role")),
        cross_references=_build_items(parsed.get("cross_references"), CrossReference, _enum_preparer("ref_type")),
        extracted_fields=_build_items(parsed.get("extracted_fields"), ExtractedField,
                                      _field_preparer(default_field_confidence)),
        tables=_build_items(parsed.get("tables"), Table, _prepare_table),
        summary=parsed.get("summary") if isinstance(parsed.get("summary"), str) else "",
        insights=parsed.get("insights") if isinstance(parsed.get("insights"), str) else None,
        document_type=parsed.get("document_type") if isinstance(parsed.get("document_type"), str) else None,
        language=parsed.get("language") if isinstance(parsed.get("language"), str) else None,
        page_count=page_count,
        raw_text=parsed.get("raw_text") if isinstance(parsed.get("raw_text"), str) else "",
    )


class GeminiService:
    """Gemini client with an ordered model fallback list"""

    def __init__(self, api_key: str = None, models: List[str] = None):
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.models = models or [GEMINI_MODEL] + [m for m in GEMINI_FALLBACK_MODELS if m != GEMINI_MODEL]
        self._genai = None

        if not self.api_key:
            logger.warning("⚠️ Gemini API key is not configured. Please set GEMINI_API_KEY.")
            return

        import google.generativeai as genai
        genai.configure(api_key=self.api_key)
        self._genai = genai

    @property
    def enabled(self) -> bool:
        return self._genai is not None

    def _generate(self, model_name: str, contents: Any) -> str:
        model = self._genai.GenerativeModel(model_name)
        response = model.generate_content(contents)
        return response.text or ""

    def _call_models(self, contents: Any, purpose: str, handler: Callable[[str], Any]) -> Any:
        """
        Try each model in turn. ``handler`` turns the raw response text into a
        result; a handler returning None or raising moves on to the next model.
        Returns None when every model fails.
        """
        if not self.enabled:
            return None

        for model_name in self.models:
            logger.info(f"Attempting {purpose} with model: {model_name}")
            try:
                text = self._generate(model_name, contents)
                result = handler(text)
                if result is not None:
                    logger.info(f"✅ {purpose} succeeded with model: {model_name}")
                    return result
                logger.warning(f"{purpose} with {model_name} returned an unusable response")
            except Exception as e:
                logger.warning(f"{purpose} with {model_name} failed: {e}")

        logger.error(f"❌ All configured models failed for {purpose}")
        return None

    # --- Layout-aware extraction ---

    def extract_structure_from_text(self, raw_text: str, page_count: int = 1) -> ExtractedStructure:
        prompt = (
            f"Analyze this document text (from a PDF with {page_count} pages). Return a single JSON object "
            f"(no markdown) with comprehensive layout-aware analysis using these keys:\n"
            f"{_STRUCTURE_FIELDS}\n\nDocument text:\n{(raw_text or '')[:STRUCTURE_PROMPT_LIMIT]}"
        )
        result = self._call_models(
            prompt, "layout-aware structure extraction",
            lambda text: normalize_structure(parse_json_response(text), page_count),
        )
        return result or ExtractedStructure(page_count=page_count)

    def extract_structure_from_image(self, image_bytes: bytes, mime_type: str = "image/png") -> ExtractedStructure:
        prompt = (
            "You are analyzing a document image. Perform deep layout-aware analysis and return a single JSON "
            "object (no markdown, no code fence) with these keys:\n\n"
            '"raw_text": string - all text you can read from the image, in reading order.\n\n'
            '"layout_elements": array of { "id": string, "type": "header"|"paragraph"|"table"|"list"|"signature"|'
            '"footnote"|"page_number"|"image", "content": string, "page_number": 1, "level": number, '
            f"{_BOX} }}\n"
            f"{_STRUCTURE_FIELDS}\n\n"
            '"insights": string - layout description, key visual elements, document type, quality/readability notes.\n\n'
            "Use page_number 1 everywhere. Return only valid JSON."
        )
        contents = [{"mime_type": mime_type or "image/png", "data": image_bytes}, prompt]
        result = self._call_models(
            contents, "image layout extraction",
            lambda text: normalize_structure(parse_json_response(text), 1, default_field_confidence=0.6),
        )
        return result or ExtractedStructure(page_count=1)

    # --- Risk ---

    def detect_risks_semantic(self, clause_text: str, clause_type: Optional[str] = None) -> Optional[SemanticRisk]:
        prompt = f"""Identify legal/compliance risk in this clause. Return JSON only: {{
  "risk_type": string,
  "severity": "low"|"medium"|"high"|"critical",
  "explanation": string,
  "suggested_clause": string (optional),
  "regulatory_references": string[] (optional),
  "confidence_score": number 0-1
}}

Clause text:
{(clause_text or '')[:4000]}

Clause type (if known): {clause_type or "unknown"}"""

        def handle(text: str) -> Optional[SemanticRisk]:
            parsed = parse_json_response(text)
            if not isinstance(parsed, dict):
                return None
            return SemanticRisk.model_validate(_drop_empty(parsed))

        return self._call_models(prompt, "semantic risk detection", handle)

    # --- Comparison ---

    def compare_versions(self, text1: str, text2: str, clauses1: Optional[List[ExtractedClause]] = None,
                         clauses2: Optional[List[ExtractedClause]] = None) -> List[VersionDifference]:
        if not self.enabled:
            return simple_text_diff(text1, text2)

        clause_context = ""
        if clauses1:
            clause_context += "\nVersion 1 Clauses:\n" + "\n".join(
                f"[{c.id}] {c.title}: {c.content[:200]}" for c in clauses1)
        if clauses2:
            clause_context += "\nVersion 2 Clauses:\n" + "\n".join(
                f"[{c.id}] {c.title}: {c.content[:200]}" for c in clauses2)

        prompt = f"""Compare two document versions. Perform semantic comparison to identify:
1. Clause-level changes (additions, deletions, modifications)
2. Risk impact analysis for each change
3. Clause drift detection (significant changes in meaning)
4. Cross-reference updates

Return a JSON array of differences. Each item: {{
  "id": string,
  "type": "addition"|"deletion"|"modification"|"moved",
  "clause_id": string (if applicable),
  "clause_title": string,
  "description": string,
  "original_text": string (if deletion/modification),
  "new_text": string (if addition/modification),
  "risk_impact": "none"|"increased"|"decreased"|"changed",
  "severity": "low"|"medium"|"high" (if risk changed),
  "page_number": number,
  "moved_to_page": number (if moved),
  "clause_drift_score": number 0-1 (if semantically different)
}}
{clause_context}

Version 1:
{(text1 or '')[:COMPARE_PROMPT_LIMIT]}

Version 2:
{(text2 or '')[:COMPARE_PROMPT_LIMIT]}"""

        def handle(text: str) -> Optional[List[VersionDifference]]:
            items = parse_json_response(text)
            if not isinstance(items, list) or not items:
                return None
            diffs = []
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    continue
                item = _drop_empty(item)
                item.setdefault("id", f"diff_{index}")
                item.setdefault("type", "modification")
                item.setdefault("risk_impact", "none")
                item.setdefault("clause_drift_score", 0)
                try:
                    diffs.append(VersionDifference.model_validate(item))
                except PydanticValidationError as e:
                    logger.debug(f"Skipping malformed VersionDifference from AI response: {e}")
            return diffs or None

        return self._call_models(prompt, "version comparison", handle) or simple_text_diff(text1, text2)

    def analyze_multi_document(self, documents: List[Dict[str, Any]]) -> MultiDocAnalysis:
        if not self.enabled:
            return MultiDocAnalysis(consolidated_summary="Multi-document analysis requires API key")

        summaries = "\n\n---\n\n".join(
            f"Document: {d['name']} (ID: {d['id']})\n"
            f"Text: {(d.get('text') or '')[:MULTI_DOC_TEXT_LIMIT]}\n"
            f"Fields: {json.dumps(d.get('extracted_fields') or {}, default=str)}"
            for d in documents
        )
        prompt = f"""Analyze these {len(documents)} documents together. Identify:
1. Shared entities across documents (parties, dates, amounts, etc.)
2. Conflicts or inconsistencies between documents
3. Cross-references between documents
4. Consolidated summary
5. Combined risk assessment
6. Recommendations

Return JSON: {{
  "shared_entities": [{{ "type": string, "value": string, "document_ids": string[] }}],
  "conflicts": [{{ "entity": string, "values": [{{ "doc_id": string, "value": string }}], "severity": "low"|"medium"|"high" }}],
  "cross_references": [{{ "source_doc": string, "target_doc": string, "ref_type": string, "context": string }}],
  "consolidated_summary": string,
  "combined_risk_score": number 0-100,
  "recommendations": string[]
}}

Documents:
{summaries}"""

        def handle(text: str) -> Optional[MultiDocAnalysis]:
            parsed = parse_json_response(text)
            if not isinstance(parsed, dict):
                return None
            return MultiDocAnalysis.model_validate(_drop_empty(parsed))

        result = self._call_models(prompt, "multi-document analysis", handle)
        return result or MultiDocAnalysis(consolidated_summary="Analysis failed")

    def map_to_schema(self, fields: List[ExtractedField], target_schema: str) -> SchemaMapping:
        default = SchemaMapping(
            schema_name=target_schema,
            unmapped_fields=[f.field_name for f in fields],
        )
        if not self.enabled:
            return default

        field_lines = "\n".join(f"{f.field_name}: {f.value}" for f in fields)
        prompt = f"""Map these extracted fields to the "{target_schema}" schema.

Extracted fields:
{field_lines}

Schema definition:
{SCHEMA_DEFINITIONS.get(target_schema, "custom")}

Return JSON: {{
  "schema_name": string,
  "schema_version": string,
  "mapped_fields": [{{ "source_field": string, "target_field": string, "transformation": string (optional), "confidence": number 0-1 }}],
  "unmapped_fields": string[],
  "validation_errors": [{{ "field": string, "error": string }}]
}}"""

        def handle(text: str) -> Optional[SchemaMapping]:
            parsed = parse_json_response(text)
            if not isinstance(parsed, dict):
                return None
            parsed = _drop_empty(parsed)
            parsed.setdefault("schema_name", target_schema)
            return SchemaMapping.model_validate(parsed)

        return self._call_models(prompt, "schema mapping", handle) or default

    # --- Question answering ---

    def generate_with_grounded_citations(self, question: str, context: List[Citation]) -> Optional[GroundedAnswer]:
        """Answer from context with [Page N] citations; None when unavailable"""
        context_str = "\n\n---\n\n".join(f"[Page {c.page_number}] {c.text}" for c in context)
        prompt = f"{GROUNDED_INSTRUCTION}\n\nContext:\n{context_str}\n\nQuestion: {question}"

        def handle(text: str) -> Optional[GroundedAnswer]:
            parsed = parse_json_response(text)
            if not isinstance(parsed, dict):
                return None

            citations = []
            for match in _PAGE_REF_RE.finditer(text):
                page = int(match.group(1))
                source = next((c for c in context if c.page_number == page), None)
                if source:
                    citations.append(Citation(page_number=page, text=source.text[:200]))
            if not citations:
                citations = [Citation(page_number=c.page_number, text=c.text[:200]) for c in context[:3]]

            confidence = parsed.get("confidence")
            return GroundedAnswer(
                answer=parsed.get("answer") or text,
                citations=citations,
                confidence=confidence if isinstance(confidence, (int, float)) else 0.7,
                used_fields=[str(f) for f in _as_list(parsed.get("used_fields"))],
            )

        return self._call_models(prompt, "grounded answer", handle)

    def generate_with_context(self, question: str, context: str,
                              system_instruction: Optional[str] = None) -> Optional[str]:
        if system_instruction:
            prompt = f"{system_instruction}\n\nContext from document(s):\n{context}\n\nUser request: {question}"
        else:
            prompt = (
                "Use ONLY the following context to answer. Do not use general knowledge.\n\n"
                f"Context:\n{context}\n\nQuestion/Request: {question}"
            )
        return self._call_models(prompt, "context generation", lambda text: text if text.strip() else None)
