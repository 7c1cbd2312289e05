"""
Profile Enrichment Sync Service
Folds queued enrichments (tool outputs, founder answers, parsed decks) into a
company's canonical metrics record and, through the LLM, into the text of the
profile sections they concern.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from config.settings import (
    ENRICHMENT_SYNC_BATCH_SIZE,
    LLM_SECTION_MAX_TOKENS,
    LLM_SECTION_TEMPERATURE,
    METRICS_CONSISTENCY_TOLERANCE,
    METRICS_MERGE_STRATEGY,
)
from database.models.company import Company
from database.models.profile import (
    MemoResponse,
    ProfileEnrichment,
    ResponseSource,
    SECTION_LABELS,
)
from services.enrichment.metrics_store import load_metrics, save_metrics
from services.llm_client import LLMClient, get_llm_client
from services.metrics import (
    CONFIDENCE_ORDER,
    MergeStrategy,
    MetricDiscrepancy,
    MetricsRecord,
    SourceConfidence,
    calculate_derived_metrics,
    check_consistency,
    extract_all_metrics,
    hash_input_data,
    merge_metrics,
)
from utils.logger import get_logger

logger = get_logger(__name__)

# source_type (or improve_score_<section>) -> profile sections it feeds
SECTION_MAPPING: Dict[str, List[str]] = {
    "tam_calculator": ["target_customer", "business_model"],
    "improve_score_problem_core": ["problem_core"],
    "improve_score_solution_core": ["solution_core"],
    "improve_score_target_customer": ["target_customer"],
    "improve_score_competitive_moat": ["competitive_moat"],
    "improve_score_team_story": ["team_story"],
    "improve_score_business_model": ["business_model"],
    "improve_score_traction_proof": ["traction_proof"],
    "improve_score_vision_ask": ["vision_ask"],
    "venture_diagnostic": ["business_model", "traction_proof"],
    "pain_validator": ["problem_core"],
    "evidence_threshold": ["problem_core"],
    "business_model_stress_test": ["business_model"],
    "moat_durability": ["competitive_moat"],
    "team_credibility": ["team_story"],
    "traction_depth": ["traction_proof"],
}

# AI-parsed documents are best effort, so their structured fields are not "high"
SOURCE_CONFIDENCE_CAPS: Dict[str, SourceConfidence] = {
    "deck_import": SourceConfidence.MEDIUM,
    "report_import": SourceConfidence.MEDIUM,
    "ai_extraction": SourceConfidence.MEDIUM,
}

# Replies this short are treated as a failed synthesis
MIN_SECTION_CONTENT_LENGTH = 10

SECTION_MERGE_PROMPT = """You are helping a startup founder update their company profile. Your task is to intelligently merge new information into an existing profile section.

## Current "{section_label}" Section:
{current_content}

## New Information to Incorporate:
{enrichment_context}

## Instructions:
1. Analyze the new information provided
2. Merge it into the existing section content naturally
3. Preserve the founder's original voice and writing style
4. Add specific details, numbers, and facts from the new information
5. Don't duplicate information that's already present
6. Keep the response focused and concise (max 500 words)
7. If the section was empty, create a compelling new section based on the new information

## Output:
Write the updated section content. Return ONLY the updated text, no explanations or formatting."""


def cap_confidence(metrics: MetricsRecord, cap: SourceConfidence) -> MetricsRecord:
    """Lower every confidence above ``cap`` down to it."""
    capped = metrics.model_copy(deep=True)
    cap_rank = CONFIDENCE_ORDER[cap]
    for source in capped.field_sources.values():
        if CONFIDENCE_ORDER[source.confidence] > cap_rank:
            source.confidence = cap
    if capped.source_confidence and CONFIDENCE_ORDER[capped.source_confidence] > cap_rank:
        capped.source_confidence = cap
    return capped


def _fmt_number(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:,}"
    return ""


def format_enrichment(enrichment: ProfileEnrichment) -> str:
    """Render one enrichment as a block of prompt context."""
    source = enrichment.source_tool or enrichment.source_type
    data = enrichment.input_data or {}

    if data.get("question") and data.get("answer"):
        formatted = f"Q: {data['question']}\nA: {data['answer']}"
    elif isinstance(data.get("segments"), list):
        lines = []
        for segment in data["segments"]:
            if not isinstance(segment, dict):
                continue
            lines.append(
                f"- {segment.get('segment', 'Segment')}: {_fmt_number(segment.get('count'))} companies "
                f"at ${_fmt_number(segment.get('acv'))} ACV = ${_fmt_number(segment.get('tam') or 0)} TAM"
            )
        formatted = "Market Segments:\n" + "\n".join(lines)
    elif data.get("acv"):
        formatted = f"ACV: ${_fmt_number(data['acv']) or data['acv']}"
    else:
        formatted = json.dumps(data, indent=2, default=str)

    return f"[From {source}]:\n{formatted}"


class ProfileEnrichmentSyncService:
    """
    Processes a company's pending enrichments in one pass.

    Metrics pass: every enrichment not yet folded in (by input hash) is run
    through extract_all_metrics and merged into the stored record, which is
    then re-derived, validated and saved.

    Section pass: enrichments are grouped by target section and the LLM
    merges them into the current section text. A failed section is logged
    and skipped; its enrichments stay pending for the next sync.
    """

    def __init__(
        self,
        session: Session,
        llm_client: Optional[LLMClient] = None,
        merge_strategy: str = METRICS_MERGE_STRATEGY,
        tolerance: float = METRICS_CONSISTENCY_TOLERANCE,
    ):
        self.session = session
        self.llm_client = llm_client or get_llm_client()
        self.merge_strategy = MergeStrategy(merge_strategy)
        self.tolerance = tolerance

    def sync_company(self, company_id: str) -> Dict[str, Any]:
        """
        Sync all pending enrichments for a company.

        Returns:
            Dict with synced (enrichments marked processed), sections_updated,
            metrics (stored record as JSON, or None) and discrepancies
        """
        company = self.session.get(Company, company_id)
        if not company:
            raise ValueError(f"Company not found: {company_id}")

        unapplied = self._get_pending_enrichments(company_id, metrics_applied=False)
        enrichments = self._get_pending_enrichments(company_id)
        if not unapplied and not enrichments:
            logger.info(f"[EnrichmentSync] No pending enrichments for company {company_id}")
            return {"synced": 0, "sections_updated": [], "metrics": None, "discrepancies": []}

        logger.info(
            f"[EnrichmentSync] Processing {len(unapplied)} new and {len(enrichments)} pending "
            f"enrichments for company {company_id}"
        )

        metrics, discrepancies = self._sync_metrics(company_id, unapplied)

        current_profile = self._get_current_profile(company_id)
        sections_to_update: Dict[str, str] = {}
        processed_ids: List[str] = []

        grouped = self._group_by_section(enrichments)
        for section_key, section_enrichments in grouped.items():
            updated = self._synthesize_section(
                section_key,
                current_profile.get(section_key, ""),
                section_enrichments,
            )
            if not updated:
                continue
            sections_to_update[section_key] = updated
            for enrichment in section_enrichments:
                if enrichment.id not in processed_ids:
                    processed_ids.append(enrichment.id)

        # Nothing else will ever consume an enrichment no section reads
        sectioned_ids = {e.id for section_enrichments in grouped.values() for e in section_enrichments}
        for enrichment in enrichments:
            if enrichment.id not in sectioned_ids and enrichment.metrics_applied:
                processed_ids.append(enrichment.id)

        for section_key, content in sections_to_update.items():
            self._upsert_response(company_id, section_key, content)

        now = datetime.utcnow()
        for enrichment in enrichments:
            if enrichment.id in processed_ids:
                enrichment.processed = True
                enrichment.processed_at = now
        for enrichment in unapplied + enrichments:
            self.session.add(enrichment)

        self.session.commit()

        logger.info(
            f"[EnrichmentSync] Synced {len(processed_ids)} enrichments to "
            f"{len(sections_to_update)} sections for company {company_id}"
        )

        return {
            "synced": len(processed_ids),
            "sections_updated": list(sections_to_update.keys()),
            "metrics": metrics.to_json_dict() if metrics is not None else None,
            "discrepancies": [d.model_dump() for d in discrepancies],
        }

    def _get_pending_enrichments(
        self,
        company_id: str,
        metrics_applied: Optional[bool] = None,
    ) -> List[ProfileEnrichment]:
        """
        Oldest unprocessed enrichments, one batch. With metrics_applied=False,
        only those whose input has not been folded into the metrics yet, so
        enrichments stuck waiting on a section never hold back the metrics.
        """
        statement = select(ProfileEnrichment).where(
            ProfileEnrichment.company_id == company_id,
            ProfileEnrichment.processed == False,  # noqa: E712
        )
        if metrics_applied is not None:
            statement = statement.where(ProfileEnrichment.metrics_applied == metrics_applied)
        statement = statement.order_by(
            ProfileEnrichment.created_at.asc()
        ).limit(ENRICHMENT_SYNC_BATCH_SIZE)
        return list(self.session.exec(statement).all())

    def _get_current_profile(self, company_id: str) -> Dict[str, str]:
        responses = self.session.exec(
            select(MemoResponse).where(MemoResponse.company_id == company_id)
        ).all()
        return {r.question_key: r.answer or "" for r in responses}

    def _sync_metrics(
        self,
        company_id: str,
        enrichments: List[ProfileEnrichment],
    ) -> Tuple[Optional[MetricsRecord], List[MetricDiscrepancy]]:
        """Fold new enrichment inputs into the stored metrics record."""
        stored = load_metrics(self.session, company_id)
        record = stored.record
        input_hashes = list(stored.input_hashes)
        applied = 0

        for enrichment in enrichments:
            input_hash = enrichment.input_hash or hash_input_data(enrichment.input_data or {})
            if input_hash in input_hashes:
                enrichment.metrics_applied = True
                continue

            extracted = extract_all_metrics(enrichment.input_data or {})
            cap = SOURCE_CONFIDENCE_CAPS.get(enrichment.source_type)
            if cap:
                extracted = cap_confidence(extracted, cap)

            # A payload with nothing numeric would only reset the currency
            if extracted.has_metrics():
                record = merge_metrics(record, extracted, self.merge_strategy)
                logger.info(
                    f"[EnrichmentSync] {enrichment.source_type}: merged "
                    f"{len(extracted.known_metrics())} metrics "
                    f"(confidence: {extracted.source_confidence.value if extracted.source_confidence else 'n/a'})"
                )

            input_hashes.append(input_hash)
            enrichment.metrics_applied = True
            applied += 1

        if not applied or not record.has_metrics():
            if not stored.exists:
                return None, []
            return record, check_consistency(record, self.tolerance)

        # Values derived from earlier observations survive a newer input (an old
        # derived acv next to a new arr); check_consistency reports those pairs
        record = calculate_derived_metrics(record)
        discrepancies = check_consistency(record, self.tolerance)
        for d in discrepancies:
            logger.warning(
                f"[EnrichmentSync] Inconsistent metrics for company {company_id}: "
                f"{d.relation} (expected {d.expected:,.1f}, actual {d.actual:,.1f})"
            )

        save_metrics(self.session, company_id, record, input_hashes)
        return record, discrepancies

    def _group_by_section(self, enrichments: List[ProfileEnrichment]) -> Dict[str, List[ProfileEnrichment]]:
        by_section: Dict[str, List[ProfileEnrichment]] = {}

        for enrichment in enrichments:
            if enrichment.target_section_hint:
                target_sections = [enrichment.target_section_hint]
            else:
                if "improve_score" in enrichment.source_type:
                    section = (enrichment.input_data or {}).get("section") or "general"
                    mapping_key = f"improve_score_{section}"
                else:
                    mapping_key = enrichment.source_type
                target_sections = (
                    SECTION_MAPPING.get(mapping_key)
                    or SECTION_MAPPING.get(enrichment.source_type)
                    or []
                )

            for section in target_sections:
                by_section.setdefault(section, []).append(enrichment)

        return by_section

    def _synthesize_section(
        self,
        section_key: str,
        current_content: str,
        enrichments: List[ProfileEnrichment],
    ) -> Optional[str]:
        """Ask the LLM to merge the enrichments into one section. None on any failure."""
        if not self.llm_client.is_configured():
            logger.error(f"[EnrichmentSync] LLM not configured, skipping section {section_key}")
            return None

        label = next((v for k, v in SECTION_LABELS.items() if k.value == section_key), section_key)
        prompt = SECTION_MERGE_PROMPT.format(
            section_label=label,
            current_content=current_content or "(Empty - no content yet)",
            enrichment_context="\n\n".join(format_enrichment(e) for e in enrichments),
        )

        try:
            content, _ = self.llm_client.chat_completion(
                messages=[{"role": "user", "content": prompt}],
                max_tokens=LLM_SECTION_MAX_TOKENS,
                temperature=LLM_SECTION_TEMPERATURE,
            )
        except Exception as e:
            logger.error(f"[EnrichmentSync] Error processing section {section_key}: {e}")
            return None

        content = (content or "").strip()
        if len(content) <= MIN_SECTION_CONTENT_LENGTH:
            logger.warning(f"[EnrichmentSync] Empty synthesis for section {section_key}, skipping")
            return None

        return content

    def _upsert_response(self, company_id: str, question_key: str, answer: str) -> None:
        existing = self.session.exec(
            select(MemoResponse).where(
                MemoResponse.company_id == company_id,
                MemoResponse.question_key == question_key,
            )
        ).first()

        if existing:
            existing.answer = answer
            existing.source = ResponseSource.ENRICHMENT_SYNC.value
            existing.updated_at = datetime.utcnow()
            self.session.add(existing)
        else:
            self.session.add(MemoResponse(
                company_id=company_id,
                question_key=question_key,
                answer=answer,
                source=ResponseSource.ENRICHMENT_SYNC.value,
            ))
