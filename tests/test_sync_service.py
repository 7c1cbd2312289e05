import json
from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from config.settings import METRICS_SENTINEL_KEY
from database.models import MemoResponse, ProfileEnrichment
import services.enrichment.sync_service as sync_service
from services.enrichment import ProfileEnrichmentSyncService, load_metrics
from services.enrichment.sync_service import cap_confidence, format_enrichment
from services.metrics import MetricsRecord, SourceConfidence, hash_input_data

TAM_OUTPUT = {
    "segments": [
        {"segment": "SMB", "count": 1000, "acv": 5000, "tam": 5000000},
        {"segment": "Mid", "count": 100, "acv": 15000, "tam": 1500000},
    ],
    "customers": 20,
}

TRACTION_ANSWER = {
    "section": "traction_proof",
    "question": "What traction do you have?",
    "answer": "We reached MRR: 20k with 2% churn",
}

_BASE_TIME = datetime(2026, 1, 1, 9, 0, 0)


def _enqueue(session, company, source_type, input_data, order=0, **kwargs):
    enrichment = ProfileEnrichment(
        company_id=company.id,
        source_type=source_type,
        input_data=input_data,
        input_hash=hash_input_data(input_data),
        created_at=_BASE_TIME + timedelta(minutes=order),
        **kwargs,
    )
    session.add(enrichment)
    session.commit()
    session.refresh(enrichment)
    return enrichment


def test_sync_merges_metrics_and_updates_sections(session, company, fake_llm):
    tam = _enqueue(session, company, "tam_calculator", TAM_OUTPUT, order=0)
    answer = _enqueue(session, company, "improve_score", TRACTION_ANSWER, order=1)

    result = ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    assert result["synced"] == 2
    assert set(result["sections_updated"]) == {"target_customer", "business_model", "traction_proof"}

    metrics = result["metrics"]
    assert metrics["acv"] == 10000
    assert metrics["customers"] == 20
    assert metrics["mrr"] == 20000
    assert metrics["arr"] == 240000
    assert metrics["churnRate"] == 2.0
    assert metrics["ltv"] == 1000000
    assert metrics["sourceConfidence"] == "high"
    assert [d["relation"] for d in result["discrepancies"]] == ["arr = acv * customers"]

    session.refresh(tam)
    session.refresh(answer)
    assert tam.processed and tam.metrics_applied and tam.processed_at is not None
    assert answer.processed and answer.metrics_applied


def test_metrics_are_persisted_under_sentinel_key(session, company, fake_llm):
    _enqueue(session, company, "tam_calculator", TAM_OUTPUT)

    ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    row = session.exec(
        select(MemoResponse).where(
            MemoResponse.company_id == company.id,
            MemoResponse.question_key == METRICS_SENTINEL_KEY,
        )
    ).one()
    payload = json.loads(row.answer)
    assert payload["acv"] == 10000
    assert payload["arr"] == 200000
    assert "last_updated" in payload
    assert payload["inputHashes"] == [hash_input_data(TAM_OUTPUT)]

    stored = load_metrics(session, company.id)
    assert stored.exists
    assert stored.record.mrr == 16667
    assert stored.last_updated == payload["last_updated"]


def test_section_text_is_written(session, company, llm_factory):
    llm = llm_factory(reply="We now serve 20 paying customers across SMB and mid-market.")
    _enqueue(session, company, "improve_score", TRACTION_ANSWER)

    ProfileEnrichmentSyncService(session, llm_client=llm).sync_company(company.id)

    row = session.exec(
        select(MemoResponse).where(
            MemoResponse.company_id == company.id,
            MemoResponse.question_key == "traction_proof",
        )
    ).one()
    assert row.answer == "We now serve 20 paying customers across SMB and mid-market."
    assert row.source == "enrichment_sync"
    assert '## Current "Traction" Section:' in llm.prompts[0]
    assert "Q: What traction do you have?" in llm.prompts[0]


def test_failed_section_leaves_enrichment_pending(session, company, llm_factory):
    llm = llm_factory(fail_on=['"Traction"'])
    tam = _enqueue(session, company, "tam_calculator", TAM_OUTPUT, order=0)
    answer = _enqueue(session, company, "improve_score", TRACTION_ANSWER, order=1)

    result = ProfileEnrichmentSyncService(session, llm_client=llm).sync_company(company.id)

    assert result["synced"] == 1
    assert "traction_proof" not in result["sections_updated"]
    session.refresh(tam)
    session.refresh(answer)
    assert tam.processed
    assert not answer.processed
    # Metrics are folded in even though the section failed
    assert answer.metrics_applied
    assert result["metrics"]["mrr"] == 20000


def test_same_input_is_not_applied_twice(session, company, llm_factory):
    llm = llm_factory(configured=False)
    _enqueue(session, company, "improve_score", TRACTION_ANSWER)
    service = ProfileEnrichmentSyncService(session, llm_client=llm)

    first = service.sync_company(company.id)
    second = service.sync_company(company.id)

    assert first["synced"] == 0
    assert second["synced"] == 0
    assert second["metrics"]["calculationNotes"] == first["metrics"]["calculationNotes"]
    assert load_metrics(session, company.id).input_hashes == [hash_input_data(TRACTION_ANSWER)]


def test_duplicate_enrichment_is_only_counted_once(session, company, fake_llm):
    _enqueue(session, company, "improve_score", TRACTION_ANSWER, order=0)
    _enqueue(session, company, "improve_score", TRACTION_ANSWER, order=1)

    ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    stored = load_metrics(session, company.id)
    assert stored.input_hashes == [hash_input_data(TRACTION_ANSWER)]
    assert sum(note.startswith("MRR extracted") for note in stored.record.calculation_notes) == 2


def test_parsed_documents_are_capped_at_medium(session, company, fake_llm):
    _enqueue(session, company, "deck_import", {"lifetime_value": 9000, "customer_acquisition_cost": 3000})

    result = ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    assert result["metrics"]["sourceConfidence"] == "medium"
    stored = load_metrics(session, company.id)
    assert stored.record.field_sources["ltv"].confidence == SourceConfidence.MEDIUM
    assert stored.record.ltvcac_ratio == 3.0
    assert stored.record.field_sources["ltvcac_ratio"].confidence == SourceConfidence.MEDIUM
    # No section consumes deck imports, so they leave the queue once applied
    assert result["sections_updated"] == []
    assert result["synced"] == 1


def test_payload_without_metrics_keeps_stored_currency(session, company, fake_llm):
    _enqueue(session, company, "improve_score", {"section": "problem_core", "answer": "ARR of $2m"}, order=0)
    _enqueue(session, company, "pain_validator", {"notes": "Interviews with 12 buyers"}, order=1)

    result = ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    assert result["metrics"]["arr"] == 2000000
    assert result["metrics"]["currency"] == "USD"


def test_no_pending_enrichments(session, company, fake_llm):
    result = ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    assert result == {"synced": 0, "sections_updated": [], "metrics": None, "discrepancies": []}
    assert fake_llm.prompts == []


def test_unknown_company(session, fake_llm):
    with pytest.raises(ValueError):
        ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company("missing")


def test_target_section_hint_wins(session, company, fake_llm):
    _enqueue(session, company, "tam_calculator", TAM_OUTPUT, target_section_hint="vision_ask")

    result = ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    assert result["sections_updated"] == ["vision_ask"]


def test_unreadable_stored_record_starts_fresh(session, company, fake_llm):
    session.add(MemoResponse(company_id=company.id, question_key=METRICS_SENTINEL_KEY, answer="{not json"))
    session.commit()

    assert not load_metrics(session, company.id).exists

    _enqueue(session, company, "improve_score", TRACTION_ANSWER)
    result = ProfileEnrichmentSyncService(session, llm_client=fake_llm).sync_company(company.id)

    assert result["metrics"]["mrr"] == 20000
    assert load_metrics(session, company.id).exists


def test_cap_confidence_lowers_only_higher_values():
    record = MetricsRecord(source_confidence=SourceConfidence.HIGH)
    record.set_metric("arr", 1, SourceConfidence.HIGH, "structured:arr")
    record.set_metric("mrr", 1, SourceConfidence.LOW, "text")

    capped = cap_confidence(record, SourceConfidence.MEDIUM)

    assert capped.source_confidence == SourceConfidence.MEDIUM
    assert capped.field_sources["arr"].confidence == SourceConfidence.MEDIUM
    assert capped.field_sources["mrr"].confidence == SourceConfidence.LOW
    assert record.field_sources["arr"].confidence == SourceConfidence.HIGH


def test_format_enrichment_variants():
    qa = ProfileEnrichment(company_id="c", source_type="improve_score", input_data=TRACTION_ANSWER)
    tam = ProfileEnrichment(company_id="c", source_type="tam_calculator", source_tool="TAM Calculator", input_data=TAM_OUTPUT)
    acv = ProfileEnrichment(company_id="c", source_type="pricing", input_data={"acv": 12000})

    assert format_enrichment(qa) == (
        "[From improve_score]:\nQ: What traction do you have?\nA: We reached MRR: 20k with 2% churn"
    )
    assert "- SMB: 1,000 companies at $5,000 ACV = $5,000,000 TAM" in format_enrichment(tam)
    assert format_enrichment(tam).startswith("[From TAM Calculator]:\nMarket Segments:")
    assert format_enrichment(acv) == "[From pricing]:\nACV: $12,000"


def test_unsectioned_enrichments_do_not_block_the_queue(session, company, fake_llm, monkeypatch):
    monkeypatch.setattr(sync_service, "ENRICHMENT_SYNC_BATCH_SIZE", 2)
    deck = _enqueue(session, company, "deck_import", {"arr": 200000}, order=0)
    report = _enqueue(session, company, "report_import", {"valuation": 5000000}, order=1)
    _enqueue(session, company, "improve_score", {"section": "traction_proof", "answer": "MRR: 50k"}, order=2)
    service = ProfileEnrichmentSyncService(session, llm_client=fake_llm)

    first = service.sync_company(company.id)
    assert first["synced"] == 2
    assert first["metrics"]["mrr"] == 16667
    session.refresh(deck)
    session.refresh(report)
    assert deck.processed and report.processed

    second = service.sync_company(company.id)
    assert second["synced"] == 1
    assert second["sections_updated"] == ["traction_proof"]
    assert second["metrics"]["mrr"] == 50000
    assert load_metrics(session, company.id).record.mrr == 50000


def test_metrics_keep_flowing_while_sections_wait(session, company, llm_factory, monkeypatch):
    monkeypatch.setattr(sync_service, "ENRICHMENT_SYNC_BATCH_SIZE", 2)
    for order, mrr in enumerate(("10k", "20k", "50k")):
        _enqueue(session, company, "improve_score", {"section": "traction_proof", "answer": f"MRR: {mrr}"}, order=order)
    service = ProfileEnrichmentSyncService(session, llm_client=llm_factory(configured=False))

    first = service.sync_company(company.id)
    second = service.sync_company(company.id)

    assert first["metrics"]["mrr"] == 20000
    assert second["synced"] == 0
    assert second["metrics"]["mrr"] == 50000
    assert len(load_metrics(session, company.id).input_hashes) == 3
