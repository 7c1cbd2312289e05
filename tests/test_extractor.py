from services.metrics import Currency, SourceConfidence, extract_all_metrics


def test_string_input():
    metrics = extract_all_metrics("Our ARR is $120,000 with 50 paying customers")

    assert metrics.arr == 120000
    assert metrics.customers == 50
    assert metrics.mrr == 10000
    assert metrics.acv == 2400
    assert metrics.currency == Currency.USD
    assert metrics.source_confidence == SourceConfidence.LOW


def test_structured_input_derives_ratio():
    metrics = extract_all_metrics({"lifetime_value": 5000, "customer_acquisition_cost": 1000})

    assert metrics.ltv == 5000
    assert metrics.cac == 1000
    assert metrics.ltvcac_ratio == 5.0
    assert metrics.source_confidence == SourceConfidence.HIGH


def test_answer_text_is_parsed():
    metrics = extract_all_metrics({
        "question": "What traction do you have?",
        "answer": "We have MRR: 20k and 40 customers",
    })

    assert metrics.mrr == 20000
    assert metrics.customers == 40
    assert metrics.arr == 240000
    assert metrics.acv == 6000
    assert metrics.source_confidence == SourceConfidence.LOW


def test_structured_and_text_fields_combine():
    metrics = extract_all_metrics({"mrr": 8000, "description": "Growing 15% MoM"})

    assert metrics.mrr == 8000
    assert metrics.growth_rate == 15.0
    assert metrics.arr == 96000
    assert metrics.source_confidence == SourceConfidence.HIGH


def test_unsupported_input_gives_empty_record():
    for value in (None, 42, [1, 2], 3.5):
        metrics = extract_all_metrics(value)
        assert not metrics.has_metrics()
        assert metrics.calculation_notes == []


def test_payload_without_metrics():
    metrics = extract_all_metrics({"founder": "Ada", "stage": "seed"})

    assert not metrics.has_metrics()
    assert metrics.currency == Currency.EUR


def test_huge_and_non_finite_payloads():
    assert not extract_all_metrics({"arr": "9" * 400}).has_metrics()
    assert not extract_all_metrics({"segments": [{"acv": float("inf")}]}).has_metrics()
    assert not extract_all_metrics({"segments": [{"acv": float("nan")}]}).has_metrics()
    assert not extract_all_metrics("ARR: " + "9" * 400).has_metrics()
