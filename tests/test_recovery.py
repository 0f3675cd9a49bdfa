import json

import pytest

from conftest import CATEGORIES, build_messy_questions
from pitchdeck.fallback import get_fallback
from pitchdeck.recovery import RecoveryPipeline, get_schema, recover, recover_analysis, recover_questions
from pitchdeck.schemas import (
    QUESTION_CATEGORIES,
    AnalysisDocument,
    Question,
    QuestionList,
    SchemaVariant,
)
from pitchdeck.validator import QuestionPolicy


GARBAGE = [
    "",
    "   ",
    "I cannot help with that.",
    "{",
    "}",
    "}{",
    "{{{{",
    '{"questions": [',
    '{"summary": {"title": "x"}',
    "null",
    "[1, 2, 3]",
    "{'a': }",
    "{" * 3000 + "}" * 3000,
    "```json\n{not: valid: at: all}\n```",
    "\x00\x01{\x02}",
    None,
]


def _assert_analysis_conforms(doc):
    assert isinstance(doc, AnalysisDocument)
    data = doc.to_dict()
    assert set(data) == {"summary", "kpiAnalysis", "trendAnalysis", "recommendations"}
    assert isinstance(data["summary"]["highlights"], list)
    for metric in doc.metrics:
        assert all(isinstance(v, str) for v in (metric.name, metric.value, metric.trend, metric.insight))
    trend = doc.trend_analysis
    for values in (trend.revenue_analysis.values, trend.regional_performance.values, trend.profitability.margins):
        assert all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values)


def _assert_questions_conform(doc):
    assert isinstance(doc, QuestionList)
    assert [q.id for q in doc.questions] == [str(i) for i in range(1, len(doc.questions) + 1)]
    for q in doc.questions:
        assert all(isinstance(v, str) for v in (q.question, q.category, q.importance, q.insight_goal))


# --- totality ---

@pytest.mark.parametrize("raw", GARBAGE)
def test_recover_analysis_never_raises(raw):
    doc = recover_analysis(raw)
    _assert_analysis_conforms(doc)
    assert doc == get_fallback(SchemaVariant.ANALYSIS)


@pytest.mark.parametrize("raw", GARBAGE)
def test_recover_questions_never_raises(raw):
    doc = recover_questions(raw)
    _assert_questions_conform(doc)
    assert doc == get_fallback(SchemaVariant.QUESTIONS)
    assert len(doc.questions) == 10


# --- stage diagnostics ---

@pytest.mark.parametrize("raw,stage", [
    ("I cannot help with that.", "extract"),
    ("} backwards {", "extract"),
    ('{"a": {"b": 1}', "parse"),
    ('{"summary": {"title": "x"}', "parse"),
    ('{"summary": {"title": "x"}}', "validate"),
])
def test_failed_stage_is_reported(raw, stage):
    result = recover(raw, SchemaVariant.ANALYSIS)
    assert result.used_fallback
    assert result.failed_stage == stage
    assert result.offending_text is not None
    assert result.document == get_fallback(SchemaVariant.ANALYSIS)


def test_parse_failure_keeps_normalized_text():
    result = recover('{"a": {"b": 1}', "analysis")
    assert result.offending_text == '{"a": {"b": 1}'


def test_failure_is_logged(caplog):
    recover("no json here", SchemaVariant.QUESTIONS)
    assert "stage=extract" in caplog.text


def test_unexpected_errors_fall_back(monkeypatch, caplog):
    def explode(tree, document_cls):
        raise RuntimeError("bug")

    monkeypatch.setattr("pitchdeck.recovery.validate_document", explode)
    result = recover('{"questions": []}', SchemaVariant.QUESTIONS)

    assert result.used_fallback
    assert result.failed_stage == "internal"
    assert "RuntimeError" in result.error


def test_unknown_variant():
    with pytest.raises(ValueError):
        get_schema("slides")


# --- successful recovery ---

def test_messy_analysis_is_recovered(messy_analysis):
    result = recover(messy_analysis, SchemaVariant.ANALYSIS)
    doc = result.document

    assert not result.used_fallback
    _assert_analysis_conforms(doc)
    assert doc.summary.highlights == ["Revenue grew 20.5% in Q1", "North leads all regions"]
    assert [(m.name, m.value, m.trend) for m in doc.metrics] == [
        ("Total Revenue", "2071100", "up"),
        ("Avg Margin", "30.6%", "stable"),
    ]
    revenue = doc.trend_analysis.revenue_analysis
    assert revenue.labels == ["Jan", "Feb", "Mar"]
    assert revenue.values == [631900, 684100, 755100]
    assert revenue.growth == "19.5%"
    assert doc.trend_analysis.regional_performance.top_region == "North"
    assert doc.trend_analysis.profitability.margins == [28.9, 30.9, 31.9]
    assert doc.trend_analysis.profitability.insights == []
    assert doc.recommendations[0].title == "Expand North"


def test_messy_questions_are_recovered(messy_questions):
    doc = recover_questions(messy_questions)

    _assert_questions_conform(doc)
    assert len(doc.questions) == 10
    assert doc.questions[0] == Question(
        id="1", question="Question 0?", category="strategy", importance="1", insight_goal="Goal 0",
    )
    assert [q.category for q in doc.questions] == CATEGORIES
    assert all(q.category in QUESTION_CATEGORIES for q in doc.questions)


def test_single_question_with_numeric_fields():
    raw = ('{ "questions": [ {"id":1,"question":"Q?","category":"market",'
           '"importance":5,"insight_goal":"G"} ] }')
    result = recover(raw, SchemaVariant.QUESTIONS)

    assert not result.used_fallback
    assert result.document == QuestionList(questions=[
        Question(id="1", question="Q?", category="market", importance="5", insight_goal="G"),
    ])


def test_model_ids_are_always_replaced():
    raw = '{"questions": [{"id": "7", "question": "A"}, {"id": "7", "question": "B"}]}'
    assert [q.id for q in recover_questions(raw).questions] == ["1", "2"]


def test_out_of_set_category_passes_through():
    raw = '{"questions": [{"question": "A", "category": "pricing"}]}'
    assert recover_questions(raw).questions[0].category == "pricing"


def test_strict_pipeline_falls_back_on_short_list():
    pipeline = RecoveryPipeline(question_policy=QuestionPolicy(strict=True))
    short = pipeline.run(build_messy_questions(3), SchemaVariant.QUESTIONS)
    full = pipeline.run(build_messy_questions(10), SchemaVariant.QUESTIONS)

    assert short.used_fallback and short.failed_stage == "validate"
    assert not full.used_fallback


# --- round trip ---

def _sample_analysis():
    return AnalysisDocument.model_validate({
        "summary": {"title": "Executive Summary", "highlights": ["Revenue up 20.5%", "North leads"]},
        "kpiAnalysis": {"metrics": [
            {"name": "Revenue", "value": "$2.07M", "trend": "up", "insight": "Strong quarter"},
            {"name": "Margin", "value": "30.6%", "trend": "down", "insight": "Costs rising"},
        ]},
        "trendAnalysis": {
            "revenueAnalysis": {"labels": ["2024 - 01", "2024 - 02"], "values": [631900, 684100.5],
                                "growth": "8.3%", "insights": ["Growth, not decline"]},
            "regionalPerformance": {"regions": ["North", "South"], "values": [1124000, 947100],
                                    "topRegion": "North", "insights": ["North: ahead"]},
            "profitability": {"margins": [29.8, 31.9, 32.5], "avgMargin": "31.4%",
                              "insights": ["Margins {improving}"]},
        },
        "recommendations": [
            {"title": "Expand 'North'", "description": "Hire, then train.", "impact": "High"},
        ],
    })


@pytest.mark.parametrize("doc", [
    _sample_analysis(),
    get_fallback(SchemaVariant.ANALYSIS),
    get_fallback(SchemaVariant.QUESTIONS),
])
def test_serialized_documents_round_trip(doc):
    variant = SchemaVariant.ANALYSIS if isinstance(doc, AnalysisDocument) else SchemaVariant.QUESTIONS
    for text in (doc.to_json(), doc.to_json(indent=2)):
        result = recover(text, variant)
        assert not result.used_fallback
        assert result.document == doc


def test_round_trip_keeps_numbers_numeric():
    doc = _sample_analysis()
    recovered = recover_analysis("Result: " + doc.to_json())
    assert recovered.trend_analysis.revenue_analysis.values == [631900, 684100.5]
    assert json.loads(recovered.to_json()) == json.loads(doc.to_json())


def test_fallback_is_independent_of_callers():
    first = recover_analysis("nothing")
    first.summary.highlights.append("mutated")
    assert "mutated" not in recover_analysis("nothing").summary.highlights


def test_overflowing_number_falls_back():
    raw = _sample_analysis().to_json().replace("[631900,684100.5]", "[1e999,684100.5]")
    assert "1e999" in raw

    result = recover(raw, SchemaVariant.ANALYSIS)

    assert result.used_fallback
    assert result.failed_stage == "validate"
    assert "Infinity" not in result.document.to_json()
    json.loads(result.document.to_json(), parse_constant=lambda name: pytest.fail(name))


def test_recovery_records_normalization_anomalies():
    result = recover('{"summary": "never closed}', SchemaVariant.ANALYSIS)
    assert result.used_fallback
    assert [a.rule for a in result.anomalies] == ["quote_balance"]
