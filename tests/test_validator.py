import json

import pytest

from pitchdeck.fallback import default_payload
from pitchdeck.schemas import (
    AnalysisDocument,
    Question,
    QuestionList,
    SchemaVariant,
    coerce_number,
    coerce_string,
)
from pitchdeck.validator import (
    QuestionPolicy,
    ValidationFailure,
    finalize_questions,
    format_loc,
    validate_document,
)


@pytest.mark.parametrize("value,expected", [
    (5, "5"),
    (5.0, "5"),
    (29.8, "29.8"),
    (True, "true"),
    (None, ""),
    ("market", "market"),
    ([1, 2], "[1, 2]"),
])
def test_coerce_string(value, expected):
    assert coerce_string(value) == expected


@pytest.mark.parametrize("value,expected", [
    (342500, 342500),
    (29.8, 29.8),
    ("1,200", 1200),
    ("29.8%", 29.8),
    ("$4.5", 4.5),
])
def test_coerce_number(value, expected):
    result = coerce_number(value)
    assert result == expected
    assert type(result) is type(expected)


@pytest.mark.parametrize("value", ["abc", True, None, "nan", "1e999", float("inf"), float("nan"), {"a": 1}])
def test_coerce_number_rejects(value):
    with pytest.raises(ValueError):
        coerce_number(value)


def test_format_loc():
    assert format_loc(("trendAnalysis", "revenueAnalysis", "values", 1)) == "trendAnalysis.revenueAnalysis.values[1]"
    assert format_loc(("questions", 0, "category")) == "questions[0].category"
    assert format_loc(()) == ""


# --- analysis ---

def test_validate_fills_defaults():
    tree = default_payload(SchemaVariant.ANALYSIS)
    del tree["summary"]["title"]
    del tree["trendAnalysis"]["revenueAnalysis"]["growth"]
    del tree["trendAnalysis"]["profitability"]["margins"]
    tree["trendAnalysis"]["profitability"]["insights"] = "none"
    tree["kpiAnalysis"]["metrics"] = [{"name": "Revenue", "value": 29.8, "trend": None}]

    doc = validate_document(tree, AnalysisDocument)

    assert doc.summary.title == "Executive Summary"
    assert doc.trend_analysis.revenue_analysis.growth == ""
    assert doc.trend_analysis.profitability.margins == []
    assert doc.trend_analysis.profitability.insights == []
    assert doc.to_dict()["kpiAnalysis"]["metrics"] == [
        {"name": "Revenue", "value": "29.8", "trend": "stable", "insight": ""}
    ]


def test_documents_accept_field_names_and_aliases():
    by_alias = validate_document(default_payload(SchemaVariant.ANALYSIS), AnalysisDocument)
    by_name = AnalysisDocument(
        summary=by_alias.summary,
        kpi_analysis=by_alias.kpi_analysis,
        trend_analysis=by_alias.trend_analysis,
        recommendations=by_alias.recommendations,
    )
    assert by_name == by_alias
    assert set(by_name.to_dict()) == {"summary", "kpiAnalysis", "trendAnalysis", "recommendations"}
    assert "topRegion" in json.loads(by_name.to_json())["trendAnalysis"]["regionalPerformance"]


@pytest.mark.parametrize("path", [
    ("summary",),
    ("summary", "highlights"),
    ("kpiAnalysis", "metrics"),
    ("trendAnalysis", "regionalPerformance"),
    ("trendAnalysis", "revenueAnalysis", "values"),
    ("recommendations",),
])
def test_validate_rejects_missing_structure(path):
    tree = default_payload(SchemaVariant.ANALYSIS)
    node = tree
    for key in path[:-1]:
        node = node[key]
    del node[path[-1]]

    with pytest.raises(ValidationFailure) as excinfo:
        validate_document(tree, AnalysisDocument)
    assert excinfo.value.path == ".".join(path)
    assert excinfo.value.stage == "validate"


def test_null_structure_counts_as_missing():
    tree = default_payload(SchemaVariant.ANALYSIS)
    tree["summary"]["highlights"] = None
    with pytest.raises(ValidationFailure) as excinfo:
        validate_document(tree, AnalysisDocument)
    assert excinfo.value.path == "summary.highlights"


def test_validate_rejects_non_numeric_chart_values():
    tree = default_payload(SchemaVariant.ANALYSIS)
    tree["trendAnalysis"]["revenueAnalysis"]["values"] = [100, "lots"]
    with pytest.raises(ValidationFailure) as excinfo:
        validate_document(tree, AnalysisDocument)
    assert excinfo.value.path == "trendAnalysis.revenueAnalysis.values[1]"


def test_validate_rejects_overflowing_chart_values():
    tree = json.loads('{"values": [1e999]}')
    payload = default_payload(SchemaVariant.ANALYSIS)
    payload["trendAnalysis"]["regionalPerformance"]["values"] = tree["values"]
    with pytest.raises(ValidationFailure) as excinfo:
        validate_document(payload, AnalysisDocument)
    assert excinfo.value.path == "trendAnalysis.regionalPerformance.values[0]"


def test_chart_values_keep_their_numeric_type():
    tree = default_payload(SchemaVariant.ANALYSIS)
    tree["trendAnalysis"]["revenueAnalysis"]["values"] = [631900, 684100.5, "1,200"]
    values = validate_document(tree, AnalysisDocument).trend_analysis.revenue_analysis.values
    assert values == [631900, 684100.5, 1200]
    assert [type(v) for v in values] == [int, float, int]


def test_validate_rejects_non_object_root():
    with pytest.raises(ValidationFailure) as excinfo:
        validate_document([1, 2], QuestionList)
    assert excinfo.value.path == ""


# --- questions ---

@pytest.mark.parametrize("tree", [{}, {"questions": "none"}, {"questions": {"id": 1}}])
def test_questions_must_be_a_sequence(tree):
    with pytest.raises(ValidationFailure):
        validate_document(tree, QuestionList)


def test_question_entries_are_coerced_with_defaults():
    doc = validate_document({"questions": [{"question": "Why?", "importance": 4}, "junk"]}, QuestionList)
    assert doc.to_dict()["questions"] == [
        {"id": "", "question": "Why?", "category": "strategy", "importance": "4", "insight_goal": ""},
        {"id": "", "question": "", "category": "strategy", "importance": "3", "insight_goal": ""},
    ]


def _questions(count, category="market", importance="3"):
    return QuestionList(questions=[
        Question(id="9", question=f"Q{i}", category=category, importance=importance)
        for i in range(count)
    ])


def test_finalize_regenerates_sequential_ids():
    doc = finalize_questions(_questions(3))
    assert [q.id for q in doc.questions] == ["1", "2", "3"]


def test_finalize_does_not_mutate_its_input():
    original = _questions(2)
    finalize_questions(original)
    assert [q.id for q in original.questions] == ["9", "9"]


def test_lenient_policy_accepts_short_list_and_unknown_category():
    doc = finalize_questions(_questions(2, category="pricing"))
    assert len(doc.questions) == 2
    assert doc.questions[0].category == "pricing"


def test_strict_policy_rejects_short_list():
    with pytest.raises(ValidationFailure):
        finalize_questions(_questions(9), QuestionPolicy(strict=True))


def test_strict_policy_rejects_unknown_category():
    with pytest.raises(ValidationFailure) as excinfo:
        finalize_questions(_questions(10, category="pricing"), QuestionPolicy(strict=True))
    assert excinfo.value.path == "questions[0].category"


def test_strict_policy_rejects_importance_out_of_range():
    with pytest.raises(ValidationFailure):
        finalize_questions(_questions(10, importance="7"), QuestionPolicy(strict=True))


def test_strict_policy_truncates_long_list():
    doc = finalize_questions(_questions(12), QuestionPolicy(strict=True))
    assert [q.id for q in doc.questions] == [str(i) for i in range(1, 11)]
