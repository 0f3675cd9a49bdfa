"""
PitchDeck AI - フォールバック供給モジュール

復元に失敗したときに返す既定ドキュメント。スキーマ種別のみを入力とし、
毎回同じ内容の新しいインスタンスを返す（呼び出し側の変更が漏れない）。
"""

from __future__ import annotations

import copy
from typing import Any, Union

from pitchdeck.schemas import AnalysisDocument, QuestionList, SchemaVariant

TypedDocument = Union[AnalysisDocument, QuestionList]


DEFAULT_ANALYSIS: dict[str, Any] = {
    "summary": {
        "title": "Executive Summary",
        "highlights": [
            "Automated analysis was unavailable for this dataset",
            "Review the source figures directly before drawing conclusions",
        ],
    },
    "kpiAnalysis": {
        "metrics": [
            {
                "name": "Analysis Status",
                "value": "N/A",
                "trend": "stable",
                "insight": "Model output could not be interpreted",
            }
        ],
    },
    "trendAnalysis": {
        "revenueAnalysis": {
            "labels": [],
            "values": [],
            "growth": "N/A",
            "insights": ["Revenue trend not available"],
        },
        "regionalPerformance": {
            "regions": [],
            "values": [],
            "topRegion": "N/A",
            "insights": ["Regional comparison not available"],
        },
        "profitability": {
            "margins": [],
            "avgMargin": "N/A",
            "insights": [],
        },
    },
    "recommendations": [
        {
            "title": "Re-run the analysis",
            "description": "Generate the deck again or verify that the model endpoint is responding with JSON.",
            "impact": "Restores data-driven insights",
        }
    ],
}

_DEFAULT_QUESTION_SPECS: tuple[tuple[str, str, str, str], ...] = (
    ("What are the key drivers of the business's current performance?",
     "strategy", "5", "Understand core business dynamics"),
    ("Which operational bottlenecks most limit throughput or margin?",
     "operations", "4", "Identify process constraints"),
    ("How is the company's market share evolving relative to the overall market?",
     "market", "4", "Assess market position"),
    ("Which customer segments generate the most revenue and profit?",
     "customers", "5", "Focus on high-value customers"),
    ("Where are the largest untapped growth opportunities?",
     "growth", "4", "Prioritize expansion options"),
    ("How sustainable are current profit margins?",
     "finance", "5", "Evaluate financial resilience"),
    ("How do competitors' pricing and offerings compare?",
     "competition", "3", "Understand competitive pressure"),
    ("Which regions are over- or under-performing and why?",
     "market", "4", "Explain regional variance"),
    ("What cost structure changes would most improve profitability?",
     "finance", "3", "Find cost levers"),
    ("What capabilities are required to execute the next stage of growth?",
     "strategy", "3", "Align resources with strategy"),
)

DEFAULT_QUESTIONS: dict[str, Any] = {
    "questions": [
        {
            "id": str(i + 1),
            "question": question,
            "category": category,
            "importance": importance,
            "insight_goal": goal,
        }
        for i, (question, category, importance, goal) in enumerate(_DEFAULT_QUESTION_SPECS)
    ]
}

_DEFAULTS: dict[SchemaVariant, tuple[dict[str, Any], type]] = {
    SchemaVariant.ANALYSIS: (DEFAULT_ANALYSIS, AnalysisDocument),
    SchemaVariant.QUESTIONS: (DEFAULT_QUESTIONS, QuestionList),
}


def default_payload(variant: SchemaVariant) -> dict[str, Any]:
    """既定ドキュメントの辞書表現（コピー）"""
    return copy.deepcopy(_DEFAULTS[variant][0])


def get_fallback(variant: SchemaVariant) -> TypedDocument:
    """既定ドキュメントを取得"""
    payload, doc_cls = _DEFAULTS[variant]
    return doc_cls.model_validate(copy.deepcopy(payload))
