"""
PitchDeck AI - プロンプトテンプレート

ビジネスデータ分析と戦略的質問生成の指示文。
"""

from __future__ import annotations

import json
from typing import Any

ANALYSIS_STRUCTURE = """{
    "summary": {
        "title": "Executive Summary",
        "highlights": [
            "key point 1",
            "key point 2"
        ]
    },
    "kpiAnalysis": {
        "metrics": [
            {
                "name": "metric name",
                "value": "calculated value",
                "trend": "up/down/stable",
                "insight": "brief insight"
            }
        ]
    },
    "trendAnalysis": {
        "revenueAnalysis": {
            "labels": ["period1", "period2"],
            "values": [number1, number2],
            "growth": "percentage",
            "insights": ["insight1", "insight2"]
        },
        "regionalPerformance": {
            "regions": ["region1", "region2"],
            "values": [number1, number2],
            "topRegion": "region name",
            "insights": ["insight1", "insight2"]
        },
        "profitability": {
            "margins": [number1, number2],
            "avgMargin": "percentage",
            "insights": ["insight1", "insight2"]
        }
    },
    "recommendations": [
        {
            "title": "recommendation title",
            "description": "detailed description",
            "impact": "expected impact"
        }
    ]
}"""

QUESTION_EXAMPLE = """{
  "questions": [
    {
      "id": "1",
      "question": "What is the current market share and how has it evolved over the past year?",
      "category": "market",
      "importance": "5",
      "insight_goal": "Understand market position and growth trajectory"
    }
  ]
}"""


def build_analysis_prompt(data: Any) -> str:
    """分析用プロンプト"""
    return f"""Given this business data, provide a comprehensive analysis in JSON format:
{json.dumps(data, ensure_ascii=False)}

Analyze the data and return JSON in this exact structure:
{ANALYSIS_STRUCTURE}

Focus on:
1. Calculate and identify key trends
2. Find meaningful patterns
3. Highlight significant changes
4. Provide actionable insights
5. Make data-driven recommendations

Return only the JSON with no additional text."""


def build_question_prompt(business_data: Any) -> str:
    """質問生成用プロンプト"""
    return f"""Given this business data, generate 10 strategic questions that would help understand the business better.

Business Data:
{json.dumps(business_data, ensure_ascii=False, indent=2)}

Generate exactly "10" questions in this specific JSON format, ensuring all property names and string values are in double quotes:
{QUESTION_EXAMPLE}

Categories must be one of these exact values: "strategy", "operations", "market", "customers", "growth", "finance", "competition"
Importance must be a string number from "1" to "5"
All text values must be in double quotes
Ensure proper JSON formatting with commas between objects

Return only the JSON with 10 questions like the example above and no additional text or formatting."""
