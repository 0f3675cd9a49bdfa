"""
PitchDeck AI - スキーマ定義モジュール

分析ドキュメント（AnalysisDocument）と質問リスト（QuestionList）を
pydantic モデルとして一元管理する。フィールドの型変換と既定値は
Annotated の BeforeValidator として宣言する。
"""

import json
import logging
import math
import re
from enum import Enum
from typing import Annotated, Any, List, Mapping, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class SchemaVariant(Enum):
    """スキーマ種別"""
    ANALYSIS = "analysis"
    QUESTIONS = "questions"


TREND_VALUES = ("up", "down", "stable")

QUESTION_CATEGORIES = (
    "strategy",
    "operations",
    "market",
    "customers",
    "growth",
    "finance",
    "competition",
)

IMPORTANCE_LEVELS = ("1", "2", "3", "4", "5")

QUESTION_COUNT = 10


# ============================================================
# 型変換
# ============================================================

_NUMERIC_NOISE_RE = re.compile(r"[,\s$%€£¥]")


def coerce_string(value: Any) -> str:
    """値を文字列に変換する（None は空文字）"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def coerce_number(value: Any) -> Union[int, float]:
    """
    数値へ変換する。"1,200" や "29.8%" のような文字列も受け付ける。

    真偽値・非数値・有限でない値（1e999 のオーバーフローを含む）は ValueError。
    """
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")

    if isinstance(value, (int, float)):
        number = value
        cleaned = None
    elif isinstance(value, str):
        cleaned = _NUMERIC_NOISE_RE.sub("", value)
        try:
            number = float(cleaned)
        except ValueError:
            raise ValueError(f"expected a number, got {value!r}")
    else:
        raise ValueError(f"expected a number, got {type(value).__name__}")

    if isinstance(number, float) and not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {value!r}")
    if cleaned is not None and number.is_integer() and "." not in cleaned:
        return int(number)
    return number


def list_or_empty(value: Any) -> Any:
    """任意のシーケンス項目: リストでなければ空リストで補完"""
    if isinstance(value, list):
        return value
    logger.debug("シーケンスではないため空で補完: %r", value)
    return []


def objects_or_empty(value: Any) -> Any:
    """オブジェクト列: マッピングでない要素は空オブジェクトとして補完"""
    if not isinstance(value, list):
        return value
    return [item if isinstance(item, Mapping) else {} for item in value]


Text = Annotated[str, BeforeValidator(coerce_string)]
Number = Annotated[Union[int, float], BeforeValidator(coerce_number)]

# 任意項目（欠落・型違いは空リスト）
OptionalTexts = Annotated[List[Text], BeforeValidator(list_or_empty)]
OptionalNumbers = Annotated[List[Number], BeforeValidator(list_or_empty)]


# ============================================================
# モデル基底
# ============================================================

class _Record(BaseModel):
    """camelCase キーで入出力するレコード"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_empty_values(cls, data: Any) -> Any:
        # null と空文字は「欠落」と同じ扱い（既定値を使う）
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None and v != ""}
        return data


class _Document(_Record):
    """to_dict / to_json を持つドキュメント共通部"""

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        """スキーマ自身のシリアライザ"""
        return self.model_dump_json(by_alias=True, indent=indent)


# ============================================================
# 分析ドキュメント
# ============================================================

# スライド描画が前提とする枝は必須。欠落時は検証失敗 → フォールバック。

class Summary(_Record):
    title: Text = "Executive Summary"
    highlights: List[Text]


class KpiMetric(_Record):
    name: Text = ""
    value: Text = ""
    trend: Text = "stable"
    insight: Text = ""


class KpiAnalysis(_Record):
    metrics: Annotated[List[KpiMetric], BeforeValidator(objects_or_empty)]


class RevenueAnalysis(_Record):
    labels: List[Text]
    values: List[Number]
    growth: Text = ""
    insights: List[Text]


class RegionalPerformance(_Record):
    regions: List[Text]
    values: List[Number]
    top_region: Text = ""
    insights: List[Text]


class Profitability(_Record):
    margins: OptionalNumbers = Field(default_factory=list)
    avg_margin: Text = ""
    insights: OptionalTexts = Field(default_factory=list)


class TrendAnalysis(_Record):
    revenue_analysis: RevenueAnalysis
    regional_performance: RegionalPerformance
    profitability: Profitability


class Recommendation(_Record):
    title: Text = ""
    description: Text = ""
    impact: Text = ""


class AnalysisDocument(_Document):
    """ビジネスデータ分析結果"""
    summary: Summary
    kpi_analysis: KpiAnalysis
    trend_analysis: TrendAnalysis
    recommendations: Annotated[List[Recommendation], BeforeValidator(objects_or_empty)]

    @property
    def metrics(self) -> List[KpiMetric]:
        return self.kpi_analysis.metrics


# ============================================================
# 質問リスト
# ============================================================

class Question(_Record):
    # insight_goal は snake_case のまま入出力する
    model_config = ConfigDict(alias_generator=None)

    id: Text = ""
    question: Text = ""
    category: Text = "strategy"
    importance: Text = "3"
    insight_goal: Text = ""


class QuestionList(_Document):
    """戦略的質問リスト"""
    questions: Annotated[List[Question], BeforeValidator(objects_or_empty)]
