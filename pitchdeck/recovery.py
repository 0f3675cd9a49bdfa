"""
PitchDeck AI - 構造化データ復元パイプライン

    生テキスト → 抽出 → 正規化 → パース → 検証/型変換 → 型付きドキュメント
    （どの段で失敗しても）→ フォールバック → 既定ドキュメント

recover_analysis / recover_questions は例外を送出しない全域関数。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pitchdeck.config import load_settings
from pitchdeck.fallback import TypedDocument, get_fallback
from pitchdeck.schemas import AnalysisDocument, QuestionList, SchemaVariant
from pitchdeck.utils.json_parser import (
    NormalizationAnomaly,
    Normalizer,
    RecoveryError,
    excerpt,
    parse_llm_json,
)
from pitchdeck.validator import QuestionPolicy, finalize_questions, validate_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSchema:
    """スキーマ種別ごとのモデルと後処理の束"""
    variant: SchemaVariant
    document_cls: type
    finalize: Optional[Callable[[Any, QuestionPolicy], Any]] = None


SCHEMAS: dict[SchemaVariant, DocumentSchema] = {
    SchemaVariant.ANALYSIS: DocumentSchema(
        variant=SchemaVariant.ANALYSIS,
        document_cls=AnalysisDocument,
    ),
    SchemaVariant.QUESTIONS: DocumentSchema(
        variant=SchemaVariant.QUESTIONS,
        document_cls=QuestionList,
        finalize=finalize_questions,
    ),
}


def get_schema(variant: SchemaVariant | str) -> DocumentSchema:
    """スキーマを取得"""
    if isinstance(variant, str):
        try:
            variant = SchemaVariant(variant)
        except ValueError:
            raise ValueError(f"Unknown schema variant: {variant}")
    return SCHEMAS[variant]


@dataclass
class RecoveryResult:
    """復元結果と診断情報"""
    document: TypedDocument
    variant: SchemaVariant
    used_fallback: bool = False
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    offending_text: Optional[str] = None
    anomalies: list[NormalizationAnomaly] = field(default_factory=list)

    def diagnostics(self) -> dict[str, Any]:
        return {
            "variant": self.variant.value,
            "used_fallback": self.used_fallback,
            "failed_stage": self.failed_stage,
            "error": self.error,
            "anomalies": [f"{a.rule}: {a.message}" for a in self.anomalies],
        }


class RecoveryPipeline:
    """抽出 → 正規化 → パース → 検証 を1リクエスト分実行する"""

    def __init__(
        self,
        normalizer: Optional[Normalizer] = None,
        question_policy: Optional[QuestionPolicy] = None,
    ) -> None:
        self.normalizer = normalizer or Normalizer()
        self.question_policy = question_policy or QuestionPolicy()

    def run(self, raw_text: str, variant: SchemaVariant | str) -> RecoveryResult:
        schema = get_schema(variant)
        anomalies: list[NormalizationAnomaly] = []

        try:
            document = self._recover(raw_text, schema, anomalies)
        except RecoveryError as e:
            logger.warning(
                "%s の復元失敗（stage=%s）: %s | text=%s",
                schema.variant.value, e.stage, e, excerpt(e.text),
            )
            return RecoveryResult(
                document=get_fallback(schema.variant),
                variant=schema.variant,
                used_fallback=True,
                failed_stage=e.stage,
                error=str(e),
                offending_text=e.text,
                anomalies=anomalies,
            )
        except Exception as e:
            # 想定外のバグでも呼び出し側には既定ドキュメントを返す
            logger.exception("%s の復元中に想定外のエラー", schema.variant.value)
            return RecoveryResult(
                document=get_fallback(schema.variant),
                variant=schema.variant,
                used_fallback=True,
                failed_stage="internal",
                error=f"{type(e).__name__}: {e}",
                anomalies=anomalies,
            )

        return RecoveryResult(document=document, variant=schema.variant, anomalies=anomalies)

    def _recover(
        self,
        raw_text: str,
        schema: DocumentSchema,
        anomalies: list[NormalizationAnomaly],
    ) -> TypedDocument:
        tree = parse_llm_json(raw_text, self.normalizer, anomalies)
        document = validate_document(tree, schema.document_cls)

        if schema.finalize is not None:
            document = schema.finalize(document, self.question_policy)

        return document


_default_pipeline = RecoveryPipeline(
    question_policy=QuestionPolicy(strict=load_settings().strict_questions),
)


def recover(raw_text: str, variant: SchemaVariant | str) -> RecoveryResult:
    """既定のパイプラインで復元し、診断情報付きで返す"""
    return _default_pipeline.run(raw_text, variant)


def recover_analysis(raw_text: str) -> AnalysisDocument:
    """モデル出力から分析ドキュメントを復元する（失敗時は既定ドキュメント）"""
    return recover(raw_text, SchemaVariant.ANALYSIS).document


def recover_questions(raw_text: str) -> QuestionList:
    """モデル出力から質問リストを復元する（失敗時は既定ドキュメント）"""
    return recover(raw_text, SchemaVariant.QUESTIONS).document
