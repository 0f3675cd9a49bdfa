"""
PitchDeck AI - 検証モジュール

パース済みの未型付けツリーを pydantic モデル（schemas.py）で検証する。
描画に必要な枝が欠けていれば ValidationFailure（最初のエラー位置つき）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence, TypeVar, Union

from pydantic import BaseModel, ValidationError

from pitchdeck.schemas import (
    IMPORTANCE_LEVELS,
    QUESTION_CATEGORIES,
    QUESTION_COUNT,
    QuestionList,
)
from pitchdeck.utils.json_parser import RecoveryError

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", bound=BaseModel)


class ValidationFailure(RecoveryError):
    """ツリーが必要な構造を満たしていない"""

    stage = "validate"

    def __init__(self, message: str, path: str = "", text: str = "") -> None:
        super().__init__(message, text=text)
        self.path = path


def format_loc(loc: Sequence[Union[str, int]]) -> str:
    """pydantic のエラー位置を "a.b[0].c" 形式にする"""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def validate_document(tree: Any, document_cls: type[DocT]) -> DocT:
    """
    ツリー全体を検証・変換し、型付きドキュメントを返す。

    Raises:
        ValidationFailure: ルートがオブジェクトでない、必須の枝が欠落、数値でない値など
    """
    try:
        return document_cls.model_validate(tree)
    except ValidationError as e:
        first = e.errors()[0]
        path = format_loc(first["loc"])
        logger.debug("検証エラー %d 件: %s", e.error_count(), e)
        raise ValidationFailure(
            f"{first['msg']} at {path or '<root>'} ({e.error_count()} error(s))",
            path=path,
        ) from e


# ============================================================
# スキーマ固有の後処理
# ============================================================

@dataclass(frozen=True)
class QuestionPolicy:
    """
    質問リストの厳格さ

    strict=False（既定）では件数・カテゴリを検査しない。
    strict=True では 10 件未満やカテゴリ/重要度の範囲外を検証失敗とし、
    10 件を超える分は切り捨てる。
    """
    strict: bool = False
    expected_count: int = QUESTION_COUNT


def finalize_questions(doc: QuestionList, policy: QuestionPolicy = QuestionPolicy()) -> QuestionList:
    """id を 1 始まりの連番で振り直し、必要なら厳格検査を行う"""
    questions = doc.questions

    if policy.strict:
        if len(questions) < policy.expected_count:
            raise ValidationFailure(
                f"expected {policy.expected_count} questions, got {len(questions)}",
                path="questions",
            )
        questions = questions[:policy.expected_count]
        for i, q in enumerate(questions):
            if q.category not in QUESTION_CATEGORIES:
                raise ValidationFailure(
                    f"unknown category {q.category!r}", path=f"questions[{i}].category"
                )
            if q.importance not in IMPORTANCE_LEVELS:
                raise ValidationFailure(
                    f"importance out of range {q.importance!r}", path=f"questions[{i}].importance"
                )

    return QuestionList(
        questions=[q.model_copy(update={"id": str(index + 1)}) for index, q in enumerate(questions)]
    )
