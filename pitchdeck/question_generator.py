"""
PitchDeck AI - 質問生成モジュール

ビジネスデータから戦略的な質問を10件生成する。
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pitchdeck.api_client import APIError, BaseModelClient, get_client
from pitchdeck.prompts import build_question_prompt
from pitchdeck.recovery import recover
from pitchdeck.schemas import QuestionList, SchemaVariant

logger = logging.getLogger(__name__)


class QuestionGenerationError(Exception):
    """モデル呼び出し自体の失敗"""
    pass


class QuestionGenerator:
    """戦略的質問ジェネレーター"""

    def __init__(
        self,
        model_name: Optional[str] = None,
        client: Optional[BaseModelClient] = None,
    ) -> None:
        self.client = client or get_client(model_name)
        self.model_name = self.client.config.model_name

    async def generate_questions(self, business_data: Any) -> QuestionList:
        """質問リストを生成（モデル出力が壊れていても既定リストを返す）"""
        prompt = build_question_prompt(business_data)

        try:
            raw = await self.client.generate(prompt)
        except APIError as e:
            logger.error("質問生成のモデル呼び出しに失敗: %s", e)
            raise QuestionGenerationError(f"Failed to generate questions: {e}") from e

        result = recover(raw, SchemaVariant.QUESTIONS)
        if result.used_fallback:
            logger.warning("質問リストは既定値にフォールバック (stage=%s)", result.failed_stage)
        return result.document
