"""
PitchDeck AI - ピッチデック生成モジュール

ビジネスデータ → モデル分析 → 復元パイプライン → スライド書き出し。
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Optional

from pitchdeck.api_client import APIError, BaseModelClient, get_client
from pitchdeck.config import DEFAULT_THEME, ThemeConfig
from pitchdeck.prompts import build_analysis_prompt
from pitchdeck.recovery import RecoveryResult, recover
from pitchdeck.renderer import DeckRenderer
from pitchdeck.schemas import AnalysisDocument, SchemaVariant

logger = logging.getLogger(__name__)


class PitchDeckError(Exception):
    """分析取得の失敗"""
    pass


class PitchDeckGenerator:
    """ビジネス分析スライドジェネレーター"""

    def __init__(
        self,
        model_name: Optional[str] = None,
        client: Optional[BaseModelClient] = None,
        theme: ThemeConfig = DEFAULT_THEME,
    ) -> None:
        self.client = client or get_client(model_name)
        self.model_name = self.client.config.model_name
        self.theme = theme
        self.last_recovery: Optional[RecoveryResult] = None

    async def get_ai_analysis(self, data: Any) -> AnalysisDocument:
        """モデルに分析させ、型付きドキュメントとして返す"""
        prompt = build_analysis_prompt(data)

        try:
            raw = await self.client.generate(prompt)
        except APIError as e:
            logger.error("分析のモデル呼び出しに失敗: %s", e)
            raise PitchDeckError(f"Failed to get AI analysis: {e}") from e

        result = recover(raw, SchemaVariant.ANALYSIS)
        self.last_recovery = result
        if result.used_fallback:
            logger.warning("分析結果は既定値にフォールバック (stage=%s)", result.failed_stage)
        return result.document

    def render(self, analysis: AnalysisDocument, output_dir: Path | str = ".") -> Path:
        """分析ドキュメントを .pptx に書き出す"""
        filename = f"business_analysis_{int(time.time() * 1000)}.pptx"
        renderer = DeckRenderer(self.theme)
        renderer.render(analysis)
        return renderer.save(Path(output_dir) / filename)

    async def generate_pitch_deck(self, data: Any, output_dir: Path | str = ".") -> Path:
        """分析取得からスライド保存までを実行し、出力パスを返す"""
        logger.info("AI分析を取得中... (model=%s)", self.model_name)
        analysis = await self.get_ai_analysis(data)

        logger.info("スライドを生成中...")
        return self.render(analysis, output_dir)
