"""
PitchDeck AI - モデル API クライアントモジュール

Ollama 互換の /api/generate エンドポイントへのラッパー。
指数バックオフによるリトライと呼び出し記録を実装。
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import aiohttp

from pitchdeck.config import ModelConfig, get_model_config

logger = logging.getLogger(__name__)


# ============================================================
# カスタム例外
# ============================================================

class APIError(Exception):
    """API エラー基底クラス"""
    pass


class RateLimitError(APIError):
    """レート制限エラー"""
    pass


class ModelNotFoundError(APIError):
    """モデルまたはエンドポイントが存在しない"""
    pass


# ============================================================
# 呼び出し記録
# ============================================================

@dataclass
class APICallRecord:
    """API呼び出し記録"""
    model: str
    prompt_chars: int
    response_chars: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    success: bool = True
    error: Optional[str] = None
    latency_ms: int = 0


# ============================================================
# リトライ設定
# ============================================================

@dataclass(frozen=True)
class RetryConfig:
    """リトライ設定"""
    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True


def calculate_delay(retry_count: int, config: RetryConfig) -> float:
    """指数バックオフでリトライ間隔を計算"""
    delay = config.base_delay * (config.exponential_base ** retry_count)
    delay = min(delay, config.max_delay)

    if config.jitter:
        delay *= (0.5 + random.random())

    return delay


# ============================================================
# 抽象基底クラス
# ============================================================

class BaseModelClient(ABC):
    """モデルクライアント基底クラス"""

    def __init__(self, config: ModelConfig, retry_config: Optional[RetryConfig] = None) -> None:
        self.config = config
        self.retry_config = retry_config or RetryConfig(max_retries=config.max_retries)
        self.records: list[APICallRecord] = []

    @abstractmethod
    async def _generate(self, prompt: str) -> str:
        """実際のAPI呼び出し（サブクラスで実装）"""
        pass

    async def generate(self, prompt: str) -> str:
        """リトライ付き生成呼び出し。モデルの生テキストを返す。"""
        last_error: Optional[Exception] = None
        start_time = time.time()

        for retry in range(self.retry_config.max_retries + 1):
            try:
                text = await self._generate(prompt)
                latency = int((time.time() - start_time) * 1000)
                self.records.append(APICallRecord(
                    model=self.config.model_name,
                    prompt_chars=len(prompt),
                    response_chars=len(text),
                    latency_ms=latency,
                ))
                return text

            except ModelNotFoundError as e:
                # モデル未導入はリトライしても無意味
                self._record_error(prompt, str(e))
                raise

            except APIError as e:
                last_error = e
                self._record_error(prompt, str(e))
                if retry < self.retry_config.max_retries:
                    delay = calculate_delay(retry, self.retry_config)
                    logger.warning(
                        "APIエラー: %s。%.1f秒後にリトライ... (%d/%d)",
                        e, delay, retry + 1, self.retry_config.max_retries,
                    )
                    await asyncio.sleep(delay)

        raise last_error or APIError("Unknown error after retries")

    def _record_error(self, prompt: str, error: str) -> None:
        self.records.append(APICallRecord(
            model=self.config.model_name,
            prompt_chars=len(prompt),
            success=False,
            error=error,
        ))


# ============================================================
# Ollama クライアント
# ============================================================

class OllamaClient(BaseModelClient):
    """Ollama /api/generate クライアント（stream なし）"""

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.config.model_name,
            "prompt": prompt,
            "stream": False,
        }

    async def _generate(self, prompt: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.config.endpoint, json=self.build_payload(prompt)) as response:
                    if response.status == 429:
                        raise RateLimitError(f"HTTP error! status: {response.status}")
                    if response.status == 404:
                        raise ModelNotFoundError(
                            f"HTTP error! status: 404 (model={self.config.model_name})"
                        )
                    if response.status >= 400:
                        raise APIError(f"HTTP error! status: {response.status}")
                    result = await response.json(content_type=None)

        except asyncio.TimeoutError:
            raise APIError(f"モデル応答がタイムアウトしました（{self.config.timeout:.0f}秒）")
        except aiohttp.ClientError as e:
            raise APIError(f"モデルエンドポイントに接続できません: {e}")
        except ValueError as e:
            raise APIError(f"応答本文がJSONではありません: {e}")

        return self.parse_result(result)

    @staticmethod
    def parse_result(result: Any) -> str:
        """Ollama 応答本文から生成テキストを取り出す"""
        if not isinstance(result, dict):
            raise APIError(f"想定外の応答形式: {type(result).__name__}")
        if "error" in result and "response" not in result:
            raise APIError(f"モデルエラー: {result['error']}")
        text = result.get("response")
        if not isinstance(text, str):
            raise APIError("応答に response フィールドがありません")
        return text


# ============================================================
# クライアントファクトリ
# ============================================================

def get_client(
    model_name: Optional[str] = None,
    endpoint: Optional[str] = None,
    retry_config: Optional[RetryConfig] = None,
) -> BaseModelClient:
    """設定に応じたモデルクライアントを取得"""
    config = get_model_config(model_name, endpoint)
    logger.debug("OllamaClient (model=%s, endpoint=%s)", config.model_name, config.endpoint)
    return OllamaClient(config, retry_config)
