"""
PitchDeck AI - 設定モジュール

モデル接続先、リトライ、スライドテーマ、サーバー設定を一元管理する。
環境変数（.env を含む）で上書きできる。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


# ============================================================
# 既定値
# ============================================================

DEFAULT_MODEL = "llama3"
DEFAULT_ENDPOINT = "http://localhost:11434/api/generate"
DEFAULT_TIMEOUT = 120.0  # 秒

SERVER_HOST = os.getenv("PITCHDECK_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("PITCHDECK_PORT", "9000"))

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class ModelConfig:
    """モデル接続設定"""
    model_name: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = 2


@dataclass(frozen=True)
class ThemeConfig:
    """スライドテーマ"""
    head_font: str = "Calibri Light"
    body_font: str = "Calibri"
    accent1: str = "0078D4"
    accent2: str = "2B579A"
    accent3: str = "1E3264"
    background1: str = "FFFFFF"
    background2: str = "F5F5F5"
    text1: str = "2B2B2B"
    text2: str = "444444"
    card_fill: str = "F8F9FA"
    card_line: str = "E0E0E0"
    slide_width_in: float = 13.33
    slide_height_in: float = 7.5
    trend_colors: dict[str, str] = field(default_factory=lambda: {
        "up": "00B294",
        "down": "E74C3C",
    })
    neutral_trend_color: str = "888888"

    def trend_color(self, trend: str) -> str:
        """KPIの傾向に対応する色"""
        return self.trend_colors.get(trend, self.neutral_trend_color)


DEFAULT_THEME = ThemeConfig()


@dataclass
class Settings:
    """実行時設定"""
    model: ModelConfig = field(default_factory=ModelConfig)
    strict_questions: bool = False


# ============================================================
# ユーティリティ関数
# ============================================================

def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


def load_settings() -> Settings:
    """環境変数から設定を読み込む"""
    timeout_raw = os.getenv("PITCHDECK_TIMEOUT")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
    except ValueError:
        raise ValueError(f"PITCHDECK_TIMEOUT must be a number: {timeout_raw!r}")

    model = ModelConfig(
        model_name=os.getenv("PITCHDECK_MODEL", DEFAULT_MODEL),
        endpoint=os.getenv("OLLAMA_ENDPOINT", DEFAULT_ENDPOINT),
        timeout=timeout,
    )
    return Settings(
        model=model,
        strict_questions=_env_flag("PITCHDECK_STRICT_QUESTIONS"),
    )


def get_model_config(model_name: str | None = None, endpoint: str | None = None) -> ModelConfig:
    """環境設定に引数の上書きを適用したモデル設定"""
    config = load_settings().model
    if model_name:
        config.model_name = model_name
    if endpoint:
        config.endpoint = endpoint
    return config


def print_settings() -> None:
    """設定を表示（デバッグ用）"""
    settings = load_settings()
    print("\n" + "=" * 60)
    print("PitchDeck AI 設定")
    print("=" * 60)
    print(f"  モデル      : {settings.model.model_name}")
    print(f"  エンドポイント: {settings.model.endpoint}")
    print(f"  タイムアウト  : {settings.model.timeout:.0f}秒")
    print(f"  質問の厳格検査: {'有効' if settings.strict_questions else '無効'}")
    print(f"  サーバー    : {SERVER_HOST}:{SERVER_PORT}")
    print("=" * 60)


if __name__ == "__main__":
    print_settings()
