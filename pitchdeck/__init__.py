"""
PitchDeck AI

ビジネスデータをローカルLLMに分析させ、その「JSONらしき」出力を
スキーマに沿った構造化データへ復元して、スライドや質問リストにする。
"""

# ============================================================
# .env ファイル自動読み込み（最初に実行）
# ============================================================
import os
from pathlib import Path

from dotenv import load_dotenv


def _load_dotenv() -> None:
    """プロジェクトルートの .env ファイルを読み込む"""
    # このファイル（__init__.py）の親の親 = プロジェクトルート
    project_root = Path(__file__).parent.parent
    env_path = project_root / ".env"

    if not env_path.exists():
        # .env が見つからない場合、カレントディレクトリも探す
        env_path = Path.cwd() / ".env"

    if env_path.exists():
        load_dotenv(env_path)
        if os.getenv("PITCHDECK_DEBUG"):
            print(f"[PitchDeck] .env loaded from: {env_path}")


# モジュール読み込み時に自動実行
_load_dotenv()

# ============================================================

__version__ = "1.0.0"
__project__ = "PitchDeck AI"

from pitchdeck.schemas import (
    AnalysisDocument,
    Question,
    QuestionList,
    SchemaVariant,
)

from pitchdeck.fallback import get_fallback

from pitchdeck.recovery import (
    RecoveryPipeline,
    RecoveryResult,
    recover,
    recover_analysis,
    recover_questions,
)

from pitchdeck.utils.json_parser import (
    ExtractionFailure,
    Normalizer,
    ParseFailure,
    RecoveryError,
)

from pitchdeck.validator import (
    QuestionPolicy,
    ValidationFailure,
)

__all__ = [
    # schemas
    "AnalysisDocument",
    "Question",
    "QuestionList",
    "SchemaVariant",
    # fallback
    "get_fallback",
    # recovery
    "RecoveryPipeline",
    "RecoveryResult",
    "recover",
    "recover_analysis",
    "recover_questions",
    # errors
    "RecoveryError",
    "ExtractionFailure",
    "ParseFailure",
    "ValidationFailure",
    # normalizer / validator
    "Normalizer",
    "QuestionPolicy",
]
