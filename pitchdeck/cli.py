"""
PitchDeck AI CLI

ビジネスデータからの分析スライド生成・質問生成をコマンドラインから実行する。

コマンド:
  pitchdeck deck <data_file>              分析スライド生成
  pitchdeck questions <data_file>         戦略的質問を生成
  pitchdeck recover <variant> [file]      モデル生出力の復元（デバッグ用）
  pitchdeck serve                         APIサーバー起動
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from pitchdeck.config import SERVER_HOST, SERVER_PORT


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pitchdeck",
        description="PitchDeck AI - ビジネス分析スライド生成CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
例:
  # 分析スライド生成
  pitchdeck deck samples/business_data.yaml -o out/

  # 質問生成（モデル指定）
  pitchdeck questions samples/business_data.yaml --model llama3

  # モデル出力の復元を確認
  echo "Sure! {name: 'Revenue', trend: up}" | pitchdeck recover analysis -

  # python -m でも起動可能
  python -m pitchdeck serve --port 9000
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUGログを表示")

    subparsers = parser.add_subparsers(dest="command")

    model_args = argparse.ArgumentParser(add_help=False)
    model_args.add_argument("--model", default=None, help="モデル名（既定: llama3）")
    model_args.add_argument("--endpoint", default=None, help="Ollama generate エンドポイントURL")

    # --- deck コマンド ---
    deck_parser = subparsers.add_parser("deck", parents=[model_args], help="分析スライド生成")
    deck_parser.add_argument("data_file", help="ビジネスデータ（YAML/JSON）")
    deck_parser.add_argument("-o", "--output-dir", default=".", help="出力ディレクトリ")

    # --- questions コマンド ---
    q_parser = subparsers.add_parser("questions", parents=[model_args], help="戦略的質問を生成")
    q_parser.add_argument("data_file", help="ビジネスデータ（YAML/JSON）")

    # --- recover コマンド ---
    r_parser = subparsers.add_parser("recover", help="モデル生出力を復元")
    r_parser.add_argument("variant", choices=["analysis", "questions"], help="スキーマ種別")
    r_parser.add_argument("input", nargs="?", default="-", help="入力ファイル（- で標準入力）")

    # --- serve コマンド ---
    s_parser = subparsers.add_parser("serve", help="APIサーバー起動")
    s_parser.add_argument("--host", default=SERVER_HOST)
    s_parser.add_argument("--port", type=int, default=SERVER_PORT)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "deck":
        return run_deck(args)
    elif args.command == "questions":
        return run_questions(args)
    elif args.command == "recover":
        return run_recover(args)
    elif args.command == "serve":
        return run_serve(args)

    parser.print_help()
    return 1


def load_business_data(path: Path) -> Any:
    """YAML または JSON のビジネスデータを読み込む"""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _load_or_report(data_file: str) -> Any:
    path = Path(data_file)
    if not path.exists():
        print(f"エラー: ファイルが見つかりません: {path}")
        return None
    try:
        return load_business_data(path)
    except yaml.YAMLError as e:
        print(f"エラー: データファイルを読み込めません: {e}")
        return None


def run_deck(args: argparse.Namespace) -> int:
    """分析スライド生成"""
    from pitchdeck.api_client import get_client
    from pitchdeck.pitch_deck_generator import PitchDeckError, PitchDeckGenerator

    data = _load_or_report(args.data_file)
    if data is None:
        return 1

    generator = PitchDeckGenerator(client=get_client(args.model, args.endpoint))
    print("Starting presentation generation...")
    try:
        path = asyncio.run(generator.generate_pitch_deck(data, args.output_dir))
    except PitchDeckError as e:
        print(f"Failed to generate presentation: {e}")
        return 1

    if generator.last_recovery and generator.last_recovery.used_fallback:
        print("注意: モデル出力を解釈できなかったため既定の分析内容を使用しました。")
    print(f"Presentation generated successfully: {path}")
    return 0


def run_questions(args: argparse.Namespace) -> int:
    """質問生成"""
    from pitchdeck.api_client import get_client
    from pitchdeck.question_generator import QuestionGenerationError, QuestionGenerator

    data = _load_or_report(args.data_file)
    if data is None:
        return 1

    generator = QuestionGenerator(client=get_client(args.model, args.endpoint))
    try:
        questions = asyncio.run(generator.generate_questions(data))
    except QuestionGenerationError as e:
        print(f"エラー: {e}")
        return 1

    print(questions.to_json(indent=2))
    return 0


def run_recover(args: argparse.Namespace) -> int:
    """生出力の復元（診断情報は stderr）"""
    from pitchdeck.recovery import recover

    if args.input == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(args.input).read_text(encoding="utf-8")

    result = recover(raw, args.variant)
    print(result.document.to_json(indent=2))

    diag = result.diagnostics()
    print(yaml.safe_dump(diag, allow_unicode=True, default_flow_style=False), file=sys.stderr)
    return 0


def run_serve(args: argparse.Namespace) -> int:
    """APIサーバー起動"""
    from pitchdeck.server import start_server

    start_server(host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
