"""
PitchDeck AI - LLM出力 JSON 復元ユーティリティ

「JSONで返せ」と指示されたモデルの出力は、前後の説明文、シングルクォート、
クォート無しのキー、末尾カンマなどを含みがちである。本モジュールはそれを
厳密なJSONとしてパースできる形へ段階的に整える。

    1. 抽出 (Extractor)   : 最初の { から最後の } までを切り出す
    2. 正規化 (Normalizer): 順序付きの書き換えルールを適用
    3. パース (Parser)    : 標準の厳密JSONパーサに委譲
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# 診断ログに載せる抜粋の最大長
EXCERPT_LIMIT = 200


# ============================================================
# カスタム例外
# ============================================================

class RecoveryError(Exception):
    """復元パイプライン例外の基底クラス"""

    stage = "recovery"

    def __init__(self, message: str, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class ExtractionFailure(RecoveryError):
    """{ ... } 区間が見つからない"""

    stage = "extract"


class ParseFailure(RecoveryError):
    """厳密JSONパーサが正規化後テキストを拒否した"""

    stage = "parse"


def excerpt(text: str, limit: int = EXCERPT_LIMIT) -> str:
    """ログ用に長いテキストを切り詰める"""
    if len(text) <= limit:
        return text
    return text[:limit] + f"... (+{len(text) - limit} chars)"


# ============================================================
# 1. 抽出
# ============================================================

def extract_candidate(text: str) -> Optional[str]:
    """
    最初の '{' から最後の '}' までを（両端を含めて）切り出す。

    どちらかが無い、または最後の '}' が最初の '{' より前にある場合は None。
    括弧の対応は検証しない（後段のパースが検証を兼ねる）。
    """
    if not isinstance(text, str) or not text:
        return None

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None

    return text[start:end + 1]


# ============================================================
# 2. 正規化
# ============================================================

# 二重引用符で開いて閉じるスマートクォート
_SMART_DOUBLE_QUOTES = "“”„‟″"
_SMART_SINGLE_QUOTES = "‘’‚‛"
_SMART_QUOTES = _SMART_DOUBLE_QUOTES + _SMART_SINGLE_QUOTES

_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*):")
# トークンは「非空白の塊」を空白で繋いだもの。空白の塊を二重に走査しない（線形時間）。
_BARE_VALUE_RE = re.compile(
    r"([:\[,]\s*)([^\s,\[\]{}:]+(?:\s+[^\s,\[\]{}:]+)*)(?=\s*[,\]}])"
)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_WHITESPACE_RE = re.compile(r"\s+")
_RAW_CONTROL_RE = re.compile(r"\r\n|[\r\n\t]")
_JSON_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_JSON_LITERALS = frozenset({"true", "false", "null"})


def split_literals(text: str, quotes: str = '"') -> list[tuple[bool, str]]:
    """
    テキストを (文字列リテラルか, 断片) の列に分割する。

    quotes に含まれる文字で始まり同じ文字で閉じる区間をリテラルとみなす。
    バックスラッシュエスケープを考慮する。閉じていない二重引用符は末尾まで
    リテラル扱い、閉じていない単引用符はアポストロフィとしてコード扱い。
    """
    segments: list[tuple[bool, str]] = []
    buf: list[str] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if ch not in quotes:
            buf.append(ch)
            i += 1
            continue

        end = _find_closing(text, i + 1, ch)
        if end == -1 and ch != '"':
            buf.append(ch)
            i += 1
            continue

        if buf:
            segments.append((False, "".join(buf)))
            buf = []
        stop = n if end == -1 else end + 1
        segments.append((True, text[i:stop]))
        i = stop

    if buf:
        segments.append((False, "".join(buf)))
    return segments


def _find_closing(text: str, pos: int, quote: str) -> int:
    """エスケープを飛ばしつつ閉じ引用符の位置を返す（無ければ -1）"""
    escaped = False
    for j in range(pos, len(text)):
        c = text[j]
        if escaped:
            escaped = False
        elif c == "\\":
            escaped = True
        elif c == quote:
            return j
    return -1


def _map_code(text: str, fn: Callable[[str], str], quotes: str = '"') -> str:
    """リテラル以外の断片にだけ fn を適用する"""
    return "".join(
        chunk if is_literal else fn(chunk)
        for is_literal, chunk in split_literals(text, quotes)
    )


def quote_bare_keys(text: str) -> str:
    """ルール1: { または , に続く裸の識別子キーを二重引用符で囲む"""
    return _map_code(
        text,
        lambda chunk: _BARE_KEY_RE.sub(r'\1"\2"\3:', chunk),
        quotes="\"'",
    )


def convert_single_quotes(text: str) -> str:
    """ルール2: 単引用符リテラルを二重引用符リテラルへ変換する"""
    out: list[str] = []
    for is_literal, chunk in split_literals(text, quotes="\"'"):
        if is_literal and chunk.startswith("'"):
            body = chunk[1:-1].replace("\\'", "'")
            body = re.sub(r'(?<!\\)"', r'\\"', body)
            out.append(f'"{body}"')
        else:
            out.append(chunk)
    return "".join(out)


def normalize_smart_quotes(text: str) -> str:
    """
    ルール3: リテラル外のスマートクォートを通常の二重引用符にする。

    通常の " で開いたリテラル内のスマートクォートは本文として残す。
    スマートクォートで開いたリテラルは対応するスマートクォートで閉じ、
    本文中の " はエスケープする。
    """
    if not any(q in text for q in _SMART_QUOTES):
        return text

    out: list[str] = []
    opener: Optional[str] = None
    escaped = False

    for ch in text:
        if opener is None:
            if ch == '"':
                opener = '"'
                out.append(ch)
            elif ch in _SMART_QUOTES:
                opener = ch
                out.append('"')
            else:
                out.append(ch)
            continue

        if escaped:
            escaped = False
            out.append(ch)
        elif ch == "\\":
            escaped = True
            out.append(ch)
        elif opener == '"':
            if ch == '"':
                opener = None
            out.append(ch)
        elif ch in _SMART_QUOTES and (ch in _SMART_DOUBLE_QUOTES) == (opener in _SMART_DOUBLE_QUOTES):
            opener = None
            out.append('"')
        elif ch == '"':
            out.append('\\"')
        else:
            out.append(ch)

    return "".join(out)


def _is_json_scalar(token: str) -> bool:
    return token in _JSON_LITERALS or _JSON_NUMBER_RE.fullmatch(token) is not None


def _quote_token(match: re.Match[str]) -> str:
    prefix, token = match.group(1), match.group(2)
    if _is_json_scalar(token):
        return match.group(0)
    token = token.replace("\\", "\\\\")
    return f'{prefix}"{token}"'


def quote_bare_values(text: str) -> str:
    """
    ルール4: 値の位置にある JSON リテラルでない裸トークンを文字列化する。

    `trend: up` の up や `29.8%` など。正しい JSON 数値や true/false/null は
    そのまま残すので、数値配列が文字列化されることはない。
    """
    return _map_code(text, lambda chunk: _BARE_VALUE_RE.sub(_quote_token, chunk))


def remove_trailing_commas(text: str) -> str:
    """ルール5: } または ] 直前の末尾カンマを取り除く"""
    return _map_code(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def collapse_whitespace(text: str) -> str:
    """
    ルール6: リテラル外の改行・空白の連続を空白1つに畳む。

    リテラル内の生の改行・タブ（厳密JSONでは不正）も空白にする。
    """
    out: list[str] = []
    for is_literal, chunk in split_literals(text):
        if is_literal:
            out.append(_RAW_CONTROL_RE.sub(" ", chunk))
        else:
            out.append(_WHITESPACE_RE.sub(" ", chunk))
    return "".join(out)


@dataclass(frozen=True)
class NormalizationRule:
    """名前付きの書き換えルール"""
    name: str
    apply: Callable[[str], str]


# 適用順序に意味がある。後段のルールが前段の出力を壊さないこと。
DEFAULT_RULES: tuple[NormalizationRule, ...] = (
    NormalizationRule("quote_bare_keys", quote_bare_keys),
    NormalizationRule("convert_single_quotes", convert_single_quotes),
    NormalizationRule("normalize_smart_quotes", normalize_smart_quotes),
    NormalizationRule("quote_bare_values", quote_bare_values),
    NormalizationRule("remove_trailing_commas", remove_trailing_commas),
    NormalizationRule("collapse_whitespace", collapse_whitespace),
)


@dataclass
class NormalizationAnomaly:
    """ルールがきれいに適用できなかった記録（致命的ではない）"""
    rule: str
    message: str


@dataclass
class NormalizationResult:
    """正規化結果"""
    text: str
    anomalies: list[NormalizationAnomaly] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)


class Normalizer:
    """順序付きルールパイプライン"""

    def __init__(self, rules: tuple[NormalizationRule, ...] = DEFAULT_RULES) -> None:
        self.rules = rules

    def normalize(self, text: str) -> NormalizationResult:
        result = NormalizationResult(text=text)

        for rule in self.rules:
            try:
                rewritten = rule.apply(result.text)
            except (ValueError, TypeError, re.error) as e:
                anomaly = NormalizationAnomaly(rule.name, str(e))
                result.anomalies.append(anomaly)
                logger.warning("正規化ルール %s をスキップ: %s", rule.name, e)
                continue

            if rewritten != result.text:
                result.applied.append(rule.name)
                result.text = rewritten

        last = split_literals(result.text)
        if last and last[-1][0] and not _is_closed_literal(last[-1][1]):
            anomaly = NormalizationAnomaly("quote_balance", "unterminated string literal")
            result.anomalies.append(anomaly)
            logger.warning("正規化異常: 閉じていない文字列リテラル: %s", excerpt(last[-1][1]))

        return result


def _is_closed_literal(chunk: str) -> bool:
    return len(chunk) >= 2 and _find_closing(chunk, 1, chunk[0]) == len(chunk) - 1


_default_normalizer = Normalizer()


def normalize_json_text(text: str) -> str:
    """デフォルトルールで正規化したテキストを返す"""
    return _default_normalizer.normalize(text).text


# ============================================================
# 3. パース
# ============================================================

def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def parse_strict_json(text: str) -> Any:
    """
    標準の厳密JSONパーサに委譲する。

    NaN / Infinity は受け付けない。失敗時は問題のテキストを保持した
    ParseFailure を送出する。
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError は ValueError のサブクラス
        raise ParseFailure(f"JSON parse failed: {e}", text=text) from e


def parse_llm_json(
    text: str,
    normalizer: Optional[Normalizer] = None,
    anomalies: Optional[list[NormalizationAnomaly]] = None,
) -> Any:
    """
    LLMの出力から未型付けの JSON ツリーを取り出す。

    抽出 → 正規化 → パース。抽出できなければ ExtractionFailure、
    パースできなければ ParseFailure を送出する。anomalies を渡すと
    正規化中の異常記録をそこへ追記する。
    """
    if isinstance(text, str):
        logger.debug("モデル生出力 (%d chars): %s", len(text), excerpt(text))

    candidate = extract_candidate(text)
    if candidate is None:
        raw = text if isinstance(text, str) else repr(text)
        raise ExtractionFailure("no brace-delimited region found", text=raw)

    normalized = (normalizer or _default_normalizer).normalize(candidate)
    if anomalies is not None:
        anomalies.extend(normalized.anomalies)
    if normalized.applied:
        logger.debug("適用された正規化ルール: %s", ", ".join(normalized.applied))

    return parse_strict_json(normalized.text)
