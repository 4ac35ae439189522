from __future__ import annotations

import re
from typing import Any, Dict, Tuple

import yaml
from pydantic import ValidationError

from .models import Diagnostic, ShortcutEntry

KEY_RE = re.compile(r"^(\S+) (\d+|\*)$")


class CollectionParseError(ValueError):
    """The collection document is not a YAML mapping."""


def parse_collection(text: str) -> Dict[Any, Any]:
    """
    YAMLのコレクション文書をキー → 生エントリのマッピングに変換

    Args:
        text: shortcuts.yml の本文

    Returns:
        生のマッピング（空文書は空のdict）

    Raises:
        CollectionParseError: YAML構文エラー、またはマッピング以外の文書
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CollectionParseError(str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CollectionParseError(f"expected a mapping, got {type(data).__name__}")
    return data


def split_key(key: str) -> Tuple[str, Any]:
    """Split "keyword argcount" into lower-cased keyword and int count (or "*")."""
    m = KEY_RE.match(key)
    if not m:
        raise ValueError(f"Invalid shortcut key: {key!r}")
    keyword, count = m.group(1).lower(), m.group(2)
    return keyword, count if count == "*" else int(count)


def normalize_key(key: str) -> str:
    """Lower-case the keyword part so keys match case-insensitively."""
    keyword, count = split_key(key)
    return f"{keyword} {count}"


def verify_shortcuts(raw: Dict[Any, Any], namespace_name: str) -> Tuple[Dict[str, ShortcutEntry], list[Diagnostic]]:
    """
    生エントリを検証し、ShortcutEntryに正規化

    - キーは "KEYWORD ARGCOUNT" 形式であること（例: "foo 0", "foo *"）
    - 値が文字列のみの場合はURLだけのエントリに変換
    - キーワード部分は小文字に正規化（大文字小文字を区別しない照合）
    - 不正なキー・不正な値は除外し、名前空間ごとに1件の診断にまとめる
    """
    shortcuts: Dict[str, ShortcutEntry] = {}
    incorrect_keys: list[str] = []

    for key, value in raw.items():
        if not isinstance(key, str) or not KEY_RE.match(key):
            incorrect_keys.append(str(key))
            continue
        if isinstance(value, str):
            value = {"url": value}
        if not isinstance(value, dict):
            incorrect_keys.append(key)
            continue
        try:
            normalized = normalize_key(key)
            shortcuts[normalized] = ShortcutEntry(**{**value, "key": normalized})
        except (ValidationError, TypeError):
            incorrect_keys.append(key)

    diagnostics = []
    if incorrect_keys:
        diagnostics.append(Diagnostic(
            kind="invalid_keys",
            namespace=namespace_name,
            message=(
                f"Incorrect keys found in namespace '{namespace_name}'. "
                "Keys must have the form 'KEYWORD ARGCOUNT', e.g.: 'foo 0'"
            ),
            details=incorrect_keys,
        ))
    return shortcuts, diagnostics
