#!/usr/bin/env python3
"""
Syllable - Record Tree Helpers
スラッシュ区切りパスでJSONツリーを読み書きするヘルパー
"""

import copy
from typing import Any


def split_path(path: str) -> list[str]:
    """
    パスをセグメントに分割

    >>> split_path("/statuses/a/b/")
    ['statuses', 'a', 'b']
    """
    return [segment for segment in path.split("/") if segment]


def get_node(tree: Any, path: str) -> Any:
    """
    ツリーからパスの値を取得

    Returns:
        Any: 値（存在しない場合はNone）
    """
    node = tree
    for segment in split_path(path):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return copy.deepcopy(node)


def set_node(tree: Any, path: str, value: Any) -> Any:
    """
    パスに値を設定した新しいツリーを返す

    valueがNoneの場合はノードを削除し、空になった親ノードも取り除く
    （Realtime Databaseと同じ挙動）。

    Args:
        tree: 元のツリー（変更しない）
        path: 書き込み先パス
        value: 書き込む値

    Returns:
        Any: 更新後のツリー（全体が空になった場合はNone）
    """
    segments = split_path(path)
    if not segments:
        return _prune(copy.deepcopy(value))

    root = copy.deepcopy(tree) if isinstance(tree, dict) else {}
    node = root
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child

    if value is None:
        node.pop(segments[-1], None)
    else:
        node[segments[-1]] = copy.deepcopy(value)
    return _prune(root)


def merge_node(tree: Any, path: str, updates: dict[str, Any]) -> Any:
    """パス直下の子ノードを部分更新した新しいツリーを返す（patchイベント用）"""
    result = tree
    base = path.rstrip("/")
    for key, value in updates.items():
        result = set_node(result, f"{base}/{key}", value)
    return result


def _prune(node: Any) -> Any:
    """空の辞書ノードを再帰的に取り除く"""
    if not isinstance(node, dict):
        return node
    pruned = {}
    for key, child in node.items():
        child = _prune(child)
        if child is not None:
            pruned[key] = child
    return pruned or None


def paths_overlap(a: str, b: str) -> bool:
    """2つのパスが祖先・子孫関係（または同一）にあるか"""
    left, right = split_path(a), split_path(b)
    shorter = min(len(left), len(right))
    return left[:shorter] == right[:shorter]
