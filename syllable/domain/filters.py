#!/usr/bin/env python3
"""
Syllable - Roster Filters
ロスターの検索・ステータス絞り込みを提供するモジュール
"""

from dataclasses import dataclass
from enum import Enum, auto

from .models import RosterSnapshot, Status, UserRecord


class FilterKind(Enum):
    """有効なフィルタの種類（同時に1つのみ）"""

    UNFILTERED = auto()
    QUERY = auto()
    STATUS = auto()


# ステータス絞り込みメニューの表示名
STATUS_LABELS: dict[Status, str] = {
    Status.NEED_PRACTICE: "Difficult",
    Status.LEARNED: "Learned",
    Status.NONE: "Other",
}
UNFILTERED_LABEL = "All"


@dataclass(frozen=True)
class FilterState:
    """
    フィルタ状態

    「絞り込みなし」「フリーテキスト検索」「ステータス指定」のいずれか1つ。
    コンストラクタではなく unfiltered() / search() / bucket() で生成する。
    """

    kind: FilterKind = FilterKind.UNFILTERED
    query: str = ""
    status: Status | None = None

    @classmethod
    def unfiltered(cls) -> "FilterState":
        """絞り込みなし"""
        return cls()

    @classmethod
    def search(cls, query: str) -> "FilterState":
        """フリーテキスト検索（空文字列は絞り込みなしと同じ）"""
        if not query:
            return cls.unfiltered()
        return cls(kind=FilterKind.QUERY, query=query)

    @classmethod
    def bucket(cls, status: Status) -> "FilterState":
        """ステータス指定（NONEを含む）"""
        return cls(kind=FilterKind.STATUS, status=status)

    @property
    def is_filtering(self) -> bool:
        """絞り込みが有効かどうか"""
        return self.kind != FilterKind.UNFILTERED

    @property
    def label(self) -> str:
        """画面タイトル用の表示名"""
        if self.kind == FilterKind.STATUS and self.status is not None:
            return STATUS_LABELS[self.status]
        if self.kind == FilterKind.QUERY:
            return self.query
        return UNFILTERED_LABEL


def matches_query(record: UserRecord, query: str) -> bool:
    """
    フリーテキスト検索の一致判定

    氏名・プログラム・学年のいずれかに、大文字小文字を区別せず部分一致すれば一致。
    """
    needle = query.lower()
    fields = (record.full_name, record.program or "", record.class_year or "")
    return any(needle in field.lower() for field in fields)


def apply_filter(state: FilterState, snapshot: RosterSnapshot) -> list[UserRecord]:
    """
    スナップショットにフィルタを適用

    Args:
        state: 適用するフィルタ状態
        snapshot: 元のロスター

    Returns:
        list[UserRecord]: 表示順を保った絞り込み結果
    """
    if state.kind == FilterKind.QUERY and state.query:
        return [record for record in snapshot if matches_query(record, state.query)]
    if state.kind == FilterKind.STATUS:
        return [record for record in snapshot if record.status == state.status]
    return list(snapshot)


class RosterFilter:
    """
    ロスター表示用のフィルタ管理

    責務:
    - ベーススナップショットと有効なフィルタ状態の保持
    - 状態・スナップショット変更時の全件再計算（差分更新はしない）
    """

    def __init__(self, snapshot: RosterSnapshot | None = None) -> None:
        self.snapshot = snapshot if snapshot is not None else RosterSnapshot.empty()
        self.state = FilterState.unfiltered()
        self.visible: list[UserRecord] = apply_filter(self.state, self.snapshot)

    def set_snapshot(self, snapshot: RosterSnapshot) -> list[UserRecord]:
        """ベーススナップショットを差し替えて再計算"""
        self.snapshot = snapshot
        return self.refresh()

    def activate(self, state: FilterState) -> list[UserRecord]:
        """フィルタを切り替えて再計算（以前のフィルタは解除される）"""
        self.state = state
        return self.refresh()

    def clear(self) -> list[UserRecord]:
        """絞り込みを解除"""
        return self.activate(FilterState.unfiltered())

    def refresh(self) -> list[UserRecord]:
        """現在の状態でベーススナップショットから再計算"""
        self.visible = apply_filter(self.state, self.snapshot)
        return self.visible
