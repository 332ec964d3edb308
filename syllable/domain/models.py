#!/usr/bin/env python3
"""
Syllable - Domain Models
ドメイン層：ビジネスエンティティとルール（外部依存なし）
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from .constants import (
    FIELD_BIO,
    FIELD_CLASS_YEAR,
    FIELD_COUNTRY_CODE,
    FIELD_COUNTRY_NAME,
    FIELD_FIRST_NAME,
    FIELD_LAST_NAME,
    FIELD_MIDDLE_NAME,
    FIELD_PROGRAM,
    SECONDARY_LABEL_SEPARATOR,
)


class Status(StrEnum):
    """
    学習ステータス（閲覧者×対象ユーザーごと）

    同じ対象ユーザーでも閲覧者によって異なるステータスを持つ。
    NONEはリモートに値が存在しない状態を表す。
    """

    NONE = "none"
    LEARNED = "learned"
    NEED_PRACTICE = "needPractice"

    @classmethod
    def from_remote(cls, value: Any) -> "Status":
        """
        リモートの値からステータスを復元

        未設定・未知の値はすべてNONEとして扱う。
        """
        if value == cls.LEARNED.value:
            return cls.LEARNED
        if value == cls.NEED_PRACTICE.value:
            return cls.NEED_PRACTICE
        return cls.NONE


@dataclass(frozen=True)
class Country:
    """名前の出身国"""

    code: str
    name: str


@dataclass(frozen=True)
class ViewerContext:
    """
    現在の閲覧者

    セッション開始時に一度だけ解決され、必要な各コンポーネントへ明示的に渡される。
    """

    user_id: str

    def is_self(self, user_id: str) -> bool:
        """指定IDが閲覧者自身かどうか"""
        return self.user_id == user_id


def _text(fields: Mapping[str, Any], key: str) -> str | None:
    value = fields.get(key)
    return value if isinstance(value, str) else None


@dataclass
class UserRecord:
    """ロスターに表示される1ユーザー分のビューモデル"""

    id: str
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    program: str | None = None
    class_year: str | None = None
    bio: str | None = None
    country: Country | None = None
    profile_picture: bytes | None = field(default=None, repr=False)
    status: Status = Status.NONE

    @classmethod
    def from_fields(
        cls,
        user_id: str,
        fields: Mapping[str, Any],
        profile_picture: bytes | None = None,
        status: Status = Status.NONE,
    ) -> "UserRecord":
        """
        リモートのフィールドマッピングからレコードを構築

        Args:
            user_id: ユーザーID
            fields: `users/{id}` の値
            profile_picture: プロフィール画像（取得失敗時はNone）
            status: 閲覧者から見たステータス

        Returns:
            UserRecord: 組み立て済みレコード
        """
        country_code = _text(fields, FIELD_COUNTRY_CODE)
        country_name = _text(fields, FIELD_COUNTRY_NAME)
        country = (
            Country(code=country_code, name=country_name or country_code)
            if country_code
            else None
        )
        return cls(
            id=user_id,
            first_name=_text(fields, FIELD_FIRST_NAME),
            middle_name=_text(fields, FIELD_MIDDLE_NAME),
            last_name=_text(fields, FIELD_LAST_NAME),
            program=_text(fields, FIELD_PROGRAM),
            class_year=_text(fields, FIELD_CLASS_YEAR),
            bio=_text(fields, FIELD_BIO),
            country=country,
            profile_picture=profile_picture,
            status=status,
        )

    @property
    def full_name(self) -> str:
        """表示用フルネーム（空のパーツは除外）"""
        parts = (self.first_name, self.middle_name, self.last_name)
        return " ".join(part for part in parts if part)

    @property
    def secondary_label(self) -> str:
        """表示用サブラベル（プログラム · 学年）"""
        parts = (self.program, self.class_year)
        return SECONDARY_LABEL_SEPARATOR.join(part for part in parts if part)

    @property
    def bio_text(self) -> str:
        """表示用自己紹介"""
        return self.bio or ""

    def set_status(self, status: Status) -> None:
        """ステータスをその場で更新"""
        self.status = status


def _sort_key(record: UserRecord) -> tuple[str, str]:
    return (record.last_name or "", record.id)


class RosterSnapshot:
    """
    閲覧者に見えるユーザー全体のスナップショット

    責務:
    - 姓の昇順でレコードを保持（同姓はIDで安定化）
    - 宣言件数に対する完了判定
    - 単一レコードのその場差し替え
    """

    def __init__(self, records: Iterable[UserRecord], declared_total: int) -> None:
        self.records: list[UserRecord] = sorted(records, key=_sort_key)
        self.declared_total = declared_total

    @classmethod
    def empty(cls) -> "RosterSnapshot":
        """空のスナップショット"""
        return cls([], declared_total=0)

    @property
    def is_complete(self) -> bool:
        """組み立て済み件数が宣言件数に達しているか"""
        return len(self.records) == self.declared_total

    @property
    def ids(self) -> list[str]:
        """表示順のユーザーID一覧"""
        return [record.id for record in self.records]

    def get(self, user_id: str) -> UserRecord | None:
        """IDでレコードを取得"""
        for record in self.records:
            if record.id == user_id:
                return record
        return None

    def replace(self, record: UserRecord) -> bool:
        """
        同じIDのレコードを差し替える

        Returns:
            bool: 差し替えが行われたかどうか
        """
        for index, existing in enumerate(self.records):
            if existing.id == record.id:
                self.records[index] = record
                self.records.sort(key=_sort_key)
                return True
        return False

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[UserRecord]:
        return iter(self.records)


@dataclass(frozen=True)
class PracticeSubmission:
    """評価依頼の提出記録"""

    subject_id: str
    evaluator_id: str
    submitted_at: datetime

    @property
    def timestamp(self) -> float:
        """リモートに書き込むUNIX時刻（秒）"""
        return self.submitted_at.timestamp()


class ProfileDraft:
    """
    オンボーディング中のプロフィール下書き

    必須項目は名と姓のみ。ミドルネーム・国・画像は任意。
    """

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self.first_name: str | None = None
        self.middle_name: str | None = None
        self.last_name: str | None = None
        self.country: Country | None = None
        self.profile_picture: bytes | None = None

    def is_complete(self) -> bool:
        """必須項目（名・姓）がすべて入力済みか"""
        return bool(self.first_name) and bool(self.last_name)

    def to_fields(self) -> dict[str, str]:
        """
        `users/{id}` に書き込むフィールドマッピング

        未入力の項目は含めない。
        """
        values = {
            FIELD_FIRST_NAME: self.first_name,
            FIELD_MIDDLE_NAME: self.middle_name,
            FIELD_LAST_NAME: self.last_name,
            FIELD_COUNTRY_CODE: self.country.code if self.country else None,
            FIELD_COUNTRY_NAME: self.country.name if self.country else None,
        }
        return {key: value for key, value in values.items() if value}


class PracticeMode(StrEnum):
    """練習カードのモード"""

    RECORD = "record"  # 録音待ち（提出・破棄ボタン無効）
    PLAY = "play"  # 録音済みクリップあり（提出・破棄ボタン有効）
