#!/usr/bin/env python3
"""
Syllable - Constants
リモートストアのパス規約と固定値を管理するモジュール
"""

# ========================================
# リアルタイムデータベースのパス
# ========================================
USERS_PATH = "users"
USER_PATH = "users/{user_id}"  # プロフィール基本項目
STATUSES_PATH = "statuses/{viewer_id}"  # 閲覧者のステータス一覧
STATUS_PATH = "statuses/{viewer_id}/{subject_id}"  # 閲覧者ごとの学習ステータス
PRACTICE_PATH = "practices/{subject_id}/{evaluator_id}"  # 提出タイムスタンプ

# ========================================
# Blobストアのパス
# ========================================
PROFILE_PICTURE_PATH = "profile-pictures/{user_id}.jpg"
RECORDING_PATH = "audio-recordings/{user_id}.m4a"
PRACTICE_CLIP_NAME = "practice-{evaluator_id}-{subject_id}.m4a"
PRACTICE_RECORDING_PATH = "practice-audio-recordings/" + PRACTICE_CLIP_NAME

# ========================================
# ユーザーレコードのフィールド名
# ========================================
FIELD_FIRST_NAME = "firstName"
FIELD_MIDDLE_NAME = "middleName"
FIELD_LAST_NAME = "lastName"
FIELD_PROGRAM = "program"
FIELD_CLASS_YEAR = "classYear"
FIELD_BIO = "bio"
FIELD_COUNTRY_CODE = "countryCode"
FIELD_COUNTRY_NAME = "countryName"

# 表示用の区切り文字（プログラム · 学年）
SECONDARY_LABEL_SEPARATOR = " · "
