#!/usr/bin/env python3
"""
Syllable - Roster Infrastructure
ロスター：ユーザー一覧の組み立てとステータス更新
"""

from .roster_loader import RosterLoader
from .status_marker import StatusMarker

__all__ = [
    "RosterLoader",
    "StatusMarker",
]
