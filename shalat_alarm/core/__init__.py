"""
共通コアパッケージ（時計・時刻ユーティリティ）。
"""

from __future__ import annotations
