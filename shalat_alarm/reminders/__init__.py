"""
H-1 リマインダー（WhatsApp）パッケージ。

目的:
    - 翌日訪問予定の予約取得、WhatsApp 送信、一括送信をまとめる。
"""

from __future__ import annotations
