"""
ランタイム補助パッケージ。

目的:
    - ログ設定、定期実行、イベント配信といったプロセス常駐の基盤を集約する。
"""

from __future__ import annotations
