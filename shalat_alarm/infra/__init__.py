"""
インフラ補助パッケージ。

目的:
    - パス解決など、実行環境依存の補助機能を `shalat_alarm` 直下から分離する。
"""

from __future__ import annotations
