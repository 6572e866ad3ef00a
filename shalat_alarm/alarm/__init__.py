"""
時刻アラーム機能パッケージ。

目的:
    - ターゲット定義 / サンプラー / 発火済みマーカー / ガード / サービスを1箇所へ集約する。
    - 「1日1回だけ鳴らす」判定の責務を見つけやすくする。
"""

from __future__ import annotations
