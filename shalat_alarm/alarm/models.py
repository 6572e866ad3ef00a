"""
markers.db のORMモデル定義
"""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from shalat_alarm.alarm.db import MarkersBase


class FiredMarkerRow(MarkersBase):
    """ラベルごとの最終発火記録。

    - 1ラベル=1行。翌日以降の発火で上書きされる（削除はしない）。
    - fired_date はローカルの暦日（YYYY-MM-DD）。
    """

    __tablename__ = "fired_markers"

    label: Mapped[str] = mapped_column(Text, primary_key=True)
    fired_date: Mapped[str] = mapped_column(Text, nullable=False)
    fired_at_utc: Mapped[int] = mapped_column(Integer, nullable=False)
