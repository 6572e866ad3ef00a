"""
WhatsApp 送信（HTTP ゲートウェイ経由）

電話番号の正規化（インドネシアの国番号 62）と、H-1 リマインダー本文の組み立てを行う。
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from shalat_alarm.reminders.bookings import Booking


logger = logging.getLogger(__name__)

_NON_DIGIT_RE = re.compile(r"\D")


def normalize_phone(raw: Optional[str]) -> str:
    """
    電話番号を国番号付きの数字列にする。

    - 数字以外は除去する
    - 先頭 0 は 62 に置き換える
    - 62 で始まらなければ 62 を付ける
    """

    digits = _NON_DIGIT_RE.sub("", str(raw or ""))
    if not digits:
        return ""
    if digits.startswith("0"):
        return "62" + digits[1:]
    if not digits.startswith("62"):
        return "62" + digits
    return digits


def build_reminder_message(booking: Booking) -> str:
    """H-1 リマインダーの本文を返す。"""

    return (
        "*REMINDER*\n"
        "\n"
        f"Assalamualaikum Bapak/Ibu *{booking.nama}*,\n"
        "\n"
        "Insya Allah teknisi kami *BESOK* akan melakukan kunjungan *SESUAI* dengan tanggal booking "
        f"Bapak/ibu ke alamat *{booking.alamat}*\n"
        "\n"
        "Mohon pastikan :\n"
        "✅ Ada orang yang di rumah saat teknisi datang\n"
        "✅ Jika ada perubahan, mohon *SEGERA* hubungi kami\n"
        "\n"
        "Terima kasih\U0001F64F\n"
        "_Note_:\n"
        "_Mohon pengertiannya saat adzan berkumandang, crew kami agar diberikan ijin menunaikan "
        "sholat terlebih dahulu di masjid_\n"
        "\n"
        "*Aqsha Fresh & Cool*"
    )


class WhatsAppClient:
    """WhatsApp ゲートウェイへテキストを送るクライアント。"""

    def __init__(
        self,
        *,
        endpoint: str,
        device_id: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._endpoint = str(endpoint)
        self._device_id = str(device_id)
        self._timeout = float(timeout_seconds)
        self._client = client

    def send_text(self, *, number: str, message: str) -> bool:
        """
        テキストを送信する。

        Returns:
            2xx なら True。通信失敗や非2xxはログして False。
        """

        payload = {"deviceId": self._device_id, "number": str(number), "message": str(message)}
        try:
            if self._client is not None:
                resp = self._client.post(self._endpoint, json=payload, timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    resp = client.post(self._endpoint, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("whatsapp send failed number=%s error=%s", number, str(exc))
            return False

        if not resp.is_success:
            logger.warning("whatsapp send rejected number=%s status=%s", number, resp.status_code)
            return False
        return True
