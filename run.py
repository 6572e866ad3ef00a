"""ShalatAlarm 起動スクリプト。

開発時の手動起動を想定する。
配布では [shalat_alarm/entrypoint.py] を使う。
"""

from __future__ import annotations


def main() -> None:
    """uvicorn で FastAPI アプリを起動する。"""

    import uvicorn

    # --- setting.toml から待受ポートを取得する ---
    from shalat_alarm.config import load_config

    toml_config = load_config()

    # --- 開発用: コード変更を自動でリロードする ---
    # NOTE: create_app は import 時に設定を読まないため factory として渡す。
    uvicorn.run(
        "shalat_alarm.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=toml_config.port,
        reload=True,
    )


if __name__ == "__main__":
    main()
