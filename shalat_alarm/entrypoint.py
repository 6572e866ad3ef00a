"""配布向けのエントリポイント。

設計意図:
- 「単一の起動点」を用意する
- ここでは *保存先ディレクトリ* を確実に作成し、起動に必要な前提を揃える
- uvicorn の起動はプログラムから行う（CLI依存を減らす）
"""

from __future__ import annotations


def main() -> None:
    """配布版のサーバー起動処理。"""

    # --- 先にディレクトリを確実に作る（初回起動時の事故防止） ---
    from shalat_alarm.infra import paths

    paths.get_config_dir()
    paths.get_data_dir()
    paths.get_db_dir()
    paths.get_logs_dir()

    # --- 設定ファイルが無い場合は、案内して終了 ---
    config_path = paths.get_default_config_file_path()
    if not config_path.exists():
        print("[ShalatAlarm] config/setting.toml が見つかりません。")
        print("[ShalatAlarm] config/setting.example.toml をコピーして作成してください。")
        print(f"[ShalatAlarm] 期待パス: {config_path}")
        return

    from shalat_alarm.config import load_config
    from shalat_alarm.main import create_app

    toml_config = load_config(config_path)
    app = create_app(toml_config)

    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=toml_config.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
