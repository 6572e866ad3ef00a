"""
発火済みマーカーDB（markers.db）接続とセッション管理

マーカーは「設定」ではなく「実行状態（どのラベルがいつ鳴ったか）」なので、
他の保存物とは分離して markers.db として管理する。
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


logger = logging.getLogger(__name__)

# markers.db 用 Base
MarkersBase = declarative_base()

# グローバルセッション（markers.db 用）
MarkersSessionLocal: sessionmaker | None = None
_engine: Engine | None = None
_db_path: Path | None = None


def get_markers_db_path() -> Path:
    """markers.db の既定パスを返す。"""

    from shalat_alarm.infra.paths import get_db_dir

    return get_db_dir() / "markers.db"


def get_markers_db_url(db_path: Optional[str | Path] = None) -> str:
    """markers.db のSQLAlchemy URLを返す。"""

    p = Path(db_path) if db_path is not None else get_markers_db_path()
    return f"sqlite:///{p}"


def init_markers_db(db_path: Optional[str | Path] = None) -> None:
    """
    markers.db を初期化する（起動時）。

    - セッションファクトリを作成する
    - テーブルを作成する
    """

    global MarkersSessionLocal, _engine, _db_path

    p = Path(db_path) if db_path is not None else get_markers_db_path()
    p.parent.mkdir(parents=True, exist_ok=True)

    db_url = get_markers_db_url(p)
    connect_args = {"check_same_thread": False, "timeout": 10.0}
    engine = create_engine(db_url, future=True, connect_args=connect_args)
    session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    # markers.db のテーブル群を作成（モデル import が必要）
    import shalat_alarm.alarm.models  # noqa: F401

    MarkersBase.metadata.create_all(bind=engine)

    # --- 前回の engine は破棄してから差し替える ---
    if _engine is not None:
        _engine.dispose()
    _engine = engine
    _db_path = p
    MarkersSessionLocal = session_factory
    logger.info("markers DB initialized: %s", db_url)


def dispose_markers_db() -> None:
    """markers.db の engine を破棄する（終了時/テスト用）。"""

    global MarkersSessionLocal, _engine, _db_path

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _db_path = None
    MarkersSessionLocal = None


@contextlib.contextmanager
def markers_session_scope() -> Iterator[Session]:
    """
    markers.db のセッションスコープ（with文用）。

    正常終了時はコミット、例外時はロールバックする。
    """

    if MarkersSessionLocal is None:
        raise RuntimeError("Markers database not initialized. Call init_markers_db() first.")
    session = MarkersSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
