"""
SQLite store for finished video records.
"""

import logging
import secrets
import sqlite3
from dataclasses import asdict, fields
from pathlib import Path
from typing import Optional

from .models import VideoRecord

logger = logging.getLogger("newsreel")

ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
ID_LENGTH = 16

_COLUMNS = [f.name for f in fields(VideoRecord)]


def new_global_id() -> str:
    """Random 16-character lowercase alphanumeric identifier."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


class VideoStore:
    """Explicit handle on the videos table. Open once, pass it to the pipeline."""

    def __init__(self, path: str = "newsreel.db"):
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.path = str(path)
        self.conn = sqlite3.connect(self.path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS videos (
                global_id TEXT PRIMARY KEY,
                file_path TEXT NOT NULL,
                title TEXT,
                description TEXT,
                content TEXT,
                source_url TEXT,
                source_name TEXT,
                published_at TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    def insert(self, record: VideoRecord) -> VideoRecord:
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self.conn:
            self.conn.execute(
                f"INSERT INTO videos ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                [asdict(record)[c] for c in _COLUMNS],
            )
        logger.info(f"Stored video record {record.global_id} -> {record.file_path}")
        return record

    def get(self, global_id: str) -> Optional[VideoRecord]:
        row = self.conn.execute(
            "SELECT * FROM videos WHERE global_id = ?", (global_id,)
        ).fetchone()
        return VideoRecord(**dict(row)) if row else None

    def find_by_path(self, file_path: str) -> Optional[VideoRecord]:
        row = self.conn.execute(
            "SELECT * FROM videos WHERE file_path = ? ORDER BY created_at DESC LIMIT 1",
            (file_path,),
        ).fetchone()
        return VideoRecord(**dict(row)) if row else None

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "VideoStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
