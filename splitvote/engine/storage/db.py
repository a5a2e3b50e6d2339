import sqlite3
import threading
from typing import Optional, List, Tuple, Dict, Iterable

class StorageDB:
    def __init__(self, db_path: str):
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.cursor = self.conn.cursor()
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            # Checkpoint traces: one row per (key, position). Values are TEXT
            # because 208-bit amounts do not fit sqlite INTEGER.
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS checkpoints (
                    key TEXT,
                    pos INTEGER,
                    time INTEGER,
                    value TEXT,
                    PRIMARY KEY (key, pos)
                )
            ''')
            # State table: Key-Value store for delegation sets, balances, clock
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            ''')
            self.conn.commit()

    # --- Checkpoint Methods ---
    def save_checkpoints(self, rows: Iterable[Tuple[str, int, int, str]]):
        with self._lock:
            self.cursor.executemany(
                'INSERT OR REPLACE INTO checkpoints (key, pos, time, value) VALUES (?, ?, ?, ?)',
                list(rows)
            )
            self.conn.commit()

    def get_checkpoints(self) -> List[Tuple[str, int, int, str]]:
        """Returns (key, pos, time, value) rows ordered by key then position."""
        with self._lock:
            self.cursor.execute('SELECT key, pos, time, value FROM checkpoints ORDER BY key, pos')
            return self.cursor.fetchall()

    # --- State Methods ---
    def get_state(self, key: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT value FROM state WHERE key = ?', (key,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def set_state(self, key: str, value: str):
        with self._lock:
            self.cursor.execute('INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)', (key, value))
            self.conn.commit()

    def set_state_many(self, items: Dict[str, str]):
        with self._lock:
            self.cursor.executemany('INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)', list(items.items()))
            self.conn.commit()

    def close(self):
        with self._lock:
            self.conn.close()
