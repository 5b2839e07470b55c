"""
Links library: a small SQLite store of saved article links.

Links are keyed by URL; adding an existing URL updates it in place.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger('newsflow.links')


class DatabaseError(Exception):
    """Raised when the links database cannot be read or written."""
    pass


class LinkNotFoundError(LookupError):
    """Raised when a link id does not exist."""

    def __init__(self, link_id: int):
        super().__init__(f"Link {link_id} not found")
        self.link_id = link_id


UPDATABLE_FIELDS = ('title', 'tags', 'user_notes', 'is_featured')


class LinksLibrary:
    """CRUD access to the ``links_library`` table."""

    def __init__(self, db_path: str = 'newsflow.db'):
        self.db_path = db_path
        if db_path != ':memory:':
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.init_database()

    @contextmanager
    def get_connection(self):
        """Connection that commits on success and rolls back on error."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
        except sqlite3.Error as e:
            raise DatabaseError(f"Database connection failed: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

    def init_database(self) -> None:
        with self.get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS links_library (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT UNIQUE NOT NULL,
                    title TEXT NOT NULL,
                    source TEXT NOT NULL,
                    tags TEXT DEFAULT '[]',
                    user_notes TEXT DEFAULT '',
                    is_featured INTEGER DEFAULT 0,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_links_source ON links_library(source)')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_links_created ON links_library(created_at)')

    @staticmethod
    def _encode_tags(tags: Any) -> str:
        if tags is None:
            return '[]'
        if isinstance(tags, str):
            try:
                decoded = json.loads(tags)
            except json.JSONDecodeError:
                decoded = [tags]
            tags = decoded if isinstance(decoded, list) else [decoded]
        return json.dumps(list(tags), ensure_ascii=False)

    @staticmethod
    def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        try:
            data['tags'] = json.loads(data.get('tags') or '[]')
        except json.JSONDecodeError:
            logger.warning("Invalid tags JSON for link %s", data.get('id'))
            data['tags'] = []
        data['is_featured'] = bool(data.get('is_featured'))
        return data

    def list_links(self, source: Optional[str] = None, is_featured: Optional[bool] = None,
                   limit: int = 100) -> List[Dict[str, Any]]:
        query = 'SELECT * FROM links_library'
        conditions = []
        params: List[Any] = []

        if source:
            conditions.append('source = ?')
            params.append(source)
        if is_featured is not None:
            conditions.append('is_featured = ?')
            params.append(1 if is_featured else 0)

        if conditions:
            query += ' WHERE ' + ' AND '.join(conditions)
        query += ' ORDER BY created_at DESC, id DESC LIMIT ?'
        params.append(limit)

        with self.get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_dict(row) for row in rows]

    def add_link(self, url: str, title: str, source: str, tags: Any = None,
                 user_notes: str = '', is_featured: bool = False) -> int:
        """Insert a link, or update title/source/tags/notes when the URL exists. Returns its id."""
        if not url or not title or not source:
            raise ValueError("Missing required fields: url, title, source")

        with self.get_connection() as conn:
            conn.execute('''
                INSERT INTO links_library (url, title, source, tags, user_notes, is_featured)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    title = excluded.title,
                    source = excluded.source,
                    tags = excluded.tags,
                    user_notes = excluded.user_notes,
                    updated_at = CURRENT_TIMESTAMP
            ''', (url, title, source, self._encode_tags(tags), user_notes or '',
                  1 if is_featured else 0))
            row = conn.execute('SELECT id FROM links_library WHERE url = ?', (url,)).fetchone()

        logger.info("Saved link %s", url, extra={'url': url})
        return row['id']

    def get_link(self, link_id: int) -> Dict[str, Any]:
        with self.get_connection() as conn:
            row = conn.execute('SELECT * FROM links_library WHERE id = ?', (link_id,)).fetchone()
        if row is None:
            raise LinkNotFoundError(link_id)
        return self._row_to_dict(row)

    def update_link(self, link_id: int, **fields) -> None:
        """Partial update of title, tags, user_notes and is_featured."""
        updates = []
        params: List[Any] = []
        for name in UPDATABLE_FIELDS:
            if fields.get(name) is None:
                continue
            value = fields[name]
            if name == 'tags':
                value = self._encode_tags(value)
            elif name == 'is_featured':
                value = 1 if value else 0
            updates.append(f'{name} = ?')
            params.append(value)

        if not updates:
            raise ValueError("No fields to update")

        updates.append('updated_at = CURRENT_TIMESTAMP')
        params.append(link_id)
        with self.get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE links_library SET {', '.join(updates)} WHERE id = ?", params)
            if cursor.rowcount == 0:
                raise LinkNotFoundError(link_id)

    def delete_link(self, link_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.execute('DELETE FROM links_library WHERE id = ?', (link_id,))
            if cursor.rowcount == 0:
                raise LinkNotFoundError(link_id)
        logger.info("Deleted link %d", link_id)
