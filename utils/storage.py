"""
Persistent storage for conversations and user personalization profiles.
Uses SQLite with thread-local connections; message arrays are stored as JSON.
"""
import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from config import Config
from models.api_models import Conversation, ConversationCreate, Message, PersonalizationContext
from utils.logger import app_logger


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Storage:
    """
    SQLite-backed store for conversation records and 360 assessments.

    `message_count` and `last_message_at` are derived from `messages` on every
    write and are never accepted from callers.
    """

    CONVERSATION_STATUSES = ("active", "archived", "deleted")

    # columns a partial update may touch, keyed by model field name
    UPDATABLE_FIELDS = {
        "title": "title",
        "topic": "topic",
        "summary": "summary",
        "is_starred": "is_starred",
        "status": "status",
    }

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize storage with SQLite persistence.

        Args:
            db_path: Path to SQLite database file (default: Config.DATABASE_PATH)
        """
        if db_path is None:
            db_path = Config.DATABASE_PATH

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._local = threading.local()
        self._init_db()

        app_logger.info(f"Storage initialized with SQLite: {self._db_path}")

    def _get_conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'conn'):
            self._local.conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_conn()
        cursor = conn.cursor()

        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                title TEXT,
                topic TEXT NOT NULL,
                summary TEXT,
                messages TEXT NOT NULL DEFAULT '[]',
                message_count INTEGER NOT NULL DEFAULT 0,
                user_id TEXT,
                is_starred INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'active',
                last_message_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_conversations_status_updated
            ON conversations(status, updated_at)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_profiles (
                user_id TEXT PRIMARY KEY,
                assessment TEXT NOT NULL,
                original_content TEXT,
                uploaded_at TEXT NOT NULL
            )
        """)

        conn.commit()

    @staticmethod
    def _deserialize_conversation(row: sqlite3.Row) -> Conversation:
        """Deserialize a conversation from a database row."""
        return Conversation(
            id=row['id'],
            title=row['title'],
            topic=row['topic'],
            summary=row['summary'],
            messages=[Message(**m) for m in json.loads(row['messages'])],
            message_count=row['message_count'],
            user_id=row['user_id'],
            is_starred=bool(row['is_starred']),
            status=row['status'],
            last_message_at=row['last_message_at'],
            created_at=row['created_at'],
            updated_at=row['updated_at']
        )

    @staticmethod
    def _serialize_messages(messages: List[Message]) -> str:
        return json.dumps([m.model_dump() for m in messages])

    def _query(self, sql: str, params: tuple = ()) -> List[Conversation]:
        cursor = self._get_conn().cursor()
        cursor.execute(sql, params)
        return [self._deserialize_conversation(row) for row in cursor.fetchall()]

    # Conversation operations

    def create_conversation(self, data: ConversationCreate) -> Conversation:
        """Insert a new conversation and return it."""
        now = _now()
        conversation_id = str(uuid4())

        conn = self._get_conn()
        conn.execute("""
            INSERT INTO conversations
            (id, title, topic, summary, messages, message_count, user_id, is_starred, status,
             last_message_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            conversation_id, data.title, data.topic, data.summary,
            self._serialize_messages(data.messages), len(data.messages),
            data.user_id, int(data.is_starred), data.status,
            now if data.messages else None, now, now
        ))
        conn.commit()

        app_logger.info(f"Conversation created: {conversation_id} | {data.topic} | {len(data.messages)} messages")
        return self.get_conversation(conversation_id)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        results = self._query("SELECT * FROM conversations WHERE id = ?", (conversation_id,))
        return results[0] if results else None

    def list_conversations(self, status: Optional[str] = None) -> List[Conversation]:
        """List conversations with the given status (active by default), newest first."""
        return self._query("""
            SELECT * FROM conversations
            WHERE status = ?
            ORDER BY updated_at DESC, rowid DESC
        """, (status or "active",))

    def conversations_by_topic(self, topic: str) -> List[Conversation]:
        return self._query("""
            SELECT * FROM conversations
            WHERE topic = ? AND status = 'active'
            ORDER BY updated_at DESC, rowid DESC
        """, (topic,))

    def search_conversations(self, query: str) -> List[Conversation]:
        """Case-insensitive match on title, summary or topic among active conversations."""
        pattern = f"%{_escape_like(query)}%"
        return self._query("""
            SELECT * FROM conversations
            WHERE status = 'active' AND (
                title LIKE ? ESCAPE '\\' OR
                summary LIKE ? ESCAPE '\\' OR
                topic LIKE ? ESCAPE '\\'
            )
            ORDER BY updated_at DESC, rowid DESC
        """, (pattern, pattern, pattern))

    def update_conversation(self, conversation_id: str, updates: Dict[str, Any]) -> Optional[Conversation]:
        """
        Apply a partial update.

        Args:
            conversation_id: Conversation to update
            updates: Model field names mapped to new values; `messages` replaces the
                whole log and refreshes the derived count

        Returns:
            The updated conversation, or None if it does not exist
        """
        assignments = []
        params: list = []

        for field, value in updates.items():
            if field == "messages":
                messages = [m if isinstance(m, Message) else Message(**m) for m in value or []]
                assignments += ["messages = ?", "message_count = ?", "last_message_at = ?"]
                params += [self._serialize_messages(messages), len(messages), _now() if messages else None]
            elif field in self.UPDATABLE_FIELDS:
                if field == "status" and value not in self.CONVERSATION_STATUSES:
                    raise ValueError(f"Invalid conversation status: {value}")
                assignments.append(f"{self.UPDATABLE_FIELDS[field]} = ?")
                params.append(int(value) if field == "is_starred" else value)

        assignments.append("updated_at = ?")
        params += [_now(), conversation_id]

        conn = self._get_conn()
        cursor = conn.execute(f"UPDATE conversations SET {', '.join(assignments)} WHERE id = ?", tuple(params))
        conn.commit()

        if cursor.rowcount == 0:
            return None
        return self.get_conversation(conversation_id)

    def delete_conversation(self, conversation_id: str) -> bool:
        conn = self._get_conn()
        cursor = conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        conn.commit()
        return cursor.rowcount > 0

    def star_conversation(self, conversation_id: str, is_starred: bool) -> Optional[Conversation]:
        return self.update_conversation(conversation_id, {"is_starred": is_starred})

    def archive_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.update_conversation(conversation_id, {"status": "archived"})

    # Personalization operations

    def save_profile(self, user_id: str, profile: PersonalizationContext) -> PersonalizationContext:
        """Store (or replace) the user's 360 assessment."""
        conn = self._get_conn()
        conn.execute("""
            INSERT OR REPLACE INTO user_profiles (user_id, assessment, original_content, uploaded_at)
            VALUES (?, ?, ?, ?)
        """, (user_id, profile.assessment, profile.original_content, _now()))
        conn.commit()

        app_logger.info(f"Assessment saved for user {user_id} ({len(profile.assessment)} characters)")
        return profile

    def get_personalization(self, user_id: str) -> Optional[PersonalizationContext]:
        cursor = self._get_conn().cursor()
        cursor.execute("SELECT assessment, original_content FROM user_profiles WHERE user_id = ?", (user_id,))
        row = cursor.fetchone()
        if not row:
            return None
        return PersonalizationContext(assessment=row['assessment'], original_content=row['original_content'])


_storage: Optional[Storage] = None


def get_storage() -> Storage:
    """Get the application storage instance, creating it on first use."""
    global _storage
    if _storage is None:
        _storage = Storage()
    return _storage
