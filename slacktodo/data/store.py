from datetime import datetime
from typing import List, Optional, Protocol

import psycopg2
from pydantic import BaseModel

from slacktodo.errors import StoreError


class Todo(BaseModel):
    id: int
    user_id: str
    task: str
    completed: bool = False
    created_at: datetime


class TodoStore(Protocol):
    def init_schema(self) -> None: ...

    def create(self, user_id: str, task: str) -> Todo: ...

    def mark_complete(self, todo_id: int, user_id: str) -> Optional[Todo]: ...

    def list_for_user(self, user_id: str) -> List[Todo]: ...


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS todos (
        id          SERIAL PRIMARY KEY,
        user_id     TEXT NOT NULL,
        task        TEXT NOT NULL,
        completed   BOOLEAN NOT NULL DEFAULT FALSE,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS todos_user_created_idx
        ON todos (user_id, created_at DESC);
"""

TODO_COLUMNS = "id, user_id, task, completed, created_at"


def _row_to_todo(row) -> Todo:
    return Todo(id=row[0], user_id=row[1], task=row[2], completed=row[3], created_at=row[4])


class PostgresTodoStore:
    """
    Todo persistence on PostgreSQL.

    Each call opens its own connection and closes it before returning, so the
    store holds no state between requests. psycopg2 failures surface as
    StoreError.
    """

    def __init__(self, dsn: str):
        self.dsn = dsn

    def _connect(self):
        try:
            return psycopg2.connect(self.dsn)
        except psycopg2.Error as e:
            raise StoreError(f"could not connect to todo database: {e}") from e

    def init_schema(self) -> None:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise StoreError(f"could not create todo schema: {e}") from e
        finally:
            conn.close()

    def create(self, user_id: str, task: str) -> Todo:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO todos (user_id, task) VALUES (%s, %s) RETURNING {TODO_COLUMNS}",
                    (user_id, task),
                )
                row = cur.fetchone()
            conn.commit()
            return _row_to_todo(row)
        except psycopg2.Error as e:
            conn.rollback()
            raise StoreError(f"could not create todo: {e}") from e
        finally:
            conn.close()

    def mark_complete(self, todo_id: int, user_id: str) -> Optional[Todo]:
        """
        Mark a todo completed if it belongs to `user_id`.
        Returns None when no todo with that id is owned by the user.
        """
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE todos SET completed = TRUE
                    WHERE id = %s AND user_id = %s
                    RETURNING {TODO_COLUMNS}
                    """,
                    (todo_id, user_id),
                )
                row = cur.fetchone()
            conn.commit()
            return _row_to_todo(row) if row else None
        except psycopg2.Error as e:
            conn.rollback()
            raise StoreError(f"could not update todo {todo_id}: {e}") from e
        finally:
            conn.close()

    def list_for_user(self, user_id: str) -> List[Todo]:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {TODO_COLUMNS} FROM todos WHERE user_id = %s ORDER BY created_at DESC, id DESC",
                    (user_id,),
                )
                return [_row_to_todo(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise StoreError(f"could not list todos: {e}") from e
        finally:
            conn.close()
