import threading
from datetime import datetime, timezone
from typing import List, Optional

from slacktodo.data.store import Todo


class InMemoryTodoStore:
    """Process-local todo store for development runs and tests."""

    def __init__(self):
        self.lock = threading.Lock()
        self.todos = {}
        self.next_id = 1

    def init_schema(self) -> None:
        pass

    def create(self, user_id: str, task: str) -> Todo:
        with self.lock:
            todo = Todo(id=self.next_id, user_id=user_id, task=task,
                        created_at=datetime.now(timezone.utc))
            self.todos[todo.id] = todo
            self.next_id += 1
        return todo.model_copy()

    def mark_complete(self, todo_id: int, user_id: str) -> Optional[Todo]:
        with self.lock:
            todo = self.todos.get(todo_id)
            if todo is None or todo.user_id != user_id:
                return None
            todo.completed = True
            return todo.model_copy()

    def list_for_user(self, user_id: str) -> List[Todo]:
        with self.lock:
            owned = [t.model_copy() for t in self.todos.values() if t.user_id == user_id]
        # ids break ties between todos created within the same clock tick
        return sorted(owned, key=lambda t: (t.created_at, t.id), reverse=True)
