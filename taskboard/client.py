"""Client-side view of a taskboard server.

``TaskboardClient`` speaks the REST envelope protocol over an ``httpx.Client``.
``Reconciler`` owns an explicit ``BoardState`` and runs one
act-then-refetch-then-render cycle per user action. Local state is never
trusted after a mutation: the server tree is fetched again every time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, action: str, status_code: int, message: str) -> None:
        super().__init__(f"{action}: {status_code} {message}")
        self.action = action
        self.status_code = status_code
        self.message = message


class TaskboardClient:
    def __init__(self, http: httpx.Client, prefix: str = "/api") -> None:
        self._http = http
        self._prefix = prefix

    def _call(self, action: str, method: str, path: str, body: Optional[dict] = None) -> Any:
        try:
            response = self._http.request(method, f"{self._prefix}{path}", json=body)
        except httpx.HTTPError as exc:
            # no HTTP status when the server was never reached
            raise ApiError(action, 0, str(exc)) from exc
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.is_error or not payload.get("success"):
            message = payload.get("message") or response.reason_phrase
            raise ApiError(action, response.status_code, message)
        return payload.get("data")

    # === Boards ===
    def list_boards(self) -> list[dict]:
        return self._call("fetch boards", "GET", "/boards") or []

    def create_board(self, name: str) -> dict:
        return self._call("add board", "POST", "/boards", {"name": name})

    def rename_board(self, board_id: int, name: str) -> None:
        self._call("update board", "PUT", f"/boards/{board_id}", {"name": name})

    def delete_board(self, board_id: int) -> None:
        self._call("delete board", "DELETE", f"/boards/{board_id}")

    def get_board(self, board_id: int) -> dict:
        return self._call("fetch board details", "GET", f"/boards/{board_id}")

    # === Lists ===
    def create_list(self, board_id: int, name: str) -> dict:
        return self._call("add tasklist", "POST", f"/boards/{board_id}/lists", {"name": name})

    def rename_list(self, list_id: int, name: str) -> None:
        self._call("update list name", "PUT", f"/lists/{list_id}", {"name": name})

    def delete_list(self, list_id: int) -> None:
        self._call("delete list", "DELETE", f"/lists/{list_id}")

    def reorder_lists(self, board_id: int, ordered_list_ids: list[int]) -> None:
        self._call(
            "update list order",
            "PUT",
            f"/boards/{board_id}/lists/order",
            {"orderedListIds": ordered_list_ids},
        )

    # === Tasks ===
    def create_task(
        self,
        list_id: int,
        text: str,
        assigned_to: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> dict:
        body = {
            "text": text,
            "assignedTo": assigned_to,
            "dueDate": due_date.isoformat() if due_date else None,
        }
        return self._call("add task", "POST", f"/lists/{list_id}/tasks", body)

    def update_task(self, task_id: int, fields: dict[str, Any]) -> None:
        body = {k: (v.isoformat() if isinstance(v, date) else v) for k, v in fields.items()}
        self._call("update task", "PUT", f"/tasks/{task_id}", body)

    def delete_task(self, task_id: int) -> None:
        self._call("delete task", "DELETE", f"/tasks/{task_id}")

    def reorder_tasks(self, list_id: int, ordered_task_ids: list[int]) -> None:
        self._call(
            "update task order",
            "PUT",
            f"/lists/{list_id}/tasks/order",
            {"orderedTaskIds": ordered_task_ids},
        )

    def move_task(self, task_id: int, list_id: int, position: int) -> dict:
        body = {"newListId": list_id, "newOrder": position}
        return self._call("move task", "PUT", f"/tasks/{task_id}/position", body)


@dataclass
class BoardState:
    boards: list[dict] = field(default_factory=list)
    selected_board_id: Optional[int] = None
    board: Optional[dict] = None
    notices: list[str] = field(default_factory=list)

    def list_ids(self) -> list[int]:
        if self.board is None:
            return []
        return [lst["list_id"] for lst in self.board["lists"]]

    def task_ids(self, list_id: int) -> list[int]:
        for lst in (self.board or {}).get("lists", []):
            if lst["list_id"] == list_id:
                return [t["task_id"] for t in lst["tasks"]]
        raise KeyError(list_id)

    def list_of_task(self, task_id: int) -> int:
        for lst in (self.board or {}).get("lists", []):
            if any(t["task_id"] == task_id for t in lst["tasks"]):
                return lst["list_id"]
        raise KeyError(task_id)


Render = Callable[[BoardState], None]
Notify = Callable[[str], None]


class Reconciler:
    def __init__(
        self,
        client: TaskboardClient,
        render: Render,
        notify: Optional[Notify] = None,
    ) -> None:
        self.client = client
        self.state = BoardState()
        self._render = render
        self._notify = notify or logger.warning

    def notify(self, message: str) -> None:
        self.state.notices.append(message)
        self._notify(message)

    def refresh(self) -> None:
        """Re-fetch server state and render it once."""
        state = self.state
        try:
            state.boards = self.client.list_boards()
        except ApiError as exc:
            self.notify(f"Failed to {exc.action}: {exc.message}")
        if state.selected_board_id is not None:
            try:
                state.board = self.client.get_board(state.selected_board_id)
            except ApiError as exc:
                state.board = None
                if exc.status_code == 404:
                    state.selected_board_id = None
                    self.notify("Board not found. It might have been deleted.")
                else:
                    self.notify(f"Failed to {exc.action}: {exc.message}")
        else:
            state.board = None
        self._render(state)

    def _act(self, call: Callable[[], Any]) -> bool:
        try:
            call()
            succeeded = True
        except ApiError as exc:
            self.notify(f"Failed to {exc.action}: {exc.message}")
            succeeded = False
        self.refresh()
        return succeeded

    # === Board actions ===
    def add_board(self, name: str) -> bool:
        if not name.strip():
            return False
        return self._act(lambda: self.client.create_board(name.strip()))

    def rename_board(self, board_id: int, name: str) -> bool:
        if not name.strip():
            return False
        return self._act(lambda: self.client.rename_board(board_id, name.strip()))

    def delete_board(self, board_id: int) -> bool:
        if self.state.selected_board_id == board_id:
            self.state.selected_board_id = None
        return self._act(lambda: self.client.delete_board(board_id))

    def select_board(self, board_id: Optional[int]) -> None:
        self.state.selected_board_id = board_id
        self.refresh()

    # === List actions ===
    def add_list(self, name: str) -> bool:
        board_id = self.state.selected_board_id
        if board_id is None:
            self.notify("Please select a board first!")
            return False
        if not name.strip():
            return False
        return self._act(lambda: self.client.create_list(board_id, name.strip()))

    def rename_list(self, list_id: int, name: str) -> bool:
        if not name.strip():
            return False
        return self._act(lambda: self.client.rename_list(list_id, name.strip()))

    def delete_list(self, list_id: int) -> bool:
        return self._act(lambda: self.client.delete_list(list_id))

    def drop_list(self, list_id: int, index: int) -> bool:
        """Handle a list dragged to ``index`` among its siblings."""
        board_id = self.state.selected_board_id
        ordered = [i for i in self.state.list_ids() if i != list_id]
        ordered.insert(min(index, len(ordered)), list_id)
        return self._act(lambda: self.client.reorder_lists(board_id, ordered))

    # === Task actions ===
    def add_task(
        self,
        list_id: int,
        text: str,
        assigned_to: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> bool:
        if not text.strip():
            return False
        return self._act(lambda: self.client.create_task(list_id, text.strip(), assigned_to, due_date))

    def edit_task(self, task_id: int, **fields: Any) -> bool:
        return self._act(lambda: self.client.update_task(task_id, fields))

    def delete_task(self, task_id: int) -> bool:
        return self._act(lambda: self.client.delete_task(task_id))

    def drop_task(self, task_id: int, to_list_id: int, index: int) -> bool:
        """Handle a task dragged into ``to_list_id`` at ``index``.

        Sends the target list's new order first, then the source list's
        remaining order when the task changed lists.
        """

        def send() -> None:
            try:
                from_list_id = self.state.list_of_task(task_id)
                target = [i for i in self.state.task_ids(to_list_id) if i != task_id]
            except KeyError as exc:
                raise ApiError("update task order", 0, f"{exc.args[0]} is not on the current board") from exc
            target.insert(min(index, len(target)), task_id)
            self.client.reorder_tasks(to_list_id, target)
            if from_list_id != to_list_id:
                remaining = [i for i in self.state.task_ids(from_list_id) if i != task_id]
                self.client.reorder_tasks(from_list_id, remaining)

        return self._act(send)
