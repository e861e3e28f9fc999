from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterator, Mapping, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .db import Base, Board, SessionLocal, Task, TaskList
from .errors import NotFound, StoreError, ValidationError
from .ordering import assign_positions, check_ordering, compact, next_position

logger = logging.getLogger(__name__)

TASK_FIELDS = ("title", "assignee", "due_date")

# identities are signed 64-bit integers in every supported database
MAX_ID = 2**63 - 1


# === Aggregate views returned by the reader ===


@dataclass
class ListView:
    task_list: TaskList
    tasks: list[Task] = field(default_factory=list)


@dataclass
class BoardView:
    board: Board
    lists: list[ListView] = field(default_factory=list)


def _clean_name(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def _clean_optional(value: Any, label: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text")
    return value.strip() or None


def _id_sequence(value: Any, label: str) -> list[int]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValidationError(f"{label} must be an array.")
    ids = list(value)
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise ValidationError(f"{label} must contain only ids.")
    if any(i < 1 or i > MAX_ID for i in ids):
        raise ValidationError(f"{label} contains ids out of range.")
    return ids


def _get(session: Session, model: type[Base], ident: int, label: str) -> Any:
    if isinstance(ident, bool) or not isinstance(ident, int) or not 1 <= ident <= MAX_ID:
        raise NotFound(f"{label} not found.")
    obj = session.get(model, ident)
    if obj is None:
        raise NotFound(f"{label} not found.")
    return obj


class Store:
    """Relational store for boards, lists and tasks.

    Every public method runs in its own transaction and commits before it
    returns. Positions stay dense (0..n-1) within each board and list.
    """

    def __init__(self, session_factory: sessionmaker[Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def init_schema(self) -> None:
        Base.metadata.create_all(bind=self._session_factory.kw["bind"])

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to {action}.") from exc
        finally:
            session.close()

    # === Board operations ===
    def create_board(self, name: str) -> Board:
        name = _clean_name(name, "Board name")
        with self._transaction("create board") as session:
            board = Board(name=name)
            session.add(board)
            session.flush()
        logger.info("board %s created", board.id)
        return board

    def list_boards(self) -> list[Board]:
        with self._transaction("fetch boards") as session:
            return list(session.scalars(select(Board).order_by(Board.name, Board.id)))

    def rename_board(self, board_id: int, name: str) -> Board:
        name = _clean_name(name, "New board name")
        with self._transaction("update board") as session:
            board = _get(session, Board, board_id, "Board")
            if board.name != name:
                board.name = name
        return board

    def delete_board(self, board_id: int) -> None:
        with self._transaction("delete board") as session:
            board = _get(session, Board, board_id, "Board")
            session.delete(board)
        logger.info("board %s deleted", board_id)

    def get_board_details(self, board_id: int) -> BoardView:
        """Return a board with its lists and their tasks, all in position order.

        Ties on position fall back to id so the order is deterministic.
        """
        with self._transaction("fetch board details") as session:
            board = _get(session, Board, board_id, "Board")
            lists = session.scalars(
                select(TaskList)
                .where(TaskList.board_id == board_id)
                .order_by(TaskList.position, TaskList.id)
            ).all()
            view = BoardView(board=board, lists=[ListView(task_list=tl) for tl in lists])
            if not lists:
                return view
            by_list = {lv.task_list.id: lv for lv in view.lists}
            tasks = session.scalars(
                select(Task)
                .where(Task.list_id.in_(list(by_list)))
                .order_by(Task.position, Task.id)
            )
            for task in tasks:
                by_list[task.list_id].tasks.append(task)
            return view

    # === List operations ===
    def create_list(self, board_id: int, name: str) -> TaskList:
        name = _clean_name(name, "List name")
        with self._transaction("create list") as session:
            _get(session, Board, board_id, "Board")
            count = session.scalar(
                select(func.count()).select_from(TaskList).where(TaskList.board_id == board_id)
            )
            task_list = TaskList(board_id=board_id, name=name, position=next_position(count))
            session.add(task_list)
            session.flush()
        logger.info("list %s created on board %s at position %s", task_list.id, board_id, task_list.position)
        return task_list

    def rename_list(self, list_id: int, name: str) -> TaskList:
        name = _clean_name(name, "New list name")
        with self._transaction("update list") as session:
            task_list = _get(session, TaskList, list_id, "List")
            if task_list.name != name:
                task_list.name = name
        return task_list

    def delete_list(self, list_id: int) -> None:
        with self._transaction("delete list") as session:
            task_list = _get(session, TaskList, list_id, "List")
            board_id = task_list.board_id
            session.delete(task_list)
            session.flush()
            changed = self._compact_lists(session, board_id)
        logger.info("list %s deleted, %s sibling positions compacted", list_id, changed)

    def reorder_lists(self, board_id: int, ordered_list_ids: Sequence[int]) -> None:
        """Set each list's position to its index in ``ordered_list_ids``.

        The sequence must name every list on the board exactly once.
        """
        ids = _id_sequence(ordered_list_ids, "orderedListIds")
        with self._transaction("update list order") as session:
            _get(session, Board, board_id, "Board")
            lists = session.scalars(select(TaskList).where(TaskList.board_id == board_id)).all()
            check_ordering((tl.id for tl in lists), ids)
            positions = assign_positions(ids)
            for task_list in lists:
                task_list.position = positions[task_list.id]
        logger.info("board %s lists reordered: %s", board_id, ids)

    # === Task operations ===
    def create_task(
        self,
        list_id: int,
        title: str,
        assignee: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> Task:
        title = _clean_name(title, "Task text")
        assignee = _clean_optional(assignee, "assignedTo")
        with self._transaction("create task") as session:
            _get(session, TaskList, list_id, "List")
            count = session.scalar(
                select(func.count()).select_from(Task).where(Task.list_id == list_id)
            )
            task = Task(
                list_id=list_id,
                title=title,
                assignee=assignee,
                due_date=due_date,
                position=next_position(count),
            )
            session.add(task)
            session.flush()
        logger.info("task %s created in list %s at position %s", task.id, list_id, task.position)
        return task

    def update_task(self, task_id: int, fields: Mapping[str, Any]) -> Task:
        """Apply only the supplied fields; the others keep their values."""
        if not fields:
            raise ValidationError("No task data provided for update.")
        unknown = set(fields).difference(TASK_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown task fields {sorted(unknown)}")
        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = _clean_name(fields["title"], "Task text")
        if "assignee" in fields:
            changes["assignee"] = _clean_optional(fields["assignee"], "assignedTo")
        if "due_date" in fields:
            due = fields["due_date"]
            if due is not None and not isinstance(due, date):
                raise ValidationError("dueDate must be a date")
            changes["due_date"] = due
        with self._transaction("update task") as session:
            task = _get(session, Task, task_id, "Task")
            for key, value in changes.items():
                setattr(task, key, value)
        return task

    def delete_task(self, task_id: int) -> None:
        with self._transaction("delete task") as session:
            task = _get(session, Task, task_id, "Task")
            list_id = task.list_id
            session.delete(task)
            session.flush()
            self._compact_tasks(session, list_id)
        logger.info("task %s deleted from list %s", task_id, list_id)

    def reorder_tasks(self, target_list_id: int, ordered_task_ids: Sequence[int]) -> None:
        """Make ``ordered_task_ids`` the full, ordered content of the target list.

        Tasks currently in other lists of the same board are moved in, and
        each list they leave is compacted in the same transaction.
        """
        ids = _id_sequence(ordered_task_ids, "orderedTaskIds")
        with self._transaction("update task order") as session:
            target = _get(session, TaskList, target_list_id, "List")
            tasks = {t.id: t for t in session.scalars(select(Task).where(Task.id.in_(ids)))} if ids else {}
            unknown = [i for i in ids if i not in tasks]
            if unknown:
                raise ValidationError(f"ordering names unknown ids {unknown}")
            current = session.scalars(select(Task.id).where(Task.list_id == target.id)).all()
            check_ordering(current, ids, allow_foreign=True)

            source_ids = {t.list_id for t in tasks.values() if t.list_id != target.id}
            self._check_same_board(session, target, source_ids)
            for task_id, position in assign_positions(ids).items():
                task = tasks[task_id]
                task.list_id = target.id
                task.position = position
            session.flush()
            for source_id in source_ids:
                self._compact_tasks(session, source_id)
        logger.info("list %s tasks reordered: %s (moved from lists %s)", target_list_id, ids, sorted(source_ids))

    def move_task(self, task_id: int, target_list_id: int, position: int) -> Task:
        """Move one task to ``position`` in the target list in one transaction.

        Positions past the end append. Source and target stay dense.
        """
        if isinstance(position, bool) or not isinstance(position, int) or position < 0:
            raise ValidationError("newOrder must be a non-negative integer")
        with self._transaction("move task") as session:
            task = _get(session, Task, task_id, "Task")
            target = _get(session, TaskList, target_list_id, "List")
            source_id = task.list_id
            if source_id != target.id:
                self._check_same_board(session, target, {source_id})
            siblings = list(
                session.scalars(
                    select(Task)
                    .where(Task.list_id == target.id, Task.id != task.id)
                    .order_by(Task.position, Task.id)
                )
            )
            siblings.insert(min(position, len(siblings)), task)
            task.list_id = target.id
            compact(siblings, "position")
            session.flush()
            if source_id != target.id:
                self._compact_tasks(session, source_id)
        logger.info("task %s moved to list %s at position %s", task_id, target_list_id, task.position)
        return task

    # === Position maintenance ===
    @staticmethod
    def _compact_lists(session: Session, board_id: int) -> int:
        lists = session.scalars(
            select(TaskList)
            .where(TaskList.board_id == board_id)
            .order_by(TaskList.position, TaskList.id)
        ).all()
        return compact(lists, "position")

    @staticmethod
    def _compact_tasks(session: Session, list_id: int) -> int:
        tasks = session.scalars(
            select(Task).where(Task.list_id == list_id).order_by(Task.position, Task.id)
        ).all()
        return compact(tasks, "position")

    @staticmethod
    def _check_same_board(session: Session, target: TaskList, source_ids: set[int]) -> None:
        if not source_ids:
            return
        boards = set(
            session.scalars(select(TaskList.board_id).where(TaskList.id.in_(sorted(source_ids))))
        )
        if boards != {target.board_id}:
            raise ValidationError("tasks can only move between lists of the same board")


store = Store()
