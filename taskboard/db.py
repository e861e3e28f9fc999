from __future__ import annotations

import os
from datetime import date

from sqlalchemy import (
    Date,
    ForeignKey,
    Integer,
    String,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskboard.db")


class Base(DeclarativeBase):
    pass


class Board(Base):
    __tablename__ = "boards"
    id: Mapped[int] = mapped_column("board_id", Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column("boardName", String(255))

    lists: Mapped[list[TaskList]] = relationship(
        back_populates="board",
        cascade="all, delete-orphan",
    )

    __table_args__ = {"sqlite_autoincrement": True}


class TaskList(Base):
    __tablename__ = "lists"
    id: Mapped[int] = mapped_column("list_id", Integer, primary_key=True, autoincrement=True)
    board_id: Mapped[int] = mapped_column(ForeignKey("boards.board_id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column("listName", String(255))
    position: Mapped[int] = mapped_column("list_order", Integer, default=0)

    board: Mapped[Board] = relationship(back_populates="lists")
    tasks: Mapped[list[Task]] = relationship(
        back_populates="task_list",
        cascade="all, delete-orphan",
    )

    __table_args__ = {"sqlite_autoincrement": True}


class Task(Base):
    __tablename__ = "tasks"
    id: Mapped[int] = mapped_column("task_id", Integer, primary_key=True, autoincrement=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("lists.list_id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column("taskName", String(255))
    assignee: Mapped[str | None] = mapped_column("assignedTo", String(255), nullable=True)
    due_date: Mapped[date | None] = mapped_column("dueDate", Date, nullable=True)
    position: Mapped[int] = mapped_column("task_order", Integer, default=0)

    task_list: Mapped[TaskList] = relationship(back_populates="tasks")

    __table_args__ = {"sqlite_autoincrement": True}


def make_engine(url: str = DATABASE_URL) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # ON DELETE CASCADE is ignored by SQLite unless enabled per connection
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


def make_session_factory(bind: Engine) -> sessionmaker[Session]:
    # objects handed back by the store stay readable after their session closes
    return sessionmaker(autocommit=False, autoflush=False, bind=bind, expire_on_commit=False)


engine = make_engine()
SessionLocal = make_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    Base.metadata.create_all(bind=bind)
