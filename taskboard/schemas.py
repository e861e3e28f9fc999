from __future__ import annotations

from datetime import date
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    success: bool
    message: str = ""
    data: Optional[DataT] = None


# === Request bodies ===


class NameIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class BoardIn(NameIn):
    pass


class ListIn(NameIn):
    pass


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TaskFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    assignedTo: Optional[str] = Field(default=None, max_length=255)
    dueDate: Optional[date] = None

    @field_validator("assignedTo", "dueDate", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class TaskIn(TaskFields):
    text: str = Field(min_length=1, max_length=255)


class TaskPatch(TaskFields):
    """Partial task update. Only keys present in the body are applied."""

    text: Optional[str] = Field(default=None, min_length=1, max_length=255)

    def changes(self) -> dict[str, Any]:
        names = {"text": "title", "assignedTo": "assignee", "dueDate": "due_date"}
        return {names[key]: getattr(self, key) for key in self.model_fields_set}


class ListOrder(BaseModel):
    orderedListIds: list[int]


class TaskOrder(BaseModel):
    orderedTaskIds: list[int]
    newParentListId: Optional[int] = None


class TaskPosition(BaseModel):
    newListId: int
    newOrder: int = Field(ge=0)


# === Response bodies ===


class BoardCreated(BaseModel):
    id: int
    name: str


class BoardSummary(BaseModel):
    board_id: int
    boardName: str


class TaskOut(BaseModel):
    task_id: int
    list_id: int
    taskName: str
    assignedTo: Optional[str]
    dueDate: Optional[date]
    task_order: int


class ListOut(BaseModel):
    list_id: int
    listName: str
    board_id: int
    list_order: int
    tasks: list[TaskOut] = []


class ListDetails(BaseModel):
    list_id: int
    listName: str
    list_order: int
    tasks: list[TaskOut]


class BoardDetails(BaseModel):
    board_id: int
    boardName: str
    lists: list[ListDetails]
