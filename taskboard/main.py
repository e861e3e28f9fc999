import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Task, TaskList
from .errors import StoreError, TaskboardError
from .schemas import (
    BoardCreated,
    BoardDetails,
    BoardIn,
    BoardSummary,
    Envelope,
    ListDetails,
    ListIn,
    ListOrder,
    ListOut,
    TaskIn,
    TaskOrder,
    TaskOut,
    TaskPatch,
    TaskPosition,
)
from .store import BoardView, Store
from .store import store as default_store

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    default_store.init_schema()
    yield


app = FastAPI(title="Taskboard API", version="1.0.0", lifespan=lifespan)


def get_store() -> Store:
    return default_store


# === Helpers ===


def task_out(task: Task) -> TaskOut:
    return TaskOut(
        task_id=task.id,
        list_id=task.list_id,
        taskName=task.title,
        assignedTo=task.assignee,
        dueDate=task.due_date,
        task_order=task.position,
    )


def list_out(task_list: TaskList) -> ListOut:
    return ListOut(
        list_id=task_list.id,
        listName=task_list.name,
        board_id=task_list.board_id,
        list_order=task_list.position,
        tasks=[],
    )


def board_details_out(view: BoardView) -> BoardDetails:
    return BoardDetails(
        board_id=view.board.id,
        boardName=view.board.name,
        lists=[
            ListDetails(
                list_id=lv.task_list.id,
                listName=lv.task_list.name,
                list_order=lv.task_list.position,
                tasks=[task_out(t) for t in lv.tasks],
            )
            for lv in view.lists
        ],
    )


def ok(message: str, data=None) -> Envelope:
    return Envelope(success=True, message=message, data=data)


def failure(status_code: int, message: str) -> JSONResponse:
    body = Envelope(success=False, message=message).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


# === Error mapping ===


@app.exception_handler(TaskboardError)
async def handle_store_error(request: Request, exc: TaskboardError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    return failure(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = failure(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"][1:]) or err["loc"][0]
        problems.append(f"{where}: {err['msg']}")
    return failure(400, "; ".join(problems))


# === Health ===


@app.get(f"{API_PREFIX}/health", response_model=Envelope)
def health():
    return ok("ok")


# === Board endpoints ===


@app.post(f"{API_PREFIX}/boards", response_model=Envelope[BoardCreated], status_code=201)
def create_board(payload: BoardIn, store: Store = Depends(get_store)):
    board = store.create_board(payload.name)
    return ok("Board created successfully", BoardCreated(id=board.id, name=board.name))


@app.get(f"{API_PREFIX}/boards", response_model=Envelope[list[BoardSummary]])
def list_boards(store: Store = Depends(get_store)):
    boards = [BoardSummary(board_id=b.id, boardName=b.name) for b in store.list_boards()]
    return ok("Fetched all boards successfully", boards)


@app.get(f"{API_PREFIX}/boards/{{board_id}}", response_model=Envelope[BoardDetails])
def get_board(board_id: int, store: Store = Depends(get_store)):
    view = store.get_board_details(board_id)
    return ok("Fetched board successfully", board_details_out(view))


@app.put(f"{API_PREFIX}/boards/{{board_id}}", response_model=Envelope)
def update_board(board_id: int, payload: BoardIn, store: Store = Depends(get_store)):
    store.rename_board(board_id, payload.name)
    return ok("Board updated successfully.")


@app.delete(f"{API_PREFIX}/boards/{{board_id}}", response_model=Envelope)
def delete_board(board_id: int, store: Store = Depends(get_store)):
    store.delete_board(board_id)
    return ok("Board deleted successfully.")


# === List endpoints ===


@app.post(f"{API_PREFIX}/boards/{{board_id}}/lists", response_model=Envelope[ListOut], status_code=201)
def create_list(board_id: int, payload: ListIn, store: Store = Depends(get_store)):
    task_list = store.create_list(board_id, payload.name)
    return ok("List created successfully", list_out(task_list))


@app.put(f"{API_PREFIX}/boards/{{board_id}}/lists/order", response_model=Envelope)
def reorder_lists(board_id: int, payload: ListOrder, store: Store = Depends(get_store)):
    store.reorder_lists(board_id, payload.orderedListIds)
    return ok("List order updated.")


@app.put(f"{API_PREFIX}/lists/{{list_id}}", response_model=Envelope)
def update_list(list_id: int, payload: ListIn, store: Store = Depends(get_store)):
    store.rename_list(list_id, payload.name)
    return ok("List updated successfully.")


@app.delete(f"{API_PREFIX}/lists/{{list_id}}", response_model=Envelope)
def delete_list(list_id: int, store: Store = Depends(get_store)):
    store.delete_list(list_id)
    return ok("List deleted successfully.")


# === Task endpoints ===


@app.post(f"{API_PREFIX}/lists/{{list_id}}/tasks", response_model=Envelope[TaskOut], status_code=201)
def create_task(list_id: int, payload: TaskIn, store: Store = Depends(get_store)):
    task = store.create_task(list_id, payload.text, payload.assignedTo, payload.dueDate)
    return ok("Task created successfully", task_out(task))


@app.put(f"{API_PREFIX}/lists/{{list_id}}/tasks/order", response_model=Envelope)
def reorder_tasks(list_id: int, payload: TaskOrder, store: Store = Depends(get_store)):
    target_list_id = payload.newParentListId or list_id
    store.reorder_tasks(target_list_id, payload.orderedTaskIds)
    return ok("Task order updated.")


@app.put(f"{API_PREFIX}/tasks/{{task_id}}", response_model=Envelope)
def update_task(task_id: int, payload: TaskPatch, store: Store = Depends(get_store)):
    store.update_task(task_id, payload.changes())
    return ok("Task updated successfully.")


@app.put(f"{API_PREFIX}/tasks/{{task_id}}/position", response_model=Envelope[TaskOut])
def move_task(task_id: int, payload: TaskPosition, store: Store = Depends(get_store)):
    task = store.move_task(task_id, payload.newListId, payload.newOrder)
    return ok("Task moved successfully.", task_out(task))


@app.delete(f"{API_PREFIX}/tasks/{{task_id}}", response_model=Envelope)
def delete_task(task_id: int, store: Store = Depends(get_store)):
    store.delete_task(task_id)
    return ok("Task deleted successfully.")
