from datetime import date

import httpx
import pytest

from taskboard.client import ApiError, BoardState, Reconciler, TaskboardClient


@pytest.fixture
def api(client):
    return TaskboardClient(client)


@pytest.fixture
def ui(api):
    renders = []
    notices = []
    reconciler = Reconciler(api, render=lambda state: renders.append(state.board), notify=notices.append)
    reconciler.renders = renders
    reconciler.received = notices
    return reconciler


def names(state: BoardState) -> dict[str, list[str]]:
    return {lst["listName"]: [t["taskName"] for t in lst["tasks"]] for lst in state.board["lists"]}


def test_client_raises_api_error_with_server_message(api):
    with pytest.raises(ApiError) as excinfo:
        api.get_board(404)
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Board not found."
    assert excinfo.value.action == "fetch board details"


def test_each_action_refetches_and_renders_once(ui):
    assert ui.add_board("Sprint 1")
    assert len(ui.renders) == 1
    board_id = ui.state.boards[0]["board_id"]

    ui.select_board(board_id)
    for name in ("Todo", "Doing", "Done"):
        assert ui.add_list(name)
    assert len(ui.renders) == 5
    assert [lst["list_order"] for lst in ui.state.board["lists"]] == [0, 1, 2]


def test_drop_task_into_other_list(ui):
    ui.add_board("Sprint 1")
    ui.select_board(ui.state.boards[0]["board_id"])
    ui.add_list("Todo")
    ui.add_list("Doing")
    todo_id, doing_id = ui.state.list_ids()
    ui.add_task(todo_id, "Fix bug", assigned_to="ana", due_date=date(2024, 5, 1))
    ui.add_task(todo_id, "Write docs")
    task_id = ui.state.task_ids(todo_id)[0]

    assert ui.drop_task(task_id, doing_id, 0)

    assert names(ui.state) == {"Todo": ["Write docs"], "Doing": ["Fix bug"]}
    moved = ui.state.board["lists"][1]["tasks"][0]
    assert (moved["task_order"], moved["assignedTo"], moved["dueDate"]) == (0, "ana", "2024-05-01")
    assert ui.received == []


def test_drop_list_reorders(ui):
    ui.add_board("Sprint 1")
    ui.select_board(ui.state.boards[0]["board_id"])
    for name in ("Todo", "Doing", "Done"):
        ui.add_list(name)
    done_id = ui.state.list_ids()[2]
    assert ui.drop_list(done_id, 0)
    assert list(names(ui.state)) == ["Done", "Todo", "Doing"]


def test_edit_and_delete_task(ui):
    ui.add_board("Sprint 1")
    ui.select_board(ui.state.boards[0]["board_id"])
    ui.add_list("Todo")
    (todo_id,) = ui.state.list_ids()
    ui.add_task(todo_id, "Fix bug", assigned_to="ana")
    task_id = ui.state.task_ids(todo_id)[0]

    assert ui.edit_task(task_id, text="Fix crash", dueDate=date(2024, 6, 1))
    task = ui.state.board["lists"][0]["tasks"][0]
    assert (task["taskName"], task["assignedTo"], task["dueDate"]) == ("Fix crash", "ana", "2024-06-01")

    assert ui.delete_task(task_id)
    assert names(ui.state) == {"Todo": []}


def test_failure_notifies_and_resyncs(ui):
    ui.add_board("Sprint 1")
    ui.select_board(ui.state.boards[0]["board_id"])
    ui.add_list("Todo")
    renders_before = len(ui.renders)

    assert not ui.edit_task(999, text="ghost")

    assert ui.received == ["Failed to update task: Task not found."]
    assert len(ui.renders) == renders_before + 1
    assert names(ui.state) == {"Todo": []}


def test_add_list_without_selection(ui):
    assert not ui.add_list("Todo")
    assert ui.received == ["Please select a board first!"]
    assert ui.renders == []


def test_blank_input_is_ignored(ui):
    assert not ui.add_board("   ")
    assert ui.renders == []


def test_deleting_selected_board_clears_view(ui):
    ui.add_board("Sprint 1")
    board_id = ui.state.boards[0]["board_id"]
    ui.select_board(board_id)
    assert ui.delete_board(board_id)
    assert ui.state.selected_board_id is None
    assert ui.state.board is None
    assert ui.state.boards == []


def test_board_deleted_elsewhere_is_deselected(ui, api):
    ui.add_board("Sprint 1")
    board_id = ui.state.boards[0]["board_id"]
    ui.select_board(board_id)
    api.delete_board(board_id)

    ui.refresh()

    assert ui.state.selected_board_id is None
    assert ui.received == ["Board not found. It might have been deleted."]


def test_transport_failure_notifies_and_still_renders():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(transport=httpx.MockTransport(refuse), base_url="http://taskboard")
    renders = []
    notices = []
    reconciler = Reconciler(TaskboardClient(http), render=renders.append, notify=notices.append)

    assert not reconciler.add_board("Sprint 1")

    assert notices == [
        "Failed to add board: connection refused",
        "Failed to fetch boards: connection refused",
    ]
    assert len(renders) == 1


def test_drop_of_task_missing_from_view_notifies_and_resyncs(ui):
    ui.add_board("Sprint 1")
    ui.select_board(ui.state.boards[0]["board_id"])
    ui.add_list("Todo")
    (todo_id,) = ui.state.list_ids()
    renders_before = len(ui.renders)

    assert not ui.drop_task(999, todo_id, 0)

    assert ui.received == ["Failed to update task order: 999 is not on the current board"]
    assert len(ui.renders) == renders_before + 1
