# tests/test_commands.py

from __future__ import annotations

from pathlib import Path

from taskwise.cli.commands import CommandRegistry, registry
from taskwise.tasks.task_models import TaskStatus


def _ids(state) -> dict[str, str]:
    return {t.title: t.id for t in state.task_store.list_tasks()}


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/AA") == "h2:"
    assert reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_commands(state) -> None:
    text = registry.handle(state, "/help") or ""

    for name in ("/add", "/status", "/timeline", "/tree"):
        assert name in text


def test_add_with_options(state) -> None:
    reply = registry.handle(state, "/add Write report | due=2024-03-01 | est=90 | priority=high") or ""

    assert reply.startswith("Added [")
    (task,) = state.task_store.list_tasks()
    assert task.title == "Write report"
    assert task.due_date.isoformat() == "2024-03-01"
    assert task.estimated_time == 90
    assert task.priority.value == "high"


def test_add_with_estimate_flag(state) -> None:
    notes: list[str] = []

    reply = registry.handle(state, "/add Refactor | estimate", emit=notes.append) or ""

    assert "est=45min" in reply
    assert notes and "estimator" in notes[0].lower()


def test_add_rejects_bad_options(state) -> None:
    assert "Cannot add task" in (registry.handle(state, "/add X | colour=red") or "")
    assert "Cannot add task" in (registry.handle(state, "/add X | est=-3") or "")
    assert "No task matches" in (registry.handle(state, "/add X | deps=zzz") or "")
    assert state.task_store.count_tasks() == 0


def test_status_is_guarded(state) -> None:
    registry.handle(state, "/add Draft")
    draft = _ids(state)["Draft"]
    registry.handle(state, f"/add Publish | deps={draft[:8]}")
    publish = _ids(state)["Publish"]

    reply = registry.handle(state, f"/status {publish} completed") or ""
    assert "cannot be completed" in reply
    assert '"Draft"' in reply

    registry.handle(state, f"/status {draft[:6]} completed")
    reply = registry.handle(state, f"/status {publish} completed") or ""

    assert "-> completed" in reply
    assert state.task_store.get_task(publish).status == TaskStatus.COMPLETED


def test_status_unknown_value(state) -> None:
    registry.handle(state, "/add Task")
    tid = _ids(state)["Task"]

    assert "Unknown status" in (registry.handle(state, f"/status {tid} done") or "")


def test_dep_and_show(state) -> None:
    registry.handle(state, "/add A")
    registry.handle(state, "/add B")
    ids = _ids(state)

    assert (registry.handle(state, f"/dep {ids['B']} {ids['A']}") or "").startswith("Updated")
    shown = registry.handle(state, f"/show {ids['B']}") or ""
    assert "Depends on:" in shown
    assert f"[{ids['A'][:8]}] A (not_started)" in shown

    registry.handle(state, f"/dep {ids['B']} -")
    assert state.task_store.get_task(ids["B"]).dependencies == []


def test_timeline_lists_lanes(state) -> None:
    registry.handle(state, "/add A | est=60")
    a = _ids(state)["A"]
    registry.handle(state, f"/add B | deps={a} | est=30")

    reply = registry.handle(state, "/timeline") or ""

    lines = reply.splitlines()
    assert lines[0] == "Timeline (1 lane(s)):"
    assert lines[1] == "  Lane 0:"
    assert lines[2].startswith("    2024-06-01 00:00 -> 2024-06-01 01:00  A [")
    assert lines[3].startswith("    2024-06-01 01:00 -> 2024-06-01 01:30  B [")


def test_timeline_empty(state) -> None:
    assert registry.handle(state, "/timeline") == "Nothing to show on the timeline."


def test_tree_groups_by_day(state) -> None:
    registry.handle(state, "/add A")
    a = _ids(state)["A"]
    registry.handle(state, f"/add B | deps={a}")

    reply = registry.handle(state, "/tree") or ""

    lines = reply.splitlines()
    assert lines[0] == "All plans"
    assert lines[1] == "  2024-06-01"
    assert lines[2].startswith("        - A [")
    assert lines[3].startswith("            - B [")


def test_list_and_delete(state) -> None:
    registry.handle(state, "/add Buy milk")
    registry.handle(state, "/add Call mom")
    ids = _ids(state)

    assert "Buy milk" in (registry.handle(state, "/list milk") or "")
    assert "Call mom" not in (registry.handle(state, "/list milk") or "")

    registry.handle(state, f"/status {ids['Call mom']} archived")
    assert "Call mom" in (registry.handle(state, "/ls archived") or "")

    assert (registry.handle(state, f"/rm {ids['Buy milk']}") or "").startswith("Deleted")
    assert state.task_store.count_tasks() == 1


def test_export_import(state, tmp_path: Path) -> None:
    registry.handle(state, "/add A")
    out = tmp_path / "out.json"

    assert "Exported 1" in (registry.handle(state, f"/export {out}") or "")
    registry.handle(state, "/add B")
    assert "Imported 1" in (registry.handle(state, f"/import {out}") or "")
    assert [t.title for t in state.task_store.list_tasks()] == ["A"]
    assert "Import failed" in (registry.handle(state, f"/import {tmp_path / 'missing.json'}") or "")
