# tests/test_resolver.py

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta, timezone

from taskwise.schedule.resolver import DependencyResolver, resolve_schedule
from taskwise.tasks.task_models import TaskStatus

from .conftest import NOW
from .fakes import at, make_task


def _resolve(tasks, **kw):
    return resolve_schedule(tasks, now=NOW, tz=UTC, **kw)


def test_dependency_end_becomes_dependent_start() -> None:
    b = make_task("B", started_at=at(1, 9), estimated_time=60)
    a = make_task("A", deps=["B"], estimated_time=30)

    out = _resolve([a, b])

    assert out["B"].end_date == at(1, 10)
    assert out["A"].start_date == at(1, 10)
    assert out["A"].end_date == at(1, 10, 30)
    assert out["A"].is_all_day is False


def test_latest_dependency_wins() -> None:
    b = make_task("B", start_time=at(2, 8), estimated_time=60)
    c = make_task("C", start_time=at(2, 8), estimated_time=180)
    a = make_task("A", deps=["B", "C"], estimated_time=15)

    out = _resolve([a, b, c])

    assert out["A"].start_date == at(2, 11)
    assert out["A"].start_date >= out["B"].end_date
    assert out["A"].start_date >= out["C"].end_date


def test_dependency_later_than_explicit_start_pushes_it() -> None:
    b = make_task("B", start_time=at(3, 9), estimated_time=120)
    a = make_task("A", deps=["B"], start_time=at(3, 10), estimated_time=30)

    out = _resolve([a, b])

    assert out["A"].start_date == at(3, 11)
    assert out["A"].end_date == at(3, 11, 30)


def test_explicit_start_kept_when_dependency_ends_earlier() -> None:
    b = make_task("B", start_time=at(3, 7), estimated_time=30)
    a = make_task("A", deps=["B"], start_time=at(3, 10), estimated_time=30)

    out = _resolve([a, b])

    assert out["A"].start_date == at(3, 10)


def test_start_time_preferred_over_started_at() -> None:
    t = make_task("T", start_time=at(5, 14), started_at=at(5, 9), estimated_time=10)

    out = _resolve([t])

    assert out["T"].start_date == at(5, 14)


def test_explicit_span_is_kept_and_shifted_by_dependencies() -> None:
    b = make_task("B", start_time=at(4, 9), end_time=at(4, 12))
    a = make_task("A", deps=["B"], start_time=at(4, 10), end_time=at(4, 10, 45))

    out = _resolve([a, b])

    assert out["B"].start_date == at(4, 9)
    assert out["B"].end_date == at(4, 12)
    assert out["A"].start_date == at(4, 12)
    assert out["A"].end_date == at(4, 12, 45)


def test_end_time_wins_over_estimate() -> None:
    t = make_task("T", start_time=at(4, 9), end_time=at(4, 9, 20), estimated_time=300)

    out = _resolve([t])

    assert out["T"].end_date == at(4, 9, 20)


def test_due_date_only_is_all_day() -> None:
    t = make_task("T", due_date=date(2024, 3, 1))

    out = _resolve([t])

    assert out["T"].is_all_day is True
    assert out["T"].start_date == datetime(2024, 3, 1, tzinfo=UTC)
    assert out["T"].end_date == datetime(2024, 3, 2, tzinfo=UTC)


def test_due_date_with_estimate_uses_estimate() -> None:
    t = make_task("T", due_date=date(2024, 3, 1), estimated_time=90)

    out = _resolve([t])

    assert out["T"].is_all_day is True
    assert out["T"].end_date == datetime(2024, 3, 1, 1, 30, tzinfo=UTC)


def test_explicit_start_is_never_all_day() -> None:
    t = make_task("T", due_date=date(2024, 3, 1), started_at=at(2, 9))

    out = _resolve([t])

    assert out["T"].is_all_day is False
    assert out["T"].end_date == at(2, 10)


def test_no_anchor_falls_back_to_start_of_today() -> None:
    t = make_task("T")

    out = _resolve([t])

    assert out["T"].start_date == datetime(2024, 6, 1, tzinfo=UTC)
    assert out["T"].end_date == datetime(2024, 6, 1, 1, 0, tzinfo=UTC)
    assert out["T"].is_all_day is False


def test_default_duration_is_configurable() -> None:
    t = make_task("T", started_at=at(1, 9))

    out = resolve_schedule([t], now=NOW, tz=UTC, default_duration_minutes=25)

    assert out["T"].end_date == at(1, 9, 25)


def test_negative_estimate_behaves_as_zero() -> None:
    t = make_task("T", started_at=at(1, 9), estimated_time=-30)

    out = _resolve([t])

    assert out["T"].end_date == at(1, 10)
    assert out["T"].end_date >= out["T"].start_date


def test_end_before_start_is_clamped() -> None:
    t = make_task("T", started_at=at(1, 9), end_time=at(1, 8))

    out = _resolve([t])

    assert out["T"].end_date == out["T"].start_date


def test_dangling_dependency_is_ignored() -> None:
    t = make_task("T", deps=["ghost"], started_at=at(1, 9), estimated_time=30)

    out = _resolve([t])

    assert set(out) == {"T"}
    assert out["T"].start_date == at(1, 9)


def test_two_task_cycle_falls_back_to_own_anchors(caplog) -> None:
    p = make_task("P", deps=["Q"], due_date=date(2024, 3, 1))
    q = make_task("Q", deps=["P"])

    with caplog.at_level(logging.WARNING, logger="taskwise.schedule.resolver"):
        resolver = DependencyResolver(tasks=[p, q], now=NOW, tz=UTC)
        out = resolver.resolve_all()

    assert out["P"].start_date == datetime(2024, 3, 1, tzinfo=UTC)
    assert out["P"].is_all_day is True
    assert out["Q"].start_date == datetime(2024, 6, 1, tzinfo=UTC)
    assert resolver.cycles == [["P", "Q", "P"]]
    assert "cycle" in caplog.text.lower()


def test_self_dependency_is_a_cycle() -> None:
    t = make_task("T", deps=["T"], estimated_time=15)

    resolver = DependencyResolver(tasks=[t], now=NOW, tz=UTC)
    out = resolver.resolve_all()

    assert out["T"].start_date == datetime(2024, 6, 1, tzinfo=UTC)
    assert out["T"].end_date == datetime(2024, 6, 1, 0, 15, tzinfo=UTC)
    assert resolver.cycles == [["T", "T"]]


def test_long_cycle_resolves_every_member() -> None:
    n = 50
    tasks = [make_task(f"t{i}", deps=[f"t{(i + 1) % n}"], estimated_time=10) for i in range(n)]

    out = _resolve(tasks)

    assert len(out) == n
    for rec in out.values():
        assert rec.end_date >= rec.start_date


def test_task_downstream_of_a_cycle_still_waits_for_it() -> None:
    p = make_task("P", deps=["Q"], started_at=at(1, 9), estimated_time=60)
    q = make_task("Q", deps=["P"], started_at=at(1, 9), estimated_time=60)
    r = make_task("R", deps=["P"], estimated_time=30)

    out = _resolve([r, p, q])

    assert out["R"].start_date == out["P"].end_date


def test_deep_chain_does_not_hit_recursion_limit() -> None:
    n = 3000
    tasks = [make_task("c0", started_at=at(1, 0), estimated_time=1)]
    tasks += [make_task(f"c{i}", deps=[f"c{i - 1}"], estimated_time=1) for i in range(1, n)]

    out = _resolve(list(reversed(tasks)))

    assert out[f"c{n - 1}"].end_date == at(1, 0) + timedelta(minutes=n)


def test_visible_ids_limit_output_but_not_traversal() -> None:
    b = make_task("B", started_at=at(1, 9), estimated_time=60)
    a = make_task("A", deps=["B"], estimated_time=30)

    out = _resolve([a, b], visible_ids={"A"})

    assert set(out) == {"A"}
    assert out["A"].start_date == at(1, 10)


def test_completed_status_does_not_change_timing() -> None:
    b = make_task("B", started_at=at(1, 9), estimated_time=60, status=TaskStatus.COMPLETED)
    a = make_task("A", deps=["B"], estimated_time=30)

    out = _resolve([a, b])

    assert out["A"].start_date == at(1, 10)


def test_naive_and_foreign_offsets_are_normalized() -> None:
    plus2 = timezone(timedelta(hours=2))
    b = make_task("B", started_at=datetime(2024, 1, 1, 11, 0, tzinfo=plus2), estimated_time=60)
    a = make_task("A", deps=["B"], started_at=datetime(2024, 1, 1, 9, 30), estimated_time=30)

    out = _resolve([a, b])

    assert out["B"].start_date == at(1, 9)
    assert out["A"].start_date == at(1, 10)


def test_resolution_is_idempotent() -> None:
    tasks = [
        make_task("B", started_at=at(1, 9), estimated_time=60),
        make_task("A", deps=["B", "ghost"], estimated_time=30),
        make_task("P", deps=["Q"], due_date=date(2024, 2, 2)),
        make_task("Q", deps=["P"]),
    ]

    assert _resolve(tasks) == _resolve(tasks)


def test_every_record_has_end_not_before_start() -> None:
    tasks = [
        make_task("a", due_date=date(2024, 1, 5)),
        make_task("b", deps=["a"], estimated_time=45),
        make_task("c", deps=["b", "a"], start_time=at(1, 1), end_time=at(1, 2)),
        make_task("d", deps=["c"], estimated_time=-5),
    ]

    for rec in _resolve(tasks).values():
        assert rec.end_date >= rec.start_date


def test_local_midnights_use_the_offset_of_their_own_date(berlin_local_zone) -> None:
    winter = make_task("W", due_date=date(2024, 1, 15))
    summer = make_task("S", due_date=date(2024, 7, 15))

    out = resolve_schedule([winter, summer], now=NOW)

    cet = timezone(timedelta(hours=1))
    cest = timezone(timedelta(hours=2))
    assert out["W"].start_date == datetime(2024, 1, 15, 0, 0, tzinfo=cet)
    assert out["W"].end_date == datetime(2024, 1, 16, 0, 0, tzinfo=cet)
    assert out["S"].start_date == datetime(2024, 7, 15, 0, 0, tzinfo=cest)
    assert out["S"].start_date.utcoffset() == timedelta(hours=2)
    assert out["W"].is_all_day and out["S"].is_all_day
