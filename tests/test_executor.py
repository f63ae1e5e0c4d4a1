"""Tests for single-attempt execution and its reconnect side effect."""

from __future__ import annotations

import pytest

from ensuredb.core.classifier import ORACLE_TRANSIENT_CODES
from ensuredb.core.exceptions import (
    ConnectionEstablishError,
    FatalDatabaseError,
    StaleHandleError,
    TransientConnectionError,
)
from ensuredb.core.native import StatementStatus

QUERY = "SELECT id, name FROM t"
ROWS = [(1, "a"), (2, "b"), (3, "c")]


@pytest.mark.parametrize("code", sorted(ORACLE_TRANSIENT_CODES))
def test_transient_error_reconnects_once_then_reraises(session, database, code: int) -> None:
    database.fail("execute", code)

    with pytest.raises(TransientConnectionError) as info:
        session.execute("UPDATE t SET x = 1")

    assert info.value.code == code
    assert database.connect_calls == 2
    assert session.connected


@pytest.mark.parametrize("code", [1, 942, 1400, 6550])
def test_fatal_error_reraises_without_reconnect(session, database, code: int) -> None:
    database.fail("execute_update", code)

    with pytest.raises(FatalDatabaseError) as info:
        session.execute_update("INSERT INTO t VALUES (1)")

    assert info.value.code == code
    assert database.connect_calls == 1


def test_transient_error_on_prepare_reconnects(session, database) -> None:
    database.fail("prepare", 3114)

    with pytest.raises(TransientConnectionError):
        session.create_statement("SELECT 1 FROM dual")

    assert database.connect_calls == 2


def test_reconnect_invalidates_handles_created_before_failure(session, database) -> None:
    database.results[QUERY] = ROWS
    statement = session.create_statement(QUERY)
    result_set = session.execute_query_statement(statement)
    database.fail("execute", 3113)
    failing = session.create_statement("UPDATE t SET x = 1")

    with pytest.raises(TransientConnectionError):
        session.execute_statement(failing)

    for handle in (statement, result_set, failing):
        assert not session.registry.contains(handle)


def test_stale_statement_does_not_trigger_second_reconnect(session, database) -> None:
    statement = session.create_statement("UPDATE t SET x = 1")
    session.reconnect()

    with pytest.raises(StaleHandleError):
        session.execute_statement(statement)

    assert database.connect_calls == 2


def test_failed_bounded_reconnect_raises_establish_error(session, database) -> None:
    database.fail("execute", 3135)
    database.connect_failures = [12541]

    with pytest.raises(ConnectionEstablishError) as info:
        session.execute("UPDATE t SET x = 1")

    assert isinstance(info.value.__cause__, TransientConnectionError)
    assert info.value.__cause__.code == 3135
    assert not session.connected

    # The next call opens a fresh connection on demand.
    assert session.execute("UPDATE t SET x = 1") is StatementStatus.UPDATE_COUNT_AVAILABLE
    assert session.connected


def test_execute_returns_status_and_terminates(session, database) -> None:
    database.results[QUERY] = ROWS

    assert session.execute(QUERY) is StatementStatus.RESULT_SET_AVAILABLE
    assert session.execute("DELETE FROM t") is StatementStatus.UPDATE_COUNT_AVAILABLE
    assert all(s.closed == 1 for s in database.statements)
    assert len(session.registry) == 0


def test_execute_update_returns_row_count(session, database) -> None:
    database.update_counts["DELETE FROM t"] = 42

    assert session.execute_update("DELETE FROM t") == 42


def test_statement_terminated_on_error_path(session, database) -> None:
    database.fail("execute_update", 942)

    with pytest.raises(FatalDatabaseError):
        session.execute_update("DELETE FROM missing")

    assert database.statements[0].closed == 1
    assert len(session.registry) == 0


def test_terminate_twice_is_noop(session, database) -> None:
    statement = session.create_statement("UPDATE t SET x = 1")

    session.terminate_statement(statement)
    session.terminate_statement(statement)
    session.terminate_statement(None)

    assert database.statements[0].closed == 1


def test_execute_query_delivers_rows(session, database) -> None:
    database.results[QUERY] = ROWS
    seen = []

    def on_row(s, rs) -> bool:
        if not s.next(rs):
            return False
        seen.append((rs["id"], rs[1]))
        return True

    session.execute_query(QUERY, on_row)

    assert seen == ROWS
    assert len(session.registry) == 0


def test_query_callback_stop_closes_result_set_once(session, database) -> None:
    database.results[QUERY] = ROWS
    captured = []

    def on_row(s, rs) -> bool:
        s.next(rs)
        captured.append(rs)
        return False

    session.execute_query(QUERY, on_row)

    native_statement = database.statements[0]
    assert len(native_statement.closed_result_sets) == 1
    assert native_statement.closed == 1
    assert database.result_sets[0].fetches == 1
    with pytest.raises(StaleHandleError):
        session.next(captured[0])


def test_close_result_set_twice_is_noop(session, database) -> None:
    database.results[QUERY] = ROWS
    statement = session.create_statement(QUERY)
    result_set = session.execute_query_statement(statement)

    session.close_result_set(result_set)
    session.close_result_set(result_set)

    assert len(database.statements[0].closed_result_sets) == 1
    assert database.statements[0].closed == 1


def test_query_callback_error_terminates_statement(session, database) -> None:
    database.results[QUERY] = ROWS

    def on_row(s, rs) -> bool:
        raise ValueError("bad row")

    with pytest.raises(ValueError):
        session.execute_query(QUERY, on_row)

    assert database.statements[0].closed == 1
    assert len(session.registry) == 0


def test_transient_error_on_next_reconnects(session, database) -> None:
    database.results[QUERY] = ROWS
    database.fail_fetch(2, 28)

    def on_row(s, rs) -> bool:
        return s.next(rs)

    with pytest.raises(TransientConnectionError):
        session.execute_query(QUERY, on_row)

    assert database.connect_calls == 2


def test_result_set_row_access(session, database) -> None:
    database.results[QUERY] = ROWS
    statement = session.create_statement(QUERY)
    result_set = session.execute_query_statement(statement)

    with pytest.raises(IndexError):
        result_set[0]
    assert session.next(result_set)
    assert result_set.row == (1, "a")
    assert result_set["NAME"] == "a"
    with pytest.raises(KeyError):
        result_set["missing"]
    assert result_set.columns == ["id", "name"]


def test_bind_forwards_parameters(session, database) -> None:
    statement = session.create_statement("UPDATE t SET name = :1 WHERE id = :2")

    statement.bind("z", 3)
    session.execute_statement(statement)
    statement.bind(name="y")
    session.execute_statement(statement)

    assert database.executions == [
        ("UPDATE t SET name = :1 WHERE id = :2", ["z", 3]),
        ("UPDATE t SET name = :1 WHERE id = :2", {"name": "y"}),
    ]
    with pytest.raises(TypeError):
        statement.bind(1, name="x")
