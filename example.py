#!/usr/bin/env python3
"""Example usage of ensuredb.

Sessions are lazy: nothing is opened until you call `connect()` or enter a
context manager.  One-shot calls reconnect after a lost session and re-raise;
`ensure_*` calls block, retrying every `retry_delay` seconds, until they
succeed.
"""

import logging

from ensuredb import Client, DatabaseError, make_exception_string, make_simple_error_message

logging.basicConfig(level=logging.INFO)

db = Client(retry_delay=30)

# ── Oracle (python-oracledb) ─────────────────────────────────────────────
session = db.ora("scott", "tiger", "localhost:1521/FREEPDB1")
session.connect()                     # blocks until the listener answers
try:
    try:
        session.execute("CREATE TABLE jobs (id NUMBER, state VARCHAR2(20))")
    except DatabaseError as exc:
        print("create failed:", make_simple_error_message(make_exception_string(exc)))

    # Bind parameters on every attempt; each retry prepares a new statement.
    def bind_job(statement):
        statement.bind_many([(1, "queued"), (2, "queued"), (3, "done")])

    session.ensure_execute(
        "INSERT INTO jobs (id, state) VALUES (:1, :2)",
        on_create_statement=bind_job,
        on_batch_error=lambda exc: print("batch rows failed:", exc.errors),
    )

    def print_job(s, rs):
        if not s.next(rs):
            return False
        print("job", rs["id"], rs["state"])
        return True

    # Resumes after a lost connection by skipping rows already printed.
    session.ensure_execute_query("SELECT id, state FROM jobs ORDER BY id", print_job)

    removed = session.ensure_execute_update(
        "DELETE FROM jobs WHERE state = 'done'",
        on_error=lambda exc: print("retrying:", make_exception_string(exc)),
    )
    print("removed", removed)
finally:
    session.close()

# ── MySQL (pymysql) ──────────────────────────────────────────────────────
# Context-manager style: __enter__ connects, __exit__ rolls back and closes.
with db.my("app", "secret", "localhost:3306/app") as session:
    session.execute_update("UPDATE counters SET n = n + 1 WHERE name = 'runs'")
    session.commit()
