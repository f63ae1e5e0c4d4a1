"""Error classification and message helpers.

Pure functions only: nothing here touches a connection.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import AbstractSet

ORACLE_TRANSIENT_CODES: frozenset[int] = frozenset(
    {
        28,  # ORA-00028: your session has been killed
        1012,  # ORA-01012: not logged on
        3113,  # ORA-03113: end-of-file on communication channel
        3114,  # ORA-03114: not connected to ORACLE
        3135,  # ORA-03135: connection lost contact
        12514,  # ORA-12514: listener does not currently know of service requested
        12537,  # ORA-12537: TNS:connection closed
        12541,  # ORA-12541: TNS:no listener
    }
)

MYSQL_TRANSIENT_CODES: frozenset[int] = frozenset(
    {
        1927,  # ER_CONNECTION_KILLED
        2003,  # CR_CONN_HOST_ERROR
        2006,  # CR_SERVER_GONE_ERROR
        2013,  # CR_SERVER_LOST
        2055,  # CR_SERVER_LOST_EXTENDED
        4031,  # ER_CLIENT_INTERACTION_TIMEOUT
    }
)

_ERROR_PREFIX = re.compile(r"(?:ORA|DPY|TNS|PLS)-\d*: (.*?)(?:  |$)")


class ErrorKind(Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


def classify(code: int, transient_codes: AbstractSet[int] = ORACLE_TRANSIENT_CODES) -> ErrorKind:
    """Return ``TRANSIENT`` when *code* signals a lost session, else ``FATAL``."""
    return ErrorKind.TRANSIENT if code in transient_codes else ErrorKind.FATAL


def is_transient(code: int, transient_codes: AbstractSet[int] = ORACLE_TRANSIENT_CODES) -> bool:
    return classify(code, transient_codes) is ErrorKind.TRANSIENT


def make_exception_string(error: BaseException) -> str:
    """Return the human‑readable message carried by *error*."""
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


def make_simple_error_message(text: str) -> str:
    """Strip a leading ``ORA-NNNNN:`` style prefix from *text* (best effort).

    Only the first message line is kept; text without a recognised prefix is
    returned unchanged.
    """
    if not text:
        return text
    match = _ERROR_PREFIX.search(text)
    if match:
        return match.group(1)
    return text
