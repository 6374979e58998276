# coding: utf-8

import datetime
import enum
import uuid as _uuid
from dataclasses import dataclass, asdict
from typing import Optional

# keys in public
KEY_OCCURRED_AT = "occurred_at"
KEY_USERNAME = "username"
KEY_DATABASE = "database"
KEY_APPLICATION = "application"
KEY_BACKEND_PID = "backend_pid"
KEY_LOG_LEVEL = "log_level"
KEY_CONTENT = "content"

# placeholder postgres writes for fields it cannot determine
UNKNOWN_SENTINEL = "[unknown]"

PREFIX_SYSLOG = "syslog"


class ParserDefinitionError(Exception):
    """ParserDefinitionError is raised when the given grammar definition
    is inappropriate (e.g., missing replacers or duplicated match names).
    """
    pass


class LogParseFailure(Exception):
    """LogParseFailure is raised when a log line cannot be converted
    into a structured record.

    The public entry points never let it escape; they recover locally
    and treat the line as unmatched.
    """
    pass


class TimestampParseFailure(LogParseFailure):
    """Raised when the timestamp part of a matched line
    is not a valid point in time (e.g., month 13)."""
    pass


class LogLevel(enum.IntEnum):
    """Severity vocabulary of postgres log lines."""
    UNKNOWN = 0
    DEBUG = 1
    INFO = 2
    NOTICE = 3
    WARNING = 4
    ERROR = 5
    LOG = 6
    FATAL = 7
    PANIC = 8
    DETAIL = 9
    HINT = 10
    CONTEXT = 11
    STATEMENT = 12
    QUERY = 13

    @classmethod
    def resolve(cls, name):
        """Returns the level for a severity word.

        Empty or missing severity returns None (continuation line);
        words outside the vocabulary resolve to UNKNOWN.
        """
        if not name:
            return None
        try:
            return cls[name]
        except KeyError:
            return cls.UNKNOWN


@dataclass
class LogLine:
    """One logical postgres log record.

    Byte offsets are absolute positions in the ingested stream.
    ``byte_end`` is inclusive (the last byte of the last physical line).
    """
    occurred_at: Optional[datetime.datetime] = None
    username: Optional[str] = None
    database: Optional[str] = None
    application: Optional[str] = None
    backend_pid: int = 0
    log_level: Optional[LogLevel] = None
    content: str = ""
    byte_start: int = 0
    byte_content_start: int = 0
    byte_end: int = 0
    uuid: Optional[_uuid.UUID] = None

    def to_dict(self):
        d = asdict(self)
        if self.occurred_at is not None:
            d[KEY_OCCURRED_AT] = self.occurred_at.isoformat()
        if self.log_level is not None:
            d[KEY_LOG_LEVEL] = self.log_level.name
        if self.uuid is not None:
            d["uuid"] = str(self.uuid)
        return d
