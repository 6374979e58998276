# coding: utf-8

"""Assemble structured records from raw postgres log output.

The assembler scans one buffer of log output line by line,
stitches continuation lines onto the record they belong to,
and reports the byte offset up to which the buffer was consumed.
Pass that offset as ``resume_offset`` of the next call
to continue reading a growing file without re-reading any byte.
"""

import datetime
import io
import logging
import uuid
from abc import ABC, abstractmethod

from .parse import parse_line_with_prefix

_logger = logging.getLogger(__name__)

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class Analyzer(ABC):
    """Consumer of assembled records.

    An analyzer may annotate or filter the records,
    and derives samples (e.g., query samples) from them.
    """

    @abstractmethod
    def analyze(self, log_lines):
        """
        Args:
            log_lines (list of :class:`~pglogparse._common.LogLine`)

        Returns:
            tuple: final list of LogLine and list of samples.
        """
        raise NotImplementedError


class NoopAnalyzer(Analyzer):
    """Returns the records as they are, without samples."""

    def analyze(self, log_lines):
        return log_lines, []


def _as_reader(buffer):
    if isinstance(buffer, str):
        buffer = buffer.encode(_ENCODING, _ERRORS)
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return io.BytesIO(buffer)
    return buffer


def _as_utc(dt):
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def _byte_length(text):
    return len(text.encode(_ENCODING, _ERRORS))


def assemble(buffer, resume_offset, min_time, prefix="", registry=None):
    """Scan a buffer of log output into records.

    Every complete physical line (terminated with ``\\n``) is consumed.
    A line either starts a new record, continues the latest record,
    or is discarded. Records older than ``min_time`` are discarded
    together with their continuation lines.
    A final line without line feed is left unconsumed,
    so the next call can read it once it is complete.

    If reading fails, the error is logged and the records assembled so far
    are returned with the offset reached before the failure.

    Args:
        buffer (bytes, str or binary stream): Log output starting
            at ``resume_offset``. Streams are read with ``readline()``.
        resume_offset (int): Absolute byte position of the buffer head.
        min_time (datetime.datetime or None): Records strictly before this
            are dropped. Naive datetimes are read as UTC.
        prefix (str, optional): Pinned ``log_line_prefix`` template;
            empty string to detect the format per line.
        registry (:class:`~pglogparse.grammar.GrammarRegistry`, optional)

    Returns:
        tuple: list of :class:`~pglogparse._common.LogLine`
        and the new resume offset.
    """
    reader = _as_reader(buffer)
    min_time = _as_utc(min_time)

    log_lines = []
    current = None
    cursor = resume_offset
    n_continued = 0
    n_discarded = 0
    while True:
        try:
            raw = reader.readline()
        except OSError as e:
            _logger.error("Log Read ERROR: %s", e)
            break
        if isinstance(raw, str):
            raw = raw.encode(_ENCODING, _ERRORS)
        if not raw.endswith(b"\n"):
            # end of available data
            break

        byte_start = cursor
        cursor += len(raw)
        line = raw.decode(_ENCODING, _ERRORS)

        log_line, ok = parse_line_with_prefix(prefix, line, registry)
        if not ok:
            if current is not None and log_line.content:
                current.content += log_line.content
                current.byte_end = cursor - 1
                n_continued += 1
            else:
                n_discarded += 1
            continue

        if min_time is not None and log_line.occurred_at < min_time:
            current = None
            n_discarded += 1
            continue

        log_line.byte_start = byte_start
        log_line.byte_content_start = max(byte_start,
                                          cursor - _byte_length(log_line.content))
        log_line.byte_end = cursor - 1
        log_line.uuid = uuid.uuid4()
        log_lines.append(log_line)
        current = log_line

    _logger.debug("assembled %d records (%d continuation lines, %d discarded), "
                  "bytes %d-%d", len(log_lines), n_continued, n_discarded,
                  resume_offset, cursor)
    return log_lines, cursor


def parse_buffer(buffer, resume_offset, min_time,
                 prefix="", analyzer=None, registry=None):
    """Assemble records from a buffer and hand them to an analyzer.

    Args:
        buffer, resume_offset, min_time, prefix, registry: See :func:`assemble`.
        analyzer (:class:`Analyzer`, optional): Defaults to :class:`NoopAnalyzer`.

    Returns:
        tuple: records returned by the analyzer, samples derived by the analyzer,
        and the new resume offset.
    """
    if analyzer is None:
        analyzer = NoopAnalyzer()
    log_lines, new_offset = assemble(buffer, resume_offset, min_time,
                                     prefix=prefix, registry=registry)
    log_lines, samples = analyzer.analyze(log_lines)
    return log_lines, samples, new_offset
