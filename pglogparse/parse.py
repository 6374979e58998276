# coding: utf-8

import logging

from . import _common
from . import preset
from ._common import LogLine, LogLevel

_logger = logging.getLogger(__name__)


def unwrap_syslog(line, registry=None):
    """Parse a line wrapped in an rsyslog envelope.

    The envelope gives the timestamp (current year assumed),
    the backend pid and optionally the severity.
    If the payload starts with the no-timestamp prefix
    (:samp:`[user=%u,db=%d,app=%a] `), its user, database, application,
    severity and body override the envelope values.

    Args:
        line (str): A physical log line.
        registry (:class:`~pglogparse.grammar.GrammarRegistry`, optional)

    Returns:
        dict: Parsed items, or None if the envelope does not match.
    """
    if registry is None:
        registry = preset.DEFAULT_REGISTRY
    d = registry.syslog.process_line(line)
    if d is None:
        return None
    content = d[_common.KEY_CONTENT].replace(preset.SYSLOG_TAB_ESCAPE, "\t")
    d[_common.KEY_CONTENT] = content

    inner = registry.secondary.process_line(content)
    if inner is not None:
        d.update(inner)
    return d


def _process_line(prefix, line, registry):
    if prefix == _common.PREFIX_SYSLOG:
        return unwrap_syslog(line, registry)
    try:
        grammar = registry.get(prefix)
    except KeyError:
        return None
    return grammar.process_line(line)


def parse_line_with_prefix(prefix, line, registry=None):
    """Parse one physical postgres log line.

    Args:
        prefix (str): A known ``log_line_prefix`` template to pin the format,
            or an empty string to detect it from the line.
        line (str): A physical log line, including its line feed code.
        registry (:class:`~pglogparse.grammar.GrammarRegistry`, optional):
            Grammars to use. Defaults to :data:`~pglogparse.preset.DEFAULT_REGISTRY`.

    Returns:
        tuple: :class:`~pglogparse._common.LogLine` and a bool.
        The bool is True only if the line starts a new record.
        If no grammar matches, the LogLine has only ``content``
        (the raw line) to be used as continuation data.
        If the severity is empty, fields are populated
        but the line continues the previous record.
        If the timestamp is invalid, the LogLine is empty.
    """
    if registry is None:
        registry = preset.DEFAULT_REGISTRY
    if prefix == "":
        prefix = registry.detect(line)

    try:
        d = _process_line(prefix, line, registry)
    except _common.LogParseFailure as e:
        _logger.debug("dropping line: %s", e)
        return LogLine(), False
    if d is None:
        return LogLine(content=line), False

    log_line = LogLine(occurred_at=d[_common.KEY_OCCURRED_AT],
                       username=d.get(_common.KEY_USERNAME),
                       database=d.get(_common.KEY_DATABASE),
                       application=d.get(_common.KEY_APPLICATION),
                       backend_pid=d.get(_common.KEY_BACKEND_PID) or 0,
                       content=d.get(_common.KEY_CONTENT) or "")

    # empty severity: this is actually a continuation of a previous line
    log_line.log_level = LogLevel.resolve(d.get(_common.KEY_LOG_LEVEL))
    return log_line, log_line.log_level is not None
