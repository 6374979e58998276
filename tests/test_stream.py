import datetime
import io
import unittest

from pglogparse import assemble, parse_buffer, preset
from pglogparse.stream import Analyzer

UTC = datetime.timezone.utc

RECORD1 = "2021-01-02 03:04:05 UTC [10-1] alice@mydb LOG:  statement: SELECT a,\n"
CONT1 = "\t\tb\n"
CONT2 = "\tFROM t\n"
RECORD2 = "2021-01-02 03:04:06 UTC [11-1] bob@shop ERROR:  division by zero\n"
RECORD3 = "2021-01-02 03:04:07 UTC [10-2] alice@mydb LOG:  duration: 0.1 ms\n"


def _fields(log_line):
    d = log_line.to_dict()
    d.pop("uuid")
    return d


class _BrokenReader:

    def __init__(self, lines):
        self._lines = list(lines)

    def readline(self):
        if not self._lines:
            raise OSError("device not ready")
        return self._lines.pop(0)


class TestStream(unittest.TestCase):

    def test_single_record(self):
        line = ("2021-01-02 03:04:05 UTC:10.0.0.1(5432):alice@mydb:[123]:"
                "LOG:  statement: SELECT 1\n")
        min_time = datetime.datetime(2021, 1, 1, tzinfo=UTC)
        log_lines, samples, offset = parse_buffer(line.encode(), 0, min_time)
        assert samples == []
        assert offset == len(line)
        assert len(log_lines) == 1
        log_line = log_lines[0]
        assert log_line.occurred_at == datetime.datetime(2021, 1, 2, 3, 4, 5, tzinfo=UTC)
        assert log_line.username == "alice"
        assert log_line.content == "statement: SELECT 1\n"
        assert log_line.byte_start == 0
        assert log_line.byte_content_start == len(line) - len("statement: SELECT 1\n")
        assert log_line.byte_end == len(line) - 1
        assert log_line.uuid is not None

    def test_continuation(self):
        buf = RECORD1 + CONT1 + CONT2 + RECORD2
        log_lines, offset = assemble(buf.encode(), 0, None)
        assert offset == len(buf)
        assert len(log_lines) == 2

        first, second = log_lines
        assert first.content == "statement: SELECT a,\n" + CONT1 + CONT2
        assert first.byte_start == 0
        assert first.byte_end == len(RECORD1 + CONT1 + CONT2) - 1
        assert second.byte_start == len(RECORD1 + CONT1 + CONT2)
        assert second.byte_end == len(buf) - 1
        assert first.uuid != second.uuid

    def test_leading_continuation_discarded(self):
        buf = "\n" + CONT1 + RECORD2
        log_lines, offset = assemble(buf.encode(), 0, None)
        assert offset == len(buf)
        assert len(log_lines) == 1
        assert log_lines[0].content == "division by zero\n"
        assert log_lines[0].byte_start == len("\n" + CONT1)

    def test_resume(self):
        buf = RECORD1 + CONT1 + CONT2 + RECORD2 + RECORD3
        whole, whole_offset = assemble(buf.encode(), 0, None)

        head = (RECORD1 + CONT1 + CONT2).encode()
        tail = (RECORD2 + RECORD3).encode()
        first, offset = assemble(head, 0, None)
        assert offset == len(head)
        second, offset = assemble(tail, offset, None)
        assert offset == whole_offset

        assert [_fields(l) for l in first + second] == [_fields(l) for l in whole]

    def test_incomplete_line(self):
        partial = "2021-01-02 03:04:07 UTC [10-2] alice@mydb LOG:  durat"
        buf = RECORD1 + partial
        log_lines, offset = assemble(buf.encode(), 100, None)
        assert offset == 100 + len(RECORD1)
        assert len(log_lines) == 1
        assert log_lines[0].byte_start == 100
        assert log_lines[0].byte_end == 100 + len(RECORD1) - 1

        # the next read gets the completed line
        rest = partial + "ion: 0.1 ms\n"
        log_lines, offset = assemble(rest.encode(), offset, None)
        assert len(log_lines) == 1
        assert log_lines[0].content == "duration: 0.1 ms\n"
        assert log_lines[0].byte_start == 100 + len(RECORD1)
        assert offset == 100 + len(RECORD1) + len(rest)

    def test_time_filter(self):
        old = "2020-12-31 23:59:59 UTC [10-1] alice@mydb LOG:  statement: SELECT old\n"
        buf = old + CONT1 + RECORD2
        min_time = datetime.datetime(2021, 1, 2, 3, 4, 6, tzinfo=UTC)
        log_lines, offset = assemble(buf.encode(), 0, min_time)
        assert offset == len(buf)
        assert len(log_lines) == 1
        # not attached to a dropped record, nor to the following one
        assert log_lines[0].content == "division by zero\n"
        assert log_lines[0].byte_start == len(old + CONT1)

        # naive threshold is read as UTC
        log_lines, offset = assemble(buf.encode(), 0, datetime.datetime(2021, 1, 1))
        assert len(log_lines) == 1

    def test_invalid_timestamp_consumed(self):
        bad = "2021-13-02 03:04:05 UTC [10-1] alice@mydb LOG:  statement: SELECT 1\n"
        buf = RECORD2 + bad
        log_lines, offset = assemble(buf.encode(), 0, None)
        assert offset == len(buf)
        assert len(log_lines) == 1
        assert log_lines[0].content == "division by zero\n"

    def test_multibyte(self):
        line = "2021-01-02 03:04:05 UTC [10-1] alice@mydb LOG:  statement: SELECT 'café'\n"
        raw = line.encode("utf-8")
        log_lines, offset = assemble(raw, 0, None)
        assert offset == len(raw)
        log_line = log_lines[0]
        assert log_line.content == "statement: SELECT 'café'\n"
        assert log_line.byte_end == len(raw) - 1
        content_bytes = len("statement: SELECT 'café'\n".encode("utf-8"))
        assert log_line.byte_content_start == len(raw) - content_bytes

        # undecodable bytes keep their byte length
        raw = RECORD2.encode() + b"\t\xff\xfe\n"
        log_lines, offset = assemble(raw, 0, None)
        assert offset == len(raw)
        assert log_lines[0].byte_end == len(raw) - 1

    def test_syslog(self):
        buf = ("Jan  2 03:04:05 dbhost postgres[123]: [5-1] "
               "user=alice,db=mydb,app=psql] LOG:  statement: SELECT a,\n"
               "Jan  2 03:04:05 dbhost postgres[123]: [5-2] #011b FROM t\n"
               "Jan  2 03:04:06 dbhost postgres[124]: [6-1] "
               "user=bob,db=mydb,app=psql] LOG:  duration: 1.2 ms\n")
        log_lines, offset = assemble(buf, 0, None)
        assert offset == len(buf)
        assert len(log_lines) == 2
        assert log_lines[0].content == "statement: SELECT a,\n\tb FROM t\n"
        assert log_lines[0].backend_pid == 123
        assert log_lines[1].username == "bob"
        assert log_lines[1].backend_pid == 124
        for log_line in log_lines:
            assert log_line.byte_start <= log_line.byte_content_start <= log_line.byte_end

    def test_pinned_prefix(self):
        buf = RECORD1 + CONT1 + RECORD2
        log_lines, offset = assemble(buf.encode(), 0, None,
                                     prefix=preset.LOG_PREFIX_CUSTOM2)
        assert len(log_lines) == 2
        assert log_lines[0].content.endswith(CONT1)

        # records of another format are continuation data for a pinned format
        log_lines, offset = assemble(buf.encode(), 0, None,
                                     prefix=preset.LOG_PREFIX_AMAZON_RDS)
        assert log_lines == []
        assert offset == len(buf)

    def test_read_error(self):
        reader = _BrokenReader([RECORD1.encode(), CONT1.encode()])
        with self.assertLogs("pglogparse.stream", level="ERROR") as cm:
            log_lines, offset = assemble(reader, 50, None)
        assert any("Log Read ERROR: device not ready" in out for out in cm.output)
        assert offset == 50 + len(RECORD1 + CONT1)
        assert len(log_lines) == 1
        assert log_lines[0].content == "statement: SELECT a,\n" + CONT1

    def test_stream_input(self):
        buf = (RECORD1 + RECORD2).encode()
        log_lines, offset = assemble(io.BytesIO(buf), 0, None)
        assert len(log_lines) == 2
        assert offset == len(buf)

    def test_analyzer(self):

        class ErrorsOnly(Analyzer):
            def analyze(self, log_lines):
                errors = [l for l in log_lines if l.log_level.name == "ERROR"]
                return errors, [l.content for l in errors]

        buf = (RECORD1 + RECORD2 + RECORD3).encode()
        log_lines, samples, offset = parse_buffer(buf, 0, None, analyzer=ErrorsOnly())
        assert len(log_lines) == 1
        assert samples == ["division by zero\n"]
        assert offset == len(buf)
