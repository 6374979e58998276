# coding: utf-8

"""Registry of known postgres log line prefix grammars."""

from . import _common


class Grammar:
    """A named, immutable line prefix format.

    Args:
        identifier (str): Literal ``log_line_prefix`` template
            (e.g., ``"%t:%r:%u@%d:[%p]:"``), used as lookup key.
        header_parser (:class:`~pglogparse.header.HeaderParser`):
            Combined pattern and field extraction of this format.
        time_format (str, optional): Notation of the timestamp part.
            None if the format has no timestamp.
    """

    def __init__(self, identifier, header_parser, time_format=None):
        self._identifier = identifier
        self._hp = header_parser
        self._time_format = time_format

    def __repr__(self):
        return "Grammar({0!r})".format(self._identifier)

    @property
    def identifier(self):
        return self._identifier

    @property
    def fields(self):
        """tuple of str: Field slots this grammar populates."""
        return tuple(self._hp.value_names)

    @property
    def pattern(self):
        return self._hp.pattern

    @property
    def time_format(self):
        return self._time_format

    def match(self, line):
        return self._hp.match(line)

    def process_line(self, line):
        """See :meth:`~pglogparse.header.HeaderParser.process_line`."""
        return self._hp.process_line(line)


class GrammarRegistry:
    """Ordered, read-only set of prefix grammars.

    The order of ``grammars`` is the detection priority:
    :meth:`detect` returns the first grammar whose pattern matches.
    If none matches, the syslog envelope is tried.

    Args:
        grammars (list of :class:`Grammar`): Selectable grammars.
        syslog (:class:`Grammar`): Envelope grammar for syslog-wrapped lines.
        secondary (:class:`Grammar`): No-timestamp grammar applied
            to the body of syslog-wrapped lines.
    """

    def __init__(self, grammars, syslog, secondary):
        self._grammars = tuple(grammars)
        self._d_grammar = {g.identifier: g for g in self._grammars}
        if len(self._d_grammar) < len(self._grammars):
            msg = "Given grammars include duplicated identifiers"
            raise _common.ParserDefinitionError(msg)
        self._syslog = syslog
        self._secondary = secondary

    def __iter__(self):
        return iter(self._grammars)

    def __len__(self):
        return len(self._grammars)

    def __contains__(self, prefix):
        return prefix in self._d_grammar

    @property
    def syslog(self):
        return self._syslog

    @property
    def secondary(self):
        return self._secondary

    def prefixes(self):
        """list of str: Selectable prefix templates in priority order."""
        return [g.identifier for g in self._grammars]

    def get(self, prefix):
        """Returns :class:`Grammar` for a prefix template.

        Raises:
            KeyError: the prefix is not a known template.
        """
        return self._d_grammar[prefix]

    def detect(self, line):
        """Detect the prefix format of a physical log line.

        Args:
            line (str): A log line.

        Returns:
            str or None: A prefix template, :data:`~pglogparse._common.PREFIX_SYSLOG`
            for syslog-wrapped lines, or None if no structured prefix is found
            (i.e., the line is continuation data).
        """
        for grammar in self._grammars:
            if grammar.match(line):
                return grammar.identifier
        if self._syslog.match(line):
            return _common.PREFIX_SYSLOG
        return None

    def detect_prefix(self, lines):
        """Returns the format of the first line with a structured prefix,
        or None if no line has one.
        Use it to pin a format for a source once it is identified."""
        for line in lines:
            prefix = self.detect(line)
            if prefix is not None:
                return prefix
        return None
