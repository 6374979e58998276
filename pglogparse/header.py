# coding: utf-8

import datetime
import re
from abc import ABC, abstractmethod

from . import _common

_KEY_OCCURRED_AT = _common.KEY_OCCURRED_AT
_KEY_LOG_LEVEL = _common.KEY_LOG_LEVEL
_KEY_CONTENT = _common.KEY_CONTENT

# keys for internal processing
_KEY_YEAR = "year"
_KEY_MONTH = "month"
_KEY_DAY = "day"
_KEY_HOUR = "hour"
_KEY_MINUTE = "minute"
_KEY_SECOND = "second"
_KEY_DECIMAL_SECOND = "dsecond"
_KEY_TZ = "tz"


class HeaderParser:
    """Parser for the prefix part of postgres log lines.

    A HeaderParser rule is represented with a list of :class:`Item`.
    Item is a component of regular expression patterns
    to parse corresponding variable item.
    HeaderParser generates one regular expression pattern
    from the items, and tests that it matches the input log line.
    If matched, HeaderParser extracts variables for the items.

    In HeaderParser rule, one :class:`Statement` item is mandatory.

    The placement of Items is defined with "full_format".
    It is a regular expression holed with Item replacers.
    For example, if full_format is r"<0> \\[<1>-<2>\\] <3>:\\s+<4>",
    <0> will be replaced with the first :class:`Item` in items
    (The number corrsponds to the index of given items).
    The number of replacers must be equal to the length of items.
    Note that optional Items must be manually enclosed with "(" and ")?"
    in the full_format regular expression
    (e.g., r"<0> \\[<1>\\]\\[(<2>)?\\]" where Item-2 is optional).
    Unlike free-form syslog headers, postgres prefixes are fixed strings,
    so literal spaces in full_format are kept as they are.

    Args:
        items (list of :class:`Item`): header format rule.
        full_format (str): Place format of header part.
        defaults (dict, optional): Default values, used for
            missing values (for optional or missing items) in log lines.
    """

    def __init__(self, items, full_format, defaults: dict = None):
        self._l_item = items
        self._defaults = defaults if defaults is not None else dict()

        self._items_to_pick = [item for item in items if not item.dummy]
        self._optional_check(items)
        self._statement_check(items)
        self._duplication_check(self._items_to_pick)

        restr = self.make_pattern_full_format(items, full_format)
        self._reobj = re.compile(restr, re.ASCII)

    @property
    def pattern(self):
        return self._reobj

    @property
    def items(self):
        return list(self._l_item)

    @property
    def value_names(self):
        """list of str: Value names this rule can populate, in item order."""
        return [item.value_name for item in self._items_to_pick]

    @staticmethod
    def _optional_check(items):
        mandatory_items = [item for item in items if item.optional is False]
        if len(mandatory_items) == 0:
            msg = "more than one Item (usually Statement) need to be non-optional"
            raise _common.ParserDefinitionError(msg)

    @staticmethod
    def _statement_check(items):
        names = [item.value_name for item in items]
        if _KEY_CONTENT not in names:
            msg = "one Statement Item is mandatory in header rules"
            raise _common.ParserDefinitionError(msg)

    @staticmethod
    def _duplication_check(items_to_pick):
        names = [item.match_name for item in items_to_pick]
        if len(names) > len(set(names)):
            msg = "Given items include duplicated match names: {0}".format(names)
            raise _common.ParserDefinitionError(msg)

    @staticmethod
    def make_pattern_full_format(items, full_format):
        tmp_format = full_format
        for i, item in reversed(list(enumerate(items))):
            replacer = "<" + str(i) + ">"
            item_regex = item.get_regex()
            if replacer not in tmp_format:
                msg = ("Invalid full_format pattern: "
                       "no replacer {0}".format(replacer))
                raise _common.ParserDefinitionError(msg)
            tmp_format = tmp_format.replace(replacer, item_regex, 1)

        return '^' + tmp_format + '$'

    def match(self, line):
        """Test the combined pattern without converting any value."""
        return self._reobj.match(line) is not None

    def process_line(self, line):
        """Parse prefix part of a log line.

        Args:
            line (str): A physical log line, including its line feed code.

        Returns:
            dict: Parsed items, or None if the pattern does not match.

        Raises:
            :class:`~pglogparse._common.TimestampParseFailure`:
                the line matched but its timestamp is invalid.
        """
        d_items = dict(self._defaults)
        mo = self._reobj.match(line)
        if mo is None:
            return None
        for item in self._items_to_pick:
            tmp = item.pick(mo)
            if tmp is not None:
                key, val = tmp
                d_items[key] = val
        return d_items


class Item(ABC):
    """Base class of items, components of header parts.

    Args:
        optional (bool, optional): This item is optional.
            Not all inputs need this item in their header parts.
            If true, Item.pick() returns None if no corresponding part found.
        dummy (bool, optional): Dummy items do not extract any values.
            If true, the item is matched without a capturing group,
            and Item.pick() will not be called for this item
            (e.g., syslog hostnames, which are not part of a record).
    """
    _match_name = "variable"
    _value_name = "variable"

    def __init__(self, optional=False, dummy=False):
        self._optional = optional
        self._dummy = dummy

    @property
    @abstractmethod
    def pattern(self):
        """str: Get regular expression pattern string for this *Item class*."""
        raise NotImplementedError

    @property
    def optional(self):
        return self._optional

    @property
    def dummy(self):
        return self._dummy

    @property
    def match_name(self):
        """str: Match name of this Item.

        Match name is used to distinguish the extracted values
        in `re` MatchObject.
        Match name cannot be duplicated in a set of HeaderParser items.
        """
        return self._match_name

    @property
    def value_name(self):
        """str: Value name of this :class:`Item`.

        Value name is used as the keys of return value of :class:`HeaderParser`.
        """
        return self._value_name

    def test(self, string):
        """Test this Item will match the input string or not.
        Note that this function is only for debugging grammars
        (because it generates internal re.Pattern for every call).

        Args:
            string: Input string to test matching.

        Returns:
            re.Match or None
        """
        pattern = re.compile(r'^' + self.get_regex() + r'$', re.ASCII)
        return pattern.match(string)

    def get_regex(self):
        """Get regular expression pattern string of this :class:`Item` instance.
        """
        if self._dummy:
            return r'(?:' + self.pattern + r')'
        else:
            return r'(?P<' + self.match_name + r'>' + self.pattern + ')'

    def pick(self, mo):
        """Get value name and the extracted values
        from MatchObject in appropriate format.

        Args:
            mo: MatchObject for combined pattern of :class:`HeaderParser`.

        Returns:
            tuple: :attr:`~Item.value_name` and the value
            extracted by :meth:`Item.pick_value`.
        """
        try:
            return self.value_name, self.pick_value(mo)
        except TypeError:
            # case if mo[self.match_name] is None: optional item
            if self.optional:
                return None
            msg = ("Unoptional item failed to get the corresponding value. "
                   "Don't use special characters such as ? in Item.pattern. "
                   "Enclose optional Item with \"()?\" in full_format manually.")
            raise _common.ParserDefinitionError(msg)

    def pick_value(self, mo):
        """Get a value from MatchObject in appropriate format.

        If not overridden, a matched string value is returned as is.
        """
        try:
            return mo[self.match_name]
        except IndexError:
            raise IndexError("no match_name {0}".format(self.match_name))


class Statement(Item):
    """Item for the message body.
    It takes the rest of the line, including the line feed code if any.
    """
    _match_name = _KEY_CONTENT
    _value_name = _KEY_CONTENT

    @property
    def pattern(self):
        return r'.*\n?'


class Severity(Item):
    """Item for severity words like :samp:`LOG` or :samp:`ERROR`.
    The value is kept as a string; resolution into
    :class:`~pglogparse._common.LogLevel` is up to the line parser.
    """
    _match_name = _KEY_LOG_LEVEL
    _value_name = _KEY_LOG_LEVEL

    @property
    def pattern(self):
        return r'\w+'


def _parse_decimal_second(string):
    if string is None:
        return 0
    return int(string[:6].ljust(6, "0"))


def _build_datetime(kwargs, string, time_format):
    try:
        return datetime.datetime(tzinfo=datetime.timezone.utc, **kwargs)
    except ValueError as e:
        msg = "parsing timestamp {0!r} as {1!r} failed: {2}".format(
            string, time_format, e)
        raise _common.TimestampParseFailure(msg)


class PostgresTimestamp(Item):
    """Item for postgres timestamps written by :samp:`%t` or :samp:`%m`.

    | e.g., :samp:`2021-01-02 03:04:05 UTC`

    | e.g., :samp:`2021-01-02 03:04:05.678 UTC`

    The zone is a name abbreviation. Only its form is checked;
    all abbreviations are read as zero UTC offset.
    """
    _match_name = "pg_time"
    _value_name = _KEY_OCCURRED_AT
    time_format = "%Y-%m-%d %H:%M:%S[.%f] %Z"
    _tz_abbreviation = re.compile(r'^[A-Z]{3,5}$')

    @property
    def pattern(self):
        return (r'(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2}) '  # year-month-day
                r'(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})'  # hour:minute:second
                r'(?:\.(?P<dsecond>\d+))?'  # decimal part of seconds
                r' (?P<tz>\w+)')  # zone abbreviation

    def pick_value(self, mo):
        """Returns timezone-aware :obj:`datetime.datetime`."""
        string = mo[self.match_name]
        if not self._tz_abbreviation.match(mo.group(_KEY_TZ)):
            msg = "unknown time zone in timestamp {0!r}".format(string)
            raise _common.TimestampParseFailure(msg)
        kwargs = {key: int(mo.group(key))
                  for key in (_KEY_YEAR, _KEY_MONTH, _KEY_DAY,
                              _KEY_HOUR, _KEY_MINUTE, _KEY_SECOND)}
        kwargs["microsecond"] = _parse_decimal_second(mo.group(_KEY_DECIMAL_SECOND))
        return _build_datetime(kwargs, string, self.time_format)


class SyslogTimestamp(Item):
    """Item for year-less syslog timestamps.
    The current year is assumed, and the time is read as UTC.

    | e.g., :samp:`Jan  2 03:04:05`
    """
    _match_name = "syslog_time"
    _value_name = _KEY_OCCURRED_AT
    time_format = "%b %d %H:%M:%S"
    month_name = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                  "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

    @property
    def pattern(self):
        return (r'(?P<month>\w+)\s+(?P<day>\d+) '
                r'(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})')

    def pick_value(self, mo):
        """Returns timezone-aware :obj:`datetime.datetime`."""
        string = mo[self.match_name]
        month = mo.group(_KEY_MONTH)
        if month not in self.month_name:
            msg = "unknown month in timestamp {0!r}".format(string)
            raise _common.TimestampParseFailure(msg)
        kwargs = {key: int(mo.group(key))
                  for key in (_KEY_DAY, _KEY_HOUR, _KEY_MINUTE, _KEY_SECOND)}
        kwargs[_KEY_YEAR] = datetime.datetime.now(datetime.timezone.utc).year
        kwargs[_KEY_MONTH] = self.month_name.index(month) + 1
        return _build_datetime(kwargs, string, self.time_format)


class RemoteHost(Item):
    """Item for client address and port written by :samp:`%r`.

    | e.g., :samp:`10.0.0.1(5432)`
    """
    _match_name = "remote_host"
    _value_name = "remote_host"

    @property
    def pattern(self):
        return r'[\d:.]+\(\d+\)'


class VirtualTransactionId(Item):
    """Item for virtual transaction ids written by :samp:`%v`.

    | e.g., :samp:`3/1234`
    """
    _match_name = "virtual_tx"
    _value_name = "virtual_tx"

    @property
    def pattern(self):
        return r'\d+/\d+'


class SequenceMarker(Item):
    """Item for the :samp:`[seq-split]` marker rsyslog adds
    to postgres messages (e.g., :samp:`[1-1]`)."""
    _match_name = "syslog_sequence"
    _value_name = "syslog_sequence"

    @property
    def pattern(self):
        return r'\[[\d-]+\]'


class NamedItem(Item, ABC):
    """A base class of namable items.
    Namable items requires an argument for the name.
    The name is used as match name and value name.

    Args:
        name (string): name of :class:`Item` instance,
            used as match name and value name.
    """

    def __init__(self, name, **kwargs):
        super().__init__(**kwargs)
        self._name = name

    @property
    def match_name(self):
        return self._name

    @property
    def value_name(self):
        return self._name


class Digit(NamedItem):
    """:class:`NamedItem` for a digit value (e.g., :samp:`%p`, :samp:`%l`)."""
    pattern = r'\d+'

    def pick_value(self, mo):
        """Returns integer."""
        return int(mo[self._name])


class NullableString(NamedItem):
    """:class:`NamedItem` for fields postgres may leave unknown
    (:samp:`%u`, :samp:`%d`, :samp:`%a`).

    Empty strings and the :samp:`[unknown]` placeholder are returned as None.
    """
    pattern = r'\S*'

    def pick_value(self, mo):
        value = mo[self._name]
        if value is None or value == "" or value == _common.UNKNOWN_SENTINEL:
            return None
        return value


class UserItem(NamedItem):
    """Customizable :class:`NamedItem`.

    Some special characters are not allowed to use for this Item
    because HeaderParser generates a single re.Pattern
    by automatically combining the given set of items.

    * Optional parts, such as :regexp:`?`
    * :regexp:`^` and :regexp:`$`

    Args:
        name: same as NamedItem.
        pattern: regular expression pattern of this Item instance.
    """

    def __init__(self, name, pattern, **kwargs):
        super().__init__(name, **kwargs)
        self._pattern = pattern

    @property
    def pattern(self):
        return self._pattern
