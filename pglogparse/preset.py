# coding: utf-8

"""pglogparse.preset is a submodule to provide grammars
for the postgres ``log_line_prefix`` settings pglogparse supports."""


from .grammar import Grammar, GrammarRegistry
from .header import *

LOG_PREFIX_AMAZON_RDS = "%t:%r:%u@%d:[%p]:"
LOG_PREFIX_CUSTOM1 = "%m [%p][%v] : [%l-1] %q[app=%a] "
LOG_PREFIX_CUSTOM2 = "%t [%p-%l] %q%u@%d "

# literal escape rsyslog writes for tab characters
SYSLOG_TAB_ESCAPE = "#011"

_LEVEL_AND_CONTENT = r"<{0}>:\s+<{1}>"


def amazon_rds_grammar():
    """Generate :class:`~pglogparse.grammar.Grammar`
    for the Amazon RDS default prefix :samp:`%t:%r:%u@%d:[%p]:`.

    | e.g., ``2021-01-02 03:04:05 UTC:10.0.0.1(5432):alice@mydb:[123]:LOG:  statement: SELECT 1``
    """
    items = [PostgresTimestamp(),
             RemoteHost(optional=True),
             NullableString("username"),
             NullableString("database"),
             Digit("backend_pid"),
             Severity(),
             Statement()]
    full_format = r"<0>:(<1>)?:<2>@<3>:\[<4>\]:" + _LEVEL_AND_CONTENT.format(5, 6)
    return Grammar(LOG_PREFIX_AMAZON_RDS, HeaderParser(items, full_format),
                   time_format=PostgresTimestamp.time_format)


def custom1_grammar():
    """Generate :class:`~pglogparse.grammar.Grammar`
    for the prefix :samp:`%m [%p][%v] : [%l-1] %q[app=%a] `.

    | e.g., ``2021-01-02 03:04:05.678 UTC [123][3/45] : [1-1] [app=psql] LOG:  connection received``
    """
    items = [PostgresTimestamp(),
             Digit("backend_pid"),
             VirtualTransactionId(optional=True),
             Digit("line_counter"),
             NullableString("application", optional=True),
             Severity(),
             Statement()]
    full_format = (r"<0> \[<1>\]\[(<2>)?\] : \[<3>-1\] (\[app=<4>\] )?"
                   + _LEVEL_AND_CONTENT.format(5, 6))
    return Grammar(LOG_PREFIX_CUSTOM1, HeaderParser(items, full_format),
                   time_format=PostgresTimestamp.time_format)


def custom2_grammar():
    """Generate :class:`~pglogparse.grammar.Grammar`
    for the prefix :samp:`%t [%p-%l] %q%u@%d `.

    | e.g., ``2021-01-02 03:04:05 UTC [123-1] alice@mydb ERROR:  relation "x" does not exist``
    """
    items = [PostgresTimestamp(),
             Digit("backend_pid"),
             Digit("line_counter"),
             NullableString("username", optional=True),
             NullableString("database", optional=True),
             Severity(),
             Statement()]
    full_format = r"<0> \[<1>-<2>\] (<3>@<4> )?" + _LEVEL_AND_CONTENT.format(5, 6)
    return Grammar(LOG_PREFIX_CUSTOM2, HeaderParser(items, full_format),
                   time_format=PostgresTimestamp.time_format)


def syslog_grammar():
    """Generate :class:`~pglogparse.grammar.Grammar` for the rsyslog envelope.

    Hostname and process name are matched as dummy items (not extracted).
    Severity is optional here: a line without it continues the previous one.

    | e.g., ``Jan  2 03:04:05 dbhost postgres[123]: [1-1] LOG:  duration: 1.2 ms``
    """
    items = [SyslogTimestamp(),
             UserItem("hostname", r"\S+", dummy=True),
             UserItem("process_name", r"\w+", dummy=True),
             Digit("backend_pid"),
             SequenceMarker(optional=True, dummy=True),
             Severity(optional=True),
             Statement()]
    full_format = r"<0> <1> <2>\[<3>\]: (<4>)? (<5>:\s+)?<6>"
    return Grammar("syslog", HeaderParser(items, full_format),
                   time_format=SyslogTimestamp.time_format)


def no_timestamp_user_database_app_grammar():
    """Generate :class:`~pglogparse.grammar.Grammar` for the prefix
    postgres writes inside syslog payloads, :samp:`[user=%u,db=%d,app=%a] `.
    The opening bracket is optional.

    | e.g., ``[user=alice,db=mydb,app=psql] LOG:  duration: 1.2 ms``
    """
    items = [NullableString("username"),
             NullableString("database"),
             NullableString("application"),
             Severity(),
             Statement()]
    full_format = r"\[?user=<0>,db=<1>,app=<2>\] " + _LEVEL_AND_CONTENT.format(3, 4)
    return Grammar("[user=%u,db=%d,app=%a] ", HeaderParser(items, full_format))


def default_grammars():
    """Generate list of selectable :class:`~pglogparse.grammar.Grammar`
    in detection priority order.

    #. :func:`amazon_rds_grammar`
    #. :func:`custom1_grammar`
    #. :func:`custom2_grammar`

    Returns:
        list of :class:`~pglogparse.grammar.Grammar`
    """
    return [amazon_rds_grammar(),
            custom1_grammar(),
            custom2_grammar()]


def default_registry():
    """Generate :class:`~pglogparse.grammar.GrammarRegistry`
    of default settings.

    Returns:
        :class:`~pglogparse.grammar.GrammarRegistry`
    """
    return GrammarRegistry(default_grammars(),
                           syslog=syslog_grammar(),
                           secondary=no_timestamp_user_database_app_grammar())


# shared read-only registry, built once at import
DEFAULT_REGISTRY = default_registry()
