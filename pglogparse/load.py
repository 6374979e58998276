#!/usr/bin/env python
# coding: utf-8

import configparser
import datetime

from . import _common
from . import preset


def parse_since(string):
    """Parse an ISO-8601 time threshold. Naive values are read as UTC."""
    if string is None or string == "":
        return None
    dt = datetime.datetime.fromisoformat(string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def load_config(fp, registry=None):
    """Load reading options from configparser text file.

    Options are read from the ``[general]`` section:

    * log_line_prefix: pinned prefix template (empty to detect per line)
    * since: ISO-8601 timestamp; older records are dropped
    * offset: byte offset to start reading from

    Interpolation is disabled, as prefix templates include ``%``.

    Args:
        fp (str): file path of configparser text file.
        registry (:class:`~pglogparse.grammar.GrammarRegistry`, optional)

    Returns:
        dict: keys "prefix", "since" and "offset".

    Raises:
        :class:`~pglogparse._common.ParserDefinitionError`:
            log_line_prefix is not a known template.
    """
    if registry is None:
        registry = preset.DEFAULT_REGISTRY

    conf = configparser.ConfigParser(interpolation=None)
    with open(fp) as f:
        conf.read_file(f)

    prefix = conf.get("general", "log_line_prefix", fallback="")
    # configparser strips values; quote templates ending with a space
    prefix = prefix.strip('"')
    if prefix and prefix not in registry:
        msg = "unsupported log_line_prefix {0!r}, use one of {1}".format(
            prefix, registry.prefixes())
        raise _common.ParserDefinitionError(msg)

    return {"prefix": prefix,
            "since": parse_since(conf.get("general", "since", fallback=None)),
            "offset": conf.getint("general", "offset", fallback=0)}
