__version__ = '0.1.0'

from ._common import *
from .grammar import Grammar, GrammarRegistry
from .parse import parse_line_with_prefix, unwrap_syslog
from .preset import (LOG_PREFIX_AMAZON_RDS, LOG_PREFIX_CUSTOM1,
                     LOG_PREFIX_CUSTOM2, DEFAULT_REGISTRY)
from .stream import Analyzer, NoopAnalyzer, assemble, parse_buffer
from .load import load_config
