from .convert import convert_by_weekday, convert_frequency, convert_month, convert_weekday
from .en import from_text, is_fully_convertible, parse_text, to_text
from .engine import DEFAULT_CONFIG, GRANULARITY, Effect, GeneratorConfig, OccurrenceGenerator
from .errors import ConversionError, ParseError, ParseErrorKind, RecurrenceError, ValidationError
from .parser import parse_options, parse_rule, rrulestr
from .query import Occurrences
from .render import rule_body, to_string
from .rule import (
    DAILY, FR, HOURLY, MINUTELY, MO, MONTHLY, SA, SECONDLY, SU, TH, TU, WE, WEEKLY, YEARLY,
    Frequency, RecurrenceRule, RuleOptions, Weekday, build_rule, normalize,
)
from .ruleset import RuleSet

__all__ = [
    "ConversionError",
    "DEFAULT_CONFIG",
    "Effect",
    "Frequency",
    "GRANULARITY",
    "GeneratorConfig",
    "Occurrences",
    "OccurrenceGenerator",
    "ParseError",
    "ParseErrorKind",
    "RecurrenceError",
    "RecurrenceRule",
    "RuleOptions",
    "RuleSet",
    "ValidationError",
    "Weekday",
    "build_rule",
    "convert_by_weekday",
    "convert_frequency",
    "convert_month",
    "convert_weekday",
    "from_text",
    "is_fully_convertible",
    "normalize",
    "parse_options",
    "parse_rule",
    "parse_text",
    "rrulestr",
    "rule_body",
    "to_string",
    "to_text",
    "YEARLY", "MONTHLY", "WEEKLY", "DAILY", "HOURLY", "MINUTELY", "SECONDLY",
    "MO", "TU", "WE", "TH", "FR", "SA", "SU",
]
