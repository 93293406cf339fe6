"""
Named predicates for builtin field checks.

Every predicate takes the textual form of a value plus positional arguments
taken from the test spec, and returns a bool. Trailing arguments a predicate
has no use for are ignored, since a bare `True` spec arrives as one extra
argument.

Usage:
    registry = default_registry.copy()
    registry.extend("isEven", lambda text, *_: int(text) % 2 == 0)
    registry.resolve("isEmail")("jane@example.com")
"""

from __future__ import annotations

import ipaddress
import re
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping
from urllib.parse import urlsplit

import phonenumbers
from email_validator import EmailNotValidError, validate_email
from phonenumbers import NumberParseException, PhoneNumberType

from .errors import UnknownPredicateError
from .types import PredicateFn

if TYPE_CHECKING:
    from .model import Record


class Predicate(str, Enum):
    """Names of the predicates shipped in the default registry."""

    IS_EMAIL = "isEmail"
    IS_URL = "isURL"
    IS_URL_LEGACY = "isUrl"
    IS_IP = "isIP"
    IS_IPV4 = "isIPv4"
    IS_IPV6 = "isIPv6"
    IS_ALPHA = "isAlpha"
    IS_ALPHANUMERIC = "isAlphanumeric"
    IS_NUMERIC = "isNumeric"
    IS_INT = "isInt"
    IS_FLOAT = "isFloat"
    IS_DECIMAL = "isDecimal"
    IS_LOWERCASE = "isLowercase"
    IS_UPPERCASE = "isUppercase"
    IS_UUID = "isUUID"
    IS_DATE = "isDate"
    IS_IN = "isIn"
    NOT_IN = "notIn"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    EQUALS = "equals"
    LEN = "len"
    MIN = "min"
    MAX = "max"
    IS = "is"
    REGEX = "regex"
    NOT = "not"
    NOT_REGEX = "notRegex"
    NOT_EMPTY = "notEmpty"
    IS_NULL = "isNull"
    NOT_NULL = "notNull"
    IS_MOBILE_PHONE = "isMobilePhone"
    IS_IMMUTABLE = "isImmutable"


# Predicates that take a locale as their only argument.
LOCALE_AWARE = frozenset(
    {Predicate.IS_ALPHA.value, Predicate.IS_ALPHANUMERIC.value, Predicate.IS_MOBILE_PHONE.value}
)

_ALPHA = {
    "en-US": "A-Za-z",
    "de-DE": "A-Za-zÄÖÜäöüß",
    "fr-FR": "A-Za-zÀÂÆÇÉÈÊËÏÎÔŒÙÛÜŸàâæçéèêëïîôœùûüÿ",
    "es-ES": "A-Za-zÁÉÍÑÓÚÜáéíñóúü",
    "it-IT": "A-Za-zÀÉÈÌÎÓÒÙàéèìîóòù",
    "pt-PT": "A-Za-zÃÁÀÂÄÇÉÊËÍÏÕÓÔÖÚÜãáàâäçéêëíïõóôöúü",
    "nl-NL": "A-Za-zÁÉËÏÓÖÜÚáéëïóöüú",
    "pl-PL": "A-Za-zĄĆĘŚŁŃÓŻŹąćęśłńóżź",
    "ru-RU": "А-ЯЁа-яё",
    "uk-UA": "А-ЩЬЮЯЄIЇҐіа-щьюяєїґ",
}

_UUID = {
    "3": re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-3[0-9A-F]{3}-[0-9A-F]{4}-[0-9A-F]{12}$", re.I),
    "4": re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-4[0-9A-F]{3}-[89AB][0-9A-F]{3}-[0-9A-F]{12}$", re.I),
    "5": re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-5[0-9A-F]{3}-[89AB][0-9A-F]{3}-[0-9A-F]{12}$", re.I),
    "all": re.compile(r"^[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}$", re.I),
}

_INT = re.compile(r"^[-+]?(?:[1-9][0-9]*|0)$")
_FLOAT = re.compile(r"^[-+]?(?:[0-9]+)?(?:\.[0-9]*)?(?:[eE][-+]?[0-9]+)?$")
_DECIMAL = re.compile(r"^[-+]?(?:[0-9]+)?(?:\.[0-9]+)?$")
_NUMERIC = re.compile(r"^[-+]?[0-9]+$")
_HOST_LABEL = re.compile(r"^(?!-)[a-z0-9¡-￿-]{1,63}(?<!-)$", re.I)
_TLD = re.compile(r"^(?:[a-z¡-￿]{2,}|xn--[a-z0-9-]{2,})$", re.I)
_BLANK = re.compile(r"^[\s\t\r\n]*$")
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def _options(options: Any) -> Mapping[str, Any]:
    return options if isinstance(options, Mapping) else {}


def _locale_chars(locale: Any) -> str:
    if not isinstance(locale, str) or locale not in _ALPHA:
        raise ValueError(f"Invalid locale '{locale}'")
    return _ALPHA[locale]


def is_email(text: str, options: Any = None, *_: Any) -> bool:
    opts = _options(options)
    candidate = text
    if opts.get("allow_display_name"):
        match = re.match(r"^[^<]*<(.+)>\s*$", text)
        if match:
            candidate = match.group(1)
    try:
        validate_email(
            candidate,
            check_deliverability=False,
            allow_smtputf8=opts.get("allow_utf8_local_part", True),
        )
    except EmailNotValidError:
        return False
    return True


def _is_fqdn(host: str) -> bool:
    labels = host.rstrip(".").split(".")
    if len(labels) < 2 or not _TLD.match(labels[-1]):
        return False
    return all(_HOST_LABEL.match(label) for label in labels)


def is_url(text: str, options: Any = None, *_: Any) -> bool:
    opts = _options(options)
    if not text or len(text) >= 2083 or re.search(r"[\s<>]", text):
        return False
    protocols = opts.get("protocols", ("http", "https", "ftp"))
    if "://" not in text:
        if opts.get("require_protocol"):
            return False
        text = "http://" + text
    try:
        parts = urlsplit(text)
        host, _port = parts.hostname, parts.port
    except ValueError:
        return False
    if parts.scheme.lower() not in protocols or not host:
        return False
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return _is_fqdn(host)
    return True


def is_ip(text: str, version: Any = None, *_: Any) -> bool:
    try:
        address = ipaddress.ip_address(text)
    except ValueError:
        return False
    if version in (None, "", True):
        return True
    return str(address.version) == str(version)


def is_ipv4(text: str, *_: Any) -> bool:
    return is_ip(text, 4)


def is_ipv6(text: str, *_: Any) -> bool:
    return is_ip(text, 6)


def is_alpha(text: str, locale: str = "en-US", *_: Any) -> bool:
    return re.fullmatch(f"[{_locale_chars(locale)}]+", text) is not None


def is_alphanumeric(text: str, locale: str = "en-US", *_: Any) -> bool:
    return re.fullmatch(f"[0-9{_locale_chars(locale)}]+", text) is not None


def _in_bounds(number: float, opts: Mapping[str, Any]) -> bool:
    if "min" in opts and number < opts["min"]:
        return False
    if "max" in opts and number > opts["max"]:
        return False
    if "lt" in opts and not number < opts["lt"]:
        return False
    if "gt" in opts and not number > opts["gt"]:
        return False
    return True


def is_numeric(text: str, *_: Any) -> bool:
    return _NUMERIC.match(text) is not None


def is_int(text: str, options: Any = None, *_: Any) -> bool:
    if not _INT.match(text):
        return False
    return _in_bounds(int(text), _options(options))


def is_float(text: str, options: Any = None, *_: Any) -> bool:
    if text in ("", ".", "-", "+") or not _FLOAT.match(text):
        return False
    return _in_bounds(float(text), _options(options))


def is_decimal(text: str, *_: Any) -> bool:
    return text not in ("", ".", "-", "+") and _DECIMAL.match(text) is not None


def is_lowercase(text: str, *_: Any) -> bool:
    return text == text.lower()


def is_uppercase(text: str, *_: Any) -> bool:
    return text == text.upper()


def is_uuid(text: str, version: Any = "all", *_: Any) -> bool:
    pattern = _UUID.get(str(version) if version not in (None, True) else "all")
    return pattern is not None and pattern.match(text) is not None


def is_date(text: str, *_: Any) -> bool:
    for parse in (datetime.fromisoformat, date.fromisoformat):
        try:
            parse(text)
        except ValueError:
            continue
        return True
    return False


def is_in(text: str, options: Any = (), *_: Any) -> bool:
    return text in [str(option) for option in options]


def not_in(text: str, options: Any = (), *_: Any) -> bool:
    return not is_in(text, options)


def contains(text: str, seed: Any = "", *_: Any) -> bool:
    return str(seed) in text


def not_contains(text: str, seed: Any = "", *_: Any) -> bool:
    return not contains(text, seed)


def equals(text: str, comparison: Any = None, *_: Any) -> bool:
    return text == str(comparison)


def length(text: str, min_length: int = 0, max_length: int | None = None, *_: Any) -> bool:
    size = len(text)
    return size >= min_length and (max_length is None or size <= max_length)


def minimum(text: str, bound: float, *_: Any) -> bool:
    try:
        return float(text) >= bound
    except ValueError:
        return False


def maximum(text: str, bound: float, *_: Any) -> bool:
    try:
        return float(text) <= bound
    except ValueError:
        return False


def matches(text: str, pattern: str | re.Pattern[str], modifiers: str = "", *_: Any) -> bool:
    if not isinstance(pattern, re.Pattern):
        flags = 0
        for char in modifiers or "":
            flags |= _REGEX_FLAGS.get(char, 0)
        pattern = re.compile(pattern, flags)
    return pattern.search(text) is not None


def not_matches(text: str, pattern: str | re.Pattern[str], modifiers: str = "", *_: Any) -> bool:
    return not matches(text, pattern, modifiers)


def not_empty(text: str, *_: Any) -> bool:
    return _BLANK.match(text) is None


def is_null(text: str, *_: Any) -> bool:
    return text == ""


def not_null(text: str, *_: Any) -> bool:
    return text is not None


def is_mobile_phone(text: str, locale: str = "any", *_: Any) -> bool:
    if locale in ("any", None, True):
        region = None
    elif isinstance(locale, str) and re.fullmatch(r"[a-z]{2}-[A-Z]{2}", locale):
        region = locale[-2:]
    else:
        raise ValueError(f"Invalid locale '{locale}'")
    try:
        number = phonenumbers.parse(text, region)
    except NumberParseException:
        return False
    if not phonenumbers.is_valid_number(number):
        return False
    return phonenumbers.number_type(number) in (
        PhoneNumberType.MOBILE,
        PhoneNumberType.FIXED_LINE_OR_MOBILE,
    )


def is_immutable(text: str, *_: Any) -> bool:
    # Unbound: nothing to compare against.
    return True


class PredicateRegistry:
    """Mapping from predicate name to predicate function."""

    def __init__(self, predicates: Mapping[str, PredicateFn] | None = None):
        self._predicates: dict[str, PredicateFn] = dict(predicates or {})

    def extend(self, name: str, predicate: PredicateFn) -> None:
        """Register (or replace) a named predicate."""
        if not callable(predicate):
            raise TypeError(f"Predicate {name!r} must be callable")
        self._predicates[name] = predicate

    def resolve(self, name: str) -> PredicateFn:
        try:
            return self._predicates[name]
        except KeyError:
            raise UnknownPredicateError(name) from None

    def names(self) -> list[str]:
        return list(self._predicates)

    def copy(self) -> PredicateRegistry:
        return PredicateRegistry(self._predicates)

    def for_record(self, record: Record) -> PredicateRegistry:
        """Copy with `isImmutable` bound to `record`."""

        def bound_is_immutable(text: str, _payload: Any = None, field: str | None = None, *_: Any) -> bool:
            return record.is_new_record or record.values.get(field) == record.previous(field)

        bound = self.copy()
        bound.extend(Predicate.IS_IMMUTABLE.value, bound_is_immutable)
        return bound

    def __contains__(self, name: object) -> bool:
        return name in self._predicates

    def __len__(self) -> int:
        return len(self._predicates)


default_registry = PredicateRegistry(
    {
        Predicate.IS_EMAIL.value: is_email,
        Predicate.IS_URL.value: is_url,
        Predicate.IS_URL_LEGACY.value: is_url,
        Predicate.IS_IP.value: is_ip,
        Predicate.IS_IPV4.value: is_ipv4,
        Predicate.IS_IPV6.value: is_ipv6,
        Predicate.IS_ALPHA.value: is_alpha,
        Predicate.IS_ALPHANUMERIC.value: is_alphanumeric,
        Predicate.IS_NUMERIC.value: is_numeric,
        Predicate.IS_INT.value: is_int,
        Predicate.IS_FLOAT.value: is_float,
        Predicate.IS_DECIMAL.value: is_decimal,
        Predicate.IS_LOWERCASE.value: is_lowercase,
        Predicate.IS_UPPERCASE.value: is_uppercase,
        Predicate.IS_UUID.value: is_uuid,
        Predicate.IS_DATE.value: is_date,
        Predicate.IS_IN.value: is_in,
        Predicate.NOT_IN.value: not_in,
        Predicate.CONTAINS.value: contains,
        Predicate.NOT_CONTAINS.value: not_contains,
        Predicate.EQUALS.value: equals,
        Predicate.LEN.value: length,
        Predicate.MIN.value: minimum,
        Predicate.MAX.value: maximum,
        Predicate.IS.value: matches,
        Predicate.REGEX.value: matches,
        Predicate.NOT.value: not_matches,
        Predicate.NOT_REGEX.value: not_matches,
        Predicate.NOT_EMPTY.value: not_empty,
        Predicate.IS_NULL.value: is_null,
        Predicate.NOT_NULL.value: not_null,
        Predicate.IS_MOBILE_PHONE.value: is_mobile_phone,
        Predicate.IS_IMMUTABLE.value: is_immutable,
    }
)
