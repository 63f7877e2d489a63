"""
Resource Record Formatter

Converts a stored record value (a flat string, possibly holding JSON) into
the structured answer data the wire encoder expects for its RR type.

Every supported type tag maps to one formatting strategy:

- ``OpaqueFormat``: the stored string is the answer (A, AAAA, CNAME, ...)
- ``TextListFormat``: a list of character-strings (TXT, SPF, ...)
- ``PriorityTupleFormat``: preference/priority tuples that can be
  synthesised from a plain target string and the record priority (MX, KX, URI)
- ``StructuredFormat``: JSON-only shapes with a per-type fallback when the
  stored value is not JSON (SRV, SOA, HTTPS, the DNSSEC family, ...)
- ``ParsedFormat``: binary blobs returned as parsed (object or raw string)

Unknown type tags fall back to the raw string. Formatting never raises.
"""

import json
from typing import Any, Callable, Dict, Optional

FormattedData = Any
DefaultFactory = Callable[[str, Optional[int]], FormattedData]


def parse_record_value(value: str) -> Any:
    """Best-effort JSON parse of a stored value.

    Only values that look like a JSON object or array are parsed; anything
    else, including malformed JSON, is returned unchanged.
    """
    trimmed = value.strip()
    if not (trimmed.startswith("{") or trimmed.startswith("[")):
        return value

    try:
        return json.loads(trimmed)
    except (ValueError, RecursionError):
        return value


def _is_structured(parsed: Any) -> bool:
    return isinstance(parsed, (dict, list))


class RecordFormat:
    """Formatting strategy for one family of RR types."""

    family = "opaque"

    def format(self, value: str, parsed: Any, priority: Optional[int]) -> FormattedData:
        raise NotImplementedError


class OpaqueFormat(RecordFormat):
    family = "opaque"

    def format(self, value, parsed, priority):
        return value


class TextListFormat(RecordFormat):
    family = "text"

    def format(self, value, parsed, priority):
        if isinstance(parsed, list):
            return parsed
        return [value]


class PriorityTupleFormat(RecordFormat):
    """Tuple types keyed by a target field.

    A parsed object that carries ``key_field`` is returned verbatim;
    otherwise the tuple is built from the raw string and the priority.
    """

    family = "priority"

    def __init__(self, key_field: str, build: DefaultFactory):
        self.key_field = key_field
        self.build = build

    def format(self, value, parsed, priority):
        if isinstance(parsed, dict) and parsed.get(self.key_field):
            return parsed
        return self.build(value, priority)


class StructuredFormat(RecordFormat):
    """JSON-only types.

    ``default`` builds the value used when the stored string is not JSON.
    ``fill_priority`` names a priority policy applied to parsed objects:
    ``"always"`` sets a missing priority to ``priority or 0``, ``"given"``
    sets it only when the record carries a priority.
    """

    family = "structured"

    def __init__(self, default: Optional[DefaultFactory] = None, fill_priority: Optional[str] = None):
        self.default = default or (lambda value, priority: {})
        self.fill_priority = fill_priority

    def format(self, value, parsed, priority):
        if not _is_structured(parsed):
            return self.default(value, priority)

        if isinstance(parsed, dict) and "priority" not in parsed:
            if self.fill_priority == "always":
                parsed = dict(parsed, priority=priority or 0)
            elif self.fill_priority == "given" and priority is not None:
                parsed = dict(parsed, priority=priority)

        return parsed


class ParsedFormat(RecordFormat):
    family = "blob"

    def format(self, value, parsed, priority):
        return parsed


_OPAQUE = OpaqueFormat()
_TEXT = TextListFormat()
_STRUCTURED = StructuredFormat()
_BLOB = ParsedFormat()

_EXCHANGE = PriorityTupleFormat(
    "exchange",
    lambda value, priority: {"preference": priority or 10, "exchange": value},
)

RECORD_FORMATS: Dict[str, RecordFormat] = {
    # Names and addresses
    "A": _OPAQUE,
    "AAAA": _OPAQUE,
    "CNAME": _OPAQUE,
    "NS": _OPAQUE,
    "PTR": _OPAQUE,
    "DNAME": _OPAQUE,
    # Character-string lists
    "TXT": _TEXT,
    "SPF": _TEXT,
    "AVC": _TEXT,
    "NINFO": _TEXT,
    # Priority tuples
    "MX": _EXCHANGE,
    "KX": _EXCHANGE,
    "URI": PriorityTupleFormat(
        "target",
        lambda value, priority: {"priority": priority or 10, "weight": 1, "target": value},
    ),
    # Structured records with defaults
    "PX": StructuredFormat(
        lambda value, priority: {"preference": priority or 0, "map822": "", "mapx400": ""}
    ),
    "SRV": StructuredFormat(
        lambda value, priority: {
            "priority": priority or 0,
            "weight": 0,
            "port": 0,
            "target": value,
        },
        fill_priority="always",
    ),
    "SOA": _STRUCTURED,
    "HTTPS": StructuredFormat(
        lambda value, priority: {"priority": priority or 1, "target": ".", "value": {}},
        fill_priority="given",
    ),
    "SVCB": StructuredFormat(
        lambda value, priority: {"priority": priority or 1, "target": ".", "value": {}},
        fill_priority="given",
    ),
    "NAPTR": _STRUCTURED,
    "CAA": StructuredFormat(
        lambda value, priority: {"flags": 0, "tag": "issue", "value": value}
    ),
    "HINFO": StructuredFormat(lambda value, priority: {"cpu": "INTEL-386", "os": "UNIX"}),
    "LOC": _STRUCTURED,
    "GPOS": _STRUCTURED,
    "RP": _STRUCTURED,
    "AFSDB": _STRUCTURED,
    "RT": StructuredFormat(
        lambda value, priority: {"preference": priority or 0, "intermediateHost": value}
    ),
    # DNSSEC, crypto and other binary-carrying structures
    "DS": _STRUCTURED,
    "DNSKEY": _STRUCTURED,
    "RRSIG": _STRUCTURED,
    "NSEC": _STRUCTURED,
    "NSEC3": _STRUCTURED,
    "NSEC3PARAM": _STRUCTURED,
    "DLV": _STRUCTURED,
    "CDS": _STRUCTURED,
    "CDNSKEY": _STRUCTURED,
    "TA": _STRUCTURED,
    "KEY": _STRUCTURED,
    "TLSA": _STRUCTURED,
    "SMIMEA": _STRUCTURED,
    "CERT": _STRUCTURED,
    "SSHFP": _STRUCTURED,
    "IPSECKEY": _STRUCTURED,
    "TKEY": _STRUCTURED,
    "TSIG": _STRUCTURED,
    "SIG": _STRUCTURED,
    "RKEY": _STRUCTURED,
    "HIP": _STRUCTURED,
    "CSYNC": _STRUCTURED,
    "ZONEMD": _STRUCTURED,
    "TALINK": _STRUCTURED,
    "AMTRELAY": _STRUCTURED,
    # Opaque blobs: parsed JSON if present, else the raw string
    "DHCID": _BLOB,
    "EID": _BLOB,
    "NIMLOC": _BLOB,
    "ATMA": _BLOB,
    "APL": _BLOB,
    "EUI48": _BLOB,
    "EUI64": _BLOB,
    "OPENPGPKEY": _BLOB,
}

SUPPORTED_TYPES = frozenset(RECORD_FORMATS)


def get_record_format(rtype: str) -> RecordFormat:
    """Strategy for a type tag; unknown tags are opaque."""
    return RECORD_FORMATS.get(rtype.upper(), _OPAQUE)


def format_record_data(
    rtype: str, value: Optional[str], priority: Optional[int] = None
) -> FormattedData:
    """Produce the answer data for a stored record.

    Args:
        rtype: RR type tag, case-insensitive
        value: Stored record value (plain string or JSON text)
        priority: Stored record priority, if any

    Returns:
        The structured answer data for ``rtype``
    """
    if value is None:
        value = ""
    elif not isinstance(value, str):
        value = str(value)

    parsed = parse_record_value(value)
    return get_record_format(rtype).format(value, parsed, priority)
