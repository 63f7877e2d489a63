"""
Answer data to wire rdata.

Converts the structured answer data produced by the record formatter into
dnspython rdata objects. Structured values use the field names of the
formatter output (``{"preference": 10, "exchange": "mail.example"}`` for
MX, ``{"keyTag": ..., "digest": ...}`` for DS, ...). Binary fields accept
hex or base64 text (per field), a list of byte values, or the JSON form of
a byte buffer: ``{"type": "Buffer", "data": [1, 2, 3]}``.

Types dnspython has no rdata class for are packed with the layout of an
equivalent type under their own type code (TA as DS, KEY and RKEY as
DNSKEY, SIG as RRSIG).
"""

import base64
import binascii
from typing import Any, Callable, Dict, Iterable, List

import dns.exception
import dns.name
import dns.rdata
import dns.rdataclass
import dns.rdatatype
from dns.rdtypes.ANY.LOC import LOC
from dns.rdtypes.ANY.RRSIG import RRSIG
from dns.rdtypes.ANY.TKEY import TKEY
from dns.rdtypes.ANY.TSIG import TSIG
from dns.rdtypes.ANY.TXT import TXT

IN = dns.rdataclass.IN

# Registered type codes dnspython does not name
EXTRA_TYPE_CODES = {
    "EID": 31,
    "NIMLOC": 32,
    "ATMA": 34,
    "RKEY": 57,
    "TALINK": 58,
}

# LOC wire values are offset so that the equator/prime meridian sit at 2^31
# and altitude 0 sits 100000 m above the reference spheroid floor
_LOC_EQUATOR = 2**31
_LOC_ALTITUDE_BASE = 10000000


class RdataError(ValueError):
    """Answer data cannot be encoded for its record type."""


def type_code(rtype: str) -> int:
    """Numeric RR type for a type tag."""
    tag = rtype.upper()
    if tag in EXTRA_TYPE_CODES:
        return EXTRA_TYPE_CODES[tag]
    try:
        return dns.rdatatype.from_text(tag)
    except dns.rdatatype.UnknownRdatatype as e:
        raise RdataError(f"Unknown record type: {rtype}") from e


def _to_bytes(value: Any, encoding: str) -> bytes:
    """Decode a binary field given as text, a byte list or a Buffer object."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, dict) and value.get("type") == "Buffer":
        value = value.get("data", [])
    if isinstance(value, list):
        return bytes(value)
    if not isinstance(value, str):
        raise RdataError(f"Expected binary data, got {type(value).__name__}")

    text = "".join(value.split())
    try:
        if encoding == "hex":
            return bytes.fromhex(text)
        if encoding == "base32hex":
            padded = text.upper() + "=" * (-len(text) % 8)
            return base64.b32hexdecode(padded)
        return base64.b64decode(text, validate=True)
    except (ValueError, binascii.Error) as e:
        raise RdataError(f"Invalid {encoding} data") from e


def _hex(value: Any) -> str:
    data = _to_bytes(value, "hex")
    return data.hex() if data else "-"


def _b64(value: Any) -> str:
    return base64.b64encode(_to_bytes(value, "base64")).decode("ascii")


def _b32hex(value: Any) -> str:
    return base64.b32hexencode(_to_bytes(value, "base32hex")).decode("ascii").rstrip("=")


def _name(value: Any) -> str:
    if value is None or value == "":
        return "."
    return str(value)


def _quote(value: Any) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _int(data: Dict[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key)
    if value is None:
        return default
    return int(value)


def _types(values: Iterable[Any]) -> str:
    return " ".join(
        dns.rdatatype.to_text(v) if isinstance(v, int) else str(v).upper() for v in values
    )


def _require_dict(data: Any, rtype: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise RdataError(f"{rtype} data must be an object")
    return data


def _from_text(rtype: str, text: str) -> dns.rdata.Rdata:
    return dns.rdata.from_text(
        IN, dns.rdatatype.from_text(rtype), text, origin=dns.name.root, relativize=False
    )


def _wrap(rtype: str, layout: dns.rdata.Rdata) -> dns.rdata.Rdata:
    """Re-type an rdata whose wire layout ``rtype`` shares."""
    return dns.rdata.GenericRdata(IN, type_code(rtype), layout.to_wire())


def _plain(rtype: str, data: Any) -> dns.rdata.Rdata:
    if not isinstance(data, str):
        raise RdataError(f"{rtype} data must be a string")
    return _from_text(rtype, data)


def _text_list(rtype: str, data: Any) -> dns.rdata.Rdata:
    if isinstance(data, (str, bytes)) or (isinstance(data, dict) and data.get("type") == "Buffer"):
        data = [data]
    if not isinstance(data, list):
        raise RdataError(f"{rtype} data must be a list of strings")

    strings: List[bytes] = []
    for item in data:
        if isinstance(item, (bytes, bytearray, dict)):
            chunk_source = _to_bytes(item, "hex")
        else:
            chunk_source = str(item).encode("utf-8")
        # Character-strings are at most 255 octets
        if not chunk_source:
            strings.append(b"")
        for offset in range(0, len(chunk_source), 255):
            strings.append(chunk_source[offset : offset + 255])

    code = dns.rdatatype.from_text(rtype)
    cls = dns.rdata.get_rdata_class(IN, code)
    if cls is dns.rdata.GenericRdata:
        return _wrap(rtype, TXT(IN, dns.rdatatype.TXT, strings))
    return cls(IN, code, strings)


def _mx(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(rtype, f"{_int(data, 'preference')} {_name(data.get('exchange'))}")


def _uri(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype, f"{_int(data, 'priority')} {_int(data, 'weight')} {_quote(data.get('target'))}"
    )


def _px(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'preference')} {_name(data.get('map822'))} {_name(data.get('mapx400'))}",
    )


def _rt(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype, f"{_int(data, 'preference')} {_name(data.get('intermediateHost'))}"
    )


def _srv(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'priority')} {_int(data, 'weight')} {_int(data, 'port')} "
        f"{_name(data.get('target'))}",
    )


def _soa(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    if not data.get("mname") or not data.get("rname"):
        raise RdataError("SOA data requires mname and rname")
    return _from_text(
        rtype,
        f"{data['mname']} {data['rname']} {_int(data, 'serial')} {_int(data, 'refresh')} "
        f"{_int(data, 'retry')} {_int(data, 'expire')} {_int(data, 'minimum')}",
    )


def _svc_param(key: str, value: Any) -> str:
    if value is True or value is None:
        return key
    if key == "ech":
        return f"{key}={_b64(value)}"
    if isinstance(value, list):
        return f"{key}={','.join(str(v) for v in value)}"
    return f"{key}={value}"


def _svcb(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    params = data.get("value") or data.get("params") or data.get("svcParams") or {}
    if not isinstance(params, dict):
        raise RdataError(f"{rtype} parameters must be an object")

    parts = [str(_int(data, "priority", 1)), _name(data.get("target"))]
    parts.extend(_svc_param(str(key), value) for key, value in params.items())
    return _from_text(rtype, " ".join(parts))


def _naptr(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'order')} {_int(data, 'preference')} {_quote(data.get('flags'))} "
        f"{_quote(data.get('services'))} {_quote(data.get('regexp'))} "
        f"{_name(data.get('replacement'))}",
    )


def _caa(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    flags = _int(data, "flags")
    if data.get("issuerCritical"):
        flags |= 128
    return _from_text(rtype, f"{flags} {data.get('tag', 'issue')} {_quote(data.get('value'))}")


def _hinfo(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(rtype, f"{_quote(data.get('cpu'))} {_quote(data.get('os'))}")


def _loc_precision(value: int) -> float:
    """Decode a LOC size/precision octet (mantissa, power of ten) to centimetres."""
    return float(((value >> 4) & 0x0F) * 10 ** (value & 0x0F))


def _loc(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    for key in ("latitude", "longitude", "altitude"):
        if data.get(key) is None:
            raise RdataError(f"LOC data requires {key}")

    return LOC(
        IN,
        dns.rdatatype.LOC,
        (int(data["latitude"]) - _LOC_EQUATOR) / 3600000.0,
        (int(data["longitude"]) - _LOC_EQUATOR) / 3600000.0,
        float(int(data["altitude"]) - _LOC_ALTITUDE_BASE),
        _loc_precision(_int(data, "size", 0x12)),
        _loc_precision(_int(data, "horizPre", 0x16)),
        _loc_precision(_int(data, "vertPre", 0x13)),
    )


def _gpos(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype, f"{data.get('latitude')} {data.get('longitude')} {data.get('altitude')}"
    )


def _rp(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(rtype, f"{_name(data.get('mbox'))} {_name(data.get('txt'))}")


def _afsdb(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(rtype, f"{_int(data, 'subtype')} {_name(data.get('hostname'))}")


def _ds(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    text = (
        f"{_int(data, 'keyTag')} {_int(data, 'algorithm')} {_int(data, 'digestType')} "
        f"{_hex(data.get('digest', ''))}"
    )
    if rtype == "TA":
        return _wrap(rtype, _from_text("DS", text))
    return _from_text(rtype, text)


def _dnskey(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    key = data.get("key", data.get("publicKey", ""))
    text = (
        f"{_int(data, 'flags')} {_int(data, 'protocol', 3)} {_int(data, 'algorithm')} "
        f"{_b64(key)}"
    )
    if rtype in ("KEY", "RKEY"):
        return _wrap(rtype, _from_text("DNSKEY", text))
    return _from_text(rtype, text)


def _rrsig(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    covered = data.get("typeCovered", "A")
    rrsig = RRSIG(
        IN,
        dns.rdatatype.RRSIG,
        covered if isinstance(covered, int) else dns.rdatatype.from_text(str(covered).upper()),
        _int(data, "algorithm"),
        _int(data, "labels"),
        _int(data, "originalTTL"),
        _int(data, "expiration"),
        _int(data, "inception"),
        _int(data, "keyTag"),
        dns.name.from_text(_name(data.get("signersName"))),
        _to_bytes(data.get("signature", ""), "base64"),
    )
    if rtype == "SIG":
        return _wrap(rtype, rrsig)
    return rrsig


def _nsec(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype, f"{_name(data.get('nextDomain'))} {_types(data.get('rrtypes', []))}".strip()
    )


def _nsec3(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    next_domain = data.get("nextDomain", "")
    if not isinstance(next_domain, str):
        next_domain = _b32hex(next_domain)
    return _from_text(
        rtype,
        f"{_int(data, 'algorithm')} {_int(data, 'flags')} {_int(data, 'iterations')} "
        f"{_hex(data.get('salt', ''))} {next_domain} {_types(data.get('rrtypes', []))}".strip(),
    )


def _nsec3param(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'algorithm')} {_int(data, 'flags')} {_int(data, 'iterations')} "
        f"{_hex(data.get('salt', ''))}",
    )


def _tlsa(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'usage')} {_int(data, 'selector')} {_int(data, 'matchingType')} "
        f"{_hex(data.get('certificate', ''))}",
    )


def _cert(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    cert_type = data.get("certType", data.get("type", 1))
    return _from_text(
        rtype,
        f"{cert_type} {_int(data, 'keyTag')} {data.get('algorithm', 0)} "
        f"{_b64(data.get('certificate', ''))}",
    )


def _sshfp(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'algorithm')} {_int(data, 'hash')} {_hex(data.get('fingerprint', ''))}",
    )


def _ipseckey(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    gateway_type = _int(data, "gatewayType")
    gateway = _name(data.get("gateway")) if gateway_type in (0, 3) else data.get("gateway")
    return _from_text(
        rtype,
        f"{_int(data, 'precedence')} {gateway_type} {_int(data, 'algorithm')} "
        f"{gateway} {_b64(data.get('publicKey', ''))}",
    )


def _tkey(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return TKEY(
        IN,
        dns.rdatatype.TKEY,
        dns.name.from_text(_name(data.get("algorithm"))),
        _int(data, "inception"),
        _int(data, "expiration"),
        _int(data, "mode"),
        _int(data, "error"),
        _to_bytes(data.get("key", ""), "base64"),
        _to_bytes(data.get("otherData", ""), "base64"),
    )


def _tsig(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return TSIG(
        IN,
        dns.rdatatype.TSIG,
        dns.name.from_text(_name(data.get("algorithm"))),
        _int(data, "timeSigned"),
        _int(data, "fudge", 300),
        _to_bytes(data.get("mac", ""), "base64"),
        _int(data, "originalId"),
        _int(data, "error"),
        _to_bytes(data.get("otherData", ""), "base64"),
    )


def _hip(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    servers = " ".join(_name(s) for s in data.get("rendezvousServers", []))
    return _from_text(
        rtype,
        f"{_int(data, 'pkAlgorithm')} {_hex(data.get('hit', ''))} {_b64(data.get('pk', ''))} "
        f"{servers}".strip(),
    )


def _csync(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'serial')} {_int(data, 'flags')} {_types(data.get('types', []))}".strip(),
    )


def _zonemd(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    return _from_text(
        rtype,
        f"{_int(data, 'serial')} {_int(data, 'scheme')} {_int(data, 'hashAlg')} "
        f"{_hex(data.get('digest', ''))}",
    )


def _talink(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    wire = (
        dns.name.from_text(_name(data.get("previous"))).to_wire()
        + dns.name.from_text(_name(data.get("next"))).to_wire()
    )
    return dns.rdata.GenericRdata(IN, type_code(rtype), wire)


def _amtrelay(rtype: str, data: Any) -> dns.rdata.Rdata:
    data = _require_dict(data, rtype)
    relay_type = _int(data, "type")
    relay = _name(data.get("relay")) if relay_type in (0, 3) else data.get("relay")
    return _from_text(
        rtype,
        f"{_int(data, 'precedence')} {1 if data.get('discoveryOptional') else 0} "
        f"{relay_type} {relay}",
    )


def _base64_blob(rtype: str, data: Any) -> dns.rdata.Rdata:
    if isinstance(data, str):
        return _from_text(rtype, data)
    return _from_text(rtype, _b64(data))


def _apl_item(item: Any) -> str:
    if isinstance(item, str):
        return item
    item = _require_dict(item, "APL")
    negation = "!" if item.get("negation") else ""
    address = item.get("address", item.get("afdpart", ""))
    return f"{negation}{_int(item, 'family', 1)}:{address}/{_int(item, 'prefix')}"


def _apl(rtype: str, data: Any) -> dns.rdata.Rdata:
    if isinstance(data, str):
        return _from_text(rtype, data)
    if isinstance(data, dict):
        data = data.get("prefixes", [])
    if not isinstance(data, list):
        raise RdataError("APL data must be a list of prefixes")
    return _from_text(rtype, " ".join(_apl_item(item) for item in data))


def _hex_blob(rtype: str, data: Any) -> dns.rdata.Rdata:
    return dns.rdata.GenericRdata(IN, type_code(rtype), _to_bytes(data, "hex"))


Converter = Callable[[str, Any], dns.rdata.Rdata]

CONVERTERS: Dict[str, Converter] = {
    "A": _plain,
    "AAAA": _plain,
    "CNAME": _plain,
    "NS": _plain,
    "PTR": _plain,
    "DNAME": _plain,
    "TXT": _text_list,
    "SPF": _text_list,
    "AVC": _text_list,
    "NINFO": _text_list,
    "MX": _mx,
    "KX": _mx,
    "URI": _uri,
    "PX": _px,
    "RT": _rt,
    "SRV": _srv,
    "SOA": _soa,
    "HTTPS": _svcb,
    "SVCB": _svcb,
    "NAPTR": _naptr,
    "CAA": _caa,
    "HINFO": _hinfo,
    "LOC": _loc,
    "GPOS": _gpos,
    "RP": _rp,
    "AFSDB": _afsdb,
    "DS": _ds,
    "CDS": _ds,
    "DLV": _ds,
    "TA": _ds,
    "DNSKEY": _dnskey,
    "CDNSKEY": _dnskey,
    "KEY": _dnskey,
    "RKEY": _dnskey,
    "RRSIG": _rrsig,
    "SIG": _rrsig,
    "NSEC": _nsec,
    "NSEC3": _nsec3,
    "NSEC3PARAM": _nsec3param,
    "TLSA": _tlsa,
    "SMIMEA": _tlsa,
    "CERT": _cert,
    "SSHFP": _sshfp,
    "IPSECKEY": _ipseckey,
    "TKEY": _tkey,
    "TSIG": _tsig,
    "HIP": _hip,
    "CSYNC": _csync,
    "ZONEMD": _zonemd,
    "TALINK": _talink,
    "AMTRELAY": _amtrelay,
    "DHCID": _base64_blob,
    "OPENPGPKEY": _base64_blob,
    "EUI48": _plain,
    "EUI64": _plain,
    "APL": _apl,
    "EID": _hex_blob,
    "NIMLOC": _hex_blob,
    "ATMA": _hex_blob,
}


def _unknown(rtype: str, data: Any) -> dns.rdata.Rdata:
    """Types outside the table: presentation text, including RFC 3597 ``\\#`` form."""
    if not isinstance(data, str):
        raise RdataError(f"No encoder for structured {rtype} data")
    return dns.rdata.from_text(
        IN, type_code(rtype), data, origin=dns.name.root, relativize=False
    )


def to_rdata(rtype: str, data: Any) -> dns.rdata.Rdata:
    """Build the rdata for one answer.

    Raises:
        RdataError: If ``data`` cannot be encoded as ``rtype``
    """
    tag = rtype.upper()
    converter = CONVERTERS.get(tag, _unknown)
    try:
        return converter(tag, data)
    except RdataError:
        raise
    except (dns.exception.DNSException, ValueError, TypeError, KeyError, OverflowError) as e:
        raise RdataError(f"Cannot encode {tag} data: {e}") from e
