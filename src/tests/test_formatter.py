"""Tests for the resource record formatter."""

import json

import pytest

from doh_server.core.formatter import (
    RECORD_FORMATS,
    SUPPORTED_TYPES,
    format_record_data,
    get_record_format,
    parse_record_value,
)


class TestParseRecordValue:
    """Test speculative JSON parsing."""

    def test_plain_string_untouched(self):
        assert parse_record_value("203.0.113.5") == "203.0.113.5"

    def test_object_and_array_parsed(self):
        assert parse_record_value(' {"a": 1} ') == {"a": 1}
        assert parse_record_value("[1, 2]") == [1, 2]

    def test_malformed_json_returns_original(self):
        assert parse_record_value("{not json") == "{not json"
        assert parse_record_value("[1, 2") == "[1, 2"

    def test_scalar_json_not_parsed(self):
        # Only objects and arrays are candidates
        assert parse_record_value("42") == "42"
        assert parse_record_value('"quoted"') == '"quoted"'


class TestFormatFamilies:
    """Test each formatting family and its defaults."""

    @pytest.mark.parametrize("rtype", ["A", "AAAA", "CNAME", "NS", "PTR", "DNAME"])
    def test_opaque_types_return_raw(self, rtype):
        assert format_record_data(rtype, "value.example") == "value.example"

    def test_type_tag_is_case_insensitive(self):
        assert format_record_data("mx", "mail.acme.shop", 5) == {
            "preference": 5,
            "exchange": "mail.acme.shop",
        }

    def test_txt_wraps_plain_string(self):
        assert format_record_data("TXT", "v=spf1 -all") == ["v=spf1 -all"]

    def test_txt_keeps_parsed_list(self):
        assert format_record_data("TXT", '["part one", "part two"]') == ["part one", "part two"]

    def test_txt_wraps_json_object_as_string(self):
        assert format_record_data("SPF", '{"a": 1}') == ['{"a": 1}']

    def test_mx_synthesised_from_priority(self):
        assert format_record_data("MX", "mail.acme.shop", 20) == {
            "preference": 20,
            "exchange": "mail.acme.shop",
        }

    def test_mx_default_preference(self):
        assert format_record_data("MX", "mail.acme.shop")["preference"] == 10
        # A zero priority is treated as missing
        assert format_record_data("KX", "kx.acme.shop", 0)["preference"] == 10

    def test_mx_object_returned_verbatim(self):
        value = {"preference": 5, "exchange": "mx.acme.shop"}
        assert format_record_data("MX", json.dumps(value), 99) == value

    def test_mx_object_without_exchange_is_rebuilt(self):
        raw = '{"preference": 5}'
        assert format_record_data("MX", raw, 7) == {"preference": 7, "exchange": raw}

    def test_uri_defaults(self):
        assert format_record_data("URI", "https://acme.shop/") == {
            "priority": 10,
            "weight": 1,
            "target": "https://acme.shop/",
        }

    def test_srv_default_from_plain_string(self):
        assert format_record_data("SRV", "sip.acme.shop", 3) == {
            "priority": 3,
            "weight": 0,
            "port": 0,
            "target": "sip.acme.shop",
        }

    def test_srv_fills_missing_priority(self):
        raw = '{"weight": 5, "port": 5060, "target": "sip.acme.shop"}'
        assert format_record_data("SRV", raw)["priority"] == 0
        assert format_record_data("SRV", raw, 12)["priority"] == 12

    def test_srv_keeps_stored_priority(self):
        raw = '{"priority": 1, "weight": 5, "port": 5060, "target": "sip.acme.shop"}'
        assert format_record_data("SRV", raw, 12)["priority"] == 1

    def test_https_priority_only_when_given(self):
        raw = '{"target": ".", "value": {"alpn": ["h2"]}}'
        assert "priority" not in format_record_data("HTTPS", raw)
        assert format_record_data("HTTPS", raw, 2)["priority"] == 2

    def test_https_default(self):
        assert format_record_data("SVCB", "ignored") == {
            "priority": 1,
            "target": ".",
            "value": {},
        }

    def test_caa_default(self):
        assert format_record_data("CAA", "letsencrypt.org") == {
            "flags": 0,
            "tag": "issue",
            "value": "letsencrypt.org",
        }

    def test_hinfo_default(self):
        assert format_record_data("HINFO", "anything") == {"cpu": "INTEL-386", "os": "UNIX"}

    def test_px_and_rt_defaults(self):
        assert format_record_data("PX", "x", 4) == {"preference": 4, "map822": "", "mapx400": ""}
        assert format_record_data("RT", "relay.acme.shop") == {
            "preference": 0,
            "intermediateHost": "relay.acme.shop",
        }

    @pytest.mark.parametrize("rtype", ["SOA", "NAPTR", "LOC", "DS", "DNSKEY", "RRSIG", "NSEC3", "TLSA"])
    def test_structured_types_degrade_to_empty(self, rtype):
        assert format_record_data(rtype, "not structured") == {}
        assert format_record_data(rtype, "{broken json") == {}

    def test_blob_types_return_parsed_or_raw(self):
        assert format_record_data("DHCID", "AAIBY2/AuCccgoJbsaxcQc9TUapptP69lOjxfNuVAA2kjEA=") == (
            "AAIBY2/AuCccgoJbsaxcQc9TUapptP69lOjxfNuVAA2kjEA="
        )
        assert format_record_data("APL", '[{"family": 1, "prefix": 24}]') == [
            {"family": 1, "prefix": 24}
        ]

    def test_unknown_type_passes_through(self):
        assert format_record_data("TYPE65280", '{"x": 1}') == '{"x": 1}'
        assert get_record_format("WHATEVER").family == "opaque"

    def test_none_value(self):
        assert format_record_data("A", None) == ""
        assert format_record_data("TXT", None) == [""]


class TestRoundTrip:
    """Formatting a stored JSON serialisation reproduces the value."""

    @pytest.mark.parametrize(
        "rtype,value",
        [
            ("TXT", ["one", "two"]),
            ("MX", {"preference": 20, "exchange": "mail.acme.shop"}),
            ("URI", {"priority": 1, "weight": 2, "target": "https://acme.shop/"}),
            ("SRV", {"priority": 1, "weight": 2, "port": 443, "target": "svc.acme.shop"}),
            (
                "SOA",
                {
                    "mname": "ns1.acme.shop",
                    "rname": "hostmaster.acme.shop",
                    "serial": 2024010101,
                    "refresh": 3600,
                    "retry": 600,
                    "expire": 86400,
                    "minimum": 300,
                },
            ),
            ("HTTPS", {"priority": 1, "target": ".", "value": {"alpn": ["h2", "h3"]}}),
            ("CAA", {"flags": 0, "tag": "issue", "value": "letsencrypt.org"}),
            ("DS", {"keyTag": 12345, "algorithm": 13, "digestType": 2, "digest": "ab" * 32}),
            ("DNSKEY", {"flags": 257, "algorithm": 13, "key": {"type": "Buffer", "data": [1, 2, 3]}}),
            ("APL", [{"family": 1, "prefix": 24, "negation": False, "address": "192.0.2.0"}]),
        ],
    )
    def test_round_trip(self, rtype, value):
        assert format_record_data(rtype, json.dumps(value)) == value


def test_supported_type_table_size():
    assert len(SUPPORTED_TYPES) >= 50
    assert {"A", "TXT", "MX", "SRV", "HTTPS", "NSEC3", "OPENPGPKEY"} <= SUPPORTED_TYPES
    assert {fmt.family for fmt in RECORD_FORMATS.values()} == {
        "opaque",
        "text",
        "priority",
        "structured",
        "blob",
    }
