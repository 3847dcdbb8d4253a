"""Tests for cloudsaves.naming module."""

import pytest

from cloudsaves.naming import (
    build_tag,
    decode_name,
    display_name,
    encode_name,
    parse_tag,
    try_decode_name,
)


class TestEncodeName:
    """Tests for encode_name()/decode_name()."""

    @pytest.mark.parametrize("name", ["My run", "存档一", "a/b c?", "🎲 dice", "x"])
    def test_decode_inverts_encode(self, name):
        assert decode_name(encode_name(name)) == name

    def test_encoding_is_ref_safe(self):
        """No padding, slashes or plus signs end up in the tag."""
        token = encode_name("a?>~b")
        assert "=" not in token
        assert "/" not in token
        assert "+" not in token

    def test_known_value(self):
        assert encode_name("My run") == "TXkgcnVu"

    def test_decode_tolerates_padding(self):
        assert decode_name("eA==") == "x"

    def test_invalid_token_falls_back_to_raw(self):
        assert try_decode_name("not base64!") is None
        assert decode_name("not base64!") == "not base64!"

    def test_non_utf8_bytes_fall_back(self):
        # "_w" decodes to the single byte 0xff
        assert try_decode_name("_w") is None


class TestBuildTag:
    """Tests for build_tag()/parse_tag()."""

    def test_build_with_explicit_millis(self):
        assert build_tag("My run", millis=1700000000000) == "save_1700000000000_TXkgcnVu"

    def test_build_uses_current_time(self):
        parsed = parse_tag(build_tag("now"))
        assert parsed is not None
        assert parsed.millis > 1_600_000_000_000

    def test_parse_round_trips(self):
        parsed = parse_tag("save_1700000000000_TXkgcnVu")
        assert parsed.millis == 1700000000000
        assert parsed.token == "TXkgcnVu"
        assert parsed.name == "My run"
        assert parsed.decoded is True

    @pytest.mark.parametrize("tag", ["v1.0", "save_", "save_abc_TXk", "backup_1_TXk", "save_123"])
    def test_foreign_tags_are_rejected(self, tag):
        assert parse_tag(tag) is None

    def test_undecodable_name_is_surfaced_raw(self):
        parsed = parse_tag("save_1_%%%")
        assert parsed is not None
        assert parsed.decoded is False
        assert parsed.name == "%%%"

    def test_display_name(self):
        assert display_name("save_1_TXkgcnVu") == "My run"
        assert display_name("v1.0") == "v1.0"
