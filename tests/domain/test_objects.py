"""Tests for MantaObject and ObjectHeaders."""

from __future__ import annotations

import io

import pytest

from manta_client.domain.objects import MantaObject, ObjectHeaders
from manta_client.infra.storage.client import EncodingError


class TestObjectHeaders:
    def test_durability_is_coerced_to_int(self):
        headers = ObjectHeaders({"Durability-Level": "6"})

        assert headers["durability-level"] == 6
        assert headers.to_wire() == {"Durability-Level": "6"}

    @pytest.mark.parametrize("value", [0, -1, "two", True, None])
    def test_durability_rejects_invalid(self, value):
        with pytest.raises(EncodingError):
            ObjectHeaders({"durability-level": value})

    def test_counts_allow_zero(self):
        headers = ObjectHeaders({"content-length": "0", "result-set-size": 0})

        assert headers["Content-Length"] == 0
        assert headers["Result-Set-Size"] == 0

    def test_opaque_values_pass_through_as_strings(self):
        headers = ObjectHeaders({"m-owner": "yoda", "m-episode": 2})

        assert headers["M-Owner"] == "yoda"
        assert headers["m-episode"] == "2"

    def test_rejects_line_breaks(self):
        with pytest.raises(EncodingError):
            ObjectHeaders({"m-note": "one\r\ntwo"})

    def test_from_wire_keeps_malformed_values(self):
        headers = ObjectHeaders.from_wire({"durability-level": "lots", "etag": "abc"})

        assert headers["durability-level"] == "lots"
        assert headers["etag"] == "abc"

    def test_delete_and_len(self):
        headers = ObjectHeaders(etag="abc")
        del headers["ETAG"]

        assert len(headers) == 0


class TestMantaObject:
    def test_path_is_normalized(self):
        assert MantaObject("/tester//stor/a/").path == "/tester/stor/a"

    def test_relative_path_rejected(self):
        with pytest.raises(EncodingError):
            MantaObject("tester/stor/a")

    def test_plain_dict_headers_are_wrapped(self):
        obj = MantaObject("/tester/stor/a", headers={"durability-level": "3"})

        assert isinstance(obj.headers, ObjectHeaders)
        assert obj.durability_level == 3

    def test_directory_cannot_carry_content(self):
        with pytest.raises(EncodingError):
            MantaObject("/tester/stor/dir", content="x", is_directory=True)

    def test_local_string_content(self):
        obj = MantaObject("/tester/stor/a", content="héllo")

        assert obj.read_bytes() == "héllo".encode("utf-8")

    def test_local_stream_content(self):
        obj = MantaObject("/tester/stor/a", content=io.BytesIO(b"x" * 10))

        assert list(obj.iter_bytes(chunk_size=4)) == [b"xxxx", b"xxxx", b"xx"]

    def test_read_text_invalid_encoding(self):
        obj = MantaObject("/tester/stor/a", content=b"\xff\xfe")

        with pytest.raises(EncodingError):
            obj.read_text()

    def test_last_modified(self):
        obj = MantaObject(
            "/tester/stor/a", headers={"last-modified": "Thu, 01 Jan 2026 00:00:00 GMT"}
        )

        assert obj.last_modified.year == 2026
        assert MantaObject("/tester/stor/b").last_modified is None

    def test_close_without_stream_is_noop(self):
        obj = MantaObject("/tester/stor/a")

        with obj:
            assert not obj.has_stream

    def test_upload_content_of_local_object(self):
        assert MantaObject("/tester/stor/a", content="x").upload_content() == "x"
        assert MantaObject("/tester/stor/b").upload_content() is None
