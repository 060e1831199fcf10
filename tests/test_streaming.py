"""
Tests for feeding, rendering, sinks, configuration and step logs.
"""

import io
import json
import logging

import pytest
import yaml

from liststream import Collector, StreamHandler
from liststream.engine.config import (
    DEFAULT_CHUNK_SIZE,
    OutputFormat,
    resolve_chunk_size,
    resolve_format,
    resolve_objects,
)
from liststream.engine.logging import log_step, setup_logging
from liststream.engine.streaming import feed, iter_chunks, iter_json_lines, render


class TestFeeding:
    """Reading byte streams into collectors."""

    def test_iter_chunks(self):
        chunks = list(iter_chunks(io.BytesIO(b"abcdefg"), 3))
        assert chunks == [b"abc", b"def", b"g"]

    def test_iter_chunks_empty(self):
        assert list(iter_chunks(io.BytesIO(b""), 3)) == []

    def test_iter_json_lines_skips_blank_lines(self):
        source = io.BytesIO(b'"foo"\n\n42\n  {"a": [1, 2]}  \n')
        assert list(iter_json_lines(source)) == ["foo", 42, {"a": [1, 2]}]

    def test_iter_json_lines_invalid(self):
        with pytest.raises(json.JSONDecodeError):
            list(iter_json_lines(io.BytesIO(b"{nope\n")))

    def test_iter_json_lines_invalid_utf8(self):
        with pytest.raises(ValueError):
            list(iter_json_lines(io.BytesIO(b'"ok"\n"\xc3("\n')))

    def test_feed_binary(self):
        ls = Collector()
        count = feed(ls, io.BytesIO(b"hello world"), 4)
        assert count == 3
        assert [ls.get(i) for i in range(3)] == [b"hell", b"o wo", b"rld"]
        assert not ls.finished

    def test_feed_objects(self):
        ls = Collector.objects()
        assert feed(ls, io.BytesIO(b'1\n"two"\n')) == 2
        ls.end()
        assert ls.result == [1, "two"]


class TestRender:
    """Encoding finalized collections."""

    def test_raw_binary(self):
        ls = Collector()
        ls.write(b"ab")
        ls.write(b"cd")
        ls.end()
        assert render(ls, ls.result, OutputFormat.RAW) == b"abcd"

    def test_raw_objects_as_json_lines(self):
        ls = Collector.objects()
        ls.write({"a": 1})
        ls.write("x")
        ls.end()
        assert render(ls, ls.result, OutputFormat.RAW) == b'{"a": 1}\n"x"\n'

    def test_json(self):
        ls = Collector.objects()
        ls.write([1, 2])
        ls.end()
        assert render(ls, ls.result, OutputFormat.JSON) == b"[[1,2]]"

    def test_yaml_objects(self):
        ls = Collector.objects()
        ls.write({"name": "Alice"})
        ls.write(3)
        ls.end()
        out = render(ls, ls.result, OutputFormat.YAML)
        assert yaml.safe_load(out) == [{"name": "Alice"}, 3]

    def test_yaml_binary_items(self):
        ls = Collector()
        ls.write(b"\x00\x01")
        ls.write(b"zz")
        ls.end()
        out = render(ls, ls.result, OutputFormat.YAML)
        assert yaml.safe_load(out) == [b"\x00\x01", b"zz"]


class TestStreamHandler:
    """StreamHandler as a pipe destination."""

    def test_collects_and_forwards(self, tmp_path):
        seen = []
        path = tmp_path / "out.bin"
        with open(path, "wb") as fh:
            handler = StreamHandler(stream=False, file=fh, callback=seen.append)
            assert handler.write(b"ab") is True
            handler.write(bytearray(b"cd"))
            handler.flush()

        assert path.read_bytes() == b"abcd"
        assert seen == [b"ab", b"cd"]
        assert handler.getvalue() == b"abcd"

    def test_writes_to_stdout(self, capsysbinary):
        handler = StreamHandler()
        handler.write(b"to stdout")
        assert capsysbinary.readouterr().out == b"to stdout"

    def test_pipe_objects_as_json_lines(self):
        handler = StreamHandler(stream=False, objects=True)
        ls = Collector.objects()
        ls.pipe(handler)
        ls.write({"a": 1})
        assert handler.getvalue() == b'{"a": 1}\n'
        assert not handler.ended
        ls.write(b"hi")
        ls.end()

        assert handler.getvalue() == b'{"a": 1}\n[104, 105]\n'
        assert handler.ended

    def test_unbuffered_handler_keeps_nothing(self, capsysbinary):
        handler = StreamHandler(buffer=False)
        ls = Collector()
        ls.pipe(handler)
        ls.write(b"ab")
        ls.write(b"cd")
        ls.end()

        assert capsysbinary.readouterr().out == b"abcd"
        assert handler.getvalue() == b""
        assert handler.ended

    def test_capture_closes_file(self, tmp_path):
        fh = open(tmp_path / "x", "wb")
        handler = StreamHandler(stream=False, file=fh)
        with handler.capture() as h:
            h.write(b"x")
        assert fh.closed


class TestConfig:
    """Environment fallbacks."""

    def test_objects_explicit_wins(self, monkeypatch):
        monkeypatch.setenv("LISTSTREAM_OBJECTS", "1")
        assert resolve_objects(False) is False

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("TRUE", True), ("0", False), ("", False)])
    def test_objects_from_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("LISTSTREAM_OBJECTS", value)
        assert resolve_objects() is expected

    def test_chunk_size_default(self, monkeypatch):
        monkeypatch.delenv("LISTSTREAM_CHUNK_SIZE", raising=False)
        assert resolve_chunk_size() == DEFAULT_CHUNK_SIZE

    def test_chunk_size_env(self, monkeypatch):
        monkeypatch.setenv("LISTSTREAM_CHUNK_SIZE", "128")
        assert resolve_chunk_size() == 128

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValueError):
            resolve_chunk_size(0)

    def test_format(self, monkeypatch):
        monkeypatch.delenv("LISTSTREAM_FORMAT", raising=False)
        assert resolve_format() is OutputFormat.RAW
        assert resolve_format("yaml") is OutputFormat.YAML
        monkeypatch.setenv("LISTSTREAM_FORMAT", "json")
        assert resolve_format() is OutputFormat.JSON

    def test_bad_format(self):
        with pytest.raises(ValueError):
            resolve_format("xml")


class TestStepLog:
    """JSONL step logging."""

    def test_log_step_to_file(self, tmp_path):
        log_file = tmp_path / "run.jsonl"
        log_step("collect", {"items": 3, "output": tmp_path}, log_file)
        log_step("tee", {"items": 1}, log_file)

        entries = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert [e["step"] for e in entries] == ["collect", "tee"]
        assert entries[0]["items"] == 3
        assert entries[0]["output"] == str(tmp_path)
        assert "timestamp" in entries[0]

    def test_log_step_to_logger(self, caplog):
        caplog.set_level(logging.INFO, logger="liststream")
        log_step("collect", {"items": 2})
        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["step"] == "collect"

    def test_setup_logging_adds_file_handler(self, tmp_path):
        log_file = tmp_path / "run.log"
        setup_logging(log_file, verbose=True)
        assert logging.getLogger("liststream").level == logging.DEBUG
        assert any(
            isinstance(h, logging.FileHandler) and h.baseFilename == str(log_file)
            for h in logging.getLogger().handlers
        )
