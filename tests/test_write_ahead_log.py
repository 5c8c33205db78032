"""Tests for the write-ahead log."""

import binascii

import pytest

from quorumsim.write_ahead_log import WriteAheadLog, decode_field, encode_field


@pytest.fixture
def wal(tmp_path, events):
    return WriteAheadLog("node-1", tmp_path / "wal" / "node-1.log", events)


class TestEncoding:
    def test_unpadded_url_safe(self):
        assert encode_field("k") == "aw"
        assert encode_field("v") == "dg"
        assert "=" not in encode_field("abcd")

    def test_delimiters_are_hidden(self):
        encoded = encode_field("a key\nwith spaces")
        assert " " not in encoded
        assert "\n" not in encoded
        assert decode_field(encoded) == "a key\nwith spaces"

    @pytest.mark.parametrize("field", ["YQ=", "YQ==", "Pz8/", "a+b-"])
    def test_rejects_padding_and_standard_alphabet(self, field):
        with pytest.raises(binascii.Error):
            decode_field(field)


class TestAppend:
    def test_creates_file_and_parent_directory(self, tmp_path, events):
        path = tmp_path / "deep" / "dir" / "node.log"
        WriteAheadLog("node-1", path, events)
        assert path.exists()
        assert path.read_text() == ""

    def test_line_format(self, wal):
        wal.append_put("k", "v")
        assert wal.path.read_text(encoding="utf-8") == "PUT aw dg\n"

    def test_append_is_recorded(self, wal, events):
        wal.append_put("k", "v")
        assert events.named("wal-append")[0].details == {"key": "k", "value": "v"}


class TestReplay:
    def test_empty_log(self, wal):
        assert wal.replay() == {}

    def test_last_write_wins(self, wal):
        wal.append_put("a", "1")
        wal.append_put("b", "2")
        wal.append_put("a", "3")
        assert wal.replay() == {"a": "3", "b": "2"}

    def test_round_trips_awkward_text(self, wal):
        wal.append_put("key with spaces", "line\nbreak")
        wal.append_put("ключ", "значение")
        wal.append_put("", "empty key")
        assert wal.replay() == {
            "key with spaces": "line\nbreak",
            "ключ": "значение",
            "": "empty key",
        }

    def test_replay_is_idempotent(self, wal):
        for i in range(5):
            wal.append_put(f"k{i % 2}", f"v{i}")
        assert wal.replay() == wal.replay() == {"k0": "v4", "k1": "v3"}

    def test_skips_only_the_corrupt_line(self, wal, events):
        wal.append_put("a", "1")
        with open(wal.path, "a", encoding="utf-8") as f:
            f.write("GARBAGE LINE\n")
        wal.append_put("b", "2")

        assert wal.replay() == {"a": "1", "b": "2"}
        skip = events.named("wal-skip")
        assert len(skip) == 1
        assert skip[0].details == {"line": "2", "reason": "bad-format"}

    def test_skips_wrong_verb_and_extra_fields(self, wal, events):
        with open(wal.path, "w", encoding="utf-8") as f:
            f.write("DEL aw dg\n")
            f.write("PUT aw dg extra\n")
            f.write("PUT aw dg\n")
        assert wal.replay() == {"k": "v"}
        assert events.count("wal-skip") == 2

    def test_skips_undecodable_fields(self, wal, events):
        with open(wal.path, "w", encoding="utf-8") as f:
            f.write("PUT !!! dg\n")
            f.write("PUT a dg\n")
            f.write("PUT YQ= dg\n")
            f.write("PUT Pz8/ dg\n")
            f.write("PUT aw dg\n")
        assert wal.replay() == {"k": "v"}
        assert [r.details["reason"] for r in events.named("wal-skip")] == [
            "bad-encoding",
            "bad-encoding",
            "bad-encoding",
            "bad-encoding",
        ]

    def test_tolerates_blank_lines(self, wal, events):
        wal.append_put("k", "v")
        with open(wal.path, "a", encoding="utf-8") as f:
            f.write("\n\n")
        assert wal.replay() == {"k": "v"}
        assert events.count("wal-skip") == 0

    def test_summary_event(self, wal, events):
        wal.append_put("a", "1")
        wal.append_put("a", "2")
        wal.replay()
        summary = events.named("wal-replay")[-1]
        assert summary.details == {"entries": "1", "lines": "2", "skipped": "0"}

    def test_missing_file_replays_empty(self, wal):
        wal.path.unlink()
        assert wal.replay() == {}
