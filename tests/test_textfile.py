from __future__ import annotations

from pathlib import Path

import pytest

from lazyfile import TextFile
from lazyfile.errors import BasicFileError, OpenError


def test_lines_records_words(tmp_path: Path):
    p = tmp_path / "table.tsv"
    p.write_text("name\tqty\r\napple pie\t3\nplum\t 4\n", encoding="utf-8")
    t = TextFile(p)

    assert t.lines() == ["name\tqty", "apple pie\t3", "plum\t 4"]
    assert t.records() == [["name", "qty"], ["apple pie", "3"], ["plum", " 4"]]
    assert t.words() == ["name\tqty", "apple", "pie\t3", "plum\t", "4"]
    t.close()


def test_text_does_not_move_offset(tmp_path: Path):
    p = tmp_path / "f.txt"
    p.write_text("abcdef", encoding="utf-8")
    t = TextFile(p)
    t.seek(2)
    assert t.text() == "abcdef"
    assert t.read(2) == b"cd"
    t.close()


def test_cache_dropped_on_write(tmp_path: Path):
    t = TextFile(tmp_path / "f.txt")
    t.create()
    t.write_string("one\n")
    assert t.lines() == ["one"]
    assert not t.dirty

    t.append_line("two")
    assert t.dirty
    assert t.lines() == ["one", "two"]
    t.flush()
    assert t.dirty
    assert t.text() == "one\ntwo\n"
    t.close()


def test_append_line_creates_file(tmp_path: Path):
    p = tmp_path / "log.txt"
    t = TextFile(p)
    t.append_line("first")
    t.append_line("second")
    t.close()
    assert p.read_text(encoding="utf-8") == "first\nsecond\n"


def test_custom_separators(tmp_path: Path):
    p = tmp_path / "f.txt"
    p.write_text("a,b;c,d;", encoding="utf-8")
    t = TextFile(p, line_sep=";", record_sep=",")
    assert t.lines() == ["a,b", "c,d"]
    assert t.records() == [["a", "b"], ["c", "d"]]

    t.line_sep = ","
    assert t.lines() == ["a", "b;c", "d;"]
    t.word_sep = ";"
    assert t.words() == ["a", "b", "c", "d"]
    with pytest.raises(ValueError):
        t.record_sep = ""
    t.close()


def test_encoding(tmp_path: Path):
    p = tmp_path / "latin.txt"
    p.write_bytes("café\n".encode("latin-1"))
    t = TextFile(p, encoding="latin-1")
    assert t.lines() == ["café"]
    t.close()


def test_empty_and_missing(tmp_path: Path):
    p = tmp_path / "empty.txt"
    p.write_bytes(b"")
    assert TextFile(p).lines() == []
    with pytest.raises(OpenError):
        TextFile(tmp_path / "missing.txt").text()


def test_undecodable_bytes_are_reported(tmp_path: Path):
    p = tmp_path / "bad.txt"
    p.write_bytes(b"ok\n\xff\xfe\n")
    seen = []
    t = TextFile(p, observer=seen.append)
    with pytest.raises(BasicFileError) as ei:
        t.lines()
    assert ei.value.op == "text"
    assert isinstance(ei.value.cause, UnicodeDecodeError)
    assert seen == [ei.value]
    t.close()
