import pytest

from errors import SinkError
from sink import CsvFileSink


class TestCsvFileSink:

    def test_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "a" / "b" / "out.csv"
        with CsvFileSink(target) as sink:
            sink.write("x\n")
            sink.write("1\n")
        assert target.read_text(encoding="utf-8") == "x\n1\n"
        assert sink.bytes_written == 4

    def test_existing_dir_is_fine(self, tmp_path):
        target = tmp_path / "out.csv"
        with CsvFileSink(target) as sink:
            sink.write("a\n")
        with CsvFileSink(target) as sink:
            sink.write("b\n")
        assert target.read_text(encoding="utf-8") == "b\n"

    def test_atomic_write_hidden_until_commit(self, tmp_path):
        target = tmp_path / "out.csv"
        sink = CsvFileSink(target).open()
        sink.write("x\n")
        assert not target.exists()
        sink.commit()
        assert target.read_text(encoding="utf-8") == "x\n"
        assert list(tmp_path.iterdir()) == [target]

    def test_abort_removes_temp_file(self, tmp_path):
        target = tmp_path / "out.csv"
        with pytest.raises(KeyError):
            with CsvFileSink(target) as sink:
                sink.write("x\n")
                raise KeyError("boom")
        assert list(tmp_path.iterdir()) == []

    def test_abort_keeps_previous_output(self, tmp_path):
        target = tmp_path / "out.csv"
        target.write_text("old\n", encoding="utf-8")
        with pytest.raises(KeyError):
            with CsvFileSink(target) as sink:
                sink.write("new\n")
                raise KeyError("boom")
        assert target.read_text(encoding="utf-8") == "old\n"

    def test_non_atomic_writes_in_place(self, tmp_path):
        target = tmp_path / "out.csv"
        sink = CsvFileSink(target, atomic=False).open()
        sink.write("x\n")
        sink._f.flush()
        assert target.read_text(encoding="utf-8") == "x\n"
        sink.commit()

    def test_newlines_untranslated(self, tmp_path):
        target = tmp_path / "out.csv"
        with CsvFileSink(target) as sink:
            sink.write("a\nb\n")
        assert target.read_bytes() == b"a\nb\n"

    def test_parent_is_a_file(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(SinkError) as exc_info:
            CsvFileSink(blocker / "out.csv").open()
        assert exc_info.value.stage == "sink"

    def test_write_before_open(self, tmp_path):
        with pytest.raises(RuntimeError):
            CsvFileSink(tmp_path / "out.csv").write("x")
