"""Unit tests for source correlation."""
import os
import pytest
from unittest.mock import MagicMock

from cargobolt.exceptions import IncompleteFileTableError, SourceLineError
from cargobolt.parsing.ast import File, Function, Instruction, Loc
from cargobolt.parsing.rust_source import (
    SourceFile,
    correct_rust_paths,
    correlate,
    fill_gaps,
    referenced_lines,
    std_source_tail,
)

SOURCE = "\n".join(f"line {i}" for i in range(1, 21)) + "\n"


def make_function(*locs):
    return Function(
        id="foo",
        statements=[Instruction("nop", [], loc) for loc in locs],
        loc=locs[0] if locs else None,
    )


class TestFillGaps:
    """Test the small-gap filling between referenced lines."""

    def test_small_gap_filled(self):
        assert fill_gaps([3, 6]) == [3, 4, 5, 6]

    def test_large_gap_kept(self):
        assert fill_gaps([3, 8]) == [3, 8]

    def test_adjacent(self):
        assert fill_gaps([3, 4]) == [3, 4]

    def test_line_zero_never_fills(self):
        assert fill_gaps([0, 3]) == [0, 3]

    def test_custom_threshold(self):
        assert fill_gaps([1, 4], threshold=2) == [1, 4]


class TestReferencedLines:
    def test_grouped_by_file(self):
        fn = make_function(Loc(1, 3), Loc(1, 3), Loc(2, 9))
        assert referenced_lines(fn) == {1: {3}, 2: {9}}

    def test_no_locations(self):
        assert referenced_lines(make_function()) == {}


class TestStdSourceTail:
    """Test recognition of standard library paths."""

    def test_modern(self):
        tail = std_source_tail("/rustc/90b35a6239c3d8bdabc530a6a0816f7ff89a0aaf/library/core/src/num/mod.rs")
        assert tail == ["library", "core", "src", "num", "mod.rs"]

    def test_old_src_lib_layout(self):
        assert std_source_tail("/rustc/abc/src/libcore/num/mod.rs") == ["src", "libcore", "num", "mod.rs"]

    def test_legacy_ci_prefix(self):
        tail = std_source_tail("/Users/travis/build/rust-lang/rust/src/libstd/io/mod.rs")
        assert tail == ["src", "libstd", "io", "mod.rs"]

    def test_windows_separators(self):
        tail = std_source_tail("\\rustc\\abc\\library\\alloc\\src\\vec.rs")
        assert tail == ["library", "alloc", "src", "vec.rs"]

    def test_project_path(self):
        assert std_source_tail("/home/me/proj/src/lib.rs") is None
        assert std_source_tail("/home/me/library/mycrate/src/lib.rs") is None


class TestCorrectRustPaths:
    def test_rewrites_missing_std_path(self):
        files = {1: SourceFile(File("/rustc/abc/library/core/src/num.rs", 1))}
        correct_rust_paths(files, lambda: "/sysroot")
        assert files[1].ast.path == os.path.join(
            "/sysroot", "lib", "rustlib", "src", "rust", "library", "core", "src", "num.rs"
        )

    def test_sysroot_queried_lazily(self, tmp_path):
        local = tmp_path / "lib.rs"
        local.write_text("fn main() {}\n")
        sysroot = MagicMock(return_value="/sysroot")
        files = {1: SourceFile(File(str(local), 1))}
        correct_rust_paths(files, sysroot)
        sysroot.assert_not_called()
        assert files[1].ast.path == str(local)


class TestCorrelate:
    """Test loading referenced lines from disk."""

    def test_reads_referenced_and_gap_lines(self, tmp_path):
        src = tmp_path / "lib.rs"
        src.write_text(SOURCE)
        fn = make_function(Loc(1, 3), Loc(1, 5))
        result = correlate(fn, {1: File(str(src), 1)}, lambda: "/sysroot")
        assert result.complete
        assert result.sources.line_at(1, 3) == "line 3"
        assert result.sources.line_at(1, 4) == "line 4"
        assert result.sources.line(Loc(1, 5)) == "line 5"
        assert result.sources.line_at(1, 10) is None
        assert result.sources.file_path(Loc(1, 5)) == str(src)

    def test_relative_path_resolved_against_base_dir(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "lib.rs").write_text(SOURCE)
        table = {1: File("src/lib.rs", 1)}
        fn = make_function(Loc(1, 2))
        result = correlate(fn, table, lambda: "/sysroot", base_dir=str(tmp_path))
        assert result.complete
        assert result.sources.line_at(1, 2) == "line 2"
        assert result.sources.file_path(Loc(1, 2)) == os.path.join(str(tmp_path), "src/lib.rs")
        # The file table keeps the path recorded at build time
        assert table[1].path == "src/lib.rs"

    def test_missing_file_dropped_with_single_warning(self, tmp_path, caplog):
        fn = make_function(Loc(1, 2), Loc(1, 3), Loc(2, 4))
        table = {1: File("/nope/a.rs", 1), 2: File("/nope/b.rs", 2)}
        with caplog.at_level("WARNING"):
            result = correlate(fn, table, lambda: "/sysroot")
        assert not result.complete
        assert sorted(result.missing) == ["/nope/a.rs", "/nope/b.rs"]
        assert result.sources.line_at(1, 2) is None
        warnings = [r for r in caplog.records if r.levelname == "WARNING"]
        assert len(warnings) == 1
        assert "rust-src" in warnings[0].getMessage()

    def test_line_past_end_is_fatal(self, tmp_path):
        src = tmp_path / "lib.rs"
        src.write_text("only one line\n")
        fn = make_function(Loc(1, 50))
        with pytest.raises(SourceLineError):
            correlate(fn, {1: File(str(src), 1)}, lambda: "/sysroot")

    def test_line_zero_is_accepted(self, tmp_path):
        src = tmp_path / "lib.rs"
        src.write_text(SOURCE)
        fn = make_function(Loc(1, 0), Loc(1, 2))
        result = correlate(fn, {1: File(str(src), 1)}, lambda: "/sysroot")
        assert result.sources.line_at(1, 0) is None
        assert result.sources.line_at(1, 2) == "line 2"

    def test_unknown_file_index(self, tmp_path):
        fn = make_function(Loc(7, 1))
        with pytest.raises(IncompleteFileTableError):
            correlate(fn, {}, lambda: "/sysroot")

    def test_std_path_corrected_into_sysroot(self, tmp_path):
        std_file = tmp_path / "lib" / "rustlib" / "src" / "rust" / "library" / "core" / "src" / "num.rs"
        std_file.parent.mkdir(parents=True)
        std_file.write_text(SOURCE)
        fn = make_function(Loc(1, 7))
        table = {1: File("/rustc/deadbeef/library/core/src/num.rs", 1)}
        result = correlate(fn, table, lambda: str(tmp_path))
        assert result.complete
        assert result.sources.line_at(1, 7) == "line 7"
        assert table[1].path == "/rustc/deadbeef/library/core/src/num.rs"
