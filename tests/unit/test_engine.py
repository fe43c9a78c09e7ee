"""Unit tests for the pipeline orchestration."""
import io
import json
import pytest
from unittest.mock import MagicMock
from rich.console import Console

from cargobolt.engine import AsmEngine
from cargobolt.exceptions import BuildError
from cargobolt.utils.options import LLVM_IR_MODE, Options
from conftest import LINUX, StubDemangler

FOO = "_ZN3lib3foo17h0123456789abcdefE"
BAR = "_ZN3lib3bar17hfedcba9876543210E"


def asm_text(source_path):
    return f"""\t.text
\t.file\t1 "{source_path}"
{FOO}:
\t.cfi_startproc
\t.loc\t1 2 0
\tlea\teax, [rdi + 1]
\t.loc\t1 2 5
\tret
\t.cfi_endproc
{BAR}:
\t.cfi_startproc
\tret
\t.cfi_endproc
"""


def console():
    return Console(record=True, width=200, color_system=None, file=io.StringIO())


@pytest.fixture
def project(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    lib = src / "lib.rs"
    lib.write_text("pub fn foo(a: i32) -> i32 {\n    a + 1\n}\n")
    asm = tmp_path / "lib.s"
    asm.write_text(asm_text(lib))
    return tmp_path, asm


def make_engine(asm_files, manifest_dir, **option_kwargs):
    options = Options(triple=LINUX, **option_kwargs)
    driver = MagicMock()
    driver.output_files.return_value = asm_files
    driver.manifest_dir.return_value = str(manifest_dir)
    driver.sysroot.return_value = "/sysroot"
    out, err = console(), console()
    engine = AsmEngine(options, driver=driver,
                       demangler=StubDemangler({FOO: "lib::foo", BAR: "lib::bar"}),
                       console=out, err_console=err)
    return engine, out, err


class TestAsmEngine:
    """Test build -> locate -> correlate -> display."""

    def test_found_prints_function(self, project):
        root, asm = project
        engine, out, _ = make_engine([asm], root, path="lib::foo")
        assert engine.run() == 0
        engine.driver.build.assert_called_once()
        text = out.export_text()
        assert text.splitlines()[0].startswith("lib::foo (")
        assert "lea     eax, [rdi + 1]" in text

    def test_rust_interleaved(self, project):
        root, asm = project
        engine, out, _ = make_engine([asm], root, path="lib::foo", rust=True)
        assert engine.run() == 0
        lines = out.export_text().splitlines()
        assert lines.count(" a + 1") == 1
        assert lines.index(" a + 1") < lines.index(" lea     eax, [rdi + 1]")

    def test_no_path_lists_functions(self, project):
        root, asm = project
        engine, out, _ = make_engine([asm], root)
        assert engine.run() == 0
        assert out.export_text().splitlines() == ["lib::bar", "lib::foo"]

    def test_not_found_suggests(self, project):
        root, asm = project
        engine, _, err = make_engine([asm], root, path="lib::fo")
        assert engine.run() == 1
        text = err.export_text()
        assert "[ERROR]:" in text
        assert "lib::foo" in text

    def test_missing_sources_disable_rust(self, project):
        root, asm = project
        (root / "src" / "lib.rs").unlink()
        engine, out, _ = make_engine([asm], root, path="lib::foo", rust=True)
        assert engine.run() == 0
        assert engine.options.rust is False
        assert "a + 1" not in out.export_text()

    def test_json(self, project):
        root, asm = project
        engine, out, _ = make_engine([asm], root, path="lib::foo", rust=True, json=True)
        assert engine.run() == 0
        data = json.loads(out.export_text())
        assert data[0]["Asm"] == {"Directive": {"Generic": {"string": ".cfi_startproc"}}}
        assert data[2]["Rust"]["line"] == "a + 1"

    def test_build_error_propagates(self, project):
        root, asm = project
        engine, _, _ = make_engine([asm], root, path="lib::foo")
        engine.driver.build.side_effect = BuildError("cargo build failed")
        with pytest.raises(BuildError):
            engine.run()
        engine.driver.output_files.assert_not_called()

    def test_sysroot_not_needed_for_local_sources(self, project):
        root, asm = project
        engine, _, _ = make_engine([asm], root, path="lib::foo", rust=True)
        engine.run()
        engine.driver.sysroot.assert_not_called()


class TestLlvmIrMode:
    def test_prints_ir_lines(self, tmp_path):
        ll = tmp_path / "lib.ll"
        ll.write_text(f"define i32 @{FOO}(i32 %a) {{\nstart:\n  ret i32 %a\n}}\n")
        engine, out, _ = make_engine([ll], tmp_path, path="lib::foo", mode=LLVM_IR_MODE)
        assert engine.run() == 0
        assert out.export_text().splitlines() == [
            f"define i32 @{FOO}(i32 %a) {{",
            "start:",
            "  ret i32 %a",
            "}",
        ]

    def test_not_found(self, tmp_path):
        ll = tmp_path / "lib.ll"
        ll.write_text(f"define i32 @{FOO}(i32 %a) {{\n}}\n")
        engine, _, err = make_engine([ll], tmp_path, path="lib::nope", mode=LLVM_IR_MODE)
        assert engine.run() == 1
        assert "generated LLVM IR" in err.export_text()
