"""Unit tests for target triple classification and dialect rules."""
import pytest
from unittest.mock import patch

from cargobolt.utils.target import Arch, TargetInfo, host_triple


class TestPlatform:
    """Test the OS predicates."""

    def test_linux(self):
        t = TargetInfo("x86_64-unknown-linux-gnu")
        assert t.is_linux() and not t.is_windows() and not t.is_apple()

    def test_windows(self):
        t = TargetInfo("x86_64-pc-windows-msvc")
        assert t.is_windows() and not t.is_linux()

    def test_apple(self):
        assert TargetInfo("aarch64-apple-darwin").is_apple()
        assert TargetInfo("x86_64-apple-ios").is_apple()

    def test_from_triple_none_uses_host(self):
        with patch("cargobolt.utils.target.host_triple", return_value="i686-unknown-linux-gnu"):
            assert TargetInfo.from_triple(None).triple == "i686-unknown-linux-gnu"


class TestHostTriple:
    """Test the native triple guess."""

    def test_linux_x86_64(self):
        with patch("platform.machine", return_value="x86_64"), patch("platform.system", return_value="Linux"):
            assert host_triple() == "x86_64-unknown-linux-gnu"

    def test_macos_arm64(self):
        with patch("platform.machine", return_value="arm64"), patch("platform.system", return_value="Darwin"):
            assert host_triple() == "aarch64-apple-darwin"

    def test_windows_amd64(self):
        with patch("platform.machine", return_value="AMD64"), patch("platform.system", return_value="Windows"):
            assert host_triple() == "x86_64-pc-windows-msvc"


class TestArch:
    @pytest.mark.parametrize("triple,arch", [
        ("x86_64-unknown-linux-gnu", Arch.X86),
        ("i686-pc-windows-msvc", Arch.X86),
        ("aarch64-apple-darwin", Arch.AARCH64),
        ("armv7-unknown-linux-gnueabihf", Arch.ARM),
        ("thumbv7em-none-eabi", Arch.ARM),
        ("sparc64-unknown-linux-gnu", Arch.SPARC),
        ("powerpc64le-unknown-linux-gnu", Arch.POWER),
        ("mips-unknown-linux-gnu", Arch.MIPS),
        ("riscv64gc-unknown-linux-gnu", Arch.UNKNOWN),
    ])
    def test_arch_family(self, triple, arch):
        assert TargetInfo(triple).arch == arch


class TestDialect:
    """Test directive names, token positions and label conventions."""

    def test_elf_directives(self, linux):
        assert linux.file_directive == ".file"
        assert linux.loc_directive == ".loc"
        assert linux.loc_fields == (1, 2, 3)
        assert linux.function_end_marker == ".cfi_endproc"
        assert linux.function_label_prefix == "_"

    def test_codeview_directives(self, windows):
        assert windows.file_directive == ".cv_file"
        assert windows.loc_directive == ".cv_loc"
        assert windows.loc_fields == (2, 3, 4)
        assert windows.function_end_marker == ".seh_endproc"

    def test_apple_labels(self, macos):
        assert macos.function_label_prefix == "__"
        assert macos.housekeeping_label_prefixes == ["Lcfi", "Ltmp", "Lfunc_begin", "Lfunc_end"]

    def test_dotted_housekeeping_labels_off_apple(self, linux, windows):
        assert linux.housekeeping_label_prefixes == [".Lcfi", ".Ltmp", ".Lfunc_begin", ".Lfunc_end"]
        assert windows.housekeeping_label_prefixes == [".Lcfi", ".Ltmp", ".Lfunc_begin", ".Lfunc_end"]

    def test_comment_markers(self, linux, macos):
        assert linux.comment_markers == (";", "#")
        assert macos.comment_markers == (";", "//")
        assert TargetInfo("armv7-unknown-linux-gnueabihf").comment_markers == (";", "@")

    def test_rust_src_component(self, linux, windows):
        assert linux.rust_src_component == "lib/rustlib/src/rust"
        assert windows.rust_src_component == "lib\\rustlib\\src\\rust"


class TestJumpsAndCalls:
    """Test mnemonic classification per architecture."""

    def test_x86(self, linux):
        assert linux.is_jump("jne", [".LBB0_2"])
        assert linux.is_jump("jmp", [".LBB0_2"])
        assert linux.is_call("call", ["foo"])
        assert linux.is_call("callq", ["foo"])
        assert not linux.is_jump("mov", ["rax", "rbx"])

    def test_aarch64(self, macos):
        assert macos.is_jump("b", ["LBB0_1"])
        assert macos.is_jump("b.ne", ["LBB0_1"])
        assert not macos.is_jump("bl", ["_foo"])
        assert macos.is_call("bl", ["_foo"])
        assert macos.is_call("blr", ["x8"])

    def test_arm_jumps_to_local_labels(self):
        t = TargetInfo("armv7-unknown-linux-gnueabihf")
        assert t.is_jump("bne", [".LBB0_1"])
        assert not t.is_jump("bx", ["lr"])
        assert t.is_call("blx", ["r3"])

    def test_power(self):
        t = TargetInfo("powerpc64le-unknown-linux-gnu")
        assert t.is_jump("beq", ["0", ".LBB0_1"])
        assert not t.is_jump("bl", ["foo"])
        assert t.is_call("bl", ["foo"])

    def test_mips(self):
        t = TargetInfo("mips-unknown-linux-gnu")
        assert t.is_jump("beqz", ["$4", "$BB0_2"])
        assert t.is_call("jal", ["foo"])

    def test_unknown_arch_never_jumps_or_calls(self):
        t = TargetInfo("riscv64gc-unknown-linux-gnu")
        assert not t.is_jump("j", ["x"])
        assert not t.is_call("call", ["x"])
