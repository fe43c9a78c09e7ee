"""
Cargo build driver.

Runs `cargo build` with RUSTFLAGS extended to emit assembly (or LLVM IR) with
debug info, then collects the emitted files from the build's own output
directory. Also answers the two toolchain questions the rest of the pipeline
needs: where cargo puts its output and where the sysroot lives.
"""
import json
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..exceptions import BuildError, NoOutputFilesError, ToolchainError
from ..utils.options import LLVM_IR_MODE, Options
from ..utils.target import Arch, TargetInfo

logger = logging.getLogger(__name__)

INTEL_SYNTAX_FLAG = "-C llvm-args=-x86-asm-syntax=intel"

ASM_SUFFIX = ".s"
LLVM_IR_SUFFIX = ".ll"


class CargoDriver:
    """Handles cargo builds and toolchain queries for one invocation."""

    def __init__(self, options: Options, target: TargetInfo):
        self.options = options
        self.target = target
        self.cargo: Optional[str] = shutil.which("cargo")

    @property
    def rustc(self) -> str:
        return os.environ.get("RUSTC", "rustc")

    @property
    def output_suffix(self) -> str:
        return LLVM_IR_SUFFIX if self.options.mode == LLVM_IR_MODE else ASM_SUFFIX

    def manifest_path(self) -> Optional[str]:
        """--manifest-path as given, with Cargo.toml appended to directories."""
        path = self.options.manifest_path
        if path is None:
            return None
        if os.path.isdir(path):
            return os.path.join(path, "Cargo.toml")
        return path

    def manifest_dir(self) -> str:
        """Directory relative source paths in the debug info are resolved against."""
        manifest = self.manifest_path()
        if manifest is None:
            return os.getcwd()
        return os.path.dirname(os.path.abspath(manifest))

    def rustflags(self) -> str:
        flags = os.environ.get("RUSTFLAGS", "")
        if self.options.mode == LLVM_IR_MODE:
            flags += " --emit llvm-ir -g"
        else:
            flags += " --emit asm -g"
            if self.options.asm_style == "intel" and self.target.arch == Arch.X86:
                flags += " " + INTEL_SYNTAX_FLAG
        return flags.strip()

    def build_command(self) -> List[str]:
        command = [self.cargo or "cargo", "build", "--verbose"]
        if self.options.build_type == "release":
            command.append("--release")
        if self.options.triple:
            command.extend(["--target", self.options.triple])
        if self.options.features:
            command.extend(["--features", " ".join(self.options.features)])
        if self.options.example:
            command.extend(["--example", self.options.example])
        if self.options.lib:
            command.append("--lib")
        if self.options.no_default_features:
            command.append("--no-default-features")
        manifest = self.manifest_path()
        if manifest:
            command.extend(["--manifest-path", manifest])
        return command

    def build_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["RUSTFLAGS"] = self.rustflags()
        return env

    def build(self) -> None:
        """
        Run cargo build.

        Raises:
            ToolchainError: cargo is not installed.
            BuildError: cargo exited with a non-zero status.
        """
        if not self.cargo:
            raise ToolchainError("cargo not found. Install via https://rustup.rs/")

        command = self.build_command()
        env = self.build_env()
        logger.debug("RUSTFLAGS=%s", env["RUSTFLAGS"])
        logger.debug("build command: %s", " ".join(command))

        result = subprocess.run(command, capture_output=True, text=True, check=False, env=env)
        if result.returncode != 0:
            raise BuildError(
                f"cargo build failed with exit code {result.returncode}",
                stdout=result.stdout,
                stderr=result.stderr,
            )
        if self.options.debug_mode:
            sys.stderr.write(result.stderr)

    def target_directory(self) -> Path:
        """
        `<cargo target dir>[/<triple>]/<build type>`, from `cargo metadata`.

        Raises:
            ToolchainError: cargo metadata failed or did not name a target directory.
        """
        command = [self.cargo or "cargo", "metadata", "--format-version", "1", "--no-deps"]
        manifest = self.manifest_path()
        if manifest:
            command.extend(["--manifest-path", manifest])

        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as e:
            raise ToolchainError(f"failed to run cargo metadata: {e}") from e
        if result.returncode != 0:
            raise ToolchainError(f"cargo metadata failed: {result.stderr.strip()}")

        try:
            metadata = json.loads(result.stdout)
            directory = Path(metadata["target_directory"])
        except (ValueError, KeyError, TypeError) as e:
            raise ToolchainError(f"cannot read target directory from cargo metadata: {e}") from e

        if self.options.triple:
            directory = directory / self.options.triple
        return directory / self.options.build_type

    def output_files(self, directory: Optional[Path] = None) -> List[Path]:
        """
        Every emitted assembly (or IR) file under the target directory,
        canonicalized, sorted and deduplicated.

        Raises:
            NoOutputFilesError: the build produced no such files.
        """
        directory = directory if directory is not None else self.target_directory()
        suffix = self.output_suffix
        found = set()
        for root, _dirs, names in os.walk(directory):
            for name in names:
                if name.endswith(suffix):
                    found.add(Path(root, name).resolve())

        files = sorted(found)
        logger.debug("found %d %s files in %s", len(files), suffix, directory)
        if not files:
            raise NoOutputFilesError(
                f"no {suffix} files found in {directory}. "
                "Did the build emit any? Try `cargo clean` and build again."
            )
        return files

    def sysroot(self) -> str:
        """
        `rustc --print sysroot`, trimmed.

        Raises:
            ToolchainError: rustc could not be run or failed.
        """
        try:
            result = subprocess.run(
                [self.rustc, "--print", "sysroot"], capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise ToolchainError(f"failed to run {self.rustc} --print sysroot: {e}") from e
        if result.returncode != 0:
            raise ToolchainError(f"{self.rustc} --print sysroot failed: {result.stderr.strip()}")
        return result.stdout.strip()
