from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .config import DEFAULT_CONFIG

ASM_MODE = "asm"
LLVM_IR_MODE = "llvm-ir"


@dataclass
class Options:
    """
    Everything one invocation was asked to do.

    Built once from the CLI and passed explicitly to the builder, the locator,
    the correlator and the display. The only field changed after startup is
    `rust`, via disable_rust(), when the sources cannot be found.
    """
    mode: str = ASM_MODE
    path: Optional[str] = None

    # Build
    triple: Optional[str] = None
    asm_style: str = "intel"
    build_type: str = "release"
    features: List[str] = field(default_factory=list)
    example: Optional[str] = None
    lib: bool = False
    no_default_features: bool = False
    manifest_path: Optional[str] = None
    debug_info: bool = False

    # Output
    rust: bool = False
    comments: bool = False
    directives: bool = False
    json: bool = False
    color: bool = True
    debug_mode: bool = False
    source_gap: int = 5
    log_file: Optional[str] = None

    def __post_init__(self):
        # In debug mode the associated Rust code is always printed
        if self.debug_mode:
            self.rust = True

    @classmethod
    def from_args(cls, args: Any, config: Optional[Mapping[str, Any]] = None) -> "Options":
        """Merge parsed CLI arguments over config values (None = not given)."""
        config = config if config is not None else DEFAULT_CONFIG

        def pick(name: str, key: Optional[str] = None):
            value = getattr(args, name, None)
            if value is None:
                return config.get(key or name, DEFAULT_CONFIG.get(key or name))
            return value

        return cls(
            mode=getattr(args, "command", None) or ASM_MODE,
            path=getattr(args, "path", None),
            triple=getattr(args, "target", None),
            asm_style=pick("asm_style"),
            build_type=pick("build_type"),
            features=list(getattr(args, "features", None) or []),
            example=getattr(args, "example", None),
            lib=bool(getattr(args, "lib", False)),
            no_default_features=bool(getattr(args, "no_default_features", False)),
            manifest_path=getattr(args, "manifest_path", None),
            debug_info=bool(getattr(args, "debug_info", False)),
            rust=bool(pick("rust")),
            comments=bool(pick("comments")),
            directives=bool(pick("directives")),
            json=bool(getattr(args, "json", False)),
            color=bool(pick("color")),
            debug_mode=bool(getattr(args, "debug_mode", False)),
            source_gap=int(config.get("source_gap", DEFAULT_CONFIG["source_gap"])),
            log_file=config.get("log_file"),
        )

    @property
    def print_comments(self) -> bool:
        return self.debug_mode or self.comments

    @property
    def print_directives(self) -> bool:
        return self.debug_mode or self.directives

    def disable_rust(self) -> None:
        self.rust = False
