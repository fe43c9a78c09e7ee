import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "asm_style": "intel",
    "build_type": "release",
    "color": True,
    "rust": False,
    "comments": False,
    "directives": False,
    "source_gap": 5,
    "log_file": None,
}


class ConfigManager:
    """
    Persistent user preferences in ~/.cargobolt/config.json.

    Values from the file are merged over DEFAULT_CONFIG; CLI flags take
    precedence over both (see Options.from_args).
    """

    def __init__(self):
        self.config_dir = Path.home() / ".cargobolt"
        self.config_file = self.config_dir / "config.json"
        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config = DEFAULT_CONFIG.copy()
        if not self.config_file.exists():
            return config
        try:
            with open(self.config_file, "r") as f:
                user_config = json.load(f)
            if isinstance(user_config, dict):
                config.update(user_config)
            else:
                logger.warning("ignoring %s: not a JSON object", self.config_file)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("ignoring corrupt config %s: %s", self.config_file, e)
        return config

    def save_config(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self.config, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.config[key] = value
        self.save_config()
