# utils/config.py
"""
config.toml loader
- Missing file -> built-in defaults (warning)
- Broken TOML -> built-in defaults (error with the parser message)
"""
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.toml")


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    cfg_path = Path(path or DEFAULT_CONFIG_PATH).resolve()
    if not cfg_path.exists():
        logger.warning("config file %s not found, using built-in defaults", cfg_path.name)
        return {}
    try:
        return tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        logger.error("failed to parse %s: %s; using built-in defaults", cfg_path.name, e)
        return {}


def section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name, {})
    return value if isinstance(value, dict) else {}
