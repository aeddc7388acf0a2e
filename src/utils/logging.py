from __future__ import annotations

import logging as std_logging
import logging.config
from pathlib import Path

import yaml


def init_logging(config_path: str | Path = "src/config/logging.yaml") -> None:
    """
    Initialize logging from a YAML configuration.

    - If the YAML file exists and is valid, apply it via dictConfig.
    - On any failure (missing file, YAML parse error, invalid schema), fall back to
      a plain-text INFO handler on the root logger so audit lines are not lost.

    Args:
        config_path: Path to YAML config file (relative to the working directory).
    """
    path = Path(config_path)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()

    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if isinstance(data, dict):
                logging.config.dictConfig(data)
                return
        except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
            std_logging.getLogger("toolgate").warning(
                "logging config %s rejected, using fallback: %s", path, e
            )

    root = std_logging.getLogger()
    root.setLevel(std_logging.INFO)
    # Prevent duplicate handlers by resetting existing handlers
    root.handlers.clear()
    handler = std_logging.StreamHandler()
    handler.setFormatter(std_logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)
