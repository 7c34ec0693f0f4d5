"""Configuration management for docsplice runs."""

from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_FILE_NAME = ".docsplice"


@dataclass
class SpliceConfig:
    """Settings for rendering and running the pipeline.

    Attributes:
        wrap_width: Wrap comment lines longer than this many characters.
            0 keeps caller text on its original lines.
        strict_returns: Reject a comment whose @returns description targets a
            constructor, setter or void declaration. When False the line is
            dropped with a warning instead.
        max_workers: Upper bound on files processed in parallel.
    """
    wrap_width: int = 0
    strict_returns: bool = True
    max_workers: int = 4


def load_config(repo_root: Path | None = None) -> SpliceConfig:
    """Load configuration from the .docsplice file in the repository root.

    Args:
        repo_root: Path to repository root. If None, uses current directory.

    Returns:
        SpliceConfig object with loaded or default values.

    Notes:
        If the file doesn't exist or can't be parsed, returns default config.
        Expected YAML structure:

        ```yaml
        docsplice:
          wrap_width: 0
          strict_returns: true
          max_workers: 4
        ```
    """
    if repo_root is None:
        repo_root = Path.cwd()

    config_path = repo_root / CONFIG_FILE_NAME

    if not config_path.exists():
        return SpliceConfig()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            return SpliceConfig()

        section = data.get("docsplice", {})
        if not isinstance(section, dict):
            return SpliceConfig()

        config = SpliceConfig(
            wrap_width=int(section.get("wrap_width", SpliceConfig.wrap_width)),
            strict_returns=bool(section.get("strict_returns", SpliceConfig.strict_returns)),
            max_workers=int(section.get("max_workers", SpliceConfig.max_workers)),
        )
        if config.wrap_width < 0 or config.max_workers < 1:
            return SpliceConfig()
        return config
    except (yaml.YAMLError, OSError, KeyError, TypeError, ValueError):
        # Return default config on any parsing errors
        return SpliceConfig()
