"""Runner configuration with YAML support."""

from __future__ import annotations

from pathlib import Path

import yaml

from practice_core.schemas import SandboxConfig


class PracticeConfig(SandboxConfig):
    """Sandbox settings plus the CLI-level options."""

    # Problem catalog; the bundled basics set when unset
    problems_path: str | None = None


def load_config(yaml_path: str | Path) -> PracticeConfig:
    """Load runner configuration from YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        PracticeConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or has fields of the wrong type
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

    try:
        return PracticeConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: PracticeConfig, yaml_path: str | Path) -> None:
    """Save runner configuration to YAML file.

    Args:
        config: PracticeConfig to save
        yaml_path: Path where to save YAML file
    """
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
