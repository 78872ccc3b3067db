"""
Configuration management for wbkit
"""

import yaml
import os
import re
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def _expand_env_vars(obj: Union[Dict, Any]) -> Union[Dict, Any]:
    """
    Recursively expand environment variables in config values.
    Supports ${VAR_NAME} syntax.
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        pattern = r'\$\{([^}]+)\}'

        def replace_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))  # Return original if not found
        return re.sub(pattern, replace_var, obj)
    else:
        return obj


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``overrides`` on ``defaults``"""
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Values missing from the file are filled in from the defaults.

    Args:
        config_path: Path to config file. If None, uses the packaged config.yaml

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ValueError(f"top-level YAML value is a {type(config).__name__}, not a mapping")
        logger.debug(f"Loaded configuration from {config_path}")
        config = _expand_env_vars(config)
        return _merge(get_default_config(), config)
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'white_balance': {
            'strategy': 'fast-empirical-v1',
            'locus': 'daylight',
            'cat_method': 'bradford',
            'allow_fallback': True,
            'gain_bounds': [0.2, 5.0],
            'algorithm': 'gray_world',
        },
        'estimators': {
            'highlight_threshold': 0.98,
            'shadow_threshold': 0.02,
            'saturation_limit': 0.8,
            'white_percentile': 0.95,
            'white_saturation_max': 0.05,
            'patch_size': 32,
            'patch_stride': 16,
            'reflectance_threshold': 0.9,
            'stretch_percentile': 0.5,
            'combined_weights': [0.4, 0.3, 0.3],
        },
        'export': {
            'jpeg_quality': 95,
            'output_bps': 16,
            'workers': 1,
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'color': True,
        },
    }


def save_config(config: Dict[str, Any], config_path: Path) -> bool:
    """
    Save configuration to YAML file

    Args:
        config: Configuration dictionary to save
        config_path: Path where to save the config

    Returns:
        True if successful, False otherwise
    """
    try:
        with open(config_path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False, indent=2)
        logger.info(f"Saved configuration to {config_path}")
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to save config to {config_path}: {e}")
        return False


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation

    Args:
        config: Configuration dictionary
        key_path: Dot-separated key path (e.g., 'white_balance.strategy')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def update_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """
    Update a nested configuration value using dot notation

    Args:
        config: Configuration dictionary to update
        key_path: Dot-separated key path (e.g., 'export.jpeg_quality')
        value: New value to set
    """
    keys = key_path.split('.')
    current = config

    for key in keys[:-1]:
        if key not in current:
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
