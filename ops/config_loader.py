"""
Configuration Loader for the MODIS State Explorer

This module provides a centralized way to load and access configuration
settings from the config.yaml file.

Usage:
    from ops.config_loader import Config

    config = Config()
    observations_csv = config.get_input_path('observations_csv')
    frames_dir = config.get_output_dir('frames')
"""

import os
import pathlib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the state explorer."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "columns": {
            "region": "State",
            "period": "period",
            "year": "year",
            "month": "month",
            "variable": "variable",
            "value": "value",
        },
        "data": {
            "duplicates": "last",
            "boundary_region_field": "name",
        },
        "visualization": {
            "no_data_color": "#444444",
            "no_data_label": "N/A",
            "autoplay_interval": 1.0,
            "default_interpolator": "viridis",
            "map_dpi": 150,
            "figure_max_width": 14,
        },
        "output": {
            "frames": "output/frames",
            "html": "output/html",
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable EXPLORER_CONFIG_PATH
                        2. config.yaml in current directory
                        3. ../ops/config.yaml (if running from analysis/)
                        4. the config.yaml shipped with the ops package
            project_root_override: Override project root detection (useful for temp configs)
        """
        if config_file is None:
            env_config = os.environ.get("EXPLORER_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif Path("../ops/config.yaml").exists():
                config_file = "../ops/config.yaml"
                logger.debug("Using ops/config.yaml from analysis directory")
            elif PACKAGED_CONFIG.exists():
                config_file = PACKAGED_CONFIG
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set EXPLORER_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")
        self.config_dir = self.config_path.parent

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        elif os.environ.get("PROJECT_ROOT_OVERRIDE"):
            self.project_root = Path(os.environ["PROJECT_ROOT_OVERRIDE"]).resolve()
            logger.debug(f"Using project root from environment: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r") as f:
            self.data = yaml.safe_load(f) or {}

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], project_root: Union[str, Path]
    ) -> "Config":
        """Build a Config from an in-memory mapping (no file on disk)."""
        config = cls.__new__(cls)
        config.config_path = Path(project_root).resolve() / "config.yaml"
        config.config_dir = config.config_path.parent
        config.project_root = Path(project_root).resolve()
        config.data = data
        return config

    def get_input_path(self, filename_key: str) -> pathlib.Path:
        """
        Get full path to an input file. The path is taken directly from config.yaml
        and joined with the project root.

        Args:
            filename_key: Key for the filename in input_files

        Returns:
            Full absolute path to the input file
        """
        relative_path_str = self.data.get("input_files", {}).get(filename_key)
        if not relative_path_str:
            raise ValueError(
                f"Input filename key '{filename_key}' not found in config: input_files"
            )
        return self.project_root / relative_path_str

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return value

    def get_output_dir(self, dir_key: str) -> pathlib.Path:
        """
        Get full path to an output directory, creating it if needed.

        Args:
            dir_key: Directory key ('frames', 'html')

        Returns:
            Full path to the directory
        """
        relative = self.get(f"output.{dir_key}")
        if not relative:
            raise ValueError(f"Unknown directory key: {dir_key}")
        directory = self.project_root / relative
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def get_column_name(self, column_key: str) -> str:
        """Get column name with intelligent defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ValueError(f"Column name not found or not a string: {column_key}")

    def get_data_setting(self, setting_key: str) -> Any:
        return self.get(f"data.{setting_key}")

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_variable_configs(self) -> Dict[str, Dict[str, Any]]:
        """Per-variable color specs from the ``variables`` section."""
        variables = self.data.get("variables") or {}
        if not isinstance(variables, dict):
            raise ValueError("'variables' must be a mapping of variable id to spec")
        return {str(k): dict(v or {}) for k, v in variables.items()}

    def validate_input_files(self) -> Dict[str, bool]:
        """Validate that input files exist."""
        results: Dict[str, bool] = {}
        for filename_key in self.data.get("input_files", {}):
            try:
                results[filename_key] = self.get_input_path(filename_key).exists()
            except ValueError:
                results[filename_key] = False
        return results

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Description: {self.get('description', 'No description')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        logger.debug("🎨 Variables:")
        for variable_id, spec in self.get_variable_configs().items():
            logger.debug(f"  {variable_id}: {spec.get('mode', 'continuous')}")

        logger.debug("📊 Input Files:")
        for file_key, exists in self.validate_input_files().items():
            status = "✅" if exists else "❌"
            logger.debug(f"  {status} {file_key}")

    def _find_project_root(self) -> Path:
        """Find the project root directory by looking for characteristic files/directories."""
        current = self.config_path.parent
        project_markers = ["explorer", "data", "ops", "pyproject.toml", ".git"]

        for _ in range(5):
            markers_found = sum(1 for marker in project_markers if (current / marker).exists())
            if markers_found >= 2:
                return current

            parent = current.parent
            if parent == current:
                break
            current = parent

        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent

        logger.warning(
            f"Could not reliably detect project root, using config directory: {self.config_path.parent}"
        )
        return self.config_path.parent

