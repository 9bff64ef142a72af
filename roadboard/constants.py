"""
Constants for the Roadboard application.

Note: These constants serve as default fallback values.
Actual values are loaded from .roadboard/config.json at runtime via ConfigManager.
"""
import json
import sys
from pathlib import Path
from typing import Any, Optional

# =============================================================================
# Default Fallback Values
# These are used if config.json doesn't exist or doesn't specify a value.
# =============================================================================

DEFAULT_ROADBOARD_DIR = ".roadboard"

# Store defaults
DEFAULT_STORE_BACKEND = "file"
DEFAULT_STORE_TIMEOUT = 10.0
STORE_BACKENDS = ("file", "http")

# Drag-and-drop defaults
DEFAULT_DRAG_THRESHOLD = 8.0  # pointer movement before a press becomes a drag

# Import defaults
DEFAULT_CSV_HAS_HEADERS = True

# Display defaults
DEFAULT_COLOR = "#3b82f6"
DEFAULT_UNASSIGNED_COLOR = "#94a3b8"

# Logging defaults
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Status and category constants (not configurable)
STATUSES = ("now", "next", "later")
DEFAULT_STATUS = "later"
DEFAULT_CATEGORY = "business"
CATEGORY_ALIASES = {
    "tech": "tech",
    "technical": "tech",
    "business": "business",
    "mixed": "mixed",
}

# Synthetic "Unassigned" grouping (not configurable)
UNASSIGNED_ID = "unassigned"
UNASSIGNED_TITLE = "Unassigned"
UNASSIGNED_ORDER_INDEX = sys.maxsize

# CSV import format (not configurable)
CSV_DELIMITER = ";"
CSV_QUOTE = '"'
CSV_TAG_SEPARATORS = r"[,;]"
MISSING_TITLE = "Missing title"

# Import messages (not configurable)
IMPORT_NOT_CSV = "Please select a CSV file"
IMPORT_EMPTY_FILE = "The CSV file is empty"
IMPORT_NO_DATA_ROWS = "The CSV file contains no data rows"
ISSUE_MISSING_TITLE = "Title is missing, using default"
ISSUE_UNKNOWN_STATUS = 'Unknown status "{value}", using "{default}"'
ISSUE_UNKNOWN_CATEGORY = 'Unknown category "{value}", using "{default}"'
ISSUE_UNMATCHED_GROUPING = '{label} "{value}" not found'


# =============================================================================
# Config Loader
# Load values from .roadboard/config.json at runtime.
# =============================================================================

_config_manager_instance: Optional['ConfigManager'] = None


class ConfigManager:
    """
    Manages loading configuration from a config.json file with fallback to defaults.

    This class is independent of StorageManager to avoid cyclic dependencies.
    StorageManager handles persistence; ConfigManager handles runtime access.

    Usage:
        # With default path (.roadboard/config.json)
        config = ConfigManager()
        threshold = config.get('drag_threshold', DEFAULT_DRAG_THRESHOLD)

        # With custom path
        config = ConfigManager(config_path=Path("/custom/path/config.json"))
        backend = config.get('store_backend', DEFAULT_STORE_BACKEND)
    """

    def __init__(self, config_path: Optional[Path] = None, roadboard_dir: Optional[Path] = None) -> None:
        """
        Initialize ConfigManager.

        Args:
            config_path: Direct path to config.json file. Takes precedence over roadboard_dir.
            roadboard_dir: Path to .roadboard/ directory. Config path will be roadboard_dir/config.json.
        """
        self._config: Optional[dict] = None

        if config_path is not None:
            self._config_path = config_path
        elif roadboard_dir is not None:
            self._config_path = roadboard_dir / "config.json"
        else:
            self._config_path = Path(DEFAULT_ROADBOARD_DIR) / "config.json"

    def _load_config(self) -> dict:
        """Load config from config.json file."""
        if self._config is not None:
            return self._config

        if self._config_path.exists():
            try:
                with open(self._config_path, "r") as f:
                    self._config = json.load(f)
            except (json.JSONDecodeError, IOError):
                self._config = {}
        else:
            self._config = {}

        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value with fallback to default.

        Args:
            key: Configuration key name.
            default: Default value if key not found.

        Returns:
            Config value or default.
        """
        config = self._load_config()
        value = config.get(key, default)
        return default if value is None else value

    def get_float(self, key: str, default: float) -> float:
        """Get a float config value with fallback."""
        value = self.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        """Get a boolean config value with fallback."""
        value = self.get(key, default)
        return value if isinstance(value, bool) else default

    def get_str(self, key: str, default: str) -> str:
        """Get a string config value with fallback."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def reload(self) -> dict:
        """Force reload of config from disk."""
        self._config = None
        return self._load_config()

    @property
    def config_path(self) -> Path:
        """Get the config file path."""
        return self._config_path


def get_config_manager(reset: bool = False, roadboard_dir: Optional[Path] = None) -> ConfigManager:
    """
    Get the singleton ConfigManager instance.

    Args:
        reset: If True, reset the singleton and create a new instance.
        roadboard_dir: Directory to read config.json from when (re)creating the instance.

    Returns:
        ConfigManager singleton instance.
    """
    global _config_manager_instance
    if _config_manager_instance is None or reset:
        _config_manager_instance = ConfigManager(roadboard_dir=roadboard_dir)
    return _config_manager_instance


def reset_config_manager() -> None:
    """Reset the singleton ConfigManager instance (useful for testing)."""
    global _config_manager_instance
    _config_manager_instance = None


# Convenience functions for common config access
def get_drag_threshold() -> float:
    """Get drag activation distance from config or default."""
    return get_config_manager().get_float('drag_threshold', DEFAULT_DRAG_THRESHOLD)


def get_csv_has_headers() -> bool:
    """Get whether imported CSV files start with a header row."""
    return get_config_manager().get_bool('csv_has_headers', DEFAULT_CSV_HAS_HEADERS)


def get_default_color() -> str:
    """Get the color given to new groupings."""
    return get_config_manager().get_str('default_color', DEFAULT_COLOR)


def get_unassigned_color() -> str:
    """Get the color of the synthetic Unassigned grouping."""
    return get_config_manager().get_str('unassigned_color', DEFAULT_UNASSIGNED_COLOR)


def get_store_timeout() -> float:
    """Get remote store request timeout in seconds."""
    return get_config_manager().get_float('store_timeout', DEFAULT_STORE_TIMEOUT)


def get_log_level() -> str:
    """Get log level from config or default."""
    return get_config_manager().get_str('log_level', DEFAULT_LOG_LEVEL)
