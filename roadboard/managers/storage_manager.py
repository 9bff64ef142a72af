"""
Storage manager for Roadboard.

Handles loading and saving of all JSON files in the .roadboard/ directory.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from roadboard.constants import DEFAULT_ROADBOARD_DIR
from roadboard.exceptions import StorageError
from roadboard.models.files import ConfigFile, StoreFile


class StorageManager:
    """
    Manages persistence of board data to JSON files in the .roadboard/ directory.

    Handles atomic writes to prevent data corruption.
    """

    def __init__(self, roadboard_dir: Optional[Path] = None) -> None:
        """
        Initialize the StorageManager with a .roadboard/ directory path.

        Args:
            roadboard_dir: Path to the .roadboard/ directory. Defaults to .roadboard/ in current directory.
        """
        self.roadboard_dir = roadboard_dir if roadboard_dir else Path(DEFAULT_ROADBOARD_DIR)
        self._ensure_roadboard_dir()

    def _ensure_roadboard_dir(self) -> None:
        """Create the .roadboard/ directory if it doesn't exist."""
        self.roadboard_dir.mkdir(parents=True, exist_ok=True)

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write data to a JSON file atomically to prevent corruption.

        Args:
            file_path: Path to the file to write.
            data: Dictionary data to write as JSON.

        Raises:
            StorageError: If writing to file fails.
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.roadboard_dir, prefix=".tmp_roadboard_", suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, "w") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    # =========================================================================
    # Store File
    # =========================================================================

    @property
    def store_path(self) -> Path:
        return self.roadboard_dir / "store.json"

    def load_store(self) -> StoreFile:
        """Load store.json and return as StoreFile model."""
        if not self.store_path.exists():
            return StoreFile()

        try:
            with open(self.store_path, "r") as f:
                data = json.load(f)
            return StoreFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load store.json: {e}")

    def save_store(self, data: StoreFile) -> None:
        """Save StoreFile model to store.json."""
        self._atomic_write(self.store_path, data.model_dump(mode="json"))

    # =========================================================================
    # Config File
    # =========================================================================

    @property
    def config_path(self) -> Path:
        return self.roadboard_dir / "config.json"

    def load_config(self) -> ConfigFile:
        """Load config.json and return as ConfigFile model."""
        if not self.config_path.exists():
            return ConfigFile()

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
            return ConfigFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load config.json: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Save ConfigFile model to config.json."""
        self._atomic_write(self.config_path, data.model_dump(mode="json"))
