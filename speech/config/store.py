"""
JSON-file persistence for :class:`PersistentState`.

Single process, single writer: the file is read once at start-up and
rewritten after every change.  A missing or damaged file is not an
error; it simply means "nothing provisioned yet".
"""

import json
import logging
from pathlib import Path
from typing import Union

from speech.errors import ConfigSaveFailure

from .models import PersistentState

logger = logging.getLogger(__name__)


class ConfigStore:
    """Loads and saves the provisioning state at *config_file*."""

    def __init__(self, config_file: Union[str, Path]):
        self.config_file = Path(config_file)

    def load(self) -> PersistentState:
        """
        Read the saved state.

        Returns:
            The stored state, or a default :class:`PersistentState` if the
            file is missing, unreadable or not valid JSON.
        """
        try:
            raw = self.config_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No config at %s, starting fresh", self.config_file)
            return PersistentState()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s (%s), using defaults", self.config_file, e)
            return PersistentState()

        try:
            return PersistentState.from_dict(json.loads(raw))
        except ValueError as e:
            logger.warning("Ignoring corrupt config %s: %s", self.config_file, e)
            return PersistentState()

    def save(self, state: PersistentState) -> None:
        """
        Overwrite the file with *state* as indented JSON.

        Raises:
            ConfigSaveFailure: If the directory or file cannot be written.
        """
        data = json.dumps(state.to_dict(), indent=2)
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(data, encoding="utf-8")
        except OSError as e:
            raise ConfigSaveFailure(self.config_file, e) from e
        logger.debug("Saved config to %s", self.config_file)

    def __repr__(self) -> str:
        return f"ConfigStore(file='{self.config_file}')"
