"""Persisted provisioning state and its JSON store."""

from .models import (
    SCHEMA_VERSION,
    SYSTEM_VERSION,
    InstalledBinaryRecord,
    PersistentState,
    SelectedVoiceRecord,
    companion_config_path,
)
from .store import ConfigStore

__all__ = [
    "SCHEMA_VERSION",
    "SYSTEM_VERSION",
    "ConfigStore",
    "InstalledBinaryRecord",
    "PersistentState",
    "SelectedVoiceRecord",
    "companion_config_path",
]
