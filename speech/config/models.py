"""
Persisted provisioning state.

The on-disk ``config.json`` uses camelCase field names::

    {
      "version": "1.0.0",
      "selectedVoice": {"key": ..., "name": ..., "languageCode": ...,
                        "quality": ..., "modelPath": ..., "configPath": ...},
      "piperBinary": {"path": ..., "version": ..., "platform": ..., "arch": ...}
    }
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

SCHEMA_VERSION = "1.0.0"

# Version recorded for a binary adopted from the search path
SYSTEM_VERSION = "system"

MODEL_SUFFIX = ".onnx"
MODEL_CONFIG_SUFFIX = ".onnx.json"


def companion_config_path(model_path: str) -> str:
    """Model metadata path: ``voice.onnx`` → ``voice.onnx.json``."""
    return model_path.replace(MODEL_SUFFIX, MODEL_CONFIG_SUFFIX, 1)


@dataclass(frozen=True)
class InstalledBinaryRecord:
    path: str
    version: str
    platform: str
    arch: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "path": self.path,
            "version": self.version,
            "platform": self.platform,
            "arch": self.arch,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstalledBinaryRecord":
        return cls(
            path=str(data["path"]),
            version=str(data["version"]),
            platform=str(data.get("platform", "")),
            arch=str(data.get("arch", "")),
        )


@dataclass(frozen=True)
class SelectedVoiceRecord:
    key: str
    name: str
    language_code: str
    quality: str
    model_path: str
    config_path: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "key": self.key,
            "name": self.name,
            "languageCode": self.language_code,
            "quality": self.quality,
            "modelPath": self.model_path,
            "configPath": self.config_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectedVoiceRecord":
        model_path = str(data["modelPath"])
        return cls(
            key=str(data["key"]),
            name=str(data.get("name", data["key"])),
            language_code=str(data.get("languageCode", "")),
            quality=str(data.get("quality", "")),
            model_path=model_path,
            config_path=str(data.get("configPath") or companion_config_path(model_path)),
        )


@dataclass(frozen=True)
class PersistentState:
    """
    Everything remembered between runs.

    Instances are immutable; provisioning steps return an updated copy
    made with :func:`dataclasses.replace`.
    """

    version: str = SCHEMA_VERSION
    piper_binary: Optional[InstalledBinaryRecord] = None
    selected_voice: Optional[SelectedVoiceRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        if self.selected_voice is not None:
            data["selectedVoice"] = self.selected_voice.to_dict()
        if self.piper_binary is not None:
            data["piperBinary"] = self.piper_binary.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersistentState":
        """
        Build state from a decoded document.

        Raises:
            ValueError: If the document is not an object or a nested
                        record is malformed.
        """
        if not isinstance(data, dict):
            raise ValueError("config document must be a JSON object")

        try:
            binary = data.get("piperBinary")
            voice = data.get("selectedVoice")
            return cls(
                version=str(data.get("version", SCHEMA_VERSION)),
                piper_binary=InstalledBinaryRecord.from_dict(binary) if binary else None,
                selected_voice=SelectedVoiceRecord.from_dict(voice) if voice else None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed config record: {e}") from e
