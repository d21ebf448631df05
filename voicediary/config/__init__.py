"""YAML settings for VoiceDiary: transcription, capture, parser and medications."""

import os
from dataclasses import fields
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from ..capture.stability import PlatformFingerprint, StabilityPolicy
from ..parsing.medications import KnownMedication
from ..parsing.review import ReviewPolicy
from ..transcription.adapter import SttConfig, SttProvider

logger = logging.getLogger(__name__)

_PATH_KEYS = ('logging.file_path',)


class VoiceDiaryConfig:
    """Settings read from voicediary.yaml with dot-path access."""

    def __init__(self, config_path: str):
        """Read settings from disk.

        Args:
            config_path: Location of the YAML settings file

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a YAML mapping
        """
        self.path = Path(config_path)
        if not self.path.is_file():
            raise FileNotFoundError(f"VoiceDiary settings not found: {self.path}")

        logger.info(f"Reading settings from {self.path}")
        self.config = self._read()
        self._anchor_paths()
        logger.debug(f"Settings sections: {sorted(self.config)}")

    def _read(self) -> Dict[str, Any]:
        try:
            data = yaml.safe_load(self.path.read_text(encoding='utf-8'))
        except yaml.YAMLError as e:
            raise ValueError(f"{self.path} is not valid YAML: {e}")

        if not data:
            raise ValueError(f"{self.path} contains no settings")
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping at the top level")
        return data

    def _anchor_paths(self) -> None:
        """Make relative file paths relative to the settings file, not the cwd."""
        for key_path in _PATH_KEYS:
            value = self.get(key_path)
            if value and not os.path.isabs(value):
                self.set(key_path, str(self.path.parent / value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a value by dotted path, e.g. 'stt.provider'.

        Args:
            key_path: Section and key names joined with dots
            default: Returned when any part of the path is missing

        Returns:
            The stored value, or default
        """
        node: Any = self.config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """Store a value by dotted path, creating missing sections."""
        *sections, leaf = key_path.split('.')
        node = self.config
        for part in sections:
            node = node.setdefault(part, {})
        node[leaf] = value
        logger.debug(f"Setting {key_path} = {value!r}")

    def get_stt_config(self) -> SttConfig:
        """Build the transcription adapter config.

        The API key falls back to the OPENAI_API_KEY environment variable when
        the whisper provider is selected and no key is configured.
        """
        raw_provider = self.get('stt.provider', 'none')
        try:
            provider = SttProvider(raw_provider)
        except ValueError:
            raise ValueError(f"Unknown STT provider in configuration: {raw_provider}")

        api_key = self.get('stt.api_key')
        if not api_key and provider is SttProvider.WHISPER:
            api_key = os.environ.get('OPENAI_API_KEY')

        return SttConfig(
            provider=provider,
            api_key=api_key or None,
            language=self.get('stt.language', 'de-DE'),
            model=self.get('stt.model', 'whisper-1'),
            timeout_seconds=float(self.get('stt.timeout_seconds', 30)),
        )

    def get_review_policy(self) -> ReviewPolicy:
        overrides = self.get('parser.review', {}) or {}
        unknown = set(overrides) - {f.name for f in fields(ReviewPolicy)}
        if unknown:
            raise ValueError(f"Unknown review settings: {', '.join(sorted(unknown))}")
        return ReviewPolicy(**{key: float(value) for key, value in overrides.items()})

    def get_stability_overrides(self) -> Dict[str, int]:
        """Return capture policy fields overridden in the 'capture' section."""
        overrides = self.get('capture', {}) or {}
        allowed = StabilityPolicy.field_names()
        unknown = set(overrides) - allowed
        if unknown:
            raise ValueError(f"Unknown capture settings: {', '.join(sorted(unknown))}")
        return {key: int(value) for key, value in overrides.items()}

    def get_known_medications(self) -> List[KnownMedication]:
        medications = []
        for entry in self.get('medications', []) or []:
            if 'name' not in entry:
                raise ValueError(f"Medication entry without name: {entry}")
            medications.append(KnownMedication(
                name=entry['name'],
                id=entry.get('id'),
                active_ingredient=entry.get('active_ingredient'),
            ))
        return medications

    def get_default_pain(self) -> int:
        value = int(self.get('parser.default_pain', 0))
        if not 0 <= value <= 10:
            raise ValueError(f"parser.default_pain must be between 0 and 10, got {value}")
        return value

    def get_platform(self) -> Optional[PlatformFingerprint]:
        platform = self.get('platform')
        if not platform:
            return None
        return PlatformFingerprint(
            os=platform.get('os', 'unknown'),
            browser_family=platform.get('browser_family', 'unknown'),
            standalone=bool(platform.get('standalone', False)),
            speech_supported=bool(platform.get('speech_supported', True)),
        )
