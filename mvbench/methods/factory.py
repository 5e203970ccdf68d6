import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .base import RETENTION_POLICIES, HarnessSettings, Method


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "benchmark.json"


class ConfigError(ValueError):
    """Raised when the benchmark configuration is malformed."""


class MethodFactory:
    """Builds the immutable method table and harness settings from configuration."""

    def __init__(self, config_path: Optional[str] = None, config: Optional[Dict[str, Any]] = None):
        """
        Initialize factory.

        Args:
            config_path: Path to a benchmark JSON config. Defaults to the
                         packaged ``config/benchmark.json``.
            config: Already-loaded configuration; takes precedence over
                    ``config_path`` when given.
        """
        if config is None:
            path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    config = json.load(f)
            except OSError as exc:
                raise ConfigError(f"Cannot read config {path}: {exc}") from exc
            except json.JSONDecodeError as exc:
                raise ConfigError(f"Invalid JSON in config {path}: {exc}") from exc
            self.config_path: Optional[Path] = path
        else:
            self.config_path = Path(config_path) if config_path is not None else None

        if not isinstance(config, dict):
            raise ConfigError("Config root must be a JSON object")
        self.config = config
        self._methods = self._build_methods(config.get('methods', []))
        self._settings = self._build_settings(config.get('harness', {}))

    @property
    def settings(self) -> HarnessSettings:
        return self._settings

    def get_methods(self) -> Tuple[Method, ...]:
        """Get all configured methods in configuration order."""
        return self._methods

    def _build_methods(self, entries: List[Dict[str, Any]]) -> Tuple[Method, ...]:
        if not isinstance(entries, list) or not entries:
            raise ConfigError("Config must list at least one method under 'methods'")

        methods = []
        prefixes = set()
        for idx, entry in enumerate(entries):
            try:
                method = Method(
                    name=str(entry['name']),
                    executable=str(entry['executable']),
                    output_prefix=str(entry['output_prefix']),
                    supports_high_profile=bool(entry.get('supports_high_profile', False)),
                    env=self._build_env(idx, entry.get('env', {})),
                )
            except (KeyError, TypeError, AttributeError) as exc:
                raise ConfigError(f"Method entry {idx} is missing field {exc}") from exc
            if method.output_prefix in prefixes:
                raise ConfigError(f"Duplicate output prefix '{method.output_prefix}'")
            prefixes.add(method.output_prefix)
            methods.append(method)
        return tuple(methods)

    @staticmethod
    def _build_env(idx: int, env: Any) -> Dict[str, str]:
        if not isinstance(env, dict):
            raise ConfigError(f"Method entry {idx}: 'env' must be an object of variable names to values")
        return {str(key): str(value) for key, value in env.items()}

    def _build_settings(self, harness: Dict[str, Any]) -> HarnessSettings:
        frames_per_stream = harness.get('frames_per_stream', 298)
        if not isinstance(frames_per_stream, int) or frames_per_stream < 1:
            raise ConfigError("'frames_per_stream' must be a positive integer")

        retention = harness.get('retention', 'first')
        if retention not in RETENTION_POLICIES:
            raise ConfigError(
                f"Unknown retention policy '{retention}' (expected one of {', '.join(RETENTION_POLICIES)})"
            )

        root = Path(harness.get('executables_root', '.')).expanduser()
        if not root.is_absolute():
            root = Path.cwd() / root

        return HarnessSettings(
            frames_per_stream=frames_per_stream,
            output_extension=str(harness.get('output_extension', 'csv')).lstrip('.'),
            output_enabled=bool(harness.get('output_enabled', True)),
            retention=retention,
            executables_root=root.resolve(),
            quiet_workers=bool(harness.get('quiet_workers', False)),
            cpu_affinity=dict(harness.get('cpu_affinity', {})),
            config_path=self.config_path,
        )
