from .base import RETENTION_POLICIES, HarnessSettings, Method
from .factory import DEFAULT_CONFIG_PATH, ConfigError, MethodFactory

__all__ = [
    'Method',
    'HarnessSettings',
    'RETENTION_POLICIES',
    'MethodFactory',
    'ConfigError',
    'DEFAULT_CONFIG_PATH',
]
