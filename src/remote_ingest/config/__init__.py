from .credentials import DEFAULT_KEY_FILES, AuthKind, Decrypt, ServerInfo, plaintext_decrypt
from .manager import ConfigManager, IngestLimits
from .schema import SchemaError, validate_config_schema

__all__ = [
    "AuthKind",
    "DEFAULT_KEY_FILES",
    "ConfigManager",
    "Decrypt",
    "IngestLimits",
    "SchemaError",
    "ServerInfo",
    "plaintext_decrypt",
    "validate_config_schema",
]
