"""Connection profile loading for avrodesk.

Profiles live in a single YAML file (default ~/.config/avrodesk/config.yaml,
override with AVRODESK_CONFIG). Each profile names one schema registry and
one Kafka cluster.

Main Functions
--------------

    - load_config_file(): Load (or create) the profile file
    - save_config_file(): Persist the profile file with 0600 permissions
    - resolve_profile(): Pick the selected, default or environment profile
    - profile_from_env(): Legacy environment-variable profile

Configuration Priority
----------------------

1. Profile chosen in the interactive selector (-s)
2. Default profile from the YAML file
3. Environment variables (SCHEMA_REGISTRY_URL, KAFKA_BOOTSTRAP_SERVERS, ...)

Usage
-----

    >>> from config import load_config_file, resolve_profile
    >>> profile = resolve_profile(load_config_file())
    >>> profile.schema_registry.url
    'http://localhost:8081'
"""

from config.config import (
    ConfigFile,
    KafkaConfig,
    Profile,
    SchemaRegistryConfig,
    create_default_config,
    get_config_path,
    load_config_file,
    profile_from_env,
    resolve_profile,
    save_config_file,
)

__all__ = [
    "ConfigFile",
    "KafkaConfig",
    "Profile",
    "SchemaRegistryConfig",
    "create_default_config",
    "get_config_path",
    "load_config_file",
    "profile_from_env",
    "resolve_profile",
    "save_config_file",
]
