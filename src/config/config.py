"""Connection profiles from a YAML file.

Loads from ~/.config/avrodesk/config.yaml (override with AVRODESK_CONFIG):

    default: local
    configurations:
      local:
        name: Local Development
        schema_registry:
          url: http://localhost:8081
        kafka:
          bootstrap_servers: localhost:9092
          security_protocol: PLAINTEXT

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
When no profile can be resolved from the file, the legacy environment
variables (SCHEMA_REGISTRY_URL and friends) are used instead.
"""

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.errors.exceptions import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "avrodesk" / "config.yaml"

SECURITY_PROTOCOLS = ["PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"]
SASL_MECHANISMS = ["PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512"]
REGISTRY_AUTH_METHODS = ["none", "basic", "sasl"]


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def get_config_path() -> Path:
    """Resolve the profile file path, honouring AVRODESK_CONFIG."""
    override = os.getenv("AVRODESK_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE


@dataclass
class SchemaRegistryConfig:
    """Schema registry connection settings."""

    url: str = ""
    auth_method: str = "none"
    api_key: str = ""
    api_secret: str = ""
    sasl_username: str = ""
    sasl_password: str = ""
    timeout_seconds: int = 30

    def has_auth(self) -> bool:
        return bool(self.credentials())

    def credentials(self) -> Optional[tuple[str, str]]:
        """Basic-auth pair for the configured auth method, or None."""
        if self.auth_method == "sasl":
            if self.sasl_username and self.sasl_password:
                return self.sasl_username, self.sasl_password
            return None
        if self.api_key and self.api_secret:
            return self.api_key, self.api_secret
        return None


@dataclass
class KafkaConfig:
    """Kafka connection settings for one profile.

    All timing values in milliseconds.
    """

    # =========================================================================
    # CONNECTION SETTINGS
    # =========================================================================
    bootstrap_servers: str = ""
    security_protocol: str = "PLAINTEXT"
    sasl_mechanism: str = "PLAIN"
    sasl_username: str = ""
    sasl_password: str = ""
    client_id: str = "avrodesk"

    # =========================================================================
    # TIMEOUTS
    # =========================================================================
    request_timeout_ms: int = 30000
    metadata_max_age_ms: int = 300000
    connections_max_idle_ms: int = 540000

    @property
    def is_configured(self) -> bool:
        return bool(self.bootstrap_servers)


@dataclass
class Profile:
    """A named connection profile: one registry and one Kafka cluster."""

    key: str
    name: str = ""
    schema_registry: SchemaRegistryConfig = field(default_factory=SchemaRegistryConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)

    @property
    def display_name(self) -> str:
        return self.name or self.key

    def validate(self) -> None:
        """Validate profile for correctness and constraints.

        Raises:
            ConfigurationError: on the first violated constraint
        """
        if not self.key or not self.key.strip():
            raise ConfigurationError("profile key is required")
        context = f"profile '{self.key}'"
        registry = self.schema_registry
        if not registry.url:
            raise ConfigurationError(f"{context}: schema_registry.url is required")
        if not registry.url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"{context}: schema_registry.url must start with http:// or https://, "
                f"got {registry.url!r}"
            )
        self._validate_enum(asdict(registry), "auth_method", REGISTRY_AUTH_METHODS, context)
        self._validate_min(asdict(registry), "timeout_seconds", 0, inclusive=False, context=context)

        kafka = asdict(self.kafka)
        self._validate_enum(kafka, "security_protocol", SECURITY_PROTOCOLS, context)
        if self.kafka.security_protocol.startswith("SASL"):
            self._validate_enum(kafka, "sasl_mechanism", SASL_MECHANISMS, context)
            if not (self.kafka.sasl_username and self.kafka.sasl_password):
                raise ConfigurationError(
                    f"{context}: {self.kafka.security_protocol} requires "
                    "kafka.sasl_username and kafka.sasl_password"
                )
        self._validate_min(kafka, "request_timeout_ms", 0, inclusive=False, context=context)

    @staticmethod
    def _validate_enum(
        settings: Dict[str, Any],
        key: str,
        valid_values: List[Any],
        context: str
    ) -> None:
        """Validate that a setting's value is in a list of valid values."""
        if key in settings and settings[key] not in valid_values:
            raise ConfigurationError(
                f"{context}: {key} must be one of {valid_values}, "
                f"got '{settings[key]}'"
            )

    @staticmethod
    def _validate_min(
        settings: Dict[str, Any],
        key: str,
        min_value: float,
        inclusive: bool,
        context: str
    ) -> None:
        """Validate that a setting's value meets a minimum threshold."""
        if key in settings:
            value = settings[key]
            if inclusive and value < min_value:
                raise ConfigurationError(
                    f"{context}: {key} must be >= {min_value}, got {value}"
                )
            elif not inclusive and value <= min_value:
                raise ConfigurationError(
                    f"{context}: {key} must be > {min_value}, got {value}"
                )

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> "Profile":
        registry = _known_fields(SchemaRegistryConfig, data.get("schema_registry") or {}, key)
        kafka = _known_fields(KafkaConfig, data.get("kafka") or {}, key)
        return cls(
            key=key,
            name=data.get("name", "") or "",
            schema_registry=SchemaRegistryConfig(**registry),
            kafka=KafkaConfig(**kafka),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the YAML file, dropping empty optional values."""
        registry = {k: v for k, v in asdict(self.schema_registry).items() if v not in ("", None)}
        kafka = {k: v for k, v in asdict(self.kafka).items() if v not in ("", None)}
        return {"name": self.name, "schema_registry": registry, "kafka": kafka}


def _known_fields(cls: type, settings: Dict[str, Any], profile_key: str) -> Dict[str, Any]:
    """Drop keys the dataclass does not declare, logging each one."""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(settings) - known)
    if unknown:
        logger.warning(
            "Ignoring unknown settings in profile '%s': %s", profile_key, ", ".join(unknown)
        )
    return {k: v for k, v in settings.items() if k in known}


@dataclass
class ConfigFile:
    """Parsed profile file."""

    default: str = ""
    profiles: Dict[str, Profile] = field(default_factory=dict)
    path: Optional[Path] = None

    def get_profile(self, key: str) -> Profile:
        try:
            return self.profiles[key]
        except KeyError:
            raise ConfigurationError(f"profile {key!r} not found") from None

    def profile_names(self) -> List[str]:
        """Profile keys with the default first, the rest alphabetically."""
        names = sorted(self.profiles)
        if self.default in self.profiles:
            names.remove(self.default)
            names.insert(0, self.default)
        return names

    def set_default(self, key: str) -> None:
        self.get_profile(key)
        self.default = key

    def upsert(self, profile: Profile) -> None:
        profile.validate()
        self.profiles[profile.key] = profile
        if not self.default:
            self.default = profile.key

    def delete(self, key: str) -> None:
        self.get_profile(key)
        del self.profiles[key]
        if self.default == key:
            self.default = next(iter(sorted(self.profiles)), "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default": self.default,
            "configurations": {k: p.to_dict() for k, p in self.profiles.items()},
        }


def default_config_file() -> ConfigFile:
    """The single local-development profile written on first start."""
    local = Profile(
        key="local",
        name="Local Development",
        schema_registry=SchemaRegistryConfig(url="http://localhost:8081"),
        kafka=KafkaConfig(bootstrap_servers="localhost:9092", security_protocol="PLAINTEXT"),
    )
    return ConfigFile(default="local", profiles={"local": local})


def save_config_file(config_file: ConfigFile, path: Optional[Path] = None) -> Path:
    """Write the profile file with owner-only permissions."""
    path = path or config_file.path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    data = yaml.safe_dump(config_file.to_dict(), default_flow_style=False, sort_keys=False)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(data)
    config_file.path = path
    logger.info("Saved configuration file", extra={"path": str(path)})
    return path


def create_default_config(path: Optional[Path] = None) -> ConfigFile:
    config_file = default_config_file()
    save_config_file(config_file, path or get_config_path())
    return config_file


def load_config_file(path: Optional[Path] = None, create: bool = True) -> ConfigFile:
    """Load the profile file, creating a default one if it does not exist.

    Environment variables ARE supported using ${VAR_NAME} syntax.
    """
    if path is None:
        path = get_config_path()

    if not path.exists():
        if not create:
            raise ConfigurationError(f"Configuration file not found: {path}")
        logger.info("Creating default configuration file", extra={"path": str(path)})
        return create_default_config(path)

    logger.info("Loading configuration from file", extra={"path": str(path)})
    try:
        yaml_data = load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file: {path}", cause=e) from e
    yaml_data = _expand_env_vars(yaml_data)

    configurations = yaml_data.get("configurations") or {}
    if not isinstance(configurations, dict):
        raise ConfigurationError(
            "Invalid config file: 'configurations:' must be a mapping of profile names"
        )

    profiles = {
        key: Profile.from_dict(key, data or {}) for key, data in configurations.items()
    }
    return ConfigFile(default=yaml_data.get("default", "") or "", profiles=profiles, path=path)


def profile_from_env() -> Profile:
    """Build a profile from environment variables (legacy mode).

    Raises:
        ConfigurationError: if SCHEMA_REGISTRY_URL is not set
    """
    url = os.getenv("SCHEMA_REGISTRY_URL", "")
    if not url:
        raise ConfigurationError("SCHEMA_REGISTRY_URL environment variable is required")

    api_key = os.getenv("SCHEMA_REGISTRY_API_KEY", "")
    api_secret = os.getenv("SCHEMA_REGISTRY_API_SECRET", "")
    sasl_username = os.getenv("KAFKA_SASL_USERNAME", "")
    protocol = os.getenv("KAFKA_SECURITY_PROTOCOL") or "PLAINTEXT"

    return Profile(
        key="env",
        name="Environment",
        schema_registry=SchemaRegistryConfig(
            url=url,
            auth_method="basic" if api_key else "none",
            api_key=api_key,
            api_secret=api_secret,
        ),
        kafka=KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", ""),
            security_protocol=protocol,
            sasl_username=sasl_username,
            sasl_password=os.getenv("KAFKA_SASL_PASSWORD", ""),
        ),
    )


def resolve_profile(config_file: Optional[ConfigFile], selected: Optional[str] = None) -> Profile:
    """Pick the profile to run with.

    Priority (highest to lowest):
    1. Explicitly selected profile
    2. Default profile from the file
    3. Environment variables
    """
    profile: Optional[Profile] = None
    if config_file is not None:
        key = selected or config_file.default
        if key:
            profile = config_file.get_profile(key)
        elif len(config_file.profiles) == 1:
            profile = next(iter(config_file.profiles.values()))

    if profile is None:
        logger.info("No profile in configuration file, falling back to environment")
        profile = profile_from_env()

    profile.validate()
    logger.debug(
        "Resolved profile",
        extra={"path": str(config_file.path) if config_file and config_file.path else None},
    )
    return profile
