"""Interactive profile selection and editing, run before the main screen."""

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from config.config import (
    REGISTRY_AUTH_METHODS,
    SASL_MECHANISMS,
    SECURITY_PROTOCOLS,
    ConfigFile,
    KafkaConfig,
    Profile,
    SchemaRegistryConfig,
    save_config_file,
)
from core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MENU = "number select, [n]ew, [e]dit, [d]efault, [x] delete, [q]uit"


def _profiles_table(config_file: ConfigFile) -> Table:
    table = Table(title="Profiles", expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Profile", style="cyan")
    table.add_column("Schema registry")
    table.add_column("Kafka")
    for i, key in enumerate(config_file.profile_names(), start=1):
        profile = config_file.profiles[key]
        label = profile.display_name
        if key == config_file.default:
            label += " (default)"
        table.add_row(
            str(i),
            label,
            profile.schema_registry.url,
            profile.kafka.bootstrap_servers or "[dim]not configured[/dim]",
        )
    return table


def _pick(config_file: ConfigFile, prompt: str) -> Optional[str]:
    names = config_file.profile_names()
    if not names:
        return None
    number = IntPrompt.ask(prompt, choices=[str(i) for i in range(1, len(names) + 1)])
    return names[number - 1]


def prompt_profile(existing: Optional[Profile] = None) -> Profile:
    """Ask for every profile field, defaulting to the existing values."""
    registry = existing.schema_registry if existing else SchemaRegistryConfig()
    kafka = existing.kafka if existing else KafkaConfig()

    key = existing.key if existing else Prompt.ask("Profile key (e.g. local, production)")
    name = Prompt.ask("Display name", default=existing.name if existing else key)

    url = Prompt.ask("Schema registry URL", default=registry.url or "http://localhost:8081")
    auth_method = Prompt.ask(
        "Schema registry auth", choices=REGISTRY_AUTH_METHODS, default=registry.auth_method
    )
    api_key = api_secret = sasl_username = sasl_password = ""
    if auth_method == "basic":
        api_key = Prompt.ask("API key", default=registry.api_key)
        api_secret = Prompt.ask("API secret", password=True, default=registry.api_secret)
    elif auth_method == "sasl":
        sasl_username = Prompt.ask("SASL username", default=registry.sasl_username)
        sasl_password = Prompt.ask("SASL password", password=True, default=registry.sasl_password)

    bootstrap = Prompt.ask(
        "Kafka bootstrap servers (empty to disable Kafka)",
        default=kafka.bootstrap_servers,
    )
    protocol = Prompt.ask(
        "Kafka security protocol", choices=SECURITY_PROTOCOLS, default=kafka.security_protocol
    )
    mechanism = kafka.sasl_mechanism
    kafka_user = kafka_password = ""
    if protocol.startswith("SASL"):
        mechanism = Prompt.ask("SASL mechanism", choices=SASL_MECHANISMS, default=mechanism)
        kafka_user = Prompt.ask("Kafka SASL username", default=kafka.sasl_username)
        kafka_password = Prompt.ask(
            "Kafka SASL password", password=True, default=kafka.sasl_password
        )

    return Profile(
        key=key,
        name=name,
        schema_registry=SchemaRegistryConfig(
            url=url,
            auth_method=auth_method,
            api_key=api_key,
            api_secret=api_secret,
            sasl_username=sasl_username,
            sasl_password=sasl_password,
            timeout_seconds=registry.timeout_seconds,
        ),
        kafka=KafkaConfig(
            bootstrap_servers=bootstrap,
            security_protocol=protocol,
            sasl_mechanism=mechanism,
            sasl_username=kafka_user,
            sasl_password=kafka_password,
            client_id=kafka.client_id,
        ),
    )


def select_profile(config_file: ConfigFile, console: Optional[Console] = None) -> Optional[Profile]:
    """Let the operator choose, create, edit or delete profiles.

    Every change is written back to the configuration file immediately.

    Returns:
        The chosen profile, or None if the operator quit.
    """
    console = console or Console()
    while True:
        console.print(_profiles_table(config_file))
        choice = Prompt.ask(MENU, default="1").strip().lower()

        if choice == "q":
            return None
        if choice.isdigit():
            names = config_file.profile_names()
            index = int(choice) - 1
            if 0 <= index < len(names):
                logger.info("Selected profile '%s'", names[index])
                return config_file.profiles[names[index]]
            console.print(f"[red]No profile number {choice}[/red]")
            continue

        try:
            if choice == "n":
                config_file.upsert(prompt_profile())
            elif choice == "e":
                key = _pick(config_file, "Edit profile number")
                if key is None:
                    continue
                config_file.upsert(prompt_profile(config_file.profiles[key]))
            elif choice == "d":
                key = _pick(config_file, "Default profile number")
                if key is None:
                    continue
                config_file.set_default(key)
            elif choice == "x":
                key = _pick(config_file, "Delete profile number")
                if key is None or not Confirm.ask(f"Delete profile '{key}'?", default=False):
                    continue
                config_file.delete(key)
            else:
                console.print(f"[red]Unknown choice '{choice}'[/red]")
                continue
        except ConfigurationError as e:
            console.print(Panel(e.message, title="Invalid profile", border_style="red"))
            continue

        save_config_file(config_file, config_file.path)
