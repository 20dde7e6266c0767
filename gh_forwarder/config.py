"""the beautiful world start from here."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gh_forwarder.models import ConfigError, RoutingRule

DEFAULT_CONFIG_PATH = "config.yaml"

# Environment variable -> (section, key) in the config file.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SERVER_HOST": ("server", "host"),
    "SERVER_PORT": ("server", "port"),
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "GITHUB_WEBHOOK_SECRET": ("github", "webhook_secret"),
    "DELIVERY_MAX_ATTEMPTS": ("delivery", "max_attempts"),
    "DELIVERY_TIMEOUT_SECONDS": ("delivery", "timeout_seconds"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_JSON": ("logging", "json"),
}


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class ServerSettings(_Section):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, gt=0, lt=65536)


class TelegramSettings(_Section):
    bot_token: str = ""
    api_base: str = "https://api.telegram.org"
    request_timeout: float = Field(default=10.0, gt=0)


class GithubSettings(_Section):
    webhook_secret: str = ""


class DeliverySettings(_Section):
    max_attempts: int = Field(default=3, ge=1)
    backoff_base: float = Field(default=1.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    backoff_ceiling: float = Field(default=8.0, ge=0)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


class LoggingSettings(_Section):
    level: str = "INFO"
    json_output: bool = Field(default=False, alias="json")


class ConfigFile(BaseModel):
    """Shape of ``config.yaml``; routing entries are checked by :func:`parse_routing`."""

    server: ServerSettings = Field(default_factory=ServerSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    github: GithubSettings = Field(default_factory=GithubSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    routing: Optional[list[Any]] = None


@dataclass(frozen=True)
class Settings:
    """App Settings"""

    server: ServerSettings = field(default_factory=ServerSettings)
    telegram: TelegramSettings = field(default_factory=TelegramSettings)
    github: GithubSettings = field(default_factory=GithubSettings)
    delivery: DeliverySettings = field(default_factory=DeliverySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    routing: tuple[RoutingRule, ...] = ()

    @property
    def delivery_timeout(self) -> float:
        """Overall per-request delivery budget: every attempt may wait the full ceiling."""
        d = self.delivery
        if d.timeout_seconds is not None:
            return d.timeout_seconds
        return d.max_attempts * d.backoff_ceiling


def parse_routing(entries: Any) -> tuple[RoutingRule, ...]:
    """Build the immutable routing table from the ``routing`` list."""
    if entries is None:
        return ()
    rules = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"routing[{index}] must be a mapping")
        missing = [k for k in ("repo_pattern", "chat_id", "events") if entry.get(k) in (None, "")]
        if missing:
            raise ConfigError(f"routing[{index}] is missing {', '.join(missing)}")
        rules.append(
            RoutingRule.build(entry["repo_pattern"], entry["chat_id"], entry["events"])
        )
    return tuple(rules)


def settings_from_mapping(data: Mapping[str, Any]) -> Settings:
    try:
        cfg = ConfigFile.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
    return Settings(
        server=cfg.server,
        telegram=cfg.telegram,
        github=cfg.github,
        delivery=cfg.delivery,
        logging=cfg.logging,
        routing=parse_routing(cfg.routing),
    )


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name, (section, key) in ENV_OVERRIDES.items():
        value = env.get(name)
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def load_settings(
    config_path: str | Path | None = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from a YAML file, then let environment variables override."""
    if env is None:
        load_dotenv()
        env = os.environ

    explicit = config_path is not None or bool(env.get("CONFIG_PATH"))
    path = Path(config_path or env.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH)

    data: dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
    elif explicit:
        raise ConfigError(f"config file not found: {path}")

    return settings_from_mapping(_deep_merge(data, _env_overrides(env)))
