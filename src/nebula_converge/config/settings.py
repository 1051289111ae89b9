"""Endpoint settings and the YAML profile inventory."""
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from ..engine.poller import PollConfig

logger = logging.getLogger(__name__)

ENV_ENDPOINT = "OPENNEBULA_ENDPOINT"
ENV_USERNAME = "OPENNEBULA_USERNAME"
ENV_PASSWORD = "OPENNEBULA_PASSWORD"


@dataclass
class EndpointConfig:
    """Connection and polling settings for one OpenNebula endpoint."""
    endpoint: str
    username: str
    password: Optional[str] = None
    password_env: str = ENV_PASSWORD
    poll_interval: float = 5
    initial_delay: float = 10
    min_poll_interval: float = 3
    timeout: float = 600

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    @property
    def credentials(self) -> str:
        """Session string in ``username:password`` form."""
        return f"{self.username}:{self.get_password()}"

    def poll_config(self) -> PollConfig:
        return PollConfig(
            poll_interval=self.poll_interval,
            initial_delay=self.initial_delay,
            min_poll_interval=self.min_poll_interval,
            timeout=self.timeout,
        )

    @classmethod
    def from_env(cls) -> "EndpointConfig":
        """Build from OPENNEBULA_ENDPOINT / OPENNEBULA_USERNAME / OPENNEBULA_PASSWORD.

        Raises:
            KeyError: if the endpoint or username variable is unset.
        """
        missing = [name for name in (ENV_ENDPOINT, ENV_USERNAME) if not os.environ.get(name)]
        if missing:
            raise KeyError(f"Missing environment variable(s): {', '.join(missing)}")
        return cls(
            endpoint=os.environ[ENV_ENDPOINT],
            username=os.environ[ENV_USERNAME],
        )

    @classmethod
    def from_dict(cls, config: dict) -> "EndpointConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            logger.warning(f"Ignoring unknown endpoint settings: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in config.items() if k in known})


class ProfileInventory:
    """Named endpoint profiles loaded from YAML config.

    ```yaml
    defaults:
      timeout: 900
      password_env: ONE_PASSWORD
    profiles:
      lab:
        endpoint: http://one.lab:2633/RPC2
        username: oneadmin
      prod:
        endpoint: https://one.example.com/RPC2
        username: deployer
        poll_interval: 10
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the opennebula.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "opennebula.yaml",
            Path.cwd() / "opennebula.yaml",
            Path.home() / ".config" / "nebula-converge" / "opennebula.yaml",
            Path("/etc/nebula-converge/opennebula.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find opennebula.yaml. Create one in ./configs/opennebula.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        # Apply defaults
        defaults = self._config.get("defaults", {}) or {}
        profiles = self._config["profiles"] = self._config.get("profiles") or {}
        for name, profile in profiles.items():
            if profile is None:
                profile = profiles[name] = {}
            for key, value in defaults.items():
                if key not in profile:
                    profile[key] = value

        logger.debug(f"Loaded {len(profiles)} profile(s) from {self.config_path}")

    def get_profile_names(self) -> list[str]:
        """Get all profile names."""
        return list(self._config.get("profiles", {}).keys())

    def get_profile_config(self, name: str) -> dict:
        """Get raw config for a profile."""
        profiles = self._config.get("profiles", {})
        if name not in profiles:
            raise KeyError(f"Unknown profile: {name}")
        return profiles[name]

    def get_profile(self, name: str) -> EndpointConfig:
        """Build the endpoint settings of a profile."""
        return EndpointConfig.from_dict(self.get_profile_config(name))

    def poll_config(self, name: str) -> PollConfig:
        return self.get_profile(name).poll_config()
