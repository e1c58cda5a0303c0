import copy
import logging

import yaml

logger = logging.getLogger(__name__)

# addresses a server binds to but a client cannot connect to
WILDCARD_HOSTS = ("0.0.0.0", "::", "")


class Config:
    """Service settings: built-in DEFAULTS with an optional YAML file merged on top.

    ``evaluation.base_url`` left unset is derived from ``server.host`` and
    ``server.port``, so the harness follows the port the service listens on.
    """

    DEFAULTS = {
        "server": {
            "host": "0.0.0.0",
            "port": 8080,
            "debug": False,
            "log_level": "INFO",
        },
        "ingestion": {
            "upload_field": "arquivos",
        },
        "analytics": {
            "superuser_min_score": 900,
            "top_countries_limit": 5,
        },
        "evaluation": {
            "base_url": None,
            "timeout_seconds": 5.0,
            "endpoints": [
                "/superusers",
                "/top-countries",
                "/team-insights",
                "/active-users-per-day",
            ],
        },
        "schema": {
            "path": "schemas/user_schema.json",
        },
    }

    def __init__(self, config_path=None):
        settings = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r") as f:
                    user_config = yaml.safe_load(f)
            except FileNotFoundError:
                user_config = None
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)
                user_config = None

            if user_config and isinstance(user_config, dict):
                settings = self._deep_merge(settings, user_config)

        if not settings["evaluation"]["base_url"]:
            settings["evaluation"]["base_url"] = self._local_url(settings["server"])
        self._settings = settings

    @staticmethod
    def _local_url(server):
        host = server["host"]
        if host in WILDCARD_HOSTS:
            host = "localhost"
        return f"http://{host}:{server['port']}"

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def __getitem__(self, key):
        return self._settings[key]
