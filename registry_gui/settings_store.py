from __future__ import annotations

import json
import sys
from pathlib import Path

from registry_engine.app_logger import get_logger
from registry_engine.data_models import DEFAULT_DRIVER, ConnectionConfig

_log = get_logger("settings")

PROFILE_FILE_NAME = "db_config.json"


def default_profile_path() -> Path:
    """
    Location of the persisted connection profile.

    Returns
    -------
    Path
        ``db_config.json`` next to the frozen executable, or next to the
        launching script when running from source.
    """
    if getattr(sys, "frozen", False):
        base = Path(sys.executable).resolve().parent
    else:
        base = Path(sys.argv[0]).resolve().parent if sys.argv and sys.argv[0] else Path.cwd()
    return base / PROFILE_FILE_NAME


def load_connection_profile(path: Path) -> ConnectionConfig:
    """
    Load the last successful connection parameters.

    Parameters
    ----------
    path:
        Profile file location.

    Returns
    -------
    ConnectionConfig
        Loaded profile, or defaults if missing/unreadable. Individual fields
        that are missing or of the wrong type fall back to their defaults.
    """
    defaults = ConnectionConfig()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return defaults
    except (OSError, ValueError) as exc:
        _log.warning("Ignoring unreadable connection profile %s: %s", path, exc)
        return defaults
    if not isinstance(payload, dict):
        return defaults

    def _s(key: str, fallback: str) -> str:
        v = payload.get(key)
        return v if isinstance(v, str) else fallback

    port = payload.get("port", defaults.port)
    if isinstance(port, str) and port.strip().isdigit():
        port = int(port.strip())
    if not isinstance(port, int) or isinstance(port, bool) or not 1 <= port <= 65535:
        port = defaults.port

    return ConnectionConfig(
        host=_s("host", defaults.host),
        port=port,
        username=_s("username", defaults.username),
        password=_s("password", defaults.password),
        database=_s("database", defaults.database),
        driver=_s("driver", DEFAULT_DRIVER) or DEFAULT_DRIVER,
    )


def save_connection_profile(path: Path, config: ConnectionConfig) -> None:
    """
    Persist connection parameters after a successful connection.

    Notes
    -----
    The password is stored in clear text, as the profile is a convenience for
    a single-operator workstation.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "host": config.host,
        "port": config.port,
        "username": config.username,
        "password": config.password,
        "database": config.database,
        "driver": config.driver,
    }
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
