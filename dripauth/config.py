"""
Configuration module for DripAuth.

Centralizes configuration with environment variable support and loading of
the module definition file used to bootstrap the registry.
"""

import base64
import binascii
import json
import os
from pathlib import Path
from typing import Any, Dict, List

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("DRIPAUTH_ENV", "dev")  # dev|stage|prod

# Deployment context bound into every signing domain
CHAIN_ID = os.getenv("DRIPAUTH_CHAIN_ID", "dripauth-local-1")

# Administrator identity, fixed for the lifetime of the registry
ADMIN_IDENTITY = os.getenv("DRIPAUTH_ADMIN", "admin")

# Paths
MODULES_PATH = os.getenv("DRIPAUTH_MODULES_PATH", "config/modules.json")

# Initial reserve of the in-memory ledger (smallest unit)
RESERVE = int(os.getenv("DRIPAUTH_RESERVE", "0"))

# Logging
LOG_LEVEL = os.getenv("DRIPAUTH_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("DRIPAUTH_LOG_JSON", "true").lower() in ("1", "true", "yes")


# ============================================================
# Loaders
# ============================================================

def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_module_definitions(path: str = MODULES_PATH) -> List[Dict[str, Any]]:
    """
    Load and validate the module definition file.

    Each entry:
        {
          "module_id": "github",
          "type": "github",
          "scheme_name": "GithubModule",        (optional)
          "version": "1",                       (optional)
          "authority_public_key_b64": "...",
          "config": {"name": ..., "enabled": ..., "cooldown_seconds": ..., "amount": ...}
        }

    Returns:
        Entries with ``authority_public_key`` decoded to bytes

    Raises:
        ValueError: If the file is structurally invalid
    """
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("modules", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of module definitions")

    definitions = []
    seen = set()
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"{path}: module #{i} must be an object")
        for key in ("module_id", "type", "authority_public_key_b64", "config"):
            if key not in entry:
                raise ValueError(f"{path}: module #{i} is missing '{key}'")
        if entry["module_id"] in seen:
            raise ValueError(f"{path}: duplicate module_id {entry['module_id']}")
        seen.add(entry["module_id"])

        try:
            public_key = base64.b64decode(entry["authority_public_key_b64"], validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"{path}: module {entry['module_id']} has an invalid public key") from e

        definition = dict(entry)
        definition["authority_public_key"] = public_key
        definitions.append(definition)

    return definitions


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate that all required configuration files exist.
    Returns dict of name -> exists.
    """
    paths = {
        "modules": MODULES_PATH,
    }
    return {name: Path(path).exists() for name, path in paths.items()}


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("DRIPAUTH_DEBUG", "").lower() in ("1", "true", "yes")
