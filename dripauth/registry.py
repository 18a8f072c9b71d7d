"""
DripAuth Module Registry

Admin-controlled mapping from module identity to its installed auth module
and its current configuration (display name, enabled flag, cooldown, amount).
"""

import hmac
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .errors import UnauthorizedError
from .logging_config import audit_log
from .modules import AuthModule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleConfig:
    """
    Configuration of one module identity.

    Frozen: a configure call replaces the whole record, so a reader always
    sees either the old or the new config in full.
    """
    name: str
    enabled: bool
    cooldown_seconds: int
    amount: int

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("name must be a non-empty string")
        if not isinstance(self.enabled, bool):
            raise ValueError("enabled must be a boolean")
        for attr in ("cooldown_seconds", "amount"):
            value = getattr(self, attr)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{attr} must be an integer")
            if value < 0:
                raise ValueError(f"{attr} must not be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.enabled,
            "cooldown_seconds": self.cooldown_seconds,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ModuleConfig':
        """All four fields are required; there is no partial update."""
        return cls(
            name=data["name"],
            enabled=data["enabled"],
            cooldown_seconds=data["cooldown_seconds"],
            amount=data["amount"],
        )


class ModuleRegistry:
    """
    Registry of auth modules and their configuration.

    Mutations are restricted to the administrator fixed at construction.
    Module instances and configs are both keyed by ``module_id``; a drip
    needs both to proceed.
    """

    def __init__(self, admin: str):
        if not admin:
            raise ValueError("admin identity is required")
        self._admin = admin
        self._modules: Dict[str, AuthModule] = {}
        self._configs: Dict[str, ModuleConfig] = {}
        self._lock = threading.RLock()

    @property
    def admin(self) -> str:
        return self._admin

    def is_admin(self, caller: Optional[str]) -> bool:
        if not caller:
            return False
        return hmac.compare_digest(caller.encode('utf-8'), self._admin.encode('utf-8'))

    def _require_admin(self, caller: Optional[str], operation: str):
        if not self.is_admin(caller):
            audit_log.security_event(
                "non_admin_mutation",
                severity="high",
                caller=caller,
                operation=operation,
            )
            raise UnauthorizedError(f"{operation} requires the administrator")

    def install(self, caller: str, module: AuthModule) -> None:
        """
        Attach a module instance under its identity.

        Installing over an existing identity is how an authority key is
        rotated; the config and cooldown history of that identity carry over.
        """
        self._require_admin(caller, "install")
        with self._lock:
            previous = self._modules.get(module.module_id)
            self._modules[module.module_id] = module

        audit_log.module_installed(
            module_id=module.module_id,
            module_type=module.module_type,
            scheme_name=module.scheme_name,
            replaced=previous is not None,
        )

    def configure(self, caller: str, module_id: str, config: ModuleConfig) -> None:
        """Replace the configuration of ``module_id``. Administrator only."""
        self._require_admin(caller, "configure")
        if not module_id:
            raise ValueError("module_id is required")
        if not isinstance(config, ModuleConfig):
            raise TypeError("config must be a ModuleConfig")

        with self._lock:
            self._configs[module_id] = config

        audit_log.module_configured(module_id=module_id, **config.to_dict())

    def get(self, module_id: str) -> Optional[ModuleConfig]:
        with self._lock:
            return self._configs.get(module_id)

    def get_module(self, module_id: str) -> Optional[AuthModule]:
        with self._lock:
            return self._modules.get(module_id)

    def resolve(self, module_id: str) -> Tuple[Optional[AuthModule], Optional[ModuleConfig]]:
        """Module and config as one consistent snapshot."""
        with self._lock:
            return self._modules.get(module_id), self._configs.get(module_id)

    def list_modules(self) -> List[str]:
        """All identities that have a module or a config."""
        with self._lock:
            return sorted(set(self._modules) | set(self._configs))
