from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DripRequest(BaseModel):
    recipient: str = Field(min_length=1, max_length=128)
    nonce: str = Field(description="256-bit nonce as hex, 0x prefix optional")
    module_id: str
    identifier: str = Field(description="Identifier bytes as hex")
    signature: str = Field(description="Base64 Ed25519 signature")


class ModuleConfigBody(BaseModel):
    name: str = Field(min_length=1)
    enabled: bool
    cooldown_seconds: int = Field(ge=0)
    amount: int = Field(ge=0)


class ModuleView(BaseModel):
    module_id: str
    type: Optional[str] = None
    scheme_name: Optional[str] = None
    version: Optional[str] = None
    authority_key_fingerprint: Optional[str] = None
    config: Optional[ModuleConfigBody] = None


class NonceStatus(BaseModel):
    nonce: str
    used: bool


class CooldownStatus(BaseModel):
    module_id: str
    identifier: str
    last_drip: Optional[float] = None
    next_drip_at: Optional[float] = None


class ErrorBody(BaseModel):
    error: str
    detail: str
    extra: Dict[str, Any] = Field(default_factory=dict)


class EventList(BaseModel):
    events: List[Dict[str, Any]]
