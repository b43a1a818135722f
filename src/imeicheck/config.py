from __future__ import annotations

import os
from pathlib import Path
from typing import List, Literal, Mapping, Optional
import yaml
from pydantic import BaseModel, Field

# Value shipped in .env templates; treated as "no key".
PLACEHOLDER_API_KEY = "your_gemini_api_key_here"

# ---- Oracle (text-generation fallback for unknown TACs) ----
class OracleConfig(BaseModel):
    enabled: bool = True
    api_key: Optional[str] = None
    model: str = "gemini-2.5-flash"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = Field(default=5.0, gt=0)

    @property
    def usable(self) -> bool:
        return self.enabled and bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY


# ---- Blacklist registry backend (swap without touching callers) ----
class RegistryConfig(BaseModel):
    backend: Literal["simulated", "http"] = "simulated"
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = Field(default=5.0, gt=0)
    extra_blacklisted: List[str] = Field(default_factory=list)  # simulated backend only

# ---- Root config ----
class ImeiCheckConfig(BaseModel):
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)

# ---- Loader ----
def load_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> ImeiCheckConfig:
    """
    Build config from an optional YAML file, then fill oracle settings the
    file leaves unset from GEMINI_API_KEY / GEMINI_MODEL.
    """
    env = os.environ if env is None else env
    cfg = ImeiCheckConfig()
    if path:
        data = yaml.safe_load(Path(path).read_text()) or {}
        cfg = ImeiCheckConfig(**data)

    if not cfg.oracle.api_key:
        key = env.get("GEMINI_API_KEY")
        if key and key != PLACEHOLDER_API_KEY:
            cfg.oracle.api_key = key
    if "model" not in cfg.oracle.model_fields_set and env.get("GEMINI_MODEL"):
        cfg.oracle.model = env["GEMINI_MODEL"]
    return cfg
