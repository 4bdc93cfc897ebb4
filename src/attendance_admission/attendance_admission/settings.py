from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import ModuleType
from typing import Dict, Optional

from .core.constants import (
    DEFAULT_EVIDENCE_PATH_TEMPLATES,
    DEFAULT_GEOFENCE_RADIUS_M,
    DEFAULT_STALE_WINDOWS,
    DEFAULT_SWEEP_SECONDS,
    ELIGIBLE_ROLE,
)
from .core.enums import EndpointClass, Role
from .ratelimit.model import RatePolicy, policies_from_config

RATE_LIMIT_STORES = {"memory", "mysql"}


@dataclass(frozen=True)
class AdmissionSettings:
    """Configuration read once at startup; nothing reads the environment afterwards."""

    secret_key: str
    db_config: Dict[str, object]
    debug: bool = False
    testing: bool = False
    log_level: str = "INFO"
    rate_limits: Dict[EndpointClass, RatePolicy] = field(default_factory=lambda: policies_from_config(None))
    rate_limit_store: str = "memory"
    rate_limit_sweep_seconds: int = DEFAULT_SWEEP_SECONDS
    rate_limit_stale_windows: int = DEFAULT_STALE_WINDOWS
    geofence_radius_m: float = DEFAULT_GEOFENCE_RADIUS_M
    evidence_path_templates: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_EVIDENCE_PATH_TEMPLATES))
    allow_missing_checkin_evidence: bool = False
    allow_missing_checkout_evidence: bool = False
    require_checkout_coordinates: bool = False
    eligible_role: Role = Role(ELIGIBLE_ROLE)
    trusted_proxy_hops: int = 0
    auto_init_db: bool = False
    auto_seed_db: bool = False

    def __post_init__(self):
        if self.rate_limit_store not in RATE_LIMIT_STORES:
            raise ValueError(f"RATE_LIMIT_STORE must be one of {sorted(RATE_LIMIT_STORES)}")
        if self.geofence_radius_m <= 0:
            raise ValueError("GEOFENCE_RADIUS_M must be positive")

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @classmethod
    def from_module(cls, module: ModuleType) -> "AdmissionSettings":
        def get(name: str, default=None):
            return getattr(module, name, default)

        templates: Optional[Dict[str, str]] = get("EVIDENCE_PATH_TEMPLATES")
        return cls(
            secret_key=str(get("SECRET_KEY")),
            db_config=dict(get("DB_CONFIG") or {}),
            debug=bool(get("DEBUG", False)),
            testing=bool(get("TESTING", False)),
            log_level=str(get("LOG_LEVEL", "INFO")),
            rate_limits=policies_from_config(get("RATE_LIMITS")),
            rate_limit_store=str(get("RATE_LIMIT_STORE", "memory")).lower(),
            rate_limit_sweep_seconds=int(get("RATE_LIMIT_SWEEP_SECONDS", DEFAULT_SWEEP_SECONDS)),
            rate_limit_stale_windows=int(get("RATE_LIMIT_STALE_WINDOWS", DEFAULT_STALE_WINDOWS)),
            geofence_radius_m=float(get("GEOFENCE_RADIUS_M", DEFAULT_GEOFENCE_RADIUS_M)),
            evidence_path_templates=dict(templates or DEFAULT_EVIDENCE_PATH_TEMPLATES),
            allow_missing_checkin_evidence=bool(get("ALLOW_MISSING_CHECKIN_EVIDENCE", False)),
            allow_missing_checkout_evidence=bool(get("ALLOW_MISSING_CHECKOUT_EVIDENCE", False)),
            require_checkout_coordinates=bool(get("REQUIRE_CHECKOUT_COORDINATES", False)),
            eligible_role=Role(get("ELIGIBLE_ROLE", ELIGIBLE_ROLE)),
            trusted_proxy_hops=int(get("TRUSTED_PROXY_HOPS", 0)),
            auto_init_db=bool(get("AUTO_INIT_DB", False)),
            auto_seed_db=bool(get("AUTO_SEED_DB", False)),
        )
