"""Core application configuration.

Everything that differs between deployments (callback secrets, provider
URLs, internal RPC address, timeouts, logging) is read from environment
variables once at import time and exposed as module constants. Grouped
settings live in plain dicts so tests can monkeypatch single values without
re-importing the module.
"""
from __future__ import annotations

import os


def _env_bool(name: str, default: str = "false") -> bool:
	return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


SERVICE_NAME: str = "http-server"
VERSION: str = os.getenv("SERVICE_VERSION", "development")
RUNTIME_ENVIRONMENT: str = os.getenv("RUNTIME_ENVIRONMENT", "development")

# ------------------------------- Logging ---------------------------------- #
# "fromenv" picks DEBUG for staging/development and INFO everywhere else.
_raw_log_level = os.getenv("LOG_LEVEL", "fromenv").strip()
if _raw_log_level.lower() == "fromenv":
	LOG_LEVEL: str = "DEBUG" if RUNTIME_ENVIRONMENT in ("staging", "development") else "INFO"
else:
	LOG_LEVEL = _raw_log_level.upper()
LOG_FILE: str | None = os.getenv("LOG_FILE") or None

# ------------------------------- Midtrans --------------------------------- #
MIDTRANS_SETTINGS: dict[str, str | float | bool] = {
	"server_key": os.getenv("MIDTRANS_SERVER_KEY", ""),
	# {order_id} is substituted with the transaction's order (task) id.
	"get_status_url": os.getenv(
		"MIDTRANS_GET_STATUS_URL", "https://api.sandbox.midtrans.com/v2/{order_id}/status"
	),
	# Upper bound for the whole reconciliation (lookup + RPCs).
	"request_timeout_seconds": float(os.getenv("MIDTRANS_REQUEST_TIMEOUT", "15")),
	"status_lookup_timeout_seconds": float(os.getenv("MIDTRANS_STATUS_LOOKUP_TIMEOUT", "10")),
	# Off: a fraud-rejected capture is marked FAILED and then SUCCESS, as the
	# legacy gateway did. On: stop after the FAILED transition.
	"short_circuit_fraud_failure": _env_bool("MIDTRANS_SHORT_CIRCUIT_FRAUD_FAILURE"),
}

# ------------------------------- MileApp ---------------------------------- #
MILEAPP_SETTINGS: dict[str, str] = {
	"auth_key": os.getenv("MILEAPP_AUTH_KEY", ""),
}

# ------------------------------- Shoptree --------------------------------- #
SHOPTREE_SETTINGS: dict[str, str] = {
	"auth_key": os.getenv("SHOPTREE_AUTH_KEY", ""),
}

# --------------------------- Storefront RPC ------------------------------- #
STOREFRONT_RPC_SETTINGS: dict[str, str | float] = {
	"base_url": os.getenv("STOREFRONT_RPC_URL", "http://localhost:8080"),
	"auth_key": os.getenv("STOREFRONT_API_AUTH_KEY", ""),
	"timeout_seconds": float(os.getenv("STOREFRONT_RPC_TIMEOUT", "10")),
}

# ------------------------------ Task Lease -------------------------------- #
# Optional per-task lease that serializes concurrent duplicate payment
# notifications. Disabled by default.
TASK_LOCK_SETTINGS: dict[str, str | int | float | bool] = {
	"enabled": _env_bool("TASK_LOCK_ENABLED"),
	"use_redis": _env_bool("TASK_LOCK_USE_REDIS"),
	"redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
	"ttl_ms": int(os.getenv("TASK_LOCK_TTL_MS", "20000")),
	"socket_timeout_seconds": float(os.getenv("TASK_LOCK_SOCKET_TIMEOUT", "2")),
	"key_prefix": "storefront:callback:task-lock:",
}

__all__ = [
	"SERVICE_NAME",
	"VERSION",
	"RUNTIME_ENVIRONMENT",
	"LOG_LEVEL",
	"LOG_FILE",
	# Setting groups
	"MIDTRANS_SETTINGS",
	"MILEAPP_SETTINGS",
	"SHOPTREE_SETTINGS",
	"STOREFRONT_RPC_SETTINGS",
	"TASK_LOCK_SETTINGS",
]
