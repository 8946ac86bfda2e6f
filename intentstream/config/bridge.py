"""Session bridge configuration (env names and defaults only)."""

from __future__ import annotations

ENV_BRIDGE_END_SENTINEL = "BRIDGE_END_SENTINEL"
ENV_BRIDGE_DRAIN_TIMEOUT_S = "BRIDGE_DRAIN_TIMEOUT_S"
ENV_BRIDGE_CLOSE_TIMEOUT_S = "BRIDGE_CLOSE_TIMEOUT_S"
ENV_BRIDGE_DISCONNECT_POLICY = "BRIDGE_DISCONNECT_POLICY"

# The browser sends this 3-byte binary frame when recording stops.
END_SENTINEL_LENGTH = 3
DEFAULT_BRIDGE_END_SENTINEL = b"EOS"

# Upper bound on waiting for the backend to end its response stream.
DEFAULT_BRIDGE_DRAIN_TIMEOUT_S = 30.0
# Upper bound on joining the gRPC worker thread after the stream ends or is cancelled.
DEFAULT_BRIDGE_CLOSE_TIMEOUT_S = 5.0

DISCONNECT_POLICY_FINALIZE = "finalize"
DISCONNECT_POLICY_DRAIN = "drain"
DISCONNECT_POLICY_ABANDON = "abandon"
DISCONNECT_POLICIES = (DISCONNECT_POLICY_FINALIZE, DISCONNECT_POLICY_DRAIN, DISCONNECT_POLICY_ABANDON)
DEFAULT_BRIDGE_DISCONNECT_POLICY = DISCONNECT_POLICY_FINALIZE

__all__ = [
    "DEFAULT_BRIDGE_CLOSE_TIMEOUT_S",
    "DEFAULT_BRIDGE_DISCONNECT_POLICY",
    "DEFAULT_BRIDGE_DRAIN_TIMEOUT_S",
    "DEFAULT_BRIDGE_END_SENTINEL",
    "DISCONNECT_POLICIES",
    "DISCONNECT_POLICY_ABANDON",
    "DISCONNECT_POLICY_DRAIN",
    "DISCONNECT_POLICY_FINALIZE",
    "END_SENTINEL_LENGTH",
    "ENV_BRIDGE_CLOSE_TIMEOUT_S",
    "ENV_BRIDGE_DISCONNECT_POLICY",
    "ENV_BRIDGE_DRAIN_TIMEOUT_S",
    "ENV_BRIDGE_END_SENTINEL",
]
