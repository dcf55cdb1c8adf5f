from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_str(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _parse_in_cluster(raw: str) -> str:
    raw = (raw or "").strip().lower()
    if raw in ("1", "true", "yes", "y", "on"):
        return "always"
    if raw in ("0", "false", "no", "n", "off"):
        return "never"
    return "auto"


@dataclass(frozen=True)
class K8sClientConfig:
    kubeconfig: Optional[str] = None  # None => client default (~/.kube/config)
    context: Optional[str] = None
    # auto: try in-cluster first, fall back to kubeconfig
    in_cluster: str = "auto"  # auto|always|never
    request_timeout_seconds: int = 30


@lru_cache(maxsize=1)
def load_k8s_config() -> K8sClientConfig:
    """
    Load cluster client configuration from env.

    Recognized vars:
    - KUBECONFIG=/path/to/kubeconfig
    - KUBE_CONTEXT=my-context
    - K8S_IN_CLUSTER=auto|1|0
    - K8S_REQUEST_TIMEOUT_SECONDS=30
    """
    return K8sClientConfig(
        kubeconfig=_env_str("KUBECONFIG"),
        context=_env_str("KUBE_CONTEXT"),
        in_cluster=_parse_in_cluster(os.getenv("K8S_IN_CLUSTER", "")),
        request_timeout_seconds=max(1, min(_env_int("K8S_REQUEST_TIMEOUT_SECONDS", 30), 300)),
    )
