"""Kubernetes API client used by the authorization checks (discovery, access reviews, listing)."""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional, Protocol, Tuple, runtime_checkable

from kubernetes import client, config

from meshauthz.authz.models import AccessQuery, AccessVerdict, DiscoveredResource, DiscoveredResourceList
from meshauthz.config import K8sClientConfig, load_k8s_config

logger = logging.getLogger(__name__)


@runtime_checkable
class K8sProvider(Protocol):
    def submit_access_query(self, query: AccessQuery) -> AccessVerdict: ...

    def list_resources_for_group_version(self, group_version: str) -> DiscoveredResourceList: ...

    def list_instances(self, group_version: str, resource: str) -> List[Any]: ...


def split_group_version(group_version: str) -> Tuple[str, str]:
    """'apps/v1' -> ('apps', 'v1'); 'v1' -> ('', 'v1')."""
    if "/" in group_version:
        group, version = group_version.split("/", 1)
        return group, version
    return "", group_version


def load_api_client(cfg: K8sClientConfig) -> client.ApiClient:
    """Build an ApiClient from in-cluster config or kubeconfig, per `cfg.in_cluster`."""
    if cfg.in_cluster != "never":
        try:
            config.load_incluster_config()
            logger.debug("Using in-cluster Kubernetes config")
            return client.ApiClient()
        except config.ConfigException:
            if cfg.in_cluster == "always":
                raise

    logger.debug("Using kubeconfig (path=%s, context=%s)", cfg.kubeconfig or "<default>", cfg.context or "<current>")
    return config.new_client_from_config(config_file=cfg.kubeconfig, context=cfg.context)


class DefaultK8sProvider:
    """
    K8sProvider backed by the official `kubernetes` client.

    The ApiClient is created lazily on first use (thread-safe) unless one is injected.
    Client errors are not caught here; callers see `ApiException` etc. unchanged.
    """

    def __init__(self, api_client: Optional[client.ApiClient] = None, cfg: Optional[K8sClientConfig] = None) -> None:
        self._api_client = api_client
        self._cfg = cfg
        self._init_lock = threading.Lock()

    @property
    def cfg(self) -> K8sClientConfig:
        if self._cfg is None:
            self._cfg = load_k8s_config()
        return self._cfg

    def _get_api_client(self) -> client.ApiClient:
        if self._api_client is not None:
            return self._api_client
        with self._init_lock:
            if self._api_client is None:
                self._api_client = load_api_client(self.cfg)
            return self._api_client

    def submit_access_query(self, query: AccessQuery) -> AccessVerdict:
        r = query.resource
        attrs = client.V1ResourceAttributes(
            namespace=r.namespace,
            verb=r.verb,
            group=r.group,
            version=r.version,
            resource=r.resource,
            subresource=r.subresource,
            name=r.name,
        )
        authz_v1 = client.AuthorizationV1Api(self._get_api_client())
        timeout = self.cfg.request_timeout_seconds

        if query.subject is None:
            body = client.V1SelfSubjectAccessReview(spec=client.V1SelfSubjectAccessReviewSpec(resource_attributes=attrs))
            result = authz_v1.create_self_subject_access_review(body=body, _request_timeout=timeout)
        else:
            body = client.V1SubjectAccessReview(
                spec=client.V1SubjectAccessReviewSpec(
                    user=query.subject.user,
                    groups=list(query.subject.groups),
                    resource_attributes=attrs,
                )
            )
            result = authz_v1.create_subject_access_review(body=body, _request_timeout=timeout)

        status = result.status
        return AccessVerdict(allowed=bool(status.allowed), reason=getattr(status, "reason", None) or "")

    def list_resources_for_group_version(self, group_version: str) -> DiscoveredResourceList:
        api_client = self._get_api_client()
        timeout = self.cfg.request_timeout_seconds
        group, version = split_group_version(group_version)

        if not group and version == "v1":
            res = client.CoreV1Api(api_client).get_api_resources(_request_timeout=timeout)
        else:
            res = client.CustomObjectsApi(api_client).get_api_resources(group, version, _request_timeout=timeout)

        return DiscoveredResourceList(
            group_version=getattr(res, "group_version", None) or "",
            resources=[
                DiscoveredResource(
                    name=r.name or "",
                    kind=r.kind or "",
                    namespaced=bool(r.namespaced),
                    verbs=list(r.verbs or []),
                )
                for r in (getattr(res, "resources", None) or [])
            ],
        )

    def list_instances(self, group_version: str, resource: str) -> List[Any]:
        """List all instances of `resource` across all namespaces."""
        api_client = self._get_api_client()
        timeout = self.cfg.request_timeout_seconds
        group, version = split_group_version(group_version)

        if group_version == "discovery.k8s.io/v1" and resource == "endpointslices":
            return list(
                client.DiscoveryV1Api(api_client).list_endpoint_slice_for_all_namespaces(_request_timeout=timeout).items
                or []
            )
        out = client.CustomObjectsApi(api_client).list_cluster_custom_object(
            group, version, resource, _request_timeout=timeout
        )
        return list((out or {}).get("items") or [])


def get_k8s_provider(cfg: Optional[K8sClientConfig] = None) -> K8sProvider:
    """Seam for swapping provider implementations (tests inject fakes)."""
    return DefaultK8sProvider(cfg=cfg)
