"""Named access checks the CLI and tooling run against a cluster."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from meshauthz.authz.capability import check_capability, check_instances_exist
from meshauthz.authz.models import CapabilityProbe, GroupKind, ResourceDescriptor, SubjectDescriptor
from meshauthz.authz.review import build_self_query, build_subject_query, evaluate_access_review_status

if TYPE_CHECKING:
    from meshauthz.providers.k8s_provider import K8sProvider

logger = logging.getLogger(__name__)

SERVICE_PROFILE_API_GROUP = "linkerd.io"
SERVICE_PROFILE_API_VERSION = "linkerd.io/v1alpha2"
SERVICE_PROFILE_KIND = "ServiceProfile"

LINK_API_GROUP = "multicluster.linkerd.io"
LINK_API_VERSION = "v1alpha1"
LINK_API_GROUP_VERSION = f"{LINK_API_GROUP}/{LINK_API_VERSION}"
LINK_KIND = "Link"

# discovery.k8s.io/v1beta1 is no longer served (k8s >= 1.25).
ENDPOINT_SLICE_API_GROUP_VERSION = "discovery.k8s.io/v1"
ENDPOINT_SLICE_KIND = "EndpointSlice"
ENDPOINT_SLICE_RESOURCE = "endpointslices"

CHECK_NAMES = ("cluster", "profile", "link", "endpoint-slices")


@dataclass(frozen=True)
class CheckResult:
    name: str
    description: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AccessChecker:
    """Runs discovery + access-review checks through an injected K8sProvider."""

    def __init__(self, provider: K8sProvider) -> None:
        self.provider = provider

    def resource_authz(
        self,
        namespace: str = "",
        verb: str = "",
        group: str = "",
        version: str = "",
        resource: str = "",
        name: str = "",
        subresource: str = "",
    ) -> None:
        """Raise NotAuthorizedError unless the current credential may perform `verb` on `resource`."""
        query = build_self_query(
            ResourceDescriptor(
                namespace=namespace,
                verb=verb,
                group=group,
                version=version,
                resource=resource,
                subresource=subresource,
                name=name,
            )
        )
        verdict = self.provider.submit_access_query(query)
        evaluate_access_review_status(GroupKind(group=group, kind=resource), verdict)

    def resource_authz_for_user(
        self,
        namespace: str = "",
        verb: str = "",
        group: str = "",
        version: str = "",
        resource: str = "",
        subresource: str = "",
        name: str = "",
        user: str = "",
        user_groups: Sequence[str] = (),
    ) -> None:
        """Same as `resource_authz`, evaluated on behalf of `user` / `user_groups`."""
        query = build_subject_query(
            ResourceDescriptor(
                namespace=namespace,
                verb=verb,
                group=group,
                version=version,
                resource=resource,
                subresource=subresource,
                name=name,
            ),
            SubjectDescriptor(user=user, groups=list(user_groups)),
        )
        verdict = self.provider.submit_access_query(query)
        evaluate_access_review_status(GroupKind(group=group, kind=resource), verdict)

    def service_profiles_access(self) -> None:
        """ServiceProfile CRD is installed and ServiceProfiles can be listed."""
        check_capability(
            self.provider,
            CapabilityProbe(group_version=SERVICE_PROFILE_API_VERSION, expected_kind=SERVICE_PROFILE_KIND),
            lambda _res: self.resource_authz(verb="list", group=SERVICE_PROFILE_API_GROUP, resource="serviceprofiles"),
            crd=True,
        )

    def link_access(self) -> None:
        """Link CRD is installed and Links can be listed."""
        check_capability(
            self.provider,
            CapabilityProbe(group_version=LINK_API_GROUP_VERSION, expected_kind=LINK_KIND),
            lambda _res: self.resource_authz(
                verb="list", group=LINK_API_GROUP, version=LINK_API_VERSION, resource="links"
            ),
            crd=True,
        )

    def endpoint_slice_access(self) -> None:
        """EndpointSlice API is served and at least one EndpointSlice exists."""
        check_capability(
            self.provider,
            CapabilityProbe(group_version=ENDPOINT_SLICE_API_GROUP_VERSION, expected_kind=ENDPOINT_SLICE_KIND),
            lambda _res: check_instances_exist(
                ENDPOINT_SLICE_KIND,
                lambda: self.provider.list_instances(ENDPOINT_SLICE_API_GROUP_VERSION, ENDPOINT_SLICE_RESOURCE),
            ),
        )

    def cluster_access(self) -> None:
        """Pods can be listed in all namespaces. Pods are built in, so no discovery."""
        self.resource_authz(verb="list", resource="pods")

    def _registry(self) -> Dict[str, Tuple[str, Callable[[], None]]]:
        return {
            "cluster": ("can list pods in all namespaces", self.cluster_access),
            "profile": ("can access ServiceProfiles", self.service_profiles_access),
            "link": ("can access Links", self.link_access),
            "endpoint-slices": ("EndpointSlices are available", self.endpoint_slice_access),
        }

    def run_checks(self, names: Optional[Iterable[str]] = None) -> List[CheckResult]:
        """
        Run the named checks in order and report each outcome.

        Each check fails fast on its own; a failure (including transport errors) is
        recorded and the next check still runs.
        """
        registry = self._registry()
        selected = list(names) if names is not None else list(CHECK_NAMES)
        unknown = [n for n in selected if n not in registry]
        if unknown:
            raise ValueError(f"unknown check(s): {', '.join(unknown)} (known: {', '.join(CHECK_NAMES)})")

        results: List[CheckResult] = []
        for name in selected:
            description, fn = registry[name]
            try:
                fn()
            except Exception as e:
                logger.info("Check %s failed: %s", name, e)
                results.append(CheckResult(name=name, description=description, error=e))
                continue
            results.append(CheckResult(name=name, description=description))
        return results
