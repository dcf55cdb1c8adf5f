"""Capability discovery and instance-existence checks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Sequence

from meshauthz.authz.errors import CapabilityNotFoundError, NoInstancesExistError
from meshauthz.authz.models import CapabilityProbe, DiscoveredResourceList

if TYPE_CHECKING:
    from meshauthz.providers.k8s_provider import K8sProvider

logger = logging.getLogger(__name__)


def check_capability(
    provider: K8sProvider,
    probe: CapabilityProbe,
    on_found: Callable[[DiscoveredResourceList], None],
    *,
    crd: bool = False,
) -> None:
    """
    Confirm `probe.expected_kind` is served under `probe.group_version`, then run `on_found`.

    Both the echoed group-version and a kind match are required: some servers answer
    with an empty or unrelated list instead of a 404. `on_found` is never called when
    the capability is absent, so a cluster without the API reports "not found" rather
    than "forbidden". Discovery errors propagate unchanged.
    """
    res = provider.list_resources_for_group_version(probe.group_version)

    if res.group_version != probe.group_version:
        logger.debug(
            "Discovery for %s answered with group version %r", probe.group_version, res.group_version
        )
        raise CapabilityNotFoundError(probe.expected_kind, crd=crd)

    if not res.has_kind(probe.expected_kind):
        logger.debug(
            "Discovery for %s lists %d resources, none of kind %s",
            probe.group_version,
            len(res.resources),
            probe.expected_kind,
        )
        raise CapabilityNotFoundError(probe.expected_kind, crd=crd)

    logger.debug("Found %s in %s", probe.expected_kind, probe.group_version)
    on_found(res)


def check_instances_exist(kind: str, list_fn: Callable[[], Sequence[Any]]) -> None:
    """
    Succeed iff `list_fn` returns at least one instance.

    Being able to list live instances is taken as proof of both installation and read
    access; no access review is issued.
    """
    items = list_fn()
    if len(items) > 0:
        logger.debug("Found %d %s instances", len(items), kind)
        return None
    raise NoInstancesExistError(kind)
