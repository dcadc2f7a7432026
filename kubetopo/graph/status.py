"""Health status inference for graph nodes.

Pods map their phase (and Ready condition) to a status; workloads compare
available against desired replicas; claims map their binding phase.  Kinds
without a status subresource are healthy by existence.
"""

from __future__ import annotations

from kubetopo.graph.models import NodeStatus
from kubetopo.models.resources import (
    STATUSLESS_KINDS,
    ClaimResource,
    PodResource,
    Resource,
    WorkloadResource,
)

_POD_PHASES = {
    "Running": NodeStatus.HEALTHY,
    "Succeeded": NodeStatus.HEALTHY,
    "Pending": NodeStatus.WARNING,
    "Failed": NodeStatus.ERROR,
    "Unknown": NodeStatus.ERROR,
}

_CLAIM_PHASES = {
    "Bound": NodeStatus.HEALTHY,
    "Pending": NodeStatus.WARNING,
    "Lost": NodeStatus.ERROR,
}


def infer_status(resource: Resource) -> NodeStatus:
    """Derive a node status from the resource's own readiness information."""
    if resource.kind in STATUSLESS_KINDS:
        return NodeStatus.HEALTHY
    if not resource.has_status:
        return NodeStatus.UNKNOWN

    if isinstance(resource, PodResource):
        status = _POD_PHASES.get(resource.phase or "", NodeStatus.UNKNOWN)
        if status is NodeStatus.HEALTHY and resource.phase == "Running" and resource.ready is False:
            return NodeStatus.WARNING
        return status

    if isinstance(resource, WorkloadResource):
        if resource.desired > 0 and resource.available == 0:
            return NodeStatus.ERROR
        if resource.available < resource.desired:
            return NodeStatus.WARNING
        return NodeStatus.HEALTHY

    if isinstance(resource, ClaimResource):
        return _CLAIM_PHASES.get(resource.phase or "", NodeStatus.UNKNOWN)

    return NodeStatus.UNKNOWN
