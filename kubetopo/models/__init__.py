"""Core data structures for kubetopo."""

from kubetopo.models.config import (
    APIConfig,
    ForceParams,
    LayoutConfig,
    LayoutDirection,
    LayoutStrategy,
    LogConfig,
    TopologyConfig,
)
from kubetopo.models.policy import (
    ConnectionRecord,
    IPBlock,
    LabelSelector,
    NetworkPolicy,
    NetworkPolicyPeer,
    NetworkPolicyRule,
    PolicyDirection,
    PolicyPort,
    PolicyType,
    SelectorOperator,
    SelectorRequirement,
)
from kubetopo.models.quality import DataQualityWarning, WarningCode
from kubetopo.models.resources import (
    AutoscalerResource,
    ClaimResource,
    GenericResource,
    IngressResource,
    NamespaceResource,
    PodResource,
    Resource,
    ResourceRef,
    ServiceResource,
    WorkloadResource,
    parse_resource,
)

__all__ = [
    "APIConfig",
    "AutoscalerResource",
    "ClaimResource",
    "ConnectionRecord",
    "DataQualityWarning",
    "ForceParams",
    "GenericResource",
    "IPBlock",
    "IngressResource",
    "LabelSelector",
    "LayoutConfig",
    "LayoutDirection",
    "LayoutStrategy",
    "LogConfig",
    "NamespaceResource",
    "NetworkPolicy",
    "NetworkPolicyPeer",
    "NetworkPolicyRule",
    "PodResource",
    "PolicyDirection",
    "PolicyPort",
    "PolicyType",
    "Resource",
    "ResourceRef",
    "SelectorOperator",
    "SelectorRequirement",
    "ServiceResource",
    "TopologyConfig",
    "WarningCode",
    "WorkloadResource",
    "parse_resource",
]
