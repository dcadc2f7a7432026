"""NetworkPolicy evaluation: selector matching, policy parsing, connectivity."""

from kubetopo.policy.connectivity import ConnectivityResult, build_network_topology, compute_connectivity
from kubetopo.policy.parser import parse_policy
from kubetopo.policy.selector import matches, matches_namespace, parse_selector

__all__ = [
    "ConnectivityResult",
    "build_network_topology",
    "compute_connectivity",
    "matches",
    "matches_namespace",
    "parse_policy",
    "parse_selector",
]
