"""kubetopo -- Kubernetes resource topology and NetworkPolicy connectivity.

Builds ownership/exposure graphs from resource snapshots, evaluates
NetworkPolicy rules into pod-to-pod connection records, and positions the
resulting nodes with one of several layout strategies.
"""

__version__ = "0.1.0"
