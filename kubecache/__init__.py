"""kubecache: a continuously synchronized, queryable cache of Kubernetes resources."""

__version__ = "0.1.0"
