"""Fan a cluster-bound workflow out across several clusters."""

from multicluster.config import ClusterWorkflowRef, MultiClusterConfig, load_multicluster_config

__all__ = ['ClusterWorkflowRef', 'MultiClusterConfig', 'load_multicluster_config']
