"""Cluster resource variants and their CLI drivers."""

from cluster.cluster import EKS, GKE, Cluster, ClusterVariant, Kind, Minikube
from cluster.drivers import EksDriver, GkeDriver, KindDriver, MinikubeDriver

__all__ = [
    'Cluster',
    'ClusterVariant',
    'EKS',
    'EksDriver',
    'GKE',
    'GkeDriver',
    'Kind',
    'KindDriver',
    'Minikube',
    'MinikubeDriver',
]
