"""Cluster resource: the control plane a workflow runs against.

Ensure creates the cluster if it is not running and then points local
tooling at it; Teardown destroys it if present; SetContext only points
local tooling at it. The Cluster union also fixes which kubeconfig file
every later command uses.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from clients import ClusterDriver
from cluster.drivers import EksDriver, GkeDriver, KindDriver, MinikubeDriver
from common import parse_duration
from config import int_value, reject_unknown
from errors import ConfigError
from render import InputParams, bound_field
from resources.base import optional, single_variant

logger = logging.getLogger(__name__)

KUBE_DIR = os.path.join('~', '.kube')
DEFAULT_GKE_OPERATION_TIMEOUT = '30m'


class ClusterVariant:
    """Shared ensure/teardown/set_context over a ClusterDriver.

    Variants are rendered by Cluster before dispatch. A driver factory on
    the params replaces the CLI-backed driver (used by tests).
    """

    def describe(self) -> str:
        raise NotImplementedError

    def default_kube_config(self) -> str:
        raise NotImplementedError

    def cli_driver(self, params: InputParams):
        raise NotImplementedError

    def driver(self, params: InputParams) -> ClusterDriver:
        if params.cluster_driver_factory is not None:
            return params.cluster_driver_factory(self, params)
        return self.cli_driver(params)

    def ensure(self, params: InputParams) -> None:
        logger.info(f"Ensuring {self.describe()}")
        driver = self.driver(params)
        if driver.is_running():
            logger.info(f"Reusing running {self.describe()}")
        else:
            driver.create()
        driver.get_credentials()

    def teardown(self, params: InputParams) -> None:
        logger.info(f"Tearing down {self.describe()}")
        driver = self.driver(params)
        if not driver.is_running():
            logger.info(f"{self.describe()} is not running, nothing to tear down")
            return
        driver.destroy()

    def set_context(self, params: InputParams) -> None:
        self.driver(params).get_credentials()


@dataclass
class GKE(ClusterVariant):
    name: str = bound_field(key='ClusterName', template=True)
    project: str = bound_field(key='Project', template=True)
    location: str = bound_field(key='Location', template=True)
    operation_timeout: str = bound_field(default=DEFAULT_GKE_OPERATION_TIMEOUT, template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'GKE':
        reject_unknown(data, ('name', 'project', 'location', 'operationTimeout'), 'gke')
        return cls(
            name=str(data.get('name', '')),
            project=str(data.get('project', '')),
            location=str(data.get('location', '')),
            operation_timeout=str(data.get('operationTimeout', '')),
        )

    def describe(self) -> str:
        return f"GKE cluster {self.name} (project: {self.project}, location: {self.location})"

    def default_kube_config(self) -> str:
        return os.path.join(KUBE_DIR, 'gke', self.name)

    def cli_driver(self, params: InputParams) -> GkeDriver:
        if not self.name:
            raise ConfigError("gke cluster requires a name")
        return GkeDriver(
            params.get_runner(), params.commands, params.cancel,
            self.name, self.project, self.location,
            operation_timeout=parse_duration(self.operation_timeout),
        )


@dataclass
class EKS(ClusterVariant):
    name: str = bound_field(key='ClusterName', template=True)
    region: str = bound_field(key='AwsRegion', default='us-east-2', template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'EKS':
        reject_unknown(data, ('name', 'region'), 'eks')
        return cls(name=str(data.get('name', '')), region=str(data.get('region', '')))

    def describe(self) -> str:
        return f"EKS cluster {self.name} (region: {self.region})"

    def default_kube_config(self) -> str:
        return os.path.join(KUBE_DIR, 'eksctl', self.name)

    def cli_driver(self, params: InputParams) -> EksDriver:
        if not self.name:
            raise ConfigError("eks cluster requires a name")
        return EksDriver(params.get_runner(), params.commands, params.cancel, self.name, self.region)


@dataclass
class Minikube(ClusterVariant):
    cpus: int = bound_field(key='MinikubeCpus', default=4, empty=0)
    memory: int = bound_field(key='MinikubeMemory', default=8192, empty=0)
    kube_version: str = bound_field(key='KubeVersion', default='v1.13.0', template=True)
    vm_driver: str = bound_field(key='MinikubeVmDriver', default='virtualbox', template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'Minikube':
        reject_unknown(data, ('cpus', 'memory', 'kubeVersion', 'vmDriver'), 'minikube')
        return cls(
            cpus=int_value(data.get('cpus'), 'minikube.cpus'),
            memory=int_value(data.get('memory'), 'minikube.memory'),
            kube_version=str(data.get('kubeVersion', '')),
            vm_driver=str(data.get('vmDriver', '')),
        )

    def describe(self) -> str:
        return (f"minikube cluster (cpus: {self.cpus}, memory: {self.memory}, "
                f"version: {self.kube_version}, driver: {self.vm_driver})")

    def default_kube_config(self) -> str:
        return os.path.join(KUBE_DIR, 'config')

    def cli_driver(self, params: InputParams) -> MinikubeDriver:
        return MinikubeDriver(
            params.get_runner(), params.commands, params.cancel,
            self.cpus, self.memory, self.kube_version, self.vm_driver,
        )


@dataclass
class Kind(ClusterVariant):
    name: str = bound_field(key='ClusterName', default='test', template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'Kind':
        reject_unknown(data, ('name',), 'kind')
        return cls(name=str(data.get('name', '')))

    def describe(self) -> str:
        return f"kind cluster {self.name}"

    def default_kube_config(self) -> str:
        return os.path.join(KUBE_DIR, 'kind', self.name)

    def cli_driver(self, params: InputParams) -> KindDriver:
        return KindDriver(params.get_runner(), params.commands, params.cancel, self.name)


@dataclass
class Cluster:
    VARIANTS = ('gke', 'eks', 'minikube', 'kind')

    gke: Optional[GKE] = None
    eks: Optional[EKS] = None
    minikube: Optional[Minikube] = None
    kind: Optional[Kind] = None
    kube_config: str = bound_field(key='KubeConfig', template=True)

    def __post_init__(self):
        single_variant(self, self.VARIANTS, 'cluster')

    @classmethod
    def from_dict(cls, data: dict) -> 'Cluster':
        reject_unknown(data, cls.VARIANTS + ('kubeConfig',), 'cluster')
        return cls(
            gke=optional(GKE, data.get('gke'), 'gke'),
            eks=optional(EKS, data.get('eks'), 'eks'),
            minikube=optional(Minikube, data.get('minikube'), 'minikube'),
            kind=optional(Kind, data.get('kind'), 'kind'),
            kube_config=str(data.get('kubeConfig', '')),
        )

    @property
    def variant(self) -> ClusterVariant:
        return getattr(self, single_variant(self, self.VARIANTS, 'cluster'))

    def _resolve(self, params: InputParams) -> tuple[ClusterVariant, InputParams]:
        rendered = params.render_fields(self)
        variant = rendered.variant
        kube_config = os.path.expanduser(rendered.kube_config or variant.default_kube_config())
        logger.debug(f"Using kubeconfig {kube_config}")
        return variant, params.with_kube_config(kube_config)

    def bind(self, params: InputParams) -> InputParams:
        """Return params whose commands target this cluster's kubeconfig."""
        return self._resolve(params)[1]

    def ensure(self, params: InputParams) -> None:
        variant, params = self._resolve(params)
        variant.ensure(params)

    def teardown(self, params: InputParams) -> None:
        variant, params = self._resolve(params)
        variant.teardown(params)

    def set_context(self, params: InputParams) -> None:
        variant, params = self._resolve(params)
        variant.set_context(params)
