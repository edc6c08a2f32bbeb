"""CLI-backed ClusterDriver implementations.

Each driver is built per call from the caller's InputParams so a parallel
branch never shares one with another branch.
"""

import logging
import threading
from typing import Optional

from commands import CommandFactory, Runner
from common import poll_until
from errors import ClusterOperationTimeoutError, CommandError

logger = logging.getLogger(__name__)

GKE_OPERATION_INTERVAL = 5.0
GKE_RUNNING = 'RUNNING'
GKE_DONE = 'DONE'
EKS_NOT_FOUND = 'ResourceNotFoundException'
MINIKUBE_CONTEXT = 'minikube'


class CliDriver:
    """Common state for drivers that shell out through a Runner."""

    def __init__(self, runner: Runner, commands: CommandFactory,
                 cancel: Optional[threading.Event] = None):
        self.runner = runner
        self.commands = commands
        self.cancel = cancel

    def _run(self, builder) -> None:
        self.runner.run(builder.cmd(), self.cancel)

    def _output(self, builder) -> str:
        return self.runner.output(builder.cmd(), self.cancel)

    def _stream(self, builder) -> None:
        self.runner.stream(builder.cmd(), self.cancel).wait(self.cancel)


class GkeDriver(CliDriver):
    """GKE through gcloud; create/destroy run async and are polled to DONE."""

    def __init__(self, runner, commands, cancel, name: str, project: str, location: str,
                 operation_timeout: float, interval: float = GKE_OPERATION_INTERVAL):
        super().__init__(runner, commands, cancel)
        self.name = name
        self.project = project
        self.location = location
        self.operation_timeout = operation_timeout
        self.interval = interval

    def _gcloud(self):
        return self.commands.gcloud()

    def _scoped(self, builder):
        return builder.project(self.project).zone(self.location)

    def is_running(self) -> bool:
        describe = self._scoped(self._gcloud().clusters('describe', self.name)).format('value(status)')
        try:
            status = self._output(describe.swallow_error_log()).strip()
        except CommandError as e:
            if 'not found' in e.output.lower() or 'NOT_FOUND' in e.output:
                logger.info(f"Cluster {self.name} not found")
                return False
            raise
        logger.info(f"Found cluster {self.name} with status {status}")
        return status == GKE_RUNNING

    def create(self) -> None:
        logger.info(f"Creating GKE cluster {self.name}")
        create = self._scoped(self._gcloud().clusters('create', self.name)).with_args(
            '--num-nodes=1',
            '--machine-type=n1-standard-4',
            '--enable-autoscaling',
            '--min-nodes=1',
            '--max-nodes=30',
            '--labels=creator=valet',
        ).async_().format('value(name)')
        self._wait(self._output(create).strip(), 'create')

    def destroy(self) -> None:
        logger.info(f"Deleting GKE cluster {self.name}")
        delete = self._scoped(self._gcloud().clusters('delete', self.name)).async_().quiet().format('value(name)')
        self._wait(self._output(delete).strip(), 'delete')

    def _wait(self, operation: str, action: str) -> None:
        operation = operation.splitlines()[-1] if operation else ''
        if not operation:
            raise CommandError(f"gcloud container clusters {action} {self.name}", 0,
                               'no operation id returned')
        logger.info(f"Waiting for {action} operation {operation}")
        describe = self._scoped(self._gcloud().operation(operation)).format('value(status)')

        def done() -> bool:
            return self._output(describe).strip() == GKE_DONE

        if not poll_until(done, self.operation_timeout, self.interval, self.cancel):
            raise ClusterOperationTimeoutError(
                f"{action} of cluster {self.name} did not finish within {self.operation_timeout:g}s")

    def get_credentials(self) -> None:
        self._run(self._scoped(self._gcloud().get_credentials(self.name)))


class EksDriver(CliDriver):
    def __init__(self, runner, commands, cancel, name: str, region: str):
        super().__init__(runner, commands, cancel)
        self.name = name
        self.region = region

    def is_running(self) -> bool:
        get = self.commands.eksctl().get_cluster().region(self.region).cluster_name(self.name)
        try:
            self._output(get.swallow_error_log())
        except CommandError as e:
            if EKS_NOT_FOUND in e.output:
                return False
            raise
        return True

    def create(self) -> None:
        logger.info(f"Creating EKS cluster {self.name}")
        self._stream(self.commands.eksctl().create_cluster(self.name).region(self.region))

    def destroy(self) -> None:
        logger.info(f"Deleting EKS cluster {self.name}")
        self._stream(self.commands.eksctl().delete_cluster(self.name).region(self.region))

    def get_credentials(self) -> None:
        self._run(self.commands.eksctl().write_kubeconfig(self.name).region(self.region))


class MinikubeDriver(CliDriver):
    def __init__(self, runner, commands, cancel, cpus: int, memory: int,
                 kube_version: str, vm_driver: str):
        super().__init__(runner, commands, cancel)
        self.cpus = cpus
        self.memory = memory
        self.kube_version = kube_version
        self.vm_driver = vm_driver

    def is_running(self) -> bool:
        try:
            self._run(self.commands.minikube().status().swallow_error_log())
        except CommandError:
            return False
        return True

    def create(self) -> None:
        # clear out a stopped or broken profile before starting fresh
        try:
            self._run(self.commands.minikube().delete().swallow_error_log())
        except CommandError as e:
            logger.debug(f"Ignoring minikube delete failure: {e}")
        start = (self.commands.minikube().start()
                 .cpus(self.cpus)
                 .memory(self.memory)
                 .vm_driver(self.vm_driver)
                 .kube_version(self.kube_version))
        self._stream(start)

    def destroy(self) -> None:
        self._run(self.commands.minikube().delete())

    def get_credentials(self) -> None:
        self._run(self.commands.kubectl().use_context(MINIKUBE_CONTEXT))


class KindDriver(CliDriver):
    def __init__(self, runner, commands, cancel, name: str):
        super().__init__(runner, commands, cancel)
        self.name = name

    def is_running(self) -> bool:
        clusters = self._output(self.commands.kind().get_clusters())
        return self.name in clusters.split()

    def create(self) -> None:
        logger.info(f"Creating kind cluster {self.name}")
        self._stream(self.commands.kind().create_cluster(self.name))

    def destroy(self) -> None:
        logger.info(f"Deleting kind cluster {self.name}")
        self._stream(self.commands.kind().delete_cluster(self.name))

    def get_credentials(self) -> None:
        self._run(self.commands.kubectl().use_context(f'kind-{self.name}'))
