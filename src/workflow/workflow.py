"""Workflows: ordered steps plus a cleanup phase that runs only on success.

A Step is a tagged union. At most one ensure-oriented kind and at most one
teardown-oriented kind (uninstall/delete) may be set; when both are set the
step tears down.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from config import parse_yaml, reject_unknown, string_list, string_map
from errors import ConfigError
from render import DEFAULT_REGISTRY, InputParams, bound_field
from resources import ApplicationRef, Patch, Resource
from resources.base import optional
from workflow.condition import Condition
from workflow.curl import Curl
from workflow.dns_entry import DnsEntry
from workflow.helm_deploy import HelmDeploy
from workflow.restart_pods import RestartPods

logger = logging.getLogger(__name__)

ENSURE_VARIANTS = (
    'curl', 'condition', 'dns_entry', 'install', 'workflow', 'apply', 'patch', 'helm3_deploy', 'restart_pods',
)
TEARDOWN_VARIANTS = ('uninstall', 'delete')


@dataclass
class Step:
    curl: Optional[Curl] = None
    condition: Optional[Condition] = None
    dns_entry: Optional[DnsEntry] = None
    install: Optional[ApplicationRef] = None
    uninstall: Optional[ApplicationRef] = None
    workflow: Optional['WorkflowRef'] = None
    apply: Optional[Resource] = None
    delete: Optional[Resource] = None
    patch: Optional[Patch] = None
    helm3_deploy: Optional[HelmDeploy] = None
    restart_pods: Optional[RestartPods] = None
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)

    def __post_init__(self):
        ensure = [name for name in ENSURE_VARIANTS if getattr(self, name) is not None]
        teardown = [name for name in TEARDOWN_VARIANTS if getattr(self, name) is not None]
        if not ensure and not teardown:
            raise ConfigError(f"step must set one of {', '.join(ENSURE_VARIANTS + TEARDOWN_VARIANTS)}")
        if len(ensure) > 1 or len(teardown) > 1:
            raise ConfigError(f"step sets more than one kind: {', '.join(ensure + teardown)}")

    @classmethod
    def from_dict(cls, data: dict) -> 'Step':
        reject_unknown(data, (
            'curl', 'condition', 'dnsEntry', 'install', 'uninstall', 'workflow', 'apply', 'delete',
            'patch', 'helm3Deploy', 'restartPods', 'values', 'flags',
        ), 'step')
        return cls(
            curl=optional(Curl, data.get('curl'), 'curl'),
            condition=optional(Condition, data.get('condition'), 'condition'),
            dns_entry=optional(DnsEntry, data.get('dnsEntry'), 'dnsEntry'),
            install=optional(ApplicationRef, data.get('install'), 'install'),
            uninstall=optional(ApplicationRef, data.get('uninstall'), 'uninstall'),
            workflow=optional(WorkflowRef, data.get('workflow'), 'workflow'),
            apply=optional(Resource, data.get('apply'), 'apply'),
            delete=optional(Resource, data.get('delete'), 'delete'),
            patch=optional(Patch, data.get('patch'), 'patch'),
            helm3_deploy=optional(HelmDeploy, data.get('helm3Deploy'), 'helm3Deploy'),
            restart_pods=optional(RestartPods, data.get('restartPods'), 'restartPods'),
            values=string_map(data.get('values'), 'step.values'),
            flags=string_list(data.get('flags'), 'step.flags'),
        )

    @property
    def ensure_variant(self):
        return next((getattr(self, n) for n in ENSURE_VARIANTS if getattr(self, n) is not None), None)

    @property
    def teardown_variant(self):
        return next((getattr(self, n) for n in TEARDOWN_VARIANTS if getattr(self, n) is not None), None)

    def ensure(self, params: InputParams) -> None:
        params = params.merge_values(self.values)
        if self.teardown_variant is not None:
            if self.ensure_variant is not None:
                logger.warning("Step sets both an ensure and a teardown kind; tearing down")
            self.teardown_variant.teardown(params)
            return
        self.ensure_variant.ensure(params)

    def teardown(self, params: InputParams) -> None:
        if self.ensure_variant is None:
            logger.debug("Nothing to tear down for uninstall/delete step")
            return
        self.ensure_variant.teardown(params.merge_values(self.values))


def run_steps(steps: list, params: InputParams) -> None:
    for i, step in enumerate(steps, 1):
        logger.debug(f"Running step {i}/{len(steps)}")
        step.ensure(params)


@dataclass
class Workflow:
    steps: list = field(default_factory=list)
    cleanup_steps: list = field(default_factory=list)
    required_values: list = field(default_factory=list)
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'Workflow':
        reject_unknown(data, ('steps', 'cleanupSteps', 'requiredValues', 'values', 'flags'), 'workflow')
        return cls(
            steps=steps_from_list(data.get('steps'), 'workflow.steps'),
            cleanup_steps=steps_from_list(data.get('cleanupSteps'), 'workflow.cleanupSteps'),
            required_values=string_list(data.get('requiredValues'), 'workflow.requiredValues'),
            values=string_map(data.get('values'), 'workflow.values'),
            flags=string_list(data.get('flags'), 'workflow.flags'),
        )

    def filtered(self, flags: list) -> 'Workflow':
        """Copy without the steps whose required flags are not all active."""
        def keep(step):
            return all(f in flags for f in step.flags)
        return replace(
            self,
            steps=[s for s in self.steps if keep(s)],
            cleanup_steps=[s for s in self.cleanup_steps if keep(s)],
        )

    def _prepare(self, params: InputParams) -> InputParams:
        params = params.merge_values(self.values).merge_flags(self.flags)
        params.check_required_values(self.required_values)
        return params

    def ensure(self, params: InputParams) -> None:
        """Run steps in order, then cleanup steps if every step succeeded.

        Required values are checked before any step runs.
        """
        params = self._prepare(params)
        run_steps(self.steps, params)
        if self.cleanup_steps:
            logger.info("Workflow successful, cleaning up")
            run_steps(self.cleanup_steps, params)

    def teardown(self, params: InputParams) -> None:
        params = self._prepare(params)
        for step in self.steps:
            step.teardown(params)


def steps_from_list(data, kind: str) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError(f"{kind} must be a list")
    return [Step.from_dict(s or {}) for s in data]


@dataclass
class WorkflowRef:
    """Reference to a workflow file; its steps are filtered by the active flags."""
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    path: str = bound_field(template=True)
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'WorkflowRef':
        reject_unknown(data, ('registry', 'path', 'values', 'flags'), 'workflow ref')
        return cls(
            registry=str(data.get('registry', '')),
            path=str(data.get('path', '')),
            values=string_map(data.get('values'), 'workflow.values'),
            flags=string_list(data.get('flags'), 'workflow.flags'),
        )

    def _resolve(self, params: InputParams) -> tuple[Workflow, InputParams]:
        params = params.merge_values(self.values).merge_flags(self.flags)
        ref = params.render_fields(self)
        if not ref.path:
            raise ConfigError("workflow ref requires a path")
        logger.info(f"Loading workflow {ref.path}")
        workflow = load_workflow(ref.path, ref.registry, params)
        return workflow.filtered(params.flags), params

    def load(self, params: InputParams) -> Workflow:
        return self._resolve(params)[0]

    def ensure(self, params: InputParams) -> None:
        workflow, params = self._resolve(params)
        workflow.ensure(params)

    def teardown(self, params: InputParams) -> None:
        workflow, params = self._resolve(params)
        workflow.teardown(params)


def load_workflow(path: str, registry: str = DEFAULT_REGISTRY,
                  params: Optional[InputParams] = None) -> Workflow:
    params = params or InputParams()
    return Workflow.from_dict(parse_yaml(params.load_file(registry, path), path))
