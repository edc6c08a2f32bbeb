"""Workflow engine: steps, checks and the top-level config."""

from workflow.condition import Condition
from workflow.config import Config, load_config
from workflow.curl import Curl, PortForward
from workflow.dns_entry import DnsEntry, ServiceRef
from workflow.helm_deploy import HelmDeploy
from workflow.restart_pods import RestartPods
from workflow.workflow import Step, Workflow, WorkflowRef, load_workflow

__all__ = [
    'Condition',
    'Config',
    'Curl',
    'DnsEntry',
    'HelmDeploy',
    'PortForward',
    'RestartPods',
    'ServiceRef',
    'Step',
    'Workflow',
    'WorkflowRef',
    'load_config',
    'load_workflow',
]
