"""Narrow collaborator interfaces and their default implementations.

- IngressClient: resolve a service to a reachable host:port
- DnsClient: create or update an A record (Route53 via boto3)
- ArtifactDownloader: fetch a remote file (plain URL or GitHub release asset)
- ClusterDriver: create/inspect/destroy a Kubernetes control plane
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from commands import CommandFactory, Runner
from errors import ArtifactNotFoundError, DnsMappingError, ValetError

logger = logging.getLogger(__name__)

MINIKUBE_NODE = 'minikube'
DNS_TTL = 300
GITHUB_API = 'https://api.github.com'
DOWNLOAD_TIMEOUT = 300


@runtime_checkable
class IngressClient(Protocol):
    def get_ingress_host(self, name: str, namespace: str, port: str) -> str:
        """Return "host:port" for the named service port."""
        ...


@runtime_checkable
class DnsClient(Protocol):
    def create_mapping(self, hosted_zone: str, domain: str, ip: str) -> None:
        ...


@runtime_checkable
class ArtifactDownloader(Protocol):
    def download(self, remote_path: str, local_path: str) -> None:
        ...


@runtime_checkable
class ClusterDriver(Protocol):
    """Control-plane operations for one cluster."""

    def is_running(self) -> bool:
        ...

    def create(self) -> None:
        ...

    def destroy(self) -> None:
        ...

    def get_credentials(self) -> None:
        """Point local tooling (kubeconfig context) at the cluster."""
        ...


class KubectlIngressClient:
    """Resolve service addresses by inspecting objects with kubectl.

    LoadBalancer services use their first ingress hostname or IP with the
    service port. Anything else is treated as NodePort: the address of a node
    running one of the service's pods, with the node port.
    """

    def __init__(self, runner: Runner, commands: CommandFactory,
                 cancel: Optional[threading.Event] = None):
        self.runner = runner
        self.commands = commands
        self.cancel = cancel

    def _get_json(self, builder) -> dict:
        out = self.runner.output(builder.out_json().cmd(), self.cancel)
        try:
            return json.loads(out)
        except json.JSONDecodeError as e:
            raise ValetError(f"unable to parse kubectl output: {e}") from e

    def get_ingress_host(self, name: str, namespace: str, port: str) -> str:
        svc = self._get_json(self.commands.kubectl().get('service').with_name(name).namespace(namespace))
        ports = svc.get('spec', {}).get('ports', [])
        if not ports:
            raise ValetError(f"service {name} is missing ports")
        if len(ports) == 1:
            svc_port = ports[0]
        else:
            matches = [p for p in ports if p.get('name') == port or str(p.get('port')) == port]
            if not matches:
                raise ValetError(f"named port {port} not found on service {name}")
            svc_port = matches[0]

        ingress = svc.get('status', {}).get('loadBalancer', {}).get('ingress') or []
        if ingress:
            host = ingress[0].get('hostname') or ingress[0].get('ip', '')
            return f"{host}:{svc_port['port']}"
        host = self._node_ip(svc, namespace)
        return f"{host}:{svc_port.get('nodePort', '')}"

    def _node_ip(self, svc: dict, namespace: str) -> str:
        selector = ','.join(f"{k}={v}" for k, v in (svc.get('spec', {}).get('selector') or {}).items())
        pods = self._get_json(self.commands.kubectl().get('pods').namespace(namespace).selector(selector))
        node_name = next(
            (p['spec']['nodeName'] for p in pods.get('items', []) if p.get('spec', {}).get('nodeName')),
            '',
        )
        name = svc.get('metadata', {}).get('name', '')
        if not node_name:
            raise ValetError(f"no node found for {name}'s pods; ensure at least one pod is deployed")
        if node_name == MINIKUBE_NODE:
            # avoids the NAT address reported by the virtualbox driver
            return self.runner.output(self.commands.minikube().ip().cmd(), self.cancel).strip()
        node = self._get_json(self.commands.kubectl().get('node').with_name(node_name))
        addresses = node.get('status', {}).get('addresses') or []
        if not addresses:
            raise ValetError(f"no active addresses found for node {node_name}")
        return addresses[0]['address']


class Route53DnsClient:
    """DnsClient backed by AWS Route53."""

    def __init__(self, region: Optional[str] = None):
        self.region = region
        self._client = None

    @property
    def client(self):
        if self._client is None:
            kwargs = {'region_name': self.region} if self.region else {}
            self._client = boto3.client('route53', **kwargs)
        return self._client

    def _hosted_zone_id(self, name: str) -> str:
        # Route53 zone names are fully qualified
        fqdn = name if name.endswith('.') else f"{name}."
        paginator = self.client.get_paginator('list_hosted_zones')
        for page in paginator.paginate():
            for zone in page['HostedZones']:
                if zone['Name'] in (name, fqdn):
                    return zone['Id']
        raise DnsMappingError(f"hosted zone not found: {name}")

    def create_mapping(self, hosted_zone: str, domain: str, ip: str) -> None:
        try:
            zone_id = self._hosted_zone_id(hosted_zone)
            logger.info(f"Creating DNS mapping {domain} -> {ip} in {hosted_zone} ({zone_id})")
            self.client.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch={
                    'Changes': [{
                        'Action': 'UPSERT',
                        'ResourceRecordSet': {
                            'Name': domain,
                            'Type': 'A',
                            'TTL': DNS_TTL,
                            'ResourceRecords': [{'Value': ip}],
                        },
                    }],
                },
            )
        except (BotoCoreError, ClientError) as e:
            raise DnsMappingError(f"unable to map {domain} to {ip}: {e}") from e


def _write_download(resp: requests.Response, local_path: str) -> None:
    path = Path(os.path.expanduser(local_path))
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'wb') as f:
        for chunk in resp.iter_content(chunk_size=65536):
            f.write(chunk)
    path.chmod(0o755)


class UrlArtifactDownloader:
    """Download a file from a plain URL."""

    def download(self, remote_path: str, local_path: str) -> None:
        logger.info(f"Downloading {remote_path} to {local_path}")
        try:
            with requests.get(remote_path, stream=True, timeout=DOWNLOAD_TIMEOUT) as resp:
                if resp.status_code == 404:
                    raise ArtifactNotFoundError(f"could not find asset {remote_path}")
                resp.raise_for_status()
                _write_download(resp, local_path)
        except requests.exceptions.RequestException as e:
            raise ValetError(f"could not download {remote_path}: {e}") from e


class GithubArtifactDownloader:
    """Download a named asset from a GitHub release."""

    def __init__(self, repo: str, tag: str, token: Optional[str] = None):
        self.repo = repo
        self.tag = tag
        self.token = token if token is not None else os.environ.get('GITHUB_TOKEN', '')

    def _headers(self, accept: str) -> dict:
        headers = {'Accept': accept}
        if self.token:
            headers['Authorization'] = f"token {self.token}"
        return headers

    def download(self, remote_path: str, local_path: str) -> None:
        url = f"{GITHUB_API}/repos/{self.repo}/releases/tags/{self.tag}"
        try:
            resp = requests.get(url, headers=self._headers('application/vnd.github+json'), timeout=30)
            if resp.status_code == 404:
                raise ArtifactNotFoundError(f"could not find release {self.repo}:{self.tag}")
            resp.raise_for_status()
            assets = {a['name']: a for a in resp.json().get('assets', [])}
            if remote_path not in assets:
                raise ArtifactNotFoundError(f"could not find asset {self.repo}:{self.tag} {remote_path}")
            logger.info(f"Downloading asset {remote_path} to {local_path}")
            with requests.get(assets[remote_path]['url'], headers=self._headers('application/octet-stream'),
                              stream=True, timeout=DOWNLOAD_TIMEOUT) as download:
                download.raise_for_status()
                _write_download(download, local_path)
        except requests.exceptions.RequestException as e:
            raise ValetError(f"could not download {remote_path}: {e}") from e
