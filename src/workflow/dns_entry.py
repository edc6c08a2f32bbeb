"""DNS entry step and the service reference shared with curl checks."""

import logging
from dataclasses import dataclass, field

from config import reject_unknown
from errors import ConfigError, DnsMappingError, ValetError
from render import InputParams, bound_field

logger = logging.getLogger(__name__)


@dataclass
class ServiceRef:
    """A Kubernetes service port; port is a port name such as http/https."""
    name: str = bound_field(template=True)
    namespace: str = bound_field(template=True)
    port: str = bound_field(default='http')

    @classmethod
    def from_dict(cls, data: dict) -> 'ServiceRef':
        reject_unknown(data, ('name', 'namespace', 'port'), 'service')
        return cls(
            name=str(data.get('name', '')),
            namespace=str(data.get('namespace', '')),
            port=str(data.get('port', '')),
        )

    def get_address(self, params: InputParams) -> str:
        """Resolve to "host:port" through the ingress client."""
        svc = params.render_fields(self)
        if not svc.name:
            raise ConfigError("service name is required")
        return params.get_ingress_client().get_ingress_host(svc.name, svc.namespace, svc.port)

    def get_ip(self, params: InputParams) -> str:
        """Resolve to a bare host, dropping any port."""
        address = self.get_address(params)
        parts = address.split(':')
        if len(parts) > 2:
            raise ValetError(f"unexpected address {address}")
        return parts[0]


@dataclass
class DnsEntry:
    """Map a domain to a service's address in a hosted zone."""
    domain: str = bound_field(key='Domain', template=True)
    hosted_zone: str = bound_field(key='HostedZone', template=True)
    service: ServiceRef = field(default_factory=ServiceRef)

    @classmethod
    def from_dict(cls, data: dict) -> 'DnsEntry':
        reject_unknown(data, ('domain', 'hostedZone', 'service'), 'dnsEntry')
        return cls(
            domain=str(data.get('domain', '')),
            hosted_zone=str(data.get('hostedZone', '')),
            service=ServiceRef.from_dict(data.get('service') or {}),
        )

    def ensure(self, params: InputParams) -> None:
        entry = params.render_fields(self)
        if not entry.domain or not entry.hosted_zone:
            raise ConfigError("dnsEntry requires domain and hostedZone")
        ip = entry.service.get_ip(params)
        logger.info(f"Mapping {entry.domain} to {ip} in hosted zone {entry.hosted_zone}")
        try:
            params.get_dns_client().create_mapping(entry.hosted_zone, entry.domain, ip)
        except DnsMappingError:
            raise
        except ValetError as e:
            raise DnsMappingError(f"unable to map {entry.domain} to {ip}: {e}") from e

    def teardown(self, params: InputParams) -> None:
        # DNS records are left in place; a later ensure upserts them.
        logger.warning(f"Teardown not implemented for DNS entry {self.domain}; leaving record in place")
