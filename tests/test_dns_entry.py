"""Tests for workflow/dns_entry.py and the Route53 DNS client."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
from botocore.exceptions import ClientError

from clients import Route53DnsClient
from errors import DnsMappingError, ValetError
from workflow import DnsEntry, ServiceRef


@pytest.fixture
def collaborators(params):
    params.ingress_client = MagicMock()
    params.ingress_client.get_ingress_host.return_value = '34.1.2.3:80'
    params.dns_client = MagicMock()
    return params.ingress_client, params.dns_client


class TestDnsEntry:
    def test_maps_domain_to_bare_ip(self, params, collaborators):
        _, dns = collaborators
        DnsEntry(domain='petstore.example.com', hosted_zone='example.com',
                 service=ServiceRef(name='gateway-proxy', namespace='gloo-system')).ensure(params)
        dns.create_mapping.assert_called_once_with('example.com', 'petstore.example.com', '34.1.2.3')

    def test_domain_and_zone_from_values(self, params, collaborators):
        _, dns = collaborators
        entry = DnsEntry(service=ServiceRef(name='gw'))
        entry.ensure(params.merge_values({'Domain': 'a.example.com', 'HostedZone': 'example.com'}))
        dns.create_mapping.assert_called_once_with('example.com', 'a.example.com', '34.1.2.3')

    def test_unexpected_address(self, params, collaborators):
        ingress, _ = collaborators
        ingress.get_ingress_host.return_value = 'fe80::1:80'
        with pytest.raises(ValetError, match='unexpected address'):
            DnsEntry(domain='a', hosted_zone='b', service=ServiceRef(name='gw')).ensure(params)

    def test_client_failure_is_wrapped(self, params, collaborators):
        _, dns = collaborators
        dns.create_mapping.side_effect = ValetError('throttled')
        with pytest.raises(DnsMappingError, match='throttled'):
            DnsEntry(domain='a', hosted_zone='b', service=ServiceRef(name='gw')).ensure(params)

    def test_teardown_is_noop(self, params, collaborators, caplog):
        _, dns = collaborators
        DnsEntry(domain='a.example.com', hosted_zone='example.com').teardown(params)
        dns.create_mapping.assert_not_called()
        assert 'Teardown not implemented' in caplog.text


class TestRoute53DnsClient:
    def _client(self, zones):
        client = Route53DnsClient()
        client._client = MagicMock()
        client._client.get_paginator.return_value.paginate.return_value = [{'HostedZones': zones}]
        return client

    def test_upserts_a_record(self):
        client = self._client([{'Name': 'example.com.', 'Id': '/hostedzone/Z123'}])
        client.create_mapping('example.com', 'petstore.example.com', '34.1.2.3')
        kwargs = client._client.change_resource_record_sets.call_args.kwargs
        assert kwargs['HostedZoneId'] == '/hostedzone/Z123'
        change = kwargs['ChangeBatch']['Changes'][0]
        assert change['Action'] == 'UPSERT'
        assert change['ResourceRecordSet']['ResourceRecords'] == [{'Value': '34.1.2.3'}]

    def test_unknown_zone(self):
        with pytest.raises(DnsMappingError, match='hosted zone not found'):
            self._client([]).create_mapping('example.com', 'a.example.com', '1.1.1.1')

    def test_aws_error(self):
        client = self._client([{'Name': 'example.com.', 'Id': 'Z1'}])
        client._client.change_resource_record_sets.side_effect = ClientError(
            {'Error': {'Code': 'Throttling', 'Message': 'slow down'}}, 'ChangeResourceRecordSets')
        with pytest.raises(DnsMappingError):
            client.create_mapping('example.com', 'a.example.com', '1.1.1.1')
