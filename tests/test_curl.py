"""Tests for workflow/curl.py - retried HTTP checks."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest

from errors import ConfigError, OperationCancelled, RequestError, UnexpectedResponseBodyError, UnexpectedStatusCodeError
from workflow import Curl, PortForward, ServiceRef


@pytest.fixture
def ingress(params):
    client = MagicMock()
    client.get_ingress_host.return_value = '10.0.0.5:80'
    params.ingress_client = client
    return client


def _curl(**kwargs):
    defaults = dict(path='/api/pets', service=ServiceRef(name='gateway-proxy', namespace='gloo-system'),
                    delay='0s', attempts=3)
    defaults.update(kwargs)
    return Curl(**defaults)


class TestCurl:
    def test_success(self, runner, params, ingress):
        runner.responses = [('[]', 200)]
        _curl(host='petstore.example.com').ensure(params)

        request = runner.requests[0]
        assert request.method == 'GET'
        assert request.url == 'http://10.0.0.5:80/api/pets'
        assert request.headers['Host'] == 'petstore.example.com'
        ingress.get_ingress_host.assert_called_once_with('gateway-proxy', 'gloo-system', 'http')

    def test_exactly_attempts_on_persistent_mismatch(self, runner, params, ingress):
        runner.responses = [('down', 503)]
        with pytest.raises(UnexpectedStatusCodeError) as exc:
            _curl(attempts=4).ensure(params)
        assert len(runner.requests) == 4
        assert exc.value.actual == 503

    def test_returns_last_error(self, runner, params, ingress):
        """The error from the final attempt is raised, not the first."""
        runner.responses = [('down', 503), RequestError('connection refused'), ('wrong', 200)]
        with pytest.raises(UnexpectedResponseBodyError) as exc:
            _curl(response_body='[]').ensure(params)
        assert exc.value.body == 'wrong'

    def test_recovers_before_exhaustion(self, runner, params, ingress):
        runner.responses = [('down', 503), ('[]', 200)]
        _curl().ensure(params)
        assert len(runner.requests) == 2

    def test_body_substring(self, runner, params, ingress):
        runner.responses = [('{"pets": ["dog", "cat"]}', 200)]
        _curl(response_body_substring='"cat"').ensure(params)

    def test_custom_status_and_method(self, runner, params, ingress):
        runner.responses = [('', 201)]
        _curl(method='POST', body='{"name": "rex"}', status_code=201).ensure(params)
        assert runner.requests[0].method == 'POST'

    def test_https_port_name_sets_scheme(self, runner, params, ingress):
        ingress.get_ingress_host.return_value = 'gw.example.com:443'
        runner.responses = [('', 200)]
        _curl(service=ServiceRef(name='gw', namespace='ns', port='https')).ensure(params)
        assert runner.requests[0].url == 'https://gw.example.com:443/api/pets'

    def test_port_forward(self, runner, params):
        runner.responses = [('ok', 200)]
        curl = Curl(path='/healthz', port_forward=PortForward(namespace='ns', deployment_name='api'), delay='0s')
        curl.ensure(params)

        assert runner.lines() == ['kubectl port-forward deploy/api 8080 -n ns']
        assert runner.requests[0].url == 'http://localhost:8080/healthz'
        assert runner.streams[0].stopped

    def test_port_forward_stopped_on_failure(self, runner, params):
        runner.responses = [('', 500)]
        curl = Curl(path='/', port_forward=PortForward(namespace='ns', deployment_name='api', port=9090),
                    delay='0s', attempts=1)
        with pytest.raises(UnexpectedStatusCodeError):
            curl.ensure(params)
        assert runner.streams[0].stopped

    def test_defaults(self, params, ingress):
        curl = params.render_fields(Curl.from_dict({'path': '/', 'service': {'name': 'gw'}}))
        assert (curl.attempts, curl.delay, curl.status_code, curl.method) == (10, '1s', 200, 'GET')

    def test_non_numeric_attempts(self):
        with pytest.raises(ConfigError, match='curl.attempts'):
            Curl.from_dict({'path': '/', 'service': {'name': 'gw'}, 'attempts': 'lots'})

    def test_cancelled_during_retry_delay(self, runner, params, ingress):
        runner.responses = [('down', 503)]

        def cancel_then_fail(request, cancel=None):
            runner.requests.append(request)
            params.cancel.set()
            return ('down', 503)

        runner.request = cancel_then_fail
        with pytest.raises(OperationCancelled):
            _curl(attempts=5, delay='10s').ensure(params)
        assert len(runner.requests) == 1

    def test_requires_target(self):
        with pytest.raises(ConfigError, match='service or portForward'):
            Curl.from_dict({'path': '/'})
