"""Curl step: retried HTTP check against a service or a port-forward."""

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

from common import parse_duration, sleep_or_cancel
from config import int_value, reject_unknown, string_map
from errors import (
    ConfigError,
    OperationCancelled,
    UnexpectedResponseBodyError,
    UnexpectedStatusCodeError,
    ValetError,
)
from render import InputParams, bound_field
from workflow.dns_entry import ServiceRef

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10
DEFAULT_DELAY = '1s'
DEFAULT_METHOD = 'GET'
DEFAULT_STATUS_CODE = 200
DEFAULT_PORT_FORWARD_PORT = 8080


@dataclass
class PortForward:
    """Forward a local port to a deployment for the duration of the check."""
    namespace: str = bound_field(key='Namespace', template=True)
    deployment_name: str = bound_field(template=True)
    port: int = bound_field(default=DEFAULT_PORT_FORWARD_PORT, empty=0)

    @classmethod
    def from_dict(cls, data: dict) -> 'PortForward':
        reject_unknown(data, ('namespace', 'deploymentName', 'port'), 'portForward')
        return cls(
            namespace=str(data.get('namespace', '')),
            deployment_name=str(data.get('deploymentName', '')),
            port=int_value(data.get('port'), 'portForward.port'),
        )

    def start(self, params: InputParams):
        port = str(self.port)
        cmd = params.commands.kubectl().port_forward(f"deploy/{self.deployment_name}", port) \
            .namespace(self.namespace).cmd()
        return params.get_runner().stream(cmd, params.cancel)


@dataclass
class Curl:
    path: str = bound_field(template=True)
    host: str = bound_field(template=True)
    headers: dict = field(default_factory=dict)
    status_code: int = bound_field(default=DEFAULT_STATUS_CODE, empty=0)
    method: str = bound_field(default=DEFAULT_METHOD)
    body: str = bound_field(template=True)
    response_body: str = bound_field(template=True)
    response_body_substring: str = bound_field(template=True)
    service: Optional[ServiceRef] = None
    port_forward: Optional[PortForward] = None
    attempts: int = bound_field(default=DEFAULT_ATTEMPTS, empty=0)
    delay: str = bound_field(default=DEFAULT_DELAY, template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'Curl':
        reject_unknown(data, (
            'path', 'host', 'headers', 'statusCode', 'method', 'body', 'responseBody',
            'responseBodySubstring', 'service', 'portForward', 'attempts', 'delay',
        ), 'curl')
        curl = cls(
            path=str(data.get('path', '')),
            host=str(data.get('host', '')),
            headers=string_map(data.get('headers'), 'curl.headers'),
            status_code=int_value(data.get('statusCode'), 'curl.statusCode'),
            method=str(data.get('method', '')).upper(),
            body=str(data.get('body', '')),
            response_body=str(data.get('responseBody', '')),
            response_body_substring=str(data.get('responseBodySubstring', '')),
            service=ServiceRef.from_dict(data['service']) if data.get('service') else None,
            port_forward=PortForward.from_dict(data['portForward']) if data.get('portForward') else None,
            attempts=int_value(data.get('attempts'), 'curl.attempts'),
            delay=str(data.get('delay', '')),
        )
        if curl.service is None and curl.port_forward is None:
            raise ConfigError("curl must specify either service or portForward")
        return curl

    def get_url(self, params: InputParams) -> str:
        if self.service is not None:
            address = self.service.get_address(params)
            scheme = params.render_fields(self.service).port
            return f"{scheme}://{address}{self.path}"
        if self.port_forward is not None:
            return f"http://localhost:{self.port_forward.port}{self.path}"
        raise ConfigError("curl must specify either service or portForward")

    def build_request(self, url: str) -> requests.Request:
        headers = dict(self.headers)
        if self.host:
            headers['Host'] = self.host
        return requests.Request(self.method, url, headers=headers, data=self.body or None)

    def check(self, body: str, status_code: int) -> None:
        """Raise if the response does not match the expectations."""
        if status_code != self.status_code:
            raise UnexpectedStatusCodeError(self.status_code, status_code)
        if self.response_body and body.strip() != self.response_body.strip():
            raise UnexpectedResponseBodyError(body)
        if self.response_body_substring and self.response_body_substring.strip() not in body.strip():
            raise UnexpectedResponseBodyError(body)

    def ensure(self, params: InputParams) -> None:
        """Send the request up to `attempts` times, `delay` apart.

        Raises:
            The error from the last attempt if none succeeded.
        """
        curl = params.render_fields(self)
        delay = parse_duration(curl.delay)
        url = curl.get_url(params)
        handler = curl.port_forward.start(params) if curl.port_forward is not None else None
        try:
            logger.info(f"Curling {url}: host={curl.host or '-'} expected status={curl.status_code}")
            curl._retry(params, url, delay)
        finally:
            if handler is not None:
                handler.stop()

    def _retry(self, params: InputParams, url: str, delay: float) -> None:
        if self.attempts < 1:
            raise ConfigError(f"curl attempts must be positive: {self.attempts}")
        runner = params.get_runner()
        last_error: Optional[ValetError] = None
        for attempt in range(1, self.attempts + 1):
            try:
                body, status_code = runner.request(self.build_request(url), params.cancel)
                self.check(body, status_code)
                logger.info("Curl successful")
                return
            except OperationCancelled:
                raise
            except ValetError as e:
                last_error = e
                logger.debug(f"Curl attempt {attempt}/{self.attempts} failed: {e}")
            if attempt < self.attempts:
                sleep_or_cancel(delay, params.cancel)
        raise last_error

    def teardown(self, params: InputParams) -> None:
        logger.debug("Skipping teardown for curl")
