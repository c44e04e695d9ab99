"""HTTP transport for esbridge, built on requests.

Retries are disabled at the adapter level: a dispatched request hits the
network exactly once and every outcome is reported to the caller.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig

logger = logging.getLogger(__name__)

HeaderProvider = Callable[[requests.PreparedRequest], Mapping[str, str]]

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"
PRODUCT_HEADER = "X-Elastic-Product"


class CompatAdapter(HTTPAdapter):
    """HTTPAdapter adding per-request headers and 7.x compatibility.

    Args:
        v7_compatible: Force a JSON content type on requests and mark responses
                       with the product header newer clients check for
        header_provider: Optional callable returning extra headers for each
                         request (e.g. a traceparent computed by the caller)
    """

    def __init__(
        self,
        v7_compatible: bool = False,
        header_provider: Optional[HeaderProvider] = None,
        **kwargs
    ):
        kwargs.setdefault("max_retries", 0)
        self.v7_compatible = v7_compatible
        self.header_provider = header_provider
        super().__init__(**kwargs)

    def send(self, request, **kwargs):
        if self.header_provider is not None:
            for name, value in self.header_provider(request).items():
                request.headers[name] = value

        if self.v7_compatible and request.body is not None:
            request.headers["Content-Type"] = JSON_CONTENT_TYPE

        response = super().send(request, **kwargs)

        if self.v7_compatible and response is not None:
            response.headers[PRODUCT_HEADER] = "Elasticsearch"
        return response


def build_session(
    config: ClientConfig,
    header_provider: Optional[HeaderProvider] = None
) -> requests.Session:
    """Create a requests.Session configured from a ClientConfig.

    Raises:
        ConfigError: If the configured CA certificate is missing
    """
    session = requests.Session()
    session.verify = config.verify()
    session.headers.update({"Accept": JSON_CONTENT_TYPE})

    adapter = CompatAdapter(
        v7_compatible=config.v7_compatible,
        header_provider=header_provider,
        pool_connections=len(config.hosts),
        pool_maxsize=config.pool_maxsize,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class PendingRequest:
    """An HTTP call that has not been sent yet.

    Execution is single-shot: the response stream belongs to whoever executes
    it, and executing twice is a programming error.
    """

    def __init__(
        self,
        session: requests.Session,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[bytes] = None
    ):
        self.session = session
        self.method = method.upper()
        self.url = url
        self.params = params
        self.headers = headers
        self.data = data
        self._executed = False

    @property
    def executed(self) -> bool:
        return self._executed

    def execute(self, timeout: Any = None) -> requests.Response:
        """Send the request and return the streaming response.

        Args:
            timeout: Seconds, or a (connect, read) tuple, passed to requests

        Raises:
            RuntimeError: If the request was already executed
            requests.RequestException: On network failure
        """
        if self._executed:
            raise RuntimeError(f"request already executed: {self}")
        self._executed = True

        logger.debug(f"{self.method} {self.url} params={self.params}")
        return self.session.request(
            self.method,
            self.url,
            params=self.params,
            headers=self.headers,
            data=self.data,
            stream=True,
            timeout=timeout,
        )

    def __repr__(self) -> str:
        return f"PendingRequest({self.method} {self.url})"
