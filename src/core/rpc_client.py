import logging
import ssl
from typing import List, Optional

import httpx
import orjson
from pydantic import BaseModel, ValidationError

from contracts.rpc import RPCRequest, RPCResponse
from core.errors import TransportError
from core.profiler import Profiler

logger = logging.getLogger(__name__)

# Ordered batch sent on every probe. Replies are correlated by id.
COUNT_ACTIVATED_USERS = 0
GET_LICENSE_DETAILS = 1
SERVER_STATUS = 2


def build_probe_batch() -> List[RPCRequest]:
    return [
        RPCRequest(method="Count_Activated_Users", id=COUNT_ACTIVATED_USERS),
        RPCRequest(method="Get_License_Details", id=GET_LICENSE_DETAILS),
        RPCRequest(
            method="Server_status",
            params={"servers": True, "webapps": True, "websrvs": True},
            id=SERVER_STATUS,
        ),
    ]


class Credentials(BaseModel):
    """
    API username and password, shared read-only by every probe.
    """

    username: str
    password: str


def create_ssl_context(certfile: Optional[str] = None) -> ssl.SSLContext:
    """
    Build the client TLS context used to talk to OpenOTP servers.

    OpenOTP requests client certificates through TLS renegotiation, so the
    context must accept a server-initiated renegotiation or the handshake
    fails.

    Args:
        certfile (Optional[str]): PEM file holding a client certificate and key.

    Returns:
        ssl.SSLContext: The configured context.
    """
    context = ssl.create_default_context()
    context.options &= ~ssl.OP_NO_RENEGOTIATION
    if certfile:
        context.load_cert_chain(certfile)
    return context


def create_http_client(certfile: Optional[str] = None, timeout: float = 10.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(verify=create_ssl_context(certfile), timeout=timeout)


def build_api_url(target: str, api_path: str) -> str:
    if "://" not in target:
        target = f"https://{target}"
    return f"{target.rstrip('/')}/{api_path.lstrip('/')}"


class RPCClient:
    """
    Executes JSON-RPC 2.0 batches against OpenOTP management endpoints.
    """

    def __init__(self, client: httpx.AsyncClient, credentials: Credentials, api_path: str):
        """
        Args:
            client (httpx.AsyncClient): Shared HTTP client carrying the TLS context.
            credentials (Credentials): API credentials.
            api_path (str): Path of the JSON-RPC endpoint below the target URL.
        """
        self.client = client
        self.api_path = api_path
        # BasicAuth encodes the Authorization header once, reused by every call
        self.auth = httpx.BasicAuth(credentials.username, credentials.password)
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @Profiler.profile
    async def call_batch(
        self, target: str, requests: List[RPCRequest], timeout: Optional[float] = None
    ) -> List[RPCResponse]:
        """
        Send all requests to the target in a single round trip.

        Args:
            target (str): Base URL of the OpenOTP server.
            requests (List[RPCRequest]): Calls to send, each with a unique id.
            timeout (Optional[float]): Overrides the client timeout for this call.

        Returns:
            List[RPCResponse]: One reply per request, in request order.

        Raises:
            TransportError: On any network, HTTP, protocol or batch-shape failure.
        """
        url = build_api_url(target, self.api_path)
        payload = [request.to_wire() for request in requests]
        logger.debug(f"Sending batch of {len(payload)} calls to {url}")
        try:
            resp = await self.client.post(
                url,
                content=orjson.dumps(payload),
                headers=self.headers,
                auth=self.auth,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout calling {url}: {e!r}") from e
        except httpx.ConnectError as e:
            # Also raised for TLS handshake failures, renegotiation included
            raise TransportError(f"Connection or TLS handshake with {url} failed: {e!r}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e!r}") from e

        if not resp.is_success:
            raise TransportError(f"{url} returned HTTP status {resp.status_code}")
        try:
            body = orjson.loads(resp.content)
        except orjson.JSONDecodeError as e:
            raise TransportError(f"{url} returned a body that is not JSON: {e}") from e
        return self._match_replies(requests, body)

    @staticmethod
    def _match_replies(requests: List[RPCRequest], body) -> List[RPCResponse]:
        if not isinstance(body, list):
            raise TransportError("RPC batch reply is not an array")
        if len(body) != len(requests):
            raise TransportError(
                f"RPC batch returned {len(body)} replies, expected {len(requests)}"
            )
        try:
            replies = [RPCResponse.model_validate(item) for item in body]
        except ValidationError as e:
            raise TransportError(f"Malformed RPC reply: {e}") from e

        errors = [f"{reply.id}: {reply.error}" for reply in replies if reply.error is not None]
        if errors:
            raise TransportError(f"RPC request returned errors: {', '.join(errors)}")
        by_id = {reply.id: reply for reply in replies}
        expected = [request.id for request in requests]
        if sorted(by_id, key=str) != sorted(expected, key=str):
            raise TransportError(
                f"RPC reply ids {sorted(by_id, key=str)} do not match request ids {expected}"
            )
        return [by_id[request_id] for request_id in expected]
