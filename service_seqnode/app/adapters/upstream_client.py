"""
Upstream (AMS) client for the Sequence Node Service.
"""

from typing import Any, Dict, Optional
import httpx

from shared.logging import get_logger
from shared.errors import UpstreamError
from shared.retry import retry_on_exception, RetryConfig, RetryError


class UpstreamClient:
    """Client for the authoritative source of sequence node content.

    ``fetch`` performs one logical request with caller-supplied method, URL,
    headers and JSON body. Transport failures are retried according to
    ``retry_config`` (a single attempt by default) and then surface as
    ``UpstreamError``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        pass_through_error_status: bool = False,
        service_name: str = "ams",
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.service_name = service_name
        self.pass_through_error_status = pass_through_error_status
        self.logger = get_logger("seqnode.upstream_client")

        self.retry_config = retry_config or RetryConfig(max_attempts=1, base_delay=0.5)
        self._send = retry_on_exception(
            (httpx.TransportError,), config=self.retry_config
        )(self._send_once)

    async def _send_once(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]],
        body: Any,
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, headers=headers, json=body)

    async def fetch(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> Any:
        """Send the request and return the decoded response body.

        Raises:
            UpstreamError: On transport failure, timeout, headers that cannot
                be encoded, or (unless ``pass_through_error_status`` is set)
                a non-2xx status.
        """
        try:
            response = await self._send(method, url, headers, body)
        except RetryError as exc:
            cause = exc.last_exception
            self.logger.error(
                "Upstream request failed",
                method=method,
                url=url,
                attempts=exc.attempts,
                error=str(cause),
            )
            raise UpstreamError(
                self.service_name,
                message=str(cause) or type(cause).__name__,
                details={"method": method, "url": url, "attempts": exc.attempts},
                cause=cause,
            ) from cause
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as exc:
            # Header values httpx cannot encode fail while the request is built
            self.logger.error("Upstream request error", method=method, url=url, error=str(exc))
            raise UpstreamError(
                self.service_name,
                message=str(exc) or type(exc).__name__,
                details={"method": method, "url": url},
                cause=exc,
            ) from exc

        payload = _decode_body(response)

        if response.is_success or self.pass_through_error_status:
            self.logger.debug("Upstream response received", url=url, status_code=response.status_code)
            return payload

        self.logger.error(
            "Upstream request rejected",
            method=method,
            url=url,
            status_code=response.status_code,
        )
        raise UpstreamError(
            self.service_name,
            message=f"Unexpected status {response.status_code}",
            details={
                "method": method,
                "url": url,
                "upstream_status": response.status_code,
                "body": payload,
            },
        )

    async def health(self) -> Dict[str, Any]:
        """Return the upstream health document with its HTTP status."""
        url = f"{self.base_url}/ams/health"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.logger.error("Unable to GET upstream health", url=url, error=str(exc))
            raise UpstreamError(
                self.service_name,
                message=str(exc) or type(exc).__name__,
                details={"url": url},
                cause=exc,
            ) from exc

        payload = _decode_body(response)
        body = dict(payload) if isinstance(payload, dict) else {"body": payload}
        body["statusCode"] = response.status_code
        return body


def _decode_body(response: httpx.Response) -> Any:
    """Parse a JSON body, falling back to text for anything else."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
