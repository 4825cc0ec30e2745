"""TLS certificate pinning for the Outline management API.

Outline servers are reached by IP with a self-signed certificate, so chain
validation is off and the server is identified by the SHA-256 fingerprint of
its DER certificate instead. The fingerprint is checked immediately after the
handshake, before any request bytes are written to the connection.
"""

import hashlib
import ssl
from typing import Iterable, Optional

import httpcore
import httpx
from httpcore._backends.auto import AutoBackend


def normalize_fingerprint(value: str) -> str:
    """``AB:CD:...`` or ``abcd...`` -> ``ABCD...``."""
    return value.replace(":", "").strip().upper()


def certificate_fingerprint(der_cert: bytes) -> str:
    return hashlib.sha256(der_cert).hexdigest().upper()


def unverified_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class CertificateMismatchError(httpcore.ConnectError):
    """The peer certificate does not match the pinned fingerprint."""


class PinnedStream(httpcore.AsyncNetworkStream):
    def __init__(self, stream: httpcore.AsyncNetworkStream, fingerprint: str) -> None:
        self._stream = stream
        self._fingerprint = fingerprint

    async def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        return await self._stream.read(max_bytes, timeout=timeout)

    async def write(self, buffer: bytes, timeout: Optional[float] = None) -> None:
        await self._stream.write(buffer, timeout=timeout)

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> httpcore.AsyncNetworkStream:
        tls_stream = await self._stream.start_tls(
            ssl_context, server_hostname=server_hostname, timeout=timeout
        )
        ssl_object = tls_stream.get_extra_info("ssl_object")
        der_cert = ssl_object.getpeercert(binary_form=True) if ssl_object is not None else None
        if not der_cert:
            await tls_stream.aclose()
            raise CertificateMismatchError("Outline certificate missing")
        if certificate_fingerprint(der_cert) != self._fingerprint:
            await tls_stream.aclose()
            raise CertificateMismatchError("Outline certificate fingerprint mismatch")
        return tls_stream

    def get_extra_info(self, info: str):
        return self._stream.get_extra_info(info)


class PinnedNetworkBackend(httpcore.AsyncNetworkBackend):
    def __init__(self, fingerprint: str, backend: Optional[httpcore.AsyncNetworkBackend] = None) -> None:
        self._fingerprint = fingerprint
        self._backend = backend or AutoBackend()

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options: Optional[Iterable] = None,
    ) -> httpcore.AsyncNetworkStream:
        stream = await self._backend.connect_tcp(
            host,
            port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )
        return PinnedStream(stream, self._fingerprint)

    async def connect_unix_socket(
        self,
        path: str,
        timeout: Optional[float] = None,
        socket_options: Optional[Iterable] = None,
    ) -> httpcore.AsyncNetworkStream:
        stream = await self._backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options
        )
        return PinnedStream(stream, self._fingerprint)

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)


_TRANSPORT_ERRORS = (
    httpcore.NetworkError,
    httpcore.ProtocolError,
    httpcore.TimeoutException,
    httpcore.UnsupportedProtocol,
)


class PinnedTransport(httpx.AsyncBaseTransport):
    """httpx transport over an httpcore pool whose TLS connections are fingerprint-pinned."""

    def __init__(self, fingerprint: str) -> None:
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=unverified_ssl_context(),
            network_backend=PinnedNetworkBackend(normalize_fingerprint(fingerprint)),
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        core_request = httpcore.Request(
            method=request.method,
            url=httpcore.URL(
                scheme=request.url.raw_scheme,
                host=request.url.raw_host,
                port=request.url.port,
                target=request.url.raw_path,
            ),
            headers=request.headers.raw,
            content=request.stream,
            extensions=request.extensions,
        )
        try:
            core_response = await self._pool.handle_async_request(core_request)
            try:
                content = await core_response.aread()
            finally:
                await core_response.aclose()
        except httpcore.ConnectError as e:
            raise httpx.ConnectError(str(e), request=request) from e
        except _TRANSPORT_ERRORS as e:
            raise httpx.TransportError(str(e), request=request) from e

        return httpx.Response(
            status_code=core_response.status,
            headers=core_response.headers,
            content=content,
            extensions=core_response.extensions,
            request=request,
        )

    async def aclose(self) -> None:
        await self._pool.aclose()
