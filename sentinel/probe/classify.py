"""Outcome classification: liveness rule and error taxonomy."""
import asyncio
import socket
from typing import Optional, Union

import httpx

from sentinel.models import ErrorKind, FailureSignal

_TIMEOUT_MARKERS = ("timed out", "operation was aborted")
_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "name resolution",
    "name not resolved",
)


def is_live(status_code: Optional[int]) -> bool:
    """A site is live when it answered with a 2xx or 3xx status."""
    return status_code is not None and 200 <= status_code < 400


def _as_signal(failure: Union[FailureSignal, str, None]) -> Optional[FailureSignal]:
    if failure is None or isinstance(failure, FailureSignal):
        return failure
    try:
        return FailureSignal(failure)
    except ValueError:
        return FailureSignal.OTHER


def classify(
    status_code: Optional[int],
    failure: Union[FailureSignal, str, None] = None,
) -> ErrorKind:
    """Map a status code and/or failure signal to an ErrorKind.

    First match wins: timeout, dns, 403, >=500, 4xx, ok. A missing status
    with no recognised failure is reported as ``http``.
    """
    signal = _as_signal(failure)
    if signal is FailureSignal.TIMEOUT:
        return ErrorKind.TIMEOUT
    if signal is FailureSignal.DNS:
        return ErrorKind.DNS
    if status_code is None:
        return ErrorKind.HTTP
    if status_code == 403:
        return ErrorKind.FORBIDDEN
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    if status_code >= 400:
        return ErrorKind.HTTP
    return ErrorKind.OK


def _exception_chain(exc: BaseException):
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def failure_from_exception(exc: BaseException) -> FailureSignal:
    """Derive a FailureSignal from a request exception.

    Exception types are checked before falling back to the message text,
    since some transports only report resolver errors as strings.
    """
    chain = list(_exception_chain(exc))

    for err in chain:
        if isinstance(err, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
            return FailureSignal.TIMEOUT
    for err in chain:
        if isinstance(err, socket.gaierror):
            return FailureSignal.DNS

    message = " ".join(str(err) for err in chain).lower()
    if any(marker in message for marker in _TIMEOUT_MARKERS):
        return FailureSignal.TIMEOUT
    if any(marker in message for marker in _DNS_MARKERS):
        return FailureSignal.DNS

    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
        return FailureSignal.CONNECTION
    return FailureSignal.OTHER
