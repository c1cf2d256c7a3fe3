"""
Client IP resolution.

Picks the best-guess client address from proxy headers and the socket peer
address, in this order:

1. CF-Connecting-IP (set by the CDN)
2. X-Forwarded-For (left-most entry)
3. X-Real-IP (nginx)
4. socket peer address, with IPv6-mapped and loopback forms shortened

Values are not validated as IP addresses.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from werkzeug.datastructures import Headers

logger = logging.getLogger(__name__)

IP_UNAVAILABLE = 'IP alınamadı'
IP_ERROR = 'Hata'

SOURCE_CLOUDFLARE = 'cf-connecting-ip'
SOURCE_FORWARDED_FOR = 'x-forwarded-for'
SOURCE_REAL_IP = 'x-real-ip'
SOURCE_SOCKET = 'socket'
SOURCE_NONE = 'none'
SOURCE_ERROR = 'error'

IPV4_MAPPED_PREFIX = '::ffff:'
IPV6_LOOPBACK = '::1'
IPV4_LOOPBACK = '127.0.0.1'


@dataclass(frozen=True)
class IPResolution:
    """Result of a lookup: the address string and the signal it came from."""

    ip: str
    source: str

    @property
    def resolved(self) -> bool:
        return self.source not in (SOURCE_NONE, SOURCE_ERROR)


def normalize_socket_address(address: str) -> str:
    """Shorten IPv6-mapped IPv4 and IPv6 loopback forms of a peer address.

    Both replacements touch the first occurrence anywhere in the string,
    so ``"::1"`` inside a longer IPv6 address is rewritten too.
    """
    return address.replace(IPV4_MAPPED_PREFIX, '', 1).replace(IPV6_LOOPBACK, IPV4_LOOPBACK, 1)


def first_forwarded_for(value: str) -> str:
    """Left-most entry of an X-Forwarded-For chain, trimmed."""
    return value.split(',')[0].strip()


def _lookup(headers: Headers, remote_addr: Optional[str]) -> IPResolution:
    cloudflare_ip = headers.get(SOURCE_CLOUDFLARE)
    if cloudflare_ip:
        return IPResolution(cloudflare_ip, SOURCE_CLOUDFLARE)

    # Repeated X-Forwarded-For lines form one chain
    forwarded_for = ', '.join(headers.getlist(SOURCE_FORWARDED_FOR))
    if forwarded_for:
        client_ip = first_forwarded_for(forwarded_for)
        if client_ip:
            return IPResolution(client_ip, SOURCE_FORWARDED_FOR)

    real_ip = headers.get(SOURCE_REAL_IP)
    if real_ip:
        return IPResolution(real_ip, SOURCE_REAL_IP)

    if remote_addr:
        return IPResolution(normalize_socket_address(remote_addr), SOURCE_SOCKET)

    return IPResolution(IP_UNAVAILABLE, SOURCE_NONE)


def resolve_client_ip(
    headers: Union[Headers, Mapping[str, str]],
    remote_addr: Optional[str],
) -> IPResolution:
    """
    Resolve the client IP for a request.

    ``headers`` is looked up case-insensitively; a plain mapping is wrapped
    in :class:`werkzeug.datastructures.Headers`. Never raises: a failure while
    reading the request yields ``IPResolution(IP_ERROR, SOURCE_ERROR)``.
    """
    try:
        if not isinstance(headers, Headers):
            headers = Headers(headers)
        resolution = _lookup(headers, remote_addr)
    except Exception:
        logger.exception('Client IP lookup failed')
        return IPResolution(IP_ERROR, SOURCE_ERROR)

    logger.debug('Client IP %s taken from %s', resolution.ip, resolution.source)
    return resolution
