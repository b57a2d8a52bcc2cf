"""Imaging reference resolution.

DICOM objects are streamed through a local proxy instead of the public
storage host; standard raster images are loaded directly.
"""

import logging
from urllib.parse import unquote, urlsplit

from medfile.config import DICOM_EXTENSIONS, DICOM_PROXY_PREFIX, STORAGE_PUBLIC_HOSTS
from medfile.models.views import MediaReference

logger = logging.getLogger(__name__)


def is_dicom_reference(url: str) -> bool:
    """True when the URL path ends in a DICOM extension (query ignored)."""
    path = unquote(urlsplit(url or "").path).lower()
    return path.endswith(DICOM_EXTENSIONS)


def resolve_media_reference(
    url: str,
    allowed_hosts: list[str] | None = None,
    proxy_prefix: str | None = None,
) -> MediaReference:
    allowed_hosts = STORAGE_PUBLIC_HOSTS if allowed_hosts is None else allowed_hosts
    proxy_prefix = DICOM_PROXY_PREFIX if proxy_prefix is None else proxy_prefix

    if not is_dicom_reference(url):
        return MediaReference(kind="raster", url=url, source_url=url, origin="passthrough")

    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    if not host:
        return MediaReference(kind="dicom", url=url, source_url=url, origin="passthrough")

    if host not in allowed_hosts:
        logger.warning("DICOM reference from unrecognized host %s; passing through", host)
        return MediaReference(kind="dicom", url=url, source_url=url, origin="unrecognized")

    proxied = proxy_prefix.rstrip("/") + parts.path
    if parts.query:
        proxied += "?" + parts.query
    if parts.fragment:
        proxied += "#" + parts.fragment
    return MediaReference(kind="dicom", url=proxied, source_url=url, origin="proxied")
