"""
Public URLs for locally stored uploads.

`resolve` turns a locator (a file name in the upload directory) into the URL a
browser fetches; `extract_locator` reverses it. Only the URL is stored on
documents, so the reverse direction is what lets us delete a replaced file.
"""
from typing import Optional

from starlette.requests import Request

ASSET_PREFIX = "/uploads/"

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}


def _hostname(host: str) -> str:
    if host.startswith("["):
        return host[1:].split("]", 1)[0]
    if host.count(":") == 1:
        return host.split(":", 1)[0]
    return host


def is_loopback(host: str) -> bool:
    name = _hostname(host.strip().lower())
    return name in LOOPBACK_HOSTS or name.endswith(".localhost")


class UrlResolver:
    def __init__(self, base_url: Optional[str] = None, prefix: str = ASSET_PREFIX) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.prefix = "/" + prefix.strip("/") + "/"

    @property
    def fixed(self) -> bool:
        return self.base_url is not None

    def origin(self, request: Optional[Request]) -> str:
        if self.base_url is not None:
            return self.base_url
        if request is None:
            raise ValueError("A request is required to resolve URLs without a configured base URL")

        forwarded = request.headers.get("x-forwarded-proto")
        scheme = forwarded.split(",")[0].strip().lower() if forwarded else request.url.scheme
        host = request.headers.get("host") or request.url.netloc
        if not is_loopback(host):
            scheme = "https"
        return f"{scheme}://{host}"

    def resolve(self, locator: str, request: Optional[Request] = None) -> str:
        if not locator or any(char in locator for char in "/?#"):
            raise ValueError(f"Invalid locator: {locator!r}")
        return f"{self.origin(request)}{self.prefix}{locator}"

    def extract_locator(self, url: Optional[str]) -> Optional[str]:
        if not url:
            return None
        _, sep, locator = url.rpartition(self.prefix)
        if not sep or not locator or "/" in locator:
            return None
        return locator.split("?", 1)[0].split("#", 1)[0] or None
