"""Where to send the user once login completes."""

from urllib.parse import urljoin

from starlette.requests import Request


def get_referer(request: Request) -> str:
    """The ``Referer`` header resolved against this server, or the server root."""
    return urljoin(str(request.base_url), request.headers.get("referer", ""))
