"""Trust for reverse-proxy forwarding headers."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`ProxyFix` so ``request.remote_addr`` is the client.

    Rate limiting and the security log key on the client address, so the
    number of trusted hops must match the deployment: ``PROXY_FIX_HOPS``
    (default ``1``) proxies in front of gunicorn. ``0`` disables the wrapper.
    """
    hops = int(app.config.get("PROXY_FIX_HOPS", 1))
    if hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)
