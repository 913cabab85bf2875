"""SSLContext factory for the syslog client connection."""

import ssl

from src.config import TLSConfig
from src.errors import ConfigError


def create_client_context_unverified() -> ssl.SSLContext:
    """Create an SSL context that skips certificate verification."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def create_client_context_verified(ca_file: str = "") -> ssl.SSLContext:
    """Create an SSL context that verifies the server cert against a CA, or the system store."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    if ca_file:
        ctx.load_verify_locations(ca_file)
    else:
        ctx.load_default_certs(ssl.Purpose.SERVER_AUTH)
    ctx.verify_mode = ssl.CERT_REQUIRED
    ctx.check_hostname = True
    return ctx


def build_client_context(tls: TLSConfig) -> ssl.SSLContext | None:
    """Return the client context for these settings, or None for a plain connection."""
    if not tls.enabled:
        return None
    if bool(tls.cert_file) != bool(tls.key_file):
        raise ConfigError("tls_cert and tls_key must be set together")

    if tls.insecure_skip_verify:
        ctx = create_client_context_unverified()
        if tls.ca_file:
            ctx.load_verify_locations(tls.ca_file)
    else:
        ctx = create_client_context_verified(tls.ca_file)

    if tls.cert_file:
        ctx.load_cert_chain(certfile=tls.cert_file, keyfile=tls.key_file)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    return ctx
