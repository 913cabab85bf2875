"""Tests for TLS context factories."""

import ssl

import pytest

from src.config import TLSConfig
from src.errors import ConfigError
from src.tls_context import (
    build_client_context,
    create_client_context_unverified,
    create_client_context_verified,
)


class TestClientContextUnverified:
    def test_creates_ssl_context(self):
        ctx = create_client_context_unverified()
        assert isinstance(ctx, ssl.SSLContext)

    def test_no_hostname_check(self):
        ctx = create_client_context_unverified()
        assert ctx.check_hostname is False

    def test_no_cert_verification(self):
        ctx = create_client_context_unverified()
        assert ctx.verify_mode == ssl.CERT_NONE


class TestClientContextVerified:
    def test_system_store_requires_certs(self):
        ctx = create_client_context_verified()
        assert ctx.verify_mode == ssl.CERT_REQUIRED
        assert ctx.check_hostname is True

    def test_missing_ca_raises(self):
        with pytest.raises((ssl.SSLError, FileNotFoundError)):
            create_client_context_verified("/nonexistent/ca.pem")


class TestBuildClientContext:
    def test_no_tls_settings_means_plain(self):
        assert build_client_context(TLSConfig()) is None

    def test_insecure_skip_verify(self):
        ctx = build_client_context(TLSConfig(insecure_skip_verify=True))
        assert ctx.verify_mode == ssl.CERT_NONE
        assert ctx.check_hostname is False
        assert ctx.minimum_version == ssl.TLSVersion.TLSv1_2

    def test_cert_without_key(self):
        with pytest.raises(ConfigError):
            build_client_context(TLSConfig(cert_file="/etc/cert.pem"))

    def test_key_without_cert(self):
        with pytest.raises(ConfigError):
            build_client_context(TLSConfig(key_file="/etc/key.pem"))

    def test_missing_ca_file(self):
        with pytest.raises((ssl.SSLError, FileNotFoundError)):
            build_client_context(TLSConfig(ca_file="/nonexistent/ca.pem"))

    def test_missing_client_cert(self):
        with pytest.raises((ssl.SSLError, FileNotFoundError)):
            build_client_context(TLSConfig(
                insecure_skip_verify=True,
                cert_file="/nonexistent/cert.pem",
                key_file="/nonexistent/key.pem",
            ))
