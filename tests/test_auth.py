"""
Tests for shared-secret authentication.
"""

import pytest
from flask import Flask, request

from polytrans.config import AuthenticationConfig
from polytrans.exceptions import AuthenticationError
from polytrans.translation.auth import (
    apply_auth,
    client_ip,
    extract_secret,
    ip_allowed,
    verify_request,
    verify_secret,
)

SECRET = "s3cr3t-Token_42"
METHODS = ["get_param", "header_bearer", "header_custom", "post_param"]


def sent(auth):
    """Headers, params and body as the sender would send them."""
    return apply_auth(auth, {"Content-Type": "application/json"}, {}, {"translated": {"title": "x"}})


class TestSecretRoundTrip:
    @pytest.mark.parametrize("method", METHODS)
    def test_same_config_accepted(self, method):
        auth = AuthenticationConfig(secret=SECRET, method=method)
        headers, params, body = sent(auth)

        assert verify_secret(auth, headers, params, body)

    def test_bearer_header(self):
        headers, _, _ = sent(AuthenticationConfig(secret=SECRET, method="header_bearer"))
        assert headers["Authorization"] == f"Bearer {SECRET}"

    def test_bearer_prefix_case_insensitive(self):
        auth = AuthenticationConfig(secret=SECRET, method="header_bearer")
        assert verify_secret(auth, {"authorization": f"bearer {SECRET}"}, {}, None)

    def test_custom_header_lookup_case_insensitive(self):
        auth = AuthenticationConfig(secret=SECRET, method="header_custom", custom_header="X-Site-Key")
        assert extract_secret(auth, {"x-site-key": SECRET}, {}, None) == SECRET

    def test_every_single_character_mutation_rejected(self):
        auth = AuthenticationConfig(secret=SECRET, method="header_bearer")

        for i, char in enumerate(SECRET):
            mutated = SECRET[:i] + chr(ord(char) ^ 1) + SECRET[i + 1:]
            assert not verify_secret(auth, {"Authorization": f"Bearer {mutated}"}, {}, None), mutated

    def test_truncated_and_extended_rejected(self):
        auth = AuthenticationConfig(secret=SECRET, method="header_bearer")
        assert not verify_secret(auth, {"Authorization": f"Bearer {SECRET[:-1]}"}, {}, None)
        assert not verify_secret(auth, {"Authorization": f"Bearer {SECRET}x"}, {}, None)
        assert not verify_secret(auth, {"Authorization": "Bearer "}, {}, None)

    @pytest.mark.parametrize("sender", METHODS)
    @pytest.mark.parametrize("receiver", METHODS)
    def test_method_mismatch_rejected(self, sender, receiver):
        if sender == receiver:
            pytest.skip("same method")
        headers, params, body = sent(AuthenticationConfig(secret=SECRET, method=sender))

        assert not verify_secret(AuthenticationConfig(secret=SECRET, method=receiver), headers, params, body)

    def test_disabled_auth_sends_nothing_and_accepts_all(self):
        for auth in (AuthenticationConfig(secret="", method="header_bearer"),
                     AuthenticationConfig(secret=SECRET, method="none")):
            headers, params, body = sent(auth)
            assert "Authorization" not in headers
            assert params == {}
            assert "secret" not in body
            assert verify_secret(auth, {}, {}, None)

    def test_apply_auth_copies(self):
        headers = {}
        auth = AuthenticationConfig(secret=SECRET, method="header_bearer")

        apply_auth(auth, headers, {}, {})

        assert headers == {}


class TestIpAllowlist:
    def test_empty_allows_everyone(self):
        assert ip_allowed([], "203.0.113.9")

    def test_exact_match(self):
        assert ip_allowed(["10.0.0.5"], "10.0.0.5")
        assert not ip_allowed(["10.0.0.5"], "10.0.0.6")

    def test_cidr(self):
        assert ip_allowed(["192.168.0.0/16"], "192.168.44.2")
        assert not ip_allowed(["192.168.0.0/16"], "192.169.0.1")

    def test_ipv6(self):
        assert ip_allowed(["2001:db8::/32"], "2001:db8::1")

    def test_invalid_entries_ignored(self):
        assert ip_allowed(["not-an-ip", "10.0.0.5"], "10.0.0.5")
        assert not ip_allowed(["not-an-ip"], "10.0.0.5")

    def test_unparsable_client_ip(self):
        assert not ip_allowed(["10.0.0.5"], "unknown")

    def test_client_ip_prefers_forwarded_for(self):
        assert client_ip({"X-Forwarded-For": "198.51.100.7, 10.0.0.1"}, "10.0.0.1") == "198.51.100.7"
        assert client_ip({}, "10.0.0.1") == "10.0.0.1"


class TestVerifyRequest:
    @pytest.fixture
    def app(self):
        return Flask("auth-test")

    def test_accepts_valid_request(self, app):
        auth = AuthenticationConfig(secret=SECRET, method="post_param", allowed_ips=["10.0.0.0/8"])
        with app.test_request_context("/", method="POST", json={"secret": SECRET},
                                      environ_base={"REMOTE_ADDR": "10.1.2.3"}):
            verify_request(auth, request)

    def test_bad_secret(self, app):
        auth = AuthenticationConfig(secret=SECRET, method="get_param")
        with app.test_request_context("/?secret=wrong", method="POST"):
            with pytest.raises(AuthenticationError) as exc:
                verify_request(auth, request)
        assert exc.value.message == "Forbidden"
        assert exc.value.code == "invalid_secret"

    def test_ip_outside_allowlist(self, app):
        auth = AuthenticationConfig(secret=SECRET, method="header_custom", allowed_ips=["10.0.0.5"])
        with app.test_request_context("/", method="POST", headers={"x-polytrans-secret": SECRET},
                                      environ_base={"REMOTE_ADDR": "10.0.0.6"}):
            with pytest.raises(AuthenticationError) as exc:
                verify_request(auth, request)
        assert exc.value.message == "Forbidden"
        assert exc.value.code == "ip_not_allowed"
