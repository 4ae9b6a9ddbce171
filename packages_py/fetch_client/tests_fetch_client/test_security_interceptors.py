"""
Tests for interceptors/security.py
Logic testing: Decision/Branch, Path coverage
"""
import pytest

from fetch_client import FetchError, MockResponse, install_security_interceptors
from fetch_client.interceptors.security import (
    ERR_SECURITY,
    create_security_request_interceptor,
    create_security_response_interceptor,
)


class HostAllowList:
    """SecurityPolicy allowing only the hosts in ``security.allowed_hosts``."""

    def __init__(self):
        self.responses = []

    def validate_request(self, config, options):
        allowed = options.get("allowed_hosts")
        if allowed and not any(host in config["url"] for host in allowed):
            raise PermissionError(f"host not allowed: {config['url']}")
        return {**config, "headers": {**config["headers"], "x-request-signed": "1"}}

    async def validate_response(self, response, options):
        self.responses.append(response)
        if options.get("forbid_html") and "text/html" in response.headers.get("content-type", ""):
            raise ValueError("html responses are not allowed")


@pytest.fixture
def policy():
    return HostAllowList()


@pytest.fixture
def secured_client(client, policy):
    install_security_interceptors(client.interceptors.request, client.interceptors.response, policy)
    return client


class TestSecurityInterceptors:
    """Tests for request and response validation."""

    @pytest.mark.asyncio
    async def test_request_augmented(self, secured_client, mock_adapter, policy):
        mock_adapter.on_get("/users", MockResponse(200))

        await secured_client.get("/users", {"security": {"allowed_hosts": ["api.example.com"]}})

        assert mock_adapter.last_request["headers"]["x-request-signed"] == "1"
        assert len(policy.responses) == 1

    @pytest.mark.asyncio
    async def test_request_rejected(self, secured_client, mock_adapter):
        mock_adapter.on_any(MockResponse(200))

        with pytest.raises(FetchError) as exc_info:
            await secured_client.get("https://evil.test/x", {"security": {"allowed_hosts": ["api.example.com"]}})

        assert exc_info.value.code == ERR_SECURITY
        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert mock_adapter.history == []

    @pytest.mark.asyncio
    async def test_response_rejected_carries_response(self, secured_client, mock_adapter):
        mock_adapter.on_get("/page", MockResponse(200, "<html/>", headers={"content-type": "text/html"}))

        with pytest.raises(FetchError) as exc_info:
            await secured_client.get("/page", {"security": {"forbid_html": True}})

        assert exc_info.value.code == ERR_SECURITY
        assert exc_info.value.response.data == "<html/>"

    @pytest.mark.asyncio
    async def test_request_policy_returning_none_keeps_config(self, client, mock_adapter):
        class Passive:
            def validate_request(self, config, options):
                return None

            def validate_response(self, response, options):
                return None

        install_security_interceptors(client.interceptors.request, client.interceptors.response, Passive())
        mock_adapter.on_get("/users", MockResponse(200, "ok"))

        response = await client.get("/users")

        assert response.data == "ok"


class StrictPolicy:
    """Policy that raises its own FetchError."""

    def __init__(self):
        self.error = FetchError("blocked by policy", code="ERR_BLOCKED")

    def validate_request(self, config, options):
        raise self.error

    def validate_response(self, response, options):
        raise self.error


class TestPolicyFetchErrors:
    """Tests for FetchErrors raised by the policy itself."""

    @pytest.mark.asyncio
    async def test_request_error_reraised_as_is(self, sample_config):
        policy = StrictPolicy()
        interceptor = create_security_request_interceptor(policy)

        with pytest.raises(FetchError) as exc_info:
            await interceptor(sample_config)

        assert exc_info.value is policy.error
        assert exc_info.value.code == "ERR_BLOCKED"
        assert exc_info.value.__cause__ is None

    @pytest.mark.asyncio
    async def test_response_error_reraised_with_response(self, sample_response):
        policy = StrictPolicy()
        interceptor = create_security_response_interceptor(policy)

        with pytest.raises(FetchError) as exc_info:
            await interceptor(sample_response)

        assert exc_info.value is policy.error
        assert exc_info.value.__cause__ is None
        assert exc_info.value.response is sample_response
