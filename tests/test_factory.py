"""
Tests for fetch_trials factory functions.
"""

import logging

import httpx
import pytest

from conftest import ScriptedAsyncTransport, ScriptedSyncTransport, always
from fetch_trials import (
    RetryConfig,
    RetryTransport,
    SyncRetryTransport,
    attach_retry_policy,
    compose_transport,
    compose_sync_transport,
    create_retry_client,
    create_retry_sync_client,
)


URL = "http://example.com/test"


class TestAttachRetryPolicy:
    """Tests for attach_retry_policy."""

    @pytest.mark.asyncio
    async def test_wraps_async_client_transport(self, network_error):
        """Should make an existing async client retry."""
        inner = ScriptedAsyncTransport([network_error, 200])
        client = httpx.AsyncClient(transport=inner, trust_env=False)

        attach_retry_policy(client, RetryConfig(max_retries=1, retry_predicate=always(True)))

        assert isinstance(client._transport, RetryTransport)
        response = await client.get(URL)
        assert response.status_code == 200
        assert len(inner.requests) == 2
        await client.aclose()

    def test_wraps_sync_client_transport(self, network_error):
        """Should make an existing sync client retry."""
        inner = ScriptedSyncTransport([network_error, 200])
        client = httpx.Client(transport=inner, trust_env=False)

        attach_retry_policy(client, RetryConfig(max_retries=1, retry_predicate=always(True)))

        assert isinstance(client._transport, SyncRetryTransport)
        assert client.get(URL).status_code == 200
        client.close()

    def test_wraps_mounted_transports(self):
        """Should wrap every mounted transport too."""
        default = ScriptedAsyncTransport([200])
        mounted = ScriptedAsyncTransport([200])
        client = httpx.AsyncClient(transport=default, mounts={"http://api.example.com": mounted}, trust_env=False)

        attach_retry_policy(client)

        assert all(isinstance(t, RetryTransport) for t in client._mounts.values())

    def test_uses_client_transports_as_default_agents(self):
        """Should treat the client's own transports as default agents."""
        default = ScriptedAsyncTransport([200])
        mounted = ScriptedAsyncTransport([200])
        client = httpx.AsyncClient(transport=default, mounts={"http://api.example.com": mounted}, trust_env=False)

        attach_retry_policy(client)

        assert default in client._transport._default_agents
        assert mounted in client._transport._default_agents

    def test_does_not_wrap_twice(self, caplog):
        """Should warn and leave an already retrying transport alone."""
        inner = ScriptedAsyncTransport([200])
        client = httpx.AsyncClient(transport=inner, trust_env=False)

        attach_retry_policy(client)
        wrapped = client._transport
        with caplog.at_level(logging.WARNING, logger="fetch_trials.factory"):
            attach_retry_policy(client)

        assert client._transport is wrapped
        assert "already retries" in caplog.text

    def test_rejects_non_clients(self):
        """Should raise for objects that are not httpx clients."""
        with pytest.raises(TypeError):
            attach_retry_policy(object())


class TestComposeTransport:
    """Tests for compose helpers."""

    def test_applies_wrappers_in_order(self):
        """Should wrap the base transport with each wrapper in turn."""
        base = ScriptedAsyncTransport([200])
        transport = compose_transport(
            base,
            lambda inner: RetryTransport(inner, max_retries=1),
            lambda inner: RetryTransport(inner, max_retries=2),
        )
        assert transport.config.max_retries == 2
        assert transport._inner.config.max_retries == 1
        assert transport._inner._inner is base

    def test_returns_base_without_wrappers(self):
        """Should return the base transport unchanged."""
        base = ScriptedSyncTransport([200])
        assert compose_sync_transport(base) is base


class TestCreateRetryClient:
    """Tests for client factories."""

    @pytest.mark.asyncio
    async def test_creates_async_client_with_retry_transport(self):
        """Should build an AsyncClient over a RetryTransport."""
        config = RetryConfig(max_retries=5)
        client = create_retry_client(config, base_url="https://api.example.com", trust_env=False)

        assert isinstance(client, httpx.AsyncClient)
        assert isinstance(client._transport, RetryTransport)
        assert client._transport.config is config
        assert client.timeout.read == 5.0
        await client.aclose()

    def test_creates_sync_client_with_retry_transport(self):
        """Should build a Client over a SyncRetryTransport."""
        client = create_retry_sync_client(timeout=2.0, trust_env=False)

        assert isinstance(client, httpx.Client)
        assert isinstance(client._transport, SyncRetryTransport)
        assert client._transport.config.max_retries == 3
        assert client.timeout.connect == 2.0
        client.close()
