"""Tests for correlation id and request context propagation."""

import asyncio

import pytest

from roomguard.logging.correlation import (
    correlation_context,
    get_correlation_id,
    get_domain_context,
    get_log_context,
    request_context,
    set_correlation_id,
    update_domain_context,
)


def test_empty_by_default():
    assert get_correlation_id() == ""
    assert get_log_context() == {}


def test_context_restores_previous_values():
    set_correlation_id("outer")
    with correlation_context("inner", user_id="user123") as active:
        assert active == "inner"
        assert get_correlation_id() == "inner"
        assert get_domain_context() == {"user_id": "user123"}
    assert get_correlation_id() == "outer"
    assert get_domain_context() == {}


def test_generated_id():
    with correlation_context() as active:
        assert len(active) == 36
        assert get_correlation_id() == active


def test_request_context_drops_missing_fields():
    with request_context(endpoint="/api/rooms", ip_address="203.0.113.9") as active:
        update_domain_context(method="GET")
        context = get_log_context()
    assert context == {
        "correlation_id": active,
        "endpoint": "/api/rooms",
        "ip_address": "203.0.113.9",
        "method": "GET",
    }


@pytest.mark.asyncio
async def test_tasks_keep_their_own_ids():
    async def handler(request_id: str) -> str:
        with correlation_context(request_id):
            await asyncio.sleep(0)
            return get_correlation_id()

    results = await asyncio.gather(handler("req-1"), handler("req-2"))
    assert results == ["req-1", "req-2"]
