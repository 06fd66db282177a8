"""
Unit test fixtures. Services run against the in-memory DB from the root conftest;
no HTTP layer and no real payment provider.
"""
import pytest


@pytest.fixture
def failing_gateway(gateway):
    """Sandbox gateway whose next create_transaction raises."""
    gateway.fail_next = True
    return gateway
