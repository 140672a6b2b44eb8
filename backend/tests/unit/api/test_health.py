"""
Unit Tests for Health Check Endpoints
"""
import pytest
from httpx import AsyncClient


class TestHealth:

    async def test_root_health(self, client: AsyncClient):
        response = await client.get('/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    async def test_liveness(self, client: AsyncClient):
        response = await client.get('/api/v1/health/live')

        assert response.json()['status'] == 'alive'

    async def test_readiness_skips_redis_without_relay(self, client: AsyncClient):
        response = await client.get('/api/v1/health/ready')

        assert response.status_code == 200
        body = response.json()
        assert body['checks']['database']['status'] == 'healthy'
        assert body['checks']['redis']['status'] == 'skipped'

    async def test_request_id_header(self, client: AsyncClient):
        response = await client.get('/health', headers={'X-Request-ID': 'req-123'})

        assert response.headers['X-Request-ID'] == 'req-123'
        assert 'X-Response-Time' in response.headers
