"""Tests for server wiring: registration and an in-memory client round trip."""

import json

import pytest
from fastmcp import Client

from school_library_mcp.database.session import get_db_manager, reset_db_manager
from school_library_mcp.resources import all_resources
from school_library_mcp.tools import all_tools


@pytest.fixture
def server():
    from school_library_mcp import server as server_module

    return server_module


@pytest.fixture
def fresh_db_manager():
    reset_db_manager()
    yield
    reset_db_manager()


@pytest.mark.mcp_protocol
class TestServerRegistration:
    async def test_tools_listed(self, server):
        async with Client(server.mcp) as client:
            tools = await client.list_tools()

        assert {tool.name for tool in tools} == {tool["name"] for tool in all_tools}

    async def test_resources_and_templates_listed(self, server):
        async with Client(server.mcp) as client:
            resources = await client.list_resources()
            templates = await client.list_resource_templates()

        static = {str(resource.uri) for resource in resources}
        templated = {template.uriTemplate for template in templates}
        expected = {r.get("uri") or r.get("uri_template") for r in all_resources}

        assert static | templated == expected
        assert "library://loans/active" in static
        assert "library://loans/{loan_id}" in templated

    async def test_read_stock_resource(self, server, mock_session_scope, sample_book):
        async with Client(server.mcp) as client:
            contents = await client.read_resource("library://stats/stock")

        stats = json.loads(contents[0].text)
        assert stats["total_books"] == 1
        assert stats["total_available"] == 5


class TestPrepareDatabase:
    def test_creates_schema(self, server, fresh_db_manager, test_config):
        server.prepare_database()

        assert get_db_manager().verify_connection() is True
        assert test_config.database_path.exists()
