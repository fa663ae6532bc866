"""School Library MCP Server - FastMCP Implementation

Exposes a school library's catalog, loan ledger and storytelling records
over MCP. Clients connect via stdio (default) or streamable HTTP.

Features exposed:
- Resources: Catalog with derived stock, loans, people, stock and dashboard stats
- Tools: Lending and returns, catalog, people and storytelling maintenance
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .database.session import get_db_manager
from .observability import initialize_observability
from .observability.middleware import MCPInstrumentationMiddleware
from .resources import all_resources
from .tools import all_tools

config = get_config()

# stderr for logs, stdout for MCP protocol
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    name=config.server_name,
    version=config.server_version,
    instructions=(
        "School Library MCP Server - manages a school library's book catalog, loans to "
        "students and teachers, and storytelling sessions. Stock is never stored: available "
        "and loaned copies are derived from the loans. Use resources to browse the catalog, "
        "loans and statistics, and tools to lend, register returns and maintain records. "
        "register_return takes the total number of copies returned so far."
    ),
)

mcp.add_middleware(MCPInstrumentationMiddleware())

for resource in all_resources:
    uri = resource.get("uri_template", resource.get("uri"))
    if not uri:
        logger.error("Resource missing URI: %s", resource)
        continue

    logger.debug("Registering resource: %s with URI: %s", resource["name"], uri)
    try:
        mcp.resource(
            uri=uri,
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])
    except Exception:
        logger.exception("Failed to register resource %s", resource["name"])
        raise

logger.info("Registered %d resources", len(all_resources))

for tool in all_tools:
    logger.debug("Registering tool: %s", tool["name"])
    try:
        mcp.tool(
            name=tool["name"],
            description=tool["description"],
        )(tool["handler"])
    except Exception:
        logger.exception("Failed to register tool %s", tool["name"])
        raise

logger.info("Registered %d tools", len(all_tools))


def prepare_database() -> None:
    """Create missing tables and check the database answers."""
    db_manager = get_db_manager()
    db_manager.init_database()
    if not db_manager.verify_connection():
        raise RuntimeError(f"Cannot connect to database at {config.database_path}")


def run_server() -> None:
    """Run the MCP server on the configured transport."""
    logger.info(
        "Starting %s v%s on %s transport",
        config.server_name,
        config.server_version,
        config.transport,
    )

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled - verbose protocol logging active")
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        get_db_manager().close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("MCP Server ready and waiting for connections...")
        if config.transport == "streamable_http":
            mcp.run(transport="streamable-http")
        else:
            mcp.run(transport="stdio")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)
    finally:
        get_db_manager().close()


def main() -> None:
    """Entry point for the ``school-library-mcp`` command."""
    try:
        logger.info("=" * 60)
        logger.info("School Library MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Database: %s", config.database_path)
        logger.info("Strict stock check: %s", config.strict_stock_check)
        logger.info("School: %s", config.default_school_id or "all")
        logger.info("=" * 60)

        initialize_observability()
        prepare_database()
        run_server()

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
