"""Custom metrics for the School Library MCP Server."""

import logfire

mcp_request_counter = logfire.metric_counter(
    "mcp.requests.total", description="Total MCP requests by method"
)

loan_events = logfire.metric_counter(
    "library.loans.events", description="Loan ledger events (loan/return/delete)"
)

copies_moved = logfire.metric_counter(
    "library.loans.copies", unit="copies", description="Copies lent or returned"
)


def record_loan_event(event_type: str, quantity: int = 0, school_id: str | None = None):
    """Record a loan ledger event and the number of copies it moved."""
    attributes = {"event_type": event_type, "school_id": school_id or "none"}
    loan_events.add(1, attributes)
    if quantity > 0:
        copies_moved.add(quantity, attributes)
