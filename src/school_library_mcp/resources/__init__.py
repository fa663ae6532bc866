"""School Library MCP Resources Package

Resources are the read side of the server. Stock figures in them are always
derived from the loan ledger at read time.
"""

from .books import book_resources
from .loans import loan_resources
from .people import people_resources
from .stats import stats_resources
from .storytelling import storytelling_resources

all_resources = (
    book_resources + loan_resources + people_resources + storytelling_resources + stats_resources
)

__all__ = [
    "all_resources",
    "book_resources",
    "loan_resources",
    "people_resources",
    "stats_resources",
    "storytelling_resources",
]
