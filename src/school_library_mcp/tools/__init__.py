"""
MCP Tools for the School Library Server.

Tools are the write side of the server: lending and returns, catalog
changes, people and storytelling records. Each tool is a dictionary with
its name, description, JSON input schema and async handler; the server
registers every entry of ``all_tools``.
"""

from .catalog import add_book, delete_book, lookup_book, update_book
from .loans import create_loan, delete_loan, register_return
from .people import (
    add_school,
    add_student,
    add_teacher,
    delete_student,
    delete_teacher,
    update_school,
    update_student,
    update_teacher,
)
from .storytelling import add_storytelling, delete_storytelling, update_storytelling

all_tools = [
    create_loan,
    register_return,
    delete_loan,
    lookup_book,
    add_book,
    update_book,
    delete_book,
    add_school,
    update_school,
    add_student,
    update_student,
    delete_student,
    add_teacher,
    update_teacher,
    delete_teacher,
    add_storytelling,
    update_storytelling,
    delete_storytelling,
]

__all__ = [
    "add_book",
    "add_school",
    "add_storytelling",
    "add_student",
    "add_teacher",
    "all_tools",
    "create_loan",
    "delete_book",
    "delete_loan",
    "delete_storytelling",
    "delete_student",
    "delete_teacher",
    "lookup_book",
    "register_return",
    "update_book",
    "update_school",
    "update_storytelling",
    "update_student",
    "update_teacher",
]
