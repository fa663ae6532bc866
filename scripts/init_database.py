#!/usr/bin/env python3
"""
Initialize the School Library database.

This script:
1. Creates all database tables
2. Optionally loads a small sample school
3. Verifies the database is ready for MCP server use

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys
from datetime import date, timedelta

from sqlalchemy import inspect

from school_library_mcp.database import (
    BookRepository,
    LoanRepository,
    SchoolRepository,
    StorytellingRepository,
    StudentRepository,
    TeacherRepository,
    get_db_manager,
)
from school_library_mcp.database.book_repository import BookCreateSchema
from school_library_mcp.database.loan_repository import LoanCreateSchema
from school_library_mcp.database.school_repository import SchoolCreateSchema
from school_library_mcp.database.storytelling_repository import StorytellingCreateSchema
from school_library_mcp.database.student_repository import StudentCreateSchema
from school_library_mcp.database.teacher_repository import TeacherCreateSchema

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPECTED_TABLES = {
    "schools",
    "students",
    "teachers",
    "books",
    "loans",
    "storytelling_sessions",
}


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the School Library MCP Server database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load a sample school after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Tables: %s", ", ".join(sorted(tables)))
        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", missing_tables)
            sys.exit(1)

        if args.sample_data:
            logger.info("Loading sample data...")
            load_sample_data(db_manager)

        logger.info("Database initialization complete")

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


def load_sample_data(db_manager):
    """
    Load one sample school through the repositories.

    This creates a school, three students, two teachers, three books,
    a few loans (one partly returned) and a storytelling session.
    """
    with db_manager.session_scope() as session:
        school = SchoolRepository(session).create(
            SchoolCreateSchema(name="Escola Municipal Monteiro Lobato", phone="(11) 3333-4444")
        )

        students = StudentRepository(session)
        ana = students.create(
            StudentCreateSchema(
                name="Ana Souza", grade=3, classroom="A", shift="Morning", school_id=school.id
            )
        )
        bruno = students.create(
            StudentCreateSchema(
                name="Bruno Lima", grade=5, classroom="B", shift="Afternoon", school_id=school.id
            )
        )
        students.create(
            StudentCreateSchema(
                name="Carla Dias", grade=5, classroom="B", shift="Afternoon", school_id=school.id
            )
        )

        teachers = TeacherRepository(session)
        marta = teachers.create(TeacherCreateSchema(name="Marta Ribeiro", school_id=school.id))
        paulo = teachers.create(TeacherCreateSchema(name="Paulo Nunes", school_id=school.id))

        books = BookRepository(session)
        prince = books.create(
            BookCreateSchema(
                title="O Pequeno Príncipe",
                barcode="9788595081512",
                total_copies=5,
                school_id=school.id,
            )
        )
        sitio = books.create(
            BookCreateSchema(
                title="Reinações de Narizinho",
                barcode="9788525056009",
                total_copies=30,
                school_id=school.id,
            )
        )
        books.create(
            BookCreateSchema(
                title="Menina Bonita do Laço de Fita",
                barcode="9788508101726",
                total_copies=2,
                school_id=school.id,
            )
        )

        loans = LoanRepository(session)
        loans.create_loan(
            LoanCreateSchema(
                book_id=prince.id,
                student_id=ana.id,
                loan_date=date.today() - timedelta(days=10),
            )
        )
        class_loan = loans.create_loan(
            LoanCreateSchema(
                book_id=sitio.id,
                teacher_id=marta.id,
                taken_quantity=25,
                loan_date=date.today() - timedelta(days=7),
                grade=5,
                classroom="B",
                shift="Afternoon",
            )
        )
        loans.register_return(class_loan.id, 20)
        finished = loans.create_loan(
            LoanCreateSchema(
                book_id=prince.id,
                student_id=bruno.id,
                loan_date=date.today() - timedelta(days=20),
            )
        )
        loans.register_return(finished.id, 1, date.today() - timedelta(days=6))

        StorytellingRepository(session).create(
            StorytellingCreateSchema(
                teacher_id=marta.id,
                storyteller_id=paulo.id,
                book_id=sitio.id,
                grade=5,
                classroom="B",
                shift="Afternoon",
                session_date=date.today() - timedelta(days=3),
                student_count=24,
            )
        )

        summary = books.stock_summary(school_id=school.id)
        logger.info("Created school %s", school.id)
        logger.info(
            "Stock: %d titles, %d copies, %d available, %d on loan",
            summary.total_books,
            summary.total_stock,
            summary.total_available,
            summary.total_loaned,
        )


if __name__ == "__main__":
    main()
