"""Storytelling Resources

Resources:
- library://storytelling/list - Sessions, newest first, with teacher and book names
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..config import get_config
from ..database.session import session_scope
from ..database.storytelling_repository import StorytellingRepository
from ..observability.decorators import trace_resource

logger = logging.getLogger(__name__)


@trace_resource("storytelling.list")
async def list_storytelling_handler() -> dict[str, Any]:
    try:
        with session_scope() as session:
            sessions = StorytellingRepository(session).list_sessions(
                school_id=get_config().default_school_id
            )
            return {
                "sessions": [story.model_dump(mode="json") for story in sessions],
                "count": len(sessions),
                "total_students": sum(story.student_count for story in sessions),
            }
    except Exception as e:
        logger.exception("Error in storytelling/list resource")
        raise ResourceError(f"Failed to retrieve storytelling sessions: {e!s}") from e


storytelling_resources: list[dict[str, Any]] = [
    {
        "uri": "library://storytelling/list",
        "name": "Storytelling Sessions",
        "description": (
            "Books read aloud to classes: who told the story, to which class, "
            "and how many students attended"
        ),
        "mime_type": "application/json",
        "handler": list_storytelling_handler,
    },
]
