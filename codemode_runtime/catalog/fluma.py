"""Built-in declaration of the event-management tool service.

The tool service manages user profiles, events, co-hosts and RSVPs. Each entry
mirrors one tool registered by the backend; the catalog is what sandboxed
programs see as ``codemode.<name>``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from .catalog import CapabilityCatalog

_EVENT_ID = {"name": "event_id", "kind": "string", "description": "The event ID"}
_RSVP_STATUS = ["going", "maybe", "not_going"]

FLUMA_DECLARATIONS: List[Dict[str, Any]] = [
    # Profile tools
    {
        "name": "get_profile",
        "description": "Get your user profile",
    },
    {
        "name": "update_profile",
        "description": "Update your user profile",
        "inputFields": [
            {"name": "first_name", "kind": "string", "required": False, "description": "Your first name"},
            {"name": "last_name", "kind": "string", "required": False, "description": "Your last name"},
            {"name": "email", "kind": "string", "required": False, "description": "Your email address"},
        ],
    },
    # Event listing tools
    {
        "name": "list_events",
        "description": "List all events with optional filtering",
        "inputFields": [
            {
                "name": "filter",
                "kind": "enum",
                "values": ["upcoming", "past", "hosting", "attending", "all"],
                "required": False,
                "description": (
                    "Filter events: upcoming (default), past, hosting (events you host), "
                    "attending (events you RSVP'd to), all"
                ),
            },
        ],
    },
    {
        "name": "get_event",
        "description": "Get details of a specific event",
        "inputFields": [_EVENT_ID],
    },
    # Event host tools
    {
        "name": "create_event",
        "description": "Create a new event (you will be the host)",
        "inputFields": [
            {"name": "title", "kind": "string", "description": "Event title"},
            {"name": "description", "kind": "string", "required": False, "description": "Event description"},
            {"name": "location", "kind": "string", "description": "Event location"},
            {
                "name": "date",
                "kind": "string",
                "description": "Event date and time (ISO 8601 format, e.g., 2024-12-25T18:00:00Z)",
            },
        ],
    },
    {
        "name": "update_event",
        "description": "Update an event you host (will notify attendees)",
        "inputFields": [
            _EVENT_ID,
            {"name": "title", "kind": "string", "required": False, "description": "New event title"},
            {"name": "description", "kind": "string", "required": False, "description": "New event description"},
            {"name": "location", "kind": "string", "required": False, "description": "New event location"},
            {"name": "date", "kind": "string", "required": False, "description": "New event date (ISO 8601 format)"},
        ],
    },
    {
        "name": "delete_event",
        "description": "Delete an event you host (will notify attendees)",
        "inputFields": [_EVENT_ID],
    },
    {
        "name": "list_event_rsvps",
        "description": "List all RSVPs for an event you host",
        "inputFields": [
            _EVENT_ID,
            {
                "name": "status",
                "kind": "enum",
                "values": [*_RSVP_STATUS, "all"],
                "required": False,
                "description": "Filter by RSVP status (default: all)",
            },
        ],
    },
    {
        "name": "add_cohost",
        "description": "Add a co-host to your event",
        "inputFields": [
            _EVENT_ID,
            {"name": "user_email", "kind": "string", "description": "Email of the user to add as co-host"},
        ],
    },
    {
        "name": "remove_cohost",
        "description": "Remove a co-host from your event",
        "inputFields": [
            _EVENT_ID,
            {"name": "user_email", "kind": "string", "description": "Email of the co-host to remove"},
        ],
    },
    # RSVP tools
    {
        "name": "rsvp",
        "description": "RSVP to an event",
        "inputFields": [
            _EVENT_ID,
            {"name": "status", "kind": "enum", "values": _RSVP_STATUS, "description": "Your RSVP status"},
        ],
    },
    {
        "name": "update_rsvp",
        "description": "Update your RSVP status for an event",
        "inputFields": [
            _EVENT_ID,
            {"name": "status", "kind": "enum", "values": _RSVP_STATUS, "description": "Your new RSVP status"},
        ],
    },
    {
        "name": "cancel_rsvp",
        "description": "Cancel your RSVP for an event",
        "inputFields": [_EVENT_ID],
    },
    {
        "name": "get_my_rsvps",
        "description": "Get all events you've RSVP'd to",
    },
    {
        "name": "get_my_events",
        "description": "Get all events you're hosting",
    },
]


@lru_cache(maxsize=1)
def fluma_catalog() -> CapabilityCatalog:
    """Return the built-in event-management catalog (built once per process)."""
    return CapabilityCatalog.from_declarations(FLUMA_DECLARATIONS)
