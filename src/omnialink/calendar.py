"""Summary: Google Calendar gateway.

Importance: Pushes application events to Google and pulls Google events back.
Alternatives: Use the Google API client library or CalDAV.
"""

from __future__ import annotations

import logging
import urllib.parse
from datetime import date, datetime, time, timezone
from typing import Any, Iterable

from omnialink.errors import ProviderApiError
from omnialink.gateway import GoogleGateway
from omnialink.models import AppEvent, ExternalEvent, ProviderConnection


logger = logging.getLogger(__name__)

ORIGIN_PROPERTY = "omniaEventId"
DEFAULT_TITLE = "Google Calendar Event"
ABORTING_CODES = frozenset({"401", "403", "timeout"})


class GoogleCalendarGateway(GoogleGateway):
    """Summary: Calls Calendar v3 events endpoints with a Google access token.

    Importance: Tags pushed events with their application id so pulls can be reconciled by callers.
    Alternatives: Deduplicate inside the gateway by title and start time.
    """

    def push_events(
        self,
        connection: ProviderConnection | None,
        events: Iterable[AppEvent],
        calendar_id: str = "primary",
        time_zone: str = "UTC",
    ) -> int:
        """Summary: Insert each application event and return how many succeeded.

        Importance: One rejected event does not stop the batch; auth failures and timeouts do.
        Alternatives: Abort the batch on the first provider error.
        """

        token = self._require_token(connection)
        path = f"calendars/{_calendar_path(calendar_id)}/events"
        synced = 0
        for event in events:
            try:
                created = self._google_json(
                    self._request("POST", path, token, json_body=_event_body(event, time_zone))
                )
            except ProviderApiError as exc:
                if exc.code in ABORTING_CODES:
                    raise
                logger.warning("Failed to push event %s to Google Calendar: %s", event.id, exc)
                continue
            synced += 1
            logger.info("Pushed event %s to Google Calendar as %s.", event.id, created.get("id"))
        return synced

    def pull_events(
        self,
        connection: ProviderConnection | None,
        time_min: datetime,
        calendar_id: str = "primary",
    ) -> list[ExternalEvent]:
        token = self._require_token(connection)
        payload = self._google_json(
            self._request(
                "GET",
                f"calendars/{_calendar_path(calendar_id)}/events",
                token,
                params={
                    "timeMin": _rfc3339(time_min),
                    "singleEvents": True,
                    "orderBy": "startTime",
                    "showDeleted": False,
                    "maxResults": 100,
                },
            )
        )
        events: list[ExternalEvent] = []
        for item in payload.get("items") or []:
            parsed = _parse_calendar_event(item)
            if parsed:
                events.append(parsed)
        logger.info("Pulled %s events from Google Calendar.", len(events))
        return events


def _event_body(event: AppEvent, time_zone: str) -> dict[str, Any]:
    body: dict[str, Any] = {
        "summary": event.title,
        "start": {"dateTime": _rfc3339(event.start), "timeZone": time_zone},
        "end": {"dateTime": _rfc3339(event.end), "timeZone": time_zone},
        "extendedProperties": {"private": {ORIGIN_PROPERTY: event.id}},
    }
    if event.description:
        body["description"] = event.description
    if event.location:
        body["location"] = event.location
    return body


def _parse_calendar_event(item: dict[str, Any]) -> ExternalEvent | None:
    """Summary: Translate a Calendar v3 event resource into an ExternalEvent.

    Importance: Handles both timed and all-day events.
    Alternatives: Skip all-day events entirely.
    """

    event_id = item.get("id")
    start_raw = item.get("start") or {}
    end_raw = item.get("end") or {}
    start = _parse_event_time(start_raw)
    if not event_id or start is None:
        return None
    end = _parse_event_time(end_raw) or start
    private = (item.get("extendedProperties") or {}).get("private") or {}
    attendees = [
        attendee["email"] for attendee in item.get("attendees") or [] if attendee.get("email")
    ]
    return ExternalEvent(
        external_id=event_id,
        title=item.get("summary") or DEFAULT_TITLE,
        start=start,
        end=end,
        all_day=bool(start_raw.get("date")) and not start_raw.get("dateTime"),
        description=item.get("description"),
        location=item.get("location"),
        attendees=attendees,
        html_link=item.get("htmlLink"),
        origin_event_id=private.get(ORIGIN_PROPERTY),
    )


def _parse_event_time(value: dict[str, Any]) -> datetime | None:
    if value.get("dateTime"):
        try:
            parsed = datetime.fromisoformat(str(value["dateTime"]).replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if value.get("date"):
        try:
            day = date.fromisoformat(str(value["date"]))
        except ValueError:
            return None
        return datetime.combine(day, time.min, tzinfo=timezone.utc)
    return None


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _calendar_path(calendar_id: str) -> str:
    return urllib.parse.quote(calendar_id or "primary", safe="")
