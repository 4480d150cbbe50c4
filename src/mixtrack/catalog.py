# src/mixtrack/catalog.py
"""Event catalog: the closed set of trackable event kinds.

Each kind has a payload model listing the fields it requires and a category
tag used for downstream analysis. Adding a kind means adding a model and a
CATALOG entry here; there is no runtime registration.

Payload values are primitives (str, int, float, bool) or lists of
primitives. Models are strict (no type coercion) and forbid unknown fields,
so a typo in a field name fails validation instead of silently reaching the
analytics back end.

Every model accepts an optional ``timestamp``. The Tracker fills it with the
call time when absent, before validation, which is how SessionStarted and
DiscussionStarted satisfy their required timestamp.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from mixtrack.errors import PayloadValidationError, UnknownEventKindError


class EventCategory(StrEnum):
    """Coarse grouping attached to every event as ``event_category``."""

    SESSION = "Session"
    DECISION_FLOW = "Decision Flow"
    AI_INTERACTION = "AI Interaction"
    FEEDBACK = "Feedback"


class EventKind(StrEnum):
    """Names of all trackable events, as sent to the analytics back end."""

    # Session
    SESSION_STARTED = "SessionStarted"
    SESSION_ENDED = "SessionEnded"
    TIME_BETWEEN_SESSIONS = "TimeBetweenSessions"
    # Decision flow
    DISCUSSION_STARTED = "DiscussionStarted"
    PROS_AND_CONS_GENERATED = "ProsAndConsGenerated"
    DECISION_COMPLETED = "DecisionCompleted"
    ABANDONED_DISCUSSION = "AbandonedDiscussion"
    OPENED_SUMMARY_VIEW = "OpenedSummaryView"
    USER_LEFT_APP_MIDWAY = "UserLeftAppMidway"
    # AI interaction
    AI_INTERACTED = "AIInteracted"
    CLICKED_AI_RESPONSE = "ClickedAIResponse"
    # Feedback
    FEEDBACK_BUTTON_CLICKED = "FeedbackButtonClicked"
    FEEDBACK_SUBMITTED = "FeedbackSubmitted"


# =============================================================================
# Payload models
# =============================================================================


class EventPayload(BaseModel):
    """Base payload: strict, closed, with an optional ISO-8601 timestamp."""

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    timestamp: str | None = None


class SessionStarted(EventPayload):
    timestamp: str
    user_type: str
    platform: str


class SessionEnded(EventPayload):
    duration: float
    pages_visited: int


class TimeBetweenSessions(EventPayload):
    interval_in_minutes: float


class DiscussionStarted(EventPayload):
    decision_type: str
    timestamp: str


class ProsAndConsGenerated(EventPayload):
    models_used: list[str]
    elapsed_time: float


class DecisionCompleted(EventPayload):
    decision_type: str
    completion_time: float
    was_helpful: bool


class AbandonedDiscussion(EventPayload):
    inactivity_duration: float
    current_step: str


class OpenedSummaryView(EventPayload):
    from_step: str


class UserLeftAppMidway(EventPayload):
    screen: str


class AIInteracted(EventPayload):
    model: str
    action_type: str
    response_time: float


class ClickedAIResponse(EventPayload):
    model: str
    position: int


class FeedbackButtonClicked(EventPayload):
    pass


class FeedbackSubmitted(EventPayload):
    feedback_text: str


# =============================================================================
# Catalog
# =============================================================================


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Category and payload model for one event kind."""

    category: EventCategory
    model: type[EventPayload]


CATALOG: Mapping[EventKind, CatalogEntry] = MappingProxyType(
    {
        EventKind.SESSION_STARTED: CatalogEntry(EventCategory.SESSION, SessionStarted),
        EventKind.SESSION_ENDED: CatalogEntry(EventCategory.SESSION, SessionEnded),
        EventKind.TIME_BETWEEN_SESSIONS: CatalogEntry(EventCategory.SESSION, TimeBetweenSessions),
        EventKind.DISCUSSION_STARTED: CatalogEntry(EventCategory.DECISION_FLOW, DiscussionStarted),
        EventKind.PROS_AND_CONS_GENERATED: CatalogEntry(EventCategory.DECISION_FLOW, ProsAndConsGenerated),
        EventKind.DECISION_COMPLETED: CatalogEntry(EventCategory.DECISION_FLOW, DecisionCompleted),
        EventKind.ABANDONED_DISCUSSION: CatalogEntry(EventCategory.DECISION_FLOW, AbandonedDiscussion),
        EventKind.OPENED_SUMMARY_VIEW: CatalogEntry(EventCategory.DECISION_FLOW, OpenedSummaryView),
        EventKind.USER_LEFT_APP_MIDWAY: CatalogEntry(EventCategory.DECISION_FLOW, UserLeftAppMidway),
        EventKind.AI_INTERACTED: CatalogEntry(EventCategory.AI_INTERACTION, AIInteracted),
        EventKind.CLICKED_AI_RESPONSE: CatalogEntry(EventCategory.AI_INTERACTION, ClickedAIResponse),
        EventKind.FEEDBACK_BUTTON_CLICKED: CatalogEntry(EventCategory.FEEDBACK, FeedbackButtonClicked),
        EventKind.FEEDBACK_SUBMITTED: CatalogEntry(EventCategory.FEEDBACK, FeedbackSubmitted),
    }
)


def resolve_kind(kind: EventKind | str) -> EventKind:
    """Return the EventKind for an enum member or its string value.

    Raises:
        UnknownEventKindError: If the kind is not in the catalog.
    """
    try:
        return EventKind(kind)
    except ValueError:
        raise UnknownEventKindError(kind) from None


def category_for(kind: EventKind | str) -> EventCategory:
    """Look up the category of an event kind."""
    return CATALOG[resolve_kind(kind)].category


def required_fields(kind: EventKind | str) -> frozenset[str]:
    """Names of the fields a payload of this kind must carry."""
    model = CATALOG[resolve_kind(kind)].model
    return frozenset(name for name, info in model.model_fields.items() if info.is_required())


def validate_payload(kind: EventKind | str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a payload against the catalog schema for its kind.

    Args:
        kind: Event kind (enum member or string value)
        payload: Field values, with ``timestamp`` already filled in by the caller
            when the kind requires one

    Returns:
        Normalised payload dict. ``timestamp`` is omitted when it was not given.

    Raises:
        UnknownEventKindError: If the kind is not in the catalog
        PayloadValidationError: If a field is missing, unknown or mistyped
    """
    event_kind = resolve_kind(kind)
    model = CATALOG[event_kind].model
    try:
        validated = model.model_validate(dict(payload))
    except ValidationError as e:
        problems = [f"{'.'.join(str(part) for part in err['loc']) or '<payload>'}: {err['msg']}" for err in e.errors()]
        raise PayloadValidationError(event_kind.value, problems) from e
    return validated.model_dump(exclude_none=True)
