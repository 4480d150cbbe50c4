# src/mixtrack/helpers.py
"""Typed convenience wrappers, one per catalog entry.

Each method's parameters are exactly the fields its event kind requires,
minus ``timestamp`` and ``event_category`` which the Tracker fills in.
Helpers are reached through a tracker: ``tracker.session.start(...)``.
"""

from typing import TYPE_CHECKING

from mixtrack.catalog import EventKind

if TYPE_CHECKING:
    from mixtrack.tracker import Tracker


class _EventGroup:
    def __init__(self, tracker: "Tracker") -> None:
        self._tracker = tracker


class SessionEvents(_EventGroup):
    """Session lifecycle events."""

    def start(self, user_type: str, platform: str) -> None:
        """Track the start of a session.

        Args:
            user_type: "Authenticated" or "Guest"
            platform: "web" or "mobile" (see config.classify_platform)
        """
        self._tracker.track_event(EventKind.SESSION_STARTED, {"user_type": user_type, "platform": platform})

    def end(self, duration: float, pages_visited: int) -> None:
        """Track the end of a session.

        Args:
            duration: Session length in milliseconds
            pages_visited: Pages visited during the session
        """
        self._tracker.track_event(EventKind.SESSION_ENDED, {"duration": duration, "pages_visited": pages_visited})

    def time_between(self, interval_in_minutes: float) -> None:
        """Track the gap since the previous session ended."""
        self._tracker.track_event(EventKind.TIME_BETWEEN_SESSIONS, {"interval_in_minutes": interval_in_minutes})


class DecisionEvents(_EventGroup):
    """Decision-flow events."""

    def discussion_start(self, decision_type: str) -> None:
        """Track the start of a decision-making discussion."""
        self._tracker.track_event(EventKind.DISCUSSION_STARTED, {"decision_type": decision_type})

    def pros_and_cons_generated(self, models_used: list[str], elapsed_time: float) -> None:
        """Track pros and cons being generated.

        Args:
            models_used: AI models that contributed
            elapsed_time: Time since the discussion started
        """
        self._tracker.track_event(
            EventKind.PROS_AND_CONS_GENERATED,
            {"models_used": list(models_used), "elapsed_time": elapsed_time},
        )

    def complete(self, decision_type: str, completion_time: float, was_helpful: bool) -> None:
        """Track a completed decision.

        Args:
            decision_type: Type of decision made
            completion_time: Time from discussion start to completion
            was_helpful: Whether the user found the outcome helpful
        """
        self._tracker.track_event(
            EventKind.DECISION_COMPLETED,
            {"decision_type": decision_type, "completion_time": completion_time, "was_helpful": was_helpful},
        )

    def abandoned(self, inactivity_duration: float, current_step: str) -> None:
        """Track a discussion abandoned after inactivity."""
        self._tracker.track_event(
            EventKind.ABANDONED_DISCUSSION,
            {"inactivity_duration": inactivity_duration, "current_step": current_step},
        )

    def summary_view(self, from_step: str) -> None:
        self._tracker.track_event(EventKind.OPENED_SUMMARY_VIEW, {"from_step": from_step})

    def left_midway(self, screen: str) -> None:
        self._tracker.track_event(EventKind.USER_LEFT_APP_MIDWAY, {"screen": screen})


class AIEvents(_EventGroup):
    """AI interaction events."""

    def interaction(self, model: str, action_type: str, response_time: float) -> None:
        """Track an interaction with an AI model.

        Args:
            model: AI model used
            action_type: Kind of interaction (e.g. "analyze")
            response_time: How long the user took to respond
        """
        self._tracker.track_event(
            EventKind.AI_INTERACTED,
            {"model": model, "action_type": action_type, "response_time": response_time},
        )

    def clicked_response(self, model: str, position: int) -> None:
        """Track a click on an AI response at the given list position."""
        self._tracker.track_event(EventKind.CLICKED_AI_RESPONSE, {"model": model, "position": position})


class FeedbackEvents(_EventGroup):
    """Feedback events."""

    def button_clicked(self) -> None:
        self._tracker.track_event(EventKind.FEEDBACK_BUTTON_CLICKED, {})

    def submitted(self, feedback_text: str) -> None:
        self._tracker.track_event(EventKind.FEEDBACK_SUBMITTED, {"feedback_text": feedback_text})
