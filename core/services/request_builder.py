"""Projection of session turns into a Gemini generation request."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from core.models import Turn, TurnRole

_PROTOCOL_ROLES = {
    TurnRole.USER: "user",
    TurnRole.ASSISTANT: "model",
}


def attach_to_latest_user_message(
    contents: list[dict[str, Any]], part: dict[str, Any]
) -> bool:
    """Append ``part`` to the most recent user message, scanning backward.

    Returns:
        False when there is no user message to attach to
    """
    for message in reversed(contents):
        if message["role"] == "user":
            message["parts"].append(part)
            return True
    return False


class RequestBuilder:
    """Builds the ``contents`` list of a generation request.

    The API has no system role, so the preamble is prepended to the text of
    the first user turn. Performs no I/O.
    """

    def build_contents(
        self,
        turns: Sequence[Turn],
        attachment_part: Optional[dict[str, Any]] = None,
        preamble: str = "",
    ) -> list[dict[str, Any]]:
        contents: list[dict[str, Any]] = []
        preamble_applied = not preamble
        for turn in turns:
            text = turn.text
            if turn.role == TurnRole.USER and not preamble_applied:
                text = f"{preamble}\n\n{text}"
                preamble_applied = True
            contents.append({
                "role": _PROTOCOL_ROLES[turn.role],
                "parts": [{"text": text}],
            })

        if attachment_part is not None:
            attach_to_latest_user_message(contents, attachment_part)
        return contents

    def build_payload(
        self,
        turns: Sequence[Turn],
        attachment_part: Optional[dict[str, Any]] = None,
        preamble: str = "",
    ) -> dict[str, Any]:
        """Full request body: ``{"contents": [...]}``."""
        return {"contents": self.build_contents(turns, attachment_part, preamble)}
