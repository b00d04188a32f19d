"""Recover iteration ids from the console side-channel.

newman does not hand iteration data to reporters, so the collection logs the
id on the console, e.g. in the pre-request script of its first request::

    console.log("iterationId", pm.iterationData.get("ID"));

The correlator turns such a console event into an explicit
:class:`IterationIdentified` event; the rest of the reporter never sees
console messages.
"""

from __future__ import annotations

import json
from typing import Any

from iteration_tests.events import ConsoleMessage, IterationIdentified

DEFAULT_MARKER = "iterationId"


class IterationCorrelator:
    def __init__(self, marker: str = DEFAULT_MARKER) -> None:
        self.marker = marker

    def correlate(self, message: ConsoleMessage) -> IterationIdentified | None:
        """Return the identification carried by message, or None if it is not a marker."""
        fragments = message.messages
        if not fragments or fragments[0] != self.marker:
            return None
        # the id is the last fragment, whatever sits in between
        return IterationIdentified(iteration_id=_render(fragments[-1]))


def _render(fragment: Any) -> str | None:
    """Render a logged value the way the console printed it; None means nothing was logged."""
    if fragment is None:
        return None
    if isinstance(fragment, str):
        return fragment
    return json.dumps(fragment, ensure_ascii=False)
