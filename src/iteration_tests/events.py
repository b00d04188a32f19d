"""Runner lifecycle events and their JSON-lines wire format.

The runner reports ``start``, ``beforeIteration``, ``console``,
``assertion``, ``iteration`` and ``done`` events. Over the wire each event is
one JSON object per line, discriminated by its ``event`` field.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Iterable, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from iteration_tests.errors import EventFormatError


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ItemRef(_Payload):
    name: str


class RunStarted(_Payload):
    event: Literal["start"] = "start"
    collection: str


class IterationStarted(_Payload):
    event: Literal["beforeIteration"] = "beforeIteration"


class ConsoleMessage(_Payload):
    event: Literal["console"] = "console"
    messages: list[Any] = []


class AssertionEvaluated(_Payload):
    event: Literal["assertion"] = "assertion"
    err: Any = None
    error: Any = None
    item: ItemRef
    assertion: str

    @property
    def failed(self) -> bool:
        return bool(self.err) or bool(self.error)


class IterationCompleted(_Payload):
    event: Literal["iteration"] = "iteration"


class RunCompleted(_Payload):
    event: Literal["done"] = "done"


Event = Annotated[
    Union[
        RunStarted,
        IterationStarted,
        ConsoleMessage,
        AssertionEvaluated,
        IterationCompleted,
        RunCompleted,
    ],
    Field(discriminator="event"),
]

_event_adapter: TypeAdapter[Event] = TypeAdapter(Event)


@dataclass(frozen=True)
class IterationIdentified:
    """The running iteration has been given its id.

    Produced from a console marker by the correlator; never read off the wire.
    ``iteration_id`` is None when the marker carried a null id.
    """

    iteration_id: str | None


def _normalize(raw: dict[str, Any]) -> dict[str, Any]:
    # newman's summary shape nests the collection name
    collection = raw.get("collection")
    if raw.get("event") == "start" and isinstance(collection, dict):
        raw = {**raw, "collection": collection.get("name")}
    return raw


def parse_event(raw: dict[str, Any], line_number: int = 0) -> Event:
    if not isinstance(raw, dict):
        raise EventFormatError(line_number, "expected a JSON object")
    try:
        return _event_adapter.validate_python(_normalize(raw))
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise EventFormatError(line_number, errors) from e


def read_events(lines: Iterable[str]) -> Iterator[Event]:
    """Yield events parsed from JSON lines, skipping blank lines."""
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            raise EventFormatError(line_number, e.msg) from e
        yield parse_event(raw, line_number)
