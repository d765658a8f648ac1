"""A contact sensor reporting whether its body touches anything."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Hashable

_KNOWN_KEYS = frozenset({"topic", "update_rate", "body"})


@dataclass(frozen=True)
class BoolSensorConfig:
    """Settings of a boolean contact sensor."""

    body: str
    topic: str = "bool_sensor"
    update_rate: float = math.inf

    @classmethod
    def from_mapping(
        cls, config: Mapping[str, Any] | None, body_names: Sequence[str]
    ) -> BoolSensorConfig:
        """Build the settings, checking keys and the body against the model."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"Sensor configuration must be a mapping, got {config!r}")

        topic = config.get("topic", "bool_sensor")
        if not isinstance(topic, str):
            raise ValueError(f'Entry "topic" must be a string, got {topic!r}')

        rate = config.get("update_rate", math.inf)
        if isinstance(rate, bool):
            raise ValueError(f'Entry "update_rate" must be a number, got {rate!r}')
        try:
            update_rate = float(rate)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f'Entry "update_rate" must be a number, got {rate!r}'
            ) from exc

        if not body_names:
            raise ValueError("You didn't provide any bodies for model")
        body = config.get("body", body_names[0])
        if not isinstance(body, str):
            raise ValueError(f'Entry "body" must be a string, got {body!r}')

        unknown = sorted(set(config) - _KNOWN_KEYS)
        if unknown:
            raise ValueError(f"Unused entries in configuration: {{{', '.join(unknown)}}}")

        if body not in body_names:
            raise ValueError(f'Body with name "{body}" does not exist')

        return cls(body=body, topic=topic, update_rate=update_rate)


@dataclass
class BoolSensor:
    """Counts live contacts and latches any contact seen since the last read."""

    config: BoolSensorConfig
    collisions: int = 0
    hit_something: bool = False

    def begin_contact(self, body_a: Hashable, body_b: Hashable) -> None:
        """Record a new contact between two bodies."""
        if body_a == body_b:
            return
        self.collisions += 1
        self.hit_something = True

    def end_contact(self, body_a: Hashable, body_b: Hashable) -> None:
        """Record the end of a contact between two bodies."""
        if body_a == body_b:
            return
        self.collisions -= 1

    def read(self) -> bool:
        """Return the reading to publish; brief contacts show up at least once."""
        if self.hit_something:
            self.hit_something = False
            return True
        return self.collisions > 0