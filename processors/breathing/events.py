"""
Breathing event and measurement records.

These are the values handed to persistence and presentation collaborators.
The pipeline keeps no reference to them once they are returned.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class EventType(Enum):
    INHALE = "inhale"
    EXHALE = "exhale"
    APNEA = "apnea"
    DEEP_BREATH = "deep_breath"


@dataclass(frozen=True)
class BreathingEvent:
    """
    A discrete breathing event.

    Attributes:
        timestamp: Event time in seconds
        type: Kind of event
        amplitude: Peak envelope amplitude, for inhale and deep-breath events
        duration: Elapsed time in seconds, for apnea events
        id: Unique event identity
    """
    timestamp: float
    type: EventType
    amplitude: Optional[float] = None
    duration: Optional[float] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'timestamp': self.timestamp,
            'type': self.type.value,
            'amplitude': self.amplitude,
            'duration': self.duration
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BreathingEvent':
        return cls(
            id=uuid.UUID(data['id']),
            timestamp=float(data['timestamp']),
            type=EventType(data['type']),
            amplitude=data.get('amplitude'),
            duration=data.get('duration')
        )


@dataclass(frozen=True)
class BreathingRateMeasurement:
    """
    Breathing rate at a point in time.

    Attributes:
        timestamp: Measurement time in seconds
        instantaneous_rate: Rate from the latest inter-breath interval (BPM)
        smoothed_rate: Median rate over recent breaths (BPM)
        confidence: Consistency of recent intervals (0-1)
    """
    timestamp: float
    instantaneous_rate: float
    smoothed_rate: float
    confidence: float

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'instantaneous_rate': self.instantaneous_rate,
            'smoothed_rate': self.smoothed_rate,
            'confidence': self.confidence
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BreathingRateMeasurement':
        return cls(
            timestamp=float(data['timestamp']),
            instantaneous_rate=float(data['instantaneous_rate']),
            smoothed_rate=float(data['smoothed_rate']),
            confidence=float(data['confidence'])
        )


@dataclass
class BreathingSession:
    """
    In-memory aggregate of one monitoring session.

    Attributes:
        start_time: Session start in seconds
        end_time: Session end in seconds, None while running
        rate_measurements: Rate measurements in arrival order
        events: Events in arrival order
        id: Unique session identity
    """
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    rate_measurements: List[BreathingRateMeasurement] = field(default_factory=list)
    events: List[BreathingEvent] = field(default_factory=list)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def add_rate_measurement(self, measurement: BreathingRateMeasurement) -> None:
        self.rate_measurements.append(measurement)

    def add_event(self, event: BreathingEvent) -> None:
        self.events.append(event)

    def end(self, end_time: Optional[float] = None) -> None:
        self.end_time = end_time if end_time is not None else time.time()

    @property
    def duration(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    @property
    def average_rate(self) -> float:
        if not self.rate_measurements:
            return 0.0
        return sum(m.smoothed_rate for m in self.rate_measurements) / len(self.rate_measurements)

    @property
    def apnea_count(self) -> int:
        return sum(1 for e in self.events if e.type is EventType.APNEA)

    @property
    def deep_breath_count(self) -> int:
        return sum(1 for e in self.events if e.type is EventType.DEEP_BREATH)

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'rate_measurements': [m.to_dict() for m in self.rate_measurements],
            'events': [e.to_dict() for e in self.events]
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BreathingSession':
        return cls(
            id=uuid.UUID(data['id']),
            start_time=float(data['start_time']),
            end_time=data.get('end_time'),
            rate_measurements=[BreathingRateMeasurement.from_dict(m) for m in data.get('rate_measurements', [])],
            events=[BreathingEvent.from_dict(e) for e in data.get('events', [])]
        )
