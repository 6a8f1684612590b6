"""
Fixed-capacity ring buffer for streaming breathing analysis.

This module provides the bounded FIFO storage used by every stateful stage
of the breathing pipeline: envelope history, the feature sample accumulator,
inhalation timestamps and amplitude history.
"""

import numpy as np
import logging
from typing import Optional
from dataclasses import dataclass


@dataclass
class BufferConfig:
    """
    Configuration for a ring buffer.

    Attributes:
        capacity: Maximum number of values held at once
        dtype: Numpy dtype of the backing array
    """
    capacity: int = 480
    dtype: str = 'float64'


class RingBuffer:
    """
    Fixed-capacity FIFO backed by a numpy array and a head index.

    Values are evicted strictly oldest-first once the buffer is full, so the
    number of stored values never exceeds the configured capacity.
    """

    def __init__(self, config: Optional[BufferConfig] = None):
        """
        Initialize the ring buffer.

        Args:
            config: Buffer configuration (uses default if None)

        Raises:
            ValueError: If capacity is not positive
        """
        self.config = config or BufferConfig()

        if self.config.capacity <= 0:
            raise ValueError("Ring buffer capacity must be positive")

        self._data = np.zeros(self.config.capacity, dtype=self.config.dtype)
        self._head = 0  # index of the oldest value
        self._count = 0

        logging.debug(f"Ring buffer initialized with capacity: {self.config.capacity}")

    @property
    def capacity(self) -> int:
        return self.config.capacity

    def __len__(self) -> int:
        return self._count

    def is_full(self) -> bool:
        return self._count == self.config.capacity

    def append(self, value: float) -> None:
        """
        Append a single value, evicting the oldest one when full.

        Args:
            value: Value to store
        """
        tail = (self._head + self._count) % self.config.capacity
        self._data[tail] = value

        if self._count < self.config.capacity:
            self._count += 1
        else:
            self._head = (self._head + 1) % self.config.capacity

    def extend(self, values: np.ndarray) -> None:
        """
        Append a block of values in order, evicting the oldest overflow.

        Args:
            values: Values to store, oldest first
        """
        values = np.asarray(values, dtype=self.config.dtype).ravel()
        n = len(values)
        if n == 0:
            return

        capacity = self.config.capacity
        if n >= capacity:
            # Only the newest `capacity` values survive
            self._data[:] = values[-capacity:]
            self._head = 0
            self._count = capacity
            return

        tail = (self._head + self._count) % capacity
        first = min(n, capacity - tail)
        self._data[tail:tail + first] = values[:first]
        self._data[:n - first] = values[first:]

        overflow = max(0, self._count + n - capacity)
        self._head = (self._head + overflow) % capacity
        self._count = min(capacity, self._count + n)

    def to_array(self) -> np.ndarray:
        """
        Get stored values in arrival order.

        Returns:
            Copy of stored values, oldest first
        """
        idx = (self._head + np.arange(self._count)) % self.config.capacity
        return self._data[idx]

    def latest(self, num_values: int) -> np.ndarray:
        """
        Get the most recent values in arrival order.

        Args:
            num_values: Number of recent values to retrieve

        Returns:
            Up to `num_values` most recent values, oldest first
        """
        num_values = max(0, min(num_values, self._count))
        start = self._head + self._count - num_values
        idx = (start + np.arange(num_values)) % self.config.capacity
        return self._data[idx]

    def last(self) -> Optional[float]:
        """Most recent value, or None when empty."""
        if self._count == 0:
            return None
        tail = (self._head + self._count - 1) % self.config.capacity
        return self._data[tail].item()

    def clear(self) -> None:
        """Drop all stored values."""
        self._head = 0
        self._count = 0
