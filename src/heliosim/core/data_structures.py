"""
Bounded history containers for spacecraft state.

Structures
----------
StateHistory -- Fixed-capacity ring buffer backed by pre-allocated NumPy
                arrays.  Used for the spacecraft trajectory trail: appends
                are O(1) and, once full, every append evicts the oldest
                sample (FIFO), so memory use never grows during a run.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


class StateHistory:
    """Fixed-size ring buffer of timestamped state vectors.

    Memory layout
    -------------
    * ``_timestamps`` -- ``float64[capacity]``
    * ``_states``     -- ``float64[capacity, state_dim]``

    ``_head`` is the next write slot and ``_count`` the number of valid
    entries (never more than ``capacity``).  Reads return samples in
    chronological order, oldest first.

    Parameters
    ----------
    capacity : int
        Maximum number of samples retained.
    state_dim : int
        Length of each state vector (3 for a position trail).
    """

    def __init__(self, capacity: int, state_dim: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if state_dim <= 0:
            raise ValueError(f"state_dim must be positive, got {state_dim}")

        self._capacity: int = capacity
        self._state_dim: int = state_dim
        self._timestamps: np.ndarray = np.zeros(capacity, dtype=np.float64)
        self._states: np.ndarray = np.zeros((capacity, state_dim), dtype=np.float64)
        self._head: int = 0
        self._count: int = 0

    # -- write -------------------------------------------------------------

    def append(self, timestamp: float, state: np.ndarray) -> None:
        """Record a sample, overwriting the oldest one when full.

        Raises
        ------
        ValueError
            If ``state`` does not have shape ``(state_dim,)``.
        """
        state = np.asarray(state, dtype=np.float64)
        if state.shape != (self._state_dim,):
            raise ValueError(
                f"Expected state of shape ({self._state_dim},), got {state.shape}"
            )

        self._timestamps[self._head] = timestamp
        self._states[self._head] = state
        self._head = (self._head + 1) % self._capacity
        self._count = min(self._count + 1, self._capacity)

    def clear(self) -> None:
        """Forget every sample without releasing the storage."""
        self._head = 0
        self._count = 0

    # -- read --------------------------------------------------------------

    def get_latest(self, n: int = 1) -> Tuple[np.ndarray, np.ndarray]:
        """Return the ``n`` most recent samples, oldest first."""
        n = min(n, self._count)
        if n <= 0:
            return (np.empty(0, dtype=np.float64),
                    np.empty((0, self._state_dim), dtype=np.float64))

        indices = self._chronological_indices()[-n:]
        return self._timestamps[indices].copy(), self._states[indices].copy()

    def to_array(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return the whole valid history, oldest first."""
        return self.get_latest(self._count)

    @property
    def oldest(self) -> np.ndarray:
        if self._count == 0:
            raise IndexError("history is empty")
        return self._states[self._chronological_indices()[0]].copy()

    @property
    def newest(self) -> np.ndarray:
        if self._count == 0:
            raise IndexError("history is empty")
        return self._states[(self._head - 1) % self._capacity].copy()

    # -- metadata ----------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._count == self._capacity

    def _chronological_indices(self) -> np.ndarray:
        if self._count < self._capacity:
            return np.arange(self._count)
        # wrapped: the oldest sample sits at _head
        return np.roll(np.arange(self._capacity), -self._head)

    def __len__(self) -> int:
        return self._count

    def __repr__(self) -> str:
        return (f"StateHistory(count={self._count}/{self._capacity}, "
                f"dim={self._state_dim})")
