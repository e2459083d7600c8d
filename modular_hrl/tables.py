from __future__ import annotations

from typing import Dict, Hashable, Iterable, Optional, Sequence

import numpy as np

from .errors import ConfigurationError, UnreachableStateError


class QTable:
    """Tabular action values, one float64 row per state.

    Closed tables are pre-allocated over an enumeration and reject any other
    state. Open tables (states=None) create rows on first touch.
    """

    def __init__(self, actions: Sequence, states: Optional[Iterable[Hashable]] = None,
                 initial_value: float = 0.0, name: str = "table"):
        self.actions = tuple(actions)
        if not self.actions:
            raise ConfigurationError(f"{name}: empty action set")
        self.initial_value = float(initial_value)
        self.name = name
        self.closed = states is not None
        self._rows: Dict[Hashable, np.ndarray] = {}
        self._touched = set()
        if self.closed:
            for s in states:
                self._rows[s] = self._fresh_row()
            if not self._rows:
                raise ConfigurationError(f"{name}: empty state set")

    def _fresh_row(self) -> np.ndarray:
        return np.full(len(self.actions), self.initial_value, dtype=np.float64)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, state) -> bool:
        return state in self._rows

    def row(self, state) -> np.ndarray:
        try:
            return self._rows[state]
        except KeyError:
            if self.closed:
                raise UnreachableStateError(state, self.name) from None
        row = self._rows[state] = self._fresh_row()
        return row

    def values(self, state) -> np.ndarray:
        return self.row(state).copy()

    def get(self, state, action_index: int) -> float:
        return float(self.row(state)[action_index])

    def max(self, state) -> float:
        return float(self.row(state).max())

    def greedy(self, state) -> int:
        return int(np.argmax(self.row(state)))

    def td_update(self, state, action_index: int, reward: float, next_state,
                  alpha: float, gamma: float, terminal: bool = False) -> float:
        """Q[s,a] += alpha * (r + gamma * max Q[s'] - Q[s,a]); returns the change applied."""
        row = self.row(state)
        target = float(reward)
        if not terminal:
            target += gamma * self.max(next_state)
        delta = alpha * (target - row[action_index])
        row[action_index] += delta
        self._touched.add((state, action_index))
        return float(delta)

    @property
    def visited(self) -> int:
        """Number of distinct (state, action) pairs updated so far."""
        return len(self._touched)

    def was_updated(self, state, action_index: int) -> bool:
        return (state, action_index) in self._touched

    def snapshot(self) -> Dict[Hashable, np.ndarray]:
        return {s: row.copy() for s, row in self._rows.items()}

    def as_array(self, states: Sequence) -> np.ndarray:
        return np.stack([self.row(s) for s in states])
