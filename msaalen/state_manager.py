from enum import Enum
from typing import List, Tuple, Union, Optional
import numpy as np

STATES = ["Healthy", "Relapsed", "Dead"]


class Transition(Enum):
    """The three transitions of the illness-death process (1-based states)"""

    RELAPSE = (1, 2)
    DIRECT_DEATH = (1, 3)
    DEATH_AFTER_RELAPSE = (2, 3)

    @property
    def from_state(self) -> int:
        return self.value[0]

    @property
    def to_state(self) -> int:
        return self.value[1]

    @property
    def label(self) -> str:
        return f"{self.value[0]}->{self.value[1]}"

    def __str__(self) -> str:
        return self.label

    @classmethod
    def parse(cls, value: Union["Transition", str, Tuple[int, int]]) -> "Transition":
        """
        Parse a transition from an enum member, a label such as ``"1->2"``
        or a ``(from_state, to_state)`` tuple

        Raises
        ------
        ValueError
            If the value does not name one of the three transitions
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if value.replace(" ", "") in (member.label, member.name):
                    return member
            raise ValueError(f"Invalid transition label: {value}")
        try:
            return cls(tuple(int(v) for v in value))
        except (TypeError, ValueError):
            raise ValueError(f"Invalid transition: {value}")


class StateManager:
    """Manage state indices and transitions of the illness-death process"""

    def __init__(self, states: Optional[List[str]] = None,
                 transitions: Optional[List[Transition]] = None):
        """
        Initialize state manager

        Parameters
        ----------
        states : list of str, optional
            State names in state order (1-based externally), defaults to
            Healthy, Relapsed, Dead
        transitions : list of Transition, optional
            Valid transitions, defaults to all three
        """
        self.states = list(states) if states is not None else list(STATES)
        self.transitions = list(transitions) if transitions is not None else list(Transition)

        # 0-based internally, 1-based state numbers externally
        self._state_to_idx = {state: i for i, state in enumerate(self.states)}
        self._idx_to_state = {i: state for i, state in enumerate(self.states)}

        self._validate_transitions()

    def _validate_transitions(self) -> None:
        """Validate transition definitions"""
        n_states = len(self.states)
        for transition in self.transitions:
            from_state, to_state = transition.value
            if from_state > n_states or to_state > n_states:
                raise ValueError(f"Invalid transition {transition}: state out of range")

    def to_internal_index(self, state: Union[str, int]) -> int:
        """
        Convert a state name or 1-based state number to a 0-based index

        Raises
        ------
        ValueError
            If state is invalid
        """
        if isinstance(state, str):
            if state not in self._state_to_idx:
                raise ValueError(f"Invalid state name: {state}")
            return self._state_to_idx[state]
        elif isinstance(state, (int, np.integer)):
            idx = int(state) - 1
            if idx not in self._idx_to_state:
                raise ValueError(f"Invalid state number: {state}")
            return idx
        else:
            raise ValueError("State must be string or integer")

    def to_external_state(self, idx: int) -> str:
        """Convert a 0-based index to its state name"""
        if idx not in self._idx_to_state:
            raise ValueError(f"Invalid state index: {idx}")
        return self._idx_to_state[idx]

    def transitions_from(self, state: Union[str, int]) -> List[Transition]:
        """Transitions leaving a state; their hazards sum to the total exit hazard"""
        number = self.to_internal_index(state) + 1
        return [t for t in self.transitions if t.from_state == number]

    def competing_transitions(self, transition: Union[Transition, str]) -> List[Transition]:
        """All transitions sharing the origin state of ``transition``, itself included"""
        transition = Transition.parse(transition)
        return self.transitions_from(transition.from_state)

    def validate_transition(self, from_state: Union[str, int], to_state: Union[str, int]) -> bool:
        try:
            from_number = self.to_internal_index(from_state) + 1
            to_number = self.to_internal_index(to_state) + 1
        except ValueError:
            return False
        return any(t.value == (from_number, to_number) for t in self.transitions)

    def is_absorbing_state(self, state: Union[str, int]) -> bool:
        return not self.transitions_from(state)

    def get_absorbing_states(self) -> List[int]:
        """1-based numbers of all absorbing states"""
        return [i + 1 for i in range(len(self.states)) if self.is_absorbing_state(i + 1)]

    def validate_state_sequence(self, sequence: List[Union[str, int]]) -> bool:
        """
        Validate a sequence of states such as ``[1, 2, 3]``

        Returns
        -------
        bool
            True if every consecutive pair is a valid transition
        """
        if len(sequence) < 2:
            return True
        for current, following in zip(sequence[:-1], sequence[1:]):
            if not self.validate_transition(current, following):
                return False
        return True