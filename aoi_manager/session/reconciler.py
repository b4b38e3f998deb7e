"""AOI reconciliation state machine.

Arbitrates between the persisted, drawn and uploaded boundary candidates
and owns the choice of the authoritative boundary.

States::

    Empty
    SingleCandidate(candidate)                  authoritative, no decision taken
    AwaitingOverrideDecision(existing, incoming)
    AwaitingChoiceDecision(drawn, uploaded)
    Resolved(candidate)                         authoritative after a change

Transitions:

- ``Empty + candidate -> SingleCandidate``; the candidate is authoritative
  at once (no confirmation on a blank slate).
- authoritative ``persisted`` + drawn/uploaded ``-> AwaitingOverrideDecision``.
  Confirm makes the incoming candidate authoritative; cancel keeps the
  persisted one and discards the incoming one.
- authoritative ``drawn`` + uploaded (or vice versa)
  ``-> AwaitingChoiceDecision``. Choosing one discards the other.
- authoritative of the same kind as the incoming candidate: the new
  candidate replaces it (``Resolved``).
- While a decision is pending, a candidate of a kind already in the
  pending pair replaces that slot; any other kind is rejected.
- ``delete`` returns to ``Empty`` from any state.

This module is the only place that inspects ``CandidateKind``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aoi_manager.core.exceptions import ValidationError
from aoi_manager.models.candidate import AOICandidate, CandidateKind

logger = logging.getLogger(__name__)


class ReconciliationError(ValidationError):
    """Raised for an operation that the current state does not allow."""

    default_stage = "reconciliation"
    default_code = "RECONCILIATION_INVALID"


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Empty:
    """No boundary."""


@dataclass(frozen=True, slots=True)
class SingleCandidate:
    """One candidate, authoritative without any decision."""

    candidate: AOICandidate


@dataclass(frozen=True, slots=True)
class AwaitingOverrideDecision:
    """A saved boundary would be replaced; the user must confirm."""

    existing: AOICandidate
    incoming: AOICandidate


@dataclass(frozen=True, slots=True)
class AwaitingChoiceDecision:
    """A drawn and an uploaded boundary compete; the user must pick one."""

    drawn: AOICandidate
    uploaded: AOICandidate


@dataclass(frozen=True, slots=True)
class Resolved:
    """Authoritative boundary after a replacement or a decision."""

    candidate: AOICandidate


ReconciliationState = (
    Empty | SingleCandidate | AwaitingOverrideDecision | AwaitingChoiceDecision | Resolved
)


@dataclass(frozen=True, slots=True)
class Transition:
    """Outcome of one state-machine operation.

    Attributes:
        state: State after the operation.
        changed: Whether the authoritative candidate changed.
        save: Whether the new authoritative boundary must be handed to the
            persistence collaborator (never for a merely reloaded
            persisted boundary).
    """

    state: ReconciliationState
    changed: bool = False
    save: bool = False

    @property
    def decision_required(self) -> bool:
        return isinstance(self.state, (AwaitingOverrideDecision, AwaitingChoiceDecision))


def authoritative_of(state: ReconciliationState) -> AOICandidate | None:
    """Return the candidate currently in force for *state*.

    During an override decision the persisted boundary stays in force.
    A pending choice has no authoritative candidate of its own; the
    reconciler tracks the one that was in force before the choice began.
    """
    if isinstance(state, (SingleCandidate, Resolved)):
        return state.candidate
    if isinstance(state, AwaitingOverrideDecision):
        return state.existing
    return None


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class AOIReconciler:
    """Holds the candidate set and decides the authoritative boundary."""

    def __init__(self) -> None:
        self._state: ReconciliationState = Empty()
        # Authoritative boundary while an AwaitingChoiceDecision is pending.
        self._choice_incumbent: AOICandidate | None = None

    @property
    def state(self) -> ReconciliationState:
        return self._state

    @property
    def authoritative(self) -> AOICandidate | None:
        if isinstance(self._state, AwaitingChoiceDecision):
            return self._choice_incumbent
        return authoritative_of(self._state)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def load_persisted(self, candidate: AOICandidate) -> Transition:
        """Install a previously saved boundary, discarding any other state."""
        if candidate.kind is not CandidateKind.PERSISTED:
            msg = f"load_persisted expects a persisted candidate, got {candidate.kind.value}"
            raise ReconciliationError(msg)
        previous = self.authoritative
        self._set(SingleCandidate(candidate))
        return Transition(self._state, changed=previous != candidate, save=False)

    def add_candidate(self, candidate: AOICandidate) -> Transition:
        """Offer a freshly drawn or uploaded boundary."""
        if candidate.kind is CandidateKind.PERSISTED:
            msg = "Persisted boundaries enter through load_persisted"
            raise ReconciliationError(msg)

        state = self._state
        if isinstance(state, Empty):
            self._set(SingleCandidate(candidate))
            return Transition(self._state, changed=True, save=True)

        if isinstance(state, (SingleCandidate, Resolved)):
            current = state.candidate
            if current.kind is CandidateKind.PERSISTED:
                self._set(AwaitingOverrideDecision(existing=current, incoming=candidate))
                return Transition(self._state)
            if current.kind is candidate.kind:
                self._set(Resolved(candidate))
                return Transition(self._state, changed=True, save=True)
            self._choice_incumbent = current
            self._set(_choice_pair(current, candidate))
            return Transition(self._state)

        if isinstance(state, AwaitingOverrideDecision):
            if state.incoming.kind is not candidate.kind:
                msg = "Confirm or cancel the pending boundary override before adding another boundary"
                raise ReconciliationError(msg)
            self._set(AwaitingOverrideDecision(existing=state.existing, incoming=candidate))
            return Transition(self._state)

        # AwaitingChoiceDecision: replace the slot of the same kind.
        if candidate.kind is CandidateKind.DRAWN:
            self._set(AwaitingChoiceDecision(drawn=candidate, uploaded=state.uploaded))
        else:
            self._set(AwaitingChoiceDecision(drawn=state.drawn, uploaded=candidate))
        return Transition(self._state)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def confirm_override(self) -> Transition:
        """Replace the persisted boundary with the incoming candidate."""
        state = self._require(AwaitingOverrideDecision, "confirm an override")
        self._set(Resolved(state.incoming))
        return Transition(self._state, changed=True, save=True)

    def cancel_override(self) -> Transition:
        """Keep the persisted boundary and discard the incoming candidate."""
        state = self._require(AwaitingOverrideDecision, "cancel an override")
        self._set(SingleCandidate(state.existing))
        return Transition(self._state)

    def choose(self, kind: CandidateKind) -> Transition:
        """Keep the drawn or the uploaded candidate and discard the other."""
        state = self._require(AwaitingChoiceDecision, "choose between boundaries")
        if kind is CandidateKind.DRAWN:
            chosen = state.drawn
        elif kind is CandidateKind.UPLOADED:
            chosen = state.uploaded
        else:
            msg = f"Can only choose drawn or uploaded, got {kind.value}"
            raise ReconciliationError(msg)
        incumbent = self._choice_incumbent
        self._set(Resolved(chosen))
        changed = incumbent != chosen
        return Transition(self._state, changed=changed, save=changed)

    def delete(self) -> Transition:
        """Remove the boundary (and any pending decision)."""
        previous = self.authoritative
        self._set(Empty())
        return Transition(self._state, changed=previous is not None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, state_type: type, action: str):  # type: ignore[no-untyped-def]
        if not isinstance(self._state, state_type):
            msg = f"Cannot {action} in state {type(self._state).__name__}"
            raise ReconciliationError(msg)
        return self._state

    def _set(self, state: ReconciliationState) -> None:
        if not isinstance(state, AwaitingChoiceDecision):
            self._choice_incumbent = None
        logger.info(
            "AOI state | %s -> %s",
            type(self._state).__name__,
            type(state).__name__,
        )
        self._state = state


def _choice_pair(first: AOICandidate, second: AOICandidate) -> AwaitingChoiceDecision:
    if first.kind is CandidateKind.DRAWN:
        return AwaitingChoiceDecision(drawn=first, uploaded=second)
    return AwaitingChoiceDecision(drawn=second, uploaded=first)
