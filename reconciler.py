"""
Reconciler - Keeps at most one configured presentation source active

Every pass reads the device state from scratch, picks the highest priority
source that has signal, stops everything else and starts that source if it
is not already presenting. No state is kept between passes.
"""

import logging
from enum import Enum
from typing import AbstractSet, NamedTuple, Optional, Sequence, Tuple

from actions import PresentationActions
from presentation_config import PresentationConfig
from signal_collector import SignalCollector


class Outcome(Enum):
    """Terminal outcome of a reconciliation pass"""
    HALFWAKE = "halfwake"
    NOOP = "noop"
    SWITCH = "switch"


class PresentationPlan(NamedTuple):
    """
    What a pass will do.

    Attributes:
        outcome: HALFWAKE, NOOP or SWITCH
        required_source: Highest priority signaled source, or None
        stop_sources: Active sources to stop, in the order they are stopped
        start_required: Whether the required source must be started
    """
    outcome: Outcome
    required_source: Optional[int] = None
    stop_sources: Tuple[int, ...] = ()
    start_required: bool = False


def select_required_source(priority_order: Sequence[int], signaled: AbstractSet[int]) -> Optional[int]:
    """Return the first source in priority order that has signal"""
    for source in priority_order:
        if source in signaled:
            return source
    return None


def plan_presentation(priority_order: Sequence[int], active: AbstractSet[int],
                      signaled: AbstractSet[int], no_signal_halfwake: bool) -> PresentationPlan:
    """
    Compute the plan for one pass. Pure function of its inputs.

    Args:
        priority_order: Source Identifiers, highest priority first
        active: Sources currently presenting
        signaled: Connectors with an OK signal
        no_signal_halfwake: Enter half-wake when no configured source has signal

    Returns:
        PresentationPlan for the pass
    """
    required = select_required_source(priority_order, signaled)

    if required is None:
        if no_signal_halfwake:
            return PresentationPlan(Outcome.HALFWAKE)
        # Nothing eligible; leave current presentations alone
        return PresentationPlan(Outcome.NOOP)

    stop_sources = tuple(sorted(source for source in active if source != required))
    start_required = required not in active

    if not stop_sources and not start_required:
        return PresentationPlan(Outcome.NOOP, required)
    return PresentationPlan(Outcome.SWITCH, required, stop_sources, start_required)


class Reconciler:
    """Runs reconciliation passes against the device"""

    def __init__(self, collector: SignalCollector, actions: PresentationActions, config: PresentationConfig):
        self.logger = logging.getLogger('Reconciler')
        self.collector = collector
        self.actions = actions
        self.config = config

    def run(self) -> PresentationPlan:
        """
        Run one reconciliation pass.

        Device errors are not caught here; they abort the rest of the pass.

        Returns:
            The plan that was executed
        """
        active = self.collector.collect_active_presentations()
        signaled = self.collector.collect_signaled_connectors()
        priority_order = self.config.priority_order

        self.logger.info("Processing presentation state")
        self.logger.info(f"Presentation sources: {sorted(active)}")
        self.logger.info(f"Source signals: {sorted(signaled)}")
        self.logger.info(f"Presentation source order: {list(priority_order)}")

        plan = plan_presentation(priority_order, active, signaled, self.config.no_signal_halfwake)
        self.execute(plan)
        return plan

    def execute(self, plan: PresentationPlan) -> None:
        """Carry out a plan: stops, then alert, then start"""
        if plan.outcome is Outcome.HALFWAKE:
            self.logger.info("No required sources present, entering half-wake")
            self.actions.enter_halfwake()
            return

        if plan.required_source is None:
            self.logger.info("No required source found")
            return

        self.logger.info(f"Tagging source {plan.required_source} as required")

        for source in plan.stop_sources:
            self.actions.stop_presentation(source)

        if plan.stop_sources:
            self.actions.show_alert()

        if not plan.start_required:
            self.logger.info(f"Source {plan.required_source} already presenting")
            return

        self.actions.start_presentation(plan.required_source)
