"""Jira status transitions: map a target status name onto a transition id."""

from __future__ import annotations

import logging

from atlcli.common.errors import TransitionNotAvailable
from atlcli.jira.models import Transition

logger = logging.getLogger(__name__)


def resolve_transition(issue_key: str, transitions: list[Transition], target: str) -> Transition:
    """Find the transition that moves an issue to ``target``.

    ``target`` is compared case-insensitively against each transition's own
    name and the name of the status it leads to. Transitions are scanned in
    the order the server listed them and the first match wins.

    Args:
        issue_key: The issue the transitions belong to, for error messages.
        transitions: Transitions available from the issue's current status.
        target: A transition name ("Start Progress") or status name ("In Progress").

    Returns:
        The matching transition.

    Raises:
        TransitionNotAvailable: If nothing matches; lists the transition names.
    """
    wanted = target.casefold()
    for transition in transitions:
        to_name = transition.to.name if transition.to else ""
        if transition.name.casefold() == wanted or to_name.casefold() == wanted:
            logger.debug(f"'{target}' on {issue_key} resolved to transition {transition.id} ({transition.name})")
            return transition

    raise TransitionNotAvailable(issue_key, target, [t.name for t in transitions])
