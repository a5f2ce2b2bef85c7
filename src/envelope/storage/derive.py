"""Pure functions over the event log. No I/O, no database."""
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from envelope.utils.dataModels import ActiveVariable, VariableEvent


def current_values(events: Iterable[VariableEvent]) -> List[ActiveVariable]:
    """Fold the log into the current active variables.

    events must be in insertion order: among rows sharing a created_at the
    later one wins, the same rule the database applies with its row id.
    """
    latest: Dict[Tuple[str, str], VariableEvent] = {}
    for event in events:
        slot = (event.env, event.key)
        seen = latest.get(slot)
        if seen is None or event.created_at >= seen.created_at:
            latest[slot] = event
    return [
        ActiveVariable(e.env, e.key, e.value, e.created_at)
        for (_, _), e in sorted(latest.items())
        if e.value is not None
    ]


def active_environments(variables: Iterable[ActiveVariable], environ: Mapping[str, str]) -> Set[str]:
    """Environments whose every variable is exported with the same value in environ."""
    matching: Set[str] = set()
    mismatched: Set[str] = set()
    for var in variables:
        if var.env in mismatched:
            continue
        if environ.get(var.key) == var.value:
            matching.add(var.env)
        else:
            mismatched.add(var.env)
    return matching - mismatched
