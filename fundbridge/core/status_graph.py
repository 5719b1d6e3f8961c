# fundbridge/core/status_graph.py
from fundbridge.models.enums import ProjectStatus

# Forward-only project lifecycle. Only an explicit operator `force` on a
# bridge action may step outside it.
ALLOWED_STATUS_TRANSITIONS = {
    ProjectStatus.DRAFT: {
        ProjectStatus.FUNDING,
        ProjectStatus.GOAL_ACHIEVED,
    },

    ProjectStatus.FUNDING: {
        ProjectStatus.GOAL_ACHIEVED,
    },

    ProjectStatus.GOAL_ACHIEVED: {
        ProjectStatus.BRIDGED,
    },

    ProjectStatus.BRIDGED: {
        ProjectStatus.DISTRIBUTED,
    },

    ProjectStatus.DISTRIBUTED: set(),
}


def can_transition(current: str, target: str) -> bool:
    try:
        cur = ProjectStatus(current)
    except ValueError:
        return False
    return ProjectStatus(target) in ALLOWED_STATUS_TRANSITIONS[cur]


def sources_for(target: ProjectStatus) -> list[str]:
    """Statuses from which `target` is reachable in one step."""
    return [s.value for s, nxt in ALLOWED_STATUS_TRANSITIONS.items() if target in nxt]
