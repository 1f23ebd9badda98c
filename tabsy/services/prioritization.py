"""
Task urgency scoring.

One scoring function for every call site:

    score = 50
          + 40 if due in < 2h, + 30 if < 6h, + 20 if < 24h
          + 10 for high priority, - 10 for low priority
    clamped to [0, 100]

Tasks without a due date are treated as due in 7 days (no time bonus).
Overdue tasks count as due in < 2h.
"""

from datetime import datetime, timedelta

BASE_SCORE = 50
NO_DUE_DATE_HORIZON = timedelta(days=7)

# (hours until due strictly below, bonus), checked in order
DUE_BONUSES = [
    (2, 40),
    (6, 30),
    (24, 20),
]

PRIORITY_ADJUSTMENT = {
    "high": 10,
    "medium": 0,
    "low": -10,
}

IMMEDIATE_ATTENTION_SCORE = 70


def hours_until_due(task, now: datetime) -> float:
    due = task.due_date if task.due_date is not None else now + NO_DUE_DATE_HORIZON
    return (due - now).total_seconds() / 3600


def score(task, now: datetime) -> int:
    """
    Urgency score of a task in [0, 100].

    Args:
        task: Anything with `priority` and `due_date` attributes
        now: Reference time (naive UTC)
    """
    value = BASE_SCORE

    hours = hours_until_due(task, now)
    for limit, bonus in DUE_BONUSES:
        if hours < limit:
            value += bonus
            break

    value += PRIORITY_ADJUSTMENT.get(task.priority, 0)

    return max(0, min(100, value))


def recommendation(urgency: int) -> str:
    if urgency >= 80:
        return "Do immediately"
    if urgency >= 60:
        return "Schedule in next 2 hours"
    if urgency >= 40:
        return "Can wait until afternoon"
    return "Low priority - schedule when available"


def prioritize(tasks: list, now: datetime) -> list[tuple[object, int]]:
    """
    Rank tasks by urgency, highest first.

    The sort is stable: equal scores keep the order the tasks came in
    (the task store returns high→low priority, then earliest due date,
    then newest first).

    Returns:
        List of (task, score) pairs
    """
    scored = [(task, score(task, now)) for task in tasks]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


def summarize(ranked: list[tuple[object, int]]) -> str:
    """One-line overview of a ranked task list."""
    if not ranked:
        return "No active tasks found."

    urgent = sum(1 for _, urgency in ranked if urgency >= IMMEDIATE_ATTENTION_SCORE)
    focus = ", ".join(task.title for task, _ in ranked[:3])
    return (
        f"You have {len(ranked)} active task(s). "
        f"{urgent} require immediate attention. Focus on: {focus}"
    )
