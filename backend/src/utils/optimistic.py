"""
Optimistic update helper.

Applies a value locally before it is persisted, and puts the exact previous
value back if persisting fails, so in-memory state never shows a write the
store rejected.

Usage:
    optimistic_apply(
        get=lambda: record["status"],
        set=lambda v: record.__setitem__("status", v),
        value="in_progress",
        commit=lambda: store.update({"status": "in_progress"}, guid=guid),
    )
"""

from typing import Any, Callable, TypeVar


T = TypeVar("T")


def optimistic_apply(
    get: Callable[[], Any],
    set: Callable[[Any], None],
    value: Any,
    commit: Callable[[], T],
) -> T:
    """
    Set a value, then commit it; on commit failure restore the snapshot.

    Args:
        get: Reads the current value
        set: Writes a value
        value: New value to apply
        commit: Persists the change; its return value is passed through

    Returns:
        Whatever commit returned

    Raises:
        Whatever commit raised, after the previous value has been restored
    """
    snapshot = get()
    set(value)
    try:
        return commit()
    except Exception:
        set(snapshot)
        raise


def optimistic_apply_fields(target: dict, values: dict, commit: Callable[[], T]) -> T:
    """
    Dict form of optimistic_apply for several fields at once.

    Keys absent before the call are removed again on failure.
    """
    missing = object()

    def get_fields() -> dict:
        return {key: target.get(key, missing) for key in values}

    def set_fields(fields: dict) -> None:
        for key, field_value in fields.items():
            if field_value is missing:
                target.pop(key, None)
            else:
                target[key] = field_value

    return optimistic_apply(get_fields, set_fields, dict(values), commit)
