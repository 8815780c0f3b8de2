from typing import Any, Callable, Optional, Sequence

Rule = Callable[[Any], Any]


def first_match(rules: Sequence[Rule], ctx: Any) -> Optional[Any]:
    """Evaluate extraction rules in priority order; the first non-empty result wins.

    A rule that trips over a missing or oddly typed field counts as no match.
    """
    for rule in rules:
        try:
            value = rule(ctx)
        except (KeyError, IndexError, TypeError, AttributeError):
            continue
        if value:
            return value
    return None


def dig(data: Any, *path) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    cur = data
    for step in path:
        if isinstance(cur, dict):
            cur = cur.get(step)
        elif isinstance(cur, list) and isinstance(step, int) and -len(cur) <= step < len(cur):
            cur = cur[step]
        else:
            return None
        if cur is None:
            return None
    return cur
