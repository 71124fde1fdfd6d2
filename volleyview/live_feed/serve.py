"""
Serve-possession state machine.

The feed only reports points. In volleyball the rally winner serves next,
so "same side scores again" is a point on own serve (break point) and
"the other side scores" is a change of possession (side-out). Given
accurate point deltas this recovers the true serve holder exactly.
"""
from typing import Optional, Tuple

from .models import PlayKind, PlayLabel, ServeState, Serving, ServeUnknown, Side


def advance(
    prior: ServeState,
    side_scored: Optional[Side],
) -> Tuple[ServeState, Optional[PlayLabel]]:
    """
    Apply one poll's scoring delta to the prior serve state.

    | prior          | scored | next              | label            |
    |----------------|--------|-------------------|------------------|
    | any            | none   | unchanged         | none             |
    | Unknown        | S      | Serving(S, cold)  | none (baseline)  |
    | Serving(S, *)  | S      | Serving(S, hot)   | (S, break-point) |
    | Serving(S, *)  | O      | Serving(O, cold)  | (O, side-out)    |
    """
    if side_scored is None:
        return prior, None

    if isinstance(prior, ServeUnknown):
        return Serving(side_scored, hot=False), None

    if prior.side is side_scored:
        return Serving(side_scored, hot=True), PlayLabel(side_scored, PlayKind.BREAK_POINT)

    return Serving(side_scored, hot=False), PlayLabel(side_scored, PlayKind.SIDE_OUT)


__all__ = ["advance"]
