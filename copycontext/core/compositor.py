# copycontext/core/compositor.py
import math
from typing import Optional, Sequence

from loguru import logger

from .models import ComposeResult, OutputSegment

def _is_unlimited(limit: Optional[float]) -> bool:
    return limit is None or not math.isfinite(limit) or limit <= 0

def compose(segments: Sequence[OutputSegment], limit: Optional[float] = None) -> ComposeResult:
    """
    Fits segments into a character budget, in order.

    Required segments are sliced in place when they overflow and composition stops there.
    Optional segments are kept whole or dropped; after the first drop every later
    optional segment is dropped too, so content is never backfilled out of order.
    """
    if _is_unlimited(limit):
        return ComposeResult(
            text="".join(s.text for s in segments),
            included_labels=[s.label for s in segments if not s.required and s.label is not None],
        )

    budget = int(limit)
    parts = []
    used = 0
    result = ComposeResult(text="")
    limit_reached = False

    for index, segment in enumerate(segments):
        remaining = budget - used
        if segment.required:
            if len(segment.text) <= remaining:
                parts.append(segment.text); used += len(segment.text)
                continue
            parts.append(segment.text[:max(remaining, 0)]); used += max(remaining, 0)
            result.truncated = True
            if segment.label is not None:
                result.truncated_labels.append(segment.label)
            result.truncated_labels.extend(
                s.label for s in segments[index + 1:] if s.label is not None
            )
            logger.debug(f"Required segment {index} sliced to {max(remaining, 0)} chars; composition stopped.")
            break

        if not limit_reached and len(segment.text) <= remaining:
            parts.append(segment.text); used += len(segment.text)
            if segment.label is not None:
                result.included_labels.append(segment.label)
            continue

        limit_reached = True
        result.truncated = True
        if segment.label is not None:
            result.truncated_labels.append(segment.label)

    result.text = "".join(parts)
    if result.truncated:
        logger.info(f"Output truncated to {used}/{budget} chars; {len(result.truncated_labels)} sections cut.")
    return result
