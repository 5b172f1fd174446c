"""Hunt plan matching service.

Evaluates one parsed load against every hunt plan and returns a candidate per
plan that passes both criteria:

  1. Vehicle: the plan's vehicle size equals the load's vehicle type.
  2. Geography: the load's pickup origin lies within the plan's pickup radius
     of the plan's hunt coordinates (boundary inclusive).

Design decisions:
- Matching is binary.  ``match_score`` is always 1 and is kept only so the
  persisted shape can grow a graded score later.
- Vehicle comparison is exact.  Aliases such as "LIFT GATE" are resolved
  upstream through the vehicle-type mapping table, not here.
- A plan listing several sizes (JSON array string or list) matches when any
  listed size is exactly equal.
- A plan with no radius uses ``settings.DEFAULT_PICKUP_RADIUS_MILES``; a plan
  whose radius is present but unusable is skipped.
- One bad plan never aborts the evaluation of the others.
- Fan-out is intentional: the same load may match many plans, including
  several plans of the same vehicle.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from load_hunter.core.config import settings
from load_hunter.logic.geo import Coordinates, within_radius

logger = logging.getLogger(__name__)

MATCH_SCORE = 1


@dataclass(frozen=True)
class MatchCandidate:
    load_id: str | None
    hunt_plan_id: Any
    vehicle_id: Any
    distance_miles: float
    match_score: int = MATCH_SCORE
    is_active: bool = True

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


# ── Plan field helpers ─────────────────────────────────────────────────────────

def _plan_sizes(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [item for item in raw if isinstance(item, str) and item]
    if not isinstance(raw, str) or not raw:
        return []
    if raw.lstrip().startswith("["):
        try:
            decoded = json.loads(raw)
        except ValueError:
            return [raw]
        if isinstance(decoded, list):
            return [item for item in decoded if isinstance(item, str) and item]
    return [raw]


def _vehicle_matches(plan_size: Any, load_vehicle: str | None) -> bool:
    if not load_vehicle:
        return False
    return any(size == load_vehicle for size in _plan_sizes(plan_size))


def _plan_radius(raw: Any) -> float | None:
    """Radius in miles, the default when unset, or None when unusable."""
    if raw is None:
        return float(settings.DEFAULT_PICKUP_RADIUS_MILES)
    if isinstance(raw, bool):
        return None
    try:
        radius = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(radius) or radius < 0:
        return None
    return radius


# ── Main evaluation ────────────────────────────────────────────────────────────

def _evaluate_plan(load: Any, load_origin: Coordinates, plan: Any) -> MatchCandidate | None:
    if not getattr(plan, "enabled", False):
        return None

    # ── Criterion 1: Vehicle ───────────────────────────────────────────────────
    if not _vehicle_matches(getattr(plan, "vehicle_size", None), getattr(load, "vehicle_type", None)):
        return None

    # ── Criterion 2: Geography ─────────────────────────────────────────────────
    hunt_coords = Coordinates.from_value(getattr(plan, "hunt_coordinates", None))
    if hunt_coords is None:
        logger.debug("hunt_matching: plan=%s has no usable coordinates", getattr(plan, "id", None))
        return None
    radius = _plan_radius(getattr(plan, "pickup_radius", None))
    if radius is None:
        logger.debug("hunt_matching: plan=%s has an invalid radius", getattr(plan, "id", None))
        return None

    geo = within_radius(load_origin, hunt_coords, radius)
    if not geo.matched or geo.distance_miles is None:
        return None

    return MatchCandidate(
        load_id=getattr(load, "load_id", None),
        hunt_plan_id=plan.id,
        vehicle_id=plan.vehicle_id,
        distance_miles=geo.distance_miles,
    )


def evaluate_load(
    load: Any,
    load_origin: Coordinates | dict | None,
    plans: Iterable[Any],
) -> list[MatchCandidate]:
    """Return one candidate per hunt plan the load satisfies.

    ``load_origin`` is the geocoded pickup location; when it is missing no
    geographic evaluation is possible and the result is empty.
    """
    origin = Coordinates.from_value(load_origin)
    if origin is None:
        return []

    candidates: list[MatchCandidate] = []
    for plan in plans:
        try:
            candidate = _evaluate_plan(load, origin, plan)
        except Exception:
            logger.exception("hunt_matching: plan=%s could not be evaluated", getattr(plan, "id", None))
            continue
        if candidate is not None:
            candidates.append(candidate)
    return candidates
