from __future__ import annotations

from typing import Sequence

from ..models import AreaRecord, ValidationIssue
from .geo_boundary import GeoBoundary
from .geodesy import haversine_m


def validate_areas(
    areas: Sequence[AreaRecord],
    boundary: GeoBoundary,
    min_exploration_distance_m: float = 100.0,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen_ids: set[str] = set()

    for index, area in enumerate(areas):
        if area.id in seen_ids:
            issues.append(
                ValidationIssue(
                    code="duplicate_area_id",
                    severity="error",
                    message=f"Area id {area.id} appears more than once",
                    details={"index": index},
                )
            )
        seen_ids.add(area.id)

        if not boundary.is_inside_territory(area.center.latitude, area.center.longitude):
            issues.append(
                ValidationIssue(
                    code="outside_territory",
                    severity="warning",
                    message=f"Area {area.id} is centred outside the territory",
                    details={"latitude": area.center.latitude, "longitude": area.center.longitude},
                )
            )

        if index > 0 and area.timestamp < areas[index - 1].timestamp:
            issues.append(
                ValidationIssue(
                    code="timestamp_out_of_order",
                    severity="warning",
                    message=f"Area {area.id} is older than the area recorded before it",
                    details={"index": index},
                )
            )

    for i in range(len(areas)):
        for j in range(i + 1, len(areas)):
            a = areas[i]
            b = areas[j]
            distance = haversine_m(a.center.latitude, a.center.longitude, b.center.latitude, b.center.longitude)
            if distance < min_exploration_distance_m:
                issues.append(
                    ValidationIssue(
                        code="areas_too_close",
                        severity="warning",
                        message=f"Areas {a.id} and {b.id} are closer than {min_exploration_distance_m:.0f}m",
                        details={"distanceM": round(distance, 2)},
                    )
                )

    return issues


def summarize_issue_severity(issues: Sequence[ValidationIssue]) -> dict[str, int]:
    summary = {"error": 0, "warning": 0}
    for issue in issues:
        summary[issue.severity] = summary.get(issue.severity, 0) + 1
    return summary
