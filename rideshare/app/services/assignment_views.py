"""
Response builders for routes and assignments.

Route rows may keep stops under either stored field, so every route that
leaves the API is rebuilt from the normalized stop sequence here.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.core.config import settings
from rideshare.app.domain.progress.progress_service import ProgressService
from rideshare.app.domain.routes.stop_sequence import SequenceStop, full_stop_sequence, resolve_stops
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.schemas.assignment import AssignmentDetailResponse, AssignmentResponse, CompletedStopResponse
from rideshare.app.schemas.route_template import (
    RouteTemplateResponse, SequenceStopResponse, StopPointResponse
)


def sequence_stop_view(stop: SequenceStop) -> SequenceStopResponse:
    return SequenceStopResponse(
        index=stop.index,
        id=stop.id,
        kind=stop.kind,
        name=stop.name,
        lat=stop.lat,
        lng=stop.lng,
        order=stop.order,
    )


def build_route_view(route: RouteTemplate) -> RouteTemplateResponse:
    stops = sorted(resolve_stops(route), key=lambda stop: stop.order)
    sequence = full_stop_sequence(route)
    return RouteTemplateResponse(
        id=route.id,
        name=route.name,
        description=route.description,
        start_name=route.start_name,
        start_lat=route.start_lat,
        start_lng=route.start_lng,
        end_name=route.end_name,
        end_lat=route.end_lat,
        end_lng=route.end_lng,
        stops=[
            StopPointResponse(name=s.name, lat=s.lat, lng=s.lng, order=s.order)
            for s in stops
        ],
        stop_sequence=[sequence_stop_view(s) for s in sequence],
        total_stops=len(sequence),
        estimated_time=route.estimated_time,
        fare=route.fare,
        active=route.active,
        created_at=route.created_at,
        updated_at=route.updated_at,
    )


async def build_assignment_detail(db: AsyncSession, assignment: Assignment) -> AssignmentDetailResponse:
    """Progress view: assignment, completed stops, next stop and its route."""
    route = await ProgressService.load_route(db, assignment.route_id)
    completed = await ProgressService.get_completed_stops(db, assignment.id)
    next_stop = ProgressService.next_stop(assignment, route)
    route_view = build_route_view(route)
    
    base = AssignmentResponse.model_validate(assignment).model_dump()
    return AssignmentDetailResponse(
        **base,
        total_stops=route_view.total_stops,
        completed_stops=[CompletedStopResponse.model_validate(c) for c in completed],
        next_stop=sequence_stop_view(next_stop) if next_stop else None,
        poll_interval_seconds=settings.progress_poll_interval_seconds,
        route=route_view,
    )
