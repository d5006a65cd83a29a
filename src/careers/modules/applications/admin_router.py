"""
Applications Admin Router

API endpoints for recruiters to review and decide applications.

Endpoints:
- GET /admin/applications - Merged list across all sources
- GET /admin/applications/stats - Dashboard counts
- GET /admin/applications/{source} - List one source
- GET /admin/applications/{source}/{application_id}?partition= - Application details
- PUT /admin/applications/{source}/{application_id}/status?partition= - Accept or reject

Query and path values are passed through as strings and validated by the
services, so malformed input is reported as a 400 VALIDATION_ERROR before
any lookup happens.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from careers.core.config import settings
from careers.core.database import async_session_maker, get_db
from careers.modules.applications.aggregation import AggregationQueryService
from careers.modules.applications.exceptions import ApplicationServiceError
from careers.modules.applications.lifecycle import LifecycleController
from careers.modules.applications.notifications import NullNotifier, TransitionNotifier
from careers.modules.applications.schemas import (
    Application,
    ApplicationListResponse,
    ApplicationStats,
    StatusUpdateRequest,
    StatusUpdateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Dependencies
# ============================================


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory used for the per-partition listing sessions."""
    return async_session_maker


def get_aggregation_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AggregationQueryService:
    return AggregationQueryService(
        session_factory,
        timeout_seconds=settings.partition_query_timeout_seconds,
    )


def get_notifier(request: Request) -> TransitionNotifier:
    """The dispatcher started in the app lifespan, or a logging no-op."""
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        return NullNotifier()
    return notifier


def get_lifecycle_controller(
    notifier: TransitionNotifier = Depends(get_notifier),
) -> LifecycleController:
    return LifecycleController(notifier)


# ============================================
# Helper Functions
# ============================================


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


async def _list(
    service: AggregationQueryService,
    source: str | None,
    status_filter: str | None,
    sort_by: str,
    sort_order: str,
) -> ApplicationListResponse:
    result = await service.list_applications(
        source=source,
        status=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApplicationListResponse(
        applications=result.applications,
        total=len(result.applications),
        unavailable_sources=result.unavailable_partitions,
    )


# ============================================
# List & Stats Endpoints
# ============================================


@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List Applications",
    description="""
Get the merged list of applications from every intake channel.

**Filters:**
- `source`: job_opening, internship, pfe or spontaneous
- `status`: pending, accepted or rejected

**Sorting:**
- `sort_by`: submitted_at, score, degree or name. Default: submitted_at
- `sort_order`: asc or desc. Default: desc (newest first)

A storage partition that cannot be queried is left out and named in
`unavailable_sources`; the request still succeeds.
""",
    responses={
        200: {
            "description": "Merged list of applications",
            "model": ApplicationListResponse,
        },
        400: {
            "description": "Invalid filter or sort parameter",
        },
    },
)
async def list_applications(
    source: str | None = Query(None, description="Filter by application source"),
    status_filter: str | None = Query(None, alias="status", description="Filter by status"),
    sort_by: str = Query("submitted_at", description="Field to sort by"),
    sort_order: str = Query("desc", description="Sort direction (asc/desc)"),
    service: AggregationQueryService = Depends(get_aggregation_service),
) -> ApplicationListResponse:
    """List applications across all sources."""
    try:
        return await _list(service, source, status_filter, sort_by, sort_order)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing applications: {e}")
        raise _internal_error() from e


@router.get(
    "/stats",
    response_model=ApplicationStats,
    summary="Get Dashboard Statistics",
    description="""
Counts of applications by source and by status, plus the mean competence
score. Partitions that could not be queried are listed in
`unavailable_sources` and are not counted.
""",
)
async def get_stats(
    service: AggregationQueryService = Depends(get_aggregation_service),
) -> ApplicationStats:
    try:
        return await service.get_stats()
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error getting dashboard stats: {e}")
        raise _internal_error() from e


@router.get(
    "/{source}",
    response_model=ApplicationListResponse,
    summary="List Applications for One Source",
    responses={
        400: {
            "description": "Unknown source or invalid parameter",
        },
    },
)
async def list_source_applications(
    source: str,
    status_filter: str | None = Query(None, alias="status", description="Filter by status"),
    sort_by: str = Query("submitted_at", description="Field to sort by"),
    sort_order: str = Query("desc", description="Sort direction (asc/desc)"),
    service: AggregationQueryService = Depends(get_aggregation_service),
) -> ApplicationListResponse:
    """List the applications of a single source."""
    try:
        return await _list(service, source, status_filter, sort_by, sort_order)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing {source} applications: {e}")
        raise _internal_error() from e


# ============================================
# Detail & Decision Endpoints
# ============================================


@router.get(
    "/{source}/{application_id}",
    response_model=Application,
    summary="Get Application Details",
    responses={
        400: {
            "description": "Unknown source or malformed id",
        },
        404: {
            "description": "Application not found",
        },
        409: {
            "description": "Id held by several partitions; pass `partition`",
        },
    },
)
async def get_application(
    source: str,
    application_id: str,
    partition: str | None = Query(
        None, description="Storage partition, from the listed application's `partition`"
    ),
    service: AggregationQueryService = Depends(get_aggregation_service),
) -> Application:
    try:
        return await service.get_application(source, application_id, partition)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error getting application {source}/{application_id}: {e}")
        raise _internal_error() from e


@router.put(
    "/{source}/{application_id}/status",
    response_model=StatusUpdateResponse,
    summary="Accept or Reject Application",
    description="""
Decide a pending application.

**Requirements:**
- Application must be in `pending` status
- `status` must be `accepted` or `rejected`
- `partition` (query) selects the storage partition when the source and id
  match rows in more than one; use the `partition` of the listed application

**Actions:**
1. Stores the new status (only if the application is still pending)
2. Queues the acceptance or rejection email for the applicant

The email is sent in the background; a delivery failure does not undo the
decision.
""",
    responses={
        200: {
            "description": "Application decided",
            "model": StatusUpdateResponse,
        },
        400: {
            "description": "Unknown source, malformed id or invalid target status",
        },
        404: {
            "description": "Application not found",
        },
        409: {
            "description": "Application already decided, or id held by several partitions",
        },
    },
)
async def update_application_status(
    source: str,
    application_id: str,
    request: StatusUpdateRequest,
    partition: str | None = Query(
        None, description="Storage partition, from the listed application's `partition`"
    ),
    db: AsyncSession = Depends(get_db),
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> StatusUpdateResponse:
    try:
        application = await controller.transition(
            db, source, application_id, request.status, partition
        )

        logger.info(
            f"Application {application.source.value}/{application.id} "
            f"set to {application.status.value}"
        )

        return StatusUpdateResponse(
            application=application,
            message=f"Application {application.status.value}. "
            "The applicant will be notified by email.",
        )

    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating application {source}/{application_id}: {e}")
        raise _internal_error() from e
