from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
import logging

from api.schemas import (
    ActivityView,
    CompareRequest,
    ComparisonView,
    FilterUpdate,
    HistoryView,
    IntegrationsView,
    IntegrationUpdate,
    PageRequest,
    ScanJobView,
    ScanSubmitRequest,
    SortRequest,
)
from engine.errors import AnalysisError
from engine.models import IntegrationTarget
from engine.scan_service import ScanService

router = APIRouter()


def get_scan_service(request: Request) -> ScanService:
    return request.app.state.scan_service


def _job_view(service: ScanService, job) -> ScanJobView:
    return ScanJobView.from_job(job, selected=service.query.is_selected(job.id))


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.post(
    "/scan",
    summary="Submit a contract scan",
    response_description="The scan job as recorded at submission (or at completion with wait=true)",
    tags=["Scan Jobs"],
    response_model=ScanJobView,
    responses={
        200: {"description": "Job submitted"},
        400: {"description": "Empty contract address"},
        502: {"description": "Audit service failed (wait=true only)"},
    },
)
async def submit_scan(request: ScanSubmitRequest, service: ScanService = Depends(get_scan_service)):
    """
    Submit a scan for a contract address. The analysis runs in the background
    unless `wait` is set, in which case a failed analysis answers 502 once.
    """
    job = service.job_manager.submit(request.address)
    if job is None:
        raise HTTPException(status_code=400, detail="Contract address must not be empty")
    if request.wait:
        try:
            job = await service.job_manager.wait(job.id)
        except AnalysisError as e:
            logging.error(f"[job_id={job.id}] Scan failed for {request.address}: {e}")
            return JSONResponse(
                status_code=502,
                content={
                    "success": False,
                    "job_id": job.id,
                    "error": "The scan failed. Please check the contract address and try again.",
                    "detail": str(e),
                },
            )
    return _job_view(service, job)


@router.get(
    "/scan/job/{job_id}",
    summary="Get scan job status and result",
    tags=["Scan Jobs"],
    response_model=ScanJobView,
    responses={404: {"description": "Job not found"}},
)
def get_scan_job_status(job_id: str, service: ScanService = Depends(get_scan_service)):
    return _job_view(service, service.job_manager.get(job_id))


@router.get(
    "/scan/history",
    summary="Current page of the scan history",
    response_description="Filtered, sorted and paginated scan jobs",
    tags=["Scan History"],
    response_model=HistoryView,
)
def get_scan_history(service: ScanService = Depends(get_scan_service)):
    """
    Scan jobs matching the active filters, in the active sort order, for the current page.
    """
    query = service.query
    page = query.page(service.job_manager.list_jobs())
    return HistoryView(
        items=[_job_view(service, job) for job in page.items],
        page=page.page,
        page_size=page.page_size,
        page_count=page.page_count,
        total=page.total,
        sort_key=query.sort_key.value,
        sort_direction=query.sort_direction.value,
        selected_ids=sorted(query.selected_ids),
    )


@router.put("/scan/history/filters", tags=["Scan History"], response_model=HistoryView)
def update_filters(update: FilterUpdate, service: ScanService = Depends(get_scan_service)):
    """
    Update any subset of the filters. Changing filters returns to page 1.
    """
    query = service.query
    try:
        if update.address is not None:
            query.set_filter_address(update.address)
        if update.status is not None:
            query.set_filter_status(update.status)
        if update.severity is not None:
            query.set_filter_severity(update.severity)
        fields = update.model_fields_set
        if "start_date" in fields or "end_date" in fields:
            query.set_date_range(update.start_date, update.end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return get_scan_history(service)


@router.post("/scan/history/sort", tags=["Scan History"], response_model=HistoryView)
def request_sort(request: SortRequest, service: ScanService = Depends(get_scan_service)):
    service.query.request_sort(request.key)
    return get_scan_history(service)


@router.put("/scan/history/page", tags=["Scan History"], response_model=HistoryView)
def set_page(request: PageRequest, service: ScanService = Depends(get_scan_service)):
    service.query.set_page(request.page)
    return get_scan_history(service)


@router.post("/scan/selection/{job_id}", tags=["Scan Comparison"])
def toggle_selection(job_id: str, service: ScanService = Depends(get_scan_service)):
    selected = service.toggle_selection(job_id)
    return {"job_id": job_id, "selected": selected}


@router.get("/scan/selection", tags=["Scan Comparison"])
def get_selection(service: ScanService = Depends(get_scan_service)):
    return {"selected_ids": sorted(service.query.selected_ids)}


@router.delete("/scan/selection", tags=["Scan Comparison"])
def clear_selection(service: ScanService = Depends(get_scan_service)):
    service.query.clear_selection()
    return {"selected_ids": []}


@router.post(
    "/scan/compare",
    summary="Compare completed scans against a baseline",
    tags=["Scan Comparison"],
    response_model=list[ComparisonView],
    responses={400: {"description": "Fewer than two completed scans"}},
)
def compare_scans(request: CompareRequest = CompareRequest(), service: ScanService = Depends(get_scan_service)):
    """
    Compare the listed scans (first one is the baseline), or the current
    selection ordered oldest first when no ids are given.
    """
    return [ComparisonView.from_comparison(c) for c in service.compare(request.job_ids)]


@router.get("/activity", summary="Integration activity log", tags=["Integrations"], response_model=ActivityView)
def get_activity(limit: int = Query(50, ge=1), service: ScanService = Depends(get_scan_service)):
    return ActivityView(events=service.activity_log.recent(limit))


@router.get("/integrations", tags=["Integrations"], response_model=IntegrationsView)
def list_integrations(service: ScanService = Depends(get_scan_service)):
    return IntegrationsView(targets=service.integrations.targets())


@router.put("/integrations/{name}", tags=["Integrations"], response_model=IntegrationTarget)
def connect_integration(name: str, update: IntegrationUpdate, service: ScanService = Depends(get_scan_service)):
    target = service.integrations.connect(name, update.project_id)
    logging.info(f"[integration] Connected {name} project_id={target.project_id}")
    return target


@router.delete("/integrations/{name}", tags=["Integrations"], response_model=IntegrationTarget)
def disconnect_integration(name: str, service: ScanService = Depends(get_scan_service)):
    target = service.integrations.disconnect(name)
    logging.info(f"[integration] Disconnected {name}")
    return target
