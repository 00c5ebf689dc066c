import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from civicpulse import __version__
from civicpulse.config import Settings, configure_logging
from civicpulse.container import ServiceContainer
from civicpulse.errors import InvalidInput, UpstreamError
from civicpulse.models.schemas import (
    BillRecord,
    IndexStats,
    MoneyFlowGraph,
    SearchRequest,
    SearchResponse,
    dump,
)
from civicpulse.services.lda_service import filing_activities

logger = logging.getLogger(__name__)


def create_app(container: Optional[ServiceContainer] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. A pre-built container (e.g. with fakes) skips start-up wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if container is not None:
            app.state.container = container
            yield
            return

        app_settings = settings or Settings.from_env()
        configure_logging(app_settings.log_level)
        services = await ServiceContainer(app_settings).init()
        app.state.container = services
        try:
            yield
        finally:
            await services.close()

    app = FastAPI(
        title="CivicPulse API",
        description="Bill search, campaign finance and lobbying data for the CivicPulse dashboard",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        logger.error("Upstream failure on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=502,
            content={"error": f"{exc.provider} request failed", "details": exc.message},
        )

    app.include_router(build_routes())
    return app


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def build_routes():
    router = APIRouter()

    @router.get("/")
    async def root():
        return {"message": "CivicPulse API"}

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # Search
    @router.post("/api/v1/search", response_model=SearchResponse)
    async def search_bills(body: SearchRequest, services: ServiceContainer = Depends(get_container)):
        return await services.search.search(body.query, body.include_bills, body.max_results)

    @router.get("/api/v1/search/index", response_model=IndexStats)
    async def get_index_stats(services: ServiceContainer = Depends(get_container)):
        return services.vector_index.stats()

    @router.post("/api/v1/search/index/refresh", response_model=IndexStats)
    async def refresh_index(services: ServiceContainer = Depends(get_container)):
        await services.vector_index.refresh_if_stale(services.congress.fetch_recent_bills, force=True)
        return services.vector_index.stats()

    # Bills
    @router.get("/api/v1/bills/polarizing")
    async def get_polarizing_bills(
        limit: int = Query(5, ge=1, le=20),
        services: ServiceContainer = Depends(get_container),
    ):
        bills = await services.polarization.get_polarizing_bills(limit)
        return {"success": True, "count": len(bills), "bills": [dump(b) for b in bills]}

    @router.get("/api/v1/bills/{bill_id}", response_model=BillRecord)
    async def get_bill(bill_id: str, services: ServiceContainer = Depends(get_container)):
        bill = await services.congress.fetch_bill(bill_id)
        if not bill:
            raise HTTPException(status_code=404, detail="Bill not found")
        return bill

    @router.get("/api/v1/state-bills")
    async def get_state_bills(
        q: Optional[str] = None,
        jurisdiction: str = "California",
        page: int = Query(1, ge=1),
        per_page: int = Query(10, ge=1, le=50),
        services: ServiceContainer = Depends(get_container),
    ):
        return await services.openstates.search_bills(q, jurisdiction=jurisdiction, page=page, per_page=per_page)

    @router.get("/api/v1/state-bills/jurisdictions")
    async def get_jurisdictions(services: ServiceContainer = Depends(get_container)):
        jurisdictions = await services.openstates.get_jurisdictions()
        return {"jurisdictions": jurisdictions, "total": len(jurisdictions)}

    @router.get("/api/v1/representatives/{bioguide_id}/bills")
    async def get_representative_bills(
        bioguide_id: str,
        limit: int = Query(20, ge=1, le=100),
        services: ServiceContainer = Depends(get_container),
    ):
        bills = await services.polarization.get_representative_bills(bioguide_id, limit)
        return {"bills": [dump(b) for b in bills], "total": len(bills), "bioguideId": bioguide_id}

    # Finance
    @router.get("/api/v1/finance/money-flow", response_model=MoneyFlowGraph)
    async def get_money_flow(
        candidate_id: Optional[str] = None,
        cycle: int = 2024,
        services: ServiceContainer = Depends(get_container),
    ):
        if not candidate_id or not candidate_id.strip():
            raise InvalidInput("candidate_id is required")
        try:
            return await services.finance.get_money_flow_data(candidate_id.strip(), cycle)
        except UpstreamError as e:
            logger.error("Money flow failed for %s: %s", candidate_id, e)
            body = dump(MoneyFlowGraph())
            body["error"] = f"Failed to fetch money flow data: {e.message}"
            return JSONResponse(status_code=502, content=body)

    @router.get("/api/v1/finance/candidates")
    async def search_candidates(
        name: Optional[str] = None,
        state: Optional[str] = None,
        office: Optional[str] = Query(None, pattern="^[HSP]$"),
        cycle: Optional[int] = None,
        per_page: int = Query(20, ge=1, le=100),
        services: ServiceContainer = Depends(get_container),
    ):
        if not (name or "").strip() and not state:
            raise InvalidInput("name or state is required")
        return await services.fec.search_candidates(
            name=(name or "").strip() or None, state=state, office=office, cycle=cycle, per_page=per_page
        )

    @router.get("/api/v1/lobbying/filings")
    async def get_lobbying_filings(
        year: Optional[int] = None,
        period: Optional[str] = None,
        client_name: Optional[str] = None,
        page_size: int = Query(25, ge=1, le=100),
        services: ServiceContainer = Depends(get_container),
    ):
        filings = await services.lda.fetch_filings(
            filing_year=year, filing_period=period, client_name=client_name, page_size=page_size
        )
        activities = [activity for filing in filings["results"] for activity in filing_activities(filing)]
        return {"count": filings["count"], "activities": activities}

    @router.get("/api/v1/finance/dashboard")
    async def get_finance_dashboard(services: ServiceContainer = Depends(get_container)):
        return await services.finance.get_dashboard_data()

    # Dashboard statistics
    @router.get("/api/v1/stats/lobbying")
    async def get_lobbying_stats(services: ServiceContainer = Depends(get_container)):
        return await services.stats.get_lobbying_stats()

    @router.get("/api/v1/news")
    async def get_news(
        limit: int = Query(6, ge=1, le=50),
        services: ServiceContainer = Depends(get_container),
    ):
        return await services.stats.get_news_feed(limit)

    @router.get("/api/v1/news/summary")
    async def get_news_summary(services: ServiceContainer = Depends(get_container)):
        return await services.stats.get_news_summary()

    return router


app = create_app()


def run():
    parser = argparse.ArgumentParser(description="Run the CivicPulse API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    uvicorn.run("civicpulse.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    run()
