"""FastAPI application entrypoint for flowtrace service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..orchestrator import EntryPointNotFoundError, FlowOrchestrator, FlowResult

_T = TypeVar("_T")


class ScanRequest(BaseModel):
    path: str


class ScanResponse(BaseModel):
    project_name: str
    project_path: str
    statistics: Dict[str, Any]
    modules: List[Dict[str, Any]]
    entry_points: List[Dict[str, Any]]


class SearchRequest(BaseModel):
    paths: List[str] = Field(min_length=1)
    keywords: List[str] = Field(min_length=1)
    limit: Optional[int] = None


class SearchResponse(BaseModel):
    matches: List[Dict[str, Any]]


class TraceRequest(BaseModel):
    paths: List[str] = Field(min_length=1)
    entry: Optional[str] = None
    keywords: Optional[List[str]] = None
    max_depth: Optional[int] = Field(default=None, ge=0)
    include_report: bool = False


class TraceResponse(BaseModel):
    project_name: str
    chain: Dict[str, Any]
    diagram: str
    report: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> FlowOrchestrator:
    return FlowOrchestrator()


async def _run_blocking(func: Callable[[], _T]) -> _T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], FlowOrchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing flowtrace operations."""

    app = FastAPI(title="FlowTrace Service", version="0.1.0")

    async def get_orchestrator() -> FlowOrchestrator:
        # Lazy-instantiate per request to keep state predictable.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan", response_model=ScanResponse)
    async def scan_project(
        payload: ScanRequest,
        orchestrator: FlowOrchestrator = Depends(get_orchestrator),
    ) -> ScanResponse:
        structure = await _run_blocking(lambda: orchestrator.scan(payload.path))
        return ScanResponse(
            project_name=structure.project_name,
            project_path=structure.project_path,
            statistics=structure.statistics(),
            modules=[module.to_dict() for module in structure.modules],
            entry_points=[entry.to_dict() for entry in structure.entry_points],
        )

    @app.post("/entrypoints/search", response_model=SearchResponse)
    async def search_entry_points(
        payload: SearchRequest,
        orchestrator: FlowOrchestrator = Depends(get_orchestrator),
    ) -> SearchResponse:
        def _run_search() -> List[Dict[str, Any]]:
            structures = orchestrator.scan_many(payload.paths)
            matches = orchestrator.search(payload.keywords, structures, limit=payload.limit)
            return [match.to_dict() for match in matches]

        return SearchResponse(matches=await _run_blocking(_run_search))

    @app.post("/trace", response_model=TraceResponse)
    async def trace_flow(
        payload: TraceRequest,
        orchestrator: FlowOrchestrator = Depends(get_orchestrator),
    ) -> TraceResponse:
        def _run_trace() -> FlowResult:
            return orchestrator.trace(
                payload.paths,
                entry=payload.entry,
                keywords=payload.keywords,
                max_depth=payload.max_depth,
            )

        result = await _run_blocking(_run_trace)
        report = orchestrator.render_report(result) if payload.include_report else None
        return TraceResponse(
            project_name=result.structure.project_name,
            chain=result.chain.to_dict(),
            diagram=result.diagram,
            report=report,
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(EntryPointNotFoundError)
    async def entry_not_found_handler(_: Any, exc: EntryPointNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
