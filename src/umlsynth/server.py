"""FastAPI diagram service for umlsynth.

Stateless: every request carries the full project snapshot, the scope
selection, and (optionally) the previous diagram whose positions should be
kept. Nothing is remembered between requests.

Data flow: Renderer  ↔  FastAPI endpoints  ↔  pipeline.regenerate
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .codec import describe_errors, update_to_dict
from .models import ContractError
from .pipeline import regenerate
from .schemas import DiagramRequest, ScopeRequest
from .scope import resolve_scope

log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""

    app = FastAPI(title="umlsynth", docs_url=None, redoc_url=None)

    @app.exception_handler(ContractError)
    def _contract_error(_request, exc: ContractError) -> JSONResponse:
        log.warning("Rejected request: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=422)

    @app.exception_handler(RequestValidationError)
    def _validation_error(_request, exc: RequestValidationError) -> JSONResponse:
        message = describe_errors(list(exc.errors()))
        log.warning("Rejected request body: %s", message)
        return JSONResponse({"error": message}, status_code=422)

    @app.get("/api/health")
    def api_health() -> dict:
        return {"status": "ok"}

    @app.post("/api/diagram")
    def api_diagram(body: DiagramRequest) -> dict:
        """Regenerate the diagram for one scope selection.

        The response carries the positioned diagram plus the significance
        flag the renderer uses to decide whether to re-render.
        """
        previous = body.previous.to_state() if body.previous else None
        update = regenerate(body.project.to_snapshot(), body.scope.to_scope(), previous=previous)
        return update_to_dict(update)

    @app.post("/api/scope")
    def api_scope(body: ScopeRequest) -> dict:
        """Visible files and entity ids for a scope selection."""
        project = body.project.to_snapshot()
        result = resolve_scope(body.scope.to_scope(), project.entities_by_file, project.import_graph())
        return {
            "fileIds": sorted(result.file_ids),
            "entityIds": [e.id for e in result.entities],
            "reasons": {k: v.value for k, v in result.reasons.items()},
            "totalBeforeFilter": result.total_before_filter,
        }

    return app


def run_server(port: int = 8420) -> None:
    """CLI entry point: serve until interrupted."""
    import uvicorn

    app = create_app()
    print(f"umlsynth → http://localhost:{port}")
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
