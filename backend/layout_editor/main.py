"""
Room Layout Editor API v1.0

FastAPI application for editing a room's furniture layout from a photo.

Features:
- AI-powered layout extraction from a room photo
- Sparse, name-keyed layout edits merged into the stored layout
- Re-rendering of the room to reflect the edited layout
- LangSmith tracing for observability
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from layout_editor.config import get_settings, setup_langsmith, setup_logging
from layout_editor.models.api import HealthResponse
from layout_editor.routes import analyze, layout, render
from layout_editor.core.exceptions import (
    RoomEditorError,
    LayoutValidationError,
    AnalysisError,
    PreconditionError,
    InvalidEditError,
    RenderError,
    UpstreamTimeoutError,
    LayoutNotFoundError,
    StaleResultError,
    RequestCancelledError,
    InvalidImageError,
)


# Get settings
settings = get_settings()

setup_logging()

# Setup LangSmith tracing
langsmith_enabled = setup_langsmith()

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    **Room Layout Editor API** - edit a room's furniture layout and re-render it.

    ## Workflow
    1. Upload a room photo → `/api/v1/analyze` (or `/api/v1/analyze/upload`)
    2. Move, resize or add objects by name → `POST /api/v1/layout`
    3. Render the edited room → `POST /api/v1/render`
    4. Fetch the layout (`GET /api/v1/layout?updated=false` for the original) or the image (`GET /api/v1/render`)

    ## AI Models Used
    - `gemini-2.5-flash`: Vision analysis
    - `gemini-2.5-flash-image`: Rendering
    """,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(analyze.router, prefix=settings.api_prefix)
app.include_router(layout.router, prefix=settings.api_prefix)
app.include_router(render.router, prefix=settings.api_prefix)


# ============ Exception Handlers ============

def _error_response(status_code: int, exc: RoomEditorError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(LayoutValidationError)
async def layout_validation_error_handler(request: Request, exc: LayoutValidationError):
    """Handle layouts that break the layout contract."""
    return _error_response(422, exc)


@app.exception_handler(InvalidEditError)
async def invalid_edit_error_handler(request: Request, exc: InvalidEditError):
    """Handle edit entries without a name or with malformed fields."""
    return _error_response(422, exc)


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    """Handle unusable vision output. The raw answer is included."""
    return _error_response(502, exc)


@app.exception_handler(RenderError)
async def render_error_handler(request: Request, exc: RenderError):
    """Handle rendering failures."""
    return _error_response(502, exc)


@app.exception_handler(UpstreamTimeoutError)
async def upstream_timeout_error_handler(request: Request, exc: UpstreamTimeoutError):
    """Handle model calls that ran out of time."""
    return _error_response(504, exc)


@app.exception_handler(PreconditionError)
async def precondition_error_handler(request: Request, exc: PreconditionError):
    """Handle operations invoked before a room was analyzed."""
    return _error_response(409, exc)


@app.exception_handler(StaleResultError)
async def stale_result_error_handler(request: Request, exc: StaleResultError):
    """Handle results superseded by a newer operation."""
    return _error_response(409, exc)


@app.exception_handler(LayoutNotFoundError)
async def layout_not_found_error_handler(request: Request, exc: LayoutNotFoundError):
    return _error_response(404, exc)


@app.exception_handler(RequestCancelledError)
async def request_cancelled_error_handler(request: Request, exc: RequestCancelledError):
    """Client closed the request; nobody reads this response."""
    return _error_response(499, exc)


@app.exception_handler(InvalidImageError)
async def invalid_image_error_handler(request: Request, exc: InvalidImageError):
    """Handle invalid image data."""
    return _error_response(400, exc)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request body or query; same error shape as every other failure."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "error_code": "INVALID_REQUEST",
            "errors": jsonable_encoder(exc.errors()),
        }
    )


@app.exception_handler(RoomEditorError)
async def room_editor_error_handler(request: Request, exc: RoomEditorError):
    """Handle generic room editor errors."""
    return _error_response(500, exc)


# ============ Health Check ============

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        message="Room Layout Editor API is running. Visit /docs for API documentation."
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=settings.app_version
    )


# ============ Run with Uvicorn ============

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "layout_editor.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
