"""Page Layout Inference Python Server"""

import logging
import asyncio
from typing import Optional
import os

import uvicorn
from fastapi import FastAPI, UploadFile, File, Query, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rich.console import Console
from rich.logging import RichHandler

from engine.config import EngineConfig, LayoutConfig
from engine.layout_engine import LayoutEngine
from extractors.layout_extractor import extract_layout
from models.layout_types import AnalyzeDocumentRequest, DocumentLayout
from utils.endpoint_decorators import handle_layout_errors, handle_layout_upload

API_VERSION = "1.0.0"
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
DEFAULT_TIMEOUT_SECONDS = 300
MIN_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 600

logger = logging.getLogger("rich")

app = FastAPI(
    title="Page Layout Inference API",
    description="Recover lines, columns and paragraphs from page geometry",
    version=API_VERSION
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "message": "Page Layout Inference API",
        "version": API_VERSION,
        "features": [
            "pdf2xml interchange ingestion",
            "PDF word ingestion",
            "Line detection with adaptive spacing thresholds",
            "Column detection from whitespace gutters",
            "Paragraph detection with orphan/widow flags"
        ]
    }

@app.get("/health")
async def health_check():
    """Health check with dependency verification"""
    try:
        import numpy
        import pdfplumber
        import psutil
        import pydantic

        return {
            "status": "healthy",
            "version": API_VERSION,
            "features": {
                "xml_ingestion": "xml.etree",
                "pdf_ingestion": "pdfplumber",
                "column_profiles": "numpy",
                "resource_limits": "psutil"
            },
            "dependencies": {
                "numpy": numpy.__version__,
                "pdfplumber": pdfplumber.__version__,
                "psutil": psutil.__version__,
                "pydantic": pydantic.VERSION
            }
        }
    except ImportError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": f"Missing dependency: {str(e)}"
            }
        )

@app.post("/analyze-layout", response_model=DocumentLayout)
@handle_layout_upload
async def analyze_layout(
    *,
    request: Request,
    file: UploadFile = File(...),
    alignment_tolerance: Optional[float] = Form(None, description="Edge alignment tolerance, as a fraction of the median element height"),
    horizontal_slack_factor: Optional[float] = Form(None, description="Allowed in-line gap, as a multiple of the horizontal spacing mode"),
    gutter_min_fraction: Optional[float] = Form(None, description="Share of text rows a gutter must stay empty in"),
    gutter_width_factor: Optional[float] = Form(None, description="Minimum gutter width, as a multiple of the horizontal spacing mode"),
    paragraph_spacing_factor: Optional[float] = Form(None, description="Paragraph break gap, as a multiple of the line spacing mode"),
    line_granularity: Optional[str] = Form(None, description="Group 'token' or 'text' elements into lines"),
    processing_timeout: Optional[int] = Query(DEFAULT_TIMEOUT_SECONDS, ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds")
):
    """
    Recover the layout of an uploaded document.

    **Input:**
    - pdf2xml output (`.xml`, produced with `-blocks`)
    - PDF (`.pdf`), read word by word

    **Configuration Options:**
    - Every detector option defaults to the engine defaults when omitted

    **Returns:**
    - One layout per page with thresholds, columns (with their lines),
      paragraphs and skipped entities
    """
    overrides = {
        'alignment_tolerance': alignment_tolerance,
        'horizontal_slack_factor': horizontal_slack_factor,
        'gutter_min_fraction': gutter_min_fraction,
        'gutter_width_factor': gutter_width_factor,
        'paragraph_spacing_factor': paragraph_spacing_factor,
        'line_granularity': line_granularity,
    }
    layout_config = LayoutConfig.from_dict({k: v for k, v in overrides.items() if v is not None})
    engine_config = EngineConfig(layout=layout_config, timeout_seconds=processing_timeout)

    logger.info(f"Analyzing layout of {request.state.filename} with {layout_config.to_dict()}")

    result = await asyncio.to_thread(
        extract_layout,
        request.state.file_content,
        request.state.filename,
        engine_config=engine_config
    )

    logger.info(f"Successfully analyzed {len(result.pages)} pages")
    return result

@app.post("/analyze-document", response_model=DocumentLayout)
@handle_layout_errors
async def analyze_document_endpoint(
    *,
    payload: AnalyzeDocumentRequest,
    processing_timeout: Optional[int] = Query(DEFAULT_TIMEOUT_SECONDS, ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds")
):
    """
    Recover the layout of a document already in the object model.

    **Body:**
    - `document`: pages, blocks, texts and tokens with their geometry
    - `config`: optional detector options (snake_case or camelCase keys)
    """
    layout_config = LayoutConfig.from_dict(payload.config or {})
    engine_config = EngineConfig(layout=layout_config, timeout_seconds=processing_timeout)

    def _analyze() -> DocumentLayout:
        with LayoutEngine(engine_config) as engine:
            return engine.analyze(payload.document)

    result = await asyncio.to_thread(_analyze)

    logger.info(f"Successfully analyzed {len(result.pages)} pages")
    return result

def _configure_server_logging():
    """Configure logging with Rich handler and filters for clean output"""
    console = Console(force_terminal=True)

    # Get level from env, default to INFO
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    class ShutdownFilter(logging.Filter):
        """Filter out shutdown-related log messages"""
        def filter(self, record):
            if record.exc_info and record.exc_info[0] in (KeyboardInterrupt, asyncio.CancelledError):
                return False
            if "CancelledError" in str(record.msg) or "KeyboardInterrupt" in str(record.msg):
                return False
            return True

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=True
    )
    rich_handler.addFilter(ShutdownFilter())

    # Silence everything by default
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[rich_handler])

    # Allow server startup logs
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)

    for module_name in ["main", "rich", "engine", "extractors", "processors", "utils"]:
        logging.getLogger(module_name).setLevel(log_level)

    return console

def _find_free_port(start_port: int = 8000) -> int:
    """Find an available port starting from the given port"""
    import socket

    port = start_port
    max_port = start_port + 100

    while port < max_port:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(('localhost', port))
                return port
        except OSError:
            port += 1

    return start_port

server_console = _configure_server_logging()

if __name__ == "__main__":
    free_port = _find_free_port()
    server_console.print(f"[bold green]Starting layout server on http://localhost:{free_port}[/bold green]")

    try:
        uvicorn.run("main:app", host="0.0.0.0", port=free_port, reload=True, log_config=None)
    except KeyboardInterrupt:
        server_console.print("\n[bold yellow]Server stopped.[/bold yellow]")
