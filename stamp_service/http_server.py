"""HTTP server for the PDF stamp service using FastAPI."""

import base64
import json
import logging
import time
from typing import Dict, Any, List, Optional

from fastapi import FastAPI, HTTPException, UploadFile, File, Form
from pydantic import BaseModel, Field

from .config import Config, get_config
from .errors import StampError
from .observability import LoggingObserver
from .service import StampService, build_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Pydantic models
class StampRequest(BaseModel):
    """Request body for POST /stamp."""
    pdfUrl: str = Field(..., description="URL of the PDF to stamp")
    text: str = Field(..., description="Text to stamp onto the pages")
    pages: str = Field(..., description="Page expression, e.g. '2-5, 8'")
    sink: Optional[str] = Field(None, description="Output sink: inline or storage")
    options: Dict[str, str] = Field(default_factory=dict)


class ProcessRequest(BaseModel):
    """Request body for POST /process (base64 mode)."""
    operation: str = Field(..., description="Operation: stamp, page_info")
    data: str = Field(..., description="Base64-encoded PDF data")
    options: Dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Response body for GET /health."""
    status: str = "ok"
    operations: List[str]
    sinks: List[str]
    version: str = StampService.VERSION


def _error_detail(error: StampError) -> Dict[str, Any]:
    return {"success": False, "error": error.to_dict()}


def create_app(
    config: Optional[Config] = None,
    service: Optional[StampService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or get_config()
    service = service or build_service(config, observer=LoggingObserver())

    app = FastAPI(
        title="PDF Stamp Service",
        description="Stamp text onto selected pages of a PDF using PyMuPDF",
        version=StampService.VERSION,
    )

    async def guarded(call, description: str) -> Any:
        try:
            return await call
        except StampError as e:
            raise HTTPException(status_code=e.status_code, detail=_error_detail(e))
        except Exception as e:
            logger.exception(f"{description} failed: {e}")
            raise HTTPException(
                status_code=500,
                detail={"success": False, "error": {"code": "PROCESSING_FAILED", "message": str(e)}}
            )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="ok",
            operations=service.supported_operations,
            sinks=service.sink_names,
            version=StampService.VERSION,
        )

    @app.get("/ready")
    async def readiness_check():
        return {"status": "ready"}

    @app.post("/stamp")
    async def stamp(request: StampRequest) -> Dict[str, Any]:
        """Download a PDF, stamp the selected pages and return or upload it."""
        start_time = time.time()
        logger.info(f"Stamp request: url={request.pdfUrl}, pages={request.pages!r}")

        result = await guarded(
            service.stamp_url(
                request.pdfUrl,
                request.text,
                request.pages,
                sink=request.sink,
                options=request.options,
            ),
            "Stamp",
        )
        return {
            "success": True,
            **result,
            "processing_time_ms": int((time.time() - start_time) * 1000),
        }

    @app.post("/api/stamp")
    async def stamp_upload(
        file: UploadFile = File(...),
        text: str = Form(...),
        pages: str = Form(...),
        sink: str = Form(""),
    ):
        """Stamp a PDF sent as a multipart upload."""
        start_time = time.time()

        pdf_data = await file.read()
        logger.info(f"Stamp upload: size={len(pdf_data)} bytes, pages={pages!r}")

        result = await guarded(
            service.stamp_bytes(
                pdf_data,
                text,
                pages,
                sink=sink or None,
                filename=file.filename,
            ),
            "Stamp upload",
        )
        return {
            "success": True,
            **result,
            "processing_time_ms": int((time.time() - start_time) * 1000),
        }

    @app.post("/process")
    async def process_document(request: ProcessRequest) -> Dict[str, Any]:
        """Run a single operation on a base64-encoded PDF."""
        start_time = time.time()

        try:
            document_data = base64.b64decode(request.data, validate=True)
        except Exception as e:
            raise HTTPException(
                status_code=400,
                detail={"success": False, "error": {"code": "INVALID_BASE64", "message": str(e)}}
            )

        max_bytes = config.stamp.max_file_size_bytes
        if len(document_data) > max_bytes:
            raise HTTPException(
                status_code=400,
                detail={
                    "success": False,
                    "error": {
                        "code": "FILE_TOO_LARGE",
                        "message": f"File exceeds {config.stamp.max_file_size_mb}MB limit",
                    }
                }
            )

        output_data, output_format, metadata = await guarded(
            service.run(document_data, request.operation, request.options),
            "Processing",
        )
        processing_time_ms = int((time.time() - start_time) * 1000)

        if output_format == "json":
            result = json.loads(output_data.decode("utf-8"))
            content_type = "application/json"
        else:
            result = base64.b64encode(output_data).decode("utf-8")
            content_type = f"application/{output_format}"

        return {
            "success": True,
            "result": result,
            "format": content_type,
            "metadata": {str(k): str(v) for k, v in metadata.items()},
            "processing_time_ms": processing_time_ms,
        }

    return app


# Create app instance for uvicorn
app = create_app()


def run_server():
    """Run the HTTP server."""
    import uvicorn
    config = get_config()
    logger.info(f"Starting HTTP server on {config.server.host}:{config.server.port}")
    uvicorn.run(
        "stamp_service.http_server:app",
        host=config.server.host,
        port=config.server.port,
        log_level="info",
    )


if __name__ == "__main__":
    run_server()
