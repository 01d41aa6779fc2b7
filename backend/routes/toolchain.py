"""One-shot toolchain endpoints: transpile and format without a session."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from backend.config import settings
from backend.models.preview import FormatRequest, FormatResponse, TranspileRequest, TranspileResponse
from engine.pipeline.errors import classify_compile
from engine.pipeline.exceptions import FormatError
from engine.pipeline.formatter import format_markup, format_module
from engine.pipeline.toolchain import get_toolchain
from engine.pipeline.transpiler import Transpiler
from engine.pipeline.types import Compiled, SourceDocument

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["toolchain"])


@router.post("/transpile", response_model=TranspileResponse)
def transpile_endpoint(req: TranspileRequest) -> TranspileResponse:
    """
    Run normalize → compile → sanitize on one document.

    Compile errors are a normal result (ok=false), not an HTTP error.
    """
    transpiler = Transpiler(get_toolchain(), normalizer_config=settings.normalizer_config)
    outcome = transpiler.transpile(SourceDocument(markup=req.markup, logic=req.logic))

    if isinstance(outcome, Compiled):
        return TranspileResponse(ok=True, code=outcome.code)

    return TranspileResponse(
        ok=False,
        diagnostic=outcome.diagnostic.to_dict(),
        error=classify_compile(outcome.diagnostic).to_dict(),
    )


@router.post("/format", response_model=FormatResponse)
def format_endpoint(req: FormatRequest) -> FormatResponse:
    """Format markup (fragment or full component) or logic text."""
    run = format_module if req.kind == "logic" else format_markup
    try:
        code = run(req.code, get_toolchain(), req.options.to_options())
    except FormatError as e:
        logger.info("format: rejected kind=%s: %s", req.kind, e)
        raise HTTPException(status_code=422, detail=str(e)) from e
    return FormatResponse(code=code, changed=code != req.code)
