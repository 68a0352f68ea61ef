"""Preview endpoints: scan, generate and rewrite without writing files."""

from fastapi import APIRouter

from ...services.function_scanner import FunctionScanner
from ...services.code_generator import CodeGenerator
from ...services.api_rewriter import ApiRewriter, needs_review
from ..models import (
    ScanRequest,
    ScanResponse,
    FunctionRecordResponse,
    GenerateResponse,
    GeneratedUnitResponse,
    RewriteRequest,
    RewriteResponse,
)

router = APIRouter()


@router.post("/scan", response_model=ScanResponse)
def preview_scan(request: ScanRequest):
    """Recognize the functions declared in a source text."""
    records = FunctionScanner().scan(request.content, request.file_path)
    functions = [FunctionRecordResponse(**r.to_dict()) for r in records]
    return ScanResponse(functions=functions, total=len(functions))


@router.post("/generate", response_model=GenerateResponse)
def preview_generate(request: ScanRequest):
    """Generate Edge Functions for a source text in memory."""
    generator = CodeGenerator()
    response = GenerateResponse(units=[])

    for record in FunctionScanner().scan(request.content, request.file_path):
        try:
            unit = generator.generate(record)
        except Exception as e:
            response.failed[record.name] = str(e)
            continue
        if unit is None:
            response.skipped.append(record.name)
            continue
        response.units.append(GeneratedUnitResponse(**unit.to_dict()))

    return response


@router.post("/rewrite", response_model=RewriteResponse)
def preview_rewrite(request: RewriteRequest):
    """Rewrite a single function body."""
    rewriter = ApiRewriter()
    body = rewriter.rewrite(request.body)
    return RewriteResponse(
        body=body,
        needs_review=needs_review(body),
        reasons=rewriter.residual_reasons(body),
    )
