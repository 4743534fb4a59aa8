"""Design review API endpoints.

Runs the review pipeline against a Figma file or plugin-side selection data,
posts feedback back as Figma comments, and manages the shared model setting
and its usage telemetry.

Every failure is answered with ``{"error": message}`` and the status code
carried by the pipeline error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session, get_session_ctx
from app.repositories.app_settings import AppSettingsRepository
from reviewer import config
from reviewer.errors import ReviewError
from reviewer.integrations.figma_client import FigmaClient
from reviewer.integrations.llm_client import LLMClient
from reviewer.pipeline.models import FeedbackItem
from reviewer.service import (
    ReviewConfig,
    analyze_document,
    analyze_figma_file,
    analyze_plugin_data,
    apply_fixes,
    generate_solutions,
    post_feedback_comments,
)

logger = logging.getLogger("app.routes.review")

router = APIRouter(prefix="/api/v2/review", tags=["review"])


# --- Schemas ---


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnalyzeRequest(_CamelModel):
    """Request for POST /api/v2/review/analyze.

    Either ``fileKey`` (fetched from Figma) or ``designData`` (an already
    exported node tree) is required.
    """

    file_key: Optional[str] = Field(None, alias="fileKey")
    design_data: Optional[Any] = Field(None, alias="designData")
    node_id: Optional[str] = Field(None, alias="nodeId")
    custom_prompt: Optional[str] = Field(None, alias="customPrompt")
    categories: Optional[List[str]] = None
    include_suggestions: bool = Field(True, alias="includeSuggestions")
    strict_categories: bool = Field(False, alias="strictCategories")
    figma_api_key: Optional[str] = Field(None, alias="figmaApiKey")


class PluginAnalyzeRequest(_CamelModel):
    """Request for POST /api/v2/review/analyze-plugin."""

    design_data: Optional[List[Dict[str, Any]]] = Field(None, alias="designData")
    prompt: str = ""
    file_name: Optional[str] = Field(None, alias="fileName")
    page_name: Optional[str] = Field(None, alias="pageName")


class CommentsRequest(_CamelModel):
    """Request for POST /api/v2/review/comments."""

    file_key: str = Field(..., alias="fileKey")
    feedback: List[Dict[str, Any]] = Field(default_factory=list)
    figma_api_key: Optional[str] = Field(None, alias="figmaApiKey")


class FixesRequest(_CamelModel):
    """Request for POST /api/v2/review/fixes (plugin-side auto-fix)."""

    design_data: List[Dict[str, Any]] = Field(default_factory=list, alias="designData")
    feedback: List[Dict[str, Any]] = Field(default_factory=list)


class SolutionsRequest(BaseModel):
    """Request for POST /api/v2/review/solutions."""

    feedback: List[Dict[str, Any]] = Field(default_factory=list)


class ModelSetting(BaseModel):
    model: str = Field(..., min_length=1, description="Gateway model id, e.g. google/gemini-2.5-flash")


# --- Helpers ---


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _error_response(e: Exception) -> JSONResponse:
    if isinstance(e, ReviewError):
        logger.warning(f"{e.__class__.__name__}: {e}")
        return JSONResponse({"error": str(e)}, status_code=e.status_code)
    logger.exception("Unexpected error in review endpoint")
    return JSONResponse({"error": str(e) or "Unknown error"}, status_code=500)


async def _record_usage(
    model: str,
    status: str,
    headers: Mapping[str, str],
    error_text: Optional[str] = None,
) -> None:
    """Persist usage telemetry in its own session so it survives request failures."""
    async with get_session_ctx() as session:
        await AppSettingsRepository(session).record_model_usage(
            model, status, headers, error_text,
        )


async def _selected_model(session: AsyncSession) -> str:
    return await AppSettingsRepository(session).get_model(config.DEFAULT_MODEL)


def _as_root(design_data: Any) -> Dict[str, Any]:
    if isinstance(design_data, list):
        return {"name": "", "children": design_data}
    return design_data


# --- Pipeline endpoints ---


@router.post("/analyze")
async def analyze(
    body: AnalyzeRequest,
    session: AsyncSession = Depends(get_session),
):
    """Review a Figma file (or node subtree) and return structured feedback."""
    if not body.file_key and not body.design_data:
        return _error("fileKey or designData is required", 400)

    model = await _selected_model(session)
    logger.info(
        f"analyze: file={body.file_key}, node={body.node_id or 'entire file'}, "
        f"custom_prompt={bool(body.custom_prompt)}, model={model}"
    )
    review_config = ReviewConfig(
        model=model,
        categories=body.categories,
        custom_prompt=body.custom_prompt,
        include_suggestions=body.include_suggestions,
        strict_categories=body.strict_categories,
    )

    try:
        async with LLMClient(on_usage=_record_usage) as llm:
            if body.design_data:
                result = await analyze_document(_as_root(body.design_data), llm, review_config)
            else:
                async with FigmaClient(token=body.figma_api_key) as figma:
                    result = await analyze_figma_file(
                        figma, llm, body.file_key, body.node_id, review_config,
                    )
    except Exception as e:
        return _error_response(e)

    return result.to_dict()


@router.post("/analyze-plugin")
async def analyze_plugin(
    body: PluginAnalyzeRequest,
    session: AsyncSession = Depends(get_session),
):
    """Review selection data sent by the Figma plugin."""
    if not body.design_data:
        return _error("No design data provided. Please select a frame in Figma.", 400)

    model = await _selected_model(session)
    logger.info(
        f"analyze-plugin: file={body.file_name}, page={body.page_name}, "
        f"nodes={len(body.design_data)}"
    )
    try:
        async with LLMClient(on_usage=_record_usage) as llm:
            result = await analyze_plugin_data(
                body.design_data, body.prompt, llm, ReviewConfig(model=model),
            )
    except Exception as e:
        return _error_response(e)

    return result.to_dict()


@router.post("/comments")
async def post_comments(body: CommentsRequest):
    """Post each feedback item as a comment anchored on the live file."""
    if not body.feedback:
        return _error("feedback must not be empty", 400)

    items = [FeedbackItem.from_dict(f) for f in body.feedback]
    try:
        async with FigmaClient(token=body.figma_api_key) as figma:
            result = await post_feedback_comments(figma, body.file_key, items)
    except Exception as e:
        return _error_response(e)

    response: Dict[str, Any] = {
        "success": True,
        "commentsPosted": result.posted,
        "total": result.total,
    }
    if result.errors:
        response["errors"] = result.errors
    return response


@router.post("/fixes")
async def fixes(body: FixesRequest):
    """Apply feedback suggestions to plugin node data; unfixable items come back as 'select'."""
    items = [FeedbackItem.from_dict(f) for f in body.feedback]
    try:
        batch = apply_fixes(body.design_data, items)
    except Exception as e:
        return _error_response(e)

    response: Dict[str, Any] = {
        "success": True,
        "edited": batch.edited,
        "results": [r.to_dict() for r in batch.results],
    }
    if batch.errors:
        response["errors"] = batch.errors
    return response


@router.post("/solutions")
async def solutions(
    body: SolutionsRequest,
    session: AsyncSession = Depends(get_session),
):
    """Generate a solution and implementation steps for each feedback item."""
    if not body.feedback:
        return _error("feedback must not be empty", 400)

    model = await _selected_model(session)
    try:
        async with LLMClient(on_usage=_record_usage) as llm:
            result = await generate_solutions(body.feedback, llm, model=model)
    except Exception as e:
        return _error_response(e)

    return {"solutions": result}


# --- Settings endpoints ---


@router.get("/settings/model")
async def get_model_setting(session: AsyncSession = Depends(get_session)):
    """Currently selected AI model (default when none has been chosen)."""
    return {"model": await _selected_model(session)}


@router.put("/settings/model")
async def put_model_setting(
    body: ModelSetting,
    session: AsyncSession = Depends(get_session),
):
    """Select the AI model used by every subsequent analysis."""
    await AppSettingsRepository(session).set_model(body.model)
    logger.info(f"settings: ai_model → {body.model}")
    return {"model": body.model}


@router.get("/settings/usage/{model:path}")
async def get_model_usage(
    model: str,
    session: AsyncSession = Depends(get_session),
):
    """Latest usage telemetry recorded for a model."""
    usage = await AppSettingsRepository(session).get_model_usage(model)
    if usage is None:
        return _error(f"No usage recorded for {model}", 404)
    return usage
