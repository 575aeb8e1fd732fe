"""Agent 接入文档路由 -- GET /skill.md 原样返回文件内容"""

import asyncio

import structlog
from chronos.core.config import get_skill_doc_path
from fastapi import APIRouter
from starlette.responses import PlainTextResponse

from ..responses import error_response

log = structlog.get_logger()

router = APIRouter()


@router.get("/skill.md")
async def skill_doc():
    path = get_skill_doc_path()
    try:
        content = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except OSError as exc:
        await log.ainfo("skill_doc_unavailable", path=str(path), error=str(exc))
        return error_response(404, "NOT_FOUND", "skill.md not found")
    return PlainTextResponse(content, media_type="text/markdown; charset=utf-8")
