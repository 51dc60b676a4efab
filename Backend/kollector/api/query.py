import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from kollector.core.security import get_acting_user_id
from kollector.schemas.query import NaturalLanguageQuery, QueryResponse
from kollector.services.database import get_db
from kollector.services.query_service import (
    ChatCompletionsClient, NaturalLanguageQueryService, QueryValidationError, get_chat_client
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/query/ask", response_model=QueryResponse)
async def ask(
    request: NaturalLanguageQuery,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    db: AsyncSession = Depends(get_db),
    llm: ChatCompletionsClient = Depends(get_chat_client)
):
    """Answer a natural language question about the acting user's collection."""
    service = NaturalLanguageQueryService(db, llm)
    try:
        return await service.ask(request.question, user_id)
    except QueryValidationError as e:
        return JSONResponse(status_code=400, content=e.response.model_dump())
    except DBAPIError as e:
        logger.warning(f"Generated query failed to execute: {e}")
        response = QueryResponse(question=request.question, success=False, error="The generated query could not be executed")
        return JSONResponse(status_code=400, content=response.model_dump())
