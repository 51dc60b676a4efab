"""Natural-language questions over the catalog.

A chat-completions model turns the question into SQL, the SQL is sanitised
and validated, executed read-only, and the rows are summarised by the model.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from kollector.core.config import settings
from kollector.core.exceptions import BadRequestError
from kollector.schemas.query import QueryResponse
from kollector.services import sql_validation

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 100
FALLBACK_ANSWER = "Query completed successfully. See the results below."

SCHEMA_DOCUMENTATION = """
DATABASE SCHEMA FOR MUSIC COLLECTION:

TABLE music_releases
- id (INTEGER, PRIMARY KEY)
- user_id (UUID) - owner of the release
- title (VARCHAR(300))
- release_year (TIMESTAMP) - use EXTRACT(YEAR FROM release_year) for the year
- orig_release_year (TIMESTAMP) - original release date if reissue
- artists (TEXT) - JSON array of artist ids, e.g. '[1,2]'
- genres (TEXT) - JSON array of genre ids
- live (BOOLEAN)
- label_id, country_id, format_id, packaging_id (INTEGER, FK)
- label_number (VARCHAR(100)) - catalog number
- length_in_seconds (INTEGER)
- upc (VARCHAR(50))
- purchase_info (TEXT) - JSON with store_id, price, date, notes
- date_added, last_modified (TIMESTAMP)

TABLES artists, labels, countries, formats, genres, packagings, stores
- id (INTEGER, PRIMARY KEY)
- user_id (UUID)
- name (VARCHAR)

TABLE now_playing
- id (INTEGER, PRIMARY KEY)
- music_release_id (INTEGER, FK music_releases.id)
- played_at (TIMESTAMP)
"""

SQL_PROMPT = """You are a SQL expert that converts natural language questions into PostgreSQL queries.
Rules:
1. Only generate SELECT queries.
2. Only query rows whose user_id is '{user_id}'.
3. Always limit results to {limit} rows using LIMIT {limit}.
4. Return ONLY the SQL query, without explanations, markdown or a trailing semicolon.
5. Use ILIKE for case-insensitive text matching.
{schema}"""

ANSWER_PROMPT = """You are a helpful assistant that summarizes database query results in natural language.
Keep your response concise and friendly. If there are no results, say so clearly.
Don't mention SQL or databases - just answer the question naturally."""


class QueryValidationError(Exception):
    def __init__(self, response: QueryResponse):
        super().__init__(response.error)
        self.response = response


def clean_sql_response(sql: str) -> str:
    cleaned = (sql or "").strip()
    if cleaned.lower().startswith("```sql"):
        cleaned = cleaned[6:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()
    if cleaned and "limit" not in cleaned.lower():
        cleaned += f" LIMIT {DEFAULT_ROW_LIMIT}"
    return cleaned


class ChatCompletionsClient:
    """Minimal client for an OpenAI-compatible /chat/completions endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = settings.LLM_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0,
        }
        async with httpx.AsyncClient(transport=self._transport, timeout=60.0) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"}
            )
            response.raise_for_status()
            data = response.json()
        return data["choices"][0]["message"]["content"]


class NaturalLanguageQueryService:
    def __init__(self, db: AsyncSession, llm: ChatCompletionsClient):
        self.db = db
        self.llm = llm

    async def generate_sql(self, question: str, user_id: uuid.UUID) -> str:
        prompt = SQL_PROMPT.format(user_id=user_id, limit=DEFAULT_ROW_LIMIT, schema=SCHEMA_DOCUMENTATION)
        sql = clean_sql_response(await self.llm.complete(prompt, question))
        logger.info(f"Generated SQL for question '{question}': {sql}")
        return sql

    async def summarize(self, question: str, results: List[Dict[str, Any]]) -> str:
        user_prompt = (
            f"Original question: {question}\n\n"
            f"Query results (JSON):\n{json.dumps(results, indent=2, default=str)}\n\n"
            "Please provide a natural language summary of these results."
        )
        try:
            return await self.llm.complete(ANSWER_PROMPT, user_prompt)
        except (httpx.HTTPError, KeyError, IndexError) as e:
            logger.error(f"Error formatting results as natural language: {e}")
            return FALLBACK_ANSWER

    async def execute(self, sql: str) -> List[Dict[str, Any]]:
        # Start a fresh transaction so the read-only mode covers the whole statement.
        await self.db.rollback()
        if self.db.bind.dialect.name == "postgresql":
            await self.db.execute(text("SET TRANSACTION READ ONLY"))
        try:
            result = await self.db.execute(text(sql))
            rows = [dict(row._mapping) for row in result]
        finally:
            await self.db.rollback()
        logger.info(f"Query returned {len(rows)} results")
        return rows

    async def ask(self, question: str, user_id: uuid.UUID) -> QueryResponse:
        if not question or not question.strip():
            raise BadRequestError("Question is required")
        if not self.llm.is_configured:
            raise BadRequestError("Natural language queries are not configured")

        sql = sql_validation.sanitize(await self.generate_sql(question, user_id))
        validation = sql_validation.validate(sql)
        if not validation.is_valid:
            logger.warning(f"Generated SQL failed validation: {sql} ({validation.error_message})")
            raise QueryValidationError(QueryResponse(
                question=question,
                query=sql,
                success=False,
                error=f"Generated query failed validation: {validation.error_message}"
            ))

        results = await self.execute(sql)
        answer = await self.summarize(question, results)
        return QueryResponse(
            question=question,
            query=sql,
            results=results,
            result_count=len(results),
            answer=answer,
            success=True
        )


# Dependency
def get_chat_client() -> ChatCompletionsClient:
    return ChatCompletionsClient()
