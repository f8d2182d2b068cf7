from __future__ import annotations
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http
import logging

from kb_search.core.errors import ArgumentError, NotFoundError, PersistenceError, ProviderError, SearchError
from kb_search.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter()

# keys of a per-source body that are not filters
_QUERY_KEYS = ("query", "limit", "semantic_weight")


def get_search_service() -> SearchService:
    return SearchService.instance()


def _http_error(e: SearchError) -> HTTPException:
    if isinstance(e, ArgumentError):
        return HTTPException(http.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(http.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ProviderError):
        return HTTPException(http.HTTP_502_BAD_GATEWAY, detail=str(e))
    if isinstance(e, PersistenceError):
        logger.error(f"Snapshot error: {e}")
        return HTTPException(http.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return HTTPException(http.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _filters(body: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in body.items() if k not in _QUERY_KEYS}


@router.get("/sources")
def list_sources(svc: SearchService = Depends(get_search_service)) -> List[Dict[str, Any]]:
    return svc.sources()


# unified routes are declared first so "unified" is never taken as a source name
@router.post("/unified/semantic")
async def unified_semantic(body: Dict[str, Any], svc: SearchService = Depends(get_search_service)):
    """
    Request JSON:
    {
      "query": "string",
      "sources": ["discord", "docs", "knowledge"] | null,
      "limit": 20
    }
    """
    try:
        res = await svc.unified_search(
            body.get("query"), sources=body.get("sources"), limit=body.get("limit"), mode="semantic"
        )
    except SearchError as e:
        raise _http_error(e)
    return res.model_dump()


@router.post("/unified/hybrid")
async def unified_hybrid(body: Dict[str, Any], svc: SearchService = Depends(get_search_service)):
    """
    Request JSON:
    {
      "query": "string",
      "sources": ["discord", "docs", "knowledge"] | null,
      "limit": 20,
      "semantic_weight": 0.7
    }
    """
    try:
        res = await svc.unified_search(
            body.get("query"),
            sources=body.get("sources"),
            limit=body.get("limit"),
            mode="hybrid",
            semantic_weight=body.get("semantic_weight"),
        )
    except SearchError as e:
        raise _http_error(e)
    return res.model_dump()


@router.post("/{source}/semantic")
async def source_semantic(source: str, body: Dict[str, Any], svc: SearchService = Depends(get_search_service)):
    """
    Request JSON: {"query": "string", "limit": 20, <source filters>}
    Filter parameters per source are listed by GET /sources.
    """
    try:
        res = await svc.semantic_search(source, body.get("query"), filters=_filters(body), limit=body.get("limit"))
    except SearchError as e:
        raise _http_error(e)
    return res.model_dump()


@router.post("/{source}/hybrid")
async def source_hybrid(source: str, body: Dict[str, Any], svc: SearchService = Depends(get_search_service)):
    """
    Request JSON: {"query": "string", "limit": 20, "semantic_weight": 0.7, <source filters>}
    """
    try:
        res = await svc.hybrid_search(
            source,
            body.get("query"),
            filters=_filters(body),
            limit=body.get("limit"),
            semantic_weight=body.get("semantic_weight"),
        )
    except SearchError as e:
        raise _http_error(e)
    return res.model_dump()
