from fastapi import FastAPI
from kb_search.api.routers.search import router as search_router
from kb_search.core.config import setup_logging

setup_logging()

app = FastAPI(title="Knowledge Base Semantic Search")

app.include_router(search_router, prefix="/kb/search", tags=["search"])
