"""
Service wiring.

Every service is built once from Settings and handed to the API layer and
the maintenance runner as explicit constructor arguments.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, Request

from kue.config import Settings, get_settings
from kue.graph import GraphStore, build_graph_store
from kue.services.dedup import DeduplicationService
from kue.services.enrichment import EnrichmentService
from kue.services.ingestion import IngestionService
from kue.services.jobs import JobTracker, SearchHistory
from kue.services.maintenance import MaintenanceRunner
from kue.services.query_compiler import QueryCompiler
from kue.services.query_parser import LLMQueryParser
from kue.services.result_formatter import ResultFormatter
from kue.services.scoring import ScoringService
from kue.services.search import SearchService
from kue.services.traversal import TraversalService
from kue.supabase_client import get_supabase_admin

logger = logging.getLogger("kue.app")


@dataclass
class Services:
    settings: Settings
    store: GraphStore
    dedup: DeduplicationService
    scoring: ScoringService
    traversal: TraversalService
    ingestion: IngestionService
    search: SearchService
    enrichment: EnrichmentService
    maintenance: MaintenanceRunner


def build_services(settings: Settings, store: Optional[GraphStore] = None) -> Services:
    store = store or build_graph_store(settings)
    timeout = settings.graph_timeout_seconds

    supabase = get_supabase_admin()
    tracker = JobTracker(supabase) if supabase else None
    history = SearchHistory(supabase) if supabase else None

    dedup = DeduplicationService(store, settings.placeholder_email_domain, timeout)
    scoring = ScoringService(store, timeout)
    traversal = TraversalService(
        store,
        timeout=timeout,
        max_hops=settings.intro_path_max_hops,
        path_strength_policy=settings.path_strength_policy,
    )
    search = SearchService(
        store=store,
        parser=LLMQueryParser(
            api_key=settings.openai_api_key,
            model=settings.query_parser_model,
            timeout=settings.llm_timeout_seconds,
        ),
        compiler=QueryCompiler(
            result_limit=settings.search_result_limit,
            max_hops=settings.intro_path_max_hops,
        ),
        traversal=traversal,
        formatter=ResultFormatter(
            api_key=settings.anthropic_api_key,
            model=settings.formatter_model,
            timeout=settings.llm_timeout_seconds,
        ),
        timeout=timeout,
        history=history,
    )

    return Services(
        settings=settings,
        store=store,
        dedup=dedup,
        scoring=scoring,
        traversal=traversal,
        ingestion=IngestionService(store, dedup, scoring, timeout),
        search=search,
        enrichment=EnrichmentService(
            store,
            scoring,
            api_key=settings.enrichment_api_key,
            concurrency=settings.enrichment_concurrency,
            placeholder_domain=settings.placeholder_email_domain,
            timeout=timeout,
        ),
        maintenance=MaintenanceRunner(
            store,
            scoring,
            dedup,
            tracker=tracker,
            stale_days=settings.stale_days,
            stale_max_score=settings.maintenance_stale_max_score,
            stale_limit=settings.maintenance_stale_limit,
            timeout=timeout,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    services = build_services(settings)
    logger.info(f"[STARTUP] Graph store: {type(services.store).__name__}")
    await services.store.ensure_schema()
    app.state.services = services
    try:
        yield
    finally:
        logger.info("[SHUTDOWN] Closing graph store")
        await services.store.close()


def get_services(request: Request) -> Services:
    return request.app.state.services
