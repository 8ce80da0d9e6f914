import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cashflow_sync.api.routes import health, summary, webhook
from cashflow_sync.bot.dispatcher import CommandDispatcher
from cashflow_sync.core import settings
from cashflow_sync.integration.supabase import SupabaseClient
from cashflow_sync.integration.telegram import TelegramClient
from cashflow_sync.logger import get_logger, setup_logging
from cashflow_sync.services.aggregation import AggregationEngine
from cashflow_sync.services.budgets import BudgetPlanner
from cashflow_sync.services.identity import IdentityLinker
from cashflow_sync.services.ledger import LedgerWriter
from cashflow_sync.services.resolver import NameResolver

logger = get_logger(__name__)


def build_dispatcher(store: SupabaseClient) -> tuple[CommandDispatcher, AggregationEngine]:
    resolver = NameResolver(store)
    aggregation = AggregationEngine(store, resolver)
    dispatcher = CommandDispatcher(
        identity=IdentityLinker(store),
        resolver=resolver,
        ledger=LedgerWriter(store, resolver),
        budgets=BudgetPlanner(store, resolver),
        aggregation=aggregation,
    )
    return dispatcher, aggregation


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        if not os.getenv("SUPABASE_URL") or not os.getenv("SUPABASE_SERVICE_ROLE_KEY"):
            logger.warning(
                "SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not set. Store access is disabled."
            )

        if not os.getenv("TELEGRAM_BOT_TOKEN"):
            logger.warning("TELEGRAM_BOT_TOKEN not set. Replies will not be delivered.")

        if not settings.API_KEY:
            logger.warning("API_KEY not set. Account summary routes are disabled.")

        store = SupabaseClient(timeout=settings.STORE_TIMEOUT)
        telegram = TelegramClient(api_url=settings.TELEGRAM_API_URL, timeout=settings.STORE_TIMEOUT)
        dispatcher, aggregation = build_dispatcher(store)

        app.state.store = store
        app.state.telegram = telegram
        app.state.dispatcher = dispatcher
        app.state.aggregation = aggregation

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await store.aclose()
        await telegram.aclose()

    app = FastAPI(title="CashFlow Sync", lifespan=lifespan)

    app.include_router(webhook.router)
    app.include_router(health.router)
    app.include_router(summary.router)

    return app


app = create_app()
