import uvicorn
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from readme_engine.api.aggregate import router as aggregate_router
from readme_engine.api.registry import router as registry_router
from readme_engine.core.config import ANALYZER_PLUGINS, LOG_DIR, LOG_LEVEL, default_registration_options
from readme_engine.registry.analyzer_registry import AnalyzerRegistry
from readme_engine.registry.plugins import load_plugins, parse_plugin_specs
from readme_engine.utils.event_logger import RegistrationEventLogger
from readme_engine.utils.logging_config import setup_logging

setup_logging(level=getattr(logging, LOG_LEVEL, logging.INFO), log_dir=LOG_DIR)
logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    options = default_registration_options()
    events = RegistrationEventLogger(enabled=options.enable_logging)
    registry = AnalyzerRegistry(options, events=events)

    plugins = load_plugins(parse_plugin_specs(ANALYZER_PLUGINS))
    if plugins:
        results = registry.register_multiple(plugins)
        admitted = sum(1 for r in results if r.success)
        logger.info(f"Registered {admitted}/{len(plugins)} analyzer plugins")

    app.state.events = events
    app.state.registry = registry
    try:
        yield
    finally:
        events.close()


app = FastAPI(title="README Analysis Engine API", lifespan=lifespan)

# ---------------------------------------------------------------------------
# Logging Middleware
# ---------------------------------------------------------------------------
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Incoming: {request.method} {request.url.path} from {client_host}")

        try:
            response = await call_next(request)
            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"Outgoing: {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Time: {process_time:.2f}ms"
            )
            return response
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path} - Error: {str(e)}")
            raise

app.add_middleware(LoggingMiddleware)

# Health endpoint
@app.get("/health")
async def health_check():
    return {"status": "ok"}

# Register routers
app.include_router(aggregate_router)
app.include_router(registry_router)

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
