"""Agent Workbench API.

Serves the markdown workspace and runs the orchestration engine:
- Workspace documents (list, read, write, rename, delete, search)
- Plan synthesis
- Background runs with cancellation and a server-sent event stream
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workbench import __version__, config
from workbench.api.routes import documents, runs
from workbench.executor.document_store import FileDocumentStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    store = FileDocumentStore(config.docs_root())
    store.ensure_root()
    logger.info(f"Workspace documents at {store.root}")

    settings = config.load_settings()
    logger.info(
        f"Model {settings['model']}, budget {settings['max_turns']} turns, "
        f"{settings['max_tokens']} max tokens"
    )
    logger.info("Agent Workbench API ready")
    yield
    logger.info("Shutting down Agent Workbench API")


app = FastAPI(
    title="Agent Workbench API",
    description="""
## Run Orchestration Engine

Plans a multi-agent run over a markdown workspace, executes it step by step
under a turn budget, and writes a reconciled artifact bundle back to the
workspace.

### Key Endpoints

- `GET /v1/files` - List workspace documents
- `POST /v1/plan` - Synthesize a plan for a prompt
- `POST /v1/runs` - Start a run
- `GET /v1/runs/{run_id}/events` - Stream run events
- `POST /v1/runs/{run_id}/cancel` - Cancel a run
""",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with /v1 prefix
app.include_router(documents.router, prefix="/v1")
app.include_router(runs.router, prefix="/v1")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Agent Workbench API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "files": "/v1/files",
            "search": "/v1/search",
            "plan": "/v1/plan",
            "runs": "/v1/runs",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "workspace": str(config.WORKSPACE_ROOT)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.API_PORT)
